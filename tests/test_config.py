"""Tests for IndexerConfig.from_env and CLI overrides."""

from __future__ import annotations

import os

import pytest

from escrow_indexer.cli import build_parser, config_from_args
from escrow_indexer.config import ENV_PREFIX, NETWORK_RPC_URLS, IndexerConfig
from escrow_indexer.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in list(os.environ):
        if name.upper().startswith(ENV_PREFIX):
            monkeypatch.delenv(name)
    return monkeypatch


def set_env(monkeypatch: pytest.MonkeyPatch, **values: str) -> None:
    for name, value in values.items():
        monkeypatch.setenv(ENV_PREFIX + name, value)


def test_defaults_from_empty_environment() -> None:
    config = IndexerConfig.from_env()
    assert config.rpc_url == NETWORK_RPC_URLS["testnet"]
    assert config.polling_interval_seconds == 1.0
    assert config.default_limit == 50
    assert config.package_id is None


def test_environment_values(clean_env: pytest.MonkeyPatch) -> None:
    set_env(
        clean_env,
        PACKAGE_ID="0xabc",
        NETWORK="mainnet",
        POLLING_INTERVAL="2.5",
        PAGE_SIZE="10",
        RPC_TIMEOUT="3",
        LOG_JSON="true",
        LOG_LEVEL="debug",
    )
    config = IndexerConfig.from_env()
    assert config.require_package_id() == "0xabc"
    assert config.rpc_url == NETWORK_RPC_URLS["mainnet"]
    assert config.polling_interval_seconds == 2.5
    assert config.rpc_timeout_seconds == 3.0
    assert config.page_size == 10
    assert config.log_json is True
    assert config.log_level == "DEBUG"


def test_explicit_rpc_url_wins_over_network(clean_env: pytest.MonkeyPatch) -> None:
    set_env(clean_env, NETWORK="nowhere", RPC_URL="http://x")
    assert IndexerConfig.from_env().rpc_url == "http://x"


@pytest.mark.parametrize(
    "env",
    [
        {"PAGE_SIZE": "lots"},
        {"POLLING_INTERVAL": "soon"},
        {"LOG_JSON": "maybe"},
        {"NETWORK": "nowhere"},
        {"PAGE_SIZE": "0"},
        {"POLLING_INTERVAL": "-1"},
        {"LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_values_raise_config_error(
    clean_env: pytest.MonkeyPatch, env: dict[str, str]
) -> None:
    set_env(clean_env, **env)
    with pytest.raises(ConfigError):
        IndexerConfig.from_env()


def test_config_is_immutable() -> None:
    config = IndexerConfig.from_env()
    with pytest.raises(ValueError):
        config.page_size = 5  # type: ignore[misc]


def test_missing_package_id() -> None:
    with pytest.raises(ConfigError):
        IndexerConfig.from_env().require_package_id()


def test_cli_overrides_environment(clean_env: pytest.MonkeyPatch) -> None:
    set_env(clean_env, PACKAGE_ID="0xenv", POLLING_INTERVAL="9")
    args = build_parser().parse_args(
        [
            "--log-level",
            "warning",
            "indexer",
            "--package-id",
            "0xdef",
            "--polling-interval",
            "0.5",
        ]
    )
    config = config_from_args(args)
    assert config.package_id == "0xdef"
    assert config.polling_interval_seconds == 0.5
    assert config.log_level == "WARNING"
    assert config.api_port == 3000


def test_cli_rejects_unknown_log_level() -> None:
    args = build_parser().parse_args(["--log-level", "loud", "api"])
    with pytest.raises(ConfigError):
        config_from_args(args)
