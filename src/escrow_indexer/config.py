"""IndexerConfig: process configuration loaded once at startup."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import (
    AliasChoices,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

ENV_PREFIX = "ESCROW_INDEXER_"

NETWORK_RPC_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class IndexerConfig(BaseSettings):
    """Configuration for the indexer and the query API.

    Every field can be set through an ``ESCROW_INDEXER_*`` environment
    variable, e.g. ``ESCROW_INDEXER_PACKAGE_ID=0x...``. No ``.env`` file is
    read.

    Attributes:
        database_url: SQLAlchemy async URL for cursors and projections.
        network: Sui network name, used to pick ``rpc_url`` when not given.
        rpc_url: JSON-RPC endpoint of a Sui fullnode.
        package_id: Address of the escrow Move package to track.
        polling_interval_seconds: Wait between cycles once caught up
            and after a failed cycle (``ESCROW_INDEXER_POLLING_INTERVAL``).
        page_size: Max events requested per fetch.
        default_limit: Max (and default) page size for API queries.
        rpc_timeout_seconds: Timeout for each JSON-RPC request
            (``ESCROW_INDEXER_RPC_TIMEOUT``).
        api_host: Bind address for the HTTP API.
        api_port: Bind port for the HTTP API.
        log_level: Root log level name.
        log_json: Emit log records as JSON lines.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    database_url: str = "sqlite+aiosqlite:///./escrow.db"
    network: str = "testnet"
    rpc_url: str = NETWORK_RPC_URLS["testnet"]
    package_id: str | None = None
    polling_interval_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices(
            "polling_interval_seconds", f"{ENV_PREFIX}POLLING_INTERVAL"
        ),
    )
    page_size: int = Field(default=50, ge=1)
    default_limit: int = Field(default=50, ge=1)
    rpc_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices(
            "rpc_timeout_seconds", f"{ENV_PREFIX}RPC_TIMEOUT"
        ),
    )
    api_host: str = "127.0.0.1"
    api_port: int = 3000
    log_level: LogLevel = "INFO"
    log_json: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @field_validator("package_id", mode="before")
    @classmethod
    def _blank_package_id(cls, value: Any) -> Any:
        return value or None

    @model_validator(mode="before")
    @classmethod
    def _resolve_rpc_url(cls, data: Any) -> Any:
        """Fill ``rpc_url`` from ``network`` unless an explicit URL is given."""
        if not isinstance(data, dict):
            return data
        network = str(data.get("network") or "testnet").lower()
        data = {**data, "network": network}
        if not data.get("rpc_url"):
            if network not in NETWORK_RPC_URLS:
                raise ValueError(
                    f"unknown network {network!r}; set {ENV_PREFIX}RPC_URL instead"
                )
            data["rpc_url"] = NETWORK_RPC_URLS[network]
        return data

    def require_package_id(self) -> str:
        if not self.package_id:
            raise ConfigError(f"{ENV_PREFIX}PACKAGE_ID is not set")
        return self.package_id

    @classmethod
    def from_env(cls, **overrides: Any) -> IndexerConfig:
        """Load from the environment; ``overrides`` win over env values.

        Raises:
            ConfigError: any value failed validation.
        """
        try:
            return cls(**overrides)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e
