"""FastAPI application exposing the projections read-only.

Routes:
    ``GET /``               health message
    ``GET /{entity_kind}``  ``locked`` or ``escrows``; whitelisted filters plus
                            ``limit``, ``sort`` and ``cursor``
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import IndexerConfig
from .exceptions import QueryError, UnknownEntityKindError
from .observability import log_event
from .persistence import (
    SQLAlchemyProjectionStore,
    create_engine,
    create_schema,
    create_session_factory,
)
from .query import QueryService

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from starlette.responses import Response

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "API is functional"


def get_query_service(request: Request) -> QueryService:
    return request.app.state.query_service


def create_app(
    query_service: QueryService | None = None,
    *,
    config: IndexerConfig | None = None,
) -> FastAPI:
    """Build the API.

    With ``query_service`` given the app uses it as-is; otherwise the
    lifespan opens the configured database and closes it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if query_service is not None:
            yield
            return
        cfg = config or IndexerConfig.from_env()
        engine = create_engine(cfg.database_url)
        await create_schema(engine)
        store = SQLAlchemyProjectionStore(create_session_factory(engine))
        app.state.query_service = QueryService(store, max_limit=cfg.default_limit)
        try:
            yield
        finally:
            await engine.dispose()

    app = FastAPI(title="escrow-indexer", lifespan=lifespan)
    if query_service is not None:
        app.state.query_service = query_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        log_event(
            logger,
            "http.request",
            level=logging.DEBUG,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )
        return response

    @app.exception_handler(UnknownEntityKindError)
    async def unknown_kind_handler(
        request: Request, exc: UnknownEntityKindError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": exc.message})

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": exc.message, "errors": exc.errors},
        )

    @app.get("/")
    async def health() -> dict[str, str]:
        return {"message": HEALTH_MESSAGE}

    @app.get("/{entity_kind}")
    async def list_records(
        entity_kind: str,
        request: Request,
        service: QueryService = Depends(get_query_service),
    ) -> dict[str, Any]:
        page = await service.query_params(entity_kind, dict(request.query_params))
        return page.to_response()

    return app
