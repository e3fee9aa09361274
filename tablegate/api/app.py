from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from prometheus_client import make_asgi_app
from sqlalchemy.engine import Engine

from ..config import ServiceConfig
from ..counter import RequestCounter, make_request_counter
from ..db.schema import bootstrap
from ..db.session import make_engine
from ..engine import TableEngine
from ..metrics.registry import HTTP_REQUEST_TOTAL
from .errors import register_error_handlers
from .router import router as table_router

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ServiceConfig] = None,
    *,
    engine: Optional[Engine] = None,
    counter: Optional[RequestCounter] = None,
) -> FastAPI:
    """
    Build the service. `engine` and `counter` are created from `config` at
    startup unless supplied; supplied ones are still owned (and closed) by
    the app.
    """
    config = config or ServiceConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # One store engine per process, alive until shutdown.
        db_engine = engine or make_engine(config.store)
        if config.store.bootstrap_schema:
            bootstrap(db_engine)
        request_counter = counter or make_request_counter(config.counter)
        request_counter.start()

        app.state.table_engine = TableEngine(db_engine)
        app.state.request_counter = request_counter
        logger.info("tablegate ready under %r", config.base_path or "/")
        try:
            yield
        finally:
            request_counter.close()
            db_engine.dispose()

    app = FastAPI(title="tablegate", lifespan=lifespan)
    register_error_handlers(app)

    @app.middleware("http")
    async def count_requests(request: Request, call_next):
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            request_counter = getattr(request.app.state, "request_counter", None)
            if request_counter is not None:
                request_counter.record()
            HTTP_REQUEST_TOTAL.labels(method=request.method, status=str(status)).inc()

    app.include_router(table_router, prefix=config.base_path, tags=["tables"])
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app
