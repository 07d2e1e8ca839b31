from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from project_health.infrastructure.config import get_settings
from project_health.infrastructure.logging import LogContext, get_logger
from project_health.web.routes import api

logger = get_logger(__name__)


def create_application() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app.title,
        version=settings.app.version,
        debug=settings.app.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_log_context(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        with LogContext(request_id=request_id):
            response = await call_next(request)
            logger.debug(
                "%s %s -> %s", request.method, request.url.path, response.status_code
            )
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(api.router)

    @app.on_event("startup")
    async def startup_event() -> None:
        logger.info("Starting %s", settings.app.title, extra=settings.get_environment_info())

    return app


app = create_application()
