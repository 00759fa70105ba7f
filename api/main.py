from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

import cache
from bot import router as bot_router
from core import config, cors, db, hsts, log, responses
from core.timeout import RequestTimeoutMiddleware
from handlers import router as handlers_router

config.load_env()
log.configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await cache.init_cache()
    try:
        yield
    finally:
        await handlers_router.close_all()
        await db.close_pool()
        await cache.close_cache()


async def access_log(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    response = await call_next(request)
    url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    logger.debug(
        "%s - %s %s HTTP/%s %d",
        request.headers.get("host", ""),
        request.method,
        url,
        request.scope.get("http_version", "1.1"),
        response.status_code,
    )
    return response


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    return responses.render_http_exception(request, exc)


def create_app() -> FastAPI:
    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

    # Added first = innermost: the deadline only covers the route itself.
    app.add_middleware(RequestTimeoutMiddleware, timeout_s=config.request_timeout_s())
    app.middleware("http")(cors.cors_middleware)
    app.middleware("http")(hsts.hsts_middleware)
    app.middleware("http")(access_log)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    files_path = config.files_path()
    if files_path:
        app.mount("/files", StaticFiles(directory=files_path), name="files")

    if config.icg_bot_root():
        app.include_router(bot_router.router, tags=["icg-bot"])

    app.include_router(handlers_router.router, tags=["handlers"])
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "main:app",
        host=config.env_str("HOST", "0.0.0.0"),
        port=config.env_int("PORT", 8000),
        log_config=None,
    )


if __name__ == "__main__":
    run()
