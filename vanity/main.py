from __future__ import annotations

import logging
import os
import time
import uuid
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from .config import DEFAULT_CONFIG_PATH, GlobalConfig, load_config
from .templates import (
    FAVICON_SVG,
    render_error_page,
    render_list_page,
    render_package_page,
)

CONFIG_ENV_VAR = "VANITY_CONFIG"
LOG_FILE_ENV_VAR = "VANITY_LOG_FILE"
REQUEST_ID_HEADER = "X-Request-ID"


def _configure_logging(level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("vanity")
    logger.setLevel(level)
    if logger.handlers:
        return logger
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    log_file = os.environ.get(LOG_FILE_ENV_VAR)
    if log_file:
        file_handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    logger.propagate = False
    logger.debug("Logging initialised%s", f", writing to {log_file}" if log_file else "")
    return logger


logger = _configure_logging()


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "-"


def _error_response(reason: str, status_code: int) -> HTMLResponse:
    try:
        html = render_error_page(reason, status_code)
    except Exception:
        logger.exception("Error while rendering error page.")
        return HTMLResponse(reason, status_code=status_code)
    return HTMLResponse(html, status_code=status_code)


def create_app(config: GlobalConfig) -> FastAPI:
    """
    Build the site around an already validated configuration.

    The config never changes after this point, so handlers read it without locking.
    """
    app = FastAPI(
        title=config.site_title or "Vanity Pages",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error for %s %s [%s]",
                request.method,
                request.url.path,
                request_id,
            )
            response = _error_response("internal error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s %s -> %d in %.1fms [%s]",
            _client_ip(request),
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request_id,
        )
        return response

    @app.get("/", response_class=HTMLResponse)
    async def list_page(request: Request) -> Response:
        try:
            html = render_list_page(request.app.state.config)
        except Exception:
            logger.exception("Failed to render package list.")
            return _error_response("internal error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        return HTMLResponse(html)

    @app.get("/health", response_class=PlainTextResponse)
    async def health() -> PlainTextResponse:
        return PlainTextResponse("ok")

    @app.get("/favicon.svg")
    async def favicon() -> Response:
        return Response(FAVICON_SVG, media_type="image/svg+xml")

    @app.get("/{package_path:path}", response_class=HTMLResponse)
    async def package_page(request: Request, package_path: str) -> Response:
        site: GlobalConfig = request.app.state.config
        name = package_path.strip("/")
        package = site.find_package(name) if name else None
        if package is None:
            logger.debug("No package configured for %r", name)
            return PlainTextResponse("not found", status_code=status.HTTP_404_NOT_FOUND)
        try:
            html = render_package_page(site, package)
        except Exception:
            logger.exception("Failed to render package page for %r.", name)
            return _error_response("internal error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        return HTMLResponse(html)

    logger.info(
        "Serving %d package(s) under %s", len(config.packages), config.global_domain
    )
    return app


def app_from_env(config_path: Optional[str] = None) -> FastAPI:
    """Factory for ``uvicorn vanity.main:app_from_env --factory``."""
    path = config_path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    return create_app(load_config(path))
