"""the beautiful world start from here."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gh_feishu.config import Settings, load_settings
from gh_feishu.routers import gh, info

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
PACKAGE_LOGGER = "gh_feishu"


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once and apply ``level`` to the relay's loggers."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


async def _plain_http_error(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=exc.headers
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the relay app around an immutable :class:`Settings`.

    ``transport`` replaces the httpx transport used for Feishu calls.
    """
    settings = settings if settings is not None else load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="GitHub → Feishu relay")
    app.state.settings = settings
    app.state.feishu_transport = transport

    app.add_exception_handler(StarletteHTTPException, _plain_http_error)

    app.include_router(info.router)
    app.include_router(gh.router)
    return app


app = create_app()


def main() -> None:
    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
