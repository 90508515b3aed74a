"""Logging utilities for the service."""

from __future__ import annotations

import logging
import uuid
from typing import Callable

from fastapi import Request

from .config import Settings

logger = logging.getLogger("bankbot.request")


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("bankbot.app").info(
        "Logging configured at %s level for %s environment",
        logging.getLevelName(level),
        settings.environment,
    )


async def request_id_middleware(request: Request, call_next: Callable):
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    logger.info("%s %s [rid=%s]", request.method, request.url.path, request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response
