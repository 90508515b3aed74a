"""Exception types and handling utilities."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("bankbot.errors")


class BankbotError(Exception):
    """Base class for errors raised by the assistant's collaborators."""


class ClassificationError(BankbotError):
    """The classification service was unreachable or returned something unparseable."""


class OperationError(BankbotError):
    """A banking operation failed. The message is for logs, never for the user."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    """Return a generic JSON error response while logging the exception."""

    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
        },
    )
