"""
Application-level exceptions and their HTTP translation.

Services raise the domain errors below; ``install_exception_handlers``
turns them into ``{"errors": {"body": [...]}}`` responses.  Deadlines
become 504s.  Anything else that reaches this point unclassified is logged
with its traceback and answered with a JSON 500.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse
from starlette.requests import Request

from conduit.db import DeadlineExceeded

logger = logging.getLogger(__name__)


class ApplicationError(Exception):
    """Base class for domain-specific errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RecordNotFoundError(ApplicationError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "The requested resource could not be found."


class DuplicateEmailError(ApplicationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A user with this email address already exists."


class DuplicateUsernameError(ApplicationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A user with this username already exists."


class DuplicateSlugError(ApplicationError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "An article with this slug already exists."


class InvalidCredentialsError(ApplicationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials."


class AuthenticationRequiredError(ApplicationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required."


class PermissionDeniedError(ApplicationError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action."


class UnprocessableEntityError(ApplicationError):
    status_code = 422
    default_message = "The request could not be processed."


def _error_body(message: str) -> dict:
    return {"errors": {"body": [message]}}


async def _application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Token"}
    return JSONResponse(
        status_code=exc.status_code, content=_error_body(exc.message), headers=headers
    )


async def _timeout_handler(request: Request, exc: TimeoutError) -> JSONResponse:
    logger.warning("%s %s timed out: %r", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content=_error_body("The request took too long to complete."),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s failed: %r", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error."),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationError, _application_error_handler)
    app.add_exception_handler(DeadlineExceeded, _timeout_handler)
    app.add_exception_handler(TimeoutError, _timeout_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
