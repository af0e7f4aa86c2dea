"""
Domain error types and their HTTP mapping.

Services raise plain ``ValueError`` for rule violations.  The
subclasses below carry a more specific meaning so the API layer can
answer with the right status code without parsing messages.  Because
they all derive from ``ValueError``, callers that only care about
"the request was rejected" can keep catching ``ValueError``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger(__name__)


class AuthenticationError(ValueError):
    """Credentials or tokens could not be accepted."""


class NotFoundError(ValueError):
    """The requested object does not exist or is not visible to the caller."""


class AccessDeniedError(ValueError):
    """The caller is authenticated but not allowed to perform the action."""


class PaymentDeclinedError(ValueError):
    """The simulated gateway refused the payment."""


async def authentication_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


async def access_denied_handler(request: Request, exc: AccessDeniedError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


async def payment_declined_handler(request: Request, exc: PaymentDeclinedError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_402_PAYMENT_REQUIRED, content={"detail": str(exc)})


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures with request context and hide the details."""
    logger.error(
        "Unhandled exception in %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain error handlers on ``app``.

    Starlette resolves handlers by walking the exception's MRO, so the
    ``ValueError`` subclasses take precedence over the generic
    ``ValueError`` handler.
    """
    app.add_exception_handler(AuthenticationError, authentication_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(AccessDeniedError, access_denied_handler)
    app.add_exception_handler(PaymentDeclinedError, payment_declined_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
