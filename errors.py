"""Error taxonomy for the API and the handlers that turn it into envelopes."""

import logging

from werkzeug.exceptions import HTTPException

from responses import error

logger = logging.getLogger(__name__)


class AppError(Exception):
    code = 500
    message = "Internal Server Error"

    def __init__(self, message=None, errors=None):
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        self.errors = errors


class ValidationError(AppError):
    """Malformed, missing or constraint-violating input.

    ``errors`` maps each field name to the list of messages for it.
    """

    code = 422
    message = "Validation Exception"

    def __init__(self, errors, message=None):
        super().__init__(message, errors)


class AuthenticationError(AppError):
    code = 401
    message = "Unauthenticated."


class NotFoundError(AppError):
    """Raised both for missing rows and for rows outside the caller's
    visible set; the two cases are never told apart."""

    code = 404
    message = "Not Found"


def handle_app_error(exc):
    return error(exc.message, exc.code, exc.errors)


def handle_http_exception(exc):
    return error(exc.name, exc.code, exc.description)


def handle_unexpected(exc):
    logger.exception("Unhandled error")
    # The exception text reaches the client verbatim.
    return error("Internal Server Error", 500, str(exc))


def register_error_handlers(app):
    app.register_error_handler(AppError, handle_app_error)
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected)
