import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from novablick.errors.application_errors import ApplicationError

GENERIC_ERROR_MESSAGE = "An unexpected error occurred."


def _error_response(error: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": error, "message": message}, status_code=status_code)


class ErrorMiddleware(BaseHTTPMiddleware):
    """Turns errors escaping a route into JSON; unknown failures are masked."""

    def __init__(self, app, logger: logging.Logger | None = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger(__name__)

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except ApplicationError as exc:
            if exc.status_code >= 500:
                self.logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=True)
            else:
                self.logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
            return _error_response(type(exc).__name__, str(exc), exc.status_code)
        except Exception:
            self.logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=True)
            return _error_response("InternalServerError", GENERIC_ERROR_MESSAGE, 500)
