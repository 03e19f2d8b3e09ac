class ApplicationError(Exception):
    """Failure surfaced to API clients as ``{"error", "message"}`` JSON."""

    status_code = 500


class ResourceNotFound(ApplicationError):
    status_code = 404


class InvalidRequest(ApplicationError):
    status_code = 400
