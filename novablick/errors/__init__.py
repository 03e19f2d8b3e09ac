from .application_errors import (
    ApplicationError,
    InvalidRequest,
    ResourceNotFound,
)

__all__ = [
    "ApplicationError",
    "InvalidRequest",
    "ResourceNotFound",
]
