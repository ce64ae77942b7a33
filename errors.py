"""Service errors mapped to HTTP status codes by the API layer."""
from typing import Any, Optional


class ServiceError(Exception):
    """Base error carrying the HTTP status code it should be rendered with."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConfigurationError(ServiceError):
    pass


class RelayError(ServiceError):
    pass


class StorageError(ServiceError):
    pass


def require_param(value: Any, name: str) -> None:
    """Reject a missing or empty required field."""
    if value is None or value == "":
        raise ValidationError(f"missing {name}")
