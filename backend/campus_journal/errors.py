# error taxonomy — every surfaced failure carries a stable kind and a message
# handlers in main.py turn these into json responses

import logging
from contextlib import contextmanager
from typing import Any, Optional

from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """base class for errors that are returned to the caller"""

    kind = "app_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload = {"kind": self.kind, "message": self.message}
        payload.update(self.details)
        return payload

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ValidationError(AppError):
    """one or more fields failed validation. lists every failing field."""

    kind = "validation_error"
    status_code = 422

    def __init__(self, field_errors: list[dict[str, str]], message: str = "Invalid request"):
        super().__init__(message, {"errors": field_errors})
        self.field_errors = field_errors

    @property
    def fields(self) -> list[str]:
        return [e["field"] for e in self.field_errors]


class AuthenticationError(AppError):
    kind = "authentication_error"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ConsentRequiredError(AppError):
    """identity is valid but consent is absent or stale.
    kept apart from AuthenticationError so clients route to the consent flow."""

    kind = "consent_required"
    status_code = 403

    def __init__(self, message: str = "Privacy consent required"):
        super().__init__(message, {"requiresConsent": True})


class AnalyticsNotEnabledError(AppError):
    kind = "analytics_not_enabled"
    status_code = 403

    def __init__(self, message: str = "Analytics not enabled. Please opt-in through privacy settings."):
        super().__init__(message)


class NotFoundError(AppError):
    kind = "not_found"
    status_code = 404


class PersistenceError(AppError):
    kind = "persistence_error"
    status_code = 503


@contextmanager
def storage_errors(action: str):
    """translate storage driver failures on a primary read/write into PersistenceError"""
    try:
        yield
    except PyMongoError as e:
        logger.error(f"Storage failure while trying to {action}: {e}")
        raise PersistenceError(f"Could not {action}") from e
