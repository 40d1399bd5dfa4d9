"""
Domain exceptions raised by the services.

Blueprints (or the application error handler) turn them into JSON responses,
so services never build HTTP responses themselves.
"""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for business and infrastructure failures."""

    status_code = 500

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        self.message = message
        self.extra = extra or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"message": self.message}
        payload.update(self.extra)
        return payload


class InvalidRequest(ServiceError):
    """Input or business rule violation (amount mismatch, unusable voucher...)."""

    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


class InfrastructureError(ServiceError):
    """Transient failure; the client may retry."""

    status_code = 500
