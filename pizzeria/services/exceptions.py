from typing import Any


class ServiceError(Exception):
    """Base exception for service-level errors."""

    status_code = 400

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    pass


class AuthenticationError(ServiceError):
    status_code = 401


class AuthorizationError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class InsufficientPointsError(ConflictError):
    pass


class VoucherUnavailableError(ConflictError):
    pass


class ExternalServiceError(ServiceError):
    status_code = 502

    def __init__(self, message: str, *, details: Any = None, upstream_status: int | None = None):
        super().__init__(message, details=details)
        self.upstream_status = upstream_status
