"""Error taxonomy for domain management and verification."""

from typing import Any

from fastapi import status


class DomainError(Exception):
    """Base exception for domain lifecycle operations."""

    code = "DOMAIN_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Request is well-formed but breaks a domain rule."""

    code = "DOMAIN_VALIDATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST


class VerificationFailedError(ValidationError):
    """DNS proof of ownership was not found. The binding is left in `failed`."""

    code = "DNS_VERIFICATION_FAILED"

    def __init__(self, message: str, binding: Any = None, details: dict[str, Any] | None = None):
        super().__init__(message, details)
        self.binding = binding


class ConflictError(DomainError):
    """Domain is already bound to a storefront."""

    code = "DOMAIN_CONFLICT"
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(DomainError):
    """Binding does not exist under the requesting tenant."""

    code = "DOMAIN_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class VerificationThrottledError(DomainError):
    """Verification was retried before the configured cooldown elapsed."""

    code = "VERIFICATION_THROTTLED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InfrastructureError(DomainError):
    """Resolver timeout, refused connection or other transport failure."""

    code = "DNS_RESOLVER_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class DNSRecordNotFound(Exception):
    """Resolver answered authoritatively that the record does not exist."""

    pass
