"""Standard API error envelope."""

from typing import Any, NoReturn

from fastapi import HTTPException, status

from storefront_domains.exceptions import DomainError


def raise_api_error(
    code: str,
    message: str,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    details: dict[str, Any] | None = None,
) -> NoReturn:
    """
    Raise an HTTPException with standardized error format.

    Args:
        code: Machine-readable error code (e.g., "DOMAIN_CONFLICT")
        message: Human-readable error message
        status_code: HTTP status code (default: 400)
        details: Optional additional error context
    """
    raise HTTPException(
        status_code=status_code,
        detail={
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            },
        },
    )


def raise_domain_error(exc: DomainError) -> NoReturn:
    """Translate a lifecycle error into the standard API error."""
    raise_api_error(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )
