"""Domain-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront_domains.models.domain_binding import (
    DomainStatus,
    DomainType,
    SslStatus,
    VerificationMethod,
)


class AddDomainRequest(BaseModel):
    """Request schema for adding a custom domain."""

    domain: str = Field(
        ...,
        max_length=255,
        description="Custom domain to bind (e.g., nightmaremanor.com)",
    )
    verification_method: VerificationMethod = Field(
        default=VerificationMethod.DNS_TXT,
        description="How ownership will be proven",
    )

    @field_validator("domain")
    @classmethod
    def validate_not_email(cls, v: str) -> str:
        """Reject obvious non-hostnames early."""
        if "@" in v:
            raise ValueError("Provide a domain, not an email address")
        return v


class VerificationInstructions(BaseModel):
    """DNS record the operator must publish to prove ownership."""

    method: VerificationMethod
    record_type: str = Field(..., description="DNS record type (TXT or CNAME)")
    record_name: str = Field(..., description="DNS record name/host")
    record_value: str = Field(..., description="Expected record value or target")
    instructions: str


class DomainItem(BaseModel):
    """Domain binding as returned to operators."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    domain: str
    domain_type: DomainType
    is_primary: bool
    status: DomainStatus
    ssl_status: SslStatus
    verified_at: datetime | None
    verification: VerificationInstructions | None = None


class DomainResponse(BaseModel):
    """Response wrapping a single domain."""

    domain: DomainItem


class DomainListResponse(BaseModel):
    """Response for the domain list endpoint."""

    domains: list[DomainItem]


class SetPrimaryResponse(BaseModel):
    """Response for primary promotion."""

    success: bool = True
