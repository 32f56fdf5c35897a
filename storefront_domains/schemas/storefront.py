"""Storefront settings and public resolution schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UpdateSettingsRequest(BaseModel):
    """Request schema for writing storefront settings."""

    is_published: bool | None = Field(None, description="Publish or hide the storefront")


class SettingsResponse(BaseModel):
    """Storefront settings."""

    model_config = ConfigDict(from_attributes=True)

    tenant_id: UUID
    is_published: bool
    published_at: datetime | None


class DomainContext(BaseModel):
    """Domain the visitor used and the canonical URL for the tenant."""

    current: str
    canonical: str


class PublicTenantContext(BaseModel):
    """Result of resolving a public identifier to a tenant."""

    tenant_id: UUID
    tenant_slug: str
    tenant_name: str
    domain: DomainContext
