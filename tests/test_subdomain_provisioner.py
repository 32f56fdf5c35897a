"""Tests for subdomain provisioning and storefront settings."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.exceptions import NotFoundError, ValidationError
from storefront_domains.models.domain_binding import DomainStatus, DomainType, SslStatus
from storefront_domains.services import storefront_service
from storefront_domains.services.domain_service import get_primary_domain, list_domains
from storefront_domains.services.subdomain_provisioner import (
    ensure_subdomain,
    get_subdomain,
    subdomain_for,
)


class TestSubdomainFor:
    def test_uses_platform_suffix(self):
        assert subdomain_for("nightmare-manor") == "nightmare-manor.hauntplatform.com"

    def test_lowercases(self):
        assert subdomain_for("Nightmare-Manor") == "nightmare-manor.hauntplatform.com"


class TestEnsureSubdomain:
    async def test_creates_active_primary(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")

        binding = await ensure_subdomain(db, tenant.id, tenant.slug)

        assert binding.domain == "nightmare-manor.hauntplatform.com"
        assert binding.domain_type == DomainType.SUBDOMAIN
        assert binding.status == DomainStatus.ACTIVE
        assert binding.ssl_status == SslStatus.ACTIVE
        assert binding.is_primary is True
        assert binding.verified_at is not None
        assert binding.verification_token is None

    async def test_idempotent(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")

        first = await ensure_subdomain(db, tenant.id, tenant.slug)
        second = await ensure_subdomain(db, tenant.id, tenant.slug)

        assert first.id == second.id
        assert len(await list_domains(db, tenant.id)) == 1

    async def test_not_primary_when_tenant_has_primary(self, db: AsyncSession, make_tenant, fake_dns, verifier):
        from storefront_domains.services.domain_service import add_domain, set_primary_domain, verify_domain

        tenant = await make_tenant("nightmare-manor")
        custom = await add_domain(db, tenant.id, "example.com")
        fake_dns.txt["_haunt-verify.example.com"] = [custom.verification_token]
        await verify_domain(db, tenant.id, custom.id, verifier)
        await set_primary_domain(db, tenant.id, custom.id)

        binding = await ensure_subdomain(db, tenant.id, tenant.slug)

        assert binding.is_primary is False

    async def test_concurrent_provisioning_returns_winner(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")
        winner = await ensure_subdomain(db, tenant.id, tenant.slug)

        # First lookup misses, as it would while another request is inserting
        lookup = AsyncMock(side_effect=[None, winner])
        with patch("storefront_domains.services.subdomain_provisioner.get_subdomain", lookup):
            result = await ensure_subdomain(db, tenant.id, tenant.slug)

        assert result.id == winner.id
        assert await get_subdomain(db, tenant.id) is not None


    async def test_primary_set_after_check_falls_back_to_secondary(
        self, db: AsyncSession, make_tenant, fake_dns, verifier
    ):
        from storefront_domains.services.domain_service import add_domain, set_primary_domain, verify_domain

        tenant = await make_tenant("nightmare-manor")
        custom = await add_domain(db, tenant.id, "example.com")
        fake_dns.txt["_haunt-verify.example.com"] = [custom.verification_token]
        await verify_domain(db, tenant.id, custom.id, verifier)
        await set_primary_domain(db, tenant.id, custom.id)

        # Lock read sees no primary, as it would before the other commit lands
        locked = AsyncMock(return_value=[])
        with patch("storefront_domains.services.subdomain_provisioner.lock_tenant_bindings", locked):
            binding = await ensure_subdomain(db, tenant.id, tenant.slug)

        assert binding.domain == "nightmare-manor.hauntplatform.com"
        assert binding.is_primary is False
        assert (await get_primary_domain(db, tenant.id)).id == custom.id

    @pytest.mark.parametrize("slug", ["haunted_house", "haunted house", "-haunt"])
    async def test_slug_must_form_hostname(self, db: AsyncSession, make_tenant, slug):
        tenant = await make_tenant(slug, "Bad Slug")

        with pytest.raises(ValidationError):
            await ensure_subdomain(db, tenant.id, tenant.slug)

        assert await get_subdomain(db, tenant.id) is None


class TestSaveSettings:
    async def test_first_save_provisions_subdomain(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")

        storefront = await storefront_service.save_settings(db, tenant.id)

        assert storefront.is_published is False
        assert storefront.published_at is None
        subdomain = await get_subdomain(db, tenant.id)
        assert subdomain is not None
        assert subdomain.is_primary is True

    async def test_publish_and_unpublish(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")

        published = await storefront_service.save_settings(db, tenant.id, is_published=True)
        assert published.is_published is True
        assert published.published_at is not None

        hidden = await storefront_service.save_settings(db, tenant.id, is_published=False)
        assert hidden.is_published is False
        assert hidden.published_at is None

    async def test_unchanged_flag_keeps_published_at(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")
        first = await storefront_service.save_settings(db, tenant.id, is_published=True)
        published_at = first.published_at

        again = await storefront_service.save_settings(db, tenant.id, is_published=True)

        assert again.published_at == published_at

    async def test_later_saves_do_not_duplicate_subdomain(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")
        await storefront_service.save_settings(db, tenant.id)
        await storefront_service.save_settings(db, tenant.id, is_published=True)

        assert len(await list_domains(db, tenant.id)) == 1

    async def test_unknown_tenant(self, db: AsyncSession):
        with pytest.raises(NotFoundError):
            await storefront_service.save_settings(db, uuid4(), is_published=True)

    async def test_concurrent_first_write_updates_winner(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("nightmare-manor")
        winner = await storefront_service.save_settings(db, tenant.id)

        # First lookup misses, as it would while another request is inserting
        lookup = AsyncMock(side_effect=[None, winner])
        with patch("storefront_domains.services.storefront_service.get_settings", lookup):
            result = await storefront_service.save_settings(db, tenant.id, is_published=True)

        assert result.id == winner.id
        assert result.is_published is True
        assert result.published_at is not None
        assert len(await list_domains(db, tenant.id)) == 1

    async def test_invalid_slug_rejected_on_first_save(self, db: AsyncSession, make_tenant):
        tenant = await make_tenant("haunted_house", "Haunted House")

        with pytest.raises(ValidationError):
            await storefront_service.save_settings(db, tenant.id, is_published=True)
