"""Custom domain lifecycle: add, verify, promote to primary, delete."""

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront_domains.config import settings
from storefront_domains.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    VerificationFailedError,
    VerificationThrottledError,
)
from storefront_domains.models.domain_binding import (
    DomainBinding,
    DomainStatus,
    DomainType,
    SslStatus,
    VerificationMethod,
)
from storefront_domains.models.tenant import Tenant
from storefront_domains.schemas.domain import VerificationInstructions
from storefront_domains.services.dns_verifier import DNSVerifier, verification_record_name
from storefront_domains.utils.hostname import is_under_zone, normalize_hostname, validate_hostname

logger = logging.getLogger(__name__)

ALREADY_ADDED_MESSAGE = "Domain already added to this storefront"
REGISTERED_ELSEWHERE_MESSAGE = "Domain is registered to another attraction"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_verification_token(tenant_id: UUID) -> str:
    """
    Derive the DNS proof value for a tenant.

    Deterministic per tenant so retries and re-adds publish the same
    record, keyed with a server secret so it cannot be predicted from
    the tenant id alone.

    Args:
        tenant_id: Owning tenant

    Returns:
        Token such as "haunt-verify-mzxw6ytboi2gc3tf..."
    """
    digest = hmac.new(
        settings.VERIFICATION_TOKEN_SECRET.encode(),
        str(tenant_id).encode(),
        hashlib.sha256,
    ).digest()
    encoded = base64.b32encode(digest).decode().rstrip("=").lower()
    return f"haunt-verify-{encoded[:32]}"


def build_verification_instructions(binding: DomainBinding) -> VerificationInstructions | None:
    """
    Build the DNS record an operator must publish for a custom domain.

    Args:
        binding: Domain binding

    Returns:
        Instructions, or None for platform subdomains
    """
    if binding.domain_type == DomainType.SUBDOMAIN or not binding.verification_method:
        return None

    method = VerificationMethod(binding.verification_method)
    record_name = verification_record_name(binding.domain, method)

    if method == VerificationMethod.DNS_CNAME:
        return VerificationInstructions(
            method=method,
            record_type="CNAME",
            record_name=record_name,
            record_value=settings.CNAME_TARGET,
            instructions=(
                f"Add a CNAME record pointing {binding.domain} to {settings.CNAME_TARGET}"
            ),
        )

    return VerificationInstructions(
        method=method,
        record_type="TXT",
        record_name=record_name,
        record_value=binding.verification_token,
        instructions=(
            f'Add a TXT record to your DNS with name "{settings.VERIFICATION_RECORD_PREFIX}" '
            f'and value "{binding.verification_token}"'
        ),
    )


async def find_binding_by_domain(db: AsyncSession, domain_name: str) -> DomainBinding | None:
    """
    Global lookup by hostname, across all tenants.

    Only used for the uniqueness check when adding a domain.
    """
    result = await db.execute(
        select(DomainBinding).where(DomainBinding.domain == domain_name)
    )
    return result.scalar_one_or_none()


def _conflict_for(existing: DomainBinding, tenant_id: UUID, domain_name: str) -> ConflictError:
    if existing.tenant_id == tenant_id:
        return ConflictError(ALREADY_ADDED_MESSAGE, details={"domain": domain_name})
    return ConflictError(REGISTERED_ELSEWHERE_MESSAGE, details={"domain": domain_name})


async def get_domain(db: AsyncSession, tenant_id: UUID, domain_id: UUID) -> DomainBinding:
    """
    Load a binding scoped to its tenant.

    Raises:
        NotFoundError: No such binding for this tenant
    """
    result = await db.execute(
        select(DomainBinding).where(
            DomainBinding.id == domain_id,
            DomainBinding.tenant_id == tenant_id,
        )
    )
    binding = result.scalar_one_or_none()
    if binding is None:
        raise NotFoundError("Domain not found")
    return binding


async def lock_tenant_bindings(db: AsyncSession, tenant_id: UUID) -> list[DomainBinding]:
    """Row-lock every binding of a tenant for the rest of the transaction."""
    result = await db.execute(
        select(DomainBinding)
        .where(DomainBinding.tenant_id == tenant_id)
        .order_by(DomainBinding.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_domains(db: AsyncSession, tenant_id: UUID) -> list[DomainBinding]:
    """
    List a tenant's bindings, primary first.

    Args:
        db: Database session
        tenant_id: Owning tenant

    Returns:
        Bindings ordered by primary flag, then creation time
    """
    result = await db.execute(
        select(DomainBinding)
        .where(DomainBinding.tenant_id == tenant_id)
        .order_by(DomainBinding.is_primary.desc(), DomainBinding.created_at, DomainBinding.domain)
    )
    return list(result.scalars().all())


async def get_primary_domain(db: AsyncSession, tenant_id: UUID) -> DomainBinding | None:
    """Return the tenant's active primary binding, if any."""
    result = await db.execute(
        select(DomainBinding).where(
            DomainBinding.tenant_id == tenant_id,
            DomainBinding.is_primary.is_(True),
            DomainBinding.status == DomainStatus.ACTIVE,
        )
    )
    return result.scalar_one_or_none()


async def add_domain(
    db: AsyncSession,
    tenant_id: UUID,
    raw_domain: str,
    verification_method: VerificationMethod = VerificationMethod.DNS_TXT,
) -> DomainBinding:
    """
    Bind a custom domain to a tenant, pending DNS verification.

    Args:
        db: Database session
        tenant_id: Owning tenant
        raw_domain: Domain as typed by the operator
        verification_method: DNS_TXT (default) or DNS_CNAME

    Returns:
        New pending binding

    Raises:
        NotFoundError: Unknown tenant
        ValidationError: Malformed domain, or a platform-issued hostname
        ConflictError: Domain already bound to this or another tenant
    """
    if await db.get(Tenant, tenant_id) is None:
        raise NotFoundError("Attraction not found")

    domain_name = normalize_hostname(raw_domain)

    is_valid, error_msg = validate_hostname(domain_name)
    if not is_valid:
        logger.info(f"Rejected domain {raw_domain!r}: {error_msg}")
        raise ValidationError(error_msg or "Invalid domain format", details={"domain": raw_domain})

    if is_under_zone(domain_name, settings.PLATFORM_DOMAIN_SUFFIX):
        raise ValidationError(
            f"Domains under {settings.PLATFORM_DOMAIN_SUFFIX} are assigned automatically",
            details={"domain": domain_name},
        )

    existing = await find_binding_by_domain(db, domain_name)
    if existing is not None:
        raise _conflict_for(existing, tenant_id, domain_name)

    binding = DomainBinding(
        tenant_id=tenant_id,
        domain=domain_name,
        domain_type=DomainType.CUSTOM,
        is_primary=False,
        status=DomainStatus.PENDING,
        ssl_status=SslStatus.PENDING,
        verification_method=VerificationMethod(verification_method),
        verification_token=generate_verification_token(tenant_id),
    )

    # The unique index on domain is the real guard; the lookup above only
    # picks the message when there is no race.
    try:
        async with db.begin_nested():
            db.add(binding)
    except IntegrityError:
        winner = await find_binding_by_domain(db, domain_name)
        if winner is None:
            raise
        logger.warning(f"Race condition adding domain {domain_name}")
        raise _conflict_for(winner, tenant_id, domain_name)

    await db.refresh(binding)

    logger.info(f"Domain {domain_name} added for tenant {tenant_id} ({binding.verification_method.value})")
    return binding


def _check_cooldown(binding: DomainBinding, now: datetime) -> None:
    cooldown = settings.VERIFY_COOLDOWN_SECONDS
    if not cooldown or binding.last_verification_attempt_at is None:
        return
    retry_at = _as_utc(binding.last_verification_attempt_at) + timedelta(seconds=cooldown)
    if now < retry_at:
        raise VerificationThrottledError(
            "Verification was attempted recently, try again shortly",
            details={"retry_after_seconds": int((retry_at - now).total_seconds()) + 1},
        )


async def verify_domain(
    db: AsyncSession,
    tenant_id: UUID,
    domain_id: UUID,
    verifier: DNSVerifier | None = None,
) -> DomainBinding:
    """
    Check DNS proof for a pending or failed binding.

    Active bindings are returned unchanged without a DNS query. A failed
    check leaves the binding in `failed`; it can be verified again later.

    Args:
        db: Database session
        tenant_id: Owning tenant
        domain_id: Binding to verify
        verifier: DNS verifier (defaults to public resolvers)

    Returns:
        Binding, now active

    Raises:
        NotFoundError: No such binding for this tenant
        VerificationThrottledError: Retried inside the cooldown window
        VerificationFailedError: Proof record absent or wrong
    """
    binding = await get_domain(db, tenant_id, domain_id)

    if binding.is_active:
        return binding

    now = _utcnow()
    _check_cooldown(binding, now)
    binding.last_verification_attempt_at = now

    verifier = verifier or DNSVerifier()
    result = await verifier.check(
        binding.domain,
        binding.verification_method,
        binding.verification_token,
    )

    if not result.is_verified:
        binding.mark_failed()
        await db.flush()
        logger.warning(
            f"Verification failed for {binding.domain}: {result.outcome.value}"
        )
        raise VerificationFailedError(
            "DNS verification failed - record not found",
            binding=binding,
            details={
                "outcome": result.outcome.value,
                "record_name": result.record_name,
            },
        )

    binding.mark_verified(now)
    await db.flush()
    await db.refresh(binding)

    logger.info(f"Domain {binding.domain} verified for tenant {tenant_id}")
    return binding


async def set_primary_domain(db: AsyncSession, tenant_id: UUID, domain_id: UUID) -> None:
    """
    Make an active binding the tenant's only primary domain.

    The tenant's bindings are row-locked, every other primary flag is
    cleared and the target is set in the same transaction.

    Raises:
        NotFoundError: No such binding for this tenant
        ValidationError: Binding is not active
    """
    bindings = await lock_tenant_bindings(db, tenant_id)
    binding = next((b for b in bindings if b.id == domain_id), None)
    if binding is None:
        raise NotFoundError("Domain not found")

    if not binding.is_active:
        raise ValidationError("Cannot set unverified domain as primary")

    if binding.is_primary:
        return

    for other in bindings:
        if other.is_primary:
            other.demote()
    # Clear the old primary before setting the new one; the partial
    # unique index is checked per row.
    await db.flush()

    binding.promote()
    await db.flush()

    logger.info(f"Domain {binding.domain} is now primary for tenant {tenant_id}")


async def delete_domain(db: AsyncSession, tenant_id: UUID, domain_id: UUID) -> None:
    """
    Remove a custom domain binding.

    The guard on other bindings runs against row-locked data so a
    concurrent add or delete cannot slip past it.

    Raises:
        NotFoundError: No such binding for this tenant
        ValidationError: Subdomain, or primary while other bindings exist
    """
    bindings = await lock_tenant_bindings(db, tenant_id)
    binding = next((b for b in bindings if b.id == domain_id), None)
    if binding is None:
        raise NotFoundError("Domain not found")

    if binding.domain_type == DomainType.SUBDOMAIN:
        raise ValidationError("Cannot delete auto-generated subdomain")

    if binding.is_primary and len(bindings) > 1:
        raise ValidationError(
            "Cannot delete primary domain while other domains exist. "
            "Set another domain as primary first."
        )

    await db.delete(binding)
    await db.flush()

    logger.info(f"Domain {binding.domain} removed from tenant {tenant_id}")
