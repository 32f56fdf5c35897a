"""Domain binding model: hostname → tenant with verification state."""

import enum
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from storefront_domains.database import Base


class DomainType(str, enum.Enum):
    SUBDOMAIN = "subdomain"
    CUSTOM = "custom"


class DomainStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


class SslStatus(str, enum.Enum):
    PENDING = "pending"
    PROVISIONING = "provisioning"
    ACTIVE = "active"


class VerificationMethod(str, enum.Enum):
    DNS_TXT = "dns_txt"
    DNS_CNAME = "dns_cname"


# Verification state machine. ACTIVE is terminal.
ALLOWED_TRANSITIONS: dict[DomainStatus, frozenset[DomainStatus]] = {
    DomainStatus.PENDING: frozenset({DomainStatus.ACTIVE, DomainStatus.FAILED}),
    DomainStatus.FAILED: frozenset({DomainStatus.ACTIVE, DomainStatus.FAILED}),
    DomainStatus.ACTIVE: frozenset(),
}


class InvalidTransition(Exception):
    """Attempted state change not permitted by the binding state machine."""

    pass


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainBinding(Base):
    """
    A hostname bound to exactly one tenant.

    The storage layer enforces the binding invariants itself:
    - `domain` is unique across all tenants
    - one subdomain binding per tenant
    - at most one primary binding per tenant
    - a primary binding is always active
    """

    __tablename__ = "storefront_domain_bindings"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Owning tenant
    tenant_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Hostname (lowercase, globally unique)
    domain: Mapped[str] = mapped_column(
        String(253),
        nullable=False,
    )

    domain_type: Mapped[DomainType] = mapped_column(
        _enum_column(DomainType, "domain_type"),
        nullable=False,
    )

    is_primary: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    status: Mapped[DomainStatus] = mapped_column(
        _enum_column(DomainStatus, "domain_status"),
        nullable=False,
        default=DomainStatus.PENDING,
    )

    # Advisory only, no certificate automation behind it
    ssl_status: Mapped[SslStatus] = mapped_column(
        _enum_column(SslStatus, "ssl_status"),
        nullable=False,
        default=SslStatus.PENDING,
    )

    # Custom domains only
    verification_method: Mapped[VerificationMethod | None] = mapped_column(
        _enum_column(VerificationMethod, "verification_method"),
        nullable=True,
    )
    verification_token: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Timestamps
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    last_verification_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ux_domain_bindings_domain", "domain", unique=True),
        Index("ix_domain_bindings_tenant_primary", "tenant_id", "is_primary"),
        Index("ix_domain_bindings_tenant_type", "tenant_id", "domain_type"),
        Index(
            "ux_domain_bindings_one_subdomain",
            "tenant_id",
            unique=True,
            postgresql_where=text("domain_type = 'subdomain'"),
            sqlite_where=text("domain_type = 'subdomain'"),
        ),
        Index(
            "ux_domain_bindings_one_primary",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary = 1"),
        ),
        CheckConstraint(
            "NOT is_primary OR status = 'active'",
            name="ck_domain_bindings_primary_active",
        ),
    )

    def transition_to(self, new_status: DomainStatus) -> None:
        """Move to a new verification status, refusing illegal transitions."""
        current = DomainStatus(self.status)
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransition(f"{current.value} -> {new_status.value}")
        self.status = new_status

    def mark_verified(self, now: datetime | None = None) -> None:
        now = now or _utcnow()
        self.transition_to(DomainStatus.ACTIVE)
        self.ssl_status = SslStatus.PROVISIONING
        if self.verified_at is None:
            self.verified_at = now

    def mark_failed(self) -> None:
        self.transition_to(DomainStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return self.status == DomainStatus.ACTIVE

    def promote(self) -> None:
        """Flag as primary. Only active bindings may be primary."""
        if not self.is_active:
            raise InvalidTransition("primary requires an active binding")
        self.is_primary = True

    def demote(self) -> None:
        self.is_primary = False

    def __repr__(self) -> str:
        return (
            f"<DomainBinding(domain={self.domain}, status={self.status}, "
            f"primary={self.is_primary})>"
        )
