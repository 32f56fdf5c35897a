"""DNS verification for custom domain ownership.

Ownership is proven with one of two records:

    # TXT (default): proof value at a well-known label
    _haunt-verify.nightmaremanor.com  TXT  "haunt-verify-abc123..."

    # CNAME: the domain routes to the platform
    nightmaremanor.com  CNAME  cname.hauntplatform.com

Missing records are a verification failure. Resolver outages are kept
distinct in the result so they can be logged and retried.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field

from storefront_domains.config import settings
from storefront_domains.exceptions import DNSRecordNotFound, InfrastructureError
from storefront_domains.models.domain_binding import VerificationMethod
from storefront_domains.services.dns_client import AiodnsClient, DNSClient

logger = logging.getLogger(__name__)


class VerificationOutcome(str, enum.Enum):
    VERIFIED = "verified"
    RECORD_MISSING = "record_missing"
    MISMATCH = "mismatch"
    INFRASTRUCTURE_ERROR = "infrastructure_error"
    BYPASSED = "bypassed"


@dataclass
class VerificationResult:
    """Result of one verification check."""

    domain: str
    method: VerificationMethod
    outcome: VerificationOutcome
    record_name: str
    records: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def is_verified(self) -> bool:
        return self.outcome in (VerificationOutcome.VERIFIED, VerificationOutcome.BYPASSED)


def verification_record_name(domain: str, method: VerificationMethod) -> str:
    """DNS name the proof record must be published at."""
    if method == VerificationMethod.DNS_CNAME:
        return domain
    return f"{settings.VERIFICATION_RECORD_PREFIX}.{domain}"


class DNSVerifier:
    """Checks DNS proof of ownership for custom domains."""

    def __init__(
        self,
        client: DNSClient | None = None,
        cname_target: str | None = None,
        timeout: float | None = None,
        bypass: bool | None = None,
    ):
        self.client = client or AiodnsClient()
        self.cname_target = (cname_target or settings.CNAME_TARGET).lower().rstrip(".")
        self.timeout = timeout if timeout is not None else settings.VERIFY_TIMEOUT_SECONDS
        self.bypass = settings.DNS_VERIFICATION_BYPASS if bypass is None else bypass

    async def _check_txt(self, domain: str, token: str) -> VerificationResult:
        record_name = verification_record_name(domain, VerificationMethod.DNS_TXT)
        values = await self.client.lookup_txt(record_name)
        # Flattened set of all TXT strings, exact match
        matched = token in {v.strip() for v in values}
        return VerificationResult(
            domain=domain,
            method=VerificationMethod.DNS_TXT,
            outcome=VerificationOutcome.VERIFIED if matched else VerificationOutcome.MISMATCH,
            record_name=record_name,
            records=values,
        )

    async def _check_cname(self, domain: str) -> VerificationResult:
        targets = await self.client.lookup_cname(domain)
        matched = any(t.lower().rstrip(".") == self.cname_target for t in targets)
        return VerificationResult(
            domain=domain,
            method=VerificationMethod.DNS_CNAME,
            outcome=VerificationOutcome.VERIFIED if matched else VerificationOutcome.MISMATCH,
            record_name=domain,
            records=targets,
        )

    async def check(
        self,
        domain: str,
        method: VerificationMethod,
        token: str,
    ) -> VerificationResult:
        """
        Run a time-bounded verification check.

        Args:
            domain: Custom domain being verified
            method: DNS_TXT or DNS_CNAME
            token: Expected TXT proof value

        Returns:
            VerificationResult describing what was found
        """
        method = VerificationMethod(method)
        record_name = verification_record_name(domain, method)

        if self.bypass:
            logger.warning(f"DNS verification bypass enabled, accepting {domain}")
            return VerificationResult(
                domain=domain,
                method=method,
                outcome=VerificationOutcome.BYPASSED,
                record_name=record_name,
            )

        if method == VerificationMethod.DNS_CNAME:
            lookup = self._check_cname(domain)
        else:
            lookup = self._check_txt(domain, token)

        try:
            result = await asyncio.wait_for(lookup, timeout=self.timeout)
        except DNSRecordNotFound:
            logger.info(f"No {method.value} record found at {record_name}")
            return VerificationResult(
                domain=domain,
                method=method,
                outcome=VerificationOutcome.RECORD_MISSING,
                record_name=record_name,
            )
        except asyncio.TimeoutError:
            logger.warning(f"DNS verification for {domain} timed out after {self.timeout}s")
            return VerificationResult(
                domain=domain,
                method=method,
                outcome=VerificationOutcome.INFRASTRUCTURE_ERROR,
                record_name=record_name,
                error="timeout",
            )
        except InfrastructureError as e:
            logger.warning(f"DNS resolver error verifying {domain}: {e} {e.details}")
            return VerificationResult(
                domain=domain,
                method=method,
                outcome=VerificationOutcome.INFRASTRUCTURE_ERROR,
                record_name=record_name,
                error=str(e),
            )

        logger.info(f"DNS check for {domain} ({method.value}): {result.outcome.value}")
        return result

    async def verify(self, domain: str, method: VerificationMethod, token: str) -> bool:
        """Return True when the ownership proof is in place."""
        result = await self.check(domain, method, token)
        return result.is_verified
