"""Async DNS client used for ownership verification."""

import logging
from typing import Any, Protocol

import aiodns
import pycares
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront_domains.config import settings
from storefront_domains.exceptions import DNSRecordNotFound, InfrastructureError

logger = logging.getLogger(__name__)

# Resolver answers that mean "no such record", as opposed to transport failures
NOT_FOUND_CODES = frozenset({
    aiodns.error.ARES_ENODATA,
    aiodns.error.ARES_ENOTFOUND,
})


class DNSClient(Protocol):
    """Lookup capability the verifier depends on."""

    async def lookup_txt(self, host: str) -> list[str]:
        ...

    async def lookup_cname(self, host: str) -> list[str]:
        ...


class AiodnsClient:
    """
    DNS client backed by aiodns (c-ares).

    Queries go to the configured public resolvers rather than the host's
    local resolver. Missing records raise DNSRecordNotFound; everything
    else the resolver reports raises InfrastructureError after retries.
    """

    def __init__(
        self,
        nameservers: list[str] | None = None,
        timeout: float | None = None,
        retry_attempts: int | None = None,
    ):
        self.nameservers = nameservers or settings.nameservers_list
        self.timeout = timeout if timeout is not None else settings.DNS_TIMEOUT_SECONDS
        self.retry_attempts = retry_attempts if retry_attempts is not None else settings.DNS_RETRY_ATTEMPTS
        self._resolver: aiodns.DNSResolver | None = None

    def _get_resolver(self) -> aiodns.DNSResolver:
        """Create the resolver lazily so it binds to the running event loop."""
        if self._resolver is None:
            self._resolver = aiodns.DNSResolver(
                nameservers=self.nameservers,
                timeout=self.timeout,
                tries=1,
            )
        return self._resolver

    async def _query(self, host: str, qtype: str, record_type: int) -> list[Any]:
        try:
            result = await self._get_resolver().query_dns(host, qtype)
        except aiodns.error.DNSError as e:
            code = e.args[0] if e.args else None
            if code in NOT_FOUND_CODES:
                raise DNSRecordNotFound(f"No {qtype} record for {host}") from e
            raise InfrastructureError(
                f"DNS {qtype} lookup for {host} failed",
                details={"resolver_code": code},
            ) from e

        # The answer section may carry other types (e.g. a CNAME chain)
        records = [r.data for r in result.answer if r.type == record_type]
        if not records:
            raise DNSRecordNotFound(f"No {qtype} record for {host}")
        return records

    async def _query_with_retry(self, host: str, qtype: str, record_type: int) -> list[Any]:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(InfrastructureError),
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=0.2, max=1),
            reraise=True,
        ):
            with attempt:
                return await self._query(host, qtype, record_type)

    async def lookup_txt(self, host: str) -> list[str]:
        """
        Fetch TXT strings at host.

        Raises:
            DNSRecordNotFound: Host has no TXT records
            InfrastructureError: Resolver failure after retries
        """
        records = await self._query_with_retry(host, "TXT", pycares.QUERY_TYPE_TXT)
        values = []
        for data in records:
            text = data.data
            if isinstance(text, bytes):
                text = text.decode("utf-8", errors="replace")
            values.append(text)
        logger.debug(f"TXT {host}: {values}")
        return values

    async def lookup_cname(self, host: str) -> list[str]:
        """
        Fetch CNAME targets at host.

        Raises:
            DNSRecordNotFound: Host has no CNAME record
            InfrastructureError: Resolver failure after retries
        """
        records = await self._query_with_retry(host, "CNAME", pycares.QUERY_TYPE_CNAME)
        targets = [data.cname for data in records]
        logger.debug(f"CNAME {host}: {targets}")
        return targets
