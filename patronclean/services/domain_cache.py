"""
Email domain reachability.

A domain is reachable when it publishes at least one MX record. Lookups go
through a DNS-over-HTTPS JSON endpoint and are memoised for the lifetime of a
single email-column pass.
"""

from enum import Enum
from typing import Dict, Iterable, Optional, Protocol

import httpx
import structlog

from patronclean.config import settings
from patronclean.exceptions import DomainLookupError, LookupFailure

logger = structlog.get_logger(__name__)


class LookupFailurePolicy(str, Enum):
    ASSUME_VALID = "assume_valid"
    ASSUME_INVALID = "assume_invalid"
    REJECT = "reject"


class MxLookup(Protocol):
    def has_mx(self, domain: str) -> bool: ...


class DnsOverHttpsLookup:
    """MX lookup against a Google-style ``/resolve?name=..&type=MX`` endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url or settings.DNS_RESOLVER_URL
        self.timeout = timeout if timeout is not None else settings.DNS_TIMEOUT_SECONDS
        self.client = client or httpx.Client(timeout=self.timeout)

    def has_mx(self, domain: str) -> bool:
        try:
            response = self.client.get(self.base_url, params={"name": domain, "type": "MX"})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LookupFailure(str(exc)) from exc

        if not isinstance(payload, dict):
            raise LookupFailure(f"Unexpected resolver payload: {payload!r}")

        # Status 0 is NOERROR; NXDOMAIN and empty answers mean no mail routing
        return payload.get("Status") == 0 and "Answer" in payload


class DomainReachabilityCache:
    """Per-pass memo of domain -> reachable. Build a new one for every pass."""

    def __init__(
        self,
        lookup: MxLookup,
        always_reachable: Optional[Iterable[str]] = None,
        on_failure: LookupFailurePolicy = LookupFailurePolicy.ASSUME_VALID,
    ):
        self.lookup = lookup
        self.on_failure = LookupFailurePolicy(on_failure)
        domains = settings.ALWAYS_REACHABLE_DOMAINS if always_reachable is None else always_reachable
        self._known: Dict[str, bool] = {d.lower(): True for d in domains}
        self.lookups_performed = 0

    def is_reachable(self, domain: str) -> bool:
        domain = domain.lower()
        if domain in self._known:
            return self._known[domain]

        self.lookups_performed += 1
        try:
            reachable = self.lookup.has_mx(domain)
        except LookupFailure as exc:
            if self.on_failure is LookupFailurePolicy.REJECT:
                raise DomainLookupError(domain, exc) from exc
            reachable = self.on_failure is LookupFailurePolicy.ASSUME_VALID
            logger.warning(
                "MX lookup failed",
                domain=domain,
                error=str(exc),
                policy=self.on_failure.value,
                assumed_reachable=reachable,
            )

        self._known[domain] = reachable
        return reachable
