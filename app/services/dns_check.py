"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import aiodns

from app.errors import ResourceExhaustedError

logger = logging.getLogger(__name__)

# Answers meaning "this name does not exist"
NOT_FOUND_CODES = frozenset({
    aiodns.error.ARES_ENOTFOUND,
    aiodns.error.ARES_ENODATA,
})

# Failures worth one more attempt
TRANSIENT_CODES = frozenset({
    aiodns.error.ARES_ETIMEOUT,
    aiodns.error.ARES_ESERVFAIL,
    aiodns.error.ARES_ECONNREFUSED,
    aiodns.error.ARES_EREFUSED,
})

INCONSISTENT_NOTE = "DNS propagation inconsistency detected across resolvers"


@dataclass
class DnsAnswer:
    addresses: List[str] = field(default_factory=list)
    cname: Optional[str] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return bool(self.addresses or self.cname)


def _error_code(exc: BaseException) -> Optional[int]:
    if isinstance(exc, aiodns.error.DNSError) and exc.args:
        return exc.args[0]
    return None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout"
    if isinstance(exc, aiodns.error.DNSError) and len(exc.args) > 1:
        return str(exc.args[1])
    return str(exc) or type(exc).__name__


class DnsResolver:
    """aiodns wrapper that turns every resolution outcome into a DnsAnswer"""

    def __init__(
        self,
        timeout: float = 3.0,
        retries: int = 1,
        nameservers: Optional[Sequence[str]] = None,
        resolver: Optional[aiodns.DNSResolver] = None,
    ):
        self.timeout = timeout
        self.retries = retries
        self._resolver = resolver or aiodns.DNSResolver(
            nameservers=list(nameservers) if nameservers else None,
            timeout=timeout,
        )

    async def close(self) -> None:
        """Release the c-ares channel behind this resolver"""
        await self._resolver.close()

    async def query(self, hostname: str, qtype: str):
        """
        Run one query, retrying transient failures.

        Returns an empty list when the name or record type does not exist.
        Other failures are raised once the retries are used up.
        """
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(self._resolver.query(hostname, qtype), timeout=self.timeout)
            except asyncio.TimeoutError:
                transient = True
                error: Exception = asyncio.TimeoutError()
            except aiodns.error.DNSError as e:
                code = _error_code(e)
                if code in NOT_FOUND_CODES:
                    return []
                if code == aiodns.error.ARES_ENOMEM:
                    raise ResourceExhaustedError(f"DNS resolver out of memory resolving {hostname}")
                transient = code in TRANSIENT_CODES
                error = e

            if not transient or attempt >= self.retries:
                raise error
            attempt += 1
            logger.debug(f"Retrying {qtype} query for {hostname} after {_describe(error)}")

    async def lookup(self, hostname: str) -> DnsAnswer:
        """Resolve A, AAAA and CNAME records concurrently"""
        results = await asyncio.gather(
            self.query(hostname, "A"),
            self.query(hostname, "AAAA"),
            self.query(hostname, "CNAME"),
            return_exceptions=True,
        )

        answer = DnsAnswer()
        errors = []
        for qtype, result in zip(("A", "AAAA", "CNAME"), results):
            if isinstance(result, ResourceExhaustedError):
                raise result
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors.append(f"{qtype}: {_describe(result)}")
                continue
            if qtype == "CNAME":
                cname = getattr(result, "cname", None)
                if cname:
                    answer.cname = cname.rstrip(".").lower()
            else:
                for record in result:
                    host = getattr(record, "host", None)
                    if host and host not in answer.addresses:
                        answer.addresses.append(host)

        if errors and not answer.found:
            answer.error = "; ".join(errors)
            logger.debug(f"DNS resolution failed for {hostname}: {answer.error}")
        return answer


async def detect_wildcard(domain: str, resolver) -> bool:
    """
    Detect wildcard DNS by resolving a random label under the domain.

    Returns:
        bool: True when the random name resolves. Errors other than
            "not found" are logged and reported as no wildcard.
    """
    probe = f"{secrets.token_hex(6)}.{domain}"
    answer = await resolver.lookup(probe)
    if answer.found:
        logger.warning(f"Wildcard DNS detected on {domain} ({probe} -> {answer.addresses or answer.cname})")
        return True
    if answer.error:
        logger.warning(f"Wildcard check error for {domain}: {answer.error}")
    else:
        logger.info(f"No wildcard DNS detected for {domain}")
    return False


class CrossValidator:
    """Compare A records for a name across several public resolvers"""

    def __init__(self, resolvers: Dict[str, DnsResolver]):
        self.resolvers = resolvers

    @classmethod
    def from_nameservers(cls, nameservers: Sequence[str], timeout: float = 3.0) -> "CrossValidator":
        return cls({ns: DnsResolver(timeout=timeout, retries=0, nameservers=[ns]) for ns in nameservers})

    async def close(self) -> None:
        for resolver in self.resolvers.values():
            await resolver.close()

    async def check(self, hostname: str) -> Optional[str]:
        """Return a note when resolvers that answered disagree, else None"""
        if len(self.resolvers) < 2:
            return None

        names = list(self.resolvers)
        results = await asyncio.gather(
            *(self.resolvers[ns].query(hostname, "A") for ns in names),
            return_exceptions=True,
        )

        answers = {}
        for ns, result in zip(names, results):
            if isinstance(result, ResourceExhaustedError):
                raise result
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.debug(f"Cross-check via {ns} failed for {hostname}: {_describe(result)}")
                continue
            records = frozenset(getattr(r, "host", "") for r in result)
            if records:
                answers[ns] = records

        if len(set(answers.values())) > 1:
            logger.info(f"{INCONSISTENT_NOTE} for {hostname}: {sorted(answers)}")
            return INCONSISTENT_NOTE
        return None
