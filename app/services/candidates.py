"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import json
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import aiohttp

from app.errors import CertificateTransparencyError, DomainValidationError
from app.services.models import Candidate, Origin

logger = logging.getLogger(__name__)

USER_AGENT = "BugHunter-Pro/1.0"
MAX_DOMAIN_LENGTH = 253

_LABEL = r"[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
_DOMAIN_RE = re.compile(rf"^(?:{_LABEL}\.)+{_LABEL}$")


def normalize_domain(raw: Optional[str]) -> str:
    """
    Normalize user input into a bare domain name.

    Strips the scheme, path, port and trailing dot, lower-cases the rest and
    checks it is a syntactically plausible DNS name.

    Raises:
        DomainValidationError: The value is missing or not a valid domain
    """
    if raw is None or not isinstance(raw, str) or not raw.strip():
        raise DomainValidationError("Domain is required")

    domain = raw.strip().lower()
    if domain.startswith("http://"):
        domain = domain[7:]
    elif domain.startswith("https://"):
        domain = domain[8:]

    # Remove path and port
    domain = domain.split("/", 1)[0].split(":", 1)[0].rstrip(".")

    if not domain:
        raise DomainValidationError("Domain is required")
    if len(domain) > MAX_DOMAIN_LENGTH:
        raise DomainValidationError(f"Domain is longer than {MAX_DOMAIN_LENGTH} characters")
    if "." not in domain or not _DOMAIN_RE.match(domain):
        raise DomainValidationError(f"Invalid domain format: {raw.strip()}")
    return domain


def is_valid_subdomain(hostname: str, domain: str) -> bool:
    """
    Strict validation for subdomain names.

    Args:
        hostname (str): The hostname to validate
        domain (str): The target domain

    Returns:
        bool: True if hostname is a proper subdomain of domain
    """
    if not hostname or not domain:
        return False

    hostname = hostname.lower().strip()
    domain = domain.lower().strip()

    if not hostname.endswith("." + domain):
        return False
    if len(hostname) > MAX_DOMAIN_LENGTH:
        return False
    return bool(_DOMAIN_RE.match(hostname))


def filter_ct_names(raw_names: Iterable[str], domain: str) -> Set[str]:
    """Keep well-formed names under domain, dropping wildcards and whitespace"""
    accepted = set()
    for raw in raw_names:
        # A single entry may list several SANs, one per line
        for name in str(raw).split("\n"):
            name = name.strip().lower().rstrip(".")
            if "*" in name or any(ch.isspace() for ch in name):
                continue
            if is_valid_subdomain(name, domain):
                accepted.add(name)
    return accepted


class CertificateTransparencyClient:
    """Base for certificate transparency providers sharing one HTTP session"""

    name = "ct"

    def __init__(self, session: aiohttp.ClientSession, timeout: float = 10.0):
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def url_for(self, domain: str) -> str:
        raise NotImplementedError

    def extract_names(self, data) -> List[str]:
        raise NotImplementedError

    async def lookup(self, domain: str) -> Set[str]:
        """
        Query the provider for names issued under domain.

        Raises:
            CertificateTransparencyError: Timeout, non-2xx status or a body
                that is not the expected JSON document
        """
        url = self.url_for(domain)
        try:
            async with self.session.get(
                url, timeout=self.timeout, headers={"User-Agent": USER_AGENT}
            ) as response:
                if not 200 <= response.status < 300:
                    raise CertificateTransparencyError(f"{self.name} returned HTTP {response.status}")
                data = await response.json(content_type=None)
        except asyncio.TimeoutError:
            raise CertificateTransparencyError(f"{self.name} timed out")
        except (json.JSONDecodeError, aiohttp.ContentTypeError) as e:
            raise CertificateTransparencyError(f"{self.name} returned malformed JSON: {e}")
        except aiohttp.ClientError as e:
            raise CertificateTransparencyError(f"{self.name} client error: {e}")

        try:
            names = self.extract_names(data)
        except (AttributeError, TypeError) as e:
            raise CertificateTransparencyError(f"{self.name} returned unexpected data: {e}")

        subdomains = filter_ct_names(names, domain)
        logger.info(f"Found {len(subdomains)} subdomains via {self.name} for {domain}")
        return subdomains


class CrtShClient(CertificateTransparencyClient):
    """Passive scanning using Certificate Transparency logs (crt.sh)"""

    name = "crt.sh"

    def url_for(self, domain: str) -> str:
        return f"https://crt.sh/?q=%25.{domain}&output=json"

    def extract_names(self, data) -> List[str]:
        if not isinstance(data, list):
            raise TypeError("expected a JSON array")
        return [entry.get("name_value") or "" for entry in data if isinstance(entry, dict)]


class CertSpotterClient(CertificateTransparencyClient):
    """Passive scanning using CertSpotter CT logs"""

    name = "certspotter"

    def url_for(self, domain: str) -> str:
        return (
            f"https://api.certspotter.com/v1/issuances?domain={domain}"
            "&include_subdomains=true&expand=dns_names"
        )

    def extract_names(self, data) -> List[str]:
        if not isinstance(data, list):
            raise TypeError("expected a JSON array")
        names = []
        for entry in data:
            if isinstance(entry, dict):
                names.extend(str(n) for n in entry.get("dns_names") or [])
        return names


CT_CLIENTS = {
    "crtsh": CrtShClient,
    "certspotter": CertSpotterClient,
}


def make_ct_clients(
    session: aiohttp.ClientSession, sources: Sequence[str], timeout: float
) -> List[CertificateTransparencyClient]:
    return [CT_CLIENTS[source](session, timeout=timeout) for source in sources]


async def collect_ct_names(domain: str, clients) -> Tuple[Set[str], List[str]]:
    """
    Query every CT provider concurrently.

    Never raises for provider failures: they are logged and returned as
    messages next to whatever names the other providers produced.

    Returns:
        Tuple[Set[str], List[str]]: accepted names, failure messages
    """
    if not clients:
        return set(), []

    results = await asyncio.gather(
        *(client.lookup(domain) for client in clients), return_exceptions=True
    )

    names: Set[str] = set()
    failures: List[str] = []
    for client, result in zip(clients, results):
        if isinstance(result, CertificateTransparencyError):
            logger.warning(f"Certificate transparency lookup failed for {domain}: {result}")
            failures.append(str(result))
        elif isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning(f"{client.name} scan failed: {result}")
            failures.append(f"{client.name} failed: {result}")
        else:
            names.update(result)
    return names, failures


def wordlist_candidates(domain: str, words: Iterable[str]) -> List[Candidate]:
    """Join each word with the domain, dropping duplicates and invalid names"""
    seen = set()
    candidates = []
    for word in words:
        name = f"{word.strip().lower()}.{domain}"
        if name in seen or not is_valid_subdomain(name, domain):
            continue
        seen.add(name)
        candidates.append(Candidate(name, Origin.WORDLIST))
    return candidates


def build_candidates(domain: str, words: Iterable[str], ct_names: Iterable[str] = ()) -> Dict[str, Candidate]:
    """
    Merge wordlist and CT names into one candidate map keyed by name.

    A name known to both sources keeps its wordlist origin; the aggregator
    reports it as `both`.
    """
    candidates: Dict[str, Candidate] = {}
    for candidate in wordlist_candidates(domain, words):
        candidates[candidate.name] = candidate
    for name in sorted(ct_names):
        if name not in candidates and is_valid_subdomain(name, domain):
            candidates[name] = Candidate(name, Origin.CERTIFICATE_TRANSPARENCY)
    return candidates
