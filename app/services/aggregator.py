"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, Optional, Set

from app.services.classifier import classify
from app.services.models import ClassifiedHit, Origin, ProbeResult

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Turn probe results into classified hits, one per name.

    Only the task consuming the prober's output calls `add`, so the seen
    set and counters need no locking.
    """

    def __init__(
        self,
        domain: str,
        wildcard_detected: bool,
        ct_names: Iterable[str] = (),
        wordlist_names: Iterable[str] = (),
        ct_requires_dns: bool = False,
    ):
        self.domain = domain
        self.wildcard_detected = wildcard_detected
        self.ct_names: Set[str] = set(ct_names)
        self.wordlist_names: Set[str] = set(wordlist_names)
        self.ct_requires_dns = ct_requires_dns
        self.emitted: Set[str] = set()
        self.checked = 0
        self.total_found = 0
        self.by_source: Counter = Counter()
        self.by_risk: Counter = Counter()

    def qualifies(self, result: ProbeResult) -> bool:
        # An HTTP answer always counts
        if result.http_live or result.https_live:
            return True
        # A certificate was issued for the name
        if result.name in self.ct_names and (result.dns_live or not self.ct_requires_dns):
            return True
        # Plain resolution only counts when the zone does not answer everything
        return result.dns_live and not self.wildcard_detected

    def source_for(self, result: ProbeResult) -> Origin:
        origin = result.candidate.origin
        in_ct = origin == Origin.CERTIFICATE_TRANSPARENCY or result.name in self.ct_names
        in_wordlist = origin == Origin.WORDLIST or result.name in self.wordlist_names
        if in_ct and in_wordlist:
            return Origin.BOTH
        return Origin.CERTIFICATE_TRANSPARENCY if in_ct else Origin.WORDLIST

    def add(self, result: ProbeResult) -> Optional[ClassifiedHit]:
        """Record a result; return a hit when it is live and not seen before"""
        self.checked += 1
        if result.name in self.emitted or not self.qualifies(result):
            return None

        self.emitted.add(result.name)
        hit = ClassifiedHit(
            subdomain=result.name,
            risk_level=classify(result.name, self.domain),
            source=self.source_for(result),
            addresses=list(result.resolved_addresses),
            http_live=result.http_live,
            https_live=result.https_live,
        )
        self.total_found += 1
        self.by_source[hit.source.value] += 1
        self.by_risk[hit.risk_level.value] += 1
        logger.info(f"Found live subdomain: {hit.subdomain} ({hit.risk_level.value}, {hit.source.value})")
        return hit

    def summary(self) -> Dict[str, Any]:
        return {
            "total": self.total_found,
            "checked": self.checked,
            "sources": dict(self.by_source),
            "risk": dict(self.by_risk),
        }
