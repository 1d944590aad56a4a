"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import logging
from contextlib import AsyncExitStack
from typing import AsyncIterator, List, Optional

import aiohttp

from app.config import Settings, get_settings
from app.errors import SessionFailure, WordlistError
from app.services.aggregator import Aggregator
from app.services.candidates import build_candidates, collect_ct_names, make_ct_clients
from app.services.dns_check import CrossValidator, DnsResolver, detect_wildcard
from app.services.http_check import HttpChecker
from app.services.models import Origin, ScanEvent, SessionStatus
from app.services.prober import Prober
from app.services.session import ScanSession
from app.services.wordlist import load_wordlist

logger = logging.getLogger(__name__)


async def run_scan(
    session: ScanSession,
    settings: Optional[Settings] = None,
    *,
    words: Optional[List[str]] = None,
    resolver=None,
    http_checker=None,
    ct_clients=None,
    cross_validator=None,
) -> AsyncIterator[ScanEvent]:
    """
    Run one discovery session and yield its events as they happen.

    Collaborators left as None are built from settings; the aiohttp session
    they share lives exactly as long as the scan. The last event is always
    `complete` or `error`.
    """
    settings = settings or get_settings()
    domain = session.domain
    logger.info(f"Starting scan {session.id} for domain: {domain}")
    yield ScanEvent.status(f"Starting subdomain discovery for {domain}...")

    try:
        async with AsyncExitStack() as stack:
            if words is None:
                words = load_wordlist(settings.wordlist_path)
            if not words:
                raise WordlistError("Wordlist is empty")
            yield ScanEvent.status(f"Loaded {len(words)} subdomains from wordlist")

            needs_http_session = (http_checker is None and settings.verify_http) or (
                ct_clients is None and settings.ct_sources
            )
            if needs_http_session:
                connector = aiohttp.TCPConnector(limit=settings.concurrency * 2)
                http_session = await stack.enter_async_context(aiohttp.ClientSession(connector=connector))
                if http_checker is None and settings.verify_http:
                    http_checker = HttpChecker(http_session, timeout=settings.http_timeout)
                if ct_clients is None:
                    ct_clients = make_ct_clients(http_session, settings.ct_sources, settings.ct_timeout)
            if resolver is None:
                resolver = DnsResolver(
                    timeout=settings.dns_timeout,
                    retries=settings.dns_retries,
                    nameservers=settings.nameservers,
                )
                stack.push_async_callback(resolver.close)
            if cross_validator is None and len(settings.cross_check_nameservers) > 1:
                cross_validator = CrossValidator.from_nameservers(
                    settings.cross_check_nameservers, timeout=settings.dns_timeout
                )
                stack.push_async_callback(cross_validator.close)

            # Wildcard detection runs once, before any probe
            yield ScanEvent.status("Detecting wildcard DNS...")
            session.wildcard_detected = await detect_wildcard(domain, resolver)
            if session.wildcard_detected:
                yield ScanEvent.status("Wildcard DNS detected, requiring HTTP or certificate evidence for hits")
            else:
                yield ScanEvent.status("No wildcard DNS detected")

            ct_names = set()
            if ct_clients:
                yield ScanEvent.status("Querying certificate transparency logs...")
                ct_names, failures = await collect_ct_names(domain, ct_clients)
                if failures:
                    session.notes.extend(failures)
                    yield ScanEvent.status("Certificate transparency query failed, using wordlist results...")
                else:
                    yield ScanEvent.status(f"Certificate transparency returned {len(ct_names)} subdomains")

            session.candidates = build_candidates(domain, words, ct_names)
            total = len(session.candidates)
            aggregator = Aggregator(
                domain,
                session.wildcard_detected,
                ct_names=ct_names,
                wordlist_names=[n for n, c in session.candidates.items() if c.origin == Origin.WORDLIST],
                ct_requires_dns=settings.ct_requires_dns,
            )
            prober = Prober(
                resolver,
                http_checker=http_checker if settings.verify_http else None,
                cross_validator=cross_validator,
                concurrency=settings.concurrency,
                batch_delay=settings.batch_delay,
                stop_event=session.stop_event,
            )

            session.transition(SessionStatus.RUNNING)
            yield ScanEvent.status(f"Checking {total} candidate subdomains...")

            results = prober.results(list(session.candidates.values()))
            try:
                async for result in results:
                    session.checked += 1
                    for note in result.notes:
                        session.notes.append(f"{result.name}: {note}")
                        yield ScanEvent.status(f"{result.name}: {note}")

                    hit = aggregator.add(result)
                    if hit is not None:
                        session.record_hit(hit)
                        yield ScanEvent("subdomain", hit.to_event())

                    if session.checked % settings.progress_interval == 0 and session.checked < total:
                        yield ScanEvent.status(
                            f"Checked {session.checked}/{total}... Found {session.total_found} live"
                        )
            finally:
                await results.aclose()
    except SessionFailure as e:
        logger.error(f"Scan {session.id} for {domain} failed: {e}")
        session.fail(str(e))
        yield ScanEvent.error(str(e))
        return
    except Exception as e:
        logger.exception(f"Scan {session.id} for {domain} failed unexpectedly")
        session.fail(f"Scan failed: {e}")
        yield ScanEvent.error(session.error)
        return

    session.summary = aggregator.summary()
    session.transition(SessionStatus.COMPLETED)
    verb = "stopped" if session.cancelled else "complete"
    logger.info(f"Scan {session.id} {verb} for {domain}: {session.total_found} live of {total}")
    yield ScanEvent("complete", {
        "total": session.total_found,
        "message": f"Scan {verb}! Found {session.total_found} subdomains",
        "checked": session.checked,
        "sources": session.summary["sources"],
        "risk": session.summary["risk"],
    })


async def scan_domain(
    domain: str,
    settings: Optional[Settings] = None,
    *,
    session: Optional[ScanSession] = None,
    **collaborators,
) -> ScanSession:
    """Run a whole scan without streaming and return the finished session"""
    session = session or ScanSession(domain)
    async for event in run_scan(session, settings, **collaborators):
        if event.event == "status":
            logger.debug(f"[{session.id}] {event.data['message']}")
    return session
