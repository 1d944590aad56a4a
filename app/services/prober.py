"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import logging
from typing import AsyncIterator, Iterable, Optional

from app.config import clamp_concurrency
from app.errors import ResourceExhaustedError
from app.services.models import Candidate, ProbeResult

logger = logging.getLogger(__name__)

_WORKER_DONE = object()


class Prober:
    """
    Verify candidates with a fixed pool of worker tasks.

    Workers pull candidates from a shared queue and push results onto a
    single output queue, so at most `concurrency` probes are ever in flight
    and the consumer sees results in completion order.
    """

    def __init__(
        self,
        resolver,
        http_checker=None,
        cross_validator=None,
        concurrency: int = 25,
        batch_delay: float = 0.0,
        stop_event: Optional[asyncio.Event] = None,
    ):
        self.resolver = resolver
        self.http_checker = http_checker
        self.cross_validator = cross_validator
        self.concurrency = clamp_concurrency(concurrency)
        self.batch_delay = batch_delay
        self.stop_event = stop_event or asyncio.Event()

    def stop(self) -> None:
        """Stop launching new probes; in-flight probes still finish"""
        self.stop_event.set()

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    async def probe(self, candidate: Candidate) -> ProbeResult:
        """
        Resolve one candidate and, when it resolves, check HTTP/HTTPS.

        Every failure is absorbed into a not-live result except resource
        exhaustion, which ends the whole batch.
        """
        result = ProbeResult(candidate)
        name = candidate.name

        try:
            answer = await self.resolver.lookup(name)
        except ResourceExhaustedError:
            raise
        except Exception as e:
            logger.debug(f"DNS probe failed for {name}: {e}")
            result.error = str(e) or type(e).__name__
            return result

        result.dns_live = answer.found
        result.resolved_addresses = list(answer.addresses)
        result.cname = answer.cname
        result.error = answer.error
        if not result.dns_live:
            return result

        if self.http_checker is not None:
            try:
                result.https_live, result.http_live = await self.http_checker.check(name)
            except ResourceExhaustedError:
                raise
            except Exception as e:
                logger.debug(f"HTTP probe failed for {name}: {e}")
                result.error = str(e) or type(e).__name__

        if self.cross_validator is not None:
            try:
                note = await self.cross_validator.check(name)
            except ResourceExhaustedError:
                raise
            except Exception as e:
                logger.debug(f"Resolver cross-check failed for {name}: {e}")
            else:
                if note:
                    result.notes.append(note)

        return result

    async def _worker(self, pending: asyncio.Queue, done: asyncio.Queue) -> None:
        try:
            while not self.stopped:
                try:
                    candidate = pending.get_nowait()
                except asyncio.QueueEmpty:
                    break
                try:
                    result = await self.probe(candidate)
                except ResourceExhaustedError as e:
                    await done.put(e)
                    break
                await done.put(result)
                # Yield to the consumer between probes
                await asyncio.sleep(self.batch_delay)
        finally:
            done.put_nowait(_WORKER_DONE)

    async def results(self, candidates: Iterable[Candidate]) -> AsyncIterator[ProbeResult]:
        """
        Probe every candidate and yield results as they complete.

        Closing the generator cancels the workers. When a worker hits
        resource exhaustion, scheduling stops, results still in flight are
        yielded and the error is raised afterwards.
        """
        pending: asyncio.Queue = asyncio.Queue()
        for candidate in candidates:
            pending.put_nowait(candidate)

        worker_count = min(self.concurrency, pending.qsize())
        if worker_count == 0:
            return

        done: asyncio.Queue = asyncio.Queue()
        workers = [asyncio.create_task(self._worker(pending, done)) for _ in range(worker_count)]
        logger.debug(f"Started {worker_count} probe workers for {pending.qsize()} candidates")

        failure = None
        finished = 0
        try:
            while finished < worker_count:
                item = await done.get()
                if item is _WORKER_DONE:
                    finished += 1
                elif isinstance(item, ResourceExhaustedError):
                    logger.error(f"Stopping probes: {item}")
                    failure = failure or item
                    self.stop()
                else:
                    yield item
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        if failure is not None:
            raise failure
