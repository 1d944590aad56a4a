"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import json
import logging
from typing import AsyncIterator, Awaitable, Optional

from fastapi import Request

from app.services.models import ScanEvent
from app.services.session import ScanSession, SessionStore

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(event: ScanEvent) -> str:
    """Frame one event in text/event-stream format"""
    return f"event: {event.event}\ndata: {json.dumps(event.data)}\n\n"


async def stream_session(
    session: ScanSession,
    events: AsyncIterator[ScanEvent],
    store: SessionStore,
    request: Optional[Request] = None,
) -> AsyncIterator[str]:
    """
    Push a scan's events to one client connection.

    The session is registered in the store while the stream is open. A
    client disconnect stops the scan and is not reported to anyone.
    """
    store.put(session)
    try:
        async for event in events:
            if request is not None and await request.is_disconnected():
                logger.info(f"Client disconnected from scan {session.id}, stopping")
                session.cancel()
                break
            yield format_sse(event)
    except asyncio.CancelledError:
        logger.info(f"Stream for scan {session.id} cancelled, stopping")
        session.cancel()
        raise
    finally:
        await events.aclose()
        store.delete(session.id)


async def run_while_connected(
    session: ScanSession,
    scan: Awaitable[ScanSession],
    store: SessionStore,
    request: Request,
    poll_interval: float = 0.25,
) -> Optional[ScanSession]:
    """
    Await a blocking scan, watching the client connection meanwhile.

    The session is registered in the store for the whole scan. When the
    client goes away the scan task is cancelled, which closes its event
    source and the prober workers, and None is returned.
    """
    store.put(session)
    task = asyncio.ensure_future(scan)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected from scan {session.id}, stopping")
                session.cancel()
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                return None
    finally:
        if not task.done():
            session.cancel()
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        store.delete(session.id)
