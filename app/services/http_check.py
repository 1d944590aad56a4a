"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import errno
import logging
from typing import Optional, Tuple

import aiohttp

from app.errors import ResourceExhaustedError

logger = logging.getLogger(__name__)

# Any response proving a server exists, even one denying or redirecting us
ALIVE_STATUS_CODES = frozenset({
    200, 201, 202, 204, 206,
    301, 302, 303, 307, 308,
    401, 403, 405, 429,
})

EXHAUSTION_ERRNOS = frozenset({errno.EMFILE, errno.ENFILE, errno.ENOBUFS})

USER_AGENT = "Mozilla/5.0 (compatible; BugHunter-Pro/1.0)"


def is_exhaustion(exc: BaseException) -> bool:
    """True when exc means the local host ran out of sockets or descriptors"""
    os_error = getattr(exc, "os_error", None) if isinstance(exc, aiohttp.ClientConnectorError) else exc
    return isinstance(os_error, OSError) and os_error.errno in EXHAUSTION_ERRNOS


class HttpChecker:
    """HTTP/HTTPS liveness checks sharing one aiohttp session"""

    def __init__(self, session: aiohttp.ClientSession, timeout: float = 5.0):
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def _status(self, method: str, url: str) -> Optional[int]:
        try:
            async with self.session.request(
                method,
                url,
                timeout=self.timeout,
                allow_redirects=False,
                headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
            ) as response:
                return response.status
        except asyncio.TimeoutError:
            logger.debug(f"{method} {url} timed out")
        except (aiohttp.ClientError, OSError) as e:
            if is_exhaustion(e):
                raise ResourceExhaustedError(f"Out of sockets while connecting to {url}: {e}")
            logger.debug(f"Failed to connect to {url}: {e}")
        return None

    async def is_alive(self, url: str) -> bool:
        """HEAD first, GET when HEAD errors or is answered with a non-alive status"""
        status = await self._status("HEAD", url)
        if status in ALIVE_STATUS_CODES:
            return True
        status = await self._status("GET", url)
        return status in ALIVE_STATUS_CODES

    async def check(self, hostname: str) -> Tuple[bool, bool]:
        """
        Check both schemes concurrently.

        Returns:
            tuple: (https_live, http_live)
        """
        https_live, http_live = await asyncio.gather(
            self.is_alive(f"https://{hostname}"),
            self.is_alive(f"http://{hostname}"),
        )
        return https_live, http_live
