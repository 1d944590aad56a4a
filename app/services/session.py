"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.errors import InvalidTransitionError
from app.services.models import Candidate, ClassifiedHit, SessionStatus

logger = logging.getLogger(__name__)

_ALLOWED = {
    SessionStatus.INITIALIZING: {SessionStatus.RUNNING, SessionStatus.FAILED},
    SessionStatus.RUNNING: {SessionStatus.COMPLETED, SessionStatus.FAILED},
    SessionStatus.COMPLETED: set(),
    SessionStatus.FAILED: set(),
}


class ScanSession:
    """One discovery run for one target domain"""

    def __init__(self, domain: str, session_id: Optional[str] = None):
        self.id = session_id or secrets.token_hex(8)
        self.domain = domain
        self.status = SessionStatus.INITIALIZING
        self.candidates: Dict[str, Candidate] = {}
        self.live_results: List[ClassifiedHit] = []
        self.total_found = 0
        self.checked = 0
        self.error: Optional[str] = None
        self.notes: List[str] = []
        self.summary: Dict[str, Any] = {}
        self.started_at = datetime.now()
        self.finished_at: Optional[datetime] = None
        self.stop_event = asyncio.Event()
        self._wildcard: Optional[bool] = None

    @property
    def wildcard_detected(self) -> bool:
        return bool(self._wildcard)

    @wildcard_detected.setter
    def wildcard_detected(self, value: bool) -> None:
        if self._wildcard is not None:
            raise InvalidTransitionError("Wildcard detection already recorded for this session")
        self._wildcard = bool(value)

    @property
    def finished(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.FAILED)

    @property
    def cancelled(self) -> bool:
        return self.stop_event.is_set()

    def cancel(self) -> None:
        """Ask the running scan to stop scheduling new probes"""
        self.stop_event.set()

    def transition(self, status: SessionStatus) -> None:
        if status not in _ALLOWED[self.status]:
            raise InvalidTransitionError(f"Cannot move scan {self.id} from {self.status.value} to {status.value}")
        logger.debug(f"Scan {self.id} for {self.domain}: {self.status.value} -> {status.value}")
        self.status = status
        if self.finished:
            self.finished_at = datetime.now()

    def fail(self, message: str) -> None:
        self.error = message
        self.transition(SessionStatus.FAILED)

    def record_hit(self, hit: ClassifiedHit) -> None:
        self.live_results.append(hit)
        self.total_found += 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain,
            "status": self.status.value,
            "wildcard_detected": self.wildcard_detected,
            "candidates": len(self.candidates),
            "checked": self.checked,
            "total_found": self.total_found,
            "subdomains": [hit.subdomain for hit in self.live_results],
            "error": self.error,
            "notes": list(self.notes),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class SessionStore(ABC):
    """Where running sessions are looked up by id"""

    @abstractmethod
    def get(self, session_id: str) -> Optional[ScanSession]:
        ...

    @abstractmethod
    def put(self, session: ScanSession) -> None:
        ...

    @abstractmethod
    def delete(self, session_id: str) -> None:
        ...


class InMemorySessionStore(SessionStore):
    """Single-process store; sessions do not survive restarts"""

    def __init__(self):
        self._sessions: Dict[str, ScanSession] = {}

    def get(self, session_id: str) -> Optional[ScanSession]:
        return self._sessions.get(session_id)

    def put(self, session: ScanSession) -> None:
        self._sessions[session.id] = session

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
