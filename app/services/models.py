"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Origin(str, Enum):
    WORDLIST = "wordlist"
    CERTIFICATE_TRANSPARENCY = "certificate_transparency"
    BOTH = "both"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SessionStatus(str, Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Candidate:
    """A hostname built for the target domain, not yet verified"""
    name: str
    origin: Origin = Origin.WORDLIST


@dataclass
class ProbeResult:
    candidate: Candidate
    dns_live: bool = False
    http_live: bool = False
    https_live: bool = False
    resolved_addresses: List[str] = field(default_factory=list)
    cname: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.candidate.name


@dataclass
class ClassifiedHit:
    subdomain: str
    risk_level: RiskLevel
    source: Origin
    addresses: List[str] = field(default_factory=list)
    http_live: bool = False
    https_live: bool = False

    def to_event(self) -> Dict[str, Any]:
        """Payload of a `subdomain` stream event"""
        return {
            "subdomain": self.subdomain,
            "riskLevel": self.risk_level.value,
            "source": self.source.value,
        }


@dataclass
class ScanEvent:
    """One named event pushed to the client"""
    event: str
    data: Dict[str, Any]

    @classmethod
    def status(cls, message: str) -> "ScanEvent":
        return cls("status", {"message": message})

    @classmethod
    def error(cls, message: str) -> "ScanEvent":
        return cls("error", {"message": message})
