"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import datetime

class ScanRequest(BaseModel):
    domain: Optional[str] = None
    verify_http: Optional[bool] = None
    max_concurrency: Optional[int] = None

class SubdomainInfo(BaseModel):
    subdomain: str
    risk_level: str
    source: str
    addresses: List[str]
    http_live: bool
    https_live: bool

class ScanResponse(BaseModel):
    session_id: str
    domain: str
    status: str
    started_at: datetime
    finished_at: Optional[datetime]
    wildcard_detected: bool
    subdomains: List[SubdomainInfo]
    total_candidates: int
    checked: int
    total_found: int
    sources: Dict[str, int]
    risk: Dict[str, int]
    notes: List[str]

class SessionSnapshot(BaseModel):
    id: str
    domain: str
    status: str
    wildcard_detected: bool
    candidates: int
    checked: int
    total_found: int
    subdomains: List[str]
    error: Optional[str]
    notes: List[str]
    started_at: datetime
    finished_at: Optional[datetime]
