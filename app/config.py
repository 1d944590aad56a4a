"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

MAX_CONCURRENCY = 50
CT_PROVIDERS = ("crtsh", "certspotter")


def _env_list(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def clamp_concurrency(value: int) -> int:
    """Keep a requested worker count within 1..MAX_CONCURRENCY"""
    return min(MAX_CONCURRENCY, max(1, int(value)))


class Settings(BaseModel):
    concurrency: int = 25
    dns_timeout: float = Field(default=3.0, gt=0)
    dns_retries: int = Field(default=1, ge=0)
    http_timeout: float = Field(default=5.0, gt=0)
    ct_timeout: float = Field(default=10.0, gt=0)
    verify_http: bool = True
    ct_sources: List[str] = ["crtsh"]
    ct_requires_dns: bool = False
    wordlist_path: Optional[str] = None
    nameservers: List[str] = []
    cross_check_nameservers: List[str] = []
    batch_delay: float = Field(default=0.0, ge=0)
    progress_interval: int = Field(default=25, ge=1)

    @field_validator("concurrency")
    @classmethod
    def _clamp(cls, value: int) -> int:
        return clamp_concurrency(value)

    @field_validator("ct_sources")
    @classmethod
    def _known_sources(cls, value: List[str]) -> List[str]:
        sources = [s.lower() for s in value]
        unknown = [s for s in sources if s not in CT_PROVIDERS]
        if unknown:
            raise ValueError(f"Unknown certificate transparency sources: {', '.join(unknown)}")
        return sources


def get_settings() -> Settings:
    """Build settings from BUGHUNTER_* environment variables"""
    return Settings(
        concurrency=int(os.getenv("BUGHUNTER_CONCURRENCY", "25")),
        dns_timeout=float(os.getenv("BUGHUNTER_DNS_TIMEOUT", "3.0")),
        dns_retries=int(os.getenv("BUGHUNTER_DNS_RETRIES", "1")),
        http_timeout=float(os.getenv("BUGHUNTER_HTTP_TIMEOUT", "5.0")),
        ct_timeout=float(os.getenv("BUGHUNTER_CT_TIMEOUT", "10.0")),
        verify_http=_env_bool("BUGHUNTER_VERIFY_HTTP", True),
        ct_sources=_env_list("BUGHUNTER_CT_SOURCES", "crtsh"),
        ct_requires_dns=_env_bool("BUGHUNTER_CT_REQUIRES_DNS", False),
        wordlist_path=os.getenv("BUGHUNTER_WORDLIST", "").strip() or None,
        nameservers=_env_list("BUGHUNTER_NAMESERVERS"),
        cross_check_nameservers=_env_list("BUGHUNTER_CROSS_CHECK_NAMESERVERS"),
        batch_delay=float(os.getenv("BUGHUNTER_BATCH_DELAY", "0.0")),
        progress_interval=int(os.getenv("BUGHUNTER_PROGRESS_INTERVAL", "25")),
    )
