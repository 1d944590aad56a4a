"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""

from app.services.models import RiskLevel

HIGH_RISK_MARKERS = (
    "admin", "dev", "staging", "test", "secure", "vpn", "sql", "db", "backup",
    "internal", "private", "root", "cpanel",
)

MEDIUM_RISK_MARKERS = (
    "api", "portal", "dashboard", "sso", "auth", "login", "beta", "demo",
)


def subdomain_label(subdomain: str, domain: str) -> str:
    """Return the part of `subdomain` in front of `.domain`"""
    subdomain = subdomain.lower().rstrip(".")
    suffix = "." + domain.lower().rstrip(".")
    if subdomain.endswith(suffix):
        return subdomain[: -len(suffix)]
    return subdomain


def classify_label(label: str) -> RiskLevel:
    """Map a subdomain label to a risk tier by substring match"""
    label = label.lower()
    if any(marker in label for marker in HIGH_RISK_MARKERS):
        return RiskLevel.HIGH
    if any(marker in label for marker in MEDIUM_RISK_MARKERS):
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify(subdomain: str, domain: str) -> RiskLevel:
    return classify_label(subdomain_label(subdomain, domain))
