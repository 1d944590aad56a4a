"""
BugHunter Pro - Subdomain Discovery Service
Author: ha-2
GitHub: https://github.com/ha-2
License: CC BY-NC 4.0
"""


class ScanError(Exception):
    """Base class for all scan errors"""


class DomainValidationError(ScanError, ValueError):
    """Target domain is missing or not a plausible DNS name"""


class SessionFailure(ScanError):
    """The scan session cannot continue at all"""


class WordlistError(SessionFailure):
    """Wordlist is missing, unreadable or empty"""


class ResourceExhaustedError(SessionFailure):
    """Local resources (sockets, file descriptors) ran out mid-scan"""


class CertificateTransparencyError(ScanError):
    """A certificate transparency provider could not be queried"""


class InvalidTransitionError(ScanError, RuntimeError):
    """Scan session state machine was driven out of order"""
