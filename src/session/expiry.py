# src/session/expiry.py
"""Session expiry policies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from docreview.config.settings import Settings
from docreview.core.models import AnalysisSession


class ExpiryPolicy(ABC):
    """Decides whether an idle session may be discarded."""

    @abstractmethod
    def is_expired(self, session: AnalysisSession, now: datetime) -> bool:
        """True when ``session`` is past its lifetime at ``now``."""


class NoExpiry(ExpiryPolicy):
    """Sessions live until explicitly deleted."""

    def is_expired(self, session: AnalysisSession, now: datetime) -> bool:
        return False


class TTLExpiry(ExpiryPolicy):
    """Sessions expire ``ttl_s`` seconds after their last access."""

    def __init__(self, ttl_s: float) -> None:
        if ttl_s <= 0:
            raise ValueError(f"ttl_s must be positive, got {ttl_s}")
        self.ttl = timedelta(seconds=ttl_s)

    def is_expired(self, session: AnalysisSession, now: datetime) -> bool:
        return now - session.last_access_at > self.ttl


def expiry_from_settings(settings: Settings) -> ExpiryPolicy:
    """TTLExpiry from ``session_ttl_s``; a TTL of 0 disables expiry."""
    if settings.session_ttl_s > 0:
        return TTLExpiry(settings.session_ttl_s)
    return NoExpiry()
