"""
Prime Gaming Claimer - claims the free games of a Prime Gaming subscription.

This package provides tools to:
- Sign in to Prime Gaming in a persistent Firefox profile (Playwright), including two-step verification
- Claim games offered directly on Prime Gaming
- Claim games fulfilled by other stores, keeping their redemption codes
- Remember every claimed game per account in a JSON ledger so it is never claimed twice
"""

from .claims import PrimeGamingClaimer
from .models import ClaimRecord, Offer, SessionInfo
from .session import establish_session
from .store import ClaimLedger, JsonDb

__all__ = [
    "PrimeGamingClaimer",
    "ClaimRecord",
    "Offer",
    "SessionInfo",
    "establish_session",
    "ClaimLedger",
    "JsonDb",
]
