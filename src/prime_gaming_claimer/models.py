from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class OfferKind(Enum):
    DIRECT = "direct"
    EXTERNAL = "external"


class ClaimOutcome(Enum):
    """What the offer page showed after clicking an external offer's claim button."""

    CLAIM_NOW = "Claim now"
    COMPLETE_CLAIM = "Complete Claim"
    LINK_ACCOUNT = "Link game account"


@dataclass
class SessionInfo:
    """State of the browser session, filled in while signing in."""

    signed_in: bool = False
    user_name: str | None = None


@dataclass
class Offer:
    """An offer card as currently shown on the page. Never persisted."""

    title: str
    kind: OfferKind
    claimable_now: bool = True

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.title}"


@dataclass
class ClaimRecord:
    """Persisted evidence that an offer was claimed."""

    title: str
    time: str
    store: str
    code: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        # optional fields are left out of the JSON instead of being null
        return {k: v for k, v in asdict(self).items() if v is not None}

    def __str__(self) -> str:
        text = f"{self.title} ({self.store})"
        if self.code:
            text += f" - code: {self.code}"
        return text
