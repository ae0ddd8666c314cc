"""
Session owner identity.

Every chat session belongs to exactly one owner: a registered user or a guest
device. Routers resolve the owner from the request (JWT or X-Guest-Id header)
and hand it to the stores and the pipeline.
"""

from dataclasses import dataclass
from typing import Optional

from .config import settings


@dataclass(frozen=True)
class Owner:
    user_id: Optional[int] = None
    guest_id: Optional[str] = None
    timezone: str = settings.guest_default_timezone

    def __post_init__(self):
        if (self.user_id is None) == (self.guest_id is None):
            raise ValueError("Owner needs exactly one of user_id or guest_id")

    @classmethod
    def for_user(cls, user_id: int) -> "Owner":
        return cls(user_id=user_id)

    @classmethod
    def for_guest(cls, guest_id: str, timezone: Optional[str] = None) -> "Owner":
        return cls(guest_id=guest_id, timezone=timezone or settings.guest_default_timezone)

    @property
    def is_guest(self) -> bool:
        return self.guest_id is not None

    @property
    def key(self) -> str:
        """Stable key used for the active-session pointer and rate limiting."""
        if self.user_id is not None:
            return f"user:{self.user_id}"
        return f"guest:{self.guest_id}"
