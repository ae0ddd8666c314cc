"""
Usage metering for guests and registered users.

Registered users are metered in the database through the account store's
atomic counter. Guests get a small allowance tracked in process memory,
keyed by the device id the client sends; it is never linked to an account.

Guest allowance:
- daily mode: resets when the guest's local calendar day changes
- lifetime mode: never resets
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Optional

import pytz
from sqlalchemy.orm import Session

from .account_store import increment_message_count
from .config import settings
from .owner import Owner
from .types import GuestCounterMode, GuestUsageData, GuestUsageStatsDict

logger = logging.getLogger(__name__)

LIFETIME_PERIOD_KEY = "lifetime"


def _resolve_timezone(timezone_str: Optional[str]) -> pytz.BaseTzInfo:
    """Return the guest's timezone, falling back to the configured default."""
    if timezone_str:
        try:
            return pytz.timezone(timezone_str)
        except pytz.exceptions.UnknownTimeZoneError:
            logger.debug(f"Unknown guest timezone {timezone_str!r}, using default")
    return pytz.timezone(settings.guest_default_timezone)


class GuestCounter:
    """
    In-memory guest allowance.

    consume() is atomic within the process: the read, check and write happen
    under one lock, so two concurrent sends cannot both take the last message.
    """

    def __init__(self, limit: Optional[int] = None, mode: Optional[GuestCounterMode] = None):
        self.limit = settings.guest_message_limit if limit is None else limit
        self.mode: GuestCounterMode = mode or settings.guest_counter_mode
        self._storage: Dict[str, GuestUsageData] = {}
        self._lock = threading.Lock()
        self._pruned_on: Optional[date] = None

    def _period_key(self, timezone_str: Optional[str], now: Optional[datetime] = None) -> str:
        if self.mode == "lifetime":
            return LIFETIME_PERIOD_KEY
        tz = _resolve_timezone(timezone_str)
        local_now = now.astimezone(tz) if now else datetime.now(tz)
        return local_now.date().isoformat()

    def _prune(self, now: Optional[datetime] = None) -> None:
        """
        Drop daily entries from before yesterday (UTC), once per UTC day.

        Local dates are within one day of the UTC date, so such an entry is
        stale in every timezone. Caller holds the lock.
        """
        if self.mode != "daily":
            return
        utc_today = (now.astimezone(pytz.utc) if now else datetime.now(pytz.utc)).date()
        if self._pruned_on == utc_today:
            return
        self._pruned_on = utc_today
        cutoff = (utc_today - timedelta(days=1)).isoformat()
        stale = [guest_id for guest_id, data in self._storage.items() if data["period_key"] < cutoff]
        for guest_id in stale:
            del self._storage[guest_id]
        if stale:
            logger.debug(f"[METER] Pruned {len(stale)} stale guest counters")

    def _current(
        self, guest_id: str, timezone_str: Optional[str], now: Optional[datetime] = None, create: bool = False
    ) -> GuestUsageData:
        # Caller holds the lock
        self._prune(now)
        period_key = self._period_key(timezone_str, now)
        data = self._storage.get(guest_id)
        if data is None:
            data = {"used": 0, "period_key": period_key}
            if create:
                self._storage[guest_id] = data
        elif data["period_key"] != period_key:
            data["used"] = 0
            data["period_key"] = period_key
        return data

    def used(self, guest_id: str, timezone_str: Optional[str] = None, now: Optional[datetime] = None) -> int:
        with self._lock:
            return self._current(guest_id, timezone_str, now)["used"]

    def remaining(self, guest_id: str, timezone_str: Optional[str] = None, now: Optional[datetime] = None) -> int:
        with self._lock:
            return max(0, self.limit - self._current(guest_id, timezone_str, now)["used"])

    def can_send(self, guest_id: str, timezone_str: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        return self.remaining(guest_id, timezone_str, now) > 0

    def consume(self, guest_id: str, timezone_str: Optional[str] = None, now: Optional[datetime] = None) -> bool:
        """
        Take one message from the guest's allowance.

        Returns:
            bool: True if consumed, False if the allowance is exhausted (nothing changes)
        """
        with self._lock:
            data = self._current(guest_id, timezone_str, now, create=True)
            if data["used"] >= self.limit:
                return False
            data["used"] += 1
            return True

    def reset(self, guest_id: str) -> None:
        with self._lock:
            self._storage.pop(guest_id, None)

    def reset_all(self) -> None:
        with self._lock:
            self._storage.clear()

    def stats(self, guest_id: str, timezone_str: Optional[str] = None) -> GuestUsageStatsDict:
        """Allowance summary for the client, including when it next resets."""
        with self._lock:
            used = self._current(guest_id, timezone_str)["used"]

        resets_on = None
        if self.mode == "daily":
            tz = _resolve_timezone(timezone_str)
            tomorrow = datetime.now(tz).date() + timedelta(days=1)
            resets_on = tomorrow.isoformat()

        return {
            "used": used,
            "limit": self.limit,
            "remaining": max(0, self.limit - used),
            "mode": self.mode,
            "resets_on": resets_on,
        }


@dataclass
class MeterResult:
    allowed: bool
    reason: Optional[str] = None  # 'plan_limit' or 'guest_limit' when rejected


class UsageMeter:
    """Single gate in front of the pipeline for both kinds of owner."""

    def __init__(self, guest_counter: Optional[GuestCounter] = None):
        self.guest_counter = guest_counter or GuestCounter()

    def try_consume(self, db: Session, owner: Owner) -> MeterResult:
        if owner.is_guest:
            if self.guest_counter.consume(owner.guest_id, owner.timezone):
                return MeterResult(allowed=True)
            logger.info(f"[METER] Guest {owner.guest_id} reached the guest allowance")
            return MeterResult(allowed=False, reason="guest_limit")

        if increment_message_count(db, owner.user_id):
            return MeterResult(allowed=True)
        logger.info(f"[METER] User {owner.user_id} reached the plan limit")
        return MeterResult(allowed=False, reason="plan_limit")


# Process-wide guest allowance shared by all requests
guest_counter = GuestCounter()
usage_meter = UsageMeter(guest_counter)
