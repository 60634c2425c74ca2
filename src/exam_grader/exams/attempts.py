"""
Attempt Gate

Re-attempt cooldown: a candidate may start a new exam once enough days have
passed since the previous attempt. Aware timestamps are compared in UTC.
"""

from datetime import datetime, timedelta
from typing import Optional

from ..utils.clock import to_naive_utc

DEFAULT_COOLDOWN_DAYS = 10


def can_attempt(last_attempt_at: Optional[datetime], now: datetime,
                cooldown_days: float = DEFAULT_COOLDOWN_DAYS) -> bool:
    """True when there is no prior attempt or the cooldown has fully elapsed."""
    if last_attempt_at is None:
        return True
    elapsed_days = (to_naive_utc(now) - to_naive_utc(last_attempt_at)).total_seconds() / 86400
    return elapsed_days >= cooldown_days


def next_eligible_at(last_attempt_at: Optional[datetime],
                     cooldown_days: float = DEFAULT_COOLDOWN_DAYS) -> Optional[datetime]:
    """Earliest time (naive UTC) a new attempt is allowed; None if one is allowed already."""
    if last_attempt_at is None:
        return None
    return to_naive_utc(last_attempt_at) + timedelta(days=cooldown_days)


class AttemptGate:
    """Cooldown policy bound to a configured number of days."""

    def __init__(self, cooldown_days: float = DEFAULT_COOLDOWN_DAYS):
        self.cooldown_days = cooldown_days

    def can_attempt(self, last_attempt_at: Optional[datetime], now: datetime) -> bool:
        return can_attempt(last_attempt_at, now, self.cooldown_days)

    def next_eligible_at(self, last_attempt_at: Optional[datetime]) -> Optional[datetime]:
        return next_eligible_at(last_attempt_at, self.cooldown_days)
