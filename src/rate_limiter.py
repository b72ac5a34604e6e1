"""
OpenShelf - Catalog Addition Rate Limiting

Cooldown + daily-cap throttling for catalog additions. The limiter keeps
no storage of its own: it reads and produces the three bookkeeping fields
embedded in GlobalState (last_addition_timestamp, last_addition_day,
additions_today), so the decision commits atomically with the entry it
guards.

Rules, evaluated on every addition attempt:
- The calendar day is floor(now / 86400); a new day resets the count
- Within COOLDOWN seconds of the previous addition: rejected (cooldown)
- DAILY_CAP additions already made today: rejected (daily_cap)
- The very first addition ever skips the cooldown check

Usage:
    from rate_limiter import AdditionRateLimiter, RateLimitConfig

    limiter = AdditionRateLimiter(RateLimitConfig(cooldown_seconds=60, daily_cap=50))
    window = limiter.check(state, now)     # raises RateLimitExceeded
    new_state = state.with_addition_window(window)

Configured from OPENSHELF_COOLDOWN_SECONDS and OPENSHELF_DAILY_CAP through
config.CatalogConfig.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from clock import SECONDS_PER_DAY, day_index
from errors import RateLimitExceeded

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 60
DEFAULT_DAILY_CAP = 50


@dataclass
class RateLimitConfig:
    """Configuration for catalog addition throttling."""

    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    daily_cap: int = DEFAULT_DAILY_CAP


class AdditionCounters(Protocol):
    """The rate limiter fields as carried by GlobalState."""

    last_addition_timestamp: int
    last_addition_day: int
    additions_today: int


@dataclass(frozen=True)
class AdditionWindow:
    """Rate limiter fields to commit after a successful addition."""

    last_addition_timestamp: int
    last_addition_day: int
    additions_today: int
    remaining_today: int

    def to_headers(self) -> dict[str, str]:
        """Convert to rate limit response headers."""
        return {
            "X-RateLimit-Limit-Daily": str(self.additions_today + self.remaining_today),
            "X-RateLimit-Remaining-Daily": str(max(0, self.remaining_today)),
        }


class AdditionRateLimiter:
    """Cooldown and daily-cap decision over GlobalState counters."""

    def __init__(self, config: RateLimitConfig | None = None):
        self.config = config or RateLimitConfig()

    def check(self, counters: AdditionCounters, now: int) -> AdditionWindow:
        """
        Decide whether one more addition is allowed at ``now``.

        Does not mutate ``counters``.

        Returns:
            AdditionWindow holding the fields to commit on success

        Raises:
            RateLimitExceeded: reason "cooldown" or "daily_cap"
        """
        current_day = day_index(now)
        additions_today = counters.additions_today
        if current_day != counters.last_addition_day:
            additions_today = 0

        last = counters.last_addition_timestamp
        if last != 0:
            elapsed = now - last
            if elapsed < self.config.cooldown_seconds:
                retry_after = self.config.cooldown_seconds - elapsed
                logger.debug(f"Catalog addition cooldown: retry in {retry_after}s")
                raise RateLimitExceeded(
                    RateLimitExceeded.COOLDOWN,
                    retry_after=retry_after,
                    message=f"Cooldown active: retry after {retry_after} seconds",
                )

        if additions_today >= self.config.daily_cap:
            retry_after = (current_day + 1) * SECONDS_PER_DAY - now
            logger.info(f"Catalog addition daily cap of {self.config.daily_cap} reached")
            raise RateLimitExceeded(
                RateLimitExceeded.DAILY_CAP,
                retry_after=retry_after,
                message=f"Daily cap of {self.config.daily_cap} additions reached",
            )

        additions_today += 1
        return AdditionWindow(
            last_addition_timestamp=now,
            last_addition_day=current_day,
            additions_today=additions_today,
            remaining_today=self.config.daily_cap - additions_today,
        )
