"""
Quota tracking and pacing parameters derived from GitHub rate limit headers.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

ANONYMOUS_LIMIT = 60
AUTHENTICATED_LIMIT = 5000
RESET_HORIZON_SECONDS = 3600.0

LIMIT_HEADER = "x-ratelimit-limit"
REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


@dataclass(slots=True, frozen=True)
class RateLimitInfo:
    """Represents parsed rate limit metadata from GitHub response headers."""

    limit: int | None = None
    remaining: int | None = None
    reset_at: int | None = None
    retry_after: float | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitInfo":
        lowered = {str(key).lower(): value for key, value in headers.items()}
        retry_after = _parse_int(lowered.get(RETRY_AFTER_HEADER))
        return cls(
            limit=_parse_int(lowered.get(LIMIT_HEADER)),
            remaining=_parse_int(lowered.get(REMAINING_HEADER)),
            reset_at=_parse_int(lowered.get(RESET_HEADER)),
            retry_after=float(retry_after) if retry_after is not None else None,
        )

    def is_exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0


@dataclass(slots=True)
class QuotaState:
    """Snapshot of the process-wide quota and denial counters."""

    limit: int = ANONYMOUS_LIMIT
    remaining: int = ANONYMOUS_LIMIT
    reset_at: float = 0.0
    forbidden_count: int = 0
    last_forbidden_at: float | None = None


@dataclass(slots=True)
class PacingConfig:
    """Tunables for the pacer's adaptive delay and the denial cooldown."""

    base_delay: float = 0.1
    low_quota_threshold: int = 100
    low_quota_multiplier: float = 2.0
    critical_quota_threshold: int = 20
    critical_quota_multiplier: float = 4.0
    forbidden_penalty: float = 1.0
    cooldown_threshold: int = 3
    cooldown_window: float = 60.0


@dataclass(slots=True)
class QuotaTracker:
    """Owns :class:`QuotaState` and the rules that mutate it."""

    pacing: PacingConfig = field(default_factory=PacingConfig)
    clock: Callable[[], float] = field(default=time.time)
    state: QuotaState = field(default_factory=QuotaState)

    def __post_init__(self) -> None:
        if not self.state.reset_at:
            self.state.reset_at = self.clock() + RESET_HORIZON_SECONDS

    def snapshot(self) -> QuotaState:
        return replace(self.state)

    def apply_response_signals(
        self,
        remaining: int | None = None,
        reset_at: float | None = None,
        *,
        limit: int | None = None,
    ) -> None:
        """
        Fold one answered round trip into the quota state.

        Remote values win whenever present. A remaining count without a reset
        keeps the tracked reset, or starts a fresh horizon once it has passed.
        Without a remaining count the quota is tracked locally against the
        current ceiling.
        """
        state = self.state
        now = self.clock()
        if remaining is not None:
            state.remaining = max(int(remaining), 0)
            if reset_at is not None:
                state.reset_at = float(reset_at)
            elif now >= state.reset_at:
                state.reset_at = now + RESET_HORIZON_SECONDS
            if limit is not None:
                state.limit = int(limit)
            return

        if now >= state.reset_at:
            state.remaining = state.limit
            state.reset_at = now + RESET_HORIZON_SECONDS
        state.remaining = max(state.remaining - 1, 0)

    def apply_headers(self, headers: Mapping[str, str]) -> RateLimitInfo:
        info = RateLimitInfo.from_headers(headers)
        self.apply_response_signals(info.remaining, info.reset_at, limit=info.limit)
        return info

    def record_forbidden(self) -> int:
        self.state.forbidden_count += 1
        self.state.last_forbidden_at = self.clock()
        return self.state.forbidden_count

    def record_success(self) -> None:
        if self.state.forbidden_count:
            self.state.forbidden_count -= 1

    def reset(self, *, authenticated: bool) -> None:
        ceiling = AUTHENTICATED_LIMIT if authenticated else ANONYMOUS_LIMIT
        self.state = QuotaState(
            limit=ceiling,
            remaining=ceiling,
            reset_at=self.clock() + RESET_HORIZON_SECONDS,
        )

    def is_exhausted(self) -> bool:
        return self.state.remaining <= 0 and self.seconds_until_reset() > 0

    def seconds_until_reset(self) -> float:
        return max(self.state.reset_at - self.clock(), 0.0)

    def is_in_cooldown(self) -> bool:
        return self.time_until_cooldown_ends() > 0

    def time_until_cooldown_ends(self) -> float:
        state = self.state
        if state.forbidden_count < self.pacing.cooldown_threshold or state.last_forbidden_at is None:
            return 0.0
        ends_at = state.last_forbidden_at + self.pacing.cooldown_window
        return max(ends_at - self.clock(), 0.0)

    def next_delay(self) -> float:
        """Delay the pacer inserts before the next dequeue."""

        pacing = self.pacing
        state = self.state
        delay = pacing.base_delay
        if state.remaining < pacing.critical_quota_threshold:
            delay *= pacing.critical_quota_multiplier
        elif state.remaining < pacing.low_quota_threshold:
            delay *= pacing.low_quota_multiplier
        delay += pacing.forbidden_penalty * state.forbidden_count
        if self.is_exhausted():
            delay = max(delay, self.seconds_until_reset())
        return delay
