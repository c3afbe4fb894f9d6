"""
Adaptive rate governor with human-activity simulation.

This module implements outbound attempt control with:
- A sliding 60 s window capping attempts per minute
- Delays shaped by circadian, weekend, lunch and off-hours patterns
- Multiplicative jitter and random micro-pauses
- Adaptive base delay driven by recent success/failure history

The governor never queues work: when the window is full it raises
RateLimitExceeded and the caller decides whether to wait or fail fast.
"""

from __future__ import annotations

import random
import threading
import time
from collections import deque
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

from stealth_search.config.constants import (
    ADAPTIVE_WINDOW,
    CIRCADIAN_MULTIPLIERS,
    LUNCH_BREAK,
    MICRO_PAUSES,
    OUTCOME_HISTORY_SIZE,
    RATE_WINDOW_SECONDS,
    WEEKEND_SLOWDOWN,
    WORKING_HOURS,
)
from stealth_search.core.errors import RateLimitExceeded
from stealth_search.core.models import RateLimitConfig
from stealth_search.utils.logging import get_logger

logger = get_logger(__name__)




# ==== HELPERS ==== #

def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))




def activity_multiplier(moment: datetime) -> float:
    """
    Delay multiplier for a wall-clock moment.

    Combines:
    1. Circadian multiplier for the 3-hour block containing the hour
    2. Weekend slowdown (delay divided by 0.7)
    3. Off-hours weekday slowdown (1.5x outside 09:00-17:00)
    4. Lunch break slowdown (2x between 12:00 and 13:00)

    Args:
        moment: Local wall-clock time

    Returns:
        Combined multiplier applied to the base delay

    Example:
        Tuesday 10:30 -> 1.0
        Tuesday 01:00 -> 0.3 * 1.5 = 0.45
    """
    hour = moment.hour
    is_weekend = moment.weekday() >= 5

    multiplier = CIRCADIAN_MULTIPLIERS.get((hour // 3) * 3, 1.0)

    if is_weekend:
        multiplier /= WEEKEND_SLOWDOWN

    work_start, work_end = WORKING_HOURS
    if not is_weekend and not (work_start <= hour < work_end):
        multiplier *= 1.5

    lunch_start, lunch_end = LUNCH_BREAK
    if lunch_start <= hour < lunch_end:
        multiplier *= 2.0

    return multiplier




# ==== RATE GOVERNOR ==== #

class RateGovernor:
    """
    Shared governor deciding whether and when the next attempt may run.

    All state mutation happens under one lock and never spans an await, so
    concurrent request pipelines cannot race on the sliding window or the
    adaptive base delay.

    Attributes:
        current_base_delay: Adaptive base delay in seconds
        _requests: Dispatch timestamps inside the sliding window
        _history: Bounded ring buffer of (timestamp, success) outcomes
    """

    def __init__(
        self,
        config: RateLimitConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize governor from configuration.

        Args:
            config: Rate limit configuration
            clock: Monotonic clock used for the sliding window
            now: Wall-clock provider used for human-activity patterns
            rng: Random source for jitter and micro-pauses

        Example:
            governor = RateGovernor(
                RateLimitConfig(max_requests_per_minute=2),
                rng=random.Random(7),
            )
        """
        self._config = config
        self._clock = clock
        self._now = now
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

        self._requests: deque[float] = deque()
        self._history: deque[tuple[float, bool]] = deque(maxlen=OUTCOME_HISTORY_SIZE)

        initial = config.initial_delay_seconds or config.min_delay_seconds
        self.current_base_delay = _clamp(
            initial,
            config.min_delay_seconds,
            config.max_delay_seconds,
        )




    @property
    def config(self) -> RateLimitConfig:
        return self._config




    # --► SLIDING WINDOW

    def _prune(self, now: float) -> None:
        cutoff = now - RATE_WINDOW_SECONDS
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()


    def can_attempt(self) -> bool:
        """
        Check whether an attempt may be dispatched now.

        Returns:
            False once the sliding-window count reaches the per-minute cap
        """
        with self._lock:
            self._prune(self._clock())
            return len(self._requests) < self._config.max_requests_per_minute


    def retry_after(self) -> float:
        """Seconds until the oldest attempt leaves the window (0 when free)."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            if len(self._requests) < self._config.max_requests_per_minute:
                return 0.0
            return max(0.0, self._requests[0] + RATE_WINDOW_SECONDS - now)


    def reserve(self) -> float:
        """
        Atomically claim a slot in the sliding window.

        This method:
        1. Drops timestamps older than the window
        2. Raises RateLimitExceeded if the cap is reached
        3. Records the attempt timestamp
        4. Draws the human-like delay from the same base delay snapshot

        Returns:
            Delay in seconds the caller should sleep before the attempt

        Raises:
            RateLimitExceeded: If the per-minute cap has been reached
        """
        with self._lock:
            now = self._clock()
            self._prune(now)

            if len(self._requests) >= self._config.max_requests_per_minute:
                retry_after = max(0.0, self._requests[0] + RATE_WINDOW_SECONDS - now)
                logger.warning(
                    "Rate limit reached (%d/%d per minute), retry in %.1fs",
                    len(self._requests),
                    self._config.max_requests_per_minute,
                    retry_after,
                )
                raise RateLimitExceeded(
                    detail=(
                        f"{self._config.max_requests_per_minute} requests per minute "
                        "exceeded"
                    ),
                    retry_after=retry_after,
                )

            self._requests.append(now)
            return self._delay_locked()




    # --► DELAY COMPUTATION

    def micro_pause(self) -> float:
        """
        Sum of independent human pauses.

        Each pause fires on its own coin flip: thinking (30%, 2-7 s),
        distraction (10%, 10-25 s) and break (5%, 60-90 s).
        """
        total = 0.0
        for probability, low, high in MICRO_PAUSES:
            if self._rng.random() < probability:
                total += self._rng.uniform(low, high)
        return total


    def next_delay(self) -> float:
        """
        Compute the delay before the next attempt.

        Composition order: base delay, human-activity multiplier, jitter,
        micro-pauses, then a clamp to [min_delay, max_delay].

        Returns:
            Delay in seconds
        """
        with self._lock:
            return self._delay_locked()


    def _delay_locked(self) -> float:
        config = self._config
        delay = self.current_base_delay

        if config.human_patterns:
            delay *= activity_multiplier(self._now())

        if config.jitter_ratio > 0:
            delay *= 1 + self._rng.uniform(-config.jitter_ratio, config.jitter_ratio)

        if config.micro_pauses:
            delay += self.micro_pause()

        delay = _clamp(delay, config.min_delay_seconds, config.max_delay_seconds)
        logger.debug("Next delay %.1fs (base %.1fs)", delay, self.current_base_delay)
        return delay




    # --► ADAPTIVE BASE DELAY

    def record_outcome(self, success: bool) -> None:
        """
        Record an attempt outcome and adapt the base delay.

        The success rate is computed over the last 10 outcomes:
        - below 70%: base delay x1.5 (capped at max_delay)
        - above 90% while above min_delay: base delay x0.8 (floored at min_delay)

        Args:
            success: Whether the attempt produced results
        """
        config = self._config

        with self._lock:
            self._history.append((self._clock(), success))

            if not config.adaptive:
                return

            recent = list(self._history)[-ADAPTIVE_WINDOW:]
            success_rate = sum(1 for _, ok in recent if ok) / len(recent)

            if success_rate < 0.7:
                self.current_base_delay = min(
                    config.max_delay_seconds,
                    self.current_base_delay * 1.5,
                )
                logger.info(
                    "Increasing base delay to %.1fs (success rate %.0f%%)",
                    self.current_base_delay,
                    success_rate * 100,
                )
            elif success_rate > 0.9 and self.current_base_delay > config.min_delay_seconds:
                self.current_base_delay = max(
                    config.min_delay_seconds,
                    self.current_base_delay * 0.8,
                )
                logger.info(
                    "Decreasing base delay to %.1fs (success rate %.0f%%)",
                    self.current_base_delay,
                    success_rate * 100,
                )




    # --► INTROSPECTION

    def stats(self) -> dict[str, Any]:
        """Snapshot of governor state for the stats endpoint."""
        with self._lock:
            self._prune(self._clock())
            outcomes = [ok for _, ok in self._history]
            success_rate = sum(outcomes) / len(outcomes) if outcomes else 0.0
            return {
                "current_delay_seconds": round(self.current_base_delay, 2),
                "success_rate": round(success_rate * 100),
                "recent_successes": sum(1 for ok in outcomes if ok),
                "recent_failures": sum(1 for ok in outcomes if not ok),
                "requests_in_last_minute": len(self._requests),
                "max_requests_per_minute": self._config.max_requests_per_minute,
                "adaptive_enabled": self._config.adaptive,
            }


    def reset(self) -> None:
        """Forget window, history and adaptation."""
        with self._lock:
            self._requests.clear()
            self._history.clear()
            self.current_base_delay = self._config.min_delay_seconds
        logger.info("Rate governor reset")
