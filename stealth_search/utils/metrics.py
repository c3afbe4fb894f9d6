"""
Metrics computation over the engine attempt log.

This module provides:
- Percentile calculation for latency analysis
- Per-engine outcome counts and success rates
- Latency percentiles per engine
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from stealth_search.core.models import EngineAttempt




# ==== STATISTICAL UTILITIES ==== #

def percentile(values: list[int], p: float) -> Optional[int]:
    """
    Calculate percentile of integer values.

    Uses nearest-rank method for percentile calculation.

    Args:
        values: List of integer values
        p: Percentile to calculate (0-100)

    Returns:
        Percentile value or None if list is empty

    Example:
        percentile([1, 2, 3, 4, 5], 50) -> 3  # median
        percentile([1, 2, 3, 4, 5], 95) -> 5  # P95
    """
    if not values:
        return None

    values_sorted = sorted(values)
    k = max(
        0,
        min(
            len(values_sorted) - 1,
            int(round((p / 100.0) * (len(values_sorted) - 1))),
        ),
    )

    return values_sorted[k]




# ==== ATTEMPT SUMMARY ==== #

def summarize_attempts(attempts: Iterable[EngineAttempt]) -> dict[str, Any]:
    """
    Summarize attempts per engine.

    Args:
        attempts: Attempt records, oldest first

    Returns:
        Mapping of engine name to counts by outcome, success rate and
        latency percentiles, plus a 'total' count

    Example:
        summarize_attempts(log)["primary"]["blocked"] -> 2
    """
    rows = list(attempts)
    summary: dict[str, Any] = {"total": len(rows)}

    for engine in ("primary", "secondary", "api"):
        engine_rows = [a for a in rows if a.engine == engine]
        if not engine_rows:
            continue

        counts: dict[str, int] = {}
        for attempt in engine_rows:
            counts[attempt.outcome] = counts.get(attempt.outcome, 0) + 1

        # rate_limited attempts never dispatched, so they do not count
        dispatched = [a for a in engine_rows if a.outcome != "rate_limited"]
        successes = counts.get("success", 0)
        latencies = [a.duration_ms for a in dispatched if a.duration_ms is not None]

        summary[engine] = {
            **counts,
            "attempts": len(engine_rows),
            "success_rate": (
                round(successes / len(dispatched), 3) if dispatched else 0.0
            ),
            "p50_latency_ms": percentile(latencies, 50),
            "p95_latency_ms": percentile(latencies, 95),
        }

    return summary
