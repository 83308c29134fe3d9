"""
Daily energy accumulator: lifetime counter + stored baseline -> energy today.

The baseline follows a two-state machine per calendar day:

- ``NoBaseline -> BaselineCurrent(today, L)`` when no valid record exists.
- ``BaselineCurrent(d, b) -> BaselineCurrent(today, L)`` when ``d != today``.
- ``BaselineCurrent(today, b)`` is stable; each run reports ``L - b``.

Here ``L`` is the lifetime watt-hour value observed on that run. A run that
(re-)anchors the baseline always reports 0, whether or not the write
succeeded. A negative difference (counter reset, clock skew) is clamped to 0
and logged; it never rewrites the baseline.

CHANGELOG:
- 2026-10-18: Drive the store through read() and advance() (STORY-005)
- 2026-10-18: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Protocol

from envoy_pvoutput.src.errors import StoreWriteError
from envoy_pvoutput.src.store import BaselineCurrent, BaselineState

logger = logging.getLogger(__name__)


class SupportsBaseline(Protocol):
    """Anything with the BaselineStore read/reinitialize interface."""

    def read(self) -> BaselineState: ...

    def reinitialize(self, today: date, lifetime_wh: float) -> None: ...


def advance(
    state: BaselineState,
    today: date,
    lifetime_wh: float,
) -> tuple[BaselineCurrent, bool]:
    """Pure state transition for one run.

    Args:
        state: Current baseline state.
        today: Current local calendar date.
        lifetime_wh: Lifetime counter observed on this run.

    Returns:
        ``(next_state, rolled_over)``. ``rolled_over`` is True when the
        baseline was (re-)anchored to *lifetime_wh*.
    """
    if isinstance(state, BaselineCurrent) and state.is_for(today):
        return state, False
    return BaselineCurrent(day=today, baseline=lifetime_wh), True


def clamp_energy(lifetime_wh: float, baseline: float) -> float:
    """Return ``lifetime_wh - baseline``, clamped to be non-negative."""
    delta = lifetime_wh - baseline
    if delta < 0:
        logger.warning(
            "Lifetime counter %.1f Wh below baseline %.1f Wh "
            "(counter reset or clock skew), reporting 0",
            lifetime_wh,
            baseline,
        )
        return 0.0
    return delta


def energy_today(store: SupportsBaseline, today: date, lifetime_wh: float) -> float:
    """Return watt-hours produced since local midnight.

    On a new day (or missing/corrupt state) the store is reinitialized with
    *lifetime_wh* and 0 is returned. A failed write is logged and absorbed;
    the next run will again see a new day.

    Args:
        store: Baseline store (file-backed or in-memory).
        today: Current local calendar date.
        lifetime_wh: Current lifetime counter from the gateway.
    """
    state, rolled_over = advance(store.read(), today, lifetime_wh)

    if rolled_over:
        try:
            store.reinitialize(state.day, state.baseline)
        except StoreWriteError:
            logger.warning(
                "Failed to persist new baseline, reporting 0 Wh for this run",
                exc_info=True,
            )
        return 0.0

    return clamp_energy(lifetime_wh, state.baseline)
