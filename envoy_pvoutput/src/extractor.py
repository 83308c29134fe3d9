"""
Pure extractor that maps a gateway ProductionSnapshot to reported metrics.

Scans the ``production`` entries of an Envoy ``production.json`` snapshot:

- ``inverters`` entry -> lifetime energy (``whLifetime``), None when absent.
- ``eim`` entry -> instantaneous power (``wNow``) and voltage (``rmsVoltage``).

Missing eim defaults power and voltage to 0. If a kind appears more than once, the last entry
wins. Unknown kinds are ignored.

This is a pure function: no side effects, no I/O, no clock.

CHANGELOG:
- 2026-10-18: Report an unknown lifetime as None instead of 0 (STORY-004)
- 2026-10-18: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import logging

from envoy_pvoutput.src.models import (
    EIM_KIND,
    INVERTERS_KIND,
    ProductionMetrics,
    ProductionSnapshot,
)

logger = logging.getLogger(__name__)


def extract_metrics(snapshot: ProductionSnapshot) -> ProductionMetrics:
    """Extract ``(lifetime_wh, power_w, voltage)`` from a snapshot.

    Args:
        snapshot: Parsed gateway snapshot.

    Returns:
        A :class:`ProductionMetrics` tuple. ``lifetime_wh`` is None when there
        is no inverters entry; power and voltage are 0.0 without an eim entry.
    """
    lifetime_wh: float | None = None
    power_w = 0.0
    voltage = 0.0
    seen: set[str] = set()

    for entry in snapshot.production:
        if entry.type == INVERTERS_KIND:
            lifetime_wh = entry.wh_lifetime
        elif entry.type == EIM_KIND:
            power_w = entry.w_now
            voltage = entry.rms_voltage
        else:
            continue
        if entry.type in seen:
            logger.debug("Duplicate '%s' entry in snapshot, last one wins", entry.type)
        seen.add(entry.type)

    if INVERTERS_KIND not in seen:
        logger.warning("Snapshot has no '%s' entry, lifetime energy unknown", INVERTERS_KIND)
    if EIM_KIND not in seen:
        logger.info("Snapshot has no '%s' entry, power and voltage are 0", EIM_KIND)

    return ProductionMetrics(lifetime_wh=lifetime_wh, power_w=power_w, voltage=voltage)
