"""
One poll-compute-upload reporting cycle.

Sequence:
1. Fetch a ProductionSnapshot from the gateway (FetchError is fatal).
2. Extract lifetime energy, power and voltage.
3. Derive energy today from the baseline store (store errors are absorbed).
   Without a lifetime reading the store is not consulted and energy is 0.
4. Build a Reading stamped with the current local time.
5. Upload the Reading (UploadError is fatal, no retry).

Collaborators are injected so the cycle can be exercised without network
or disk access.

CHANGELOG:
- 2026-10-18: Skip the baseline store when lifetime energy is unknown (STORY-008)
- 2026-10-18: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from envoy_pvoutput.src.accumulator import energy_today
from envoy_pvoutput.src.extractor import extract_metrics
from envoy_pvoutput.src.models import Reading

if TYPE_CHECKING:
    from envoy_pvoutput.src.accumulator import SupportsBaseline
    from envoy_pvoutput.src.models import ProductionSnapshot

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    def fetch(self) -> ProductionSnapshot: ...


class ReadingSink(Protocol):
    def upload(self, reading: Reading) -> None: ...


def local_now() -> datetime:
    """Return the current time in the system's local time zone."""
    return datetime.now().astimezone()


class ReportingPipeline:
    """Runs a single reporting cycle.

    Args:
        gateway: Snapshot source with a ``fetch()`` method.
        store: Baseline store (file-backed or in-memory).
        uploader: Reading sink with an ``upload(reading)`` method, or
            ``None`` to compute without uploading (dry run).
        clock: Returns the current local datetime; its ``date()`` decides
            day rollover.
        energy_scale: Factor applied to energy today before truncation.
            1.0 reports watt-hours as read from the gateway.
    """

    def __init__(
        self,
        *,
        gateway: SnapshotSource,
        store: SupportsBaseline,
        uploader: ReadingSink | None,
        clock: Callable[[], datetime] = local_now,
        energy_scale: float = 1.0,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._uploader = uploader
        self._clock = clock
        self._energy_scale = energy_scale

    def run(self) -> Reading:
        """Execute one cycle and return the reading that was reported.

        Raises:
            FetchError: The gateway could not be read; nothing uploaded.
            UploadError: PVOutput rejected or did not receive the reading.
        """
        snapshot = self._gateway.fetch()
        metrics = extract_metrics(snapshot)

        now = self._clock()
        if metrics.lifetime_wh is None:
            logger.warning(
                "Lifetime energy unknown, reporting 0 Wh and leaving the baseline untouched"
            )
            energy_wh = 0.0
        else:
            energy_wh = energy_today(self._store, now.date(), metrics.lifetime_wh)

        reading = Reading(
            ts=now,
            power_w=int(metrics.power_w),
            energy_wh=int(energy_wh * self._energy_scale),
            voltage=int(metrics.voltage),
        )
        logger.info(
            "Reading: lifetime=%s Wh energy_today=%d Wh power=%d W voltage=%d V",
            metrics.lifetime_wh,
            reading.energy_wh,
            reading.power_w,
            reading.voltage,
        )

        if self._uploader is None:
            logger.info("Dry run, skipping upload")
            return reading

        self._uploader.upload(reading)
        return reading
