"""
Pydantic models for gateway snapshots, the daily baseline record, and readings.

Defines the ProductionSnapshot model parsed from the Envoy ``production.json``
document, the BaselineRecord persisted between runs, and the Reading that is
posted to PVOutput.

CHANGELOG:
- 2026-10-18: Drop unused whToday field; lifetime_wh may be None (STORY-004)
- 2026-10-18: Add ProductionMetrics named tuple for the extractor (STORY-004)
- 2026-10-18: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

import datetime as dt
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

INVERTERS_KIND = "inverters"
"""Entry type carrying the inverter aggregate lifetime energy counter."""

EIM_KIND = "eim"
"""Entry type for the integrated revenue meter (instantaneous power, voltage)."""


class ProductionEntry(BaseModel):
    """One typed entry of the gateway's ``production`` list.

    Every numeric field defaults to 0 so that entries omitting a field
    (e.g. ``inverters`` never reports ``rmsVoltage``) still validate.

    Attributes:
        type: Entry kind discriminator, e.g. ``"inverters"`` or ``"eim"``.
        w_now: Instantaneous real power in watts.
        wh_lifetime: Lifetime energy counter in watt-hours.
        rms_voltage: RMS line voltage in volts.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    type: str
    w_now: float = Field(default=0.0, alias="wNow")
    wh_lifetime: float = Field(default=0.0, alias="whLifetime")
    rms_voltage: float = Field(default=0.0, alias="rmsVoltage")


class ProductionSnapshot(BaseModel):
    """A point-in-time ``production.json`` document from the gateway.

    Only the ``production`` list is consumed; ``consumption`` and
    ``storage`` sections are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    production: list[ProductionEntry] = Field(default_factory=list)


class BaselineRecord(BaseModel):
    """The single persisted daily baseline.

    Attributes:
        date: Local calendar date the baseline belongs to (``YYYY-MM-DD``).
        baseline: Lifetime watt-hours observed at the first run of ``date``.
    """

    date: dt.date
    baseline: float = Field(ge=0)


class ProductionMetrics(NamedTuple):
    """The three quantities extracted from a snapshot.

    ``lifetime_wh`` is None when the snapshot has no inverters entry, so a
    baseline is never anchored to a counter that was not observed.
    """

    lifetime_wh: float | None
    power_w: float
    voltage: float


class Reading(BaseModel):
    """A single status update for PVOutput.

    Attributes:
        ts: Local capture time; provides the ``d`` and ``t`` form fields.
        power_w: Instantaneous power in watts (truncated).
        energy_wh: Energy produced since local midnight (derived).
        voltage: Line voltage in volts, 0 when not reported.
    """

    ts: dt.datetime
    power_w: int
    energy_wh: int = Field(ge=0)
    voltage: int = 0
