"""
Durable single-record store for the daily energy baseline.

The baseline is the gateway's lifetime watt-hour counter observed at the first
run of the local calendar day. It survives process restarts because it lives in
a small JSON file on disk::

    {"date": "2026-10-18", "baseline": 51234.0}

Operations:
- read(): Return the persisted state as NoBaseline or BaselineCurrent.
- load(today): Return the baseline valid for *today* and whether a new day
  started (missing, corrupt, or stale record).
- reinitialize(today, lifetime_wh): Atomically overwrite the record.

Read failures are never fatal: a missing or unparsable file is logged and
treated exactly like a new day. Write failures raise StoreWriteError so the
caller can decide how to degrade.

CHANGELOG:
- 2026-10-18: Read the state file as bytes so invalid UTF-8 means a new day (STORY-003)
- 2026-10-18: Add InMemoryBaselineStore for disk-free pipeline tests (STORY-003)
- 2026-10-18: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from envoy_pvoutput.src.errors import StoreReadError, StoreWriteError
from envoy_pvoutput.src.models import BaselineRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Baseline states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoBaseline:
    """No usable baseline record exists."""


@dataclass(frozen=True)
class BaselineCurrent:
    """A valid baseline record anchored to ``day``."""

    day: date
    baseline: float

    def is_for(self, today: date) -> bool:
        return self.day == today


BaselineState = NoBaseline | BaselineCurrent


@dataclass(frozen=True)
class BaselineLoad:
    """Result of :meth:`BaselineStore.load`.

    Attributes:
        baseline: Baseline for today, or ``None`` when a new day started.
        is_new_day: True if the record is missing, corrupt, or from another day.
    """

    baseline: float | None
    is_new_day: bool


def _state_to_load(state: BaselineState, today: date) -> BaselineLoad:
    if isinstance(state, BaselineCurrent) and state.is_for(today):
        return BaselineLoad(baseline=state.baseline, is_new_day=False)
    return BaselineLoad(baseline=None, is_new_day=True)


# ---------------------------------------------------------------------------
# Atomic file write
# ---------------------------------------------------------------------------


def write_atomic(path: Path, text: str) -> None:
    """Replace *path* with *text* so that readers never see a partial file.

    Writes a sibling ``.tmp`` file, flushes and fsyncs it, then renames it
    over the target with :func:`os.replace`.

    Raises:
        OSError: If any step fails. The temp file is removed first.
    """
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


# ---------------------------------------------------------------------------
# File-backed store
# ---------------------------------------------------------------------------


class BaselineStore:
    """JSON-file-backed store holding exactly one BaselineRecord.

    Args:
        path: Filesystem path of the state file. Accepts ``str`` or
              ``pathlib.Path``.

    Usage::

        store = BaselineStore("/data/state.json")
        loaded = store.load(date.today())
        if loaded.is_new_day:
            store.reinitialize(date.today(), 51234.0)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(self) -> BaselineState:
        """Return the persisted state.

        A missing or unparsable file yields :class:`NoBaseline`; the
        underlying :class:`StoreReadError` is logged and absorbed.
        """
        try:
            record = self._read_record()
        except StoreReadError as exc:
            logger.warning("Baseline state unavailable, treating as new day: %s", exc)
            return NoBaseline()
        return BaselineCurrent(day=record.date, baseline=record.baseline)

    def load(self, today: date) -> BaselineLoad:
        """Return the baseline valid for *today*.

        Args:
            today: The current local calendar date.

        Returns:
            A :class:`BaselineLoad`. ``is_new_day`` is True when no record
            exists, the record cannot be parsed, or its date is not *today*.
        """
        return _state_to_load(self.read(), today)

    def reinitialize(self, today: date, lifetime_wh: float) -> None:
        """Overwrite the record with ``{date: today, baseline: lifetime_wh}``.

        The write is atomic (temp file + rename). Missing parent
        directories are created.

        Raises:
            StoreWriteError: If the record could not be written.
        """
        try:
            record = BaselineRecord(date=today, baseline=lifetime_wh)
        except ValidationError as exc:
            raise StoreWriteError(f"invalid baseline {lifetime_wh!r}") from exc
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            write_atomic(self._path, record.model_dump_json())
        except OSError as exc:
            raise StoreWriteError(
                f"failed to write baseline state to {self._path}: {exc}"
            ) from exc
        logger.info(
            "Baseline reinitialized: date=%s baseline=%.1f Wh",
            today.isoformat(),
            lifetime_wh,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _read_record(self) -> BaselineRecord:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError as exc:
            raise StoreReadError(f"no state file at {self._path}") from exc
        except OSError as exc:
            raise StoreReadError(f"cannot read {self._path}: {exc}") from exc

        # Invalid UTF-8 is reported by the JSON parser as a ValidationError.
        try:
            return BaselineRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreReadError(
                f"failed to parse state file {self._path}: "
                f"{exc.error_count()} validation error(s)"
            ) from exc


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryBaselineStore:
    """Process-local store with the same interface as :class:`BaselineStore`.

    Args:
        state: Initial state (defaults to :class:`NoBaseline`).
        fail_writes: If True, :meth:`reinitialize` raises StoreWriteError.
    """

    def __init__(
        self,
        state: BaselineState | None = None,
        *,
        fail_writes: bool = False,
    ) -> None:
        self.state: BaselineState = state if state is not None else NoBaseline()
        self.fail_writes = fail_writes
        self.writes = 0

    def read(self) -> BaselineState:
        return self.state

    def load(self, today: date) -> BaselineLoad:
        return _state_to_load(self.state, today)

    def reinitialize(self, today: date, lifetime_wh: float) -> None:
        if self.fail_writes:
            raise StoreWriteError("in-memory store configured to fail writes")
        self.state = BaselineCurrent(day=today, baseline=lifetime_wh)
        self.writes += 1
