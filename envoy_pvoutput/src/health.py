"""
Health file writer for the uploader.

Writes a JSON health file at a configurable path with four fields:
- last_run_ts: ISO timestamp of the most recent run (success or failure).
- last_success_ts: ISO timestamp of the most recent successful upload.
- last_error_stage: ``"fetch"``, ``"upload"``, ``"compute"`` or null after a success.
- last_energy_wh: Energy today reported by the last successful run.

Since every invocation is a fresh process, the previous file content is read
back first so that ``last_success_ts`` survives failed runs. The file is
replaced atomically, providing a liveness signal that Docker HEALTHCHECK or
monitoring can inspect.

CHANGELOG:
- 2026-10-18: Adapt to one-shot runs and atomic writes (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from envoy_pvoutput.src.store import write_atomic


class HealthWriter:
    """Writes run health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def record_success(self, energy_wh: int) -> None:
        """Record a successful upload and write the health file."""
        now = datetime.now(tz=UTC).isoformat()
        data = self._previous()
        data.update(
            last_run_ts=now,
            last_success_ts=now,
            last_error_stage=None,
            last_energy_wh=energy_wh,
        )
        self._write(data)

    def record_failure(self, stage: str) -> None:
        """Record a failed run and write the health file.

        Args:
            stage: Name of the stage that failed, e.g. ``"fetch"``.
        """
        data = self._previous()
        data.update(
            last_run_ts=datetime.now(tz=UTC).isoformat(),
            last_error_stage=stage,
        )
        self._write(data)

    def _previous(self) -> dict[str, object]:
        data: dict[str, object] = {
            "last_run_ts": None,
            "last_success_ts": None,
            "last_error_stage": None,
            "last_energy_wh": None,
        }
        try:
            stored = json.loads(self.path.read_text())
        except (OSError, ValueError):
            return data
        if isinstance(stored, dict):
            data.update({k: stored.get(k) for k in data})
        return data

    def _write(self, data: dict[str, object]) -> None:
        """Write the health JSON file with current state."""
        write_atomic(self.path, json.dumps(data))
