"""
Unit tests for the baseline store module.

Tests verify:
- Missing file, corrupt JSON, invalid fields -> NoBaseline / new day.
- Stale date -> new day; matching date -> baseline for today.
- reinitialize() writes {date, baseline} and creates parent directories.
- reinitialize() is atomic: no temp file left, prior record intact on failure.
- Write failures raise StoreWriteError.
- Persistence across store instances (process restarts).

CHANGELOG:
- 2026-10-18: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest
from envoy_pvoutput.src.errors import StoreWriteError
from envoy_pvoutput.src.store import (
    BaselineCurrent,
    BaselineStore,
    InMemoryBaselineStore,
    NoBaseline,
)

_TODAY = date(2026, 10, 18)
_YESTERDAY = date(2026, 10, 17)


def _write_state(path: Path, data: object) -> None:
    path.write_text(json.dumps(data))


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestRead:
    def test_missing_file_is_no_baseline(self, tmp_path: Path) -> None:
        store = BaselineStore(tmp_path / "state.json")

        assert store.read() == NoBaseline()

    def test_valid_record_is_current(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _write_state(path, {"date": "2026-10-18", "baseline": 5000.5})

        assert BaselineStore(path).read() == BaselineCurrent(day=_TODAY, baseline=5000.5)

    @pytest.mark.parametrize(
        "content",
        [
            "",
            "{not json",
            '{"date": "2026-10-18"}',
            '{"baseline": 100}',
            '{"date": "18/10/2026", "baseline": 100}',
            '{"date": "2026-10-18", "baseline": "lots"}',
            '{"date": "2026-10-18", "baseline": -5}',
            "[1, 2, 3]",
        ],
    )
    def test_corrupt_content_is_no_baseline(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "state.json"
        path.write_text(content)

        assert BaselineStore(path).read() == NoBaseline()

    @pytest.mark.parametrize(
        "content",
        [
            b'{"date": "2026-10-18", "baseline": \xff\xfe}',
            b'{"date": "2026-10-\xff18", "baseline": 100}',
            b"\x00\x01\x02",
        ],
    )
    def test_invalid_bytes_are_no_baseline(self, tmp_path: Path, content: bytes) -> None:
        """Non-UTF-8 bytes are treated like any other unparsable record."""
        path = tmp_path / "state.json"
        path.write_bytes(content)

        assert BaselineStore(path).read() == NoBaseline()
        assert BaselineStore(path).load(_TODAY).is_new_day is True

    def test_corrupt_content_is_logged(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = tmp_path / "state.json"
        path.write_text("garbage")

        with caplog.at_level("WARNING"):
            BaselineStore(path).read()

        assert "treating as new day" in caplog.text

    def test_path_is_directory_is_no_baseline(self, tmp_path: Path) -> None:
        """An unreadable path is absorbed like a missing file."""
        path = tmp_path / "state.json"
        path.mkdir()

        assert BaselineStore(path).read() == NoBaseline()


class TestLoad:
    def test_same_day_returns_baseline(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _write_state(path, {"date": "2026-10-18", "baseline": 5000})

        loaded = BaselineStore(path).load(_TODAY)

        assert loaded.is_new_day is False
        assert loaded.baseline == 5000.0

    def test_stale_date_is_new_day(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _write_state(path, {"date": "2026-10-17", "baseline": 5000})

        loaded = BaselineStore(path).load(_TODAY)

        assert loaded.is_new_day is True
        assert loaded.baseline is None

    def test_missing_file_is_new_day(self, tmp_path: Path) -> None:
        loaded = BaselineStore(tmp_path / "state.json").load(_TODAY)

        assert loaded.is_new_day is True
        assert loaded.baseline is None


# ---------------------------------------------------------------------------
# Reinitialize
# ---------------------------------------------------------------------------


class TestReinitialize:
    def test_writes_record(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"

        BaselineStore(path).reinitialize(_TODAY, 5400.0)

        assert json.loads(path.read_text()) == {"date": "2026-10-18", "baseline": 5400.0}

    def test_overwrites_prior_record(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        _write_state(path, {"date": "2026-10-17", "baseline": 1.0})

        BaselineStore(path).reinitialize(_TODAY, 2.0)

        assert json.loads(path.read_text()) == {"date": "2026-10-18", "baseline": 2.0}

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "data" / "state.json"

        BaselineStore(path).reinitialize(_TODAY, 10.0)

        assert path.exists()

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"

        BaselineStore(path).reinitialize(_TODAY, 10.0)

        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    def test_idempotent(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        store = BaselineStore(path)

        store.reinitialize(_TODAY, 5000.0)
        first = path.read_text()
        store.reinitialize(_TODAY, 5000.0)

        assert path.read_text() == first

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"

        BaselineStore(path).reinitialize(_TODAY, 777.0)

        assert BaselineStore(path).load(_TODAY).baseline == 777.0

    def test_replace_failure_raises_and_keeps_prior_record(self, tmp_path: Path) -> None:
        """A crash at rename time leaves the previous record intact."""
        path = tmp_path / "state.json"
        _write_state(path, {"date": "2026-10-17", "baseline": 1.0})

        with (
            patch("envoy_pvoutput.src.store.os.replace", side_effect=OSError("disk full")),
            pytest.raises(StoreWriteError, match="disk full"),
        ):
            BaselineStore(path).reinitialize(_TODAY, 2.0)

        assert json.loads(path.read_text()) == {"date": "2026-10-17", "baseline": 1.0}
        assert not (tmp_path / "state.json.tmp").exists()

    def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        with pytest.raises(StoreWriteError):
            BaselineStore(blocker / "state.json").reinitialize(_TODAY, 1.0)

    def test_negative_baseline_raises(self, tmp_path: Path) -> None:
        with pytest.raises(StoreWriteError):
            BaselineStore(tmp_path / "state.json").reinitialize(_TODAY, -1.0)


# ---------------------------------------------------------------------------
# In-memory substitute
# ---------------------------------------------------------------------------


class TestInMemoryBaselineStore:
    def test_starts_without_baseline(self) -> None:
        store = InMemoryBaselineStore()

        assert store.load(_TODAY).is_new_day is True

    def test_reinitialize_then_load(self) -> None:
        store = InMemoryBaselineStore()

        store.reinitialize(_TODAY, 42.0)

        assert store.read() == BaselineCurrent(day=_TODAY, baseline=42.0)
        assert store.load(_TODAY).baseline == 42.0
        assert store.load(_YESTERDAY).is_new_day is True
        assert store.writes == 1

    def test_fail_writes(self) -> None:
        store = InMemoryBaselineStore(fail_writes=True)

        with pytest.raises(StoreWriteError):
            store.reinitialize(_TODAY, 1.0)
        assert store.read() == NoBaseline()
