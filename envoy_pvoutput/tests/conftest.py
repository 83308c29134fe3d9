"""
Shared test fixtures for uploader tests.

Provides environment variable fixtures for EnvoySettings configuration tests
and canned gateway snapshots. All uploader env vars are cleaned before each
test to ensure isolation.

CHANGELOG:
- 2026-10-18: Add snapshot fixtures (STORY-004)
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

import pytest
from envoy_pvoutput.src.models import ProductionSnapshot

# All EnvoySettings environment variable names, used for cleanup.
_ALL_ENV_VARS = (
    "ENVOY_HOST",
    "ENVOY_TOKEN",
    "ENVOY_VERIFY_TLS",
    "PVOUTPUT_API_KEY",
    "PVOUTPUT_SYSTEM_ID",
    "PVOUTPUT_BASE_URL",
    "STATE_PATH",
    "HEALTH_PATH",
    "FETCH_TIMEOUT_S",
    "UPLOAD_TIMEOUT_S",
    "ENERGY_SCALE",
    "TZ_NAME",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: str) -> None:
    """Remove all uploader env vars and isolate from .env files before each test.

    Changes working directory to tmp_path so no .env file is accidentally
    loaded by Pydantic BaseSettings.
    """
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_full(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set all required and optional environment variables for EnvoySettings.

    Returns the dict of env var names to values for assertion convenience.
    """
    env = {
        "ENVOY_HOST": "192.168.1.50",
        "ENVOY_TOKEN": "envoy-jwt-token",
        "ENVOY_VERIFY_TLS": "true",
        "PVOUTPUT_API_KEY": "pv-api-key",
        "PVOUTPUT_SYSTEM_ID": "12345",
        "PVOUTPUT_BASE_URL": "https://pvoutput.example.com",
        "STATE_PATH": "/tmp/test-state.json",
        "HEALTH_PATH": "/tmp/test-health.json",
        "FETCH_TIMEOUT_S": "7.5",
        "UPLOAD_TIMEOUT_S": "3",
        "ENERGY_SCALE": "0.001",
        "TZ_NAME": "Europe/Brussels",
        "LOG_LEVEL": "debug",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables (no optional ones).

    Optional variables should fall back to their defaults.
    """
    env = {
        "ENVOY_HOST": "envoy.local",
        "ENVOY_TOKEN": "token-xyz",
        "PVOUTPUT_API_KEY": "key-abc",
        "PVOUTPUT_SYSTEM_ID": "999",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


def make_snapshot(
    lifetime_wh: float | None = 5000.0,
    power_w: float | None = 1234.7,
    voltage: float | None = 241.9,
) -> ProductionSnapshot:
    """Build a production.json snapshot; ``None`` omits that entry kind."""
    production: list[dict[str, object]] = []
    if lifetime_wh is not None:
        production.append(
            {
                "type": "inverters",
                "activeCount": 12,
                "readingTime": 1760767200,
                "wNow": 1200,
                "whLifetime": lifetime_wh,
            }
        )
    if power_w is not None or voltage is not None:
        entry: dict[str, object] = {
            "type": "eim",
            "activeCount": 1,
            "measurementType": "production",
            "readingTime": 1760767201,
            "whLifetime": 9999999.0,
            "whToday": 0.0,
        }
        if power_w is not None:
            entry["wNow"] = power_w
        if voltage is not None:
            entry["rmsVoltage"] = voltage
        production.append(entry)
    return ProductionSnapshot.model_validate({"production": production, "storage": []})


@pytest.fixture()
def snapshot_factory():
    """Return :func:`make_snapshot` for tests that need custom snapshots."""
    return make_snapshot
