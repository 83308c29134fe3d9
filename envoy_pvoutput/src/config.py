"""
Uploader configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
All configuration values come from environment variables, an optional env
file, or command-line overrides; no hardcoded hosts or credentials.

CHANGELOG:
- 2026-10-18: Add ENERGY_SCALE and TZ_NAME (STORY-009)
- 2026-10-18: Initial creation (STORY-001)

TODO:
- None
"""

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class EnvoySettings(BaseSettings):
    """Configuration for one Envoy-to-PVOutput reporting run.

    Required variables must be set; optional variables have sensible
    defaults.

    Attributes:
        envoy_host: Envoy gateway IP address / hostname on the local LAN.
        envoy_token: Bearer token for the gateway's local API.
        envoy_verify_tls: Verify the gateway certificate (default off, the
            gateway certificate is self-signed).
        pvoutput_api_key: PVOutput API key.
        pvoutput_system_id: PVOutput system id.
        pvoutput_base_url: PVOutput base URL (must be HTTPS).
        state_path: JSON file holding the daily baseline record.
        health_path: JSON health file path; empty disables it.
        fetch_timeout_s: Gateway request timeout in seconds.
        upload_timeout_s: PVOutput request timeout in seconds.
        energy_scale: Multiplier applied to energy today before reporting.
            Default 1.0 reports watt-hours unchanged.
        tz_name: IANA time zone for day boundaries; empty uses system local.
        log_level: Root logging level name.
    """

    envoy_host: str
    envoy_token: str
    envoy_verify_tls: bool = False
    pvoutput_api_key: str
    pvoutput_system_id: str
    pvoutput_base_url: str = "https://pvoutput.org"
    state_path: str = "/data/state.json"
    health_path: str = ""
    fetch_timeout_s: float = 10.0
    upload_timeout_s: float = 5.0
    energy_scale: float = 1.0
    tz_name: str = ""
    log_level: str = "INFO"

    @field_validator("envoy_host")
    @classmethod
    def envoy_host_must_not_be_empty(cls, v: str) -> str:
        """Reject an empty host; a scheme prefix is stripped."""
        v = v.strip().removeprefix("https://").removeprefix("http://").rstrip("/")
        if not v:
            raise ValueError("ENVOY_HOST must not be empty")
        return v

    @field_validator("pvoutput_base_url")
    @classmethod
    def pvoutput_base_url_must_be_https(cls, v: str) -> str:
        """Validate that the PVOutput base URL uses HTTPS.

        The API key travels in a request header, so plain HTTP is rejected
        at startup.
        """
        if not v.startswith("https://"):
            raise ValueError(f"PVOUTPUT_BASE_URL must use HTTPS (got: '{v[:20]}...').")
        return v

    @field_validator("fetch_timeout_s", "upload_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """Timeouts bound every blocking call and must be > 0."""
        if v <= 0:
            raise ValueError("timeouts must be > 0 seconds")
        return v

    @field_validator("energy_scale")
    @classmethod
    def energy_scale_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ENERGY_SCALE must be > 0")
        return v

    @field_validator("tz_name")
    @classmethod
    def tz_name_must_exist(cls, v: str) -> str:
        """Validate TZ_NAME against the IANA database when set."""
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"TZ_NAME '{v}' is not a known time zone") from exc
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL '{v}' is not a logging level")
        return level

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
