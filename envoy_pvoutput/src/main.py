"""
Entrypoint for one Envoy-to-PVOutput reporting run.

Each invocation performs exactly one cycle and exits; periodic polling is left
to an external scheduler (cron, systemd timer, container restart policy):

1. Parse command-line flags and load EnvoySettings (env vars / env file).
2. Build the gateway client, baseline store and PVOutput uploader.
3. Run the ReportingPipeline once.
4. Exit with a code identifying the failed stage, if any.

Structured JSON logging is used for all events. A HealthWriter (optional)
records the outcome of every run.

CHANGELOG:
- 2026-10-18: Map unexpected failures to INTERNAL_ERROR with a "compute" health stage (STORY-011)
- 2026-10-18: Add --dry-run and stage-specific exit codes (STORY-011)
- 2026-10-18: Replace poll/upload loops with a single run (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import argparse
import enum
import hashlib
import json
import logging
import sys
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from envoy_pvoutput.src.errors import FetchError, UploadError
from envoy_pvoutput.src.health import HealthWriter
from envoy_pvoutput.src.pipeline import ReportingPipeline, local_now

if TYPE_CHECKING:
    from envoy_pvoutput.src.config import EnvoySettings

logger = logging.getLogger(__name__)


class ExitCode(enum.IntEnum):
    OK = 0
    CONFIG_ERROR = 1
    FETCH_FAILED = 2
    UPLOAD_FAILED = 3
    INTERNAL_ERROR = 4


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the uploader.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    # httpx logs every request at INFO, including the gateway URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


# ---------------------------------------------------------------------------
# Startup config logging
# ---------------------------------------------------------------------------


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, excluding secrets.

    The gateway token and PVOutput API key are logged as fingerprints only.

    Args:
        settings: An EnvoySettings instance (or any object with the same attrs).
    """
    logger.info(
        "Uploader starting with config: "
        "envoy_host=%s, envoy_verify_tls=%s, pvoutput_base_url=%s, "
        "pvoutput_system_id=%s, state_path=%s, health_path=%s, "
        "fetch_timeout_s=%s, upload_timeout_s=%s, energy_scale=%s, "
        "tz_name=%s, envoy_token_masked=%s, pvoutput_api_key_masked=%s",
        settings.envoy_host,  # type: ignore[attr-defined]
        settings.envoy_verify_tls,  # type: ignore[attr-defined]
        settings.pvoutput_base_url,  # type: ignore[attr-defined]
        settings.pvoutput_system_id,  # type: ignore[attr-defined]
        settings.state_path,  # type: ignore[attr-defined]
        settings.health_path or "disabled",  # type: ignore[attr-defined]
        settings.fetch_timeout_s,  # type: ignore[attr-defined]
        settings.upload_timeout_s,  # type: ignore[attr-defined]
        settings.energy_scale,  # type: ignore[attr-defined]
        settings.tz_name or "local",  # type: ignore[attr-defined]
        _masked_token(settings.envoy_token),  # type: ignore[attr-defined]
        _masked_token(settings.pvoutput_api_key),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

_FLAG_TO_FIELD = {
    "api_key": "pvoutput_api_key",
    "system_id": "pvoutput_system_id",
    "ip_address": "envoy_host",
    "token": "envoy_token",
}
"""Maps argparse dest -> EnvoySettings field name."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="envoy-pvoutput",
        description="Upload Enphase Envoy production to PVOutput (one run).",
    )
    parser.add_argument("-a", "--api-key", help="The PVOutput API key [env: PVOUTPUT_API_KEY]")
    parser.add_argument(
        "-s", "--system-id", help="The PVOutput system id [env: PVOUTPUT_SYSTEM_ID]"
    )
    parser.add_argument(
        "-i", "--ip-address", help="IP address or hostname of the Envoy gateway [env: ENVOY_HOST]"
    )
    parser.add_argument("-t", "--token", help="API token for the Envoy gateway [env: ENVOY_TOKEN]")
    parser.add_argument("-e", "--env-file", help="Path to a file containing environment variables")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and compute, update the baseline, but do not upload",
    )
    return parser


def load_settings(args: argparse.Namespace) -> EnvoySettings:
    """Build EnvoySettings from env vars, the env file, and flag overrides.

    Raises:
        FileNotFoundError: If ``--env-file`` names a missing file.
        ValidationError: If the resulting configuration is invalid.
    """
    from envoy_pvoutput.src.config import EnvoySettings

    overrides = {
        field: getattr(args, dest)
        for dest, field in _FLAG_TO_FIELD.items()
        if getattr(args, dest) is not None
    }
    if args.env_file:
        if not Path(args.env_file).is_file():
            raise FileNotFoundError(f"Error loading '{args.env_file}' environment file")
        return EnvoySettings(_env_file=args.env_file, **overrides)
    return EnvoySettings(**overrides)


def make_clock(tz_name: str) -> Callable[[], datetime]:
    """Return a clock for *tz_name*, or the system local clock when empty."""
    if not tz_name:
        return local_now
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz=tz)


# ---------------------------------------------------------------------------
# Single run
# ---------------------------------------------------------------------------


def _record_health(health: HealthWriter | None, update: Callable[[HealthWriter], None]) -> None:
    if health is None:
        return
    try:
        update(health)
    except OSError:
        logger.warning("Failed to write health file", exc_info=True)


def run_once(
    pipeline: ReportingPipeline,
    health: HealthWriter | None = None,
) -> ExitCode:
    """Run one reporting cycle and map its outcome to an exit code.

    Args:
        pipeline: The configured reporting pipeline.
        health: HealthWriter instance, or None to skip health writes.
    """
    try:
        reading = pipeline.run()
    except FetchError as exc:
        logger.error("Fetch stage failed, nothing uploaded: %s", exc)
        _record_health(health, lambda h: h.record_failure("fetch"))
        return ExitCode.FETCH_FAILED
    except UploadError as exc:
        logger.error("Upload stage failed: %s", exc)
        _record_health(health, lambda h: h.record_failure("upload"))
        return ExitCode.UPLOAD_FAILED
    except Exception:
        logger.exception("Compute stage failed with an unexpected error")
        _record_health(health, lambda h: h.record_failure("compute"))
        return ExitCode.INTERNAL_ERROR

    _record_health(health, lambda h: h.record_success(reading.energy_wh))
    return ExitCode.OK


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    """Parse flags, load config, build components, run one cycle."""
    configure_logging()

    from envoy_pvoutput.src.gateway import GatewayClient
    from envoy_pvoutput.src.store import BaselineStore
    from envoy_pvoutput.src.uploader import PVOutputUploader

    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return ExitCode.CONFIG_ERROR
    except ValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return ExitCode.CONFIG_ERROR

    logging.getLogger().setLevel(settings.log_level)
    log_config_summary(settings)

    gateway = GatewayClient(
        host=settings.envoy_host,
        token=settings.envoy_token,
        timeout_s=settings.fetch_timeout_s,
        verify_tls=settings.envoy_verify_tls,
    )
    uploader = None
    if not args.dry_run:
        uploader = PVOutputUploader(
            api_key=settings.pvoutput_api_key,
            system_id=settings.pvoutput_system_id,
            base_url=settings.pvoutput_base_url,
            timeout_s=settings.upload_timeout_s,
        )

    pipeline = ReportingPipeline(
        gateway=gateway,
        store=BaselineStore(settings.state_path),
        uploader=uploader,
        clock=make_clock(settings.tz_name),
        energy_scale=settings.energy_scale,
    )
    health = HealthWriter(settings.health_path) if settings.health_path else None

    return run_once(pipeline, health)


if __name__ == "__main__":
    sys.exit(main())
