"""
Error taxonomy for a single reporting run.

Only FetchError and UploadError end a run with a failure exit code.
StoreReadError and StoreWriteError are absorbed by the baseline state
machine and surface as log diagnostics only.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations


class EnvoyPVOutputError(Exception):
    """Base class for all errors raised by this package."""


class FetchError(EnvoyPVOutputError):
    """Gateway unreachable, timed out, or returned an unparsable snapshot."""


class UploadError(EnvoyPVOutputError):
    """PVOutput rejected the status or could not be reached."""


class StoreReadError(EnvoyPVOutputError):
    """Baseline record is missing or cannot be parsed."""


class StoreWriteError(EnvoyPVOutputError):
    """Baseline record could not be written."""
