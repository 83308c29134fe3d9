"""
HTTPS uploader posting a single status Reading to PVOutput.

POSTs a form-encoded body to ``{pvoutput_base_url}/service/r2/addstatus.jsp``
with the PVOutput API key and system id headers. One attempt per run; any
non-2xx response or transport failure is raised as UploadError. The base URL
must be HTTPS.

Form fields:
- d: date, ``YYYYMMDD``
- t: time, ``HH:MM``
- v1: energy generation today, Wh
- v2: power generation, W
- v6: voltage, V (only when > 0)

CHANGELOG:
- 2026-10-18: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import logging

import httpx

from envoy_pvoutput.src.errors import UploadError
from envoy_pvoutput.src.models import Reading

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://pvoutput.org"
DEFAULT_UPLOAD_TIMEOUT_S = 5.0
ADD_STATUS_PATH = "/service/r2/addstatus.jsp"


def build_status_form(reading: Reading) -> dict[str, str]:
    """Map a Reading to the PVOutput Add Status form fields."""
    form = {
        "d": reading.ts.strftime("%Y%m%d"),
        "t": reading.ts.strftime("%H:%M"),
        "v1": str(reading.energy_wh),
        "v2": str(reading.power_w),
    }
    if reading.voltage > 0:
        form["v6"] = str(reading.voltage)
    return form


class PVOutputUploader:
    """Posts status readings to the PVOutput Add Status service.

    Args:
        api_key: PVOutput API key.
        system_id: PVOutput system id.
        base_url: PVOutput base URL. Must start with ``https://``.
        timeout_s: Request timeout in seconds.

    Raises:
        ValueError: If *base_url* does not start with ``https://``.

    Usage::

        uploader = PVOutputUploader(api_key="key", system_id="12345")
        uploader.upload(reading)
    """

    def __init__(
        self,
        api_key: str,
        system_id: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_UPLOAD_TIMEOUT_S,
    ) -> None:
        if not base_url.lower().startswith("https://"):
            raise ValueError(f"PVOutput base URL must use HTTPS (got: '{base_url}').")
        self._api_key = api_key
        self._system_id = system_id
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def upload(self, reading: Reading) -> None:
        """POST one reading.

        Raises:
            UploadError: On transport error, timeout, or non-2xx status.
        """
        form = build_status_form(reading)
        headers = {
            "X-Pvoutput-Apikey": self._api_key,
            "X-Pvoutput-SystemId": self._system_id,
        }

        try:
            with httpx.Client(verify=True, timeout=self._timeout_s) as client:
                response = client.post(
                    f"{self._base_url}{ADD_STATUS_PATH}",
                    data=form,
                    headers=headers,
                )
        except httpx.TimeoutException as exc:
            raise UploadError(f"PVOutput request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UploadError(f"PVOutput request failed: {exc}") from exc

        if not response.is_success:
            raise UploadError(
                f"upload failed: HTTP {response.status_code} {response.text.strip()[:200]}"
            )

        logger.info(
            "Uploaded status d=%s t=%s v1=%s v2=%s v6=%s",
            form["d"],
            form["t"],
            form["v1"],
            form["v2"],
            form.get("v6", "-"),
        )
