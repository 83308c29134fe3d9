"""
HTTPS client for the Enphase IQ Gateway (Envoy) local production API.

Performs a single ``GET https://{host}/production.json`` with a bearer token
and parses the body into a ProductionSnapshot.  Designed for one attempt per
run:

- Bounded timeout (FETCH_TIMEOUT_S, default 10 s).
- TLS verification configurable; off by default because the gateway serves
  a self-signed certificate.
- Every failure (connect, timeout, non-2xx, bad JSON, schema mismatch) is
  raised as FetchError. No retry, no backoff.

CHANGELOG:
- 2026-10-18: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from envoy_pvoutput.src.errors import FetchError
from envoy_pvoutput.src.models import ProductionSnapshot

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_FETCH_TIMEOUT_S: float = 10.0
"""Timeout for the whole gateway request in seconds."""

PRODUCTION_PATH: str = "/production.json"
"""Local API path of the production/consumption summary document."""


class GatewayClient:
    """Fetches production snapshots from a local Envoy gateway.

    Args:
        host: Gateway IP address or hostname (no scheme).
        token: Gateway bearer token (pre-provisioned, see Enphase tech brief
            on token based local API access).
        timeout_s: Request timeout in seconds.
        verify_tls: Verify the gateway's TLS certificate.
    """

    def __init__(
        self,
        *,
        host: str,
        token: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        verify_tls: bool = False,
    ) -> None:
        self._host = host
        self._token = token
        self._timeout_s = timeout_s
        self._verify_tls = verify_tls

    @property
    def url(self) -> str:
        return f"https://{self._host}{PRODUCTION_PATH}"

    def fetch(self) -> ProductionSnapshot:
        """Fetch and parse one snapshot.

        Returns:
            The parsed :class:`ProductionSnapshot`.

        Raises:
            FetchError: On transport error, timeout, non-2xx status, or an
                unparsable body.
        """
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }
        try:
            with httpx.Client(verify=self._verify_tls, timeout=self._timeout_s) as client:
                response = client.get(self.url, headers=headers)
        except httpx.TimeoutException as exc:
            raise FetchError(f"gateway request to {self._host} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"gateway request to {self._host} failed: {exc}") from exc

        if not response.is_success:
            raise FetchError(
                f"gateway returned HTTP {response.status_code} for {PRODUCTION_PATH}"
            )

        try:
            snapshot = ProductionSnapshot.model_validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(f"failed to decode gateway JSON: {exc}") from exc

        logger.info(
            "Fetched snapshot from %s with %d production entries",
            self._host,
            len(snapshot.production),
        )
        return snapshot
