"""Geolocation collaborators for the report form."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Dict, Optional

import httpx

from issue_reporter import config

PERMISSION_DENIED = "permission_denied"
POSITION_UNAVAILABLE = "position_unavailable"
TIMEOUT = "timeout"
UNKNOWN = "unknown"

# Lookups run here so callers can stop waiting at the overall deadline.
_lookups = ThreadPoolExecutor(max_workers=4, thread_name_prefix="geolocation")

MESSAGES = {
    PERMISSION_DENIED: "Location access was denied. The report was sent without a location.",
    POSITION_UNAVAILABLE: "Your location is unavailable right now. The report was sent without a location.",
    TIMEOUT: "Finding your location took too long. The report was sent without a location.",
    UNKNOWN: "Could not determine your location. The report was sent without a location.",
}


class GeolocationError(Exception):
    def __init__(self, code: str, detail: str = ""):
        if code not in MESSAGES:
            code = UNKNOWN
        self.code = code
        self.detail = detail
        super().__init__(detail or code)

    @property
    def message(self) -> str:
        return MESSAGES[self.code]


class FixedGeolocator:
    """Coordinates entered by hand (or known in advance)."""

    def __init__(self, lat: float, lng: float):
        self.lat = lat
        self.lng = lng

    def current_position(self, timeout: float = config.GEOLOCATION_TIMEOUT) -> Dict[str, float]:
        return {"lat": float(self.lat), "lng": float(self.lng)}


class DeniedGeolocator:
    """The user chose not to share a location."""

    def current_position(self, timeout: float = config.GEOLOCATION_TIMEOUT) -> Dict[str, float]:
        raise GeolocationError(PERMISSION_DENIED, "location sharing disabled by user")


class IPGeolocator:
    """Approximate position from an IP geolocation service.

    Accepts either ``latitude``/``longitude`` (ipapi.co) or ``lat``/``lon``
    (ip-api.com) in the JSON response.
    """

    def __init__(self, url: str = config.GEOLOCATION_URL, transport: Optional[httpx.BaseTransport] = None):
        self.url = url
        self.transport = transport

    def current_position(self, timeout: float = config.GEOLOCATION_TIMEOUT) -> Dict[str, float]:
        """Look up the position, giving up once ``timeout`` seconds have passed in total.

        httpx applies its timeout to each phase of the request (connect,
        read, ...), so the whole lookup is bounded here as well. An abandoned
        lookup keeps running in the background until httpx stops it.
        """
        future = _lookups.submit(self._fetch, timeout)
        try:
            payload = future.result(timeout=timeout)
        except FutureTimeout as e:
            future.cancel()
            raise GeolocationError(TIMEOUT, f"no position after {timeout:g}s") from e
        except httpx.TimeoutException as e:
            raise GeolocationError(TIMEOUT, str(e)) from e
        except httpx.HTTPStatusError as e:
            code = PERMISSION_DENIED if e.response.status_code in (401, 403) else POSITION_UNAVAILABLE
            raise GeolocationError(code, str(e)) from e
        except httpx.TransportError as e:
            raise GeolocationError(POSITION_UNAVAILABLE, str(e)) from e
        except ValueError as e:
            raise GeolocationError(UNKNOWN, f"invalid response: {e}") from e

        if not isinstance(payload, dict):
            raise GeolocationError(UNKNOWN, "unexpected response shape")
        lat = payload.get("latitude", payload.get("lat"))
        lng = payload.get("longitude", payload.get("lon"))
        if lat is None or lng is None:
            raise GeolocationError(POSITION_UNAVAILABLE, payload.get("reason") or "no coordinates in response")
        try:
            return {"lat": float(lat), "lng": float(lng)}
        except (TypeError, ValueError) as e:
            raise GeolocationError(UNKNOWN, f"bad coordinates: {e}") from e

    def _fetch(self, timeout: float):
        with httpx.Client(timeout=timeout, transport=self.transport) as client:
            response = client.get(self.url)
            response.raise_for_status()
            return response.json()
