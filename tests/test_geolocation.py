import threading
import time

import httpx
import pytest

from issue_reporter import geolocation
from issue_reporter.geolocation import FixedGeolocator, GeolocationError, IPGeolocator

URL = "https://geo.example.test/json/"


def locator(handler):
    return IPGeolocator(URL, transport=httpx.MockTransport(handler))


def test_ipapi_shape():
    pos = locator(lambda request: httpx.Response(200, json={"latitude": 30.0444, "longitude": 31.2357})).current_position()
    assert pos == {"lat": 30.0444, "lng": 31.2357}


def test_ip_api_shape():
    pos = locator(lambda request: httpx.Response(200, json={"lat": "1.5", "lon": -2})).current_position()
    assert pos == {"lat": 1.5, "lng": -2.0}


def _raise(exc_type):
    def handler(request):
        raise exc_type("boom", request=request)
    return handler


@pytest.mark.parametrize("handler, code", [
    (_raise(httpx.ReadTimeout), geolocation.TIMEOUT),
    (_raise(httpx.ConnectError), geolocation.POSITION_UNAVAILABLE),
    (lambda request: httpx.Response(403), geolocation.PERMISSION_DENIED),
    (lambda request: httpx.Response(503), geolocation.POSITION_UNAVAILABLE),
    (lambda request: httpx.Response(200, json={"error": True, "reason": "RateLimited"}), geolocation.POSITION_UNAVAILABLE),
    (lambda request: httpx.Response(200, text="<html>"), geolocation.UNKNOWN),
    (lambda request: httpx.Response(200, json=[1, 2]), geolocation.UNKNOWN),
    (lambda request: httpx.Response(200, json={"lat": "north", "lon": 1}), geolocation.UNKNOWN),
])
def test_failures_are_classified(handler, code):
    with pytest.raises(GeolocationError) as info:
        locator(handler).current_position(timeout=1)
    assert info.value.code == code
    assert info.value.message == geolocation.MESSAGES[code]


def test_unknown_code_falls_back_to_unknown():
    assert GeolocationError("bogus").code == geolocation.UNKNOWN


def test_fixed_geolocator():
    assert FixedGeolocator(0, 0).current_position() == {"lat": 0.0, "lng": 0.0}


def test_slow_lookup_is_bounded_by_overall_timeout():
    release = threading.Event()

    def stalled(request):
        release.wait(5)
        return httpx.Response(200, json={"lat": 1, "lon": 2})

    started = time.monotonic()
    try:
        with pytest.raises(GeolocationError) as info:
            locator(stalled).current_position(timeout=0.2)
    finally:
        release.set()
    assert info.value.code == geolocation.TIMEOUT
    assert time.monotonic() - started < 2
