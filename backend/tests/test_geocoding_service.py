"""
Best Bike Paths Backend — Geocoding Service Unit Tests
=======================================================

What:  Tests for NominatimGeocoder and its CircuitBreaker.
How:   httpx.MockTransport answers the requests; no network. Retry waits are
       zero in the test environment (see conftest.py).

What we test:
    ✅ Circuit breaker state machine (closed → open → half_open → closed)
    ✅ First result parsed into Coordinates; request carries the right params
    ✅ Empty query, no result and malformed result → ValidationError
    ✅ 5xx is retried, exhaustion raises GeocodingError and counts a failure
    ✅ Open circuit rejects calls without a request
    ✅ Breaker snapshot for /health; retry backoff configured by multiplier
"""

import time

import httpx
import pytest

from bbp.exceptions import CircuitBreakerOpenError, GeocodingError, ValidationError
from bbp.config import settings
from bbp.services.geocoding_service import CircuitBreaker, NominatimGeocoder


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 0 < exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=30)
        cb.record_failure()
        cb.last_failure_time = time.time() - 31

        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=30)
        cb.state = CircuitBreaker.HALF_OPEN
        cb.record_failure()
        assert cb.state == "open"

    def test_success_closes_and_resets(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        cb.can_execute()
        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_snapshot_while_open(self):
        cb = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        cb.record_failure("retries exhausted: ConnectError")
        cb.record_failure("retries exhausted: TransientGeocodingError")

        state = cb.snapshot()

        assert state.state == "open"
        assert state.consecutive_failures == 2
        assert state.failure_threshold == 2
        assert 0 < state.retry_in_seconds <= 60
        assert state.times_opened == 1
        assert state.last_error == "retries exhausted: TransientGeocodingError"

    def test_snapshot_after_recovery(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure("rejected: HTTPStatusError")
        cb.can_execute()
        cb.record_success()

        state = cb.snapshot()

        assert (state.state, state.retry_in_seconds, state.last_error) == ("closed", 0, None)
        assert state.times_opened == 1


class TestNominatimGeocoder:

    @pytest.mark.asyncio
    async def test_geocode_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["user_agent"] = request.headers["User-Agent"]
            return httpx.Response(200, json=[{"lat": "45.4642", "lon": "9.1900", "display_name": "Duomo"}])

        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler))
        result = await geocoder.geocode("  Piazza del Duomo, Milano ")

        assert result.lat == pytest.approx(45.4642)
        assert result.lng == pytest.approx(9.19)
        assert seen["params"] == {"format": "jsonv2", "limit": "1", "q": "Piazza del Duomo, Milano"}
        assert seen["user_agent"] == "bbp-backend"
        assert geocoder.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_empty_query(self):
        geocoder = NominatimGeocoder(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))

        with pytest.raises(ValidationError) as exc_info:
            await geocoder.geocode("   ")

        assert exc_info.value.code == "MISSING_ADDRESS"

    @pytest.mark.asyncio
    async def test_no_match_does_not_trip_breaker(self):
        geocoder = NominatimGeocoder(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))

        with pytest.raises(ValidationError) as exc_info:
            await geocoder.geocode("Atlantis")

        assert exc_info.value.code == "GEOCODE_NOT_FOUND"
        assert geocoder.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_malformed_result(self):
        geocoder = NominatimGeocoder(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[{"lat": "north"}]))
        )

        with pytest.raises(ValidationError) as exc_info:
            await geocoder.geocode("Somewhere")

        assert exc_info.value.code == "GEOCODE_INVALID"

    @pytest.mark.asyncio
    async def test_server_error_retried_then_fails(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler))

        with pytest.raises(GeocodingError) as exc_info:
            await geocoder.geocode("Duomo")

        assert len(calls) == 3
        assert exc_info.value.retry_after == geocoder.circuit_breaker.recovery_timeout
        assert geocoder.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_transient_error_recovers(self):
        answers = iter([httpx.Response(502), httpx.Response(200, json=[{"lat": "1", "lon": "2"}])])
        geocoder = NominatimGeocoder(transport=httpx.MockTransport(lambda r: next(answers)))

        result = await geocoder.geocode("Duomo")

        assert (result.lat, result.lng) == (1.0, 2.0)

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(403)

        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler))

        with pytest.raises(GeocodingError):
            await geocoder.geocode("Duomo")

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_open_circuit_rejects_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=[])

        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler))
        for _ in range(geocoder.circuit_breaker.failure_threshold):
            geocoder.circuit_breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await geocoder.geocode("Duomo")

        assert calls == []
        assert await geocoder.health_check() is False

    @pytest.mark.asyncio
    async def test_exhausted_retries_show_in_circuit_state(self):
        geocoder = NominatimGeocoder(transport=httpx.MockTransport(lambda r: httpx.Response(503)))

        with pytest.raises(GeocodingError):
            await geocoder.geocode("Duomo")

        state = geocoder.circuit_state()
        assert state.consecutive_failures == 1
        assert state.last_error == "retries exhausted: TransientGeocodingError"

    def test_backoff_uses_multiplier(self):
        wait = NominatimGeocoder._search_with_retry.retry.wait

        assert wait.multiplier == settings.retry_min_wait
        assert wait.max == settings.retry_max_wait
