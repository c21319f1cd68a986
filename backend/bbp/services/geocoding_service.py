"""
Best Bike Paths Backend - Nominatim Geocoding Service
======================================================

What:  Geocoder backed by an OpenStreetMap Nominatim search endpoint.
How:   One GET per address through httpx, wrapped in tenacity retries and a
       circuit breaker.
Who:   Singleton used by PathService for path search.

Request:
    GET {GEOCODING_URL}?format=jsonv2&limit=1&q=<address>
    Accept: application/json
    Accept-Language: {GEOCODING_LANGUAGE}
    User-Agent: {GEOCODING_USER_AGENT}

Resilience Strategy:
    1. Transport errors, 5xx and 429 answers are retried with exponential
       backoff + jitter
    2. Exhausted retries count as one circuit-breaker failure and surface as
       GeocodingError (502)
    3. While the circuit is OPEN, calls fail instantly with
       CircuitBreakerOpenError (503)
    4. "No match" is an answer, not a failure: it never trips the breaker
"""

import logging
import time
import uuid
from typing import Optional

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from bbp.config import settings
from bbp.exceptions import CircuitBreakerOpenError, GeocodingError, ValidationError
from bbp.schemas.common import Coordinates, GeocoderCircuitState
from bbp.services.geocoding_base import Geocoder

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Guards the geocoding provider so a Nominatim outage costs one fast 503
    per search instead of a full retry cycle.

    State Machine:
        CLOSED ── failure_threshold exhausted lookups ──▶ OPEN
        OPEN ── recovery_timeout elapsed ──▶ HALF_OPEN (one trial lookup)
        HALF_OPEN ── trial succeeds ──▶ CLOSED
        HALF_OPEN ── trial fails ──▶ OPEN (timer restarts)

    Only provider failures count. A lookup that finds nothing is an answer.
    Not thread-safe; uvicorn async workers share one process and one loop.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None
        self.last_error: Optional[str] = None
        self.times_opened = 0

    def seconds_until_retry(self) -> int:
        if self.state != self.OPEN or self.last_failure_time is None:
            return 0
        elapsed = time.time() - self.last_failure_time
        return max(0, int(self.recovery_timeout - elapsed))

    def can_execute(self) -> bool:
        """
        Returns True when a lookup may reach the provider.

        Raises:
            CircuitBreakerOpenError while OPEN and the recovery timeout has not
            elapsed.
        """
        if self.state != self.OPEN:
            return True

        remaining = self.seconds_until_retry()
        if remaining > 0:
            raise CircuitBreakerOpenError(recovery_time=remaining)

        logger.info("Geocoder circuit HALF_OPEN: letting one trial lookup through")
        self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Geocoder circuit CLOSED: provider recovered")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None
        self.last_error = None

    def record_failure(self, reason: Optional[str] = None) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()
        if reason:
            self.last_error = reason

        if self.state == self.HALF_OPEN:
            logger.warning("Geocoder circuit back to OPEN: trial lookup failed (%s)", reason)
            self._open()
        elif self.state == self.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning(
                "Geocoder circuit OPEN after %d failed lookups (last: %s)",
                self.failure_count,
                reason,
            )
            self._open()

    def snapshot(self) -> GeocoderCircuitState:
        return GeocoderCircuitState(
            state=self.state,
            consecutive_failures=self.failure_count,
            failure_threshold=self.failure_threshold,
            retry_in_seconds=self.seconds_until_retry(),
            times_opened=self.times_opened,
            last_error=self.last_error,
        )

    def _open(self) -> None:
        self.state = self.OPEN
        self.times_opened += 1


class TransientGeocodingError(Exception):
    """Upstream answered 5xx or 429; worth another attempt."""

    def __init__(self, status_code: int):
        super().__init__(f"Geocoding provider answered HTTP {status_code}")
        self.status_code = status_code


# ══════════════════════════════════════════════════════════════════════════
# Nominatim Geocoder
# ══════════════════════════════════════════════════════════════════════════

class NominatimGeocoder(Geocoder):
    """
    Error Handling Chain:
        request fails transiently → tenacity retries (RETRY_MAX_ATTEMPTS)
        → all retries fail → circuit breaker failure + GeocodingError
        → threshold reached → later calls rejected instantly
        → recovery timeout → one test call (HALF_OPEN)
        → test succeeds → CLOSED

    Args:
        transport: Optional httpx transport. Tests pass an
                   `httpx.MockTransport` to answer without a network.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "NominatimGeocoder initialized with url=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.geocoding_url,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    async def geocode(self, query: str) -> Coordinates:
        address = (query or "").strip()
        if not address:
            raise ValidationError(message="Address is required", code="MISSING_ADDRESS", field="address")

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        try:
            results = await self._search_with_retry(address, request_id)
        except (httpx.TransportError, TransientGeocodingError) as e:
            self.circuit_breaker.record_failure(f"retries exhausted: {type(e).__name__}")
            logger.error("[%s] All geocoding retries exhausted: %s", request_id, str(e))
            raise GeocodingError(
                message="Geocoding failed after multiple attempts. Please try again later.",
                retry_after=self.circuit_breaker.recovery_timeout,
                context={"request_id": request_id, "attempts": settings.retry_max_attempts},
            )
        except (httpx.HTTPStatusError, ValueError) as e:
            # Non-retryable 4xx or a body that is not JSON
            self.circuit_breaker.record_failure(f"rejected: {type(e).__name__}")
            logger.error("[%s] Geocoding request rejected: %s", request_id, str(e))
            raise GeocodingError(
                message="Failed to geocode address",
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

        self.circuit_breaker.record_success()
        return self._parse_first_result(results, address)

    async def health_check(self) -> bool:
        return self.circuit_breaker.state != CircuitBreaker.OPEN

    def circuit_state(self) -> GeocoderCircuitState:
        return self.circuit_breaker.snapshot()

    @staticmethod
    def _parse_first_result(results, address: str) -> Coordinates:
        if not isinstance(results, list) or not results:
            raise ValidationError(
                message=f"No location found for '{address}'",
                code="GEOCODE_NOT_FOUND",
                field="address",
            )

        first = results[0]
        try:
            lat = float(first["lat"])
            lng = float(first["lon"])
            return Coordinates(lat=lat, lng=lng)
        except (KeyError, TypeError, ValueError):
            raise ValidationError(
                message=f"Geocoding returned invalid coordinates for '{address}'",
                code="GEOCODE_INVALID",
                field="address",
            )

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, TransientGeocodingError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=settings.retry_jitter,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _search_with_retry(self, address: str, request_id: str):
        start_time = time.time()
        params = {"format": "jsonv2", "limit": 1, "q": address}
        headers = {
            "Accept": "application/json",
            "Accept-Language": settings.geocoding_language,
            "User-Agent": settings.geocoding_user_agent,
        }

        async with httpx.AsyncClient(
            timeout=settings.geocoding_timeout,
            transport=self._transport,
        ) as client:
            response = await client.get(settings.geocoding_url, params=params, headers=headers)

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code == 429 or response.status_code >= 500:
            logger.warning(
                "[%s] Geocoding answered %d after %.0fms",
                request_id,
                response.status_code,
                duration_ms,
            )
            raise TransientGeocodingError(response.status_code)

        response.raise_for_status()
        logger.info("[%s] Geocoded '%s' in %.0fms", request_id, address, duration_ms)
        return response.json()


# ── Singleton Instance ────────────────────────────────────────────────────
geocoding_service = NominatimGeocoder()
