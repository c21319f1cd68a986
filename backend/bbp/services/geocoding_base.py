"""
Best Bike Paths Backend - Abstract Geocoder Interface
======================================================

What:  Contract for turning a free-text address into coordinates.
How:   Concrete providers inherit from Geocoder and implement geocode().
Who:   Called by PathService to resolve search origins and destinations.

The path-health engine treats geocoding as a black box: it only ever sees
the returned coordinates.
"""

from abc import ABC, abstractmethod

from bbp.schemas.common import Coordinates, GeocoderCircuitState


class Geocoder(ABC):
    """
    Contract:
        - geocode() returns exactly one best match
        - implementations own their retry and circuit-breaker policy
        - provider failures surface as GeocodingError or
          CircuitBreakerOpenError; bad input as ValidationError

    Implementations:
        - NominatimGeocoder: OpenStreetMap Nominatim search API (default)
    """

    @abstractmethod
    async def geocode(self, query: str) -> Coordinates:
        """
        Resolves an address to its best-matching coordinates.

        Raises:
            ValidationError: empty query (MISSING_ADDRESS), no match
                (GEOCODE_NOT_FOUND) or unusable coordinates (GEOCODE_INVALID)
            GeocodingError: provider unreachable after all retries
            CircuitBreakerOpenError: too many recent provider failures
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """True unless the provider is known to be failing. Never calls out."""
        ...

    @abstractmethod
    def circuit_state(self) -> GeocoderCircuitState:
        """Breaker snapshot for the health endpoint."""
        ...
