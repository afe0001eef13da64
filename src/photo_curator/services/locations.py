"""Reverse geocoding into location tags."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from photo_curator.domain.errors import (
    InvalidCoordinatesError,
    MalformedResponseError,
    PermanentRemoteError,
    RateLimitedError,
    TransientRemoteError,
)
from photo_curator.domain.photos import Location
from photo_curator.services.metadata import is_valid_coordinate
from photo_curator.services.retry import RetryExecutor

_logger = logging.getLogger(__name__)

# Candidate sources per field, in priority order.
CITY_SOURCES = ("locality", "postal_town", "sublocality_level_1", "sublocality")
SUBLOCALITY_SOURCES = ("sublocality", "sublocality_level_1", "sublocality_level_2")
NEIGHBORHOOD_SOURCES = (
    "neighborhood",
    "sublocality_level_3",
    "sublocality_level_4",
    "sublocality_level_5",
    "administrative_area_level_2",
)
STATE_SOURCES = ("administrative_area_level_1", "administrative_area_level_2")

_RATE_LIMITED = {"OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT"}
_PERMANENT = {"REQUEST_DENIED", "INVALID_REQUEST"}


class GeocodeClient(Protocol):
    """Interface for reverse geocoding lookups."""

    async def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> dict[str, object]:
        """Return the raw reverse-geocoding payload."""


@dataclass
class LocationResolver:
    """Turns coordinates into a Location using the geocode client."""

    client: GeocodeClient
    retry: RetryExecutor

    async def resolve(self, latitude: float, longitude: float) -> Location | None:
        """Return the location at a coordinate, or None when nothing is there."""
        if not is_valid_coordinate(latitude, longitude):
            raise InvalidCoordinatesError(
                f"Invalid coordinates: {latitude}, {longitude}"
            )
        location = await self.retry.run(
            lambda: self._lookup(latitude, longitude), action="geocode"
        )
        if location is None:
            _logger.info("No geocoding result for %s, %s", latitude, longitude)
        return location

    async def _lookup(self, latitude: float, longitude: float) -> Location | None:
        payload = await self.client.reverse_geocode(latitude, longitude)
        status = str(payload.get("status", ""))
        if status == "ZERO_RESULTS":
            return None
        if status in _RATE_LIMITED:
            raise RateLimitedError(f"Geocoding quota: {status}", service="geocode")
        if status in _PERMANENT:
            raise PermanentRemoteError(
                f"Geocoding refused: {status}", service="geocode"
            )
        if status != "OK":
            raise TransientRemoteError(f"Geocoding failed: {status}", service="geocode")
        results = payload.get("results")
        if not isinstance(results, list) or not results:
            return None
        return parse_location(results[0])


def parse_location(result: dict[str, object]) -> Location:
    """Resolve a Location from one geocoding result."""
    components = result.get("address_components")
    if not isinstance(components, list):
        raise MalformedResponseError(
            "Invalid address components received from API", service="geocode"
        )
    address = str(result.get("formatted_address") or "")
    is_usa = "USA" in address

    city = _first_name(components, CITY_SOURCES)
    sublocality = _first_name(components, SUBLOCALITY_SOURCES)
    state = _first_name(components, ("administrative_area_level_1",), short=is_usa)
    if state is None:
        state = _first_name(components, STATE_SOURCES[1:])
    return Location(
        address=address or None,
        city=city,
        state=state,
        country=_first_name(components, ("country",)),
        postal_code=_first_name(components, ("postal_code",)),
        neighborhood=_first_name(components, NEIGHBORHOOD_SOURCES),
        sublocality=sublocality,
    )


def _first_name(
    components: list[dict[str, object]], sources: Sequence[str], *, short: bool = False
) -> str | None:
    for source in sources:
        for component in components:
            types = component.get("types")
            if not isinstance(types, list) or source not in types:
                continue
            name = component.get("short_name" if short else "long_name")
            if name:
                return str(name)
    return None


def format_place(location_tag: str | None, city: str | None, state: str | None) -> str:
    """Return "City, State" for overlays, falling back to the location tag."""
    place = city or location_tag
    parts = [part for part in (place, state) if part]
    return ", ".join(parts)
