"""Google Geocoding API client."""

from dataclasses import dataclass

import httpx

from photo_curator.adapters.http_errors import send
from photo_curator.services.locations import GeocodeClient


@dataclass
class HttpxGeocodeClient(GeocodeClient):
    """HTTPX-backed reverse geocoding client."""

    api_key: str
    http_client: httpx.AsyncClient
    base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"

    @classmethod
    def create(cls, api_key: str) -> "HttpxGeocodeClient":
        """Create a geocoding client with a managed httpx session."""
        return cls(api_key=api_key, http_client=httpx.AsyncClient())

    async def reverse_geocode(
        self, latitude: float, longitude: float
    ) -> dict[str, object]:
        """Look up the address at a coordinate."""
        response = await send(
            self.http_client,
            "GET",
            self.base_url,
            service="geocode",
            params={"latlng": f"{latitude},{longitude}", "key": self.api_key},
            timeout=5,
        )
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
