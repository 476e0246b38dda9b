"""Address geocoding with a regional fallback.

Best effort: any failure (missing key, HTTP error, non-OK status, result
outside the region) returns the region's default coordinates with
``used_real_geocoding=False``. Never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from solar_engine.regions import DEFAULT_REGION, RegionProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Address:
    street: str
    city: str
    postal_code: str = ""
    country: str = "Canada"

    def formatted(self) -> str:
        parts = [self.street, self.city, self.postal_code, self.country]
        return ", ".join(p.strip() for p in parts if p and p.strip())


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str
    used_real_geocoding: bool


class GeocodingService:
    def __init__(
        self,
        api_key: str | None,
        url: str,
        region: RegionProfile = DEFAULT_REGION,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._url = url
        self._region = region
        self._client = client
        self._timeout = timeout

    def _fallback(self, address: Address, reason: str) -> GeocodeResult:
        logger.warning("Geocoding fell back to %s defaults: %s", self._region.name, reason)
        return GeocodeResult(
            latitude=self._region.latitude,
            longitude=self._region.longitude,
            formatted_address=address.formatted(),
            used_real_geocoding=False,
        )

    async def _get(self, params: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self._url, params=params, timeout=self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.get(self._url, params=params)

    async def geocode(self, address: Address) -> GeocodeResult:
        if not self._api_key:
            return self._fallback(address, "no geocoding API key configured")

        south, west, north, east = self._region.bounds
        params = {
            "address": address.formatted(),
            "key": self._api_key,
            "bounds": f"{south},{west}|{north},{east}",
        }
        try:
            response = await self._get(params)
            response.raise_for_status()
            data = response.json()
            status = data.get("status")
            if status != "OK" or not data.get("results"):
                return self._fallback(address, f"status {status}")
            top = data["results"][0]
            location = top["geometry"]["location"]
            lat = float(location["lat"])
            lon = float(location["lng"])
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            return self._fallback(address, f"{type(exc).__name__}: {exc}")

        if not self._region.contains(lat, lon):
            return self._fallback(address, f"({lat:.4f}, {lon:.4f}) outside {self._region.name}")

        return GeocodeResult(
            latitude=lat,
            longitude=lon,
            formatted_address=top.get("formatted_address") or address.formatted(),
            used_real_geocoding=True,
        )
