"""Location irradiance lookup with TTL cache and regional fallback.

Results are cached per coordinate rounded to two decimals. On any fetch
or parse failure the region's default irradiance is returned with
``source="default"``; the lookup never raises.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

import httpx

from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import LocationIrradiance
from solar_engine.weather.nasa_power import (
    NASA_POWER_DAILY_URL,
    fetch_nasa_power_daily,
    summarize_daily_ghi,
)

logger = logging.getLogger(__name__)

Fetcher = Callable[[float, float], Awaitable[dict[str, float]]]


def default_irradiance(region: RegionProfile = DEFAULT_REGION) -> LocationIrradiance:
    return LocationIrradiance(
        peak_sun_hours=region.peak_sun_hours,
        pv_potential_kwh_per_kwp=region.pv_potential_kwh_per_kwp,
        annual_ghi_kwh_m2=region.annual_ghi_kwh_m2,
        monthly_ghi=(),
        source="default",
    )


class IrradianceService:
    def __init__(
        self,
        region: RegionProfile = DEFAULT_REGION,
        *,
        ttl_seconds: float = 86_400.0,
        url: str = NASA_POWER_DAILY_URL,
        timeout: float = 30.0,
        fetcher: Fetcher | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._region = region
        self._ttl = ttl_seconds
        self._url = url
        self._timeout = timeout
        self._fetcher = fetcher
        self._clock = clock
        self._cache: dict[tuple[float, float], tuple[float, LocationIrradiance]] = {}

    async def _fetch(self, lat: float, lon: float) -> dict[str, float]:
        if self._fetcher is not None:
            return await self._fetcher(lat, lon)
        return await fetch_nasa_power_daily(lat, lon, base_url=self._url, timeout=self._timeout)

    async def lookup(self, lat: float, lon: float) -> LocationIrradiance:
        key = (round(lat, 2), round(lon, 2))
        now = self._clock()

        cached = self._cache.get(key)
        if cached is not None and now - cached[0] < self._ttl:
            _, value = cached
            return LocationIrradiance(
                peak_sun_hours=value.peak_sun_hours,
                pv_potential_kwh_per_kwp=value.pv_potential_kwh_per_kwp,
                annual_ghi_kwh_m2=value.annual_ghi_kwh_m2,
                monthly_ghi=value.monthly_ghi,
                source="cached",
            )

        try:
            series = await self._fetch(lat, lon)
            summary = summarize_daily_ghi(series)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("NASA POWER lookup failed, using %s defaults: %s", self._region.name, exc)
            return default_irradiance(self._region)

        value = LocationIrradiance(
            peak_sun_hours=summary["peak_sun_hours"],
            pv_potential_kwh_per_kwp=summary["pv_potential_kwh_per_kwp"],
            annual_ghi_kwh_m2=summary["annual_ghi_kwh_m2"],
            monthly_ghi=tuple(summary["monthly_ghi"]),
            source="nasa",
        )
        self._cache[key] = (now, value)
        return value

    def clear(self) -> None:
        self._cache.clear()
