"""NASA POWER daily irradiance client.

Fetches the past year of daily all-sky surface shortwave irradiance
(``ALLSKY_SFC_SW_DWN``, kWh/m²/day) for a point and reduces it to the
figures the sizing engine needs: peak sun hours, annual GHI, a monthly
profile and the photovoltaic potential (kWh per installed kW per year).
"""

from __future__ import annotations

from datetime import date, timedelta

import httpx
import numpy as np

NASA_POWER_DAILY_URL = "https://power.larc.nasa.gov/api/temporal/daily/point"
GHI_PARAMETER = "ALLSKY_SFC_SW_DWN"

# NASA POWER fill value for missing days
MISSING_VALUE = -999.0

# Peak sun hours are clamped to this range
PSH_MIN = 2.5
PSH_MAX = 5.5

# System performance ratio: annual GHI -> kWh per kWp
PERFORMANCE_RATIO = 0.80


async def fetch_nasa_power_daily(
    lat: float,
    lon: float,
    *,
    end: date | None = None,
    client: httpx.AsyncClient | None = None,
    base_url: str = NASA_POWER_DAILY_URL,
    timeout: float = 30.0,
) -> dict[str, float]:
    """Fetch one year of daily GHI ending at ``end`` (default: today).

    Returns a mapping of ``YYYYMMDD`` -> kWh/m²/day, missing days included
    as ``MISSING_VALUE``.
    """
    end = end or date.today()
    start = end - timedelta(days=365)
    params = {
        "parameters": GHI_PARAMETER,
        "community": "RE",
        "longitude": lon,
        "latitude": lat,
        "start": start.strftime("%Y%m%d"),
        "end": end.strftime("%Y%m%d"),
        "format": "JSON",
    }

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            response = await own_client.get(base_url, params=params)
    else:
        response = await client.get(base_url, params=params, timeout=timeout)
    response.raise_for_status()

    data = response.json()
    raw = data["properties"]["parameter"][GHI_PARAMETER]
    return {str(k): float(v) for k, v in raw.items()}


def summarize_daily_ghi(series: dict[str, float]) -> dict:
    """Reduce a daily GHI series to sizing inputs.

    Missing markers (``-999``) and negative values are dropped. Peak sun
    hours equal the mean daily GHI, clamped to [PSH_MIN, PSH_MAX].

    Returns dict with keys: peak_sun_hours, annual_ghi_kwh_m2,
    monthly_ghi (12 daily means, kWh/m²/day), pv_potential_kwh_per_kwp,
    valid_days.

    Raises ValueError if no valid day remains.
    """
    keys = sorted(series)
    values = np.array([series[k] for k in keys], dtype=np.float64)
    valid = values > MISSING_VALUE + 1.0
    valid &= values >= 0.0
    if not np.any(valid):
        raise ValueError("no valid daily GHI values")

    daily_mean = float(np.mean(values[valid]))
    annual_ghi = daily_mean * 365.0

    months = np.array([int(k[4:6]) for k in keys])
    monthly = []
    for m in range(1, 13):
        mask = valid & (months == m)
        monthly.append(round(float(np.mean(values[mask])), 2) if np.any(mask) else round(daily_mean, 2))

    return {
        "peak_sun_hours": round(min(max(daily_mean, PSH_MIN), PSH_MAX), 2),
        "annual_ghi_kwh_m2": round(annual_ghi, 1),
        "monthly_ghi": monthly,
        "pv_potential_kwh_per_kwp": round(annual_ghi * PERFORMANCE_RATIO, 1),
        "valid_days": int(np.count_nonzero(valid)),
    }
