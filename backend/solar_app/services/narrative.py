"""Short homeowner-facing summary of a recommendation.

One text-generation call built from the already-computed figures. On any
failure, SDK surprises included, a deterministic template with the same
figures is returned instead, so the summary is never empty.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from solar_engine.economics.projection import FinancialProjection
from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.records import RoofRecord

from solar_app.inference.errors import ProviderError
from solar_app.inference.prompts import narrative_prompt
from solar_app.inference.providers import InferenceProvider, Route

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Narrative:
    text: str
    used_inference: bool
    route: Route | None = None


def template_summary(
    financials: FinancialProjection,
    roof: RoofRecord,
    system_kw: float,
    location: str,
    region: RegionProfile = DEFAULT_REGION,
) -> str:
    """Deterministic fallback summary; identical inputs give identical text."""
    if financials.payback_years is not None:
        payback = f"pays for itself in about {financials.payback_years:.1f} years"
    else:
        payback = "offers long-term energy independence"
    return (
        f"A {system_kw:.1f} kW solar system on your {roof.area_m2:.0f} m² roof in "
        f"{location} costs about ${financials.installed_cost:,.0f} and saves roughly "
        f"${financials.annual_savings:,.0f} a year on your {region.utility_name} bill. "
        f"It {payback} and delivers an estimated ${financials.savings_25yr:,.0f} "
        f"in savings over 25 years, while avoiding "
        f"{financials.annual_co2_offset_kg:,.0f} kg of CO2 every year."
    )


class NarrativeSummarizer:
    def __init__(
        self,
        providers: Mapping[str, InferenceProvider],
        routes: tuple[Route, ...],
        timeout: float,
        region: RegionProfile = DEFAULT_REGION,
    ):
        self._providers = providers
        self._routes = routes
        self._timeout = timeout
        self._region = region

    # One call per summary: the first route whose provider has credentials
    def _first_configured(self) -> tuple[Route, InferenceProvider] | None:
        for route in self._routes:
            provider = self._providers.get(route.provider)
            if provider is not None and provider.configured:
                return route, provider
        return None

    async def summarize(
        self,
        financials: FinancialProjection,
        roof: RoofRecord,
        system_kw: float,
        location: str,
        *,
        panel_count: int,
        annual_production_kwh: float,
        suitability_score: int,
    ) -> Narrative:
        fallback = template_summary(financials, roof, system_kw, location, self._region)

        selected = self._first_configured()
        if selected is None:
            return Narrative(fallback, used_inference=False)
        route, provider = selected

        prompt = narrative_prompt(
            location=location,
            region=self._region,
            system_kw=system_kw,
            panel_count=panel_count,
            annual_production_kwh=annual_production_kwh,
            installed_cost=financials.installed_cost,
            annual_savings=financials.annual_savings,
            payback_years=financials.payback_years,
            savings_25yr=financials.savings_25yr,
            roi_pct=financials.roi_pct,
            co2_offset_kg=financials.annual_co2_offset_kg,
            suitability_score=suitability_score,
        )
        try:
            text = await asyncio.wait_for(
                provider.generate_text(route.model, prompt), timeout=self._timeout
            )
        except (ProviderError, TimeoutError) as exc:
            logger.warning("Narrative via %s failed, using template: %s: %s", route, type(exc).__name__, exc)
            return Narrative(fallback, used_inference=False)
        except Exception:
            logger.exception("Unexpected error from narrative route %s, using template", route)
            return Narrative(fallback, used_inference=False)

        text = text.strip()
        if not text:
            return Narrative(fallback, used_inference=False)
        return Narrative(text, used_inference=True, route=route)
