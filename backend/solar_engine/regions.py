"""Regional presets for residential solar sizing.

Every domain constant the sizing, production and financial modules need
lives in a ``RegionProfile``: irradiance defaults, utility rates,
installation costs, panel specifications, climate factors, environmental
factors and the incentive programmes a homeowner can apply for.

The default preset is Prince Edward Island (Canada), served by Maritime
Electric.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Incentive:
    name: str
    available: bool
    description: str
    max_amount: float | None = None
    url: str | None = None


@dataclass(frozen=True)
class RegionProfile:
    """Constants for one service region.

    Monetary values are in the region's currency; energy in kWh, power
    in kW unless the field name says otherwise.
    """

    key: str
    name: str
    currency: str
    utility_name: str

    # Location (used as the geocoding fallback and for bounds checks)
    latitude: float
    longitude: float
    bounds: tuple[float, float, float, float]  # south, west, north, east

    # Irradiance
    annual_ghi_kwh_m2: float
    peak_sun_hours: float
    pv_potential_kwh_per_kwp: float
    optimal_tilt_deg: float
    monthly_peak_sun_hours: tuple[float, ...]

    # Utility
    electricity_rate: float
    annual_rate_escalation: float
    monthly_basic_charge: float

    # Installation
    cost_per_watt_low: float
    cost_per_watt_mid: float
    cost_per_watt_high: float
    panel_wattage_w: float
    panel_area_m2: float

    # Climate
    temperature_coefficient: float
    annual_degradation: float

    # Environment
    grid_emission_kg_per_kwh: float
    tree_co2_kg_per_year: float

    # Typical household (degraded-mode estimate)
    typical_roof_area_m2: float = 120.0
    typical_usable_pct: float = 70.0

    incentives: tuple[Incentive, ...] = field(default_factory=tuple)

    @property
    def panel_kw(self) -> float:
        return self.panel_wattage_w / 1000.0

    def contains(self, latitude: float, longitude: float) -> bool:
        """Return True when the point lies inside the region bounding box."""
        south, west, north, east = self.bounds
        return south <= latitude <= north and west <= longitude <= east


# ======================================================================
# Prince Edward Island (Maritime Electric)
# ======================================================================

PEI = RegionProfile(
    key="pei",
    name="Prince Edward Island",
    currency="CAD",
    utility_name="Maritime Electric",
    latitude=46.2382,
    longitude=-63.1311,
    bounds=(45.9, -64.5, 47.1, -61.9),
    annual_ghi_kwh_m2=1150.0,
    peak_sun_hours=3.7,
    pv_potential_kwh_per_kwp=1450.0,
    optimal_tilt_deg=44.0,
    monthly_peak_sun_hours=(
        2.0, 2.8, 3.5, 4.2, 4.8, 5.2, 5.1, 4.6, 3.8, 2.9, 2.0, 1.7,
    ),
    electricity_rate=0.1712,
    annual_rate_escalation=0.03,
    monthly_basic_charge=28.14,
    cost_per_watt_low=2.50,
    cost_per_watt_mid=3.00,
    cost_per_watt_high=3.50,
    panel_wattage_w=400.0,
    panel_area_m2=1.7,
    temperature_coefficient=1.02,  # cold-climate efficiency gain
    annual_degradation=0.005,
    grid_emission_kg_per_kwh=0.4,
    tree_co2_kg_per_year=21.0,
    incentives=(
        Incentive(
            name="Canada Greener Homes Loan",
            available=True,
            description=(
                "Interest-free loan up to $40,000 for energy-efficient home "
                "retrofits including solar panels."
            ),
            max_amount=40_000.0,
            url="https://natural-resources.canada.ca/energy-efficiency/homes/canada-greener-homes-loan/24376",
        ),
        Incentive(
            name="Net Metering Program",
            available=True,
            description=(
                "Maritime Electric offers net metering at the retail rate. Excess "
                "energy exported to the grid earns credits on your bill."
            ),
            url="https://www.maritimeelectric.com/save-energy/net-metering",
        ),
    ),
)


PRESETS: dict[str, RegionProfile] = {
    PEI.key: PEI,
}

DEFAULT_REGION = PEI


def get_region(key: str | None) -> RegionProfile:
    """Look up a region preset by key, falling back to the default."""
    if not key:
        return DEFAULT_REGION
    try:
        return PRESETS[key.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown region '{key}'. Available: {', '.join(sorted(PRESETS))}"
        ) from None
