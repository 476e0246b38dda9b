"""Tests for the 25-year financial projection."""

import pytest

from solar_engine.economics.projection import (
    PROJECTION_YEARS,
    available_incentives,
    cumulative_savings,
    estimate_annual_consumption,
    installed_cost,
    lifetime_production_kwh,
    project_financials,
    yearly_savings,
)
from solar_engine.roof.records import PanelType, RoofMaterial


class TestSavingsSchedule:
    def test_closed_form(self):
        s, d, r = 1000.0, 0.005, 0.03
        expected = s * sum(((1 - d) * (1 + r)) ** y for y in range(25))
        assert cumulative_savings(s, d, r) == pytest.approx(expected)

    def test_first_year_is_undiscounted(self):
        schedule = yearly_savings(1200.0, 0.005, 0.03)
        assert len(schedule) == PROJECTION_YEARS
        assert schedule[0]["year"] == 1
        assert schedule[0]["savings"] == pytest.approx(1200.0)
        assert schedule[-1]["cumulative"] == pytest.approx(sum(row["savings"] for row in schedule))

    def test_no_escalation_no_degradation(self):
        assert cumulative_savings(500.0, 0.0, 0.0, years=10) == pytest.approx(5000.0)

    def test_zero_years(self):
        assert cumulative_savings(500.0, 0.01, 0.02, years=0) == 0.0

    def test_lifetime_production_degrades(self):
        total = lifetime_production_kwh(8000.0, 0.005)
        assert 8000.0 * 23 < total < 8000.0 * 25


class TestCosts:
    def test_installed_cost_factors(self):
        base = installed_cost(7.2, 3.0, PanelType.PREMIUM, RoofMaterial.SHINGLE)
        assert base == pytest.approx(21600.0)
        assert installed_cost(7.2, 3.0, PanelType.STANDARD) == pytest.approx(21600.0 * 0.93)
        assert installed_cost(7.2, 3.0, PanelType.PREMIUM, RoofMaterial.TILE) == pytest.approx(21600.0 * 1.15)

    def test_consumption_from_bill(self, region):
        kwh = estimate_annual_consumption(150.0, region)
        assert kwh == pytest.approx((150.0 - region.monthly_basic_charge) * 12 / region.electricity_rate)

    def test_consumption_never_negative(self, region):
        assert estimate_annual_consumption(10.0, region) == 0.0

    def test_loan_incentive_capped_at_cost(self, region):
        incentives = available_incentives(region, 15_000.0)
        loan = next(i for i in incentives if i["amount"] is not None)
        assert loan["amount"] == 15_000.0


class TestProjectFinancials:
    def test_uncapped_without_bill(self, region):
        fin = project_financials(7.2, 8460.0, region)
        assert fin.annual_savings == pytest.approx(8460.0 * region.electricity_rate, abs=0.01)
        assert fin.savings_capped is False
        assert fin.coverage_pct is None
        assert fin.estimated_annual_consumption_kwh is None
        assert fin.monthly_savings == pytest.approx(fin.annual_savings / 12, abs=0.01)

    def test_savings_capped_at_annual_bill(self, region):
        fin = project_financials(7.2, 8460.0, region, monthly_bill=60.0)
        assert fin.annual_savings == pytest.approx(720.0)
        assert fin.savings_capped is True

    def test_savings_never_exceed_bill(self, region, rng):
        for bill in rng.uniform(30.0, 400.0, 50):
            fin = project_financials(8.0, 9400.0, region, monthly_bill=float(bill))
            assert fin.annual_savings <= float(bill) * 12 + 0.01

    def test_coverage_bounded(self, region):
        fin = project_financials(7.2, 8460.0, region, monthly_bill=80.0)
        assert 0 < fin.coverage_pct <= 100.0

    def test_cost_range_brackets_installed_cost(self, region):
        fin = project_financials(7.2, 8460.0, region, panel_type=PanelType.HIGH_EFFICIENCY)
        assert fin.cost_range_low < fin.installed_cost < fin.cost_range_high

    def test_payback_and_roi(self, region):
        fin = project_financials(7.2, 8460.0, region)
        assert fin.payback_years == pytest.approx(fin.installed_cost / fin.annual_savings, abs=0.1)
        expected_roi = (fin.savings_25yr - fin.installed_cost) / fin.installed_cost * 100
        assert fin.roi_pct == pytest.approx(expected_roi, abs=0.1)

    def test_roi_may_be_negative(self, region):
        fin = project_financials(7.2, 8460.0, region, monthly_bill=35.0)
        assert fin.roi_pct < 0

    def test_environmental_figures(self, region):
        fin = project_financials(7.2, 8460.0, region)
        assert fin.annual_co2_offset_kg == pytest.approx(8460.0 * region.grid_emission_kg_per_kwh, abs=0.1)
        assert fin.tree_equivalent == pytest.approx(
            fin.annual_co2_offset_kg / region.tree_co2_kg_per_year, abs=0.1
        )
        assert fin.lifetime_co2_offset_kg > fin.annual_co2_offset_kg * 20

    @pytest.mark.parametrize("bill", [0.0, -20.0])
    def test_non_positive_bill_rejected(self, region, bill):
        with pytest.raises(ValueError):
            project_financials(7.2, 8460.0, region, monthly_bill=bill)

    def test_incentives_listed(self, region):
        fin = project_financials(7.2, 8460.0, region)
        assert len(fin.incentives) >= 1
        assert all("name" in i for i in fin.incentives)
