"""Installed cost, savings and 25-year projection."""

from .projection import (
    FinancialProjection,
    cumulative_savings,
    installed_cost,
    project_financials,
    yearly_savings,
)

__all__ = [
    "FinancialProjection",
    "cumulative_savings",
    "installed_cost",
    "project_financials",
    "yearly_savings",
]
