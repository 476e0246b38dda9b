from dataclasses import asdict

from pydantic import BaseModel

from solar_engine.roof.records import RoofRecord, Suggestion

from solar_app.services.analysis_pipeline import AnalysisFailure, AnalysisSuccess


class SuggestionResponse(BaseModel):
    category: str
    title: str
    description: str
    priority: str
    estimated_gain_pct: float | None = None
    estimated_cost: float | None = None


class RoofRecordResponse(BaseModel):
    area_m2: float
    usable_pct: float
    usable_area_m2: float
    shading: str
    pitch_deg: float
    complexity: str
    orientation: str
    obstacles: list[str]
    estimated_panel_count: int
    optimal_tilt_deg: float
    confidence: float
    panel_type: str
    roof_material: str


class ExistingInstallationResponse(BaseModel):
    current_panel_count: int
    estimated_system_kw: float
    current_efficiency_pct: float
    potential_efficiency_pct: float
    panel_condition: str
    density_truncated: bool


class SystemSpecsResponse(BaseModel):
    panel_count: int
    system_kw: float
    roof_area_used_m2: float
    annual_production_kwh: float
    panel_wattage_w: float
    monthly_production_kwh: list[float]


class IncentiveResponse(BaseModel):
    name: str
    description: str
    amount: float | None = None
    url: str | None = None


class FinancialProjectionResponse(BaseModel):
    installed_cost: float
    cost_range_low: float
    cost_range_high: float
    annual_savings: float
    monthly_savings: float
    payback_years: float | None
    savings_25yr: float
    roi_pct: float
    annual_co2_offset_kg: float
    lifetime_co2_offset_kg: float
    tree_equivalent: float
    lifetime_production_kwh: float
    savings_capped: bool
    estimated_annual_consumption_kwh: float | None = None
    coverage_pct: float | None = None
    incentives: list[IncentiveResponse]


class ImprovementAssessmentResponse(BaseModel):
    current_system_kw: float
    panel_range: tuple[int, int]
    system_kw_range: tuple[float, float]
    current_production_kwh: float
    potential_production_kwh: float
    additional_production_kwh: float
    additional_annual_savings: float
    improvement_cost: float
    payback_years: float | None


class LocationResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: str
    used_real_geocoding: bool
    peak_sun_hours: float
    pv_potential_kwh_per_kwp: float
    irradiance_source: str


class AnalysisResponse(BaseModel):
    success: bool = True
    mode: str
    roof_record: RoofRecordResponse | None = None
    existing_installation_record: ExistingInstallationResponse | None = None
    system_specs: SystemSpecsResponse | None = None
    financial_projection: FinancialProjectionResponse | None = None
    improvement_assessment: ImprovementAssessmentResponse | None = None
    suggestions: list[SuggestionResponse]
    suitability_score: int
    explanation: str
    layout: str | None = None
    narrative_summary: str
    narrative_used_inference: bool
    confidence: float
    used_inference: bool
    image_count: int = 1
    location: LocationResponse
    notes: list[str] = []


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

def _suggestion(s: Suggestion) -> SuggestionResponse:
    return SuggestionResponse(
        category=s.category,
        title=s.title,
        description=s.description,
        priority=s.priority.value,
        estimated_gain_pct=s.estimated_gain_pct,
        estimated_cost=s.estimated_cost,
    )


def _roof(roof: RoofRecord) -> RoofRecordResponse:
    return RoofRecordResponse(
        area_m2=roof.area_m2,
        usable_pct=roof.usable_pct,
        usable_area_m2=round(roof.usable_area_m2, 1),
        shading=roof.shading.value,
        pitch_deg=roof.pitch_deg,
        complexity=roof.complexity.value,
        orientation=roof.orientation.value,
        obstacles=list(roof.obstacles),
        estimated_panel_count=roof.estimated_panel_count,
        optimal_tilt_deg=roof.optimal_tilt_deg,
        confidence=roof.confidence,
        panel_type=roof.panel_type.value,
        roof_material=roof.roof_material.value,
    )


def to_response(result: AnalysisSuccess) -> AnalysisResponse:
    location = LocationResponse(
        latitude=result.location.latitude,
        longitude=result.location.longitude,
        formatted_address=result.location.formatted_address,
        used_real_geocoding=result.location.used_real_geocoding,
        peak_sun_hours=result.irradiance.peak_sun_hours,
        pv_potential_kwh_per_kwp=result.irradiance.pv_potential_kwh_per_kwp,
        irradiance_source=result.irradiance.source,
    )

    common = dict(
        mode=result.mode.value,
        roof_record=_roof(result.roof),
        suitability_score=result.suitability_score,
        explanation=result.explanation,
        narrative_summary=result.narrative,
        narrative_used_inference=result.narrative_used_inference,
        confidence=result.confidence,
        used_inference=result.used_inference,
        image_count=result.image_count,
        location=location,
    )

    if result.recommendation is not None:
        rec = result.recommendation
        financials = asdict(rec.financials)
        financials["incentives"] = [IncentiveResponse(**i) for i in rec.financials.incentives]
        specs = asdict(rec.specs)
        specs["monthly_production_kwh"] = list(rec.specs.monthly_production_kwh)
        return AnalysisResponse(
            **common,
            system_specs=SystemSpecsResponse(**specs),
            financial_projection=FinancialProjectionResponse(**financials),
            suggestions=[_suggestion(s) for s in rec.suggestions],
            layout=rec.layout,
            notes=list(rec.notes),
        )

    existing = result.existing
    assessment = result.assessment
    existing_out = None
    if existing is not None:
        existing_out = ExistingInstallationResponse(
            current_panel_count=existing.current_panel_count,
            estimated_system_kw=existing.estimated_system_kw,
            current_efficiency_pct=existing.current_efficiency_pct,
            potential_efficiency_pct=existing.potential_efficiency_pct,
            panel_condition=existing.panel_condition.value,
            density_truncated=existing.density_truncated,
        )
    assessment_out = None
    suggestions: list[SuggestionResponse] = []
    if assessment is not None:
        data = asdict(assessment)
        data.pop("suggestions")
        assessment_out = ImprovementAssessmentResponse(**data)
        suggestions = [_suggestion(s) for s in assessment.suggestions]

    return AnalysisResponse(
        **common,
        existing_installation_record=existing_out,
        improvement_assessment=assessment_out,
        suggestions=suggestions,
    )


def to_error(failure: AnalysisFailure) -> ErrorResponse:
    return ErrorResponse(error=ErrorDetail(code=failure.kind.value, message=failure.message))
