"""End-to-end analysis of a rooftop from one or more photos.

    media check -> (inference || geocode + irradiance) -> engine -> narrative

Several photos of one roof are analyzed one after another and merged by
confidence. Inference and the location lookup run concurrently and are
joined before sizing. Business rejections and operational exhaustion come back as
``AnalysisFailure`` values; only programming defects escape as exceptions.
Cancelling ``run`` cancels every in-flight provider call.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, replace

from solar_engine.advisor.improvements import ImprovementAssessment, assess_existing_installation
from solar_engine.advisor.recommend import (
    Recommendation,
    bounded_irradiance,
    default_roof_record,
    size,
)
from solar_engine.advisor.scoring import explain_score, suitability_score
from solar_engine.exceptions import EngineInvariantViolation
from solar_engine.regions import DEFAULT_REGION, RegionProfile
from solar_engine.roof.combine import combine_roof_records
from solar_engine.roof.records import (
    AnalysisMode,
    ExistingInstallationRecord,
    LocationIrradiance,
    RoofRecord,
)

from solar_app.inference.orchestrator import InferenceOrchestrator
from solar_app.inference.outcomes import (
    USER_MESSAGES,
    Attempt,
    Exhausted,
    FailureKind,
    OrchestratorResult,
    Rejected,
    Succeeded,
)
from solar_app.services.geocoding import Address, GeocodeResult, GeocodingService
from solar_app.services.irradiance_service import IrradianceService
from solar_app.services.narrative import NarrativeSummarizer

logger = logging.getLogger(__name__)

OVERSIZE_REASON = "payload too large"
MAX_IMAGES = 3

_MAGIC = {
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/png": (b"\x89PNG\r\n\x1a\n",),
}


@dataclass(frozen=True)
class ImageUpload:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class AnalysisRequest:
    image: bytes
    mime_type: str
    address: Address
    mode: AnalysisMode = AnalysisMode.NEW
    monthly_bill: float | None = None
    # Further photos of the same roof, new-installation mode only
    extra_images: tuple[ImageUpload, ...] = ()

    def __post_init__(self):
        if self.monthly_bill is not None and not (
            math.isfinite(self.monthly_bill) and self.monthly_bill > 0
        ):
            raise ValueError(f"monthly_bill must be a positive amount, got {self.monthly_bill!r}")

    @property
    def uploads(self) -> tuple[ImageUpload, ...]:
        return (ImageUpload(self.image, self.mime_type),) + self.extra_images


@dataclass(frozen=True)
class AnalysisSuccess:
    mode: AnalysisMode
    roof: RoofRecord
    confidence: float
    used_inference: bool
    narrative: str
    narrative_used_inference: bool
    location: GeocodeResult
    irradiance: LocationIrradiance
    suitability_score: int
    explanation: str
    recommendation: Recommendation | None = None
    existing: ExistingInstallationRecord | None = None
    assessment: ImprovementAssessment | None = None
    attempts: tuple[Attempt, ...] = ()
    image_count: int = 1


@dataclass(frozen=True)
class AnalysisFailure:
    kind: FailureKind
    message: str
    reason: str = ""
    attempts: tuple[Attempt, ...] = ()


AnalysisResult = AnalysisSuccess | AnalysisFailure


def _matches_magic(image: bytes, mime_type: str) -> bool:
    signatures = _MAGIC.get(mime_type)
    if signatures is None:
        return True
    return any(image.startswith(sig) for sig in signatures)


def improvement_summary(assessment: ImprovementAssessment, location: str) -> str:
    return (
        f"Your {assessment.current_system_kw:.1f} kW system in {location} produces about "
        f"{assessment.current_production_kwh:,.0f} kWh a year. The suggested improvements "
        f"could add {assessment.additional_production_kwh:,.0f} kWh and "
        f"${assessment.additional_annual_savings:,.0f} in annual savings."
    )


class AnalysisPipeline:
    def __init__(
        self,
        orchestrator: InferenceOrchestrator,
        geocoder: GeocodingService,
        irradiance: IrradianceService,
        narrator: NarrativeSummarizer,
        region: RegionProfile = DEFAULT_REGION,
        *,
        max_upload_bytes: int = 10 * 1024 * 1024,
        allowed_mime_types: frozenset[str] = frozenset({"image/jpeg", "image/png"}),
        allow_degraded_estimate: bool = False,
        adjust_production: bool = False,
    ):
        self.orchestrator = orchestrator
        self.geocoder = geocoder
        self.irradiance = irradiance
        self.narrator = narrator
        self.region = region
        self.max_upload_bytes = max_upload_bytes
        self.allowed_mime_types = allowed_mime_types
        self.allow_degraded_estimate = allow_degraded_estimate
        self.adjust_production = adjust_production

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def check_media(self, image: bytes, mime_type: str) -> AnalysisFailure | None:
        mime = (mime_type or "").lower()
        if mime not in self.allowed_mime_types:
            return self._failure(FailureKind.UNSUPPORTED_MEDIA, f"unsupported type {mime or 'unknown'}")
        if not image:
            return self._failure(FailureKind.UNSUPPORTED_MEDIA, "empty upload")
        if len(image) > self.max_upload_bytes:
            return self._failure(FailureKind.UNSUPPORTED_MEDIA, OVERSIZE_REASON)
        if not _matches_magic(image, mime):
            return self._failure(FailureKind.UNSUPPORTED_MEDIA, f"content is not {mime}")
        return None

    async def _locate(self, address: Address) -> tuple[GeocodeResult, LocationIrradiance]:
        geo = await self.geocoder.geocode(address)
        irradiance = await self.irradiance.lookup(geo.latitude, geo.longitude)
        return geo, irradiance

    @staticmethod
    def _failure(
        kind: FailureKind,
        reason: str,
        attempts: tuple[Attempt, ...] = (),
    ) -> AnalysisFailure:
        return AnalysisFailure(kind, USER_MESSAGES[kind], reason, attempts)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def check_uploads(self, request: AnalysisRequest) -> AnalysisFailure | None:
        uploads = request.uploads
        if len(uploads) > MAX_IMAGES:
            return self._failure(FailureKind.UNSUPPORTED_MEDIA, f"at most {MAX_IMAGES} images")
        if len(uploads) > 1 and request.mode is AnalysisMode.EXISTING:
            return self._failure(
                FailureKind.UNSUPPORTED_MEDIA, "existing-installation analysis takes one image"
            )
        for upload in uploads:
            failure = self.check_media(upload.data, upload.mime_type)
            if failure is not None:
                return failure
        return None

    async def _infer(
        self,
        uploads: tuple[ImageUpload, ...],
        mode: AnalysisMode,
        request_id: str,
    ) -> OrchestratorResult:
        """Analyze each photo in turn and merge the usable readings.

        A photo that is rejected or exhausts the routes is skipped, except
        that panels already on the roof end the request. With no usable
        photo the first photo's outcome is returned.
        """
        if len(uploads) == 1:
            only = uploads[0]
            return await self.orchestrator.analyze(only.data, only.mime_type.lower(), mode, request_id)

        outcomes: list[OrchestratorResult] = []
        for index, upload in enumerate(uploads, start=1):
            outcome = await self.orchestrator.analyze(
                upload.data, upload.mime_type.lower(), mode, request_id
            )
            if isinstance(outcome, Rejected) and outcome.kind is FailureKind.EXISTING_PANELS_DETECTED:
                return outcome
            if not isinstance(outcome, Succeeded):
                logger.info("Photo %d of %d not usable: %s", index, len(uploads), outcome.kind.value)
            outcomes.append(outcome)

        attempts = tuple(a for o in outcomes for a in o.attempts)
        usable = [o for o in outcomes if isinstance(o, Succeeded)]
        if not usable:
            return replace(outcomes[0], attempts=attempts)

        best = max(usable, key=lambda o: o.record.confidence)
        record = combine_roof_records([o.record for o in usable])
        logger.info("Combined %d of %d photos, confidence %.0f", len(usable), len(uploads), record.confidence)
        return Succeeded(record, best.route, attempts)

    async def run(self, request: AnalysisRequest, request_id: str = "") -> AnalysisResult:
        failure = self.check_uploads(request)
        if failure is not None:
            logger.info("Rejected upload: %s", failure.reason)
            return failure

        async with asyncio.TaskGroup() as tg:
            inference_task = tg.create_task(self._infer(request.uploads, request.mode, request_id))
            location_task = tg.create_task(self._locate(request.address))

        outcome = inference_task.result()
        geo, irradiance = location_task.result()
        location = geo.formatted_address or request.address.city

        if isinstance(outcome, Rejected):
            return self._failure(outcome.kind, outcome.reason, outcome.attempts)

        if isinstance(outcome, Exhausted):
            if self.allow_degraded_estimate and request.mode is AnalysisMode.NEW:
                logger.warning("Inference exhausted (%s); returning degraded estimate", outcome.last_error)
                return await self._recommend(
                    default_roof_record(self.region), request, geo, irradiance, location,
                    used_inference=False, attempts=outcome.attempts,
                )
            return self._failure(outcome.kind, outcome.last_error or "", outcome.attempts)

        record = outcome.record
        if isinstance(record, ExistingInstallationRecord):
            return self._assess(record, geo, irradiance, location, outcome.attempts)
        return await self._recommend(
            record, request, geo, irradiance, location,
            used_inference=True, attempts=outcome.attempts,
        )

    async def _recommend(
        self,
        roof: RoofRecord,
        request: AnalysisRequest,
        geo: GeocodeResult,
        irradiance: LocationIrradiance,
        location: str,
        *,
        used_inference: bool,
        attempts: tuple[Attempt, ...],
    ) -> AnalysisResult:
        try:
            recommendation = size(
                roof, irradiance, request.monthly_bill, self.region, self.adjust_production
            )
        except EngineInvariantViolation as exc:
            logger.exception("Engine invariant violated for roof %s", roof)
            return self._failure(FailureKind.ENGINE_INVARIANT_VIOLATION, str(exc), attempts)

        specs = recommendation.specs
        narrative = await self.narrator.summarize(
            recommendation.financials,
            roof,
            specs.system_kw,
            location,
            panel_count=specs.panel_count,
            annual_production_kwh=specs.annual_production_kwh,
            suitability_score=recommendation.suitability_score,
        )
        return AnalysisSuccess(
            mode=AnalysisMode.NEW,
            roof=roof,
            confidence=roof.confidence,
            used_inference=used_inference,
            narrative=narrative.text,
            narrative_used_inference=narrative.used_inference,
            location=geo,
            irradiance=recommendation.irradiance,
            suitability_score=recommendation.suitability_score,
            explanation=recommendation.explanation,
            recommendation=recommendation,
            attempts=attempts,
            image_count=len(request.uploads),
        )

    def _assess(
        self,
        record: ExistingInstallationRecord,
        geo: GeocodeResult,
        irradiance: LocationIrradiance,
        location: str,
        attempts: tuple[Attempt, ...],
    ) -> AnalysisSuccess:
        irradiance = bounded_irradiance(irradiance)
        assessment = assess_existing_installation(record, irradiance, self.region)
        ghi = irradiance.annual_ghi_kwh_m2
        score = suitability_score(record.roof, self.region.optimal_tilt_deg, ghi)
        return AnalysisSuccess(
            mode=AnalysisMode.EXISTING,
            roof=record.roof,
            confidence=record.confidence,
            used_inference=True,
            narrative=improvement_summary(assessment, location),
            narrative_used_inference=False,
            location=geo,
            irradiance=irradiance,
            suitability_score=score,
            explanation=explain_score(score, self.region.name),
            existing=record,
            assessment=assessment,
            attempts=attempts,
        )
