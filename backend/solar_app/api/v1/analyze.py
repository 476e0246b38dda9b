import asyncio
import logging
from collections.abc import Awaitable
from http import HTTPStatus

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.responses import JSONResponse

from solar_engine.roof.records import AnalysisMode

from solar_app.core.deps import get_pipeline
from solar_app.core.logging import request_id_var
from solar_app.core.rate_limit import analyze_limiter
from solar_app.inference.outcomes import FailureKind
from solar_app.schemas.analysis import AnalysisResponse, ErrorResponse, to_error, to_response
from solar_app.services.analysis_pipeline import (
    OVERSIZE_REASON,
    AnalysisFailure,
    AnalysisPipeline,
    AnalysisRequest,
    AnalysisResult,
    ImageUpload,
)
from solar_app.services.geocoding import Address

logger = logging.getLogger(__name__)

router = APIRouter()

# Non-standard "client closed request"
CLIENT_CLOSED_REQUEST = 499
DISCONNECT_POLL_SECONDS = 0.5


class ClientDisconnected(Exception):
    pass


def status_for(failure: AnalysisFailure) -> int:
    if failure.kind is FailureKind.UNSUPPORTED_MEDIA:
        if failure.reason == OVERSIZE_REASON:
            return HTTPStatus.REQUEST_ENTITY_TOO_LARGE
        return HTTPStatus.UNSUPPORTED_MEDIA_TYPE
    if failure.kind.is_business_rejection:
        return HTTPStatus.UNPROCESSABLE_ENTITY
    if failure.kind is FailureKind.ENGINE_INVARIANT_VIOLATION:
        return HTTPStatus.INTERNAL_SERVER_ERROR
    return HTTPStatus.SERVICE_UNAVAILABLE


async def run_until_disconnect(request: Request, work: Awaitable[AnalysisResult]) -> AnalysisResult:
    """Await ``work``, cancelling it if the client goes away."""
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected; cancelling analysis")
                task.cancel()
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Analyze a rooftop photo",
    description=(
        "Validate and analyze a roof photo, then size a system and project 25-year "
        "savings. Up to two further photos of the same roof may be sent as "
        "'additional_images'. Mode 'existing' assesses an installed array instead."
    ),
)
async def analyze_roof(
    request: Request,
    image: UploadFile = File(...),
    additional_images: list[UploadFile] | None = File(None),
    street: str = Form(..., min_length=1, max_length=200),
    city: str = Form(..., min_length=1, max_length=100),
    postal_code: str = Form("", max_length=20),
    country: str = Form("Canada", max_length=60),
    mode: AnalysisMode = Form(AnalysisMode.NEW),
    monthly_bill: float | None = Form(None, gt=0, le=10_000),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    analyze_limiter.check(request)

    # One byte past the limit is enough to detect oversize uploads
    limit = pipeline.max_upload_bytes + 1
    content = await image.read(limit)
    extra_images = [
        ImageUpload(await upload.read(limit), upload.content_type or "")
        for upload in additional_images or ()
    ]
    analysis_request = AnalysisRequest(
        image=content,
        mime_type=image.content_type or "",
        address=Address(street=street, city=city, postal_code=postal_code, country=country),
        mode=mode,
        monthly_bill=monthly_bill,
        extra_images=tuple(extra_images),
    )

    try:
        result = await run_until_disconnect(
            request, pipeline.run(analysis_request, request_id_var.get(""))
        )
    except ClientDisconnected:
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    if isinstance(result, AnalysisFailure):
        logger.info(
            "Analysis failed: %s (%s)",
            result.kind.value,
            result.reason,
            extra={"failure_kind": result.kind.value},
        )
        return JSONResponse(status_code=status_for(result), content=to_error(result).model_dump())

    return to_response(result)
