"""Tests for the /api/v1/analyze endpoint."""

import asyncio

import pytest
from httpx import AsyncClient

from solar_app.api.v1 import analyze
from solar_app.core.rate_limit import analyze_limiter
from solar_app.inference.errors import ProviderTransportError

pytestmark = pytest.mark.asyncio

ANALYZE_URL = "/api/v1/analyze"


def _image(data: bytes, mime: str = "image/jpeg", name: str = "roof.jpg") -> dict:
    return {"image": (name, data, mime)}


class TestAnalyzeNewInstallation:
    async def test_recommendation(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(
            ANALYZE_URL, data={**address_form, "monthly_bill": "150"}, files=_image(jpeg_bytes)
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["mode"] == "new"
        assert 17 <= body["system_specs"]["panel_count"] <= 19
        assert len(body["system_specs"]["monthly_production_kwh"]) == 12
        assert body["financial_projection"]["annual_savings"] <= 150 * 12
        assert body["narrative_summary"] == "Solar suits this roof."
        assert body["narrative_used_inference"] is True
        assert body["suitability_score"] == 100
        assert body["location"]["used_real_geocoding"] is False
        assert body["suggestions"][0]["priority"] == "high"
        assert body["improvement_assessment"] is None

    async def test_without_bill(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 200
        assert resp.json()["financial_projection"]["coverage_pct"] is None

    @pytest.mark.parametrize("bill", ["0", "-10", "abc"])
    async def test_invalid_bill(self, client: AsyncClient, address_form, jpeg_bytes, bill):
        resp = await client.post(
            ANALYZE_URL, data={**address_form, "monthly_bill": bill}, files=_image(jpeg_bytes)
        )
        assert resp.status_code == 422

    async def test_missing_address(self, client: AsyncClient, jpeg_bytes):
        resp = await client.post(ANALYZE_URL, data={"city": "Charlottetown"}, files=_image(jpeg_bytes))
        assert resp.status_code == 422


class TestAnalyzeExistingInstallation:
    @pytest.fixture
    def openai_provider(self, scripted_provider, existing_payload):
        return scripted_provider("openai", extract=[existing_payload()])

    async def test_assessment(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(
            ANALYZE_URL, data={**address_form, "mode": "existing"}, files=_image(jpeg_bytes)
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["mode"] == "existing"
        assert body["system_specs"] is None
        assert body["existing_installation_record"]["current_panel_count"] == 16
        assert body["improvement_assessment"]["panel_range"] == [16, 23]
        assert body["narrative_used_inference"] is False

    async def test_unknown_mode(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(
            ANALYZE_URL, data={**address_form, "mode": "retrofit"}, files=_image(jpeg_bytes)
        )
        assert resp.status_code == 422


class TestMultiplePhotos:
    @pytest.fixture
    def openai_provider(self, scripted_provider, roof_payload):
        return scripted_provider(
            "openai",
            extract=[roof_payload(roof_area_m2=100, confidence=90), roof_payload(roof_area_m2=130, confidence=60)],
            text=["Solar suits this roof."],
        )

    async def test_additional_photos_combined(
        self, client: AsyncClient, address_form, jpeg_bytes, png_bytes, openai_provider
    ):
        files = [
            ("image", ("front.jpg", jpeg_bytes, "image/jpeg")),
            ("additional_images", ("back.png", png_bytes, "image/png")),
        ]
        resp = await client.post(ANALYZE_URL, data=address_form, files=files)

        assert resp.status_code == 200
        body = resp.json()
        assert body["image_count"] == 2
        assert body["roof_record"]["confidence"] == 75.0
        assert len(openai_provider.calls_to("extract_structured")) == 2

    async def test_too_many_photos(self, client: AsyncClient, address_form, jpeg_bytes, openai_provider):
        files = [("image", ("front.jpg", jpeg_bytes, "image/jpeg"))] + [
            ("additional_images", (f"extra{i}.jpg", jpeg_bytes, "image/jpeg")) for i in range(3)
        ]
        resp = await client.post(ANALYZE_URL, data=address_form, files=files)

        assert resp.status_code == 415
        assert openai_provider.calls == []

    async def test_single_photo_count(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.json()["image_count"] == 1


class TestMediaErrors:
    async def test_unsupported_type(self, client: AsyncClient, address_form, openai_provider):
        resp = await client.post(
            ANALYZE_URL, data=address_form, files=_image(b"GIF89a....", "image/gif", "roof.gif")
        )
        assert resp.status_code == 415
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNSUPPORTED_MEDIA"
        assert openai_provider.calls == []

    async def test_mislabelled_content(self, client: AsyncClient, address_form, png_bytes):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(png_bytes, "image/jpeg"))
        assert resp.status_code == 415


class TestOversize:
    @pytest.fixture
    def max_upload_bytes(self) -> int:
        return 32

    async def test_too_large(self, client: AsyncClient, address_form, jpeg_bytes, openai_provider):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 413
        assert resp.json()["error"]["code"] == "UNSUPPORTED_MEDIA"
        assert openai_provider.calls == []


class TestRejections:
    @pytest.fixture
    def openai_provider(self, scripted_provider, roof_payload):
        return scripted_provider(
            "openai",
            classify=['{"status": "INVALID", "reason": "collage"}'],
            extract=[roof_payload()],
        )

    async def test_collage(self, client: AsyncClient, address_form, jpeg_bytes, openai_provider):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "INVALID_IMAGE"
        assert "photo" in error["message"]
        assert openai_provider.calls_to("extract_structured") == []


class TestLowConfidence:
    @pytest.fixture
    def openai_provider(self, scripted_provider, roof_payload):
        return scripted_provider("openai", extract=[roof_payload(confidence=12)])

    async def test_low_confidence(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "LOW_CONFIDENCE"


class TestExhausted:
    @pytest.fixture
    def openai_provider(self, scripted_provider):
        return scripted_provider("openai", extract=[ProviderTransportError("503")])

    async def test_service_unavailable(self, client: AsyncClient, address_form, jpeg_bytes):
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "PROVIDER_EXHAUSTED"


class TestRateLimit:
    async def test_rate_limited(self, client: AsyncClient, address_form, jpeg_bytes, monkeypatch):
        monkeypatch.setattr(analyze_limiter, "max_requests", 2)
        for _ in range(2):
            resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
            assert resp.status_code == 200
        resp = await client.post(ANALYZE_URL, data=address_form, files=_image(jpeg_bytes))
        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) >= 1


class TestHealth:
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] in ("ok", "degraded")
        assert set(body["providers"]) == {"openai", "gemini", "geocoding"}

    async def test_request_id_echoed(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    async def test_request_id_generated(self, client: AsyncClient):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 12


class TestClientDisconnect:
    async def test_disconnect_cancels_analysis(self, monkeypatch):
        monkeypatch.setattr(analyze, "DISCONNECT_POLL_SECONDS", 0.01)
        cancelled = asyncio.Event()

        async def slow_analysis():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        class GoneRequest:
            async def is_disconnected(self) -> bool:
                return True

        with pytest.raises(analyze.ClientDisconnected):
            await analyze.run_until_disconnect(GoneRequest(), slow_analysis())
        await asyncio.wait_for(cancelled.wait(), timeout=1.0)

    async def test_result_returned_while_connected(self):
        class ConnectedRequest:
            async def is_disconnected(self) -> bool:
                return False

        async def quick_analysis():
            return "done"

        assert await analyze.run_until_disconnect(ConnectedRequest(), quick_analysis()) == "done"
