"""Tests for the binary image validator."""

import httpx
import pytest

from solar_app.inference.errors import ProviderTransportError, RateLimitedError
from solar_app.inference.providers import Route
from solar_app.inference.validator import ImageValidator, Invalid, Unvalidated, Valid

pytestmark = pytest.mark.asyncio

PRIMARY = Route("openai", "gpt-4o")
FALLBACK = Route("openai", "gpt-4o-mini")


class TestImageValidator:
    async def test_valid_on_primary(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider("openai", classify=['{"status": "VALID"}'])
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert result == Valid(PRIMARY)
        assert provider.calls_to("classify_image") == ["gpt-4o"]

    async def test_invalid_is_final(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider(
            "openai", classify=['{"status": "INVALID", "reason": "collage"}', '{"status": "VALID"}']
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert result == Invalid("collage")
        assert len(provider.calls) == 1

    async def test_transient_failure_uses_fallback(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider(
            "openai",
            classify={
                "gpt-4o": [ProviderTransportError("502", "openai", "gpt-4o")],
                "gpt-4o-mini": ['{"status": "VALID"}'],
            },
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)
        attempts = []

        result = await validator.validate(jpeg_bytes, "image/jpeg", attempts)

        assert result == Valid(FALLBACK)
        assert [a.outcome for a in attempts] == ["ProviderTransportError", "ok"]

    async def test_unexpected_sdk_error_uses_fallback(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider(
            "openai",
            classify={
                "gpt-4o": [httpx.ConnectError("connection refused")],
                "gpt-4o-mini": ['{"status": "VALID"}'],
            },
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)
        attempts = []

        result = await validator.validate(jpeg_bytes, "image/jpeg", attempts)

        assert result == Valid(FALLBACK)
        assert attempts[0].outcome == "ConnectError"

    async def test_mistaken_valid_prefix_is_not_a_verdict(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider("openai", classify=["Validation failed: this is a collage"])
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert isinstance(result, Unvalidated)
        assert provider.calls_to("classify_image") == ["gpt-4o", "gpt-4o-mini"]

    async def test_timeout_uses_fallback(self, scripted_provider, hang, jpeg_bytes):
        provider = scripted_provider(
            "openai", classify={"gpt-4o": [hang], "gpt-4o-mini": ['{"status": "VALID"}']}
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=0.05)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert result == Valid(FALLBACK)
        assert provider.cancelled == 1

    async def test_unparseable_reply_uses_fallback(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider(
            "openai", classify={"gpt-4o": ["I can't tell"], "gpt-4o-mini": ['{"status": "VALID"}']}
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)

        assert await validator.validate(jpeg_bytes, "image/jpeg") == Valid(FALLBACK)

    async def test_both_fail_is_unvalidated(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider(
            "openai", classify=[RateLimitedError("quota", "openai", "gpt-4o")]
        )
        validator = ImageValidator({"openai": provider}, (PRIMARY, FALLBACK), timeout=1.0)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert isinstance(result, Unvalidated)
        assert "RateLimitedError" in result.last_error
        assert len(provider.calls) == 2

    async def test_only_one_fallback(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider("openai", classify=[ProviderTransportError("down")])
        routes = (PRIMARY, FALLBACK, Route("openai", "gpt-4.1"))
        validator = ImageValidator({"openai": provider}, routes, timeout=1.0)

        await validator.validate(jpeg_bytes, "image/jpeg")

        assert provider.calls_to("classify_image") == ["gpt-4o", "gpt-4o-mini"]

    async def test_unconfigured_provider_counts_as_failure(self, scripted_provider, jpeg_bytes):
        provider = scripted_provider("openai", configured=False)
        validator = ImageValidator({"openai": provider}, (PRIMARY,), timeout=1.0)

        result = await validator.validate(jpeg_bytes, "image/jpeg")

        assert isinstance(result, Unvalidated)
        assert provider.calls == []
