"""Shared test fixtures for the solar engine, inference and API tests."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import numpy as np
import pytest

from solar_engine.regions import PEI, RegionProfile
from solar_engine.roof.records import (
    Complexity,
    LocationIrradiance,
    Orientation,
    RoofRecord,
    ShadingLevel,
)
from solar_app.inference.errors import ProviderTransportError

# Minimal valid image headers
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ======================================================================
# Region / roof fixtures
# ======================================================================

@pytest.fixture
def region() -> RegionProfile:
    return PEI


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def make_roof() -> Callable[..., RoofRecord]:
    """Factory for roof records; defaults describe an ideal simple roof."""

    def _make(**overrides: Any) -> RoofRecord:
        fields: dict[str, Any] = {
            "area_m2": 100.0,
            "usable_pct": 70.0,
            "shading": ShadingLevel.LOW,
            "pitch_deg": 36.0,
            "complexity": Complexity.SIMPLE,
            "orientation": Orientation.SOUTH,
            "obstacles": (),
            "estimated_panel_count": 18,
            "optimal_tilt_deg": 44.0,
            "confidence": 85.0,
        }
        fields.update(overrides)
        return RoofRecord(**fields)

    return _make


@pytest.fixture
def default_irradiance_1175() -> LocationIrradiance:
    """Irradiance with a regional PV potential of 1175 kWh/kWp."""
    return LocationIrradiance(
        peak_sun_hours=3.7,
        pv_potential_kwh_per_kwp=1175.0,
        annual_ghi_kwh_m2=1150.0,
        source="nasa",
    )


# ======================================================================
# Inference payload fixtures
# ======================================================================

@pytest.fixture
def roof_payload() -> Callable[..., dict[str, Any]]:
    """Factory for a well-formed new-installation payload."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "is_house": True,
            "existing_panels_detected": False,
            "roof_area_m2": 100,
            "usable_area_pct": 70,
            "shading": "low",
            "pitch_deg": 36,
            "complexity": "simple",
            "orientation": "south",
            "obstacles": ["chimney"],
            "estimated_panel_count": 18,
            "optimal_tilt_deg": 44,
            "confidence": 85,
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def existing_payload(roof_payload) -> Callable[..., dict[str, Any]]:
    """Factory for a well-formed existing-installation payload."""

    def _make(**overrides: Any) -> dict[str, Any]:
        payload = roof_payload(
            current_panel_count=16,
            estimated_system_kw=6.4,
            current_efficiency_pct=72,
            potential_efficiency_pct=88,
            panel_condition="fair",
            suggestions=[
                {
                    "category": "cleaning",
                    "title": "Clean the panels",
                    "description": "Dust and pollen reduce output.",
                    "priority": "medium",
                    "estimated_gain_pct": 5,
                    "estimated_cost": 200,
                },
                {
                    "category": "shading",
                    "title": "Trim the maple",
                    "description": "Afternoon shade on the west string.",
                    "priority": "high",
                    "estimated_gain_pct": 8,
                    "estimated_cost": 400,
                },
            ],
        )
        payload.update(overrides)
        return payload

    return _make


# ======================================================================
# Scripted inference provider
# ======================================================================

HANG = object()


class ScriptedProvider:
    """In-memory provider replaying scripted replies.

    A script is a list (shared by all models) or a dict of model -> list.
    Each item is a reply string, an exception to raise, or ``HANG`` to
    block until cancelled. The last item repeats once the list runs out.
    Every call is recorded in ``calls`` as ``(method, model)``.
    """

    def __init__(
        self,
        name: str,
        *,
        configured: bool = True,
        classify: list | dict | None = None,
        extract: list | dict | None = None,
        text: list | dict | None = None,
    ):
        self.name = name
        self._configured = configured
        self._scripts = {
            "classify_image": classify if classify is not None else ['{"status": "VALID"}'],
            "extract_structured": extract if extract is not None else [],
            "generate_text": text if text is not None else [],
        }
        self.calls: list[tuple[str, str]] = []
        self.cancelled = 0

    @property
    def configured(self) -> bool:
        return self._configured

    def calls_to(self, method: str) -> list[str]:
        return [model for m, model in self.calls if m == method]

    async def _play(self, method: str, model: str) -> str:
        self.calls.append((method, model))
        script = self._scripts[method]
        if isinstance(script, dict):
            script = script.get(model, [])
        if not script:
            raise ProviderTransportError("nothing scripted", self.name, model)
        item = script.pop(0) if len(script) > 1 else script[0]

        if item is HANG:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, dict):
            return json.dumps(item)
        return item

    async def classify_image(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        return await self._play("classify_image", model)

    async def extract_structured(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        return await self._play("extract_structured", model)

    async def generate_text(self, model: str, prompt: str) -> str:
        return await self._play("generate_text", model)


@pytest.fixture
def scripted_provider() -> type[ScriptedProvider]:
    return ScriptedProvider


@pytest.fixture
def hang() -> object:
    return HANG


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
