"""Tests for merging roof records from several photos."""

import pytest

from solar_engine.roof.combine import combine_roof_records
from solar_engine.roof.records import Complexity, Orientation, PanelType, ShadingLevel
from solar_engine.roof.sanitize import MAX_OBSTACLES


class TestCombineRoofRecords:
    def test_single_record_returned_unchanged(self, make_roof):
        roof = make_roof()
        assert combine_roof_records([roof]) is roof

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            combine_roof_records([])

    def test_measurements_weighted_by_confidence(self, make_roof):
        combined = combine_roof_records([
            make_roof(area_m2=100.0, usable_pct=80.0, pitch_deg=30.0, confidence=90.0),
            make_roof(area_m2=130.0, usable_pct=50.0, pitch_deg=45.0, confidence=60.0),
        ])
        assert combined.area_m2 == pytest.approx(112.0)
        assert combined.usable_pct == pytest.approx(68.0)
        assert combined.pitch_deg == pytest.approx(36.0)
        assert combined.confidence == 75.0

    def test_zero_confidence_still_counts(self, make_roof):
        combined = combine_roof_records([
            make_roof(area_m2=100.0, confidence=0.0),
            make_roof(area_m2=200.0, confidence=0.0),
        ])
        assert combined.area_m2 == pytest.approx(150.0)

    def test_worst_shading_wins(self, make_roof):
        combined = combine_roof_records([
            make_roof(shading=ShadingLevel.LOW),
            make_roof(shading=ShadingLevel.MEDIUM),
            make_roof(shading=ShadingLevel.LOW),
        ])
        assert combined.shading is ShadingLevel.MEDIUM

    @pytest.mark.parametrize(
        "levels, expected",
        [
            ((Complexity.SIMPLE, Complexity.MODERATE), Complexity.MODERATE),
            ((Complexity.SIMPLE, Complexity.SIMPLE, Complexity.COMPLEX), Complexity.MODERATE),
            ((Complexity.SIMPLE, Complexity.SIMPLE, Complexity.MODERATE), Complexity.SIMPLE),
        ],
    )
    def test_complexity_is_rounded_mean(self, make_roof, levels, expected):
        combined = combine_roof_records([make_roof(complexity=c) for c in levels])
        assert combined.complexity is expected

    def test_categorical_fields_from_most_confident(self, make_roof):
        combined = combine_roof_records([
            make_roof(orientation=Orientation.EAST, optimal_tilt_deg=30.0, confidence=50.0),
            make_roof(
                orientation=Orientation.SOUTH,
                optimal_tilt_deg=44.0,
                panel_type=PanelType.HIGH_EFFICIENCY,
                confidence=95.0,
            ),
        ])
        assert combined.orientation is Orientation.SOUTH
        assert combined.optimal_tilt_deg == 44.0
        assert combined.panel_type is PanelType.HIGH_EFFICIENCY

    def test_obstacles_merged_and_capped(self, make_roof):
        combined = combine_roof_records([
            make_roof(obstacles=tuple(f"vent {i}" for i in range(15)), confidence=40.0),
            make_roof(obstacles=("chimney",) + tuple(f"vent {i}" for i in range(10, 25)), confidence=80.0),
        ])
        assert combined.obstacles[0] == "chimney"
        assert len(combined.obstacles) == MAX_OBSTACLES
        assert len(set(combined.obstacles)) == MAX_OBSTACLES

    def test_panel_count_rounded(self, make_roof):
        combined = combine_roof_records([
            make_roof(estimated_panel_count=18, confidence=50.0),
            make_roof(estimated_panel_count=21, confidence=50.0),
        ])
        assert combined.estimated_panel_count == 20
