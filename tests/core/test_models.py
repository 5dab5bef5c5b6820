# ABOUTME: Tests for extracted record models and their normalization rules
# ABOUTME: Validates asset status mapping, coordinate bounds, list coercion, and invalid-record dropping

import math

import pytest

from mining_intel.core.models import (
    AssetRecord,
    AssetStatus,
    LeaderRecord,
    PipelineStep,
    RunStatus,
    normalize_asset_status,
    parse_coordinate,
    validate_records,
)


class TestAssetStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("operating", AssetStatus.OPERATING),
            ("Care and Maintenance", AssetStatus.CARE_AND_MAINTENANCE),
            ("Currently operational", AssetStatus.OPERATING),
            ("Under construction", AssetStatus.DEVELOPING),
            ("Advanced exploration", AssetStatus.EXPLORATION),
            ("Shut down in 2019", AssetStatus.CLOSED),
            ("on care & maintenance", AssetStatus.CARE_AND_MAINTENANCE),
            ("producing", AssetStatus.UNKNOWN),
            ("", AssetStatus.UNKNOWN),
            (None, AssetStatus.UNKNOWN),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_asset_status(raw) is expected


class TestCoordinates:
    def test_numbers_and_numeric_strings(self):
        assert parse_coordinate(-24.27, -90, 90) == -24.27
        assert parse_coordinate("-69.07", -180, 180) == -69.07
        assert parse_coordinate("45.5 N", -90, 90) == 45.5

    @pytest.mark.parametrize("value", [91, -180.5, "north", True, math.nan, math.inf, None, [1.0]])
    def test_invalid_values_become_none(self, value):
        assert parse_coordinate(value, -90, 90) is None


class TestRecords:
    def test_asset_out_of_range_coordinates_are_dropped_not_rejected(self):
        asset = AssetRecord.model_validate(
            {"name": "Escondida", "latitude": 120, "longitude": "-69.07", "status": "Operating"}
        )
        assert asset.latitude is None
        assert asset.longitude == -69.07
        assert asset.status is AssetStatus.OPERATING

    def test_null_lists_become_empty(self):
        leader = LeaderRecord.model_validate({"name": " Jane Doe ", "expertise_tags": None, "summary_bullets": None})
        assert leader.name == "Jane Doe"
        assert leader.expertise_tags == []
        assert leader.summary_bullets == []

    def test_blank_optional_text_becomes_none(self):
        asset = AssetRecord.model_validate({"name": "Grasberg", "country": "  ", "commodities": "copper"})
        assert asset.country is None
        assert asset.commodities == ["copper"]

    def test_validate_records_drops_items_without_name(self):
        items = [{"name": "A", "title": "CEO"}, {"title": "CFO"}, {"name": ""}]
        records = validate_records(items, LeaderRecord)
        assert [record.name for record in records] == ["A"]


def test_pipeline_steps_are_ordered():
    assert PipelineStep.PENDING.order < PipelineStep.SEARCHING.order < PipelineStep.STORING.order
    assert PipelineStep.COMPLETE.order < PipelineStep.FAILED.order


def test_run_status_terminality():
    assert not RunStatus.PROCESSING.is_terminal
    assert all(status.is_terminal for status in (RunStatus.COMPLETED, RunStatus.PARTIAL, RunStatus.FAILED))
