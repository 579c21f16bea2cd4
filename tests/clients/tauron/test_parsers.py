from __future__ import annotations

import json

import pytest

from elicznik_bridge.clients.tauron.models import Series, SeriesPoint
from elicznik_bridge.clients.tauron.parsers import (
    decode_json_body,
    decode_series_body,
    is_success_body,
    merge_series,
    parse_point,
    parse_series,
    safe_float,
)
from portal_fakes import portal_body, portal_rows


class TestSafeFloat:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (1.5, 1.5),
            ("2.25", 2.25),
            ("0,75", 0.75),
            (" 3 ", 3.0),
            (None, 0.0),
            ("n/a", 0.0),
            ("nan", 0.0),
            (float("inf"), 0.0),
        ],
    )
    def test_conversion(self, value, expected):
        assert safe_float(value) == pytest.approx(expected)


class TestBodyInspection:
    @pytest.mark.parametrize(
        "body",
        ['{"success":true}', '  {\n "success" : true, "data": {}}', '{"success": TRUE}'],
    )
    def test_success_prefix(self, body):
        assert is_success_body(body)

    @pytest.mark.parametrize(
        "body",
        ['{"success":false}', '{"data": {}, "success": true}', "<html>", "", '{"success":trueish}'],
    )
    def test_not_success(self, body):
        assert not is_success_body(body)

    def test_decode_json_body_rejects_non_objects(self):
        assert decode_json_body("[1, 2]") is None
        assert decode_json_body("not json") is None
        assert decode_json_body('{"a": 1}') == {"a": 1}


class TestParsePoint:
    def test_full_row(self):
        row = portal_rows("2024-01-01", {5: "1,5"})[0]
        point = parse_point(row)
        assert point == SeriesPoint(date="2024-01-01", hour="05", value=1.5)

    def test_missing_fields_use_defaults(self):
        point = parse_point({"Date": "2024-01-01", "Hour": 7, "EC": 2}, default_tariff="G12")
        assert point.zone == "1"
        assert point.zone_name == "Cała doba"
        assert point.tariff == "G12"
        assert point.status == "0"
        assert point.extra == "N"

    def test_row_without_hour_is_skipped(self):
        assert parse_point({"Date": "2024-01-01", "EC": 1}) is None


class TestParseSeries:
    def test_rows_recompute_totals(self):
        payload = json.loads(portal_body(portal_rows("2024-01-01", {1: 0.5, 2: 1.0})))
        payload["data"]["sum"] = 999
        series = parse_series(payload)
        assert len(series.points) == 2
        assert series.sum == pytest.approx(1.5)
        assert series.zones == {"1": pytest.approx(1.5)}

    def test_metadata(self):
        payload = json.loads(
            portal_body(portal_rows("2024-01-01", {1: 0.5}), zones_name={"1": "Cała doba"}, tariff="G11")
        )
        series = parse_series(payload)
        assert series.zones_name == {"1": "Cała doba"}
        assert series.tariff == "G11"

    def test_payload_without_rows_keeps_portal_totals(self):
        series = parse_series({"success": True, "data": {"sum": "12,5", "zones": {"1": 10, "2": 2.5}}})
        assert series.points == []
        assert series.sum == pytest.approx(12.5)
        assert series.zones == {"1": 10.0, "2": 2.5}

    @pytest.mark.parametrize("payload", [None, {}, {"data": []}, {"data": "x"}])
    def test_degenerate_payloads(self, payload):
        assert parse_series(payload) == Series()

    def test_decode_series_body(self):
        body = portal_body(portal_rows("2024-01-01", {1: 0.5}))
        assert decode_series_body(body).sum == pytest.approx(0.5)
        assert decode_series_body(portal_body([], success=False)) is None
        assert decode_series_body('{"success": true, broken') is None


class TestMergeSeries:
    def _series(self, date, values, **kwargs):
        return parse_series(json.loads(portal_body(portal_rows(date, values), **kwargs)))

    def test_union_of_days(self):
        merged = merge_series(
            self._series("2024-01-01", {1: 1.0, 2: 2.0}),
            self._series("2024-01-02", {1: 4.0}),
        )
        assert len(merged.points) == 3
        assert merged.sum == pytest.approx(7.0)
        assert merged.zones == {"1": pytest.approx(7.0)}

    def test_first_metadata_wins(self):
        merged = merge_series(
            self._series("2024-01-01", {1: 1.0}, tariff="G12"),
            self._series("2024-01-02", {1: 1.0}, tariff="G11", zones_name={"1": "x"}),
        )
        assert merged.tariff == "G12"
        assert merged.zones_name == {"1": "x"}

    def test_fold_from_empty(self):
        day = self._series("2024-01-01", {1: 1.0})
        assert merge_series(Series(), day) == day

    def test_totals_only_accumulate(self):
        a = Series(sum=1.5, zones={"1": 1.5})
        b = Series(sum=2.0, zones={"1": 1.0, "2": 1.0})
        merged = merge_series(a, b)
        assert merged.sum == pytest.approx(3.5)
        assert merged.zones == {"1": 2.5, "2": 1.0}

    def test_row_less_total_dropped_with_warning(self, caplog):
        hourly = self._series("2024-01-01", {1: 1.0, 2: 2.0})
        totals_only = Series(sum=5.0, zones={"1": 5.0})

        with caplog.at_level("WARNING", logger="elicznik_bridge.clients.tauron.parsers"):
            merged = merge_series(hourly, totals_only)

        assert merged.sum == pytest.approx(3.0)
        assert merged.sum == pytest.approx(sum(p.value for p in merged.points))
        assert "Dropping row-less total 5.000" in caplog.text
