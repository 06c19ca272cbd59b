"""Tests for distance ranking."""

import pytest

from remonta.models import ContractorRecord, Coordinate, RankedContractor
from remonta.search.ranking import rank_by_distance

PARRAMATTA = Coordinate(-33.8150, 151.0011)


def record(id, lat=None, lng=None):
    return ContractorRecord(id=id, first_name=id, latitude=lat, longitude=lng)


@pytest.fixture
def records():
    # Fetch order (newest first)
    return [
        record("penrith", -33.7507, 150.6877),
        record("no-coords"),
        record("blacktown", -33.7710, 150.9063),
        record("newcastle", -32.9283, 151.7817),
        record("parramatta", -33.8150, 151.0011),
    ]


class TestRankByDistance:
    """Test nearest-first ordering."""

    def test_no_origin_keeps_fetch_order(self, records):
        result = rank_by_distance(records, None)
        assert result == records
        assert all(isinstance(r, ContractorRecord) for r in result)

    def test_no_origin_ignores_radius(self, records):
        assert rank_by_distance(records, None, radius_km=1) == records

    def test_nearest_first(self, records):
        result = rank_by_distance(records, PARRAMATTA)
        assert [r.record.id for r in result] == ["parramatta", "blacktown", "penrith", "newcastle"]
        distances = [r.distance_km for r in result]
        assert distances == sorted(distances)

    def test_drops_records_without_coordinates(self, records):
        result = rank_by_distance(records, PARRAMATTA)
        assert "no-coords" not in [r.record.id for r in result]

    def test_distance_rounded_to_tenth(self, records):
        for ranked in rank_by_distance(records, PARRAMATTA):
            assert ranked.distance_km == round(ranked.distance_km, 1)

    def test_zero_distance_for_same_point(self, records):
        result = rank_by_distance(records, PARRAMATTA)
        assert result[0].distance_km == 0.0

    def test_radius_filters(self, records):
        result = rank_by_distance(records, PARRAMATTA, radius_km=20)
        assert [r.record.id for r in result] == ["parramatta", "blacktown"]
        assert all(r.distance_km <= 20 for r in result)

    def test_radius_excluding_everything(self, records):
        assert rank_by_distance(records, Coordinate(-42.88, 147.33), radius_km=5) == []

    def test_ties_keep_fetch_order(self):
        first = record("first", -33.8, 151.0)
        second = record("second", -33.8, 151.0)
        result = rank_by_distance([first, second], PARRAMATTA)
        assert [r.record.id for r in result] == ["first", "second"]

    def test_result_serialises_distance(self, records):
        ranked = rank_by_distance(records, PARRAMATTA)[1]
        assert isinstance(ranked, RankedContractor)
        data = ranked.to_dict()
        assert data["id"] == "blacktown"
        assert data["distance"] == ranked.distance_km
        assert data["firstName"] == "blacktown"
