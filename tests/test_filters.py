"""Tests for filter building and the SQLAlchemy repository."""

from datetime import datetime

import pytest

from remonta.models import BoundingBox
from remonta.search.filters import ContractorFilter, build_filter
from remonta.search.locations import parse_location
from remonta.search.params import SearchQuery
from remonta.search.repository import fetch_page
from remonta.web.database import ContractorProfile


def _filter(**kwargs) -> ContractorFilter:
    query = SearchQuery(**kwargs)
    parsed = parse_location(query.location) if query.location and query.location.strip() else None
    return build_filter(query, parsed)


class TestBuildFilter:
    """Test translation of a search request into filter fields."""

    def test_pure_state_filters_on_state(self):
        flt = _filter(location="NSW")
        assert flt.state_contains == "NSW"
        assert flt.postal_code_contains is None
        assert flt.city_contains is None

    def test_full_state_name_filters_on_code(self):
        assert _filter(location="Victoria").state_contains == "VIC"

    def test_pure_postcode_filters_on_postcode(self):
        flt = _filter(location="2148")
        assert flt.postal_code_contains == "2148"
        assert flt.state_contains is None

    @pytest.mark.parametrize("location", ["Parramatta", "Parramatta NSW", "NSW 2150", "Parramatta NSW 2150"])
    def test_place_names_add_no_location_filter(self, location):
        flt = _filter(location=location)
        assert flt.state_contains is None
        assert flt.postal_code_contains is None
        assert flt.city_contains is None

    def test_legacy_fields_without_location(self):
        flt = _filter(city="Parramatta", state="NSW", postal_code="2150")
        assert flt.city_contains == "Parramatta"
        assert flt.state_contains == "NSW"
        assert flt.postal_code_contains == "2150"

    def test_location_overrides_legacy_fields(self):
        flt = _filter(location="VIC", city="Parramatta", state="NSW", postal_code="2150")
        assert flt.state_contains == "VIC"
        assert flt.city_contains is None
        assert flt.postal_code_contains is None

    def test_blank_location_disables_legacy_fields(self):
        flt = _filter(location="   ", state="NSW")
        assert flt.state_contains is None

    @pytest.mark.parametrize("value,expected", [
        ("All", None),
        ("", None),
        (None, None),
        ("Female", "Female"),
    ])
    def test_gender(self, value, expected):
        assert _filter(gender=value).gender_equals == expected

    @pytest.mark.parametrize("value,expected", [
        ("All", None),
        ("Support Worker", "Support Worker"),
    ])
    def test_support_type(self, value, expected):
        assert _filter(support_type=value).title_contains == expected


class TestRepositoryFiltering:
    """Test that filters are applied in SQL."""

    def test_excludes_deleted(self, repository, add_contractor):
        add_contractor(state="NSW")
        add_contractor(state="NSW", deleted_at=datetime(2025, 1, 1))
        assert repository.count(ContractorFilter()) == 1

    def test_state_contains_is_case_insensitive(self, repository, add_contractor):
        add_contractor(state="NSW")
        add_contractor(state="nsw")
        add_contractor(state="VIC")
        assert repository.count(ContractorFilter(state_contains="NSW")) == 2

    def test_postcode_contains(self, repository, add_contractor):
        add_contractor(postal_zip_code="2148")
        add_contractor(postal_zip_code="2150")
        records = repository.find_many(ContractorFilter(postal_code_contains="2148"), 10, 0)
        assert [r.postal_zip_code for r in records] == ["2148"]

    def test_gender_equals_ignores_case(self, repository, add_contractor):
        add_contractor(gender="female")
        add_contractor(gender="Female")
        add_contractor(gender="Male")
        assert repository.count(ContractorFilter(gender_equals="Female")) == 2

    def test_title_contains(self, repository, add_contractor):
        add_contractor(title_role="Disability Support Worker")
        add_contractor(title_role="Occupational Therapist")
        records = repository.find_many(ContractorFilter(title_contains="support"), 10, 0)
        assert [r.title_role for r in records] == ["Disability Support Worker"]

    def test_like_wildcards_are_literal(self, repository, add_contractor):
        add_contractor(city="Parramatta")
        add_contractor(city="100% Town")
        assert repository.count(ContractorFilter(city_contains="%")) == 1

    def test_filters_are_conjunctive(self, repository, add_contractor):
        add_contractor(state="NSW", gender="Female")
        add_contractor(state="NSW", gender="Male")
        add_contractor(state="VIC", gender="Female")
        flt = ContractorFilter(state_contains="NSW", gender_equals="Female")
        assert repository.count(flt) == 1

    def test_bounding_box(self, repository, add_contractor):
        add_contractor(latitude=-33.8, longitude=151.0)
        add_contractor(latitude=-37.8, longitude=144.9)
        add_contractor()
        box = BoundingBox(min_lat=-34.5, max_lat=-33.0, min_lon=150.0, max_lon=152.0)
        assert repository.count(ContractorFilter(bounding_box=box)) == 1


class TestRepositoryPaging:
    """Test ordering and paging."""

    def test_newest_first(self, repository, add_contractor):
        oldest = add_contractor(age=30)
        newest = add_contractor(age=1)
        middle = add_contractor(age=10)
        records = repository.find_many(ContractorFilter(), 10, 0)
        assert [r.id for r in records] == [newest, middle, oldest]

    def test_limit_and_offset(self, repository, add_contractor):
        ids = [add_contractor() for _ in range(5)]
        page = repository.find_many(ContractorFilter(), 2, 2)
        assert [r.id for r in page] == ids[2:4]

    def test_unbounded_limit(self, repository, add_contractor):
        for _ in range(15):
            add_contractor()
        assert len(repository.find_many(ContractorFilter(), None, 0)) == 15

    def test_get_excludes_deleted(self, repository, add_contractor):
        active = add_contractor()
        deleted = add_contractor(deleted_at=datetime(2025, 1, 1))
        assert repository.get(active).id == active
        assert repository.get(deleted) is None
        assert repository.get("missing") is None

    def test_state_counts(self, repository, add_contractor):
        add_contractor(state="NSW")
        add_contractor(state="NSW")
        add_contractor(state="VIC")
        add_contractor(state=None)
        assert sorted(repository.state_counts()) == [("NSW", 2), ("VIC", 1)]


class TestFetchPage:
    """Test the concurrent page and count fetch."""

    @pytest.mark.parametrize("parallel", [True, False])
    def test_page_and_total(self, repository, add_contractor, parallel):
        for _ in range(7):
            add_contractor(state="QLD")
        add_contractor(state="TAS")

        records, total = fetch_page(
            repository, ContractorFilter(state_contains="QLD"), 5, 0, parallel=parallel
        )
        assert len(records) == 5
        assert total == 7

    def test_total_ignores_paging(self, repository, add_contractor):
        for _ in range(3):
            add_contractor()
        records, total = fetch_page(repository, ContractorFilter(), 10, 2)
        assert len(records) == 1
        assert total == 3


class TestContractorProfile:
    """Test the ORM model."""

    def test_repr(self):
        profile = ContractorProfile(first_name="Ana", last_name="Lee", city="Parramatta", state="NSW")
        assert "Ana Lee" in repr(profile)
