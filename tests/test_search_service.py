"""Tests for the contractor search pipeline."""

import pytest

from remonta.config import Settings
from remonta.models import RankedContractor
from remonta.search.filters import ContractorFilter
from remonta.search.geocoding import GazetteerGeocoder, GeocodingError
from remonta.search.params import SearchParameterError, SearchQuery
from remonta.search.service import ContractorSearchService, build_pagination


@pytest.fixture
def service(repository):
    return ContractorSearchService(repository, GazetteerGeocoder(), Settings())


@pytest.fixture
def sydney_contractors(add_contractor):
    """Newest first: Penrith, no coordinates, Blacktown, Newcastle, Parramatta, Melbourne."""
    return {
        "penrith": add_contractor(city="Penrith", state="NSW", postal_zip_code="2750",
                                  latitude=-33.7507, longitude=150.6877, gender="Female"),
        "unknown": add_contractor(city="Parramatta", state="NSW", postal_zip_code="2150"),
        "blacktown": add_contractor(city="Blacktown", state="NSW", postal_zip_code="2148",
                                    latitude=-33.7710, longitude=150.9063, gender="Male"),
        "newcastle": add_contractor(city="Newcastle", state="NSW", postal_zip_code="2300",
                                    latitude=-32.9283, longitude=151.7817, gender="Female"),
        "parramatta": add_contractor(city="Parramatta", state="NSW", postal_zip_code="2150",
                                     latitude=-33.8150, longitude=151.0011, gender="Female",
                                     title_role="Support Worker"),
        "melbourne": add_contractor(city="Melbourne", state="VIC", postal_zip_code="3000",
                                    latitude=-37.8136, longitude=144.9631, gender="Male"),
    }


def ids(result, contractors):
    lookup = {v: k for k, v in contractors.items()}
    return [lookup[(c.record if isinstance(c, RankedContractor) else c).id] for c in result.contractors]


class FailingGeocoder:
    def geocode(self, address):
        raise GeocodingError("provider down")


class TestBuildPagination:
    """Test pagination metadata."""

    @pytest.mark.parametrize("total,limit,offset,has_more,pages,current", [
        (25, 10, 0, True, 3, 1),
        (25, 10, 10, True, 3, 2),
        (25, 10, 20, False, 3, 3),
        (20, 10, 10, False, 2, 2),
        (0, 10, 0, False, 0, 1),
        (5, 10, 30, False, 1, 4),
    ])
    def test_bounded(self, total, limit, offset, has_more, pages, current):
        p = build_pagination(total, limit, offset)
        assert (p.total, p.limit, p.offset) == (total, limit, offset)
        assert p.has_more is has_more
        assert p.total_pages == pages
        assert p.current_page == current

    def test_unbounded(self):
        p = build_pagination(42, None, 0)
        assert (p.total, p.limit, p.has_more, p.total_pages, p.current_page) == (42, 42, False, 1, 1)

    def test_reported_total_only_changes_total(self):
        p = build_pagination(25, 10, 0, reported_total=4)
        assert p.total == 4
        assert p.has_more is True
        assert p.total_pages == 3

    def test_to_dict_keys(self):
        assert set(build_pagination(1, 10, 0).to_dict()) == {
            "total", "limit", "offset", "hasMore", "totalPages", "currentPage",
        }


class TestSearchWithoutLocation:
    """Test plain listing and filters."""

    def test_newest_first(self, service, sydney_contractors):
        result = service.search(SearchQuery())
        assert ids(result, sydney_contractors) == [
            "penrith", "unknown", "blacktown", "newcastle", "parramatta", "melbourne",
        ]
        assert not result.ranked
        assert result.search_location is None
        assert "searchLocation" not in result.to_dict()

    def test_gender_and_support_type(self, service, sydney_contractors):
        result = service.search(SearchQuery(gender="Female", support_type="support"))
        assert ids(result, sydney_contractors) == ["parramatta"]

    def test_all_sentinels_ignored(self, service, sydney_contractors):
        result = service.search(SearchQuery(gender="All", support_type="All"))
        assert result.pagination.total == 6

    def test_legacy_fields(self, service, sydney_contractors):
        result = service.search(SearchQuery(city="parra"))
        assert ids(result, sydney_contractors) == ["unknown", "parramatta"]

    def test_paging(self, service, sydney_contractors):
        result = service.search(SearchQuery(limit=2, offset=2))
        assert ids(result, sydney_contractors) == ["blacktown", "newcastle"]
        assert result.pagination.has_more
        assert result.pagination.current_page == 2

    def test_unbounded(self, service, sydney_contractors):
        result = service.search(SearchQuery(limit=None))
        assert len(result.contractors) == 6
        assert result.pagination.limit == 6
        assert result.pagination.total_pages == 1


class TestPureLocations:
    """Bare states and postcodes filter, and only rank with a radius."""

    def test_pure_state_keeps_fetch_order(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="NSW"))
        assert ids(result, sydney_contractors) == [
            "penrith", "unknown", "blacktown", "newcastle", "parramatta",
        ]
        assert not result.ranked
        assert result.pagination.total == 5
        assert result.search_location.latitude == -33.8688

    def test_full_state_name(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Victoria"))
        assert ids(result, sydney_contractors) == ["melbourne"]

    def test_pure_postcode(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="2150"))
        assert ids(result, sydney_contractors) == ["unknown", "parramatta"]
        assert not result.ranked

    def test_pure_state_with_distance_is_ranked(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="NSW", distance_km=25))
        assert result.ranked
        # Sydney CBD origin
        assert ids(result, sydney_contractors) == ["parramatta"]


class TestDistanceRanking:
    """Test geocode-and-rank searches."""

    def test_place_name_ranks_all_contractors(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Parramatta"))
        assert result.ranked
        assert ids(result, sydney_contractors) == [
            "parramatta", "blacktown", "penrith", "newcastle", "melbourne",
        ]
        distances = [c.distance_km for c in result.contractors]
        assert distances == sorted(distances)
        assert result.search_location.to_dict() == {"latitude": -33.8150, "longitude": 151.0011}

    def test_radius(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Parramatta NSW", distance_km=20))
        assert ids(result, sydney_contractors) == ["parramatta", "blacktown"]
        assert all(c.distance_km <= 20 for c in result.contractors)

    def test_ranked_total_replaces_total_only(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Parramatta", distance_km=20, limit=10))
        assert result.pagination.total == 2
        assert result.matched == 6
        assert result.pagination.total_pages == 1

    def test_ranked_total_can_be_disabled(self, repository, sydney_contractors):
        service = ContractorSearchService(
            repository, GazetteerGeocoder(), Settings(report_ranked_total=False)
        )
        result = service.search(SearchQuery(location="Parramatta", distance_km=20))
        assert result.pagination.total == 6

    def test_ranking_happens_within_the_page(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Parramatta", limit=2))
        assert ids(result, sydney_contractors) == ["penrith"]

    def test_serialised_contractors_carry_distance(self, service, sydney_contractors):
        data = service.search(SearchQuery(location="Parramatta")).to_dict()
        assert data["success"] is True
        assert data["contractors"][0]["distance"] == 0.0
        assert data["searchLocation"] == {"latitude": -33.8150, "longitude": 151.0011}

    def test_bounding_box_prefilter(self, repository, sydney_contractors):
        service = ContractorSearchService(
            repository, GazetteerGeocoder(), Settings(bounding_box_prefilter=True)
        )
        result = service.search(SearchQuery(location="Parramatta", distance_km=20))
        assert ids(result, sydney_contractors) == ["parramatta", "blacktown"]
        assert result.matched == 2


class TestGeocodingFallback:
    """Unresolved locations fall back to unranked results."""

    def test_unknown_place(self, service, sydney_contractors):
        result = service.search(SearchQuery(location="Atlantis"))
        assert not result.ranked
        assert result.search_location is None
        assert len(result.contractors) == 6
        assert result.notes

    def test_provider_failure(self, repository, sydney_contractors):
        service = ContractorSearchService(repository, FailingGeocoder(), Settings())
        result = service.search(SearchQuery(location="Parramatta", distance_km=5))
        assert not result.ranked
        assert len(result.contractors) == 6

    def test_no_geocoder(self, repository, sydney_contractors):
        service = ContractorSearchService(repository)
        result = service.search(SearchQuery(location="NSW"))
        assert result.pagination.total == 5
        assert result.search_location is None


class TestSearchParams:
    """Test the raw-parameter entry point."""

    def test_parses_and_searches(self, service, sydney_contractors):
        result = service.search_params({"location": "Parramatta", "distance": "20"})
        assert ids(result, sydney_contractors) == ["parramatta", "blacktown"]

    def test_invalid_parameter(self, service):
        with pytest.raises(SearchParameterError):
            service.search_params({"limit": "-1"})

    def test_configured_default_limit(self, repository, sydney_contractors):
        service = ContractorSearchService(repository, settings=Settings(default_limit=2))
        assert len(service.search_params({}).contractors) == 2

    def test_empty_repository(self, service):
        result = service.search_params({"location": "Parramatta"})
        assert result.contractors == []
        assert result.pagination.total == 0


class RecordingRepository:
    """In-memory stand-in that records the filter it was asked for."""

    def __init__(self):
        self.filters = []

    def find_many(self, flt, limit, offset):
        self.filters.append(flt)
        return []

    def count(self, flt):
        return 0


class TestFilterSelection:
    """Test which filter reaches the repository."""

    def test_place_name_sends_no_location_filter(self):
        repo = RecordingRepository()
        ContractorSearchService(repo, GazetteerGeocoder()).search(SearchQuery(location="Parramatta NSW"))
        assert repo.filters[0] == ContractorFilter()

    def test_pure_state_sends_state_filter(self):
        repo = RecordingRepository()
        ContractorSearchService(repo, GazetteerGeocoder()).search(SearchQuery(location="qld"))
        assert repo.filters[0] == ContractorFilter(state_contains="QLD")


class TestRepeatableResults:
    """The same request on unchanged data returns the same response."""

    @pytest.mark.parametrize("query", [
        SearchQuery(location="Parramatta"),
        SearchQuery(location="Parramatta", distance_km=40, limit=3),
        SearchQuery(location="NSW"),
        SearchQuery(),
    ])
    def test_identical_requests(self, service, sydney_contractors, add_contractor, query):
        # Same created_at as an existing contractor, so order relies on the id tie-break
        add_contractor(age=1, city="Parramatta", state="NSW", latitude=-33.8150, longitude=151.0011)

        first = service.search(query).to_dict()
        second = service.search(query).to_dict()
        assert first == second
