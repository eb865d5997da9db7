from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import CANONICAL_FIELDS
from domain.errors import InvalidInputError, UpstreamError
from domain.models import QuantizedQuery
from services.providers import ADAPTERS, GoogleAdapter, RadarAdapter, get_adapter
from settings import settings

NOW = datetime(2024, 1, 1, 10, 0)
GRID = QuantizedQuery(grid_lat=27.951, grid_lng=-82.457, grid_radius=800)

GOOGLE_NEARBY = {
    "status": "OK",
    "results": [
        {
            "place_id": "g1",
            "name": "Ulele",
            "geometry": {"location": {"lat": 27.9581, "lng": -82.4636}},
            "vicinity": "1810 N Highland Ave, Tampa",
            "types": ["restaurant", "food"],
            "rating": 4.6,
            "user_ratings_total": 9000,
            "opening_hours": {"open_now": True},
            "photos": [
                {"photo_reference": "ref-1", "width": 400, "height": 300, "html_attributions": ["x"]}
            ],
            "price_level": 2,
        },
        {
            "place_id": "g2",
            "name": "Bare minimum",
            "geometry": {"location": {"lat": 27.95, "lng": -82.45}},
        },
        {"place_id": "g3", "name": "No geometry"},
    ],
}

RADAR_NEARBY = {
    "meta": {"code": 200},
    "places": [
        {
            "_id": "r1",
            "name": "Cafe Hey",
            "location": {"type": "Point", "coordinates": [-82.4601, 27.9512]},
            "categories": ["food-beverage", "cafe"],
            "chain": {"name": "Hey"},
        },
        {"_id": "r2", "name": "Broken", "location": {"coordinates": []}},
    ],
}


def _response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


@pytest.mark.parametrize("adapter", list(ADAPTERS.values()), ids=list(ADAPTERS))
@pytest.mark.parametrize("raw", [None, {}, {"results": []}, {"places": []}, {"status": "ZERO_RESULTS"}, []])
def test_normalize_search_empty_payloads(adapter, raw):
    assert adapter.normalize_search_results(raw, NOW) == []


@pytest.mark.parametrize("adapter", list(ADAPTERS.values()), ids=list(ADAPTERS))
def test_normalize_details_empty_payloads(adapter):
    assert adapter.normalize_details(None, NOW) is None
    assert adapter.normalize_details({}, NOW) is None
    assert adapter.normalize_details({"status": "NOT_FOUND"}, NOW) is None


def test_google_normalize_representative_payload():
    places = GoogleAdapter().normalize_search_results(GOOGLE_NEARBY, NOW)
    assert [p.provider_place_id for p in places] == ["g1", "g2"]
    for place in places:
        assert set(place.to_dict()) == CANONICAL_FIELDS

    full, bare = places
    assert full.location.lat == 27.9581
    assert full.formatted_address == "1810 N Highland Ave, Tampa"
    assert full.rating_count == 9000
    assert full.opening_hours.open_now is True
    assert full.photos[0].reference == "ref-1"
    assert full.phone is None

    bare_dict = bare.to_dict()
    assert bare_dict["rating"] is None
    assert bare_dict["opening_hours"] is None
    assert bare_dict["photos"] == []


def test_google_normalize_details():
    raw = {
        "status": "OK",
        "result": {
            "place_id": "g1",
            "name": "Ulele",
            "geometry": {"location": {"lat": 27.9581, "lng": -82.4636}},
            "formatted_address": "1810 N Highland Ave, Tampa, FL 33602",
            "formatted_phone_number": "(813) 999-4952",
            "website": "https://ulele.com",
            "utc_offset": -300,
            "opening_hours": {
                "periods": [{"open": {"day": 1, "time": "0900"}, "close": {"day": 1, "time": "1700"}}],
                "weekday_text": ["Monday: 9:00 AM - 5:00 PM"],
            },
        },
    }
    place = GoogleAdapter().normalize_details(raw, datetime(2024, 1, 1, 15, 0))
    assert place.phone == "(813) 999-4952"
    assert place.website == "https://ulele.com"
    assert place.opening_hours.open_now is True
    assert set(place.to_dict()) == CANONICAL_FIELDS


def test_radar_normalize_representative_payload():
    places = RadarAdapter().normalize_search_results(RADAR_NEARBY, NOW)
    assert len(places) == 1
    place = places[0]
    assert place.provider_place_id == "r1"
    assert place.location.lat == 27.9512
    assert place.location.lng == -82.4601
    assert place.categories == ["food-beverage", "cafe"]
    data = place.to_dict()
    assert set(data) == CANONICAL_FIELDS
    assert data["rating"] is None
    assert data["price_level"] is None


def test_type_mapping_falls_back_to_provider_default():
    assert GoogleAdapter().map_place_type("restaurant") == "restaurant"
    assert GoogleAdapter().map_place_type("volcano") == "establishment"
    assert RadarAdapter().map_place_type("night_club") == "nightlife"
    assert RadarAdapter().map_place_type("volcano") == "food-beverage"


def test_registry_is_read_only():
    with pytest.raises(TypeError):
        ADAPTERS["other"] = GoogleAdapter()
    assert get_adapter("Google").name == "google"
    with pytest.raises(InvalidInputError):
        get_adapter("yelp")


@patch("services.providers.base._session.get")
def test_google_search_request_shape(mock_get):
    mock_get.return_value = _response(GOOGLE_NEARBY)
    data = GoogleAdapter().search(GRID, "bar", "test-key", ("live music", "bar"))

    assert data is GOOGLE_NEARBY
    params = mock_get.call_args.kwargs["params"]
    assert params["location"] == "27.951,-82.457"
    assert params["radius"] == 800
    assert params["type"] == "bar"
    assert params["keyword"] == "live music bar"
    assert params["key"] == "test-key"


@patch("services.providers.base._session.get")
def test_radar_search_request_shape(mock_get):
    mock_get.return_value = _response(RADAR_NEARBY)
    RadarAdapter().search(GRID, "night_club", "radar-key", ("ignored",))

    call = mock_get.call_args
    assert call.kwargs["headers"]["Authorization"] == "radar-key"
    assert call.kwargs["params"]["categories"] == "nightlife"
    assert call.kwargs["params"]["near"] == "27.951,-82.457"
    assert call.kwargs["params"]["limit"] == 50


@patch("services.providers.base._session.get")
def test_google_error_status_raises_upstream(mock_get):
    mock_get.return_value = _response({"status": "REQUEST_DENIED", "error_message": "bad key"})
    with pytest.raises(UpstreamError) as excinfo:
        GoogleAdapter().search(GRID, "restaurant", "test-key")
    assert "REQUEST_DENIED" in str(excinfo.value)


@pytest.mark.parametrize("adapter", [GoogleAdapter(), RadarAdapter()], ids=["google", "radar"])
@patch("services.providers.base._session.get")
def test_non_2xx_raises_upstream(mock_get, adapter):
    mock_get.return_value = _response({"error": "nope"}, status_code=500)
    with pytest.raises(UpstreamError) as excinfo:
        adapter.search(GRID, "restaurant", "k")
    assert excinfo.value.upstream_status == 500
    assert excinfo.value.provider == adapter.name


@patch("services.providers.base._session.get")
def test_malformed_body_raises_upstream(mock_get):
    resp = _response(None)
    resp.json.side_effect = ValueError("not json")
    mock_get.return_value = resp
    with pytest.raises(UpstreamError):
        RadarAdapter().details("r1", "k")


@patch("services.providers.base._session.get")
def test_transport_error_raises_upstream(mock_get):
    mock_get.side_effect = requests.ConnectionError("boom")
    with pytest.raises(UpstreamError):
        GoogleAdapter().details("g1", "k")


def test_missing_api_key_raises_upstream(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_PLACES_API_KEY", None)
    with pytest.raises(UpstreamError):
        GoogleAdapter().search(GRID, "restaurant", None)


@patch("services.providers.base._session.get")
def test_radar_unknown_place_is_not_found(mock_get):
    mock_get.return_value = _response({"meta": {"code": 404}}, status_code=404)
    adapter = RadarAdapter()
    raw = adapter.details("missing", "k")
    assert adapter.normalize_details(raw, NOW) is None


@patch("services.providers.base._session.get")
def test_radar_details_server_error_still_raises(mock_get):
    mock_get.return_value = _response({"meta": {"code": 500}}, status_code=500)
    with pytest.raises(UpstreamError):
        RadarAdapter().details("r1", "k")
