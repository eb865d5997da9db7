import sys
from pathlib import Path

import pytest

# Ensure the backend package root is on sys.path for direct pytest runs
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from domain.models import CanonicalPlace, Location, OpeningHours  # noqa: E402
from services.kv_store import SqliteKVStore  # noqa: E402
from services.providers.base import ProviderAdapter  # noqa: E402
from settings import Settings  # noqa: E402

CANONICAL_FIELDS = {
    "provider_place_id",
    "name",
    "location",
    "formatted_address",
    "categories",
    "rating",
    "rating_count",
    "opening_hours",
    "photos",
    "price_level",
    "phone",
    "website",
}


def make_place(place_id: str, lat: float = 27.95, lng: float = -82.45) -> CanonicalPlace:
    return CanonicalPlace(
        provider_place_id=place_id,
        name=f"Place {place_id}",
        location=Location(lat=lat, lng=lng),
        formatted_address="Tampa, FL",
        categories=["restaurant"],
        rating=4.5,
        rating_count=120,
        opening_hours=OpeningHours(open_now=None, weekday_text=[]),
    )


class FakeAdapter(ProviderAdapter):
    """In-memory adapter that records calls instead of hitting a provider."""

    api_key_setting = "GOOGLE_PLACES_API_KEY"
    default_category = "establishment"

    def __init__(self, name="fake", places=None, details_place=None, error=None):
        self.name = name
        self.places = list(places or [])
        self.details_place = details_place
        self.error = error
        self.search_calls = []
        self.details_calls = []

    def search(self, quantized, place_type, api_key, keywords=()):
        self.search_calls.append(
            {"quantized": quantized, "place_type": place_type, "api_key": api_key, "keywords": keywords}
        )
        if self.error:
            raise self.error
        return {"places": [p.to_dict() for p in self.places]}

    def details(self, place_id, api_key):
        self.details_calls.append({"place_id": place_id, "api_key": api_key})
        if self.error:
            raise self.error
        return {"place": self.details_place.to_dict() if self.details_place else None}

    def normalize_search_results(self, raw, now=None):
        return [CanonicalPlace.from_dict(p) for p in (raw or {}).get("places") or []]

    def normalize_details(self, raw, now=None):
        place = (raw or {}).get("place")
        return CanonicalPlace.from_dict(place) if place else None


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def place_factory():
    return make_place


@pytest.fixture
def fake_adapter_cls():
    return FakeAdapter


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv_store(tmp_path):
    store = SqliteKVStore(str(tmp_path / "kv.sqlite"))
    yield store
    store.close()


@pytest.fixture
def gateway_config():
    config = Settings()
    config.PLACES_ENV = "production"
    config.PLACES_CACHE_VERSION = "vtest"
    config.PLACES_DEFAULT_PROVIDER = "fake"
    config.PLACES_SINGLE_FLIGHT = False
    config.PLACES_TTL_NEARBY = None
    config.PLACES_TTL_DETAILS = None
    return config
