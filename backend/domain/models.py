"""
Core domain models for the places gateway.
These are framework-agnostic and shared by the quantizer, the provider
adapters, the cache layer and the HTTP routes.
"""
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class CacheKind(str, Enum):
    """Kind of cache entry, surfaced to clients as X-Cache-Type."""
    NEARBY = "places_nearby"
    DETAILS = "places_details"


class RequestState(str, Enum):
    """
    Lifecycle of a single gateway request.

    RECEIVED -> QUANTIZED -> KEY_BUILT -> CACHE_CHECKED, then either
    HIT_RETURNED or FETCHING -> NORMALIZED -> STORED -> MISS_RETURNED.
    Any step may end in FAILED.
    """
    RECEIVED = "received"
    QUANTIZED = "quantized"
    KEY_BUILT = "key_built"
    CACHE_CHECKED = "cache_checked"
    HIT_RETURNED = "hit_returned"
    FETCHING = "fetching"
    NORMALIZED = "normalized"
    STORED = "stored"
    MISS_RETURNED = "miss_returned"
    FAILED = "failed"


@dataclass(frozen=True)
class GeoQuery:
    """A validated nearby-search request. Built per request, never persisted."""
    lat: float
    lng: float
    radius_m: int
    place_type: str
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class QuantizedQuery:
    """GeoQuery snapped onto the radius-dependent cache grid."""
    grid_lat: float
    grid_lng: float
    grid_radius: int
    lat_cell_deg: float = 0.0
    lng_cell_deg: float = 0.0


@dataclass(frozen=True)
class RequestFlags:
    """Per-request cache-control overrides (no-cache / cache-reset)."""
    no_cache: bool = False
    cache_reset_ms: Optional[int] = None


@dataclass
class Location:
    lat: float
    lng: float


@dataclass
class OpeningHours:
    # None when the schedule could not be evaluated against the current time.
    open_now: Optional[bool] = None
    weekday_text: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["OpeningHours"]:
        if not data:
            return None
        return cls(
            open_now=data.get("open_now"),
            weekday_text=list(data.get("weekday_text") or []),
        )


@dataclass
class PhotoRef:
    reference: str
    width: Optional[int] = None
    height: Optional[int] = None
    attributions: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhotoRef":
        return cls(
            reference=data["reference"],
            width=data.get("width"),
            height=data.get("height"),
            attributions=list(data.get("attributions") or []),
        )


@dataclass
class CanonicalPlace:
    """
    Provider-independent place record.

    Every field is always present; providers that cannot supply a value
    leave it as None so consumers only ever check for nullness.
    """
    provider_place_id: str
    name: str
    location: Location
    formatted_address: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    opening_hours: Optional[OpeningHours] = None
    photos: List[PhotoRef] = field(default_factory=list)
    price_level: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalPlace":
        location = data.get("location") or {}
        return cls(
            provider_place_id=data["provider_place_id"],
            name=data.get("name") or "",
            location=Location(lat=float(location["lat"]), lng=float(location["lng"])),
            formatted_address=data.get("formatted_address"),
            categories=list(data.get("categories") or []),
            rating=data.get("rating"),
            rating_count=data.get("rating_count"),
            opening_hours=OpeningHours.from_dict(data.get("opening_hours")),
            photos=[PhotoRef.from_dict(p) for p in data.get("photos") or []],
            price_level=data.get("price_level"),
            phone=data.get("phone"),
            website=data.get("website"),
        )


Payload = Union[List[CanonicalPlace], CanonicalPlace, None]


@dataclass
class CacheEntry:
    """A stored payload plus the write timestamp kept in the store metadata."""
    payload: Any
    written_at_ms: int


@dataclass
class GatewayResult:
    """What the orchestrator hands back to the transport layer."""
    payload: Payload
    cache_hit: bool
    cache_kind: CacheKind
    cache_key: str
    ttl_seconds: int
    state: RequestState = RequestState.MISS_RETURNED

    def payload_json(self) -> Any:
        if self.payload is None:
            return None
        if isinstance(self.payload, list):
            return [p.to_dict() for p in self.payload]
        return self.payload.to_dict()
