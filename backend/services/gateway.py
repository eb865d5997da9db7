"""
Places gateway orchestrator.

Per request: validate -> quantize -> build key -> check cache policy ->
on miss call the provider adapter, normalize, store -> return canonical
places. Provider differences stay behind the adapter contract; this module
never branches on a provider id.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Iterable, List, Mapping, Optional

from domain.errors import CacheStoreError, GatewayError, InvalidInputError
from domain.models import (
    CacheEntry,
    CacheKind,
    CanonicalPlace,
    GatewayResult,
    GeoQuery,
    RequestFlags,
    RequestState,
)
from services.cache_keys import build_details_key, build_nearby_key
from services.cache_policy import is_entry_fresh, now_ms, should_use_cache, ttl_for
from services.kv_store import KVStore, get_default_kv_store
from services.providers import ADAPTERS, ProviderAdapter, get_adapter
from services.quantizer import quantize
from services.single_flight import SingleFlight
from settings import Settings, settings

logger = logging.getLogger(__name__)


def _parse_float(value: Any, name: str) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    if not math.isfinite(parsed):
        raise InvalidInputError(f"Invalid {name}: {value!r}")
    return parsed


def _ordered_keywords(keywords: Optional[Iterable[str]]) -> tuple:
    seen: List[str] = []
    for kw in keywords or []:
        kw = (kw or "").strip()
        if kw and kw not in seen:
            seen.append(kw)
    return tuple(seen)


def build_geo_query(
    lat: Any,
    lng: Any,
    radius: Any = None,
    place_type: Optional[str] = None,
    keywords: Optional[Iterable[str]] = None,
    config: Settings = settings,
) -> GeoQuery:
    """Validate raw request values into a GeoQuery, flooring/capping the radius."""
    if lat is None or lng is None or lat == "" or lng == "":
        raise InvalidInputError("Missing lat/lng parameters")
    lat_f = _parse_float(lat, "latitude")
    lng_f = _parse_float(lng, "longitude")
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidInputError(f"Latitude out of range: {lat_f}")
    if not -180.0 <= lng_f <= 180.0:
        raise InvalidInputError(f"Longitude out of range: {lng_f}")

    if radius is None or radius == "":
        radius_m = config.PLACES_DEFAULT_RADIUS_M
    else:
        radius_m = int(math.ceil(_parse_float(radius, "radius")))
    radius_m = min(max(radius_m, config.PLACES_MIN_RADIUS_M), config.PLACES_MAX_RADIUS_M)

    return GeoQuery(
        lat=lat_f,
        lng=lng_f,
        radius_m=radius_m,
        place_type=(place_type or "").strip() or config.PLACES_DEFAULT_TYPE,
        keywords=_ordered_keywords(keywords),
    )


class PlacesGateway:
    def __init__(
        self,
        store: Optional[KVStore] = None,
        adapters: Mapping[str, ProviderAdapter] = ADAPTERS,
        config: Settings = settings,
        clock: Callable[[], int] = now_ms,
        single_flight: Optional[SingleFlight] = None,
    ):
        self.store = store if store is not None else get_default_kv_store()
        self.adapters = adapters
        self.config = config
        self.clock = clock
        if single_flight is None and config.PLACES_SINGLE_FLIGHT:
            single_flight = SingleFlight()
        self.single_flight = single_flight

    def _transition(self, key: str, state: RequestState) -> RequestState:
        logger.debug("gateway %s -> %s", key, state.value)
        return state

    def _is_development(self, development: Optional[bool]) -> bool:
        return self.config.is_development if development is None else development

    def _read_cache(self, key: str, flags: RequestFlags, ttl_seconds: int) -> Optional[CacheEntry]:
        """Return a fresh entry or None. Store failures count as a miss."""
        if not should_use_cache(flags):
            logger.info("Cache bypass requested for %s", key)
            return None
        try:
            hit = self.store.get_with_metadata(key)
        except CacheStoreError as exc:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, exc)
            return None
        if not hit or hit[0] is None:
            return None
        value, metadata = hit
        entry = CacheEntry(
            payload=value,
            written_at_ms=int((metadata or {}).get("timestamp") or 0),
        )
        if not is_entry_fresh(entry, flags, ttl_seconds, self.clock()):
            logger.info(
                "Stale cache entry for %s (age=%sms)",
                key,
                self.clock() - entry.written_at_ms,
            )
            return None
        return entry

    def _write_cache(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.store.put(
                key,
                value,
                expiration_ttl=ttl_seconds,
                metadata={"timestamp": self.clock()},
            )
        except CacheStoreError as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def _fetch_once(self, key: str, fetch: Callable[[], Any]) -> Any:
        if self.single_flight is None:
            return fetch()
        result, shared = self.single_flight.do(key, fetch)
        if shared:
            logger.info("Shared in-flight fetch for %s", key)
        return result

    def nearby(
        self,
        query: GeoQuery,
        provider: Optional[str] = None,
        flags: RequestFlags = RequestFlags(),
        api_key: Optional[str] = None,
        development: Optional[bool] = None,
    ) -> GatewayResult:
        """Nearby search for a validated GeoQuery."""
        state = RequestState.RECEIVED
        provider = provider or self.config.PLACES_DEFAULT_PROVIDER
        try:
            adapter = get_adapter(provider, self.adapters)
            quantized = quantize(query.lat, query.lng, query.radius_m)
            state = self._transition(provider, RequestState.QUANTIZED)
            key = build_nearby_key(
                quantized,
                query.place_type,
                query.keywords,
                adapter.name,
                self.config.PLACES_CACHE_VERSION,
            )
            state = self._transition(key, RequestState.KEY_BUILT)
            ttl = ttl_for(
                CacheKind.NEARBY,
                self._is_development(development),
                self.config.PLACES_TTL_NEARBY,
            )

            entry = self._read_cache(key, flags, ttl)
            state = self._transition(key, RequestState.CACHE_CHECKED)
            if entry is not None:
                try:
                    places = [CanonicalPlace.from_dict(p) for p in entry.payload]
                except (AttributeError, KeyError, TypeError, ValueError) as exc:
                    logger.warning("Undecodable cache entry for %s, refetching: %s", key, exc)
                else:
                    logger.info("Cache hit for %s (%d places)", key, len(places))
                    return GatewayResult(
                        payload=places,
                        cache_hit=True,
                        cache_kind=CacheKind.NEARBY,
                        cache_key=key,
                        ttl_seconds=ttl,
                        state=self._transition(key, RequestState.HIT_RETURNED),
                    )

            def fetch() -> List[CanonicalPlace]:
                self._transition(key, RequestState.FETCHING)
                logger.info(
                    "Cache miss for %s: lat=%.6f lng=%.6f radius=%d -> grid %.5f,%.5f r=%d",
                    key,
                    query.lat,
                    query.lng,
                    query.radius_m,
                    quantized.grid_lat,
                    quantized.grid_lng,
                    quantized.grid_radius,
                )
                raw = adapter.search(quantized, query.place_type, api_key, query.keywords)
                places = adapter.normalize_search_results(raw)
                self._transition(key, RequestState.NORMALIZED)
                if places:
                    self._write_cache(key, [p.to_dict() for p in places], ttl)
                    self._transition(key, RequestState.STORED)
                else:
                    # Empty lists may only reflect provider flakiness; never cache them.
                    logger.info("No places for %s; not caching", key)
                return places

            places = self._fetch_once(key, fetch)
            return GatewayResult(
                payload=places,
                cache_hit=False,
                cache_kind=CacheKind.NEARBY,
                cache_key=key,
                ttl_seconds=ttl,
                state=self._transition(key, RequestState.MISS_RETURNED),
            )
        except GatewayError as exc:
            logger.error("Nearby request failed in state %s: %s", state.value, exc)
            self._transition(provider, RequestState.FAILED)
            raise

    def details(
        self,
        place_id: str,
        provider: Optional[str] = None,
        flags: RequestFlags = RequestFlags(),
        api_key: Optional[str] = None,
        development: Optional[bool] = None,
    ) -> GatewayResult:
        """Place details by provider place id. A None payload means not found."""
        state = RequestState.RECEIVED
        provider = provider or self.config.PLACES_DEFAULT_PROVIDER
        try:
            place_id = (place_id or "").strip()
            if not place_id:
                raise InvalidInputError("Missing placeId parameter")
            adapter = get_adapter(provider, self.adapters)
            key = build_details_key(place_id, adapter.name, self.config.PLACES_CACHE_VERSION)
            state = self._transition(key, RequestState.KEY_BUILT)
            ttl = ttl_for(
                CacheKind.DETAILS,
                self._is_development(development),
                self.config.PLACES_TTL_DETAILS,
            )

            entry = self._read_cache(key, flags, ttl)
            state = self._transition(key, RequestState.CACHE_CHECKED)
            if entry is not None:
                try:
                    place = CanonicalPlace.from_dict(entry.payload)
                except (AttributeError, KeyError, TypeError, ValueError) as exc:
                    logger.warning("Undecodable cache entry for %s, refetching: %s", key, exc)
                else:
                    logger.info("Cache hit for %s", key)
                    return GatewayResult(
                        payload=place,
                        cache_hit=True,
                        cache_kind=CacheKind.DETAILS,
                        cache_key=key,
                        ttl_seconds=ttl,
                        state=self._transition(key, RequestState.HIT_RETURNED),
                    )

            def fetch() -> Optional[CanonicalPlace]:
                self._transition(key, RequestState.FETCHING)
                logger.info("Cache miss for place details %s", key)
                place = adapter.normalize_details(adapter.details(place_id, api_key))
                self._transition(key, RequestState.NORMALIZED)
                if place is not None:
                    self._write_cache(key, place.to_dict(), ttl)
                    self._transition(key, RequestState.STORED)
                return place

            place = self._fetch_once(key, fetch)
            return GatewayResult(
                payload=place,
                cache_hit=False,
                cache_kind=CacheKind.DETAILS,
                cache_key=key,
                ttl_seconds=ttl,
                state=self._transition(key, RequestState.MISS_RETURNED),
            )
        except GatewayError as exc:
            logger.error("Details request failed in state %s: %s", state.value, exc)
            self._transition(provider, RequestState.FAILED)
            raise


_default_gateway: Optional[PlacesGateway] = None


def get_default_gateway() -> PlacesGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = PlacesGateway()
    return _default_gateway
