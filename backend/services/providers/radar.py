"""Radar places search adapter."""
from __future__ import annotations

import logging
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional

from domain.errors import UpstreamError
from domain.models import CanonicalPlace, Location, QuantizedQuery
from services.opening_hours import evaluate_radar_hours
from services.providers.base import ProviderAdapter, _as_float

logger = logging.getLogger(__name__)

RADAR_SEARCH_URL = "https://api.radar.io/v1/search/places"
RADAR_PLACE_URL = "https://api.radar.io/v1/places/{place_id}"
RADAR_SEARCH_LIMIT = 50


class RadarAdapter(ProviderAdapter):
    name = "radar"
    api_key_setting = "RADAR_API_KEY"
    default_category = "food-beverage"
    type_mapping = MappingProxyType({
        "restaurant": "restaurant",
        "bar": "bar",
        "cafe": "cafe",
        "night_club": "nightlife",
        "bakery": "bakery",
        "grocery_store": "grocery",
        "supermarket": "grocery",
        "shopping_mall": "shopping-mall",
        "store": "retail",
        "gym": "gym",
        "park": "park",
        "lodging": "hotel",
        "hotel": "hotel",
        "gas_station": "gas-station",
        "parking": "parking",
        "bank": "bank",
        "atm": "atm",
        "hospital": "hospital",
        "pharmacy": "pharmacy",
    })

    def _headers(self, key: str) -> Dict[str, str]:
        return {"Authorization": key, "Content-Type": "application/json"}

    def search(
        self,
        quantized: QuantizedQuery,
        place_type: str,
        api_key: Optional[str],
        keywords: Iterable[str] = (),
    ) -> Dict[str, Any]:
        key = self._require_key(api_key)
        keyword_list = [k for k in keywords if k]
        if keyword_list:
            logger.debug("Radar search has no keyword filter; ignoring %s", keyword_list)
        params = {
            "near": f"{quantized.grid_lat},{quantized.grid_lng}",
            "radius": quantized.grid_radius,
            "categories": self.map_place_type(place_type),
            "limit": RADAR_SEARCH_LIMIT,
        }
        return self._get_json(RADAR_SEARCH_URL, params=params, headers=self._headers(key))

    def details(self, place_id: str, api_key: Optional[str]) -> Dict[str, Any]:
        key = self._require_key(api_key)
        try:
            return self._get_json(
                RADAR_PLACE_URL.format(place_id=place_id),
                params={},
                headers=self._headers(key),
            )
        except UpstreamError as exc:
            if exc.upstream_status != 404:
                raise
            # Unknown id: same empty details as Google's NOT_FOUND.
            logger.info("Radar place %s not found", place_id)
            return {}

    def _to_place(self, item: Any, now: datetime) -> Optional[CanonicalPlace]:
        if not isinstance(item, dict):
            return None
        place_id = item.get("_id")
        # GeoJSON order: [lng, lat]
        location = item.get("location")
        coords = location.get("coordinates") if isinstance(location, dict) else None
        if not place_id or not isinstance(coords, list) or len(coords) < 2:
            return None
        lng, lat = _as_float(coords[0]), _as_float(coords[1])
        if lat is None or lng is None:
            return None

        return CanonicalPlace(
            provider_place_id=str(place_id),
            name=item.get("name") or "",
            location=Location(lat=lat, lng=lng),
            formatted_address=item.get("formattedAddress") or None,
            categories=[str(c) for c in item.get("categories") or []],
            rating=None,
            rating_count=None,
            opening_hours=evaluate_radar_hours(item.get("hours"), now),
            photos=[],
            price_level=None,
            phone=item.get("phone") or None,
            website=item.get("website") or None,
        )

    def normalize_search_results(
        self, raw: Any, now: Optional[datetime] = None
    ) -> List[CanonicalPlace]:
        if not isinstance(raw, dict):
            return []
        now = now or datetime.now()
        places = []
        for item in raw.get("places") or []:
            place = self._to_place(item, now)
            if place is None:
                logger.debug("Skipping Radar place without id/coordinates: %r", item)
                continue
            places.append(place)
        return places

    def normalize_details(
        self, raw: Any, now: Optional[datetime] = None
    ) -> Optional[CanonicalPlace]:
        if not isinstance(raw, dict):
            return None
        return self._to_place(raw.get("place"), now or datetime.now())
