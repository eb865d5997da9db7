"""Google Places (Nearby Search / Place Details JSON API) adapter."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional

from domain.errors import UpstreamError
from domain.models import CanonicalPlace, Location, PhotoRef, QuantizedQuery
from services.opening_hours import evaluate_google_hours
from services.providers.base import ProviderAdapter, _as_float, _as_int

logger = logging.getLogger(__name__)

GOOGLE_NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
GOOGLE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"

# Statuses that mean "the call worked", even with nothing to return.
_OK_STATUSES = {"OK", "ZERO_RESULTS", "NOT_FOUND"}

DETAILS_FIELDS = [
    "place_id", "name", "geometry", "formatted_address",
    "formatted_phone_number", "international_phone_number", "website",
    "opening_hours", "current_opening_hours", "utc_offset", "price_level",
    "rating", "user_ratings_total", "types", "photos",
]


class GoogleAdapter(ProviderAdapter):
    name = "google"
    api_key_setting = "GOOGLE_PLACES_API_KEY"
    default_category = "establishment"
    type_mapping = MappingProxyType({
        "restaurant": "restaurant",
        "bar": "bar",
        "cafe": "cafe",
        "night_club": "night_club",
        "bakery": "bakery",
        "supermarket": "supermarket",
        "grocery_store": "supermarket",
        "shopping_mall": "shopping_mall",
        "store": "store",
        "gym": "gym",
        "park": "park",
        "lodging": "lodging",
        "hotel": "lodging",
        "gas_station": "gas_station",
        "parking": "parking",
        "bank": "bank",
        "atm": "atm",
        "hospital": "hospital",
        "pharmacy": "pharmacy",
    })

    def _check_status(self, data: Dict[str, Any]) -> Dict[str, Any]:
        status = data.get("status")
        if status not in _OK_STATUSES:
            message = data.get("error_message") or "unexpected response"
            raise UpstreamError(self.name, f"{status}: {message}")
        return data

    def search(
        self,
        quantized: QuantizedQuery,
        place_type: str,
        api_key: Optional[str],
        keywords: Iterable[str] = (),
    ) -> Dict[str, Any]:
        key = self._require_key(api_key)
        params: Dict[str, Any] = {
            "location": f"{quantized.grid_lat},{quantized.grid_lng}",
            "radius": quantized.grid_radius,
            "type": self.map_place_type(place_type),
            "key": key,
        }
        keyword_list = [k for k in keywords if k]
        if keyword_list:
            # Nearby Search takes one keyword string; multiple terms are space-separated.
            params["keyword"] = " ".join(keyword_list)
        data = self._get_json(GOOGLE_NEARBY_URL, params=params, secret=key)
        return self._check_status(data)

    def details(self, place_id: str, api_key: Optional[str]) -> Dict[str, Any]:
        key = self._require_key(api_key)
        params = {
            "place_id": place_id,
            "fields": ",".join(DETAILS_FIELDS),
            "key": key,
        }
        data = self._get_json(GOOGLE_DETAILS_URL, params=params, secret=key)
        return self._check_status(data)

    def _photos(self, item: Dict[str, Any]) -> List[PhotoRef]:
        photos = []
        for photo in item.get("photos") or []:
            if not isinstance(photo, dict) or not photo.get("photo_reference"):
                continue
            photos.append(
                PhotoRef(
                    reference=photo["photo_reference"],
                    width=_as_int(photo.get("width")),
                    height=_as_int(photo.get("height")),
                    attributions=list(photo.get("html_attributions") or []),
                )
            )
        return photos

    def _to_place(self, item: Any, now: datetime) -> Optional[CanonicalPlace]:
        if not isinstance(item, dict):
            return None
        place_id = item.get("place_id")
        geometry = item.get("geometry")
        loc = geometry.get("location") if isinstance(geometry, dict) else None
        if not isinstance(loc, dict):
            loc = {}
        lat, lng = _as_float(loc.get("lat")), _as_float(loc.get("lng"))
        if not place_id or lat is None or lng is None:
            return None

        hours = item.get("current_opening_hours") or item.get("opening_hours")
        phone = item.get("formatted_phone_number") or item.get("international_phone_number")
        return CanonicalPlace(
            provider_place_id=str(place_id),
            name=item.get("name") or "",
            location=Location(lat=lat, lng=lng),
            formatted_address=item.get("formatted_address") or item.get("vicinity"),
            categories=[str(t) for t in item.get("types") or []],
            rating=_as_float(item.get("rating")),
            rating_count=_as_int(item.get("user_ratings_total")),
            opening_hours=evaluate_google_hours(hours, now, _as_int(item.get("utc_offset"))),
            photos=self._photos(item),
            price_level=_as_int(item.get("price_level")),
            phone=phone or None,
            website=item.get("website") or None,
        )

    def normalize_search_results(
        self, raw: Any, now: Optional[datetime] = None
    ) -> List[CanonicalPlace]:
        if not isinstance(raw, dict):
            return []
        now = now or datetime.now(timezone.utc)
        places = []
        for item in raw.get("results") or []:
            place = self._to_place(item, now)
            if place is None:
                logger.debug("Skipping Google result without id/location: %r", item)
                continue
            places.append(place)
        return places

    def normalize_details(
        self, raw: Any, now: Optional[datetime] = None
    ) -> Optional[CanonicalPlace]:
        if not isinstance(raw, dict):
            return None
        return self._to_place(raw.get("result"), now or datetime.now(timezone.utc))
