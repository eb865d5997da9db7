"""Deterministic cache keys for nearby searches and place details."""
from __future__ import annotations

from typing import Iterable

from domain.models import QuantizedQuery

NEARBY_PREFIX = "nearby"
DETAILS_PREFIX = "details"


def normalize_keywords(keywords: Iterable[str] | None) -> list[str]:
    """Strip, drop blanks and duplicates, then sort so request order never fragments the cache."""
    cleaned = {k.strip() for k in (keywords or []) if k and k.strip()}
    return sorted(cleaned)


def format_grid_point(quantized: QuantizedQuery) -> str:
    return f"{quantized.grid_lat:.5f},{quantized.grid_lng:.5f}"


def build_nearby_key(
    quantized: QuantizedQuery,
    place_type: str,
    keywords: Iterable[str] | None,
    provider: str,
    version: str,
) -> str:
    key = ":".join(
        [
            NEARBY_PREFIX,
            version,
            provider,
            format_grid_point(quantized),
            str(quantized.grid_radius),
            place_type,
        ]
    )
    sorted_keywords = normalize_keywords(keywords)
    if sorted_keywords:
        key = f"{key}:{'+'.join(sorted_keywords)}"
    return key


def build_details_key(place_id: str, provider: str, version: str) -> str:
    return f"{DETAILS_PREFIX}:{version}:{provider}:{place_id}"
