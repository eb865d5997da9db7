"""
Shared provider adapter contract and HTTP plumbing.

Each provider implements search/details (raw fetch) and the two normalize
functions that map its payloads onto CanonicalPlace.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from domain.errors import UpstreamError
from domain.models import CanonicalPlace, QuantizedQuery
from settings import settings

logger = logging.getLogger(__name__)
_session = requests.Session()


def _redact(params: Dict[str, Any], secret: Optional[str]) -> Dict[str, Any]:
    if not secret:
        return dict(params)
    return {k: ("REDACTED" if v == secret else v) for k, v in params.items()}


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class ProviderAdapter(ABC):
    """Uniform capability set every place provider exposes to the gateway."""

    name: str = ""
    # Name of the Settings attribute holding this provider's upstream key.
    api_key_setting: str = ""
    default_category: str = ""
    type_mapping: Mapping[str, str] = MappingProxyType({})

    def map_place_type(self, place_type: str) -> str:
        """Translate the gateway's type vocabulary; unmapped types use the provider default."""
        return self.type_mapping.get((place_type or "").strip().lower(), self.default_category)

    def configured_api_key(self) -> Optional[str]:
        return getattr(settings, self.api_key_setting, None)

    def _get_json(
        self,
        url: str,
        *,
        params: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        secret: Optional[str] = None,
    ) -> Dict[str, Any]:
        """GET a JSON object, raising UpstreamError for transport, status or body problems."""
        logger.debug("%s request %s params=%s", self.name, url, _redact(params, secret))
        try:
            resp = _session.get(
                url,
                params=params,
                headers=headers or {},
                timeout=settings.PLACES_PROVIDER_TIMEOUT,
            )
        except requests.RequestException as exc:
            raise UpstreamError(self.name, f"request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise UpstreamError(
                self.name,
                f"HTTP {resp.status_code}",
                upstream_status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamError(self.name, "response body is not JSON", resp.status_code) from exc
        if not isinstance(data, dict):
            raise UpstreamError(self.name, "response body is not a JSON object", resp.status_code)
        return data

    @abstractmethod
    def search(
        self,
        quantized: QuantizedQuery,
        place_type: str,
        api_key: Optional[str],
        keywords: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Fetch the raw nearby-search payload for a grid cell."""

    @abstractmethod
    def details(self, place_id: str, api_key: Optional[str]) -> Dict[str, Any]:
        """Fetch the raw details payload for a provider place id."""

    @abstractmethod
    def normalize_search_results(
        self, raw: Any, now: Optional[datetime] = None
    ) -> List[CanonicalPlace]:
        ...

    @abstractmethod
    def normalize_details(
        self, raw: Any, now: Optional[datetime] = None
    ) -> Optional[CanonicalPlace]:
        ...

    def _require_key(self, api_key: Optional[str]) -> str:
        key = api_key or self.configured_api_key()
        if not key:
            raise UpstreamError(self.name, "API key is not configured")
        return key
