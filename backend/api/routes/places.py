"""
Places API routes.

GET /nearby-places serves both nearby search (lat/lng/radius/type/keyword)
and place details (placeId). Cache outcome is reported through the
X-Cache-Hit / X-Cache-Type headers.
"""
import logging
from typing import List, Optional, Union

from fastapi import APIRouter, Header, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from domain.errors import GatewayError, UnauthorizedError
from services.cache_policy import parse_request_flags
from services.gateway import build_geo_query, get_default_gateway
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)

LOCAL_HOSTS = ("localhost", "127.0.0.1")


class LocationSchema(BaseModel):
    lat: float
    lng: float


class OpeningHoursSchema(BaseModel):
    open_now: Optional[bool] = None
    weekday_text: List[str] = Field(default_factory=list)


class PhotoRefSchema(BaseModel):
    reference: str
    width: Optional[int] = None
    height: Optional[int] = None
    attributions: List[str] = Field(default_factory=list)


class PlaceResponse(BaseModel):
    provider_place_id: str
    name: str
    location: LocationSchema
    formatted_address: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    rating: Optional[float] = None
    rating_count: Optional[int] = None
    opening_hours: Optional[OpeningHoursSchema] = None
    photos: List[PhotoRefSchema] = Field(default_factory=list)
    price_level: Optional[int] = None
    phone: Optional[str] = None
    website: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
    message: str


def _error_response(exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _is_local_request(request: Request) -> bool:
    host = request.url.hostname or ""
    return host in LOCAL_HOSTS


@router.get(
    "/nearby-places",
    response_model=Union[List[PlaceResponse], PlaceResponse],
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
def nearby_places(
    request: Request,
    response: Response,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    radius: Optional[str] = None,
    type: Optional[str] = None,
    keyword: Optional[List[str]] = Query(None),
    placeId: Optional[str] = None,
    provider: Optional[str] = None,
    no_cache: Optional[str] = Query(None, alias="no-cache"),
    cache_reset: Optional[str] = Query(None, alias="cache-reset"),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    x_google_api_key: Optional[str] = Header(None, alias="X-Google-API-Key"),
):
    """Nearby search, or place details when placeId is given."""
    if not settings.SECURE_API_KEY_PLACES or x_api_key != settings.SECURE_API_KEY_PLACES:
        logger.warning("Rejected /nearby-places request from %s: bad X-API-Key", request.client)
        return _error_response(UnauthorizedError("Invalid or missing API key"))

    gateway = get_default_gateway()
    provider_id = (provider or settings.PLACES_DEFAULT_PROVIDER).strip().lower()
    # The caller-supplied Google key only ever goes to Google.
    upstream_key = x_google_api_key if provider_id == "google" else None
    development = True if _is_local_request(request) else None

    try:
        flags = parse_request_flags(no_cache, cache_reset)
        if placeId:
            result = gateway.details(
                placeId,
                provider=provider_id,
                flags=flags,
                api_key=upstream_key,
                development=development,
            )
        else:
            query = build_geo_query(lat, lng, radius, type, keyword)
            result = gateway.nearby(
                query,
                provider=provider_id,
                flags=flags,
                api_key=upstream_key,
                development=development,
            )
    except GatewayError as exc:
        return _error_response(exc)

    headers = {
        "Cache-Control": f"public, max-age={result.ttl_seconds}",
        "X-Cache-Hit": "true" if result.cache_hit else "false",
        "X-Cache-Type": result.cache_kind.value,
    }
    if result.payload is None:
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "message": f"Place {placeId} not found"},
            headers=headers,
        )
    response.headers.update(headers)
    return result.payload_json()
