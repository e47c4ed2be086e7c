# neighborhood_explorer/api/routes.py
# HTTP surface: neighborhood catalog, categories and POI discovery.

from fastapi import APIRouter, Header, HTTPException, Request, status
import logging
from typing import Any, Dict, List, Optional

from neighborhood_explorer.core.config import settings
from neighborhood_explorer.models.dto import (
    CategoryInfo,
    DiscoverRequest,
    DiscoverResponse,
    DiscoveryStatus,
    ErrorResponse,
    Neighborhood,
    NeighborhoodSummary,
)
from neighborhood_explorer.services.neighborhoods import NeighborhoodRegistry, boundary_feature
from neighborhood_explorer.services.search_strategy import list_categories
from neighborhood_explorer.services.session_manager import SessionManager

router = APIRouter()
logger = logging.getLogger(__name__)


def _registry(request: Request) -> NeighborhoodRegistry:
    return request.app.state.registry


def _get_neighborhood_or_404(request: Request, neighborhood_id: str) -> Neighborhood:
    neighborhood = _registry(request).lookup(neighborhood_id)
    if neighborhood is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorResponse(
                error="NEIGHBORHOOD_NOT_FOUND",
                detail=f"Unknown neighborhood '{neighborhood_id}'.",
            ).model_dump(),
        )
    return neighborhood


def resolve_access_token(body_token: Optional[str], header_token: Optional[str]) -> Optional[str]:
    """Body token, then header token, then the server-side token."""
    for token in (body_token, header_token, settings.MAPBOX_TOKEN):
        if token and token.strip():
            return token.strip()
    return None


# ----------------------------------------------------------------------
# Catalog
# ----------------------------------------------------------------------
@router.get("/neighborhoods", response_model=List[NeighborhoodSummary])
async def list_neighborhoods(request: Request):
    return [
        NeighborhoodSummary(id=n.id, name=n.name, center=n.center, default_zoom=n.default_zoom)
        for n in _registry(request).all()
    ]


@router.get(
    "/neighborhoods/{neighborhood_id}",
    response_model=Neighborhood,
    responses={404: {"model": ErrorResponse}},
)
async def get_neighborhood(request: Request, neighborhood_id: str):
    return _get_neighborhood_or_404(request, neighborhood_id)


@router.get(
    "/neighborhoods/{neighborhood_id}/boundary",
    responses={404: {"model": ErrorResponse}},
)
async def get_neighborhood_boundary(request: Request, neighborhood_id: str) -> Dict[str, Any]:
    """GeoJSON outline for the map's dashed boundary layer."""
    return boundary_feature(_get_neighborhood_or_404(request, neighborhood_id))


@router.get("/categories", response_model=List[CategoryInfo])
async def get_categories():
    return list_categories()


# ----------------------------------------------------------------------
# Discovery
# ----------------------------------------------------------------------
@router.post(
    "/discover",
    response_model=DiscoverResponse,
    responses={401: {"model": ErrorResponse}},
)
async def discover(
    request: Request,
    data: DiscoverRequest,
    x_mapbox_token: Optional[str] = Header(None),
):
    """Find POIs for a category around a neighborhood."""
    access_token = resolve_access_token(data.access_token, x_mapbox_token)
    if access_token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=ErrorResponse(
                error="NO_CREDENTIAL",
                detail="A Mapbox access token is required to explore neighborhoods.",
            ).model_dump(),
        )

    neighborhood = _registry(request).resolve(data.neighborhood_id)
    category = data.category.strip() or settings.DEFAULT_CATEGORY
    session_manager: SessionManager = request.app.state.session_manager
    session_id = request.state.session_id

    session, result = await session_manager.discover(session_id, neighborhood, category, access_token)

    if result is None:
        return DiscoverResponse(
            status=DiscoveryStatus.STALE,
            neighborhood_id=neighborhood.id,
            category=category,
            generation=session.generation,
            message="A newer request replaced this one.",
        )

    return DiscoverResponse(
        status=result.status,
        tier=result.tier,
        neighborhood_id=neighborhood.id,
        category=category,
        generation=session.committed_generation,
        pois=result.pois,
        viewport=result.viewport,
        message=result.message,
    )
