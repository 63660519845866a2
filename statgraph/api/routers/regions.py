"""Region name resolution endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from statgraph.api.dependencies import get_region_mapper
from statgraph.api.models import RegionResolveRequest, RegionResolveResponse
from statgraph.errors import RegionNotFoundError
from statgraph.services.regions.mapper import RegionMapper

router = APIRouter()


@router.post("/resolve", response_model=RegionResolveResponse)
async def resolve_regions(
    request: RegionResolveRequest,
    mapper: RegionMapper = Depends(get_region_mapper),
) -> RegionResolveResponse:
    """Resolve region names to ISO 3166-2:RU codes."""
    try:
        codes = [mapper.resolve(name) for name in request.names]
    except RegionNotFoundError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return RegionResolveResponse(codes=codes)
