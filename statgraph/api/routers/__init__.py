"""API sub-routers assembled into a single api_router."""

from fastapi import APIRouter

from statgraph.api.routers.clarifications import router as clarifications_router
from statgraph.api.routers.health import router as health_router
from statgraph.api.routers.process import router as process_router
from statgraph.api.routers.regions import router as regions_router

api_router = APIRouter()

api_router.include_router(process_router, tags=["process"])
api_router.include_router(clarifications_router, tags=["clarifications"])
api_router.include_router(health_router, tags=["health"])
api_router.include_router(regions_router, prefix="/regions", tags=["regions"])
