"""Main API router for v1 endpoints"""
from fastapi import APIRouter

from creator_discovery.api.v1 import discover

# Create main API router
api_router = APIRouter()

# Include sub-routers
api_router.include_router(discover.router, prefix="/discover", tags=["Discover"])
