"""API v1 router aggregation."""

from fastapi import APIRouter

from accessgate.api.v1.container_requests import router as container_requests_router
from accessgate.api.v1.containers import router as containers_router
from accessgate.api.v1.invitations import router as invitations_router

api_router = APIRouter()

# Include all routers
api_router.include_router(containers_router, prefix="/containers", tags=["Containers"])
api_router.include_router(invitations_router, prefix="/invitations", tags=["Invitations"])
api_router.include_router(
    container_requests_router, prefix="/requests", tags=["Container Requests"]
)
