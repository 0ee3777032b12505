"""Master API router mounted at /api/v1."""

from fastapi import APIRouter
from rollout.api.routes import (
    auth,
    clusters,
    customers,
    health,
    releases,
    steps,
    templates,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router)
api_router.include_router(clusters.router)
api_router.include_router(customers.router)
api_router.include_router(releases.router)
api_router.include_router(templates.router)
api_router.include_router(steps.router)
