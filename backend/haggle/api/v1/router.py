"""Versioned API router: every endpoint module mounted under /api/v1."""

from fastapi import APIRouter

from .endpoints import insights, negotiation, status

API_V1_PREFIX = "/api/v1"

api_router = APIRouter(prefix=API_V1_PREFIX)

for module, tag in ((status, "status"), (negotiation, "negotiation"), (insights, "insights")):
    api_router.include_router(module.router, tags=[tag])
