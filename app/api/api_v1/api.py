"""
Main API router for v1 endpoints.
"""

from fastapi import APIRouter

from app.api.api_v1.endpoints import (
    alerts,
    documents,
    health,
)

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(documents.router, prefix="/documents", tags=["Document Extraction"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["Proactive Alerts"])
