"""Main API router — combines all endpoint routers."""

from fastapi import APIRouter

from rasa_xref.api.health import router as health_router
from rasa_xref.api.validation import router as validation_router
from rasa_xref.api.websocket import router as websocket_router

api_router = APIRouter()

# Health check
api_router.include_router(health_router, tags=["Health"])

# Validation passes and diagnostics
api_router.include_router(validation_router, tags=["Validation"])

# WebSocket is exported separately — mounted at app root (no /api/v1 prefix)
ws_router = websocket_router
