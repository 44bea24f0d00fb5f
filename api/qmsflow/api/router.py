"""API router composition for all route groups."""

from fastapi import APIRouter

from .routes import automations, notifications, relationships, workflows

api_router = APIRouter()
api_router.include_router(automations.router, prefix="/automations", tags=["automations"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(relationships.router, prefix="/relationships", tags=["relationships"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
