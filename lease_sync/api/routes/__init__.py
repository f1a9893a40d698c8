"""API routes."""

from fastapi import APIRouter

from lease_sync.api.routes import sync

api_router = APIRouter()

api_router.include_router(sync.router, tags=["sync"])
