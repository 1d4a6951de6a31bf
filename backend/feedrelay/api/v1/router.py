"""API v1 main router - aggregates all endpoint routers."""

from fastapi import APIRouter

from feedrelay.api.v1 import items, pipeline

api_router = APIRouter()

api_router.include_router(pipeline.router, prefix="/pipeline", tags=["pipeline"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
