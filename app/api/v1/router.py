"""API v1 router aggregator."""

from fastapi import APIRouter

from app.api.v1.seo.routes import router as seo_router

api_router = APIRouter()

api_router.include_router(seo_router, prefix="/seo", tags=["SEO Content"])
