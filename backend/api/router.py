"""
Master API router: aggregates the documents, analysis, dashboard and subscription routers.
"""
from fastapi import APIRouter

from api.documents import router as documents_router
from api.analysis import router as analysis_router
from api.dashboard import router as dashboard_router
from api.subscription import router as subscription_router

api_router = APIRouter()

api_router.include_router(documents_router)
api_router.include_router(analysis_router)
api_router.include_router(dashboard_router)
api_router.include_router(subscription_router)
