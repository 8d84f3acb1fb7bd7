from fastapi import APIRouter

from app.rms.core.config import settings
from app.rms.routers.ops import metrics_router, router as ops_router
from app.rms.routers.orders import router as orders_router
from app.rms.routers.payments import router as payments_router

api_router = APIRouter()
api_router.include_router(ops_router, tags=["ops"])
api_router.include_router(orders_router, tags=["orders"])
api_router.include_router(payments_router, tags=["payments"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
