from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.rms.core.config import settings
from app.rms.core.error_catalog import AppError, ErrorCatalog
from app.rms.core.metrics import metrics
from app.rms.db.models import OrderSequence
from app.rms.db.session import get_db

router = APIRouter()
metrics_router = APIRouter(prefix="/rms/ops")


def _trace_id(request: Request) -> str:
    return getattr(request.state, "trace_id", "")


@router.get("/health")
async def health(request: Request):
    return {"status": "ok", "service": settings.APP_NAME, "trace_id": _trace_id(request)}


@router.get("/ready")
def ready(request: Request, db=Depends(get_db)):
    # Reading the counter table proves both the connection and the migrated schema.
    try:
        db.execute(select(OrderSequence.store_id).limit(1))
    except SQLAlchemyError as exc:
        raise AppError(ErrorCatalog.DB_UNAVAILABLE, details={"type": exc.__class__.__name__}) from exc
    return {"status": "ready", "database": db.get_bind().dialect.name, "trace_id": _trace_id(request)}


@metrics_router.get("/metrics")
def get_metrics():
    snapshot = metrics.render()
    return Response(content=snapshot.content, media_type=snapshot.content_type)
