import logging

from fastapi import FastAPI

from app.rms.api import api_router
from app.rms.core.config import settings
from app.rms.core.errors import setup_exception_handlers
from app.rms.core.logging import configure_logging
from app.rms.core.observability import Observability
from app.rms.middleware.observability import ObservabilityMiddleware, TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    observability = Observability(logging.getLogger("rms.request"))
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware, observability=observability)
    setup_exception_handlers(app, observability)
    app.include_router(api_router)
    return app


app = create_app()
