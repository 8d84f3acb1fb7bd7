from __future__ import annotations

import logging

from app.rms.core.logging import log_json
from app.rms.core.metrics import Metrics, metrics as default_metrics


class Observability:
    """Structured event sink handed to services.

    Services never own a logger; they receive one of these so tests can swap
    in a recording implementation and deployments can route events elsewhere.
    Every event is a single JSON line carrying ``event`` plus keyword fields.
    """

    def __init__(self, logger: logging.Logger | None = None, metrics: Metrics | None = None) -> None:
        self.logger = logger or logging.getLogger("rms.orders")
        self.metrics = metrics or default_metrics

    def info(self, event: str, **fields) -> None:
        log_json(self.logger, {"event": event, **fields})

    def warning(self, event: str, **fields) -> None:
        log_json(self.logger, {"event": event, **fields}, level=logging.WARNING)

    def error(self, event: str, exc: BaseException | None = None, **fields) -> None:
        payload = {"event": event, **fields}
        if exc is not None:
            payload["error_class"] = exc.__class__.__name__
            payload["error"] = str(exc)
        log_json(self.logger, payload, level=logging.ERROR, exc_info=exc)
