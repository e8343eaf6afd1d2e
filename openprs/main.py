"""Application entrypoint for the OpenPRs attention service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from openprs.core.config import settings
from openprs.routers import boards, decisions
from openprs.dependencies import get_event_sink
from openprs.telemetry import collect_prometheus_metrics, configure_logging, configure_metrics, shutdown_metrics

_logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    configure_metrics()
    sink = get_event_sink()
    app.state.event_sink = sink
    _logger.info(
        "Serving boards for %s (events: %s, metrics: %s)",
        ", ".join(settings.target_repos),
        settings.events_backend,
        settings.otel_exporter if settings.otel_enabled else "off",
    )
    try:
        yield
    finally:
        sink.close()
        shutdown_metrics()


def create_app() -> FastAPI:
    app = FastAPI(
        title="OpenPRs Attention",
        description="Decides which specification pull requests need editor attention and buckets them for boards.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(boards.router)
    app.include_router(decisions.router)

    @app.get("/healthz", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    if settings.otel_exporter.lower().strip() == "prometheus":

        @app.get("/metrics", tags=["metrics"])
        def metrics_endpoint() -> PlainTextResponse:
            payload, content_type = collect_prometheus_metrics()
            return PlainTextResponse(payload, media_type=content_type)

    return app


app = create_app()
