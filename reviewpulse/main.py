"""Application entrypoint for the ReviewPulse service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from reviewpulse.dependencies import get_event_sink
from reviewpulse.routers import analytics, cache, pull_requests
from reviewpulse.telemetry import configure_metrics, shutdown_metrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_metrics()
    yield
    sink = get_event_sink()
    if hasattr(sink, "close"):
        sink.close()
    shutdown_metrics()


def create_app() -> FastAPI:
    app = FastAPI(
        title="ReviewPulse",
        description="Reconstructs pull request review timelines and surfaces review-process analytics.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(pull_requests.router)
    app.include_router(analytics.router)
    app.include_router(cache.router)

    @app.get("/healthz", tags=["health"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
