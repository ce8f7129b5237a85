import logging

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from opsdash.api.metrics import router as metrics_router
from opsdash.config import settings
from opsdash.services.metrics.refresh import get_snapshot_refresher
from opsdash.telemetry import setup_otel

logger = logging.getLogger(__name__)

app = FastAPI(title="Operations Metrics API")

setup_otel(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(metrics_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)


@app.on_event("startup")
async def _start_snapshot_refresher():
    if not settings.refresher_enabled:
        logger.info("metrics_refresher_disabled")
        return
    await get_snapshot_refresher().start()


@app.on_event("shutdown")
async def _stop_snapshot_refresher():
    await get_snapshot_refresher().stop()
