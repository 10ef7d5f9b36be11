"""
FastAPI application entry point for the threat inference router.
"""

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from threat_inference.api.dependencies import (
    get_event_emitter,
    get_inference_client,
    get_strategy_router,
)
from threat_inference.api.error_handlers import EXCEPTION_HANDLERS
from threat_inference.api.middleware import RequestTracingMiddleware
from threat_inference.api.routes import router
from threat_inference.config import settings
from threat_inference.logging_config import configure_logging

# Configure structured logging before anything logs
configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Security article analysis with budget-aware inference strategy routing",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Request tracing middleware (must be first for request_id in all logs)
app.add_middleware(RequestTracingMiddleware)

for exc_class, handler in EXCEPTION_HANDLERS.items():
    app.add_exception_handler(exc_class, handler)

app.include_router(router, tags=["analysis"])


@app.on_event("startup")
async def startup():
    """Start the observability consumer and log the effective strategy."""
    deployment = settings.deployment_config()
    logger.info(
        "Application startup",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        deployment_mode=deployment.mode.value,
        canary_percent=deployment.canary_percent,
        daily_unit_limit=settings.DAILY_UNIT_LIMIT,
        via_gateway=bool(settings.AI_GATEWAY_ID),
    )
    if not settings.WORKERS_AI_ACCOUNT_ID or not settings.WORKERS_AI_API_TOKEN:
        logger.warning("Workers AI credentials not configured; inference calls will fail")

    get_event_emitter().start()
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown():
    """Finish shadow comparisons, flush pending events, close the HTTP pool.

    Order matters: comparisons still running may call the client and emit
    events, so they are awaited before either is closed.
    """
    logger.info("Application shutdown")
    await get_strategy_router().wait_for_shadow()
    await get_event_emitter().close()
    await get_inference_client().close()
    logger.info("Application shutdown complete")


# Prometheus metrics instrumentation
if settings.PROMETHEUS_ENABLED:
    Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """Root endpoint with API documentation links."""
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics" if settings.PROMETHEUS_ENABLED else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "threat_inference.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
