"""
Main FastAPI application for the Lumina payments service.
Serves the payment webhook, health probes and metrics.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.routes import health, payment_webhook
from app.utils.metrics import router as metrics_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    if not settings.payment_webhook_secret:
        logger.critical("payment_webhook_secret_missing")
        if settings.is_production:
            raise RuntimeError("PAYMENT_WEBHOOK_SECRET must be set in production")
    logger.info("app_started")
    yield


app = FastAPI(
    title="Lumina Payments API",
    description="Payment confirmation webhook and entitlement activation",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(payment_webhook.router)
app.include_router(metrics_router)
