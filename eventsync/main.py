"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventsync.core.config import settings
from eventsync.core.database import init_db
from eventsync.api import calendar, entities, health, webhooks

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

APP_NAME = "Event Sync"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables and log which optional integrations are configured."""
    logger.info(f"Starting {APP_NAME}")
    logger.info(f"Event ordering guard: {'on' if settings.enforce_event_ordering else 'off'}")
    logger.info(f"WhatsApp gateway: {'configured' if settings.whatsapp_configured else 'not configured'}")
    if not settings.payment_webhook_token:
        logger.warning("Payment webhook token not set; payment webhooks are accepted unauthenticated")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")

    yield

    logger.info(f"Shutting down {APP_NAME}")


app = FastAPI(
    title=APP_NAME,
    description="Reconciles App Store, payment-provider and calendar events into tracked entities",
    version=APP_VERSION,
    lifespan=lifespan
)

# Webhook senders and the CRM front end call from other origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhooks.router)
app.include_router(calendar.router)
app.include_router(entities.router)
app.include_router(health.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Answer any error that escaped a router with the generic 500 body."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


@app.get("/")
async def root():
    """Service name, version and docs location."""
    return {
        "message": APP_NAME,
        "version": APP_VERSION,
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "eventsync.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True
    )
