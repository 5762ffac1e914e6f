"""Liveness endpoints for the API, its database and the Temporal server."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from temporalio.client import Client

from eventsync.core.config import settings
from eventsync.core.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check():
    """Process is up and serving requests."""
    return {"status": "healthy"}


@router.get("/db")
async def database_health(db: Session = Depends(get_db)):
    """
    Round-trip a trivial query through the request's session.

    Returns:
        Connectivity and the SQL dialect in use (postgresql in production,
        sqlite in tests)
    """
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}

    return {"status": "healthy", "database": "connected", "dialect": db.get_bind().dialect.name}


@router.get("/temporal")
async def temporal_health():
    """
    Connect to the Temporal server the periodic reconciliation runs on.

    Returns:
        Connectivity and the task queue the worker listens on
    """
    try:
        await Client.connect(settings.temporal_host, namespace=settings.temporal_namespace)
    except Exception as e:
        logger.error(f"Temporal health check failed: {str(e)}")
        return {"status": "unhealthy", "temporal": "disconnected", "error": str(e)}

    return {"status": "healthy", "temporal": "connected", "task_queue": settings.temporal_task_queue}
