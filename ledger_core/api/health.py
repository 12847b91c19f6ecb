"""
Health check endpoint.

Used by load balancers and monitoring systems to verify the
application is running and can reach its database.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_core.config import get_settings
from ledger_core.models.base import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """
    Return application health status including database connectivity.

    A failed SELECT 1 reports the instance as degraded rather than
    raising, so the load balancer can take it out of rotation.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as exc:
        logger.warning("health_check_db_failed", extra={"error": str(exc)})
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "journal-ledger",
        "version": get_settings().APP_VERSION,
        "database": db_status,
    }
