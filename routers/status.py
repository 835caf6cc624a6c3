import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import get_db, ping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/status", tags=["System Status"])


@router.get("")
def get_system_status(db: Database = Depends(get_db)):
    """
    Reports whether the API is up and the database answers a ping.
    """
    backend_status = "Operational"
    try:
        ping(db)
        db_status = "Connected"
    except PyMongoError as e:
        logger.error("Database ping failed: %s", e)
        db_status = "Unreachable"
        backend_status = "Degraded"

    return {
        "backend_service": {
            "status": backend_status,
            "database": db_status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
