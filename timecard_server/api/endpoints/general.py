import logging

from fastapi import APIRouter, Depends, HTTPException
from timecard_server.core.config import ServerConfig, TimecardConfig
from timecard_server.core.database import TimecardStore, get_store
from timecard_server.services.break_service import BREAK_GRACE_PERIOD_MINUTES
from timecard_server.services.calculation_service import MAX_SHIFT_HOURS
from timecard_server.services.validation_service import MISSING_BREAK_THRESHOLD_HOURS

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/")
async def root():
    return {
        "message": ServerConfig.APP_NAME,
        "version": ServerConfig.APP_VERSION,
        "description": ServerConfig.APP_DESCRIPTION,
        "status": "running",
    }

@router.get("/config")
async def get_public_config():
    """Calculation rules in effect"""
    return {
        "apply_break_grace_period": TimecardConfig.APPLY_BREAK_GRACE_PERIOD,
        "default_break_minutes": TimecardConfig.DEFAULT_BREAK_MINUTES,
        "break_grace_period_minutes": BREAK_GRACE_PERIOD_MINUTES,
        "missing_break_threshold_hours": MISSING_BREAK_THRESHOLD_HOURS,
        "max_shift_hours": MAX_SHIFT_HOURS,
    }

@router.get("/health")
async def health_check(store: TimecardStore = Depends(get_store)):
    try:
        with store.get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM timecards WHERE status = 'draft'")
            draft_count = cursor.fetchone()[0]

            return {
                "status": "healthy",
                "database": "connected",
                "draft_timecards": draft_count,
            }
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=503, detail="Service unavailable")
