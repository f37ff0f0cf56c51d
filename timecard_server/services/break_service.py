import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from timecard_server.services.time_utils import duration_minutes

logger = logging.getLogger(__name__)

# Breaks ending within this many minutes of the default length count as exactly the default.
# Fixed business rule pending product confirmation; not configurable per project.
BREAK_GRACE_PERIOD_MINUTES = 5

STANDARD_BREAK_MINUTES = 30

def apply_break_grace_period(break_start: datetime, break_end: datetime, default_minutes: float) -> float:
    """
    Resolve the effective break length in minutes.

    Args:
        break_start: Observed break start, required
        break_end: Observed break end, required
        default_minutes: Standard break length for the project

    Returns:
        default_minutes when the observed break is within the grace period of it,
        otherwise the observed duration unchanged
    """
    observed = duration_minutes(break_start, break_end)
    if abs(observed - default_minutes) <= BREAK_GRACE_PERIOD_MINUTES:
        return float(default_minutes)
    return observed

def snap_break_end(break_start: datetime, break_end: datetime, default_minutes: float) -> datetime:
    """Break end moved to start + default when the grace period applies, else unchanged"""
    effective = apply_break_grace_period(break_start, break_end, default_minutes)
    if effective == default_minutes:
        return break_start + timedelta(minutes=default_minutes)
    return break_end

def default_break_interval(
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    default_minutes: float = STANDARD_BREAK_MINUTES,
) -> Optional[Tuple[datetime, datetime]]:
    """Default-length break centred in the shift, or None if the shift can't hold one"""
    if check_in is None or check_out is None or check_out <= check_in:
        return None

    shift_minutes = duration_minutes(check_in, check_out)
    if shift_minutes <= default_minutes:
        logger.debug(f"Shift of {shift_minutes:.0f} minutes too short for a {default_minutes} minute break")
        return None

    start = check_in + timedelta(minutes=(shift_minutes - default_minutes) / 2)
    return start, start + timedelta(minutes=default_minutes)
