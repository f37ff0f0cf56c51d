import logging
from typing import Dict, List, Sequence

from timecard_server.models.timecard import (
    BreakResolution,
    BreakResolutionKind,
    BreakUpdate,
    TimecardDay,
    TimecardStatus,
)
from timecard_server.services.break_service import STANDARD_BREAK_MINUTES, default_break_interval
from timecard_server.services.calculation_service import calculate_timecard

logger = logging.getLogger(__name__)

def _resolved_break_times(timecard: TimecardDay, resolution: BreakResolution, default_break_minutes: float):
    if resolution.kind == BreakResolutionKind.NO_BREAK:
        return None, None
    if resolution.kind == BreakResolutionKind.ADD_BREAK:
        interval = default_break_interval(timecard.check_in_time, timecard.check_out_time, default_break_minutes)
        return interval if interval else (None, None)
    return resolution.break_start_time, resolution.break_end_time

def resolve_breaks(
    timecards: Sequence[TimecardDay],
    resolutions: Dict[str, BreakResolution],
    default_break_minutes: float = STANDARD_BREAK_MINUTES,
) -> List[BreakUpdate]:
    """
    Apply break decisions to a batch of timecards and recompute their totals.

    Timecards without an entry in resolutions are left out of the result, as
    are non-draft timecards. Output follows the order of timecards. Inputs are
    never modified, so the same call always yields the same updates.
    """
    updates = []

    for timecard in timecards:
        resolution = resolutions.get(timecard.id)
        if resolution is None:
            continue

        if timecard.status != TimecardStatus.DRAFT:
            logger.warning(f"Skipping break resolution for timecard {timecard.id}: status is {timecard.status.value}")
            continue

        break_start, break_end = _resolved_break_times(timecard, resolution, default_break_minutes)
        resolved = timecard.model_copy(update={
            "break_start_time": break_start,
            "break_end_time": break_end,
        })
        result = calculate_timecard(resolved)

        errors = list(result.validation_errors)
        if resolution.kind == BreakResolutionKind.ADD_BREAK and break_start is None and result.is_valid:
            errors.append(f"Shift is too short for a {default_break_minutes:g} minute break")

        updates.append(BreakUpdate(
            id=timecard.id,
            break_duration=result.break_duration,
            total_hours=result.total_hours,
            total_pay=result.total_pay,
            break_start_time=break_start,
            break_end_time=break_end,
            is_valid=not errors,
            validation_errors=errors,
        ))

    return updates
