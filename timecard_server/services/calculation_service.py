import logging
from typing import List

from timecard_server.models.timecard import (
    CalculationError,
    CalculationErrorKind,
    CalculationResult,
    TimecardDay,
    TimecardInput,
    TimecardStatus,
)
from timecard_server.services.break_service import STANDARD_BREAK_MINUTES, apply_break_grace_period
from timecard_server.services.time_utils import InvalidInterval, contains, duration_minutes, minutes_to_hours, overlaps

logger = logging.getLogger(__name__)

MAX_SHIFT_HOURS = 20

# Stored totals further than this from a fresh calculation were overridden by hand
MANUAL_EDIT_BREAK_TOLERANCE_MINUTES = 15
MANUAL_EDIT_HOURS_TOLERANCE = 0.25

def _error(kind: CalculationErrorKind, message: str) -> CalculationError:
    return CalculationError(kind=kind, message=message)

def _result(data: TimecardInput, errors: List[CalculationError], total_minutes: float = 0.0,
            break_minutes: float = 0.0) -> CalculationResult:
    total_hours = minutes_to_hours(total_minutes)
    return CalculationResult(
        total_hours=total_hours,
        break_duration=break_minutes,
        total_pay=total_hours * data.pay_rate,
        manually_edited_flag=data.manually_edited,
        is_valid=not errors,
        validation_errors=[e.message for e in errors],
        errors=errors,
    )

def _resolve_break(data: TimecardInput, apply_grace_period: bool, default_break_minutes: float,
                   errors: List[CalculationError]) -> float:
    """Break minutes to deduct; problems are appended to errors and count as no break"""
    if data.break_start_time is None and data.break_end_time is None:
        return 0.0

    if not data.has_break_times:
        errors.append(_error(CalculationErrorKind.INCOMPLETE_BREAK, "Incomplete break information"))
        return 0.0

    if data.break_end_time <= data.break_start_time:
        errors.append(_error(CalculationErrorKind.INVALID_BREAK, "Break end time must be after break start time"))
        return 0.0

    if not contains(data.check_in_time, data.check_out_time, data.break_start_time, data.break_end_time):
        if not overlaps(data.check_in_time, data.check_out_time, data.break_start_time, data.break_end_time):
            message = "Break must fall between check-in and check-out time"
        elif data.break_start_time < data.check_in_time:
            message = "Break start time must be after check-in time"
        else:
            message = "Break end time must be before check-out time"
        errors.append(_error(CalculationErrorKind.BREAK_OUTSIDE_SHIFT, message))
        return 0.0

    if apply_grace_period:
        return apply_break_grace_period(data.break_start_time, data.break_end_time, default_break_minutes)
    return duration_minutes(data.break_start_time, data.break_end_time)

def calculate_timecard(
    data: TimecardInput,
    apply_grace_period: bool = False,
    default_break_minutes: float = STANDARD_BREAK_MINUTES,
) -> CalculationResult:
    """
    Calculate hours, break and pay for one day of raw time data.

    Never raises for bad input: problems are reported in the result and
    is_valid is false whenever any were found. Totals are zero when the
    shift itself can't be measured; break problems only zero the break.

    Args:
        data: The day's time data
        apply_grace_period: Snap near-default breaks to default_break_minutes
        default_break_minutes: Standard break length used for snapping

    Returns:
        CalculationResult with unrounded hours (net minutes / 60)
    """
    if data.status != TimecardStatus.DRAFT:
        return _result(data, [_error(
            CalculationErrorKind.NOT_EDITABLE,
            f"Timecard is {data.status.value} and cannot be recalculated",
        )])

    if data.check_in_time is None or data.check_out_time is None:
        return _result(data, [_error(CalculationErrorKind.MISSING_TIME, "Missing check-in or check-out time")])

    try:
        shift_minutes = duration_minutes(data.check_in_time, data.check_out_time)
    except InvalidInterval:
        shift_minutes = 0.0
    if shift_minutes <= 0:
        return _result(data, [_error(
            CalculationErrorKind.INVALID_INTERVAL,
            "Check-out time must be after check-in time",
        )])

    if shift_minutes > MAX_SHIFT_HOURS * 60:
        return _result(data, [_error(
            CalculationErrorKind.SHIFT_TOO_LONG,
            f"Shift exceeds {MAX_SHIFT_HOURS}-hour limit - requires manual review",
        )])

    errors: List[CalculationError] = []
    break_minutes = _resolve_break(data, apply_grace_period, default_break_minutes, errors)
    worked_minutes = max(0.0, shift_minutes - break_minutes)

    if errors:
        logger.debug(f"Timecard for {data.user_id} on {data.date} has errors: {[e.message for e in errors]}")

    return _result(data, errors, worked_minutes, break_minutes)

def detect_manual_edit(stored: TimecardDay, result: CalculationResult) -> bool:
    """True when stored totals differ significantly from a fresh calculation"""
    if stored.total_hours is None and stored.break_duration is None:
        return False

    break_diff = abs((stored.break_duration or 0) - result.break_duration)
    hours_diff = abs((stored.total_hours or 0) - result.total_hours)
    return break_diff > MANUAL_EDIT_BREAK_TOLERANCE_MINUTES or hours_diff > MANUAL_EDIT_HOURS_TOLERANCE

def apply_calculation(day: TimecardDay, result: CalculationResult) -> TimecardDay:
    """Copy of day with the derived totals written; invalid results leave totals untouched"""
    if not result.is_valid:
        return day.model_copy()
    return day.model_copy(update={
        "total_hours": result.total_hours,
        "break_duration": result.break_duration,
        "total_pay": result.total_pay,
    })
