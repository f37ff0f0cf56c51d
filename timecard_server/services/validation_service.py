import logging
from datetime import date
from typing import List, Optional, Sequence

from timecard_server.models.timecard import (
    MissingBreakInfo,
    SubmissionError,
    SubmissionErrorKind,
    TimecardDay,
    TimecardStatus,
    ValidationOutcome,
)
from timecard_server.services.time_utils import InvalidInterval, duration_minutes, minutes_to_hours

logger = logging.getLogger(__name__)

# Shifts longer than this need a recorded break (or an explicit no-break decision).
# Fixed business rule pending product confirmation; not configurable per project.
MISSING_BREAK_THRESHOLD_HOURS = 6

SHOW_DAY_NOT_STARTED = "Timecard submission is not available until show day begins"

EDIT_RESTRICTION_MESSAGES = {
    TimecardStatus.SUBMITTED: "This timecard has been submitted and cannot be edited. "
                              "Contact your supervisor if changes are needed.",
    TimecardStatus.APPROVED: "This timecard has been approved and cannot be edited.",
    TimecardStatus.REJECTED: "This timecard was rejected. Review the comments, "
                             "make corrections and resubmit.",
}

def _worked_hours(timecard: TimecardDay) -> float:
    """Stored total, or the raw shift length when totals haven't been calculated yet"""
    if timecard.total_hours is not None:
        return timecard.total_hours
    if timecard.check_in_time is None or timecard.check_out_time is None:
        return 0.0
    try:
        return minutes_to_hours(duration_minutes(timecard.check_in_time, timecard.check_out_time))
    except InvalidInterval:
        return 0.0

def _has_invalid_time_sequence(timecard: TimecardDay) -> bool:
    if timecard.check_in_time is None or timecard.check_out_time is None:
        return False
    return timecard.check_out_time <= timecard.check_in_time

def has_missing_break(timecard: TimecardDay) -> bool:
    """Draft shift over the threshold with no break recorded"""
    if timecard.status != TimecardStatus.DRAFT:
        return False
    return (
        _worked_hours(timecard) > MISSING_BREAK_THRESHOLD_HOURS
        and not timecard.break_duration
        and not timecard.has_break_times
    )

def find_missing_breaks(timecards: Sequence[TimecardDay]) -> List[MissingBreakInfo]:
    return [
        MissingBreakInfo(
            timecard_id=timecard.id,
            date=timecard.date,
            total_hours=_worked_hours(timecard),
            has_break_data=timecard.break_start_time is not None or timecard.break_end_time is not None,
        )
        for timecard in timecards
        if has_missing_break(timecard)
    ]

def validate_submission(
    timecards: Sequence[TimecardDay],
    project_start_date: Optional[date] = None,
    today: Optional[date] = None,
) -> ValidationOutcome:
    """
    Decide whether a batch of draft timecards may be submitted.

    Args:
        timecards: Batch to check; non-draft records are ignored
        project_start_date: First show day of the project, if known
        today: Reference date for the show day rule, defaults to date.today()

    Returns:
        ValidationOutcome; can_submit is false if any rule triggered
    """
    if today is None:
        today = date.today()

    drafts = [t for t in timecards if t.status == TimecardStatus.DRAFT]
    issues: List[SubmissionError] = []

    missing = find_missing_breaks(drafts)
    missing_ids = []
    for info in missing:
        if info.timecard_id not in missing_ids:
            missing_ids.append(info.timecard_id)
    if missing_ids:
        issues.append(SubmissionError(
            kind=SubmissionErrorKind.MISSING_BREAK,
            message=f"{len(missing_ids)} timecard(s) missing break information",
        ))

    for timecard in drafts:
        if _has_invalid_time_sequence(timecard):
            issues.append(SubmissionError(
                kind=SubmissionErrorKind.INVALID_TIME_SEQUENCE,
                message=f"Invalid time sequence for {timecard.date.isoformat()}: check-out must be after check-in",
            ))

    if project_start_date is not None and project_start_date > today:
        issues.append(SubmissionError(kind=SubmissionErrorKind.BEFORE_SHOW_DAY, message=SHOW_DAY_NOT_STARTED))

    if issues:
        logger.info(f"Submission blocked for {len(drafts)} draft timecard(s): {[i.kind.value for i in issues]}")

    return ValidationOutcome(
        can_submit=not issues,
        errors=[i.message for i in issues],
        issues=issues,
        missing_breaks=missing_ids,
    )

def can_edit_timecard(timecard: TimecardDay) -> bool:
    return timecard.status == TimecardStatus.DRAFT

def edit_restriction_message(timecard: TimecardDay) -> Optional[str]:
    """Why the owner can't edit this timecard, or None if they can"""
    return EDIT_RESTRICTION_MESSAGES.get(timecard.status)
