import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple

from timecard_server.core.config import TimecardConfig
from timecard_server.core.database import TimecardStore
from timecard_server.core.security import CurrentUser
from timecard_server.models.audit import AuditActionType
from timecard_server.models.requests import CalculationRequest, TimecardEditRequest, TimecardStatistics
from timecard_server.models.timecard import (
    BreakResolution,
    BreakResolutionKind,
    BreakUpdate,
    CalculationResult,
    TimecardDay,
    TimecardInput,
    TimecardStatus,
    ValidationOutcome,
)
from timecard_server.services.audit_service import AuditLogService, classify_edit, detect_changes
from timecard_server.services.break_resolution_service import resolve_breaks
from timecard_server.services.break_service import snap_break_end
from timecard_server.services.calculation_service import apply_calculation, calculate_timecard, detect_manual_edit
from timecard_server.services.validation_service import (
    can_edit_timecard,
    edit_restriction_message,
    validate_submission,
)

logger = logging.getLogger(__name__)

TIME_FIELDS = ("check_in_time", "check_out_time", "break_start_time", "break_end_time")
NO_BREAK_COMMENT = "No break taken - confirmed by user"

class TimecardNotFound(Exception):
    def __init__(self, timecard_ids: Sequence[str]):
        super().__init__(f"Timecard not found: {', '.join(timecard_ids)}")
        self.timecard_ids = list(timecard_ids)

class TimecardNotEditable(Exception):
    """Operation requires a draft timecard"""

class PermissionDenied(Exception):
    pass

class InvalidTimecard(Exception):
    """Calculation produced validation errors; nothing was persisted"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors

def calculate_statistics(timecards: Sequence[TimecardDay]) -> TimecardStatistics:
    """Counts per status and summed totals for a set of timecards"""
    stats = TimecardStatistics(total_timecards=len(timecards))
    for timecard in timecards:
        setattr(stats, timecard.status.value, getattr(stats, timecard.status.value) + 1)
        stats.total_hours += timecard.total_hours or 0
        stats.total_pay += timecard.total_pay or 0
        if timecard.manually_edited:
            stats.manually_edited += 1
    return stats

class TimecardService:
    """Fetches, authorizes, persists and audits around the pure calculation engine"""

    def __init__(self, store: TimecardStore, audit: AuditLogService):
        self.store = store
        self.audit = audit

    def _authorize(self, user: CurrentUser, timecard: TimecardDay):
        if not user.is_admin and timecard.user_id != user.user_id:
            logger.warning(f"User {user.user_id} denied access to timecard {timecard.id}")
            raise PermissionDenied(f"Access denied to timecard {timecard.id}")

    def get_timecard(self, timecard_id: str, user: CurrentUser) -> TimecardDay:
        timecard = self.store.get_timecard(timecard_id)
        if timecard is None:
            raise TimecardNotFound([timecard_id])
        self._authorize(user, timecard)
        return timecard

    def get_timecards(self, timecard_ids: Sequence[str], user: CurrentUser) -> List[TimecardDay]:
        timecards = self.store.get_timecards(timecard_ids)
        found = {t.id for t in timecards}
        missing = [i for i in timecard_ids if i not in found]
        if missing:
            raise TimecardNotFound(missing)
        for timecard in timecards:
            self._authorize(user, timecard)
        return timecards

    def _persist(self, before: TimecardDay, fields: Dict, user: CurrentUser,
                 action_type: Optional[AuditActionType] = None) -> TimecardDay:
        """Write one record and audit the change; status moves are logged as status_change"""
        fields = dict(fields, updated_at=datetime.now())
        if not self.store.update_timecard(before.id, fields):
            raise TimecardNotFound([before.id])
        after = before.model_copy(update=fields)

        changes = detect_changes(before.model_dump(), after.model_dump())
        status_changes = [c for c in changes if c.field_name == "status"]
        edits = [c for c in changes if c.field_name != "status"]
        if action_type is None:
            action_type = classify_edit(user.role)
        self.audit.record_changes(before.id, edits, user.user_id, action_type, work_date=before.date)
        self.audit.record_changes(before.id, status_changes, user.user_id, AuditActionType.STATUS_CHANGE,
                                  work_date=before.date)
        return after

    def preview_calculation(self, request: CalculationRequest) -> Tuple[CalculationResult, TimecardInput]:
        """Calculate raw times without touching storage"""
        apply_grace = request.apply_grace_period
        if apply_grace is None:
            apply_grace = TimecardConfig.APPLY_BREAK_GRACE_PERIOD
        default_break = request.default_break_duration
        if default_break is None:
            default_break = TimecardConfig.DEFAULT_BREAK_MINUTES

        data = TimecardInput(**request.model_dump(exclude={"apply_grace_period", "default_break_duration"}))
        if apply_grace and data.has_break_times and data.break_end_time > data.break_start_time:
            snapped_end = snap_break_end(data.break_start_time, data.break_end_time, default_break)
            # The snapped break must stay inside the shift
            if data.check_out_time is None or snapped_end <= data.check_out_time:
                data = data.model_copy(update={"break_end_time": snapped_end})

        result = calculate_timecard(data, apply_grace_period=apply_grace, default_break_minutes=default_break)
        return result, data

    def recalculate(self, timecard_id: str, user: CurrentUser) -> TimecardDay:
        timecard = self.get_timecard(timecard_id, user)
        if not can_edit_timecard(timecard):
            raise TimecardNotEditable(edit_restriction_message(timecard))

        result = calculate_timecard(timecard)
        if not result.is_valid:
            logger.warning(f"Invalid timecard calculation for {timecard_id}: {result.validation_errors}")
            raise InvalidTimecard(result.validation_errors)

        if detect_manual_edit(timecard, result):
            # Hand-set totals are kept; only the flag records the override
            logger.info(f"Stored totals for {timecard_id} differ from calculation, keeping them as a manual edit")
            return self._persist(timecard, {"manually_edited": True}, user)

        updated = apply_calculation(timecard, result)
        return self._persist(timecard, {
            "total_hours": updated.total_hours,
            "break_duration": updated.break_duration,
            "total_pay": updated.total_pay,
        }, user)

    def validate(self, timecard_ids: Sequence[str], user: CurrentUser,
                 project_id: Optional[str] = None, today: Optional[date] = None) -> ValidationOutcome:
        timecards = self.get_timecards(timecard_ids, user)
        project_start = self.store.get_project_start_date(project_id) if project_id else None
        calculated = {t.id: apply_calculation(t, calculate_timecard(t))
                      for t in timecards if t.status == TimecardStatus.DRAFT}
        return validate_submission(
            [calculated.get(t.id, t) for t in timecards], project_start_date=project_start, today=today,
        )

    def submit(self, timecard_ids: Sequence[str], user: CurrentUser,
               project_id: Optional[str] = None, today: Optional[date] = None) -> Tuple[ValidationOutcome, List[str]]:
        """
        Move a batch of drafts to submitted.

        Nothing is written unless the whole batch validates and every draft
        calculates cleanly. Records already past draft are left alone.

        Returns:
            (outcome, ids of the timecards that were submitted)
        """
        timecards = self.get_timecards(timecard_ids, user)
        project_start = self.store.get_project_start_date(project_id) if project_id else None

        drafts = [t for t in timecards if t.status == TimecardStatus.DRAFT]
        results = {t.id: calculate_timecard(t) for t in drafts}
        # Validate the totals that will be written, not whatever was stored before
        calculated = {t.id: apply_calculation(t, results[t.id]) for t in drafts}
        outcome = validate_submission(
            [calculated.get(t.id, t) for t in timecards], project_start_date=project_start, today=today,
        )
        calculation_errors = [
            f"{t.date.isoformat()}: {message}"
            for t in drafts
            for message in results[t.id].validation_errors
        ]
        if calculation_errors:
            outcome = outcome.model_copy(update={
                "can_submit": False,
                "errors": outcome.errors + calculation_errors,
            })

        if not outcome.can_submit:
            return outcome, []

        submitted_at = datetime.now()
        submitted = []
        for timecard in drafts:
            validated = calculated[timecard.id]
            self._persist(timecard, {
                "status": TimecardStatus.SUBMITTED,
                "submitted_at": submitted_at,
                "total_hours": validated.total_hours,
                "break_duration": validated.break_duration,
                "total_pay": validated.total_pay,
            }, user)
            submitted.append(timecard.id)

        logger.info(f"User {user.user_id} submitted {len(submitted)} timecard(s)")
        return outcome, submitted

    def resolve_breaks(self, timecard_ids: Sequence[str], resolutions: Dict[str, BreakResolution],
                       user: CurrentUser) -> Tuple[List[BreakUpdate], List[str]]:
        """
        Apply missing-break decisions and persist the valid updates.

        Each record is written on its own; a failure part way leaves earlier
        records applied and the call can be repeated for the rest.
        """
        timecards = self.get_timecards(timecard_ids, user)
        by_id = {t.id: t for t in timecards}
        updates = resolve_breaks(timecards, resolutions, default_break_minutes=TimecardConfig.DEFAULT_BREAK_MINUTES)

        applied = []
        for update in updates:
            if not update.is_valid:
                logger.warning(f"Not applying break resolution for {update.id}: {update.validation_errors}")
                continue

            fields = {
                "break_start_time": update.break_start_time,
                "break_end_time": update.break_end_time,
                "break_duration": update.break_duration,
                "total_hours": update.total_hours,
                "total_pay": update.total_pay,
            }
            if resolutions[update.id].kind == BreakResolutionKind.NO_BREAK:
                fields["manually_edited"] = True
                fields["edit_comments"] = NO_BREAK_COMMENT
            self._persist(by_id[update.id], fields, user)
            applied.append(update.id)

        return updates, applied

    def edit(self, request: TimecardEditRequest, user: CurrentUser) -> TimecardDay:
        """
        Human edit of time fields and notes.

        Owners may edit their own drafts. Admin roles may edit any record and
        write admin notes; on non-draft records their time edits are stored as
        manual overrides without recalculation.
        """
        timecard = self.get_timecard(request.timecard_id, user)

        if not can_edit_timecard(timecard) and not user.is_admin:
            raise TimecardNotEditable(edit_restriction_message(timecard))
        if request.admin_notes is not None and not user.is_admin:
            raise PermissionDenied("Only admin and in-house staff can write admin notes")
        if request.return_to_draft and not user.is_admin:
            raise PermissionDenied("Only admin and in-house staff can return a timecard to draft")

        fields = request.model_dump(exclude_unset=True, exclude={"timecard_id", "return_to_draft"})
        if any(name in fields for name in TIME_FIELDS):
            fields["manually_edited"] = True
        if request.return_to_draft and timecard.status == TimecardStatus.REJECTED:
            fields["status"] = TimecardStatus.DRAFT

        edited = timecard.model_copy(update=fields)
        if edited.status == TimecardStatus.DRAFT and any(name in fields for name in TIME_FIELDS):
            result = calculate_timecard(edited)
            if not result.is_valid:
                raise InvalidTimecard(result.validation_errors)
            fields.update(
                total_hours=result.total_hours,
                break_duration=result.break_duration,
                total_pay=result.total_pay,
            )

        action_type = AuditActionType.REJECTION_EDIT if timecard.status == TimecardStatus.REJECTED else None
        return self._persist(timecard, fields, user, action_type)

    def project_statistics(self, project_id: str, start_date: Optional[date] = None,
                           end_date: Optional[date] = None) -> TimecardStatistics:
        return calculate_statistics(self.store.list_project_timecards(project_id, start_date, end_date))
