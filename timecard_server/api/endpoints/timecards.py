import logging
from contextlib import contextmanager
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from timecard_server.core.database import TimecardStore, get_store
from timecard_server.core.security import CurrentUser, get_current_user, require_admin
from timecard_server.models.audit import AuditActionType
from timecard_server.models.requests import (
    CalculationRequest,
    CalculationResponse,
    RecalculateRequest,
    ResolveBreaksRequest,
    ResolveBreaksResponse,
    SubmissionRequest,
    SubmissionResponse,
    TimecardEditRequest,
    TimecardStatistics,
)
from timecard_server.models.timecard import TimecardDay, ValidationOutcome
from timecard_server.services.audit_service import AuditLogError, AuditLogService, format_field_name
from timecard_server.services.timecard_service import (
    InvalidTimecard,
    PermissionDenied,
    TimecardNotEditable,
    TimecardNotFound,
    TimecardService,
)

router = APIRouter()
logger = logging.getLogger(__name__)

def get_timecard_service(store: TimecardStore = Depends(get_store)) -> TimecardService:
    return TimecardService(store, AuditLogService(store))

@contextmanager
def service_errors():
    """Translate service exceptions into HTTP errors"""
    try:
        yield
    except TimecardNotFound as e:
        raise HTTPException(status_code=404, detail={"error": str(e), "code": "NOT_FOUND"})
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail={"error": str(e), "code": "ACCESS_DENIED"})
    except TimecardNotEditable as e:
        raise HTTPException(status_code=409, detail={"error": str(e), "code": "NOT_EDITABLE"})
    except InvalidTimecard as e:
        raise HTTPException(status_code=400, detail={
            "error": "Calculation failed", "code": "CALCULATION_ERROR", "details": e.errors,
        })
    except AuditLogError as e:
        logger.error(f"Audit log failure for timecard {e.timecard_id}: {e}")
        raise HTTPException(status_code=500, detail={"error": "Failed to record audit log", "code": "AUDIT_ERROR"})

@router.post("/timecards/calculate", response_model=CalculationResponse)
async def calculate_timecard_preview(
    request: CalculationRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Real-time calculation for raw time tracking data; nothing is stored"""
    if request.user_id != user.user_id and not user.is_admin:
        raise HTTPException(status_code=403, detail={"error": "Access denied", "code": "ACCESS_DENIED"})

    result, timecard_data = service.preview_calculation(request)
    if not result.is_valid:
        raise HTTPException(status_code=400, detail={
            "error": "Calculation failed", "code": "CALCULATION_ERROR", "details": result.validation_errors,
        })
    return CalculationResponse(result=result, timecard_data=timecard_data)

@router.put("/timecards/calculate", response_model=TimecardDay)
async def recalculate_timecard(
    request: RecalculateRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Recalculate and store the totals of a draft timecard"""
    with service_errors():
        return service.recalculate(request.timecard_id, user)

@router.post("/timecards/validate-submission", response_model=ValidationOutcome)
async def validate_timecard_submission(
    request: SubmissionRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Check whether a batch of drafts can be submitted"""
    with service_errors():
        return service.validate(request.timecard_ids, user, project_id=request.project_id)

@router.post("/timecards/submit", response_model=SubmissionResponse)
async def submit_timecards(
    request: SubmissionRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Submit a batch of drafts; blocked batches are rejected with the reasons"""
    with service_errors():
        outcome, submitted = service.submit(request.timecard_ids, user, project_id=request.project_id)

    if not outcome.can_submit:
        raise HTTPException(status_code=400, detail={
            "error": "Submission blocked",
            "code": "SUBMISSION_BLOCKED",
            "errors": outcome.errors,
            "missing_breaks": outcome.missing_breaks,
        })

    return SubmissionResponse(
        submitted=submitted,
        can_submit=True,
        errors=outcome.errors,
        missing_breaks=outcome.missing_breaks,
    )

@router.post("/timecards/resolve-breaks", response_model=ResolveBreaksResponse)
async def resolve_missing_breaks(
    request: ResolveBreaksRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Apply the user's break decisions to timecards flagged for missing breaks"""
    with service_errors():
        updates, applied = service.resolve_breaks(request.timecard_ids, request.resolutions, user)
    return ResolveBreaksResponse(updates=updates, applied=applied)

@router.post("/timecards/edit", response_model=TimecardDay)
async def edit_timecard(
    request: TimecardEditRequest,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Manual edit of a timecard by its owner or an admin"""
    with service_errors():
        return service.edit(request, user)

@router.get("/timecards/projects/{project_id}/stats", response_model=TimecardStatistics,
            dependencies=[Depends(require_admin)])
async def get_project_timecard_stats(
    project_id: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service: TimecardService = Depends(get_timecard_service),
):
    """Timecard counts and totals for a project"""
    return service.project_statistics(project_id, start_date, end_date)

@router.get("/timecards/{timecard_id}", response_model=TimecardDay)
async def get_timecard(
    timecard_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    with service_errors():
        return service.get_timecard(timecard_id, user)

@router.get("/timecards/{timecard_id}/audit-logs")
async def get_timecard_audit_logs(
    timecard_id: str,
    grouped: bool = False,
    action_type: Optional[List[AuditActionType]] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    service: TimecardService = Depends(get_timecard_service),
):
    """Change history of a timecard, newest first"""
    with service_errors():
        service.get_timecard(timecard_id, user)
        filters = {"action_types": action_type, "limit": limit, "offset": offset}
        if grouped:
            data = [g.model_dump() for g in service.audit.get_grouped_audit_logs(timecard_id, **filters)]
        else:
            data = [
                dict(entry.model_dump(), field_label=format_field_name(entry.field_name))
                for entry in service.audit.get_audit_logs(timecard_id, **filters)
            ]
        statistics = service.audit.get_statistics(timecard_id)

    return {
        "timecard_id": timecard_id,
        "grouped": grouped,
        "statistics": statistics,
        "data": data,
    }
