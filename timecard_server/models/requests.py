from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List, Dict

from timecard_server.models.timecard import BreakResolution, BreakUpdate, CalculationResult, TimecardInput

class CalculationRequest(BaseModel):
    """Preview calculation for raw time tracking data"""
    user_id: str
    project_id: str
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None
    pay_rate: float = Field(default=0.0, ge=0)
    apply_grace_period: Optional[bool] = None
    default_break_duration: Optional[int] = Field(default=None, ge=0, le=120)

class CalculationResponse(BaseModel):
    result: CalculationResult
    timecard_data: TimecardInput

class RecalculateRequest(BaseModel):
    timecard_id: str

class SubmissionRequest(BaseModel):
    """Batch of timecard ids to validate or submit"""
    timecard_ids: List[str] = Field(min_length=1)
    project_id: Optional[str] = None

class SubmissionResponse(BaseModel):
    submitted: List[str]
    can_submit: bool
    errors: List[str] = []
    missing_breaks: List[str] = []

class ResolveBreaksRequest(BaseModel):
    timecard_ids: List[str] = Field(min_length=1)
    resolutions: Dict[str, BreakResolution]

class ResolveBreaksResponse(BaseModel):
    updates: List[BreakUpdate]
    applied: List[str]

class TimecardEditRequest(BaseModel):
    """Human edit of a timecard; omitted fields are left unchanged"""
    timecard_id: str
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None
    admin_notes: Optional[str] = None
    edit_comments: Optional[str] = None
    return_to_draft: bool = False

class TimecardStatistics(BaseModel):
    total_timecards: int = 0
    draft: int = 0
    submitted: int = 0
    approved: int = 0
    rejected: int = 0
    total_hours: float = 0.0
    total_pay: float = 0.0
    manually_edited: int = 0
