from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from enum import Enum
from typing import Optional, List

class TimecardStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"

class TimecardInput(BaseModel):
    """Raw time data for a single day, as handed to the calculation engine"""
    user_id: str
    project_id: str
    date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None
    pay_rate: float = Field(default=0.0, ge=0)
    status: TimecardStatus = TimecardStatus.DRAFT
    manually_edited: bool = False

    @property
    def has_break_times(self) -> bool:
        return self.break_start_time is not None and self.break_end_time is not None

class TimecardDay(TimecardInput):
    """Stored timecard record, including the derived totals written back by the caller"""
    id: str
    total_hours: Optional[float] = None
    break_duration: Optional[float] = None  # minutes
    total_pay: Optional[float] = None
    admin_notes: Optional[str] = None
    edit_comments: Optional[str] = None
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CalculationErrorKind(str, Enum):
    MISSING_TIME = "missing_time"
    INVALID_INTERVAL = "invalid_interval"
    INCOMPLETE_BREAK = "incomplete_break"
    INVALID_BREAK = "invalid_break"
    BREAK_OUTSIDE_SHIFT = "break_outside_shift"
    SHIFT_TOO_LONG = "shift_too_long"
    NOT_EDITABLE = "not_editable"

class CalculationError(BaseModel):
    kind: CalculationErrorKind
    message: str

class CalculationResult(BaseModel):
    total_hours: float = 0.0
    break_duration: float = 0.0  # minutes
    total_pay: float = 0.0
    manually_edited_flag: bool = False
    is_valid: bool = True
    validation_errors: List[str] = []
    errors: List[CalculationError] = []

class BreakResolutionKind(str, Enum):
    INTERVAL = "interval"   # caller supplies the break times
    ADD_BREAK = "add_break"  # default-length break placed in the shift
    NO_BREAK = "no_break"   # worked through, no break taken

class BreakResolution(BaseModel):
    kind: BreakResolutionKind
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None

    @model_validator(mode="after")
    def check_break_times(self) -> "BreakResolution":
        has_times = self.break_start_time is not None or self.break_end_time is not None
        if self.kind == BreakResolutionKind.INTERVAL:
            if self.break_start_time is None or self.break_end_time is None:
                raise ValueError("interval resolution requires break_start_time and break_end_time")
        elif has_times:
            raise ValueError(f"{self.kind.value} resolution does not take break times")
        return self

    @classmethod
    def interval(cls, start: datetime, end: datetime) -> "BreakResolution":
        return cls(kind=BreakResolutionKind.INTERVAL, break_start_time=start, break_end_time=end)

    @classmethod
    def no_break(cls) -> "BreakResolution":
        return cls(kind=BreakResolutionKind.NO_BREAK)

    @classmethod
    def add_break(cls) -> "BreakResolution":
        return cls(kind=BreakResolutionKind.ADD_BREAK)

class BreakUpdate(BaseModel):
    """Recomputed values for one resolved timecard"""
    id: str
    break_duration: float
    total_hours: float
    total_pay: float
    break_start_time: Optional[datetime] = None
    break_end_time: Optional[datetime] = None
    is_valid: bool = True
    validation_errors: List[str] = []

class SubmissionErrorKind(str, Enum):
    MISSING_BREAK = "missing_break"
    BEFORE_SHOW_DAY = "before_show_day"
    INVALID_TIME_SEQUENCE = "invalid_time_sequence"

class SubmissionError(BaseModel):
    kind: SubmissionErrorKind
    message: str

class MissingBreakInfo(BaseModel):
    timecard_id: str
    date: date
    total_hours: float
    has_break_data: bool

class ValidationOutcome(BaseModel):
    can_submit: bool = True
    errors: List[str] = []
    issues: List[SubmissionError] = []
    missing_breaks: List[str] = []  # timecard ids, in batch order
