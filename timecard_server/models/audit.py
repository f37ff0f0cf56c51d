from pydantic import BaseModel
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, List

class AuditActionType(str, Enum):
    USER_EDIT = "user_edit"
    ADMIN_EDIT = "admin_edit"
    REJECTION_EDIT = "rejection_edit"
    STATUS_CHANGE = "status_change"

class FieldChange(BaseModel):
    field_name: str
    old_value: Any = None
    new_value: Any = None

class AuditLogEntry(BaseModel):
    id: int
    timecard_id: str
    change_id: str
    field_name: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: str
    changed_at: datetime
    action_type: AuditActionType
    work_date: Optional[date] = None

class GroupedAuditEntry(BaseModel):
    """All field changes recorded under one change_id"""
    change_id: str
    changed_at: datetime
    changed_by: str
    action_type: AuditActionType
    changes: List[AuditLogEntry]

class AuditLogStatistics(BaseModel):
    total_changes: int = 0
    user_edits: int = 0
    admin_edits: int = 0
    rejection_edits: int = 0
    status_changes: int = 0
    last_modified: Optional[datetime] = None
    last_modified_by: Optional[str] = None
