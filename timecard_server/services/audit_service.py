import json
import logging
import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from timecard_server.core.config import TimecardConfig
from timecard_server.core.database import TimecardStore
from timecard_server.models.audit import (
    AuditActionType,
    AuditLogEntry,
    AuditLogStatistics,
    FieldChange,
    GroupedAuditEntry,
)

logger = logging.getLogger(__name__)

# Field name -> display label for the fields whose changes are audited
TRACKABLE_FIELDS = {
    "check_in_time": "Check In Time",
    "check_out_time": "Check Out Time",
    "break_start_time": "Break Start Time",
    "break_end_time": "Break End Time",
    "total_hours": "Total Hours",
    "break_duration": "Break Duration",
    "total_pay": "Total Pay",
    "status": "Status",
    "manually_edited": "Manually Edited Flag",
    "admin_notes": "Admin Notes",
    "edit_comments": "Edit Comments",
}

class AuditLogError(Exception):
    """Raised when the audit log can't be written or read"""

    def __init__(self, message: str, timecard_id: str):
        super().__init__(message)
        self.timecard_id = timecard_id

def format_field_name(field_name: str) -> str:
    return TRACKABLE_FIELDS.get(field_name, field_name.replace("_", " ").title())

def serialize_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return json.dumps(value, default=str)

def values_equal(a: Any, b: Any) -> bool:
    """Equality that treats None and missing the same and compares enums by value"""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, Enum):
        a = a.value
    if isinstance(b, Enum):
        b = b.value
    return a == b

def detect_changes(old_data: Dict[str, Any], new_data: Dict[str, Any]) -> List[FieldChange]:
    """Changed trackable fields between two snapshots of a timecard"""
    changes = []
    for field_name in TRACKABLE_FIELDS:
        if field_name not in old_data and field_name not in new_data:
            continue
        old_value = old_data.get(field_name)
        new_value = new_data.get(field_name)
        if not values_equal(old_value, new_value):
            changes.append(FieldChange(field_name=field_name, old_value=old_value, new_value=new_value))
    return changes

def classify_edit(role: str) -> AuditActionType:
    if role in TimecardConfig.ADMIN_ROLES:
        return AuditActionType.ADMIN_EDIT
    return AuditActionType.USER_EDIT

class AuditLogService:
    """Append-only field-level change log for timecards"""

    def __init__(self, store: TimecardStore):
        self.store = store

    def record_changes(
        self,
        timecard_id: str,
        changes: Sequence[FieldChange],
        changed_by: str,
        action_type: AuditActionType,
        work_date: Optional[date] = None,
    ) -> Optional[str]:
        """
        Record one change set; returns its change_id, or None if there was nothing to record

        Raises:
            AuditLogError: the store rejected the write
        """
        if not changes:
            return None

        change_id = str(uuid.uuid4())
        changed_at = datetime.now()
        entries = [
            {
                "timecard_id": timecard_id,
                "change_id": change_id,
                "field_name": change.field_name,
                "old_value": serialize_value(change.old_value),
                "new_value": serialize_value(change.new_value),
                "changed_by": changed_by,
                "changed_at": changed_at,
                "action_type": action_type,
                "work_date": work_date,
            }
            for change in changes
        ]

        try:
            self.store.insert_audit_entries(entries)
        except Exception as e:
            logger.error(f"Failed to record audit log entries for timecard {timecard_id}: {e}")
            raise AuditLogError(f"Failed to record audit log entries: {e}", timecard_id) from e

        logger.info(f"Audit: {action_type.value} by {changed_by} on timecard {timecard_id} "
                    f"({', '.join(c.field_name for c in changes)})")
        return change_id

    def get_audit_logs(
        self,
        timecard_id: str,
        action_types: Optional[Sequence[AuditActionType]] = None,
        field_names: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[AuditLogEntry]:
        try:
            rows = self.store.query_audit_entries(
                timecard_id,
                action_types=[a.value for a in action_types] if action_types else None,
                field_names=field_names,
                limit=limit,
                offset=offset,
            )
        except Exception as e:
            logger.error(f"Failed to retrieve audit logs for timecard {timecard_id}: {e}")
            raise AuditLogError(f"Failed to retrieve audit logs: {e}", timecard_id) from e
        return [AuditLogEntry(**row) for row in rows]

    def get_grouped_audit_logs(self, timecard_id: str, **filters) -> List[GroupedAuditEntry]:
        """Audit entries grouped by change_id, most recent change first"""
        groups: Dict[str, GroupedAuditEntry] = {}
        for entry in self.get_audit_logs(timecard_id, **filters):
            group = groups.get(entry.change_id)
            if group is None:
                group = groups[entry.change_id] = GroupedAuditEntry(
                    change_id=entry.change_id,
                    changed_at=entry.changed_at,
                    changed_by=entry.changed_by,
                    action_type=entry.action_type,
                    changes=[],
                )
            group.changes.append(entry)
        return sorted(groups.values(), key=lambda g: g.changed_at, reverse=True)

    def get_statistics(self, timecard_id: str) -> AuditLogStatistics:
        entries = self.get_audit_logs(timecard_id)
        if not entries:
            return AuditLogStatistics()

        change_sets = {}
        for entry in entries:
            change_sets.setdefault(entry.change_id, entry)

        def count(action_type: AuditActionType) -> int:
            return sum(1 for e in change_sets.values() if e.action_type == action_type)

        latest = entries[0]
        return AuditLogStatistics(
            total_changes=len(change_sets),
            user_edits=count(AuditActionType.USER_EDIT),
            admin_edits=count(AuditActionType.ADMIN_EDIT),
            rejection_edits=count(AuditActionType.REJECTION_EDIT),
            status_changes=count(AuditActionType.STATUS_CHANGE),
            last_modified=latest.changed_at,
            last_modified_by=latest.changed_by,
        )
