import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from timecard_server.core.config import ServerConfig
from timecard_server.models.timecard import TimecardDay

logger = logging.getLogger(__name__)

TIMECARD_COLUMNS = (
    "id", "user_id", "project_id", "date",
    "check_in_time", "check_out_time", "break_start_time", "break_end_time",
    "pay_rate", "status", "manually_edited",
    "total_hours", "break_duration", "total_pay",
    "admin_notes", "edit_comments", "submitted_at", "updated_at",
)

AUDIT_COLUMNS = (
    "timecard_id", "change_id", "field_name", "old_value", "new_value",
    "changed_by", "changed_at", "action_type", "work_date",
)

def to_db_value(value: Any) -> Any:
    """Convert model values into something sqlite3 stores as-is"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value

class TimecardStore:
    """SQLite-backed record store for projects, timecards and audit rows"""

    def __init__(self, database_path: str):
        self.database_path = database_path

    @contextmanager
    def get_db(self):
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except Exception as e:
            conn.rollback()
            raise e
        finally:
            conn.close()

    def init_database(self):
        with self.get_db() as conn:
            cursor = conn.cursor()

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    start_date DATE,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            ''')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS timecards (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    project_id TEXT NOT NULL,
                    date DATE NOT NULL,
                    check_in_time TIMESTAMP,
                    check_out_time TIMESTAMP,
                    break_start_time TIMESTAMP,
                    break_end_time TIMESTAMP,
                    pay_rate REAL NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'draft'
                        CHECK(status IN ('draft', 'submitted', 'approved', 'rejected')),
                    manually_edited BOOLEAN NOT NULL DEFAULT FALSE,
                    total_hours REAL,
                    break_duration REAL,
                    total_pay REAL,
                    admin_notes TEXT,
                    edit_comments TEXT,
                    submitted_at TIMESTAMP,
                    updated_at TIMESTAMP,
                    UNIQUE (user_id, project_id, date),
                    FOREIGN KEY (project_id) REFERENCES projects (id)
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_timecards_project
                ON timecards (project_id, date, status)
            ''')

            # Append-only, one row per changed field
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS timecard_audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timecard_id TEXT NOT NULL,
                    change_id TEXT NOT NULL,
                    field_name TEXT NOT NULL,
                    old_value TEXT,
                    new_value TEXT,
                    changed_by TEXT NOT NULL,
                    changed_at TIMESTAMP NOT NULL,
                    action_type TEXT NOT NULL
                        CHECK(action_type IN ('user_edit', 'admin_edit', 'rejection_edit', 'status_change')),
                    work_date DATE,
                    FOREIGN KEY (timecard_id) REFERENCES timecards (id)
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_audit_log_lookup
                ON timecard_audit_log (timecard_id, changed_at)
            ''')

            conn.commit()
            logger.info(f"Database initialized at {self.database_path}")

    def insert_project(self, project_id: str, name: str, start_date: Optional[date] = None):
        with self.get_db() as conn:
            conn.execute(
                "INSERT INTO projects (id, name, start_date) VALUES (?, ?, ?)",
                (project_id, name, to_db_value(start_date)),
            )
            conn.commit()

    def get_project_start_date(self, project_id: str) -> Optional[date]:
        with self.get_db() as conn:
            row = conn.execute("SELECT start_date FROM projects WHERE id = ?", (project_id,)).fetchone()
        if not row or not row['start_date']:
            return None
        return date.fromisoformat(row['start_date'])

    def insert_timecard(self, timecard: TimecardDay):
        values = timecard.model_dump()
        placeholders = ", ".join("?" for _ in TIMECARD_COLUMNS)
        with self.get_db() as conn:
            conn.execute(
                f"INSERT INTO timecards ({', '.join(TIMECARD_COLUMNS)}) VALUES ({placeholders})",
                tuple(to_db_value(values.get(column)) for column in TIMECARD_COLUMNS),
            )
            conn.commit()

    def get_timecard(self, timecard_id: str) -> Optional[TimecardDay]:
        with self.get_db() as conn:
            row = conn.execute("SELECT * FROM timecards WHERE id = ?", (timecard_id,)).fetchone()
        return TimecardDay(**dict(row)) if row else None

    def get_timecards(self, timecard_ids: Sequence[str]) -> List[TimecardDay]:
        """Timecards in the order of timecard_ids; unknown ids are skipped"""
        if not timecard_ids:
            return []
        placeholders = ", ".join("?" for _ in timecard_ids)
        with self.get_db() as conn:
            rows = conn.execute(
                f"SELECT * FROM timecards WHERE id IN ({placeholders})", tuple(timecard_ids)
            ).fetchall()
        by_id = {row['id']: TimecardDay(**dict(row)) for row in rows}
        return [by_id[i] for i in dict.fromkeys(timecard_ids) if i in by_id]

    def list_project_timecards(self, project_id: str, start_date: Optional[date] = None,
                               end_date: Optional[date] = None) -> List[TimecardDay]:
        query = "SELECT * FROM timecards WHERE project_id = ?"
        params: List[Any] = [project_id]
        if start_date:
            query += " AND date >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY date ASC, user_id ASC"

        with self.get_db() as conn:
            rows = conn.execute(query, params).fetchall()
        return [TimecardDay(**dict(row)) for row in rows]

    def update_timecard(self, timecard_id: str, fields: Dict[str, Any]) -> bool:
        """Atomic single-record update; returns False if the record does not exist"""
        invalid = (set(fields) - set(TIMECARD_COLUMNS)) | ({"id"} & set(fields))
        if invalid:
            raise ValueError(f"Cannot update timecard columns: {sorted(invalid)}")
        if not fields:
            return self.get_timecard(timecard_id) is not None

        assignments = ", ".join(f"{column} = ?" for column in fields)
        with self.get_db() as conn:
            cursor = conn.execute(
                f"UPDATE timecards SET {assignments} WHERE id = ?",
                tuple(to_db_value(v) for v in fields.values()) + (timecard_id,),
            )
            conn.commit()
            return cursor.rowcount > 0

    def insert_audit_entries(self, entries: Iterable[Dict[str, Any]]):
        rows = [tuple(to_db_value(entry.get(column)) for column in AUDIT_COLUMNS) for entry in entries]
        placeholders = ", ".join("?" for _ in AUDIT_COLUMNS)
        with self.get_db() as conn:
            conn.executemany(
                f"INSERT INTO timecard_audit_log ({', '.join(AUDIT_COLUMNS)}) VALUES ({placeholders})",
                rows,
            )
            conn.commit()

    def query_audit_entries(self, timecard_id: str, action_types: Optional[Sequence[str]] = None,
                            field_names: Optional[Sequence[str]] = None, limit: Optional[int] = None,
                            offset: int = 0) -> List[Dict[str, Any]]:
        """Audit rows for a timecard, most recent first"""
        query = "SELECT * FROM timecard_audit_log WHERE timecard_id = ?"
        params: List[Any] = [timecard_id]
        if action_types:
            query += f" AND action_type IN ({', '.join('?' for _ in action_types)})"
            params.extend(action_types)
        if field_names:
            query += f" AND field_name IN ({', '.join('?' for _ in field_names)})"
            params.extend(field_names)
        query += " ORDER BY changed_at DESC, id DESC"
        if limit is not None or offset:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit if limit is not None else -1, offset])

        with self.get_db() as conn:
            return [dict(row) for row in conn.execute(query, params).fetchall()]

    def seed_test_data(self):
        """Add a demo project and draft timecards for development/testing"""
        with self.get_db() as conn:
            count = conn.execute("SELECT COUNT(*) FROM timecards").fetchone()[0]
        if count > 0:
            logger.info(f"Database already has {count} timecards")
            return

        self.insert_project("demo-project", "Demo Production", date.today())
        today = date.today()
        test_timecards = [
            ("tc-1", "user-1", (9, 0), (17, 0), (12, 0), (12, 30), 25.0),
            ("tc-2", "user-2", (8, 0), (17, 0), None, None, 30.0),
            ("tc-3", "user-3", (10, 0), (15, 0), None, None, 20.0),
        ]
        def at(hm):
            return datetime(today.year, today.month, today.day, *hm) if hm else None

        for timecard_id, user_id, check_in, check_out, break_start, break_end, rate in test_timecards:
            self.insert_timecard(TimecardDay(
                id=timecard_id,
                user_id=user_id,
                project_id="demo-project",
                date=today,
                check_in_time=at(check_in),
                check_out_time=at(check_out),
                break_start_time=at(break_start),
                break_end_time=at(break_end),
                pay_rate=rate,
            ))
        logger.info(f"Added {len(test_timecards)} test timecards to database")

def get_store() -> TimecardStore:
    """FastAPI dependency: store for the configured database"""
    return TimecardStore(ServerConfig.DATABASE_PATH)
