from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DatabaseKind(str, Enum):
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGO = "mongo"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class BackupStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class Connection(BaseModel):
    id: str = Field(default_factory=lambda: f"conn_{uuid.uuid4().hex[:8]}")
    name: str
    kind: DatabaseKind
    host: str
    port: int
    username: str = ""
    password: Optional[str] = None
    tools_directory: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class Schedule(BaseModel):
    id: str = Field(default_factory=lambda: f"sch_{uuid.uuid4().hex[:8]}")
    connection_id: str
    database: str
    name: str
    frequency: Frequency
    time: str = "00:00"
    times: Optional[List[str]] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    destination_directory: str
    enabled: bool = True
    retention_days: int = 0
    compress: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("times")
    @classmethod
    def times_not_empty(cls, value):
        if value is not None and len(value) == 0:
            return None
        return value

    def run_times(self) -> List[str]:
        """Times of day this schedule fires at. Only daily schedules use ``times``."""
        if self.frequency == Frequency.DAILY and self.times:
            return list(self.times)
        return [self.time]


class HistoryRecord(BaseModel):
    id: str = Field(default_factory=lambda: f"bkp_{uuid.uuid4().hex[:12]}")
    schedule_id: str
    connection_id: str
    backup_file: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)
    status: BackupStatus
    error: Optional[str] = None
    error_summary: Optional[str] = None
    size_bytes: Optional[int] = None
    duration_seconds: Optional[float] = None
