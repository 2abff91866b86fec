from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from .models import DatabaseKind, Frequency

class ConnectionBase(BaseModel):
    name: str
    kind: DatabaseKind
    host: str
    port: int
    username: str = ""
    tools_directory: Optional[str] = None

class ConnectionCreate(ConnectionBase):
    password: Optional[str] = None

class ConnectionUpdate(BaseModel):
    name: Optional[str] = None
    kind: Optional[DatabaseKind] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    tools_directory: Optional[str] = None

class ConnectionDetail(ConnectionBase):
    id: str
    created_at: datetime

    class Config:
        from_attributes = True

class ScheduleBase(BaseModel):
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

class ScheduleCreate(ScheduleBase):
    pass

class ScheduleUpdate(BaseModel):
    connection_id: Optional[str] = None
    database: Optional[str] = None
    name: Optional[str] = None
    frequency: Optional[Frequency] = None
    time: Optional[str] = None
    times: Optional[List[str]] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    destination_directory: Optional[str] = None
    enabled: Optional[bool] = None
    retention_days: Optional[int] = None
    compress: Optional[bool] = None

class ScheduleDetail(ScheduleBase):
    id: str
    created_at: datetime
    active: bool = False
    next_run: Optional[datetime] = None

class RestoreRequest(BaseModel):
    artifact_path: str
    connection_id: str
    database: str
    confirm: bool = False

class RestoreInfo(BaseModel):
    message: str
    artifact_path: str
    database: str

class ConnectionTestResult(BaseModel):
    success: bool
    message: str
