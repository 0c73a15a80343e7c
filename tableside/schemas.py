"""
Pydantic Schemas for Domain Entities and Request/Response Validation

Serving groups are stored as whole denormalised rows (items and prep list
embedded), so the same models describe the in-memory state, the JSON row
written to the shared store and the API payloads.
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    """Short random identifier for groups and items."""
    return uuid.uuid4().hex[:12]


# =============================================================================
# ENUMS
# =============================================================================

class GroupStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class AlertType(str, Enum):
    LATE_SERVING = "LATE_SERVING"
    ATTENDANCE_VIOLATION = "ATTENDANCE_VIOLATION"


class AlertSeverity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"


class AttendanceStatus(str, Enum):
    """Timesheet statuses as written by the attendance kiosk."""
    PRESENT = "Có mặt"
    LATE = "Đi muộn"
    ABSENT = "Vắng mặt"
    ON_LEAVE = "Nghỉ phép"
    EARLY_LEAVE = "Về sớm"


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ConnectionStatus(str, Enum):
    CONNECTED = "CONNECTED"
    CONNECTING = "CONNECTING"
    DISCONNECTED = "DISCONNECTED"


# =============================================================================
# DOMAIN MODELS
# =============================================================================

class TableGroup(BaseModel):
    """N physical tables each seating `size` guests."""
    model_config = ConfigDict(frozen=True)

    count: int = Field(..., ge=1)
    size: int = Field(..., ge=1)


class ServingItem(BaseModel):
    """One ordered dish and how much of it has reached the tables."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200, examples=["Lẩu riêu cua"])
    total_quantity: int = Field(default=0, ge=0)
    served_quantity: int = Field(default=0, ge=0)
    unit: str = Field(default="Phần", max_length=30, examples=["Nồi"])
    note: Optional[str] = Field(None, max_length=500)


class SauceItem(BaseModel):
    """Condiment or equipment the kitchen prepares for a group."""
    name: str
    quantity: int = Field(default=0, ge=0)
    unit: str = "Bát"
    is_completed: bool = False
    note: Optional[str] = None


class ServingGroup(BaseModel):
    """A party seated at one or more tables, tracked as one unit of service."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    location: str = Field(default="", max_length=100)
    guest_count: int = Field(default=0, ge=0)
    table_count: int = Field(default=0, ge=0)
    table_split: str = Field(default="", max_length=200, examples=["2x10, 1x6"])
    start_time: Optional[str] = Field(None, examples=["18:30"])
    date: str = Field(default="", examples=["2024-05-01"])
    status: GroupStatus = GroupStatus.ACTIVE
    completion_time: Optional[datetime] = None
    items: List[ServingItem] = Field(default_factory=list)
    prep_list: List[SauceItem] = Field(default_factory=list)

    @field_validator("start_time", mode="before")
    @classmethod
    def validate_start_time(cls, v: Any) -> Optional[str]:
        if v is None or v == "":
            return None
        if not isinstance(v, str) or not re.match(r"^\d{1,2}:\d{2}(:\d{2})?$", v.strip()):
            raise ValueError("start_time must be HH:MM")
        return v.strip()


class AttendanceLog(BaseModel):
    """Timesheet row maintained by the attendance kiosk (read-only here)."""
    id: str
    employee_id: str = ""
    employee_name: str = ""
    date: str
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.PRESENT
    late_minutes: int = 0


class SystemAlert(BaseModel):
    """Derived operational warning; `id` is deterministic per condition."""
    id: str
    type: AlertType
    message: str
    details: str
    severity: AlertSeverity
    timestamp: datetime
    group_id: Optional[str] = None


class ChangeEvent(BaseModel):
    """One row change broadcast by the shared store."""
    table: str
    event_type: ChangeType
    old: Optional[dict[str, Any]] = None
    new: Optional[dict[str, Any]] = None


# =============================================================================
# VISION IMPORT (UNTRUSTED)
# =============================================================================

class CandidateItem(BaseModel):
    name: str = ""
    quantity: int = Field(default=1, ge=0)
    unit: str = "Phần"
    note: Optional[str] = None


class CandidateGroup(BaseModel):
    """Best-effort group guessed from a photographed order slip."""
    name: str = ""
    location: str = ""
    guest_count: int = Field(default=0, ge=0)
    table_count: int = Field(default=0, ge=0)
    table_split: str = ""
    items: List[CandidateItem] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    warnings: List[str] = Field(default_factory=list)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ServingItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    total_quantity: int = Field(default=1, ge=0)
    unit: str = Field(default="Phần", max_length=30)
    note: Optional[str] = Field(None, max_length=500)


class ServingItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    total_quantity: Optional[int] = Field(None, ge=0)
    served_quantity: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = Field(None, max_length=30)
    note: Optional[str] = Field(None, max_length=500)


class ServingGroupCreate(BaseModel):
    """Manual entry, or a staff-reviewed candidate ready to commit."""
    name: str = Field(..., min_length=1, max_length=200, examples=["Đoàn Hàn Quốc pax Hàn"])
    location: str = Field(default="", max_length=100)
    guest_count: int = Field(default=0, ge=0)
    table_count: int = Field(default=0, ge=0)
    table_split: str = Field(default="", max_length=200)
    date: Optional[str] = None
    items: List[ServingItemCreate] = Field(default_factory=list)
    apply_distribution: bool = Field(
        default=True,
        description="Run smart quantity distribution against table_split before saving",
    )


class ServingGroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=100)
    guest_count: Optional[int] = Field(None, ge=0)
    table_count: Optional[int] = Field(None, ge=0)
    table_split: Optional[str] = Field(None, max_length=200)


class RecomputeRequest(BaseModel):
    table_split: str = Field(..., max_length=200, examples=["2x10, 1x6"])


class ImportRequest(BaseModel):
    candidates: List[CandidateGroup] = Field(..., min_length=1)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ServingGroupResponse(ServingGroup):
    progress: float = Field(0.0, description="Served share of all items, 0..1")


class LayoutPreview(BaseModel):
    tables: List[TableGroup]
    total_tables: int
    total_guests: int


class AlertListResponse(BaseModel):
    alerts: List[SystemAlert]
    dismissed_ids: List[str]


class RealtimeStatusResponse(BaseModel):
    status: ConnectionStatus
    last_reload_at: Optional[datetime] = None


class HealthResponse(BaseModel):
    status: str
    store: str
    feed: str
    notifications: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: Optional[str] = None
