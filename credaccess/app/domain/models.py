"""Domain models shared between the workflow engine and persistence layers."""
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from sqlalchemy import JSON, DateTime
from sqlmodel import Column, Field as SQLField, SQLModel

DEFAULT_PURPOSE = "Background Check"
DEFAULT_REQUESTED_FIELDS: Tuple[str, ...] = (
    "Contact Information",
    "Personal Details",
    "Academic Summary & Division",
    "Detailed Subject Scores",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def enrollment_key(enrollment_id: str) -> str:
    """Case-insensitive matching key for a student enrollment id."""
    return (enrollment_id or "").strip().casefold()


def normalize_fields(fields) -> Tuple[str, ...]:
    """Strip blanks and duplicates while keeping the caller's order."""
    seen: List[str] = []
    for name in fields or ():
        cleaned = str(name).strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


class Role(str, Enum):
    STUDENT = "student"
    EMPLOYER = "employer"
    UNIVERSITY = "university"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class AccessRequestDraft(BaseModel):
    """Everything an employer supplies; the store assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    employer_id: str
    employer_name: str
    employer_email: Optional[str] = None
    student_enrollment_id: str
    student_name: str
    purpose: str = DEFAULT_PURPOSE
    requested_fields: Tuple[str, ...] = DEFAULT_REQUESTED_FIELDS


class AccessRequest(BaseModel):
    """An employer's ask to see named fields of a student's credential."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    employer_id: str
    employer_name: str
    employer_email: Optional[str] = None
    student_enrollment_id: str
    student_name: str
    status: RequestStatus = RequestStatus.PENDING
    purpose: str = DEFAULT_PURPOSE
    requested_fields: Tuple[str, ...] = DEFAULT_REQUESTED_FIELDS
    approved_fields: Tuple[str, ...] = ()
    created_at: datetime
    resolved_at: Optional[datetime] = None

    @field_validator("created_at", "resolved_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive datetimes.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _grant_within_request(self) -> "AccessRequest":
        unrequested = set(self.approved_fields).difference(self.requested_fields)
        if unrequested:
            raise ValueError(f"approved fields were never requested: {sorted(unrequested)}")
        if self.status is RequestStatus.PENDING and self.approved_fields:
            raise ValueError("a pending request cannot release fields")
        return self

    @computed_field
    @property
    def request_date(self) -> date:
        return self.created_at.date()

    @classmethod
    def from_draft(cls, draft: AccessRequestDraft, request_id: str, created_at: datetime) -> "AccessRequest":
        return cls(id=request_id, created_at=created_at, **draft.model_dump())


class AccessRequestRow(SQLModel, table=True):
    """One access request per row; `seq` preserves insertion order."""

    __tablename__ = "access_requests"

    seq: Optional[int] = SQLField(default=None, primary_key=True)
    id: str = SQLField(index=True, unique=True)
    employer_id: str = SQLField(index=True)
    employer_name: str
    employer_email: Optional[str] = SQLField(default=None)
    student_enrollment_id: str
    student_key: str = SQLField(index=True)
    student_name: str
    status: RequestStatus = SQLField(default=RequestStatus.PENDING, index=True)
    purpose: str = SQLField(default=DEFAULT_PURPOSE)
    requested_fields: List[str] = SQLField(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    approved_fields: List[str] = SQLField(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime = SQLField(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    resolved_at: Optional[datetime] = SQLField(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )


class AccessLog(SQLModel, table=True):
    __tablename__ = "access_logs"

    id: Optional[int] = SQLField(default=None, primary_key=True)
    actor_id: str = SQLField(index=True)
    role: str
    action: str
    resource: str
    allowed: bool = SQLField(default=True)
    created_at: datetime = SQLField(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )


class AccessLogRead(BaseModel):
    id: int
    actor_id: str
    role: str
    action: str
    resource: str
    allowed: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
    """A derived feed entry; never stored."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    kind: str
    message: str
    status: RequestStatus
    fields: Tuple[str, ...] = Field(default_factory=tuple)
    created_at: datetime


class Disclosure(BaseModel):
    """What a viewer may currently see of one student's credential."""

    model_config = ConfigDict(frozen=True)

    student_enrollment_id: str
    status: str
    fields: Tuple[str, ...] = ()
