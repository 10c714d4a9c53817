"""API I/O schemas."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import RequestStatus, Role


class AccessRequestIn(BaseModel):
    employer_name: str
    employer_email: Optional[str] = None
    student_enrollment_id: str
    student_name: str
    purpose: Optional[str] = None
    requested_fields: Optional[List[str]] = None


class AccessRequestOut(BaseModel):
    id: str
    employer_id: str
    employer_name: str
    employer_email: Optional[str]
    student_enrollment_id: str
    student_name: str
    status: RequestStatus
    purpose: str
    requested_fields: List[str]
    approved_fields: List[str]
    created_at: datetime
    request_date: date
    resolved_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class ApproveBody(BaseModel):
    approved_fields: Optional[List[str]] = Field(
        default=None,
        description="fields to release; omit to release everything requested",
    )


class NarrowBody(BaseModel):
    approved_fields: List[str]


class RoleContextOut(BaseModel):
    role: Role
    subject_id: str
    operations: List[str]
