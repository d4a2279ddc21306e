"""Employee Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator

DayName = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
EmployeeRole = Literal["admin", "manager", "operator", "trainee"]

HHMM_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class Shift(BaseModel):
    """Recurring weekly shift."""

    day: DayName
    start_time: str = Field(..., pattern=HHMM_PATTERN)
    end_time: str = Field(..., pattern=HHMM_PATTERN)

    @model_validator(mode="after")
    def _check_order(self) -> "Shift":
        if self.end_time <= self.start_time:
            raise ValueError("Shift end_time must be after start_time")
        return self


class EmployeeCreate(BaseModel):
    """Schema for creating or replacing an employee."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str | None = Field(None, max_length=255)
    role: EmployeeRole = "operator"
    active: bool = True
    shifts: list[Shift] = Field(default_factory=list)


class CertificationCreate(BaseModel):
    machine_id: uuid.UUID
    certification_date: datetime | None = None


class CertificationResponse(BaseModel):
    machine_id: uuid.UUID
    certification_date: datetime

    model_config = {"from_attributes": True}


class EmployeeResponse(BaseModel):
    """Schema for employee responses."""

    id: uuid.UUID
    name: str
    email: str | None
    role: str
    active: bool
    shifts: list[Shift] | None
    machine_certifications: list[CertificationResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
