"""Machine Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

MachineStatus = Literal["available", "in-use", "maintenance"]


class MachineCreate(BaseModel):
    """Schema for creating or replacing a machine."""

    name: str = Field(..., min_length=1, max_length=100)
    tub_capacity: int = Field(..., ge=1, description="Maximum tubs per batch")
    production_time: int = Field(default=30, ge=1, description="Minutes per batch")
    status: MachineStatus = "available"
    notes: str | None = None


class MachineStatusUpdate(BaseModel):
    status: MachineStatus


class MachineAssign(BaseModel):
    """Assign an employee to a machine; null unassigns."""

    employee_id: uuid.UUID | None = None


class MachineConfigure(BaseModel):
    tub_capacity: int | None = Field(None, ge=1)
    production_time: int | None = Field(None, ge=1)


class MachineResponse(BaseModel):
    """Schema for machine responses."""

    id: uuid.UUID
    name: str
    tub_capacity: int
    production_time: int
    status: str
    assigned_employee_id: uuid.UUID | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
