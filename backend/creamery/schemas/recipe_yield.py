"""RecipeMachineYield Pydantic schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class YieldCreate(BaseModel):
    """Schema for creating a recipe-machine yield."""

    recipe_id: uuid.UUID
    machine_id: uuid.UUID
    tubs_per_batch: float = Field(default=1.0, ge=0.1)
    notes: str | None = None


class YieldUpdate(BaseModel):
    tubs_per_batch: float | None = Field(None, ge=0.1)
    notes: str | None = None


class YieldResponse(BaseModel):
    id: uuid.UUID
    recipe_id: uuid.UUID
    machine_id: uuid.UUID
    tubs_per_batch: float
    notes: str | None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class YieldTimeRequest(BaseModel):
    machine_id: uuid.UUID
    recipe_id: uuid.UUID
    quantity: float = Field(..., gt=0, description="Tubs to produce")


class YieldTimeResult(BaseModel):
    """Production time derived from an explicit yield row."""

    batches_needed: int
    total_minutes: int
    tubs_per_batch: float
    machine_production_time: int
