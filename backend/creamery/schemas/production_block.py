"""ProductionBlock Pydantic schemas.

Block creation is a discriminated union on ``block_type`` so that recipe and
quantity are required exactly for production blocks.
"""

import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import AwareDatetime, BaseModel, Field, model_validator

BlockType = Literal["prep", "production", "cleaning"]
BlockStatus = Literal["scheduled", "in-progress", "completed", "cancelled"]


class _BlockCreateBase(BaseModel):
    start_time: AwareDatetime
    end_time: AwareDatetime
    machine_id: uuid.UUID
    employee_id: uuid.UUID
    plan_id: uuid.UUID
    notes: str | None = None

    @model_validator(mode="after")
    def _check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class PrepBlockCreate(_BlockCreateBase):
    block_type: Literal["prep"]


class CleaningBlockCreate(_BlockCreateBase):
    block_type: Literal["cleaning"]


class ProductionBlockCreate(_BlockCreateBase):
    block_type: Literal["production"]
    recipe_id: uuid.UUID
    quantity: float = Field(..., gt=0, description="Tubs to produce")


BlockCreate = Annotated[
    Union[PrepBlockCreate, ProductionBlockCreate, CleaningBlockCreate],
    Field(discriminator="block_type"),
]


class BlockUpdate(BaseModel):
    """Partial block update; omitted fields are left unchanged."""

    start_time: AwareDatetime | None = None
    end_time: AwareDatetime | None = None
    machine_id: uuid.UUID | None = None
    employee_id: uuid.UUID | None = None
    recipe_id: uuid.UUID | None = None
    quantity: float | None = Field(None, gt=0)
    status: BlockStatus | None = None
    notes: str | None = None
    actual_start_time: AwareDatetime | None = None
    actual_end_time: AwareDatetime | None = None
    actual_quantity: float | None = Field(None, ge=0)


class BlockResponse(BaseModel):
    """Schema for production block responses."""

    id: uuid.UUID
    plan_id: uuid.UUID
    block_type: str
    start_time: datetime
    end_time: datetime
    machine_id: uuid.UUID
    employee_id: uuid.UUID
    recipe_id: uuid.UUID | None
    quantity: float | None
    status: str
    notes: str | None
    actual_start_time: datetime | None
    actual_end_time: datetime | None
    actual_quantity: float | None
    created_by: uuid.UUID
    created_at: datetime | None
    last_modified_by: uuid.UUID | None
    last_modified_at: datetime | None

    model_config = {"from_attributes": True}
