"""ProductionPlan Pydantic schemas."""

import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

PlanStatus = Literal["draft", "active", "completed", "archived"]


class PlanRecipeEntry(BaseModel):
    recipe_id: uuid.UUID
    planned_amount: float = Field(..., ge=0)


class PlanCreate(BaseModel):
    """Schema for creating a production plan."""

    name: str = Field(..., min_length=1, max_length=200)
    week_start_date: date
    recipes: list[PlanRecipeEntry] = Field(default_factory=list)
    notes: str | None = None


class PlanUpdate(BaseModel):
    """Partial plan update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=200)
    notes: str | None = None
    status: PlanStatus | None = None
    recipes: list[PlanRecipeEntry] | None = None


class PlanRecipeResponse(BaseModel):
    recipe_id: uuid.UUID
    planned_amount: float
    completed_amount: float

    model_config = {"from_attributes": True}


class PlanResponse(BaseModel):
    """Schema for production plan responses."""

    id: uuid.UUID
    name: str
    week_start_date: date
    status: str
    completion_status: float
    version: int
    notes: str | None
    recipes: list[PlanRecipeResponse]
    block_ids: list[uuid.UUID] = Field(default_factory=list)
    created_by: uuid.UUID
    created_at: datetime
    last_modified_by: uuid.UUID | None
    last_modified_at: datetime | None

    model_config = {"from_attributes": True}


class FieldChange(BaseModel):
    """One tracked field that differs between two snapshots."""

    field: str
    old: Any = None
    new: Any = None


class RevisionResponse(BaseModel):
    entity_type: str
    entity_id: uuid.UUID
    version: int
    changes: list[FieldChange]
    changed_by: uuid.UUID
    changed_at: datetime

    model_config = {"from_attributes": True}


IMPORTED_SUFFIX = " (Imported)"


class ExportedRecipe(BaseModel):
    name: str = Field(..., min_length=1)
    planned_amount: float = Field(0.0, ge=0)
    completed_amount: float = Field(0.0, ge=0)


class ExportedBlock(BaseModel):
    block_type: str
    start_time: datetime
    end_time: datetime
    machine: str
    employee: str
    recipe: str | None = None
    quantity: float = 0.0
    status: str


class PlanExport(BaseModel):
    """A plan with names in place of ids, portable between shops."""

    plan_name: str = Field(..., min_length=1, max_length=200 - len(IMPORTED_SUFFIX))
    week_start_date: date
    status: str = "draft"
    completion_status: float = 0.0
    recipes: list[ExportedRecipe] = Field(default_factory=list)
    blocks: list[ExportedBlock] = Field(default_factory=list)


class PlanExportResponse(BaseModel):
    exported_plan: PlanExport
    export_timestamp: datetime


class PlanImportRequest(BaseModel):
    """Blocks in the payload are ignored; imported plans start unscheduled."""

    import_data: PlanExport
