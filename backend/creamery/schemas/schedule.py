"""Scheduling Pydantic schemas: generation, suggestions, availability and conflicts."""

import uuid
from datetime import date, datetime

from pydantic import AwareDatetime, BaseModel, Field, model_validator

from creamery.core.config import settings
from creamery.schemas.employee import DayName
from creamery.schemas.production_block import BlockResponse

HHMM_LOOSE_PATTERN = r"^\d{1,2}:\d{2}$"


class RecipeRequest(BaseModel):
    recipe_id: uuid.UUID
    planned_amount: float = Field(..., gt=0, description="Tubs to produce")


class ScheduleGenerationOptions(BaseModel):
    """Options for automatic schedule generation; defaults come from settings."""

    plan_id: uuid.UUID
    week_start_date: date | None = Field(
        None, description="Defaults to the plan's week_start_date"
    )
    recipes: list[RecipeRequest] = Field(default_factory=list)
    include_prep_blocks: bool = True
    include_cleaning_blocks: bool = True
    prep_duration_minutes: int = Field(default=settings.DEFAULT_PREP_MINUTES, ge=0)
    cleaning_duration_minutes: int = Field(default=settings.DEFAULT_CLEANING_MINUTES, ge=0)
    workday_start_time: str = Field(default=settings.WORKDAY_START_TIME, pattern=HHMM_LOOSE_PATTERN)
    workday_end_time: str = Field(default=settings.WORKDAY_END_TIME, pattern=HHMM_LOOSE_PATTERN)
    work_days: list[DayName] = Field(default_factory=lambda: list(settings.WORK_DAYS))


class UnscheduledRecipe(BaseModel):
    """A requested recipe the generator could not place."""

    recipe_id: uuid.UUID
    recipe_name: str | None = None
    remaining_amount: float
    reason: str = Field(
        ...,
        description=(
            "unknown_recipe, no_suitable_machine, no_slot, no_certified_employee or machine_busy"
        ),
    )


class EmployeeAssignment(BaseModel):
    """Employee chosen for a generated block set.

    ``forced`` is True when every candidate was busy and the first one was
    double-booked.
    """

    employee_id: uuid.UUID
    forced: bool = False


class ForcedAssignment(BaseModel):
    recipe_id: uuid.UUID
    employee_id: uuid.UUID
    start_time: datetime
    end_time: datetime


class ScheduleGenerationResult(BaseModel):
    created_blocks: list[BlockResponse] = Field(default_factory=list)
    unscheduled_recipes: list[UnscheduledRecipe] = Field(default_factory=list)
    forced_assignments: list[ForcedAssignment] = Field(default_factory=list)
    message: str = ""


class TimeCalculationRequest(BaseModel):
    machine_id: uuid.UUID
    quantity: float = Field(..., gt=0)


class ProductionTimeEstimate(BaseModel):
    """Machine-derived durations for producing a quantity."""

    production_minutes: int
    recommended_prep_minutes: int
    recommended_cleaning_minutes: int
    total_minutes: int


class TimeWindow(BaseModel):
    start_time: datetime
    end_time: datetime


class SuggestScheduleRequest(BaseModel):
    machine_id: uuid.UUID
    employee_id: uuid.UUID
    quantity: float = Field(..., gt=0)
    preferred_start_time: AwareDatetime


class ScheduleSuggestion(BaseModel):
    success: bool
    prep_block: TimeWindow | None = None
    production_block: TimeWindow | None = None
    cleaning_block: TimeWindow | None = None
    message: str | None = None


class AvailabilityRequest(BaseModel):
    machine_id: uuid.UUID
    employee_id: uuid.UUID
    start_time: AwareDatetime
    end_time: AwareDatetime
    block_id: uuid.UUID | None = Field(None, description="Block to ignore, for updates")

    @model_validator(mode="after")
    def _check_window(self) -> "AvailabilityRequest":
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class AvailabilityResponse(BaseModel):
    available: bool


class ConflictEntry(BaseModel):
    """A live block that overlaps a proposed window."""

    block_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    resource_name: str | None = None
    plan_name: str | None = None


class ConflictReport(BaseModel):
    has_conflict: bool = False
    machine_conflicts: list[ConflictEntry] = Field(default_factory=list)
    employee_conflicts: list[ConflictEntry] = Field(default_factory=list)


class ProductionSetCreate(BaseModel):
    machine_id: uuid.UUID
    employee_id: uuid.UUID
    recipe_id: uuid.UUID
    quantity: float = Field(..., gt=0)
    plan_id: uuid.UUID
    start_time: AwareDatetime
    notes: str | None = None


class ProductionSetResponse(BaseModel):
    prep_block: BlockResponse
    production_block: BlockResponse
    cleaning_block: BlockResponse
