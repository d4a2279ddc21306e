"""Pydantic v2 schemas for request/response validation."""

from creamery.schemas.employee import (
    CertificationCreate,
    CertificationResponse,
    EmployeeCreate,
    EmployeeResponse,
    Shift,
)
from creamery.schemas.machine import (
    MachineAssign,
    MachineConfigure,
    MachineCreate,
    MachineResponse,
    MachineStatusUpdate,
)
from creamery.schemas.production_block import (
    BlockCreate,
    BlockResponse,
    BlockUpdate,
    CleaningBlockCreate,
    PrepBlockCreate,
    ProductionBlockCreate,
)
from creamery.schemas.production_plan import (
    ExportedBlock,
    ExportedRecipe,
    FieldChange,
    PlanCreate,
    PlanExport,
    PlanExportResponse,
    PlanImportRequest,
    PlanRecipeEntry,
    PlanResponse,
    PlanUpdate,
    RevisionResponse,
)
from creamery.schemas.recipe_yield import (
    YieldCreate,
    YieldResponse,
    YieldTimeRequest,
    YieldTimeResult,
    YieldUpdate,
)
from creamery.schemas.schedule import (
    AvailabilityRequest,
    AvailabilityResponse,
    ConflictEntry,
    ConflictReport,
    EmployeeAssignment,
    ProductionSetCreate,
    ProductionSetResponse,
    ProductionTimeEstimate,
    RecipeRequest,
    ScheduleGenerationOptions,
    ScheduleGenerationResult,
    ScheduleSuggestion,
    SuggestScheduleRequest,
    TimeCalculationRequest,
    TimeWindow,
    UnscheduledRecipe,
)

__all__ = [
    "AvailabilityRequest",
    "AvailabilityResponse",
    "BlockCreate",
    "BlockResponse",
    "BlockUpdate",
    "CertificationCreate",
    "CertificationResponse",
    "CleaningBlockCreate",
    "ConflictEntry",
    "ConflictReport",
    "EmployeeAssignment",
    "EmployeeCreate",
    "EmployeeResponse",
    "ExportedBlock",
    "ExportedRecipe",
    "FieldChange",
    "MachineAssign",
    "MachineConfigure",
    "MachineCreate",
    "MachineResponse",
    "MachineStatusUpdate",
    "PlanCreate",
    "PlanExport",
    "PlanExportResponse",
    "PlanImportRequest",
    "PlanRecipeEntry",
    "PlanResponse",
    "PlanUpdate",
    "PrepBlockCreate",
    "ProductionBlockCreate",
    "ProductionSetCreate",
    "ProductionSetResponse",
    "ProductionTimeEstimate",
    "RecipeRequest",
    "RevisionResponse",
    "ScheduleGenerationOptions",
    "ScheduleGenerationResult",
    "ScheduleSuggestion",
    "Shift",
    "SuggestScheduleRequest",
    "TimeCalculationRequest",
    "TimeWindow",
    "UnscheduledRecipe",
    "YieldCreate",
    "YieldResponse",
    "YieldTimeRequest",
    "YieldTimeResult",
    "YieldUpdate",
]
