"""Duration rules and prep/production/cleaning block composition."""

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from creamery.core.exceptions import ScheduleValidationError
from creamery.models.machine import Machine
from creamery.models.production import ProductionBlock

MIN_PREP_MINUTES = 15
MIN_CLEANING_MINUTES = 20
PREP_MINUTES_PER_TUB = 2.5
CLEANING_MINUTES_PER_TUB = 3.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class BlockDurations:
    production_minutes: int
    prep_minutes: int = 0
    cleaning_minutes: int = 0

    @property
    def total_minutes(self) -> int:
        return self.prep_minutes + self.production_minutes + self.cleaning_minutes


def compute_durations(machine: Machine, quantity: float) -> BlockDurations:
    """Machine-derived durations for producing ``quantity`` tubs.

    Batches are sized at the machine's full capacity; prep and cleaning scale
    with capacity and never drop below their minimums.
    """
    if quantity <= 0:
        raise ScheduleValidationError("Quantity must be positive")
    if machine.tub_capacity <= 0:
        raise ScheduleValidationError(f"Machine {machine.name} has no tub capacity")

    batches = math.ceil(quantity / machine.tub_capacity)
    return BlockDurations(
        production_minutes=batches * machine.production_time,
        prep_minutes=max(
            MIN_PREP_MINUTES, round_half_up(machine.tub_capacity * PREP_MINUTES_PER_TUB)
        ),
        cleaning_minutes=max(
            MIN_CLEANING_MINUTES, round_half_up(machine.tub_capacity * CLEANING_MINUTES_PER_TUB)
        ),
    )


@dataclass(frozen=True)
class PlannedBlock:
    block_type: str
    start_time: datetime
    end_time: datetime
    recipe_id: uuid.UUID | None = None
    quantity: float | None = None


@dataclass(frozen=True)
class BlockSet:
    """Contiguous prep, production and cleaning windows.

    Prep and cleaning are None when their duration is zero.
    """

    production: PlannedBlock
    prep: PlannedBlock | None = None
    cleaning: PlannedBlock | None = None

    @property
    def start_time(self) -> datetime:
        return (self.prep or self.production).start_time

    @property
    def end_time(self) -> datetime:
        return (self.cleaning or self.production).end_time

    def blocks(self) -> list[PlannedBlock]:
        return [block for block in (self.prep, self.production, self.cleaning) if block is not None]


def compose_block_set(
    start_time: datetime,
    durations: BlockDurations,
    recipe_id: uuid.UUID | None,
    quantity: float,
) -> BlockSet:
    """Lay out the blocks back to back starting at ``start_time``."""
    cursor = start_time
    prep = None
    if durations.prep_minutes > 0:
        prep = PlannedBlock("prep", cursor, cursor + timedelta(minutes=durations.prep_minutes))
        cursor = prep.end_time

    production = PlannedBlock(
        "production",
        cursor,
        cursor + timedelta(minutes=durations.production_minutes),
        recipe_id=recipe_id,
        quantity=quantity,
    )
    cursor = production.end_time

    cleaning = None
    if durations.cleaning_minutes > 0:
        cleaning = PlannedBlock(
            "cleaning", cursor, cursor + timedelta(minutes=durations.cleaning_minutes)
        )

    return BlockSet(production=production, prep=prep, cleaning=cleaning)


def materialize(
    block_set: BlockSet,
    *,
    owner_id: uuid.UUID,
    plan_id: uuid.UUID,
    machine_id: uuid.UUID,
    employee_id: uuid.UUID,
    created_by: uuid.UUID,
    notes: dict[str, str | None] | None = None,
) -> list[ProductionBlock]:
    """Build unsaved ProductionBlock rows for a block set, in time order."""
    notes = notes or {}
    return [
        ProductionBlock(
            id=uuid.uuid4(),
            owner_id=owner_id,
            plan_id=plan_id,
            start_time=planned.start_time,
            end_time=planned.end_time,
            block_type=planned.block_type,
            machine_id=machine_id,
            employee_id=employee_id,
            recipe_id=planned.recipe_id,
            quantity=planned.quantity,
            status="scheduled",
            notes=notes.get(planned.block_type),
            created_by=created_by,
        )
        for planned in block_set.blocks()
    ]
