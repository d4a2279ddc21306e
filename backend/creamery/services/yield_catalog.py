"""Recipe-machine yield lookup with a configured fallback."""

import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.core.config import settings
from creamery.core.exceptions import ScheduleValidationError
from creamery.models.machine import Machine
from creamery.models.recipe import RecipeMachineYield


@dataclass(frozen=True)
class YieldLookup:
    tubs_per_batch: float
    source: str


class YieldCatalog:
    """In-memory view over the yield rows of one shop."""

    def __init__(
        self,
        yields: Iterable[RecipeMachineYield],
        default_tubs_per_batch: float | None = None,
    ) -> None:
        self.default_tubs_per_batch = (
            default_tubs_per_batch
            if default_tubs_per_batch is not None
            else settings.DEFAULT_TUBS_PER_BATCH
        )
        self._by_pair: dict[tuple[uuid.UUID, uuid.UUID], RecipeMachineYield] = {}
        for row in yields:
            self._by_pair[(row.recipe_id, row.machine_id)] = row

    @classmethod
    async def load(
        cls,
        db: AsyncSession,
        owner_id: uuid.UUID,
        recipe_ids: Iterable[uuid.UUID],
        default_tubs_per_batch: float | None = None,
    ) -> "YieldCatalog":
        """Fetch the yield rows for the given recipes."""
        ids = list(set(recipe_ids))
        if not ids:
            return cls([], default_tubs_per_batch)
        result = await db.execute(
            select(RecipeMachineYield).where(
                RecipeMachineYield.owner_id == owner_id,
                RecipeMachineYield.recipe_id.in_(ids),
            )
        )
        return cls(result.scalars().all(), default_tubs_per_batch)

    def for_recipe(self, recipe_id: uuid.UUID) -> list[RecipeMachineYield]:
        return [row for (rid, _), row in self._by_pair.items() if rid == recipe_id]

    def lookup(self, recipe_id: uuid.UUID, machine_id: uuid.UUID) -> YieldLookup:
        row = self._by_pair.get((recipe_id, machine_id))
        if row is None:
            return YieldLookup(self.default_tubs_per_batch, source="default")
        return YieldLookup(row.tubs_per_batch, source="explicit")


def batches_needed(quantity: float, tubs_per_batch: float) -> int:
    if quantity <= 0:
        raise ScheduleValidationError("Quantity must be positive")
    if tubs_per_batch <= 0:
        raise ScheduleValidationError("Tubs per batch must be positive")
    return math.ceil(quantity / tubs_per_batch)


def explicit_production_time(
    row: RecipeMachineYield, machine: Machine, quantity: float
) -> tuple[int, int]:
    """Return (batches, minutes) for a quantity on an explicit yield row.

    Minutes are prorated by fractional batch and rounded up.
    """
    batches = batches_needed(quantity, row.tubs_per_batch)
    minutes = math.ceil(quantity / row.tubs_per_batch * machine.production_time)
    return batches, minutes
