"""Pick the most efficient machine for a recipe."""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from creamery.models.machine import Machine
from creamery.models.recipe import RecipeMachineYield

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MachineChoice:
    machine_id: uuid.UUID
    tubs_per_batch: float
    production_time_minutes: int
    yield_source: str

    @property
    def efficiency(self) -> float:
        """Tubs per minute of machine time."""
        return self.tubs_per_batch / self.production_time_minutes


def select_best(
    recipe_id: uuid.UUID,
    machines: Sequence[Machine],
    yields_for_recipe: Sequence[RecipeMachineYield],
    default_tubs_per_batch: float,
) -> MachineChoice | None:
    """Choose a machine for ``recipe_id`` among ``machines``.

    With explicit yields, only machines whose tub capacity holds a full batch
    qualify and the one with the best tubs-per-minute wins. Without yields the
    largest machine is used at ``default_tubs_per_batch``. Ties go to the
    lowest machine id. Returns None when nothing qualifies.
    """
    if not machines:
        return None

    ordered = sorted(machines, key=lambda machine: machine.id)

    if not yields_for_recipe:
        best = ordered[0]
        for machine in ordered[1:]:
            if machine.tub_capacity > best.tub_capacity:
                best = machine
        return MachineChoice(
            machine_id=best.id,
            tubs_per_batch=default_tubs_per_batch,
            production_time_minutes=best.production_time,
            yield_source="default",
        )

    yields_by_machine = {row.machine_id: row for row in yields_for_recipe}
    best_choice: MachineChoice | None = None
    for machine in ordered:
        row = yields_by_machine.get(machine.id)
        if row is None or machine.tub_capacity < row.tubs_per_batch:
            continue
        if machine.production_time <= 0:
            logger.warning("Machine %s has no production time, skipping", machine.id)
            continue
        choice = MachineChoice(
            machine_id=machine.id,
            tubs_per_batch=row.tubs_per_batch,
            production_time_minutes=machine.production_time,
            yield_source="explicit",
        )
        if best_choice is None or choice.efficiency > best_choice.efficiency:
            best_choice = choice

    if best_choice is None:
        logger.info("No machine can hold a batch of recipe %s", recipe_id)
    return best_choice
