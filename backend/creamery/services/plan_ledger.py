"""Planned/completed tub bookkeeping and block status transitions.

Every change to a block's status goes through ``apply_block_transition`` so
the plan's recipe amounts, completion percentage and version stay in step
with its blocks.
"""

import logging
import uuid
from datetime import datetime, timezone

from creamery.core.exceptions import ScheduleValidationError
from creamery.models.production import (
    TERMINAL_BLOCK_STATUSES,
    PlanRecipe,
    ProductionBlock,
    ProductionPlan,
)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "scheduled": frozenset({"in-progress", "completed", "cancelled"}),
    "in-progress": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def find_plan_recipe(plan: ProductionPlan, recipe_id: uuid.UUID) -> PlanRecipe | None:
    for entry in plan.recipes:
        if entry.recipe_id == recipe_id:
            return entry
    return None


def adjust_planned_amount(plan: ProductionPlan, recipe_id: uuid.UUID, delta: float) -> None:
    """Add ``delta`` tubs to a recipe's planned amount.

    A missing entry is created for a positive delta; an entry whose planned
    amount drops to zero or below is removed from the plan.
    """
    if delta == 0:
        return
    entry = find_plan_recipe(plan, recipe_id)
    if entry is None:
        if delta > 0:
            plan.recipes.append(
                PlanRecipe(
                    id=uuid.uuid4(),
                    recipe_id=recipe_id,
                    planned_amount=delta,
                    completed_amount=0.0,
                )
            )
        return

    entry.planned_amount += delta
    if entry.planned_amount <= 0:
        plan.recipes.remove(entry)


def record_completed_amount(plan: ProductionPlan, recipe_id: uuid.UUID, amount: float) -> None:
    entry = find_plan_recipe(plan, recipe_id)
    if entry is None:
        logger.warning("Plan %s has no entry for completed recipe %s", plan.id, recipe_id)
        return
    entry.completed_amount += amount


def compute_completion_status(recipes: list[PlanRecipe]) -> float:
    """Percent of planned tubs completed, capped at 100, one decimal."""
    total_planned = sum(entry.planned_amount for entry in recipes)
    if total_planned <= 0:
        return 0.0
    total_completed = sum(entry.completed_amount for entry in recipes)
    return round(min(100.0, total_completed / total_planned * 100), 1)


def refresh_completion_status(plan: ProductionPlan) -> None:
    plan.completion_status = compute_completion_status(plan.recipes)


def touch_plan(plan: ProductionPlan, actor_id: uuid.UUID, now: datetime | None = None) -> None:
    """Bump the plan version and stamp the modifier."""
    plan.version = (plan.version or 0) + 1
    plan.last_modified_by = actor_id
    plan.last_modified_at = now or _now()


def ensure_plan_editable(plan: ProductionPlan) -> None:
    if plan.is_frozen:
        raise ScheduleValidationError(f"Plan is {plan.status} and can no longer be changed")


def ensure_block_editable(block: ProductionBlock) -> None:
    if block.status in TERMINAL_BLOCK_STATUSES:
        raise ScheduleValidationError(f"Block is {block.status} and can no longer be changed")


def validate_transition(current: str, target: str) -> None:
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise ScheduleValidationError(f"Cannot change block status from {current} to {target}")


def apply_block_transition(
    plan: ProductionPlan,
    block: ProductionBlock,
    new_status: str,
    actor_id: uuid.UUID,
    *,
    actual_quantity: float | None = None,
    actual_start_time: datetime | None = None,
    actual_end_time: datetime | None = None,
    now: datetime | None = None,
) -> None:
    """Move ``block`` to ``new_status`` and update the plan ledger.

    Completing a production block credits its actual (or planned) quantity to
    the recipe and refreshes the completion percentage. Cancelling one takes
    its quantity back out of the planned amount.
    """
    ensure_plan_editable(plan)
    validate_transition(block.status, new_status)
    now = now or _now()

    block.status = new_status
    block.last_modified_by = actor_id
    block.last_modified_at = now

    if new_status == "in-progress" and block.actual_start_time is None:
        block.actual_start_time = actual_start_time or now

    if new_status == "completed":
        block.actual_start_time = actual_start_time or block.actual_start_time or block.start_time
        block.actual_end_time = actual_end_time or now
        if block.block_type == "production":
            produced = actual_quantity if actual_quantity is not None else block.quantity
            block.actual_quantity = produced
            record_completed_amount(plan, block.recipe_id, produced or 0.0)
            refresh_completion_status(plan)

    elif new_status == "cancelled" and block.block_type == "production":
        adjust_planned_amount(plan, block.recipe_id, -(block.quantity or 0.0))
        refresh_completion_status(plan)

    touch_plan(plan, actor_id, now)
    logger.info("Block %s moved to %s", block.id, new_status)
