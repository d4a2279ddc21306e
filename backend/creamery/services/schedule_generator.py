"""Greedy weekly schedule generation.

For each requested recipe, in request order:
1. pick the most efficient available machine (explicit yields first, largest
   machine at the default yield otherwise)
2. size the job in whole batches and add prep/cleaning time
3. under the machine's week lock, take the first free slot that fits
4. assign the first certified employee who is free, or double-book the first
   one and report it
5. persist the block set, update the plan's planned amounts and commit

Recipes that cannot be placed are reported with a reason; earlier recipes stay
committed.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from creamery.core.exceptions import NotFoundError, ResourceBusyError
from creamery.core.locks import schedule_lock
from creamery.models.employee import Employee
from creamery.models.machine import Machine
from creamery.models.production import (
    TERMINAL_BLOCK_STATUSES,
    ProductionBlock,
    ProductionPlan,
)
from creamery.models.recipe import Recipe
from creamery.schemas.production_block import BlockResponse
from creamery.schemas.schedule import (
    EmployeeAssignment,
    ForcedAssignment,
    ScheduleGenerationOptions,
    ScheduleGenerationResult,
    UnscheduledRecipe,
)
from creamery.services.block_composer import BlockDurations, compose_block_set, materialize
from creamery.services.change_tracking import (
    PLAN_TRACKED_FIELDS,
    diff_fields,
    record_revision,
    snapshot,
)
from creamery.services.conflicts import ConflictChecker
from creamery.services.machine_selector import select_best
from creamery.services.plan_ledger import (
    adjust_planned_amount,
    ensure_plan_editable,
    refresh_completion_status,
    touch_plan,
)
from creamery.services.time_slots import (
    day_window,
    find_slots,
    parse_hhmm,
    schedule_timezone,
    week_days,
)
from creamery.services.yield_catalog import YieldCatalog, batches_needed

logger = logging.getLogger(__name__)

UNKNOWN_RECIPE = "unknown_recipe"
NO_SUITABLE_MACHINE = "no_suitable_machine"
NO_SLOT = "no_slot"
NO_CERTIFIED_EMPLOYEE = "no_certified_employee"
MACHINE_BUSY = "machine_busy"


class ScheduleGenerator:
    """Place recipe requests of one plan into free machine time."""

    def __init__(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        actor_id: uuid.UUID,
        default_tubs_per_batch: float | None = None,
    ) -> None:
        self.db = db
        self.owner_id = owner_id
        self.actor_id = actor_id
        self.default_tubs_per_batch = default_tubs_per_batch
        self.conflicts = ConflictChecker(db, owner_id)

    async def generate_schedule(
        self, options: ScheduleGenerationOptions
    ) -> ScheduleGenerationResult:
        plan = await self._load_plan(options.plan_id)
        ensure_plan_editable(plan)

        day_start = parse_hhmm(options.workday_start_time)
        day_end = parse_hhmm(options.workday_end_time)
        week_start = options.week_start_date or plan.week_start_date

        if not options.recipes:
            return ScheduleGenerationResult(message="Generated 0 production blocks")

        recipe_ids = [request.recipe_id for request in options.recipes]
        recipes = await self._load_recipes(recipe_ids)
        machines = await self._load_available_machines()
        employees = await self._load_active_employees()
        catalog = await YieldCatalog.load(
            self.db, self.owner_id, recipe_ids, self.default_tubs_per_batch
        )

        tz = schedule_timezone()
        days = week_days(week_start)
        horizon_start, _ = day_window(days[0], day_start, day_end, tz)
        _, horizon_end = day_window(days[-1], day_start, day_end, tz)

        created: list[ProductionBlock] = []
        unscheduled: list[UnscheduledRecipe] = []
        forced: list[ForcedAssignment] = []

        for request in options.recipes:
            recipe = recipes.get(request.recipe_id)
            if recipe is None:
                logger.debug("Recipe %s not found", request.recipe_id)
                unscheduled.append(
                    UnscheduledRecipe(
                        recipe_id=request.recipe_id,
                        remaining_amount=request.planned_amount,
                        reason=UNKNOWN_RECIPE,
                    )
                )
                continue

            choice = select_best(
                recipe.id,
                machines,
                catalog.for_recipe(recipe.id),
                catalog.default_tubs_per_batch,
            )
            if choice is None:
                unscheduled.append(
                    self._unscheduled(recipe, request.planned_amount, NO_SUITABLE_MACHINE)
                )
                continue

            batches = batches_needed(request.planned_amount, choice.tubs_per_batch)
            durations = BlockDurations(
                production_minutes=batches * choice.production_time_minutes,
                prep_minutes=options.prep_duration_minutes if options.include_prep_blocks else 0,
                cleaning_minutes=(
                    options.cleaning_duration_minutes if options.include_cleaning_blocks else 0
                ),
            )
            logger.debug(
                "Recipe %s: machine %s, %d batches at %.1f tubs, %d minutes",
                recipe.name,
                choice.machine_id,
                batches,
                choice.tubs_per_batch,
                durations.total_minutes,
            )

            amount = request.planned_amount
            try:
                async with schedule_lock(self.owner_id, choice.machine_id, days):
                    existing = await self._live_machine_blocks(
                        choice.machine_id, horizon_start, horizon_end
                    )
                    slots = find_slots(
                        week_start,
                        options.work_days,
                        day_start,
                        day_end,
                        durations.total_minutes,
                        existing,
                        choice.machine_id,
                        tz,
                    )
                    if not slots:
                        unscheduled.append(self._unscheduled(recipe, amount, NO_SLOT))
                        continue

                    candidates = [e for e in employees if e.is_certified_for(choice.machine_id)]
                    if not candidates:
                        unscheduled.append(
                            self._unscheduled(recipe, amount, NO_CERTIFIED_EMPLOYEE)
                        )
                        continue

                    slot = slots[0]
                    assignment = await self._assign_employee(
                        candidates, slot.start_time, slot.end_time
                    )
                    block_set = compose_block_set(slot.start_time, durations, recipe.id, amount)
                    blocks = materialize(
                        block_set,
                        owner_id=self.owner_id,
                        plan_id=plan.id,
                        machine_id=choice.machine_id,
                        employee_id=assignment.employee_id,
                        created_by=self.actor_id,
                    )

                    before = snapshot(plan, PLAN_TRACKED_FIELDS)
                    for block in blocks:
                        self.db.add(block)
                        plan.blocks.append(block)
                    adjust_planned_amount(plan, recipe.id, amount)
                    refresh_completion_status(plan)
                    touch_plan(plan, self.actor_id)
                    record_revision(
                        self.db,
                        owner_id=self.owner_id,
                        entity_type="plan",
                        entity_id=plan.id,
                        version=plan.version,
                        changes=diff_fields(
                            before, snapshot(plan, PLAN_TRACKED_FIELDS), PLAN_TRACKED_FIELDS
                        ),
                        changed_by=self.actor_id,
                    )
                    await self.db.flush()
                    await self.db.commit()
            except ResourceBusyError:
                logger.warning(
                    "Machine %s is locked by another request, skipping recipe %s",
                    choice.machine_id,
                    recipe.name,
                )
                unscheduled.append(self._unscheduled(recipe, amount, MACHINE_BUSY))
                continue

            created.extend(blocks)
            if assignment.forced:
                logger.warning(
                    "Employee %s double-booked for recipe %s at %s",
                    assignment.employee_id,
                    recipe.name,
                    slot.start_time.isoformat(),
                )
                forced.append(
                    ForcedAssignment(
                        recipe_id=recipe.id,
                        employee_id=assignment.employee_id,
                        start_time=block_set.start_time,
                        end_time=block_set.end_time,
                    )
                )

        logger.info(
            "Plan %s: generated %d blocks, %d recipes unscheduled, %d forced assignments",
            plan.id,
            len(created),
            len(unscheduled),
            len(forced),
        )
        return ScheduleGenerationResult(
            created_blocks=[BlockResponse.model_validate(block) for block in created],
            unscheduled_recipes=unscheduled,
            forced_assignments=forced,
            message=f"Generated {len(created)} production blocks",
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def _load_plan(self, plan_id: uuid.UUID) -> ProductionPlan:
        result = await self.db.execute(
            select(ProductionPlan)
            .options(selectinload(ProductionPlan.recipes), selectinload(ProductionPlan.blocks))
            .where(ProductionPlan.id == plan_id, ProductionPlan.owner_id == self.owner_id)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError("Production plan", plan_id)
        return plan

    async def _load_recipes(self, recipe_ids: list[uuid.UUID]) -> dict[uuid.UUID, Recipe]:
        result = await self.db.execute(
            select(Recipe).where(Recipe.owner_id == self.owner_id, Recipe.id.in_(recipe_ids))
        )
        return {recipe.id: recipe for recipe in result.scalars().all()}

    async def _load_available_machines(self) -> list[Machine]:
        result = await self.db.execute(
            select(Machine)
            .where(Machine.owner_id == self.owner_id, Machine.status == "available")
            .order_by(Machine.id)
        )
        return list(result.scalars().all())

    async def _load_active_employees(self) -> list[Employee]:
        result = await self.db.execute(
            select(Employee)
            .options(selectinload(Employee.machine_certifications))
            .where(Employee.owner_id == self.owner_id, Employee.active.is_(True))
            .order_by(Employee.id)
        )
        return list(result.scalars().all())

    async def _live_machine_blocks(
        self, machine_id: uuid.UUID, start_time: datetime, end_time: datetime
    ) -> list[ProductionBlock]:
        """Re-read the machine's live blocks; called with the lock held."""
        result = await self.db.execute(
            select(ProductionBlock).where(
                ProductionBlock.owner_id == self.owner_id,
                ProductionBlock.machine_id == machine_id,
                ProductionBlock.status.not_in(TERMINAL_BLOCK_STATUSES),
                ProductionBlock.start_time < end_time,
                ProductionBlock.end_time > start_time,
            )
        )
        return list(result.scalars().all())

    async def _assign_employee(
        self, candidates: list[Employee], start_time: datetime, end_time: datetime
    ) -> EmployeeAssignment:
        busy = await self.conflicts.busy_employee_ids(
            [employee.id for employee in candidates], start_time, end_time
        )
        for employee in candidates:
            if employee.id not in busy:
                return EmployeeAssignment(employee_id=employee.id)
        return EmployeeAssignment(employee_id=candidates[0].id, forced=True)

    @staticmethod
    def _unscheduled(recipe: Recipe, remaining: float, reason: str) -> UnscheduledRecipe:
        logger.debug("Recipe %s unscheduled: %s", recipe.name, reason)
        return UnscheduledRecipe(
            recipe_id=recipe.id,
            recipe_name=recipe.name,
            remaining_amount=remaining,
            reason=reason,
        )
