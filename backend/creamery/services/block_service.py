"""Manual production block operations.

Creation, update and deletion of single blocks and of prep/production/cleaning
sets, plus the read-only helpers used by the planner UI (time estimates,
suggestions, availability). Every write validates its references first,
checks conflicts under the machine's schedule lock and commits before the
lock is released.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from creamery.core.exceptions import (
    CertificationError,
    NotFoundError,
    ScheduleValidationError,
    SchedulingConflictError,
)
from creamery.core.locks import schedule_lock
from creamery.models.employee import Employee
from creamery.models.machine import Machine
from creamery.models.production import ProductionBlock, ProductionPlan
from creamery.models.recipe import Recipe
from creamery.schemas.production_block import BlockCreate, BlockUpdate
from creamery.schemas.schedule import (
    ProductionSetCreate,
    ProductionTimeEstimate,
    ScheduleSuggestion,
    TimeWindow,
)
from creamery.services.block_composer import (
    BlockSet,
    compose_block_set,
    compute_durations,
    materialize,
)
from creamery.services.change_tracking import (
    BLOCK_TRACKED_FIELDS,
    diff_fields,
    record_revision,
    snapshot,
)
from creamery.services.conflicts import ConflictChecker
from creamery.services.plan_ledger import (
    adjust_planned_amount,
    apply_block_transition,
    ensure_block_editable,
    ensure_plan_editable,
    refresh_completion_status,
    touch_plan,
)
from creamery.services.time_slots import schedule_timezone

logger = logging.getLogger(__name__)

SUGGESTION_CONFLICT_MESSAGE = "The suggested schedule has conflicts. Try a different start time."


def _window(planned) -> TimeWindow | None:
    if planned is None:
        return None
    return TimeWindow(start_time=planned.start_time, end_time=planned.end_time)


def _set_notes(notes: str | None) -> dict[str, str]:
    if notes:
        return {
            "prep": f"{notes} - Prep",
            "production": notes,
            "cleaning": f"{notes} - Cleaning",
        }
    return {
        "prep": "Preparation block",
        "production": "Production block",
        "cleaning": "Cleaning block",
    }


class BlockService:
    """Production block operations scoped to one shop."""

    def __init__(self, db: AsyncSession, owner_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        self.db = db
        self.owner_id = owner_id
        self.actor_id = actor_id
        self.conflicts = ConflictChecker(db, owner_id)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_machine(self, machine_id: uuid.UUID) -> Machine:
        result = await self.db.execute(
            select(Machine).where(Machine.id == machine_id, Machine.owner_id == self.owner_id)
        )
        machine = result.scalar_one_or_none()
        if machine is None:
            raise NotFoundError("Machine", machine_id)
        return machine

    async def _get_employee(self, employee_id: uuid.UUID) -> Employee:
        result = await self.db.execute(
            select(Employee)
            .options(selectinload(Employee.machine_certifications))
            .where(Employee.id == employee_id, Employee.owner_id == self.owner_id)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _get_recipe(self, recipe_id: uuid.UUID) -> Recipe:
        result = await self.db.execute(
            select(Recipe).where(Recipe.id == recipe_id, Recipe.owner_id == self.owner_id)
        )
        recipe = result.scalar_one_or_none()
        if recipe is None:
            raise NotFoundError("Recipe", recipe_id)
        return recipe

    async def _get_plan(self, plan_id: uuid.UUID) -> ProductionPlan:
        result = await self.db.execute(
            select(ProductionPlan)
            .options(selectinload(ProductionPlan.recipes), selectinload(ProductionPlan.blocks))
            .where(ProductionPlan.id == plan_id, ProductionPlan.owner_id == self.owner_id)
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError("Production plan", plan_id)
        return plan

    async def get_block(self, block_id: uuid.UUID) -> ProductionBlock:
        result = await self.db.execute(
            select(ProductionBlock).where(
                ProductionBlock.id == block_id, ProductionBlock.owner_id == self.owner_id
            )
        )
        block = result.scalar_one_or_none()
        if block is None:
            raise NotFoundError("Production block", block_id)
        return block

    async def list_blocks(
        self,
        plan_id: uuid.UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[ProductionBlock]:
        """Blocks of the shop ordered by start time.

        ``start_date``/``end_date`` are inclusive calendar days in the shop
        timezone; a block matches when it overlaps that range.
        """
        query = select(ProductionBlock).where(ProductionBlock.owner_id == self.owner_id)
        if plan_id is not None:
            query = query.where(ProductionBlock.plan_id == plan_id)
        tz = schedule_timezone()
        if start_date is not None:
            range_start = datetime.combine(start_date, datetime.min.time(), tzinfo=tz)
            query = query.where(ProductionBlock.end_time > range_start)
        if end_date is not None:
            range_end = datetime.combine(
                end_date + timedelta(days=1), datetime.min.time(), tzinfo=tz
            )
            query = query.where(ProductionBlock.start_time < range_end)
        result = await self.db.execute(query.order_by(ProductionBlock.start_time))
        return list(result.scalars().all())

    @staticmethod
    def _require_certified(employee: Employee, machine: Machine) -> None:
        if not employee.is_certified_for(machine.id):
            raise CertificationError(
                f"Employee {employee.name} is not certified to operate {machine.name}"
            )

    @asynccontextmanager
    async def _locked(
        self, machine_id: uuid.UUID, start_time: datetime, end_time: datetime
    ) -> AsyncIterator[None]:
        tz = schedule_timezone()
        first = start_time.astimezone(tz).date()
        last = end_time.astimezone(tz).date()
        days = [first + timedelta(days=offset) for offset in range((last - first).days + 1)]
        async with schedule_lock(self.owner_id, machine_id, days):
            yield

    async def _ensure_free(
        self,
        machine_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_block_id: uuid.UUID | None = None,
    ) -> None:
        report = await self.conflicts.check(
            machine_id, employee_id, start_time, end_time, exclude_block_id
        )
        if report.has_conflict:
            raise SchedulingConflictError(report)

    # ------------------------------------------------------------------
    # Read-only helpers
    # ------------------------------------------------------------------

    async def calculate_production_time(
        self, machine_id: uuid.UUID, quantity: float
    ) -> ProductionTimeEstimate:
        machine = await self._get_machine(machine_id)
        durations = compute_durations(machine, quantity)
        return ProductionTimeEstimate(
            production_minutes=durations.production_minutes,
            recommended_prep_minutes=durations.prep_minutes,
            recommended_cleaning_minutes=durations.cleaning_minutes,
            total_minutes=durations.total_minutes,
        )

    async def suggest_schedule(
        self,
        machine_id: uuid.UUID,
        employee_id: uuid.UUID,
        quantity: float,
        preferred_start_time: datetime,
    ) -> ScheduleSuggestion:
        """Lay out a block set at the preferred start and report whether it is free."""
        machine = await self._get_machine(machine_id)
        employee = await self._get_employee(employee_id)
        self._require_certified(employee, machine)

        durations = compute_durations(machine, quantity)
        block_set = compose_block_set(preferred_start_time, durations, None, quantity)
        available = await self.conflicts.is_available(
            machine_id, employee_id, block_set.start_time, block_set.end_time
        )
        if not available:
            return ScheduleSuggestion(success=False, message=SUGGESTION_CONFLICT_MESSAGE)

        return ScheduleSuggestion(
            success=True,
            prep_block=_window(block_set.prep),
            production_block=_window(block_set.production),
            cleaning_block=_window(block_set.cleaning),
        )

    async def check_availability(
        self,
        machine_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_block_id: uuid.UUID | None = None,
    ) -> bool:
        if end_time <= start_time:
            raise ScheduleValidationError("End time must be after start time")
        return await self.conflicts.is_available(
            machine_id, employee_id, start_time, end_time, exclude_block_id
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_block(self, payload: BlockCreate) -> ProductionBlock:
        machine = await self._get_machine(payload.machine_id)
        employee = await self._get_employee(payload.employee_id)
        self._require_certified(employee, machine)
        plan = await self._get_plan(payload.plan_id)
        ensure_plan_editable(plan)
        is_production = payload.block_type == "production"
        if is_production:
            await self._get_recipe(payload.recipe_id)

        async with self._locked(machine.id, payload.start_time, payload.end_time):
            await self._ensure_free(machine.id, employee.id, payload.start_time, payload.end_time)

            block = ProductionBlock(
                id=uuid.uuid4(),
                owner_id=self.owner_id,
                plan_id=plan.id,
                start_time=payload.start_time,
                end_time=payload.end_time,
                block_type=payload.block_type,
                machine_id=machine.id,
                employee_id=employee.id,
                recipe_id=payload.recipe_id if is_production else None,
                quantity=payload.quantity if is_production else None,
                status="scheduled",
                notes=payload.notes,
                created_by=self.actor_id,
            )
            self.db.add(block)
            plan.blocks.append(block)
            if is_production:
                adjust_planned_amount(plan, block.recipe_id, block.quantity)
                refresh_completion_status(plan)
            touch_plan(plan, self.actor_id)
            await self.db.flush()
            await self.db.commit()

        logger.info("Created %s block %s on machine %s", block.block_type, block.id, machine.name)
        return block

    async def create_production_set(
        self, payload: ProductionSetCreate
    ) -> dict[str, ProductionBlock]:
        """Create contiguous prep, production and cleaning blocks in one commit."""
        machine = await self._get_machine(payload.machine_id)
        employee = await self._get_employee(payload.employee_id)
        self._require_certified(employee, machine)
        await self._get_recipe(payload.recipe_id)
        plan = await self._get_plan(payload.plan_id)
        ensure_plan_editable(plan)

        durations = compute_durations(machine, payload.quantity)
        block_set: BlockSet = compose_block_set(
            payload.start_time, durations, payload.recipe_id, payload.quantity
        )

        async with self._locked(machine.id, block_set.start_time, block_set.end_time):
            await self._ensure_free(
                machine.id, employee.id, block_set.start_time, block_set.end_time
            )

            blocks = materialize(
                block_set,
                owner_id=self.owner_id,
                plan_id=plan.id,
                machine_id=machine.id,
                employee_id=employee.id,
                created_by=self.actor_id,
                notes=_set_notes(payload.notes),
            )
            for block in blocks:
                self.db.add(block)
                plan.blocks.append(block)
            adjust_planned_amount(plan, payload.recipe_id, payload.quantity)
            refresh_completion_status(plan)
            touch_plan(plan, self.actor_id)
            await self.db.flush()
            await self.db.commit()

        logger.info("Created production set for recipe %s on %s", payload.recipe_id, machine.name)
        return {block.block_type: block for block in blocks}

    async def update_block(self, block_id: uuid.UUID, payload: BlockUpdate) -> ProductionBlock:
        """Apply a partial update; a status change goes through the plan ledger."""
        block = await self.get_block(block_id)
        plan = await self._get_plan(block.plan_id)
        ensure_plan_editable(plan)
        ensure_block_editable(block)

        changes = payload.model_dump(exclude_unset=True)
        before = snapshot(block, BLOCK_TRACKED_FIELDS)

        new_start = changes.get("start_time") or block.start_time
        new_end = changes.get("end_time") or block.end_time
        new_machine_id = changes.get("machine_id") or block.machine_id
        new_employee_id = changes.get("employee_id") or block.employee_id
        if new_end <= new_start:
            raise ScheduleValidationError("End time must be after start time")

        if ("recipe_id" in changes or "quantity" in changes) and block.block_type != "production":
            raise ScheduleValidationError("Only production blocks carry a recipe and quantity")
        new_recipe_id = changes.get("recipe_id") or block.recipe_id
        new_quantity = changes.get("quantity") or block.quantity
        if new_recipe_id != block.recipe_id:
            await self._get_recipe(new_recipe_id)

        machine_changed = new_machine_id != block.machine_id
        employee_changed = new_employee_id != block.employee_id
        if machine_changed or employee_changed:
            machine = await self._get_machine(new_machine_id)
            employee = await self._get_employee(new_employee_id)
            self._require_certified(employee, machine)

        reschedule = (
            machine_changed
            or employee_changed
            or new_start != block.start_time
            or new_end != block.end_time
        )

        async with self._locked(new_machine_id, new_start, new_end):
            if reschedule:
                await self._ensure_free(
                    new_machine_id, new_employee_id, new_start, new_end, exclude_block_id=block.id
                )

            if block.block_type == "production":
                if new_recipe_id != block.recipe_id:
                    adjust_planned_amount(plan, block.recipe_id, -(block.quantity or 0.0))
                    adjust_planned_amount(plan, new_recipe_id, new_quantity)
                elif new_quantity != block.quantity:
                    adjust_planned_amount(
                        plan, block.recipe_id, new_quantity - (block.quantity or 0.0)
                    )
                block.recipe_id = new_recipe_id
                block.quantity = new_quantity
                refresh_completion_status(plan)

            block.start_time = new_start
            block.end_time = new_end
            block.machine_id = new_machine_id
            block.employee_id = new_employee_id
            if "notes" in changes:
                block.notes = changes["notes"]
            new_status = changes.get("status")
            if new_status and new_status != block.status:
                apply_block_transition(
                    plan,
                    block,
                    new_status,
                    self.actor_id,
                    actual_quantity=changes.get("actual_quantity"),
                    actual_start_time=changes.get("actual_start_time"),
                    actual_end_time=changes.get("actual_end_time"),
                )
            else:
                for field in ("actual_start_time", "actual_end_time", "actual_quantity"):
                    if field in changes:
                        setattr(block, field, changes[field])
                block.last_modified_by = self.actor_id
                block.last_modified_at = datetime.now(timezone.utc)
                touch_plan(plan, self.actor_id)

            record_revision(
                self.db,
                owner_id=self.owner_id,
                entity_type="block",
                entity_id=block.id,
                version=plan.version,
                changes=diff_fields(
                    before, snapshot(block, BLOCK_TRACKED_FIELDS), BLOCK_TRACKED_FIELDS
                ),
                changed_by=self.actor_id,
            )
            await self.db.flush()
            await self.db.commit()

        return block

    async def delete_block(self, block_id: uuid.UUID) -> None:
        """Delete a block; a live production block gives its tubs back to the plan."""
        block = await self.get_block(block_id)
        plan = await self._get_plan(block.plan_id)
        ensure_plan_editable(plan)

        if block.block_type == "production" and block.is_live:
            adjust_planned_amount(plan, block.recipe_id, -(block.quantity or 0.0))
            refresh_completion_status(plan)
        if block in plan.blocks:
            plan.blocks.remove(block)
        await self.db.delete(block)
        touch_plan(plan, self.actor_id)
        await self.db.flush()
        await self.db.commit()
        logger.info("Deleted block %s from plan %s", block.id, plan.id)
