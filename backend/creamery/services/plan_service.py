"""Production plan operations: CRUD, completion, export/import and change history."""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from creamery.core.exceptions import NotFoundError
from creamery.models.employee import Employee
from creamery.models.machine import Machine
from creamery.models.production import PlanRecipe, ProductionPlan
from creamery.models.recipe import Recipe
from creamery.models.revision import Revision
from creamery.schemas.production_plan import (
    IMPORTED_SUFFIX,
    ExportedBlock,
    ExportedRecipe,
    PlanCreate,
    PlanExport,
    PlanExportResponse,
    PlanRecipeEntry,
    PlanUpdate,
)
from creamery.services.change_tracking import (
    PLAN_TRACKED_FIELDS,
    diff_fields,
    list_revisions,
    record_revision,
    snapshot,
)
from creamery.services.plan_ledger import (
    apply_block_transition,
    ensure_plan_editable,
    find_plan_recipe,
    refresh_completion_status,
    touch_plan,
)

logger = logging.getLogger(__name__)


class PlanService:
    """Production plan operations scoped to one shop."""

    def __init__(self, db: AsyncSession, owner_id: uuid.UUID, actor_id: uuid.UUID) -> None:
        self.db = db
        self.owner_id = owner_id
        self.actor_id = actor_id

    def _plan_query(self):
        return select(ProductionPlan).options(
            selectinload(ProductionPlan.recipes), selectinload(ProductionPlan.blocks)
        )

    async def list_plans(self, status: str | None = None) -> list[ProductionPlan]:
        query = self._plan_query().where(ProductionPlan.owner_id == self.owner_id)
        if status is not None:
            query = query.where(ProductionPlan.status == status)
        result = await self.db.execute(query.order_by(ProductionPlan.week_start_date.desc()))
        return list(result.scalars().all())

    async def get_plan(self, plan_id: uuid.UUID) -> ProductionPlan:
        result = await self.db.execute(
            self._plan_query().where(
                ProductionPlan.id == plan_id, ProductionPlan.owner_id == self.owner_id
            )
        )
        plan = result.scalar_one_or_none()
        if plan is None:
            raise NotFoundError("Production plan", plan_id)
        return plan

    async def _check_recipes(self, entries: list[PlanRecipeEntry]) -> None:
        ids = {entry.recipe_id for entry in entries}
        if not ids:
            return
        result = await self.db.execute(
            select(Recipe.id).where(Recipe.owner_id == self.owner_id, Recipe.id.in_(ids))
        )
        missing = ids - set(result.scalars().all())
        if missing:
            raise NotFoundError("Recipe", sorted(missing)[0])

    async def create_plan(self, payload: PlanCreate) -> ProductionPlan:
        await self._check_recipes(payload.recipes)
        plan = ProductionPlan(
            id=uuid.uuid4(),
            owner_id=self.owner_id,
            name=payload.name,
            week_start_date=payload.week_start_date,
            status="draft",
            completion_status=0.0,
            version=1,
            notes=payload.notes,
            created_by=self.actor_id,
            recipes=[
                PlanRecipe(
                    id=uuid.uuid4(),
                    recipe_id=entry.recipe_id,
                    planned_amount=entry.planned_amount,
                    completed_amount=0.0,
                )
                for entry in payload.recipes
            ],
            blocks=[],
        )
        self.db.add(plan)
        await self.db.flush()
        logger.info("Created production plan %s for week %s", plan.name, plan.week_start_date)
        return plan

    async def update_plan(self, plan_id: uuid.UUID, payload: PlanUpdate) -> ProductionPlan:
        """Apply a partial update, bump the version and record what changed.

        A new recipe list replaces the old one; completed amounts are kept for
        recipes present in both.
        """
        plan = await self.get_plan(plan_id)
        changes = payload.model_dump(exclude_unset=True)
        before = snapshot(plan, PLAN_TRACKED_FIELDS)

        for field in ("name", "notes", "status"):
            if field in changes and changes[field] is not None:
                setattr(plan, field, changes[field])

        if payload.recipes is not None:
            await self._check_recipes(payload.recipes)
            replacement = []
            for entry in payload.recipes:
                existing = find_plan_recipe(plan, entry.recipe_id)
                replacement.append(
                    PlanRecipe(
                        id=uuid.uuid4(),
                        recipe_id=entry.recipe_id,
                        planned_amount=entry.planned_amount,
                        completed_amount=existing.completed_amount if existing else 0.0,
                    )
                )
            plan.recipes = replacement
            refresh_completion_status(plan)

        touch_plan(plan, self.actor_id)
        record_revision(
            self.db,
            owner_id=self.owner_id,
            entity_type="plan",
            entity_id=plan.id,
            version=plan.version,
            changes=diff_fields(before, snapshot(plan, PLAN_TRACKED_FIELDS), PLAN_TRACKED_FIELDS),
            changed_by=self.actor_id,
        )
        await self.db.flush()
        return plan

    async def complete_plan(self, plan_id: uuid.UUID) -> ProductionPlan:
        """Complete every live block, credit produced tubs and close the plan."""
        plan = await self.get_plan(plan_id)
        ensure_plan_editable(plan)
        before = snapshot(plan, PLAN_TRACKED_FIELDS)

        for block in list(plan.blocks):
            if block.is_live:
                apply_block_transition(plan, block, "completed", self.actor_id)

        plan.status = "completed"
        plan.completion_status = 100.0 if not plan.recipes else plan.completion_status
        touch_plan(plan, self.actor_id)
        record_revision(
            self.db,
            owner_id=self.owner_id,
            entity_type="plan",
            entity_id=plan.id,
            version=plan.version,
            changes=diff_fields(before, snapshot(plan, PLAN_TRACKED_FIELDS), PLAN_TRACKED_FIELDS),
            changed_by=self.actor_id,
        )
        await self.db.flush()
        logger.info("Completed production plan %s at %.1f%%", plan.id, plan.completion_status)
        return plan

    async def delete_plan(self, plan_id: uuid.UUID) -> None:
        """Delete a plan together with its blocks and recipe entries."""
        plan = await self.get_plan(plan_id)
        block_count = len(plan.blocks)
        await self.db.delete(plan)
        await self.db.flush()
        logger.info("Deleted production plan %s and %d blocks", plan_id, block_count)

    async def history(self, plan_id: uuid.UUID) -> list[Revision]:
        await self.get_plan(plan_id)
        return await list_revisions(self.db, self.owner_id, "plan", plan_id)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    async def _names(self, model, ids: set[uuid.UUID]) -> dict[uuid.UUID, str]:
        if not ids:
            return {}
        result = await self.db.execute(
            select(model.id, model.name).where(model.owner_id == self.owner_id, model.id.in_(ids))
        )
        return dict(result.all())

    async def export_plan(self, plan_id: uuid.UUID) -> PlanExportResponse:
        """Serialize a plan with recipe, machine and employee names resolved."""
        plan = await self.get_plan(plan_id)
        blocks = sorted(plan.blocks, key=lambda block: block.start_time)

        recipe_names = await self._names(
            Recipe,
            {entry.recipe_id for entry in plan.recipes}
            | {block.recipe_id for block in blocks if block.recipe_id is not None},
        )
        machine_names = await self._names(Machine, {block.machine_id for block in blocks})
        employee_names = await self._names(Employee, {block.employee_id for block in blocks})

        exported = PlanExport(
            plan_name=plan.name,
            week_start_date=plan.week_start_date,
            status=plan.status,
            completion_status=plan.completion_status,
            recipes=[
                ExportedRecipe(
                    name=recipe_names.get(entry.recipe_id, "Unknown recipe"),
                    planned_amount=entry.planned_amount,
                    completed_amount=entry.completed_amount,
                )
                for entry in plan.recipes
            ],
            blocks=[
                ExportedBlock(
                    block_type=block.block_type,
                    start_time=block.start_time,
                    end_time=block.end_time,
                    machine=machine_names.get(block.machine_id, "Unknown machine"),
                    employee=employee_names.get(block.employee_id, "Unknown employee"),
                    recipe=(
                        recipe_names.get(block.recipe_id, "Unknown recipe")
                        if block.recipe_id is not None
                        else None
                    ),
                    quantity=block.quantity or 0.0,
                    status=block.status,
                )
                for block in blocks
            ],
        )
        return PlanExportResponse(
            exported_plan=exported, export_timestamp=datetime.now(timezone.utc)
        )

    async def import_plan(self, data: PlanExport) -> ProductionPlan:
        """Create a draft plan from exported data.

        Recipes are matched by name within the shop and unknown names are
        skipped. Blocks are not imported; the plan has to be scheduled again.
        """
        names = {item.name for item in data.recipes}
        by_name: dict[str, uuid.UUID] = {}
        if names:
            result = await self.db.execute(
                select(Recipe.id, Recipe.name)
                .where(Recipe.owner_id == self.owner_id, Recipe.name.in_(names))
                .order_by(Recipe.id)
            )
            for recipe_id, name in result.all():
                by_name.setdefault(name, recipe_id)

        planned: dict[uuid.UUID, float] = {}
        for item in data.recipes:
            recipe_id = by_name.get(item.name)
            if recipe_id is None:
                logger.info("Import of %s: no recipe named %r, skipped", data.plan_name, item.name)
                continue
            planned[recipe_id] = planned.get(recipe_id, 0.0) + item.planned_amount

        now = datetime.now(timezone.utc)
        plan = ProductionPlan(
            id=uuid.uuid4(),
            owner_id=self.owner_id,
            name=f"{data.plan_name}{IMPORTED_SUFFIX}",
            week_start_date=data.week_start_date,
            status="draft",
            completion_status=0.0,
            version=1,
            notes=f"Imported on {now:%Y-%m-%d %H:%M} UTC",
            created_by=self.actor_id,
            recipes=[
                PlanRecipe(
                    id=uuid.uuid4(),
                    recipe_id=recipe_id,
                    planned_amount=amount,
                    completed_amount=0.0,
                )
                for recipe_id, amount in planned.items()
            ],
            blocks=[],
        )
        self.db.add(plan)
        await self.db.flush()
        logger.info("Imported production plan %s with %d recipes", plan.name, len(plan.recipes))
        return plan
