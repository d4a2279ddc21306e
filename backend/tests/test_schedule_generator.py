"""Tests for greedy schedule generation."""

import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from creamery.core.exceptions import NotFoundError, ResourceBusyError, ScheduleValidationError
from creamery.schemas.schedule import RecipeRequest, ScheduleGenerationOptions
from creamery.services import schedule_generator
from creamery.services.schedule_generator import (
    MACHINE_BUSY,
    NO_CERTIFIED_EMPLOYEE,
    NO_SLOT,
    NO_SUITABLE_MACHINE,
    UNKNOWN_RECIPE,
    ScheduleGenerator,
)
from creamery.services.yield_catalog import YieldCatalog

from conftest import ACTOR_ID, OWNER_ID, BlockFactory, utc


def _options(plan, *requests: tuple[uuid.UUID, float], **overrides) -> ScheduleGenerationOptions:
    return ScheduleGenerationOptions(
        plan_id=plan.id,
        recipes=[RecipeRequest(recipe_id=rid, planned_amount=amount) for rid, amount in requests],
        **overrides,
    )


def _generator(mock_db, plan, recipes, machines, employees, busy=None) -> ScheduleGenerator:
    """Generator with its loaders stubbed; machine blocks are read back from the plan."""
    generator = ScheduleGenerator(mock_db, OWNER_ID, ACTOR_ID, default_tubs_per_batch=3.0)
    generator._load_plan = AsyncMock(return_value=plan)
    generator._load_recipes = AsyncMock(return_value={r.id: r for r in recipes})
    generator._load_available_machines = AsyncMock(return_value=machines)
    generator._load_active_employees = AsyncMock(return_value=employees)
    generator._live_machine_blocks = AsyncMock(
        side_effect=lambda machine_id, start, end: [
            b for b in plan.blocks if b.machine_id == machine_id
        ]
    )
    generator.conflicts.busy_employee_ids = AsyncMock(return_value=busy or set())
    return generator


@pytest.fixture
def empty_catalog():
    with patch.object(YieldCatalog, "load", AsyncMock(return_value=YieldCatalog([], 3.0))):
        yield


@pytest.mark.asyncio
class TestGenerateSchedule:
    async def test_no_recipes_writes_nothing(self, mock_db, plan_factory):
        plan = plan_factory.create()
        generator = _generator(mock_db, plan, [], [], [])

        result = await generator.generate_schedule(_options(plan))

        assert result.created_blocks == []
        assert result.unscheduled_recipes == []
        assert result.message == "Generated 0 production blocks"
        generator._load_recipes.assert_not_awaited()
        mock_db.add.assert_not_called()
        mock_db.commit.assert_not_awaited()

    async def test_places_block_set_at_first_free_slot(
        self, mock_db, plan_factory, recipe_factory, sample_machine, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create(name="Vanilla Bean")
        generator = _generator(mock_db, plan, [recipe], [sample_machine], [sample_employee])

        result = await generator.generate_schedule(_options(plan, (recipe.id, 6)))

        # 6 tubs at the default 3 per batch: 2 batches of 30 minutes
        blocks = result.created_blocks
        assert [b.block_type for b in blocks] == ["prep", "production", "cleaning"]
        assert (blocks[0].start_time, blocks[0].end_time) == (utc(19, 8), utc(19, 8, 15))
        assert (blocks[1].start_time, blocks[1].end_time) == (utc(19, 8, 15), utc(19, 9, 15))
        assert (blocks[2].start_time, blocks[2].end_time) == (utc(19, 9, 15), utc(19, 9, 30))
        assert all(b.machine_id == sample_machine.id for b in blocks)
        assert all(b.employee_id == sample_employee.id for b in blocks)
        assert blocks[1].quantity == 6
        assert result.message == "Generated 3 production blocks"

        assert plan.recipes[0].recipe_id == recipe.id
        assert plan.recipes[0].planned_amount == 6
        assert plan.version == 2
        assert len(plan.blocks) == 3
        # three blocks and one plan revision
        assert mock_db.add.call_count == 4
        mock_db.commit.assert_awaited_once()

    async def test_second_recipe_goes_after_the_first(
        self, mock_db, plan_factory, recipe_factory, sample_machine, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        first, second = recipe_factory.create(), recipe_factory.create()
        generator = _generator(mock_db, plan, [first, second], [sample_machine], [sample_employee])

        result = await generator.generate_schedule(
            _options(plan, (first.id, 3), (second.id, 3), include_prep_blocks=False)
        )

        production = [b for b in result.created_blocks if b.block_type == "production"]
        assert [b.recipe_id for b in production] == [first.id, second.id]
        assert production[0].start_time == utc(19, 8)
        assert production[1].start_time == utc(19, 8, 45)
        assert mock_db.commit.await_count == 2

    async def test_unknown_recipe_is_reported(
        self, mock_db, plan_factory, sample_machine, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        missing = uuid.uuid4()
        generator = _generator(mock_db, plan, [], [sample_machine], [sample_employee])

        result = await generator.generate_schedule(_options(plan, (missing, 4)))

        assert result.created_blocks == []
        assert result.unscheduled_recipes[0].recipe_id == missing
        assert result.unscheduled_recipes[0].reason == UNKNOWN_RECIPE
        assert result.unscheduled_recipes[0].remaining_amount == 4

    async def test_no_available_machine(
        self, mock_db, plan_factory, recipe_factory, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create()
        generator = _generator(mock_db, plan, [recipe], [], [sample_employee])

        result = await generator.generate_schedule(_options(plan, (recipe.id, 4)))

        assert result.unscheduled_recipes[0].reason == NO_SUITABLE_MACHINE
        assert result.unscheduled_recipes[0].recipe_name == recipe.name

    async def test_fully_booked_machine_has_no_slot(
        self, mock_db, plan_factory, recipe_factory, sample_machine, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        BlockFactory.create(
            plan, machine_id=sample_machine.id, start_time=utc(19, 0), end_time=utc(26, 0)
        )
        recipe = recipe_factory.create()
        generator = _generator(mock_db, plan, [recipe], [sample_machine], [sample_employee])

        result = await generator.generate_schedule(_options(plan, (recipe.id, 4)))

        assert result.unscheduled_recipes[0].reason == NO_SLOT
        mock_db.commit.assert_not_awaited()

    async def test_no_certified_employee(
        self, mock_db, plan_factory, recipe_factory, employee_factory, sample_machine, empty_catalog
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create()
        uncertified = employee_factory.create(certified_for=[uuid.uuid4()])
        generator = _generator(mock_db, plan, [recipe], [sample_machine], [uncertified])

        result = await generator.generate_schedule(_options(plan, (recipe.id, 4)))

        assert result.unscheduled_recipes[0].reason == NO_CERTIFIED_EMPLOYEE
        assert plan.recipes == []
        mock_db.add.assert_not_called()

    async def test_free_employee_preferred(
        self, mock_db, plan_factory, recipe_factory, employee_factory, sample_machine, empty_catalog
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create()
        busy = employee_factory.create(certified_for=[sample_machine.id])
        free = employee_factory.create(certified_for=[sample_machine.id])
        generator = _generator(
            mock_db, plan, [recipe], [sample_machine], [busy, free], busy={busy.id}
        )

        result = await generator.generate_schedule(_options(plan, (recipe.id, 4)))

        assert {b.employee_id for b in result.created_blocks} == {free.id}
        assert result.forced_assignments == []

    async def test_all_busy_forces_first_candidate(
        self, mock_db, plan_factory, recipe_factory, employee_factory, sample_machine, empty_catalog
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create()
        first = employee_factory.create(certified_for=[sample_machine.id])
        second = employee_factory.create(certified_for=[sample_machine.id])
        generator = _generator(
            mock_db, plan, [recipe], [sample_machine], [first, second], busy={first.id, second.id}
        )

        result = await generator.generate_schedule(_options(plan, (recipe.id, 4)))

        assert len(result.created_blocks) == 3
        forced = result.forced_assignments[0]
        assert forced.employee_id == first.id
        assert forced.recipe_id == recipe.id
        assert forced.start_time == utc(19, 8)
        assert forced.end_time == utc(19, 9, 30)

    async def test_explicit_yield_drives_batches(
        self, mock_db, plan_factory, recipe_factory, yield_factory, sample_machine, sample_employee
    ):
        plan = plan_factory.create()
        recipe = recipe_factory.create()
        row = yield_factory.create(recipe.id, sample_machine.id, tubs_per_batch=4.0)
        catalog = YieldCatalog([row])
        generator = _generator(mock_db, plan, [recipe], [sample_machine], [sample_employee])

        with patch.object(YieldCatalog, "load", AsyncMock(return_value=catalog)):
            result = await generator.generate_schedule(
                _options(
                    plan,
                    (recipe.id, 10),
                    include_prep_blocks=False,
                    include_cleaning_blocks=False,
                )
            )

        # ceil(10 / 4) = 3 batches of 30 minutes
        assert len(result.created_blocks) == 1
        block = result.created_blocks[0]
        assert (block.start_time, block.end_time) == (utc(19, 8), utc(19, 9, 30))

    async def test_frozen_plan_is_rejected(self, mock_db, plan_factory):
        plan = plan_factory.create(status="archived")
        generator = _generator(mock_db, plan, [], [], [])

        with pytest.raises(ScheduleValidationError):
            await generator.generate_schedule(_options(plan, (uuid.uuid4(), 4)))

    async def test_missing_plan(self, mock_db):
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute = AsyncMock(return_value=mock_result)
        generator = ScheduleGenerator(mock_db, OWNER_ID, ACTOR_ID)

        with pytest.raises(NotFoundError):
            await generator.generate_schedule(ScheduleGenerationOptions(plan_id=uuid.uuid4()))

    async def test_generation_refreshes_completion_status(
        self, mock_db, plan_factory, recipe_factory, sample_machine, sample_employee, empty_catalog
    ):
        recipe = recipe_factory.create()
        plan = plan_factory.create(recipes=[(recipe.id, 10, 5)], completion_status=50.0)
        generator = _generator(mock_db, plan, [recipe], [sample_machine], [sample_employee])

        await generator.generate_schedule(_options(plan, (recipe.id, 10)))

        assert plan.recipes[0].planned_amount == 20
        assert plan.recipes[0].completed_amount == 5
        assert plan.completion_status == 25.0

    async def test_locked_machine_skips_recipe_and_keeps_earlier_ones(
        self, mock_db, plan_factory, recipe_factory, sample_machine, sample_employee, empty_catalog
    ):
        plan = plan_factory.create()
        first, second = recipe_factory.create(), recipe_factory.create()
        generator = _generator(mock_db, plan, [first, second], [sample_machine], [sample_employee])
        acquired = []

        @asynccontextmanager
        async def lock_once(owner_id, machine_id, days):
            if acquired:
                raise ResourceBusyError("Schedule is being modified, try again")
            acquired.append(machine_id)
            yield

        with patch.object(schedule_generator, "schedule_lock", lock_once):
            result = await generator.generate_schedule(
                _options(plan, (first.id, 3), (second.id, 3))
            )

        assert len(result.created_blocks) == 3
        assert {b.recipe_id for b in result.created_blocks if b.recipe_id} == {first.id}
        assert [u.recipe_id for u in result.unscheduled_recipes] == [second.id]
        assert result.unscheduled_recipes[0].reason == MACHINE_BUSY
        assert result.unscheduled_recipes[0].remaining_amount == 3
        mock_db.commit.assert_awaited_once()
