"""Tests for planned/completed bookkeeping and block status transitions."""

import uuid

import pytest

from creamery.core.exceptions import ScheduleValidationError
from creamery.models.production import PlanRecipe
from creamery.services.plan_ledger import (
    adjust_planned_amount,
    apply_block_transition,
    compute_completion_status,
    ensure_block_editable,
    ensure_plan_editable,
    find_plan_recipe,
    touch_plan,
    validate_transition,
)

from conftest import ACTOR_ID, utc


def _entry(planned: float, completed: float) -> PlanRecipe:
    return PlanRecipe(
        id=uuid.uuid4(),
        recipe_id=uuid.uuid4(),
        planned_amount=planned,
        completed_amount=completed,
    )


class TestCompletionStatus:
    def test_one_decimal(self):
        assert compute_completion_status([_entry(9, 3)]) == 33.3

    def test_aggregates_all_recipes(self):
        assert compute_completion_status([_entry(10, 5), _entry(10, 10)]) == 75.0

    def test_nothing_planned(self):
        assert compute_completion_status([]) == 0.0

    def test_capped_at_hundred(self):
        assert compute_completion_status([_entry(4, 6)]) == 100.0


class TestPlannedAmounts:
    def test_creates_entry_for_new_recipe(self, plan_factory):
        plan = plan_factory.create()
        recipe_id = uuid.uuid4()

        adjust_planned_amount(plan, recipe_id, 8)

        entry = find_plan_recipe(plan, recipe_id)
        assert entry.planned_amount == 8
        assert entry.completed_amount == 0.0

    def test_adds_to_existing_entry(self, plan_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 4.0, 0.0)])

        adjust_planned_amount(plan, recipe_id, 6)

        assert len(plan.recipes) == 1
        assert plan.recipes[0].planned_amount == 10

    def test_removes_entry_at_zero(self, plan_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 4.0, 0.0)])

        adjust_planned_amount(plan, recipe_id, -4)

        assert plan.recipes == []

    def test_negative_delta_for_unknown_recipe_is_ignored(self, plan_factory):
        plan = plan_factory.create()

        adjust_planned_amount(plan, uuid.uuid4(), -3)

        assert plan.recipes == []


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            ("scheduled", "in-progress"),
            ("scheduled", "completed"),
            ("scheduled", "cancelled"),
            ("in-progress", "completed"),
            ("in-progress", "cancelled"),
        ],
    )
    def test_allowed(self, current, target):
        validate_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("completed", "scheduled"),
            ("cancelled", "in-progress"),
            ("in-progress", "scheduled"),
            ("completed", "cancelled"),
        ],
    )
    def test_rejected(self, current, target):
        with pytest.raises(ScheduleValidationError):
            validate_transition(current, target)

    def test_completing_production_credits_actual_quantity(self, plan_factory, block_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 9.0, 0.0)])
        block = block_factory.create(plan, recipe_id=recipe_id, quantity=4.0)

        apply_block_transition(
            plan, block, "completed", ACTOR_ID, actual_quantity=3.0, now=utc(19, 12)
        )

        assert block.status == "completed"
        assert block.actual_quantity == 3.0
        assert block.actual_start_time == block.start_time
        assert block.actual_end_time == utc(19, 12)
        assert plan.recipes[0].completed_amount == 3.0
        assert plan.completion_status == 33.3
        assert plan.version == 2
        assert plan.last_modified_by == ACTOR_ID

    def test_completing_without_actual_uses_planned_quantity(self, plan_factory, block_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 4.0, 0.0)])
        block = block_factory.create(plan, recipe_id=recipe_id, quantity=4.0)

        apply_block_transition(plan, block, "completed", ACTOR_ID)

        assert plan.recipes[0].completed_amount == 4.0
        assert plan.completion_status == 100.0

    def test_starting_stamps_actual_start(self, plan_factory, block_factory):
        plan = plan_factory.create()
        block = block_factory.create(plan, block_type="prep", recipe_id=None, quantity=None)

        apply_block_transition(plan, block, "in-progress", ACTOR_ID, now=utc(19, 9, 5))

        assert block.status == "in-progress"
        assert block.actual_start_time == utc(19, 9, 5)

    def test_cancelling_production_reduces_planned(self, plan_factory, block_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 10.0, 0.0)])
        block = block_factory.create(plan, recipe_id=recipe_id, quantity=4.0)

        apply_block_transition(plan, block, "cancelled", ACTOR_ID)

        assert plan.recipes[0].planned_amount == 6.0
        assert block.status == "cancelled"

    def test_cleaning_completion_leaves_amounts_alone(self, plan_factory, block_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 4.0, 0.0)])
        block = block_factory.create(plan, block_type="cleaning", recipe_id=None, quantity=None)

        apply_block_transition(plan, block, "completed", ACTOR_ID)

        assert plan.recipes[0].completed_amount == 0.0
        assert plan.version == 2

    def test_frozen_plan_rejects_transition(self, plan_factory, block_factory):
        plan = plan_factory.create(status="completed")
        block = block_factory.create(plan)

        with pytest.raises(ScheduleValidationError):
            apply_block_transition(plan, block, "in-progress", ACTOR_ID)
        assert block.status == "scheduled"


class TestGuards:
    def test_archived_plan_is_not_editable(self, plan_factory):
        with pytest.raises(ScheduleValidationError):
            ensure_plan_editable(plan_factory.create(status="archived"))
        ensure_plan_editable(plan_factory.create(status="active"))

    def test_terminal_block_is_not_editable(self, block_factory):
        with pytest.raises(ScheduleValidationError):
            ensure_block_editable(block_factory.create(status="cancelled"))
        ensure_block_editable(block_factory.create(status="in-progress"))

    def test_touch_plan_bumps_version(self, plan_factory):
        plan = plan_factory.create(version=4)

        touch_plan(plan, ACTOR_ID, utc(20, 8))

        assert plan.version == 5
        assert plan.last_modified_at == utc(20, 8)
