"""Tests for revision diffs."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from creamery.models.revision import Revision
from creamery.schemas.production_plan import FieldChange
from creamery.services.change_tracking import (
    BLOCK_TRACKED_FIELDS,
    PLAN_TRACKED_FIELDS,
    diff_fields,
    list_revisions,
    record_revision,
    snapshot,
)

from conftest import ACTOR_ID, OWNER_ID, utc


class TestSnapshot:
    def test_block_values_are_json_friendly(self, block_factory):
        block = block_factory.create(start_time=utc(19, 9))

        snap = snapshot(block, BLOCK_TRACKED_FIELDS)

        assert snap["start_time"] == "2026-10-19T09:00:00+00:00"
        assert snap["machine_id"] == str(block.machine_id)
        assert snap["quantity"] == 4.0

    def test_plan_recipes_become_dicts(self, plan_factory):
        recipe_id = uuid.uuid4()
        plan = plan_factory.create(recipes=[(recipe_id, 6.0, 2.0)])

        snap = snapshot(plan, PLAN_TRACKED_FIELDS)

        assert snap["recipes"] == [
            {"recipe_id": str(recipe_id), "planned_amount": 6.0, "completed_amount": 2.0}
        ]


class TestDiff:
    def test_only_changed_fields(self, block_factory):
        block = block_factory.create()
        before = snapshot(block, BLOCK_TRACKED_FIELDS)
        block.quantity = 8.0
        block.notes = "double batch"

        changes = diff_fields(before, snapshot(block, BLOCK_TRACKED_FIELDS), BLOCK_TRACKED_FIELDS)

        assert [change.field for change in changes] == ["quantity", "notes"]
        assert changes[0].old == 4.0
        assert changes[0].new == 8.0

    def test_recipe_order_does_not_count_as_change(self, plan_factory):
        first, second = uuid.uuid4(), uuid.uuid4()
        plan_a = plan_factory.create(recipes=[(first, 1.0, 0.0), (second, 2.0, 0.0)])
        plan_b = plan_factory.create(recipes=[(second, 2.0, 0.0), (first, 1.0, 0.0)])

        changes = diff_fields(
            snapshot(plan_a, PLAN_TRACKED_FIELDS),
            snapshot(plan_b, PLAN_TRACKED_FIELDS),
            ["recipes"],
        )

        assert changes == []


class TestRecordRevision:
    def test_nothing_recorded_without_changes(self, mock_db):
        result = record_revision(
            mock_db,
            owner_id=OWNER_ID,
            entity_type="plan",
            entity_id=uuid.uuid4(),
            version=2,
            changes=[],
            changed_by=ACTOR_ID,
        )

        assert result is None
        mock_db.add.assert_not_called()

    def test_stages_revision(self, mock_db):
        entity_id = uuid.uuid4()
        revision = record_revision(
            mock_db,
            owner_id=OWNER_ID,
            entity_type="block",
            entity_id=entity_id,
            version=3,
            changes=[FieldChange(field="status", old="scheduled", new="completed")],
            changed_by=ACTOR_ID,
        )

        mock_db.add.assert_called_once_with(revision)
        assert isinstance(revision, Revision)
        assert revision.version == 3
        assert revision.changes == [{"field": "status", "old": "scheduled", "new": "completed"}]

    @pytest.mark.asyncio
    async def test_list_revisions(self, mock_db):
        rows = [MagicMock(version=2), MagicMock(version=3)]
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = rows
        mock_db.execute = AsyncMock(return_value=mock_result)

        assert await list_revisions(mock_db, OWNER_ID, "plan", uuid.uuid4()) == rows
