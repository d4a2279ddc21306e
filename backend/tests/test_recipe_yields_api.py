"""Tests for the recipe-machine yield API endpoints."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from creamery.api.v1.recipe_yields import (
    calculate_yield_time,
    create_yield,
    update_yield,
)
from creamery.models.recipe import RecipeMachineYield
from creamery.schemas.recipe_yield import YieldCreate, YieldTimeRequest, YieldUpdate

from conftest import ACTOR_ID, OWNER_ID


def _result_with(value):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = value
    return mock_result


@pytest.mark.asyncio
class TestCalculateTime:
    async def test_prorated_minutes(self, mock_db, sample_machine, yield_factory):
        row = yield_factory.create(uuid.uuid4(), sample_machine.id, tubs_per_batch=4.0)
        mock_result = MagicMock()
        mock_result.first.return_value = (row, sample_machine)
        mock_db.execute = AsyncMock(return_value=mock_result)

        result = await calculate_yield_time(
            payload=YieldTimeRequest(
                machine_id=sample_machine.id, recipe_id=row.recipe_id, quantity=10
            ),
            owner_id=OWNER_ID,
            db=mock_db,
        )

        assert result.batches_needed == 3
        assert result.total_minutes == 75
        assert result.tubs_per_batch == 4.0
        assert result.machine_production_time == 30

    async def test_missing_yield(self, mock_db):
        mock_result = MagicMock()
        mock_result.first.return_value = None
        mock_db.execute = AsyncMock(return_value=mock_result)

        with pytest.raises(Exception) as exc_info:
            await calculate_yield_time(
                payload=YieldTimeRequest(
                    machine_id=uuid.uuid4(), recipe_id=uuid.uuid4(), quantity=4
                ),
                owner_id=OWNER_ID,
                db=mock_db,
            )
        assert exc_info.value.status_code == 404


@pytest.mark.asyncio
class TestYieldWrites:
    async def test_create_yield(self, mock_db):
        recipe_id, machine_id = uuid.uuid4(), uuid.uuid4()
        mock_db.execute = AsyncMock(
            side_effect=[_result_with(recipe_id), _result_with(machine_id), _result_with(None)]
        )

        result = await create_yield(
            payload=YieldCreate(recipe_id=recipe_id, machine_id=machine_id, tubs_per_batch=3.5),
            owner_id=OWNER_ID,
            actor_id=ACTOR_ID,
            db=mock_db,
        )

        assert isinstance(result, RecipeMachineYield)
        assert result.tubs_per_batch == 3.5
        assert result.created_by == ACTOR_ID
        mock_db.add.assert_called_once_with(result)

    async def test_duplicate_pair_conflicts(self, mock_db):
        recipe_id, machine_id = uuid.uuid4(), uuid.uuid4()
        mock_db.execute = AsyncMock(
            side_effect=[
                _result_with(recipe_id),
                _result_with(machine_id),
                _result_with(uuid.uuid4()),
            ]
        )

        with pytest.raises(Exception) as exc_info:
            await create_yield(
                payload=YieldCreate(recipe_id=recipe_id, machine_id=machine_id),
                owner_id=OWNER_ID,
                actor_id=ACTOR_ID,
                db=mock_db,
            )
        assert exc_info.value.status_code == 409
        mock_db.add.assert_not_called()

    async def test_unknown_recipe(self, mock_db):
        mock_db.execute = AsyncMock(return_value=_result_with(None))

        with pytest.raises(Exception) as exc_info:
            await create_yield(
                payload=YieldCreate(recipe_id=uuid.uuid4(), machine_id=uuid.uuid4()),
                owner_id=OWNER_ID,
                actor_id=ACTOR_ID,
                db=mock_db,
            )
        assert exc_info.value.status_code == 404

    async def test_update_clears_notes_only_when_sent(self, mock_db, yield_factory):
        row = yield_factory.create(uuid.uuid4(), uuid.uuid4(), notes="keep me")
        mock_db.execute = AsyncMock(return_value=_result_with(row))

        result = await update_yield(
            yield_id=row.id, payload=YieldUpdate(tubs_per_batch=2.0), owner_id=OWNER_ID, db=mock_db
        )

        assert result.tubs_per_batch == 2.0
        assert result.notes == "keep me"
