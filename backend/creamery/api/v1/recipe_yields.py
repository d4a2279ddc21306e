"""Recipe-machine yield API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.core.auth import ActorId, OwnerId
from creamery.core.database import get_db
from creamery.core.exceptions import SchedulingError, raise_http_error
from creamery.models.machine import Machine
from creamery.models.recipe import Recipe, RecipeMachineYield
from creamery.schemas.recipe_yield import (
    YieldCreate,
    YieldResponse,
    YieldTimeRequest,
    YieldTimeResult,
    YieldUpdate,
)
from creamery.services.yield_catalog import explicit_production_time

router = APIRouter(prefix="/recipe-machine-yields", tags=["recipe-machine-yields"])


async def _get_yield(
    db: AsyncSession, owner_id: uuid.UUID, yield_id: uuid.UUID
) -> RecipeMachineYield:
    result = await db.execute(
        select(RecipeMachineYield).where(
            RecipeMachineYield.id == yield_id, RecipeMachineYield.owner_id == owner_id
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Recipe machine yield not found")
    return row


@router.get("", response_model=list[YieldResponse])
async def list_yields(
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[RecipeMachineYield]:
    """List all yields of the shop."""
    result = await db.execute(
        select(RecipeMachineYield)
        .where(RecipeMachineYield.owner_id == owner_id)
        .order_by(RecipeMachineYield.created_at)
    )
    return list(result.scalars().all())


@router.get("/by-recipe/{recipe_id}", response_model=list[YieldResponse])
async def list_yields_by_recipe(
    recipe_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[RecipeMachineYield]:
    result = await db.execute(
        select(RecipeMachineYield).where(
            RecipeMachineYield.owner_id == owner_id, RecipeMachineYield.recipe_id == recipe_id
        )
    )
    return list(result.scalars().all())


@router.get("/by-machine/{machine_id}", response_model=list[YieldResponse])
async def list_yields_by_machine(
    machine_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[RecipeMachineYield]:
    result = await db.execute(
        select(RecipeMachineYield).where(
            RecipeMachineYield.owner_id == owner_id, RecipeMachineYield.machine_id == machine_id
        )
    )
    return list(result.scalars().all())


@router.post("/calculate-time", response_model=YieldTimeResult)
async def calculate_yield_time(
    payload: YieldTimeRequest,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> YieldTimeResult:
    """Production time for a quantity using the explicit yield of a recipe on a machine.

    Minutes are prorated by fractional batch, unlike block durations which
    always count whole batches.
    """
    result = await db.execute(
        select(RecipeMachineYield, Machine)
        .join(Machine, Machine.id == RecipeMachineYield.machine_id)
        .where(
            RecipeMachineYield.owner_id == owner_id,
            RecipeMachineYield.recipe_id == payload.recipe_id,
            RecipeMachineYield.machine_id == payload.machine_id,
        )
    )
    found = result.first()
    if found is None:
        raise HTTPException(status_code=404, detail="Recipe machine yield not found")
    row, machine = found

    try:
        batches, minutes = explicit_production_time(row, machine, payload.quantity)
    except SchedulingError as exc:
        raise_http_error(exc)

    return YieldTimeResult(
        batches_needed=batches,
        total_minutes=minutes,
        tubs_per_batch=row.tubs_per_batch,
        machine_production_time=machine.production_time,
    )


@router.post("", response_model=YieldResponse, status_code=status.HTTP_201_CREATED)
async def create_yield(
    payload: YieldCreate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> RecipeMachineYield:
    """Record how many tubs a recipe yields per batch on a machine."""
    recipe = await db.execute(
        select(Recipe.id).where(Recipe.id == payload.recipe_id, Recipe.owner_id == owner_id)
    )
    if recipe.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    machine = await db.execute(
        select(Machine.id).where(Machine.id == payload.machine_id, Machine.owner_id == owner_id)
    )
    if machine.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Machine not found")

    existing = await db.execute(
        select(RecipeMachineYield.id).where(
            RecipeMachineYield.recipe_id == payload.recipe_id,
            RecipeMachineYield.machine_id == payload.machine_id,
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A yield for this recipe and machine already exists",
        )

    row = RecipeMachineYield(
        owner_id=owner_id,
        recipe_id=payload.recipe_id,
        machine_id=payload.machine_id,
        tubs_per_batch=payload.tubs_per_batch,
        notes=payload.notes,
        created_by=actor_id,
    )
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return row


@router.get("/{yield_id}", response_model=YieldResponse)
async def get_yield(
    yield_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> RecipeMachineYield:
    return await _get_yield(db, owner_id, yield_id)


@router.put("/{yield_id}", response_model=YieldResponse)
async def update_yield(
    yield_id: uuid.UUID,
    payload: YieldUpdate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> RecipeMachineYield:
    """Change tubs per batch and/or notes of a yield."""
    row = await _get_yield(db, owner_id, yield_id)
    if payload.tubs_per_batch is not None:
        row.tubs_per_batch = payload.tubs_per_batch
    if "notes" in payload.model_fields_set:
        row.notes = payload.notes
    await db.flush()
    await db.refresh(row)
    return row


@router.delete("/{yield_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_yield(
    yield_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> None:
    row = await _get_yield(db, owner_id, yield_id)
    await db.delete(row)
