"""Production block API endpoints."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.core.auth import ActorId, OwnerId
from creamery.core.database import get_db
from creamery.core.exceptions import SchedulingError, raise_http_error
from creamery.models.production import ProductionBlock
from creamery.schemas.production_block import BlockCreate, BlockResponse, BlockUpdate
from creamery.schemas.schedule import (
    AvailabilityRequest,
    AvailabilityResponse,
    ProductionSetCreate,
    ProductionSetResponse,
    ProductionTimeEstimate,
    ScheduleSuggestion,
    SuggestScheduleRequest,
    TimeCalculationRequest,
)
from creamery.services.block_service import BlockService

router = APIRouter(prefix="/production-blocks", tags=["production-blocks"])


@router.get("", response_model=list[BlockResponse])
async def list_blocks(
    owner_id: OwnerId,
    actor_id: ActorId,
    plan_id: uuid.UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> list[ProductionBlock]:
    """List blocks, optionally by plan and by a date range they overlap."""
    service = BlockService(db, owner_id, actor_id)
    return await service.list_blocks(plan_id, start_date, end_date)


@router.post("/calculate-time", response_model=ProductionTimeEstimate)
async def calculate_time(
    payload: TimeCalculationRequest,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionTimeEstimate:
    """Production, prep and cleaning minutes for a quantity on a machine."""
    try:
        service = BlockService(db, owner_id, actor_id)
        return await service.calculate_production_time(payload.machine_id, payload.quantity)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.post("/suggest-schedule", response_model=ScheduleSuggestion)
async def suggest_schedule(
    payload: SuggestScheduleRequest,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ScheduleSuggestion:
    """Propose a block set at the preferred start time if it is free."""
    try:
        service = BlockService(db, owner_id, actor_id)
        return await service.suggest_schedule(
            payload.machine_id,
            payload.employee_id,
            payload.quantity,
            payload.preferred_start_time,
        )
    except SchedulingError as exc:
        raise_http_error(exc)


@router.post("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    payload: AvailabilityRequest,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResponse:
    try:
        service = BlockService(db, owner_id, actor_id)
        available = await service.check_availability(
            payload.machine_id,
            payload.employee_id,
            payload.start_time,
            payload.end_time,
            payload.block_id,
        )
    except SchedulingError as exc:
        raise_http_error(exc)
    return AvailabilityResponse(available=available)


@router.post(
    "/create-production-set",
    response_model=ProductionSetResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_production_set(
    payload: ProductionSetCreate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionSetResponse:
    """Create prep, production and cleaning blocks back to back."""
    try:
        service = BlockService(db, owner_id, actor_id)
        blocks = await service.create_production_set(payload)
    except SchedulingError as exc:
        raise_http_error(exc)
    return ProductionSetResponse(
        prep_block=BlockResponse.model_validate(blocks["prep"]),
        production_block=BlockResponse.model_validate(blocks["production"]),
        cleaning_block=BlockResponse.model_validate(blocks["cleaning"]),
    )


@router.post("", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
async def create_block(
    payload: BlockCreate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionBlock:
    """Create a single prep, production or cleaning block."""
    try:
        return await BlockService(db, owner_id, actor_id).create_block(payload)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.get("/{block_id}", response_model=BlockResponse)
async def get_block(
    block_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionBlock:
    try:
        return await BlockService(db, owner_id, actor_id).get_block(block_id)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.put("/{block_id}", response_model=BlockResponse)
async def update_block(
    block_id: uuid.UUID,
    payload: BlockUpdate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionBlock:
    """Reschedule, reassign or change the status of a block."""
    try:
        return await BlockService(db, owner_id, actor_id).update_block(block_id, payload)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_block(
    block_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await BlockService(db, owner_id, actor_id).delete_block(block_id)
    except SchedulingError as exc:
        raise_http_error(exc)
