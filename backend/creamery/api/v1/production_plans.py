"""Production plan API endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.core.auth import ActorId, OwnerId
from creamery.core.database import get_db
from creamery.core.exceptions import SchedulingError, raise_http_error
from creamery.models.production import ProductionPlan
from creamery.models.revision import Revision
from creamery.schemas.production_plan import (
    PlanCreate,
    PlanExportResponse,
    PlanImportRequest,
    PlanResponse,
    PlanStatus,
    PlanUpdate,
    RevisionResponse,
)
from creamery.services.plan_service import PlanService

router = APIRouter(prefix="/production-plans", tags=["production-plans"])


@router.get("", response_model=list[PlanResponse])
async def list_plans(
    owner_id: OwnerId,
    actor_id: ActorId,
    status_filter: PlanStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> list[ProductionPlan]:
    """List plans, newest week first."""
    return await PlanService(db, owner_id, actor_id).list_plans(status_filter)


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: PlanCreate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionPlan:
    """Create a draft plan with optional recipe targets."""
    try:
        return await PlanService(db, owner_id, actor_id).create_plan(payload)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.post("/import", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def import_plan(
    payload: PlanImportRequest,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionPlan:
    """Recreate an exported plan as a draft; recipes are matched by name."""
    return await PlanService(db, owner_id, actor_id).import_plan(payload.import_data)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionPlan:
    try:
        return await PlanService(db, owner_id, actor_id).get_plan(plan_id)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.put("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: uuid.UUID,
    payload: PlanUpdate,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionPlan:
    """Partially update a plan; each update bumps its version."""
    try:
        return await PlanService(db, owner_id, actor_id).update_plan(plan_id, payload)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
    plan_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a plan and all of its blocks."""
    try:
        await PlanService(db, owner_id, actor_id).delete_plan(plan_id)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.put("/{plan_id}/complete", response_model=PlanResponse)
async def complete_plan(
    plan_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ProductionPlan:
    """Complete all remaining blocks and mark the plan completed."""
    try:
        return await PlanService(db, owner_id, actor_id).complete_plan(plan_id)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.get("/{plan_id}/history", response_model=list[RevisionResponse])
async def get_plan_history(
    plan_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> list[Revision]:
    """Recorded field changes of a plan, oldest first."""
    try:
        return await PlanService(db, owner_id, actor_id).history(plan_id)
    except SchedulingError as exc:
        raise_http_error(exc)


@router.get("/{plan_id}/export", response_model=PlanExportResponse)
async def export_plan(
    plan_id: uuid.UUID,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> PlanExportResponse:
    """Export a plan with names in place of ids."""
    try:
        return await PlanService(db, owner_id, actor_id).export_plan(plan_id)
    except SchedulingError as exc:
        raise_http_error(exc)
