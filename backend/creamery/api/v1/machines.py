"""Machines CRUD API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from creamery.core.auth import OwnerId
from creamery.core.database import get_db
from creamery.models.employee import Employee
from creamery.models.machine import Machine
from creamery.schemas.machine import (
    MachineAssign,
    MachineConfigure,
    MachineCreate,
    MachineResponse,
    MachineStatusUpdate,
)

router = APIRouter(prefix="/machines", tags=["machines"])


async def _get_machine(db: AsyncSession, owner_id: uuid.UUID, machine_id: uuid.UUID) -> Machine:
    result = await db.execute(
        select(Machine).where(Machine.id == machine_id, Machine.owner_id == owner_id)
    )
    machine = result.scalar_one_or_none()
    if machine is None:
        raise HTTPException(status_code=404, detail="Machine not found")
    return machine


@router.get("", response_model=list[MachineResponse])
async def list_machines(
    owner_id: OwnerId,
    status_filter: str | None = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[Machine]:
    """List machines, optionally filtered by status."""
    query = select(Machine).where(Machine.owner_id == owner_id)
    if status_filter is not None:
        query = query.where(Machine.status == status_filter)
    query = query.order_by(Machine.name).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/available", response_model=list[MachineResponse])
async def list_available_machines(
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[Machine]:
    """Machines that the schedule generator may use."""
    result = await db.execute(
        select(Machine)
        .where(Machine.owner_id == owner_id, Machine.status == "available")
        .order_by(Machine.name)
    )
    return list(result.scalars().all())


@router.get("/capacity/{min_capacity}", response_model=list[MachineResponse])
async def list_machines_by_capacity(
    min_capacity: int,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[Machine]:
    """Machines holding at least ``min_capacity`` tubs per batch, largest first."""
    result = await db.execute(
        select(Machine)
        .where(Machine.owner_id == owner_id, Machine.tub_capacity >= min_capacity)
        .order_by(Machine.tub_capacity.desc(), Machine.name)
    )
    return list(result.scalars().all())


@router.post("", response_model=MachineResponse, status_code=status.HTTP_201_CREATED)
async def create_machine(
    payload: MachineCreate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Create a new machine."""
    machine = Machine(
        owner_id=owner_id,
        name=payload.name,
        tub_capacity=payload.tub_capacity,
        production_time=payload.production_time,
        status=payload.status,
        notes=payload.notes,
    )
    db.add(machine)
    await db.flush()
    await db.refresh(machine)
    return machine


@router.get("/{machine_id}", response_model=MachineResponse)
async def get_machine(
    machine_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Get a single machine by ID."""
    return await _get_machine(db, owner_id, machine_id)


@router.put("/{machine_id}", response_model=MachineResponse)
async def update_machine(
    machine_id: uuid.UUID,
    payload: MachineCreate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Replace an existing machine's settings."""
    machine = await _get_machine(db, owner_id, machine_id)
    machine.name = payload.name
    machine.tub_capacity = payload.tub_capacity
    machine.production_time = payload.production_time
    machine.status = payload.status
    machine.notes = payload.notes

    await db.flush()
    await db.refresh(machine)
    return machine


@router.delete("/{machine_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_machine(
    machine_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a machine."""
    machine = await _get_machine(db, owner_id, machine_id)
    await db.delete(machine)


@router.put("/{machine_id}/status", response_model=MachineResponse)
async def update_machine_status(
    machine_id: uuid.UUID,
    payload: MachineStatusUpdate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Set a machine to available, in-use or maintenance."""
    machine = await _get_machine(db, owner_id, machine_id)
    machine.status = payload.status
    await db.flush()
    await db.refresh(machine)
    return machine


@router.put("/{machine_id}/assign", response_model=MachineResponse)
async def assign_machine(
    machine_id: uuid.UUID,
    payload: MachineAssign,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Assign a certified employee to the machine, or unassign with null.

    Assigning marks the machine in-use; unassigning makes it available again.
    """
    machine = await _get_machine(db, owner_id, machine_id)

    if payload.employee_id is None:
        machine.assigned_employee_id = None
        machine.status = "available"
    else:
        result = await db.execute(
            select(Employee)
            .options(selectinload(Employee.machine_certifications))
            .where(Employee.id == payload.employee_id, Employee.owner_id == owner_id)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise HTTPException(status_code=404, detail="Employee not found")
        if not employee.is_certified_for(machine.id):
            raise HTTPException(
                status_code=400,
                detail=f"Employee {employee.name} is not certified to operate {machine.name}",
            )
        machine.assigned_employee_id = employee.id
        machine.status = "in-use"

    await db.flush()
    await db.refresh(machine)
    return machine


@router.put("/{machine_id}/configure", response_model=MachineResponse)
async def configure_machine(
    machine_id: uuid.UUID,
    payload: MachineConfigure,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Machine:
    """Change tub capacity and/or production time per batch."""
    machine = await _get_machine(db, owner_id, machine_id)
    if payload.tub_capacity is not None:
        machine.tub_capacity = payload.tub_capacity
    if payload.production_time is not None:
        machine.production_time = payload.production_time
    await db.flush()
    await db.refresh(machine)
    return machine
