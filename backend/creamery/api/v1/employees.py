"""Employees and machine certifications API endpoints."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from creamery.core.auth import OwnerId
from creamery.core.database import get_db
from creamery.models.employee import Employee, MachineCertification
from creamery.models.machine import Machine
from creamery.schemas.employee import CertificationCreate, EmployeeCreate, EmployeeResponse

router = APIRouter(prefix="/employees", tags=["employees"])


def _employee_query(owner_id: uuid.UUID):
    return (
        select(Employee)
        .options(selectinload(Employee.machine_certifications))
        .where(Employee.owner_id == owner_id)
    )


async def _get_employee(db: AsyncSession, owner_id: uuid.UUID, employee_id: uuid.UUID) -> Employee:
    result = await db.execute(_employee_query(owner_id).where(Employee.id == employee_id))
    employee = result.scalar_one_or_none()
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@router.get("", response_model=list[EmployeeResponse])
async def list_employees(
    owner_id: OwnerId,
    active: bool | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[Employee]:
    """List employees, optionally only active or inactive ones."""
    query = _employee_query(owner_id)
    if active is not None:
        query = query.where(Employee.active.is_(active))
    query = query.order_by(Employee.name).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.get("/certified/{machine_id}", response_model=list[EmployeeResponse])
async def list_certified_employees(
    machine_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> list[Employee]:
    """Active employees certified to operate a machine."""
    result = await db.execute(
        _employee_query(owner_id)
        .join(MachineCertification, MachineCertification.employee_id == Employee.id)
        .where(MachineCertification.machine_id == machine_id, Employee.active.is_(True))
        .order_by(Employee.name)
    )
    return list(result.scalars().all())


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Create a new employee without certifications."""
    employee = Employee(
        owner_id=owner_id,
        name=payload.name,
        email=payload.email,
        role=payload.role,
        active=payload.active,
        shifts=[shift.model_dump() for shift in payload.shifts],
        machine_certifications=[],
    )
    db.add(employee)
    await db.flush()
    await db.refresh(employee, attribute_names=["created_at", "updated_at"])
    return employee


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Get a single employee by ID."""
    return await _get_employee(db, owner_id, employee_id)


@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: uuid.UUID,
    payload: EmployeeCreate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Replace an employee's details; certifications are managed separately."""
    employee = await _get_employee(db, owner_id, employee_id)
    employee.name = payload.name
    employee.email = payload.email
    employee.role = payload.role
    employee.active = payload.active
    employee.shifts = [shift.model_dump() for shift in payload.shifts]

    await db.flush()
    await db.refresh(employee, attribute_names=["updated_at"])
    return employee


@router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_employee(
    employee_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete an employee."""
    employee = await _get_employee(db, owner_id, employee_id)
    await db.delete(employee)


@router.post(
    "/{employee_id}/certifications",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_certification(
    employee_id: uuid.UUID,
    payload: CertificationCreate,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Certify an employee for a machine. Re-certifying updates the date."""
    employee = await _get_employee(db, owner_id, employee_id)
    result = await db.execute(
        select(Machine).where(Machine.id == payload.machine_id, Machine.owner_id == owner_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Machine not found")

    certified_at = payload.certification_date or datetime.now(timezone.utc)
    for cert in employee.machine_certifications:
        if cert.machine_id == payload.machine_id:
            cert.certification_date = certified_at
            break
    else:
        employee.machine_certifications.append(
            MachineCertification(
                id=uuid.uuid4(),
                machine_id=payload.machine_id,
                certification_date=certified_at,
            )
        )

    await db.flush()
    return employee


@router.delete("/{employee_id}/certifications/{machine_id}", response_model=EmployeeResponse)
async def remove_certification(
    employee_id: uuid.UUID,
    machine_id: uuid.UUID,
    owner_id: OwnerId,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Revoke an employee's certification for a machine."""
    employee = await _get_employee(db, owner_id, employee_id)
    for cert in employee.machine_certifications:
        if cert.machine_id == machine_id:
            employee.machine_certifications.remove(cert)
            break
    else:
        raise HTTPException(status_code=404, detail="Certification not found")

    await db.flush()
    return employee
