"""Overlap detection between proposed windows and live blocks."""

import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.models.employee import Employee
from creamery.models.machine import Machine
from creamery.models.production import (
    TERMINAL_BLOCK_STATUSES,
    ProductionBlock,
    ProductionPlan,
)
from creamery.schemas.schedule import ConflictEntry, ConflictReport


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def find_overlapping(
    blocks: Iterable[ProductionBlock],
    start_time: datetime,
    end_time: datetime,
    exclude_block_id: uuid.UUID | None = None,
) -> list[ProductionBlock]:
    """In-memory counterpart of ConflictChecker for already loaded blocks."""
    return [
        block
        for block in blocks
        if block.id != exclude_block_id
        and block.status not in TERMINAL_BLOCK_STATUSES
        and overlaps(block.start_time, block.end_time, start_time, end_time)
    ]


class ConflictChecker:
    """Query live blocks of one shop that overlap a window."""

    def __init__(self, db: AsyncSession, owner_id: uuid.UUID) -> None:
        self.db = db
        self.owner_id = owner_id

    def _overlap_filter(
        self, start_time: datetime, end_time: datetime, exclude_block_id: uuid.UUID | None
    ) -> list:
        clauses = [
            ProductionBlock.owner_id == self.owner_id,
            ProductionBlock.status.not_in(TERMINAL_BLOCK_STATUSES),
            ProductionBlock.start_time < end_time,
            ProductionBlock.end_time > start_time,
        ]
        if exclude_block_id is not None:
            clauses.append(ProductionBlock.id != exclude_block_id)
        return clauses

    async def _conflicts(
        self, resource_column, resource_model, resource_id, clauses
    ) -> list[ConflictEntry]:
        stmt = (
            select(
                ProductionBlock.id,
                ProductionBlock.start_time,
                ProductionBlock.end_time,
                resource_model.name,
                ProductionPlan.name,
            )
            .outerjoin(resource_model, resource_model.id == resource_column)
            .outerjoin(ProductionPlan, ProductionPlan.id == ProductionBlock.plan_id)
            .where(resource_column == resource_id, *clauses)
            .order_by(ProductionBlock.start_time)
        )
        result = await self.db.execute(stmt)
        return [
            ConflictEntry(
                block_id=block_id,
                start_time=start,
                end_time=end,
                resource_name=resource_name,
                plan_name=plan_name,
            )
            for block_id, start, end, resource_name, plan_name in result.all()
        ]

    async def check(
        self,
        machine_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_block_id: uuid.UUID | None = None,
    ) -> ConflictReport:
        """Report live blocks overlapping the window on the machine or the employee."""
        clauses = self._overlap_filter(start_time, end_time, exclude_block_id)
        machine_conflicts = await self._conflicts(
            ProductionBlock.machine_id, Machine, machine_id, clauses
        )
        employee_conflicts = await self._conflicts(
            ProductionBlock.employee_id, Employee, employee_id, clauses
        )
        return ConflictReport(
            has_conflict=bool(machine_conflicts or employee_conflicts),
            machine_conflicts=machine_conflicts,
            employee_conflicts=employee_conflicts,
        )

    async def is_available(
        self,
        machine_id: uuid.UUID,
        employee_id: uuid.UUID,
        start_time: datetime,
        end_time: datetime,
        exclude_block_id: uuid.UUID | None = None,
    ) -> bool:
        report = await self.check(machine_id, employee_id, start_time, end_time, exclude_block_id)
        return not report.has_conflict

    async def busy_employee_ids(
        self,
        employee_ids: Iterable[uuid.UUID],
        start_time: datetime,
        end_time: datetime,
    ) -> set[uuid.UUID]:
        """Employees among ``employee_ids`` with a live block in the window."""
        ids = list(employee_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(ProductionBlock.employee_id)
            .where(
                ProductionBlock.employee_id.in_(ids),
                *self._overlap_filter(start_time, end_time, None),
            )
            .distinct()
        )
        return set(result.scalars().all())
