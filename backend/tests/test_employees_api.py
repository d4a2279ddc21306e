"""Tests for the employees and certifications API endpoints."""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from creamery.api.v1.employees import (
    add_certification,
    create_employee,
    get_employee,
    list_certified_employees,
    remove_certification,
)
from creamery.models.employee import Employee
from creamery.schemas.employee import CertificationCreate, EmployeeCreate, Shift

from conftest import OWNER_ID


def _result_with(value):
    mock_result = MagicMock()
    mock_result.scalar_one_or_none.return_value = value
    return mock_result


@pytest.mark.asyncio
class TestEmployeeCrud:
    async def test_create_employee_with_shifts(self, mock_db):
        payload = EmployeeCreate(
            name="Sam Okafor",
            email="sam@example.com",
            shifts=[Shift(day="Monday", start_time="08:00", end_time="16:00")],
        )

        result = await create_employee(payload=payload, owner_id=OWNER_ID, db=mock_db)

        assert isinstance(result, Employee)
        assert result.shifts == [{"day": "Monday", "start_time": "08:00", "end_time": "16:00"}]
        assert result.machine_certifications == []
        mock_db.add.assert_called_once_with(result)

    async def test_get_employee_not_found(self, mock_db):
        mock_db.execute = AsyncMock(return_value=_result_with(None))

        with pytest.raises(Exception) as exc_info:
            await get_employee(employee_id=uuid.uuid4(), owner_id=OWNER_ID, db=mock_db)
        assert exc_info.value.status_code == 404

    async def test_list_certified(self, mock_db, sample_employee, sample_machine):
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = [sample_employee]
        mock_db.execute = AsyncMock(return_value=mock_result)

        result = await list_certified_employees(
            machine_id=sample_machine.id, owner_id=OWNER_ID, db=mock_db
        )

        assert result == [sample_employee]

    def test_shift_must_end_after_start(self):
        with pytest.raises(ValidationError):
            Shift(day="Monday", start_time="16:00", end_time="08:00")


@pytest.mark.asyncio
class TestCertifications:
    async def test_add_new_certification(self, mock_db, employee_factory, sample_machine):
        employee = employee_factory.create(certified_for=[])
        mock_db.execute = AsyncMock(
            side_effect=[_result_with(employee), _result_with(sample_machine)]
        )

        result = await add_certification(
            employee_id=employee.id,
            payload=CertificationCreate(machine_id=sample_machine.id),
            owner_id=OWNER_ID,
            db=mock_db,
        )

        assert result.is_certified_for(sample_machine.id)
        assert len(result.machine_certifications) == 1

    async def test_recertification_updates_date(self, mock_db, sample_employee, sample_machine):
        new_date = datetime(2026, 10, 1, tzinfo=timezone.utc)
        mock_db.execute = AsyncMock(
            side_effect=[_result_with(sample_employee), _result_with(sample_machine)]
        )

        result = await add_certification(
            employee_id=sample_employee.id,
            payload=CertificationCreate(machine_id=sample_machine.id, certification_date=new_date),
            owner_id=OWNER_ID,
            db=mock_db,
        )

        assert len(result.machine_certifications) == 1
        assert result.machine_certifications[0].certification_date == new_date

    async def test_certify_for_unknown_machine(self, mock_db, sample_employee):
        mock_db.execute = AsyncMock(side_effect=[_result_with(sample_employee), _result_with(None)])

        with pytest.raises(Exception) as exc_info:
            await add_certification(
                employee_id=sample_employee.id,
                payload=CertificationCreate(machine_id=uuid.uuid4()),
                owner_id=OWNER_ID,
                db=mock_db,
            )
        assert exc_info.value.status_code == 404

    async def test_remove_certification(self, mock_db, sample_employee, sample_machine):
        mock_db.execute = AsyncMock(return_value=_result_with(sample_employee))

        result = await remove_certification(
            employee_id=sample_employee.id,
            machine_id=sample_machine.id,
            owner_id=OWNER_ID,
            db=mock_db,
        )

        assert not result.is_certified_for(sample_machine.id)

    async def test_remove_missing_certification(self, mock_db, sample_employee):
        mock_db.execute = AsyncMock(return_value=_result_with(sample_employee))

        with pytest.raises(Exception) as exc_info:
            await remove_certification(
                employee_id=sample_employee.id,
                machine_id=uuid.uuid4(),
                owner_id=OWNER_ID,
                db=mock_db,
            )
        assert exc_info.value.status_code == 404
