"""Pytest configuration with fixtures for async testing."""

import uuid
from datetime import date, datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.models.production import PlanRecipe, ProductionBlock, ProductionPlan

OWNER_ID = uuid.UUID("5a000000-0000-0000-0000-0000000000aa")
ACTOR_ID = uuid.UUID("5a000000-0000-0000-0000-0000000000bb")

# 2026-10-19 is a Monday
WEEK_START = date(2026, 10, 19)


def utc(day: int, hour: int, minute: int = 0) -> datetime:
    """Datetime in the test week (October 2026) in UTC."""
    return datetime(2026, 10, day, hour, minute, tzinfo=timezone.utc)


def ordered_uuid(n: int) -> uuid.UUID:
    """UUIDs that sort in the order of ``n``."""
    return uuid.UUID(int=n)


# ---------------------------------------------------------------------------
# Test Data Factories (using MagicMock for SQLAlchemy 2.0 compatibility)
# ---------------------------------------------------------------------------


def _make_mock(defaults: dict[str, Any], overrides: dict[str, Any]) -> MagicMock:
    """Create a MagicMock with given attributes."""
    merged = {**defaults, **overrides}
    mock = MagicMock()
    for k, v in merged.items():
        setattr(mock, k, v)
    return mock


class MachineFactory:
    """Factory for creating Machine instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        now = datetime.now(timezone.utc)
        defaults = {
            "id": ordered_uuid(1000 + cls._counter),
            "owner_id": OWNER_ID,
            "name": f"Freezer-{cls._counter}",
            "tub_capacity": 4,
            "production_time": 30,
            "status": "available",
            "assigned_employee_id": None,
            "notes": None,
            "created_at": now,
            "updated_at": now,
        }
        return _make_mock(defaults, overrides)


class EmployeeFactory:
    """Factory for creating Employee instances with machine certifications."""

    _counter = 0

    @classmethod
    def create(cls, certified_for: list[uuid.UUID] | None = None, **overrides: Any) -> MagicMock:
        cls._counter += 1
        now = datetime.now(timezone.utc)
        certifications = [
            _make_mock({"machine_id": machine_id, "certification_date": now}, {})
            for machine_id in certified_for or []
        ]
        defaults = {
            "id": ordered_uuid(2000 + cls._counter),
            "owner_id": OWNER_ID,
            "name": f"Employee {cls._counter}",
            "email": None,
            "role": "operator",
            "active": True,
            "shifts": [],
            "machine_certifications": certifications,
            "created_at": now,
            "updated_at": now,
        }
        mock = _make_mock(defaults, overrides)
        mock.is_certified_for = lambda machine_id: any(
            cert.machine_id == machine_id for cert in mock.machine_certifications
        )
        return mock


class RecipeFactory:
    """Factory for creating Recipe instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        defaults = {
            "id": ordered_uuid(3000 + cls._counter),
            "owner_id": OWNER_ID,
            "name": f"Recipe {cls._counter}",
            "created_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class YieldFactory:
    """Factory for creating RecipeMachineYield instances for testing."""

    @classmethod
    def create(cls, recipe_id: uuid.UUID, machine_id: uuid.UUID, **overrides: Any) -> MagicMock:
        now = datetime.now(timezone.utc)
        defaults = {
            "id": uuid.uuid4(),
            "owner_id": OWNER_ID,
            "recipe_id": recipe_id,
            "machine_id": machine_id,
            "tubs_per_batch": 3.0,
            "notes": None,
            "created_by": ACTOR_ID,
            "created_at": now,
            "updated_at": now,
        }
        return _make_mock(defaults, overrides)


class PlanFactory:
    """Factory for transient ProductionPlan ORM objects.

    Real model instances are used so that relationship collections, the
    ordering list and ``is_frozen`` behave as in production.
    """

    @classmethod
    def create(
        cls, recipes: list[tuple[uuid.UUID, float, float]] | None = None, **overrides: Any
    ) -> ProductionPlan:
        fields = {
            "id": uuid.uuid4(),
            "owner_id": OWNER_ID,
            "name": "Week plan",
            "week_start_date": WEEK_START,
            "status": "draft",
            "completion_status": 0.0,
            "version": 1,
            "notes": None,
            "created_by": ACTOR_ID,
            "created_at": datetime.now(timezone.utc),
        }
        fields.update(overrides)
        plan = ProductionPlan(**fields)
        for recipe_id, planned, completed in recipes or []:
            plan.recipes.append(
                PlanRecipe(
                    id=uuid.uuid4(),
                    recipe_id=recipe_id,
                    planned_amount=planned,
                    completed_amount=completed,
                )
            )
        return plan


class BlockFactory:
    """Factory for transient ProductionBlock ORM objects."""

    @classmethod
    def create(cls, plan: ProductionPlan | None = None, **overrides: Any) -> ProductionBlock:
        fields = {
            "id": uuid.uuid4(),
            "owner_id": OWNER_ID,
            "plan_id": plan.id if plan is not None else uuid.uuid4(),
            "start_time": utc(19, 9),
            "end_time": utc(19, 10),
            "block_type": "production",
            "machine_id": uuid.uuid4(),
            "employee_id": uuid.uuid4(),
            "recipe_id": uuid.uuid4(),
            "quantity": 4.0,
            "status": "scheduled",
            "notes": None,
            "created_by": ACTOR_ID,
        }
        fields.update(overrides)
        block = ProductionBlock(**fields)
        if plan is not None:
            plan.blocks.append(block)
        return block


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def machine_factory():
    """Provide MachineFactory for tests."""
    MachineFactory._counter = 0
    return MachineFactory


@pytest.fixture
def employee_factory():
    """Provide EmployeeFactory for tests."""
    EmployeeFactory._counter = 0
    return EmployeeFactory


@pytest.fixture
def recipe_factory():
    """Provide RecipeFactory for tests."""
    RecipeFactory._counter = 0
    return RecipeFactory


@pytest.fixture
def yield_factory():
    return YieldFactory


@pytest.fixture
def plan_factory():
    return PlanFactory


@pytest.fixture
def block_factory():
    return BlockFactory


@pytest.fixture
def mock_db():
    """Provide a mock AsyncSession for unit tests."""
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture
def sample_machine(machine_factory):
    """The reference machine: 4 tubs per batch, 30 minutes per batch."""
    return machine_factory.create(name="Carpigiani LB 502", tub_capacity=4, production_time=30)


@pytest.fixture
def sample_employee(employee_factory, sample_machine):
    """An active operator certified for the sample machine."""
    return employee_factory.create(name="Giulia", certified_for=[sample_machine.id])
