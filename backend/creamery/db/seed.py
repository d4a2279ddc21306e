"""Seed script with demo data for a single ice-cream shop.

Creates machines of different sizes, employees with overlapping
certifications, a handful of recipes with explicit yields on some machines
(others fall back to the default yield) and an empty draft plan for the
current week, so schedule generation can be tried right away.
"""

import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from creamery.db.init_db import table_has_data
from creamery.models.employee import Employee, MachineCertification
from creamery.models.machine import Machine
from creamery.models.production import ProductionPlan
from creamery.models.recipe import Recipe, RecipeMachineYield

# Fixed UUIDs for deterministic seeding; send DEMO_SHOP_ID as X-Shop-Id
DEMO_SHOP_ID = uuid.UUID("5a000000-0000-0000-0000-000000000001")

MACHINE_IDS = {
    "Carpigiani LB 502": uuid.UUID("d0000000-0000-0000-0000-000000000001"),
    "Carpigiani LB 1002": uuid.UUID("d0000000-0000-0000-0000-000000000002"),
    "Bravo Trittico": uuid.UUID("d0000000-0000-0000-0000-000000000003"),
}

EMPLOYEE_IDS = {
    "Giulia Rossi": uuid.UUID("e0000000-0000-0000-0000-000000000001"),
    "Sam Okafor": uuid.UUID("e0000000-0000-0000-0000-000000000002"),
    "Lena Park": uuid.UUID("e0000000-0000-0000-0000-000000000003"),
}

RECIPE_IDS = {
    "Vanilla Bean": uuid.UUID("f0000000-0000-0000-0000-000000000001"),
    "Dark Chocolate": uuid.UUID("f0000000-0000-0000-0000-000000000002"),
    "Pistachio": uuid.UUID("f0000000-0000-0000-0000-000000000003"),
    "Strawberry Sorbet": uuid.UUID("f0000000-0000-0000-0000-000000000004"),
    "Salted Caramel": uuid.UUID("f0000000-0000-0000-0000-000000000005"),
}

_WEEKDAY_SHIFTS = [
    {"day": day, "start_time": "08:00", "end_time": "16:00"}
    for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _current_monday() -> date:
    today = _now().date()
    return today - timedelta(days=today.weekday())


def _create_machines() -> list[Machine]:
    """Three batch freezers: small, large and a combined machine in maintenance."""
    return [
        Machine(
            id=MACHINE_IDS["Carpigiani LB 502"],
            owner_id=DEMO_SHOP_ID,
            name="Carpigiani LB 502",
            tub_capacity=4,
            production_time=30,
            status="available",
            notes="Small batch freezer",
        ),
        Machine(
            id=MACHINE_IDS["Carpigiani LB 1002"],
            owner_id=DEMO_SHOP_ID,
            name="Carpigiani LB 1002",
            tub_capacity=8,
            production_time=45,
            status="available",
            notes="Large batch freezer",
        ),
        Machine(
            id=MACHINE_IDS["Bravo Trittico"],
            owner_id=DEMO_SHOP_ID,
            name="Bravo Trittico",
            tub_capacity=6,
            production_time=40,
            status="maintenance",
            notes="Waiting for a compressor part",
        ),
    ]


def _certify(*machine_names: str) -> list[MachineCertification]:
    return [
        MachineCertification(
            id=uuid.uuid4(),
            machine_id=MACHINE_IDS[name],
            certification_date=_now() - timedelta(days=90),
        )
        for name in machine_names
    ]


def _create_employees() -> list[Employee]:
    return [
        Employee(
            id=EMPLOYEE_IDS["Giulia Rossi"],
            owner_id=DEMO_SHOP_ID,
            name="Giulia Rossi",
            email="giulia@example.com",
            role="manager",
            active=True,
            shifts=_WEEKDAY_SHIFTS,
            machine_certifications=_certify(
                "Carpigiani LB 502", "Carpigiani LB 1002", "Bravo Trittico"
            ),
        ),
        Employee(
            id=EMPLOYEE_IDS["Sam Okafor"],
            owner_id=DEMO_SHOP_ID,
            name="Sam Okafor",
            email="sam@example.com",
            role="operator",
            active=True,
            shifts=_WEEKDAY_SHIFTS,
            machine_certifications=_certify("Carpigiani LB 502"),
        ),
        Employee(
            id=EMPLOYEE_IDS["Lena Park"],
            owner_id=DEMO_SHOP_ID,
            name="Lena Park",
            email="lena@example.com",
            role="trainee",
            active=True,
            shifts=_WEEKDAY_SHIFTS[:3],
            machine_certifications=[],
        ),
    ]


def _create_recipes() -> list[Recipe]:
    return [
        Recipe(id=recipe_id, owner_id=DEMO_SHOP_ID, name=name)
        for name, recipe_id in RECIPE_IDS.items()
    ]


def _create_yields() -> list[RecipeMachineYield]:
    """Explicit yields for some recipes; the rest use the default yield."""
    pairs = [
        ("Vanilla Bean", "Carpigiani LB 502", 4.0),
        ("Vanilla Bean", "Carpigiani LB 1002", 7.5),
        ("Dark Chocolate", "Carpigiani LB 1002", 6.0),
        ("Pistachio", "Carpigiani LB 502", 3.0),
        ("Strawberry Sorbet", "Carpigiani LB 502", 3.5),
    ]
    return [
        RecipeMachineYield(
            id=uuid.uuid4(),
            owner_id=DEMO_SHOP_ID,
            recipe_id=RECIPE_IDS[recipe],
            machine_id=MACHINE_IDS[machine],
            tubs_per_batch=tubs,
            created_by=DEMO_SHOP_ID,
        )
        for recipe, machine, tubs in pairs
    ]


def _create_plan() -> ProductionPlan:
    return ProductionPlan(
        id=uuid.uuid4(),
        owner_id=DEMO_SHOP_ID,
        name="This week",
        week_start_date=_current_monday(),
        status="draft",
        completion_status=0.0,
        version=1,
        created_by=DEMO_SHOP_ID,
        recipes=[],
        blocks=[],
    )


async def seed_demo_data(session: AsyncSession) -> dict[str, int]:
    """Seed the database with the demo shop.

    Args:
        session: An async SQLAlchemy session.

    Returns:
        Dictionary with counts of created entities.
    """
    machines = _create_machines()
    employees = _create_employees()
    recipes = _create_recipes()

    session.add_all(machines)
    session.add_all(recipes)
    await session.flush()

    # Certifications and yields reference machines and recipes
    yields = _create_yields()
    session.add_all(employees)
    session.add_all(yields)
    session.add(_create_plan())
    await session.flush()

    return {
        "machines": len(machines),
        "employees": len(employees),
        "certifications": sum(len(e.machine_certifications) for e in employees),
        "recipes": len(recipes),
        "recipe_machine_yields": len(yields),
        "production_plans": 1,
    }


async def seed_if_empty(session: AsyncSession) -> dict[str, int] | None:
    """Seed demo data only if the database has no machines.

    Returns:
        Seed counts if data was seeded, None if database already has data.
    """
    if await table_has_data(session, "machines"):
        return None

    return await seed_demo_data(session)
