"""Field-level change history for plans and blocks."""

import uuid
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.models.revision import Revision
from creamery.schemas.production_plan import FieldChange

PLAN_TRACKED_FIELDS = ("name", "notes", "status", "recipes")
BLOCK_TRACKED_FIELDS = (
    "start_time",
    "end_time",
    "machine_id",
    "employee_id",
    "recipe_id",
    "quantity",
    "status",
    "notes",
)


def _normalize(value: Any) -> Any:
    """Convert a field value into a JSON-compatible, comparable form."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        items = [_normalize(item) for item in value]
        return sorted(items, key=repr)
    if hasattr(value, "recipe_id") and hasattr(value, "planned_amount"):
        return {
            "recipe_id": str(value.recipe_id),
            "planned_amount": value.planned_amount,
            "completed_amount": value.completed_amount,
        }
    return value


def snapshot(entity: Any, fields: Sequence[str]) -> dict[str, Any]:
    return {name: _normalize(getattr(entity, name)) for name in fields}


def diff_fields(
    before: Mapping[str, Any], after: Mapping[str, Any], fields: Sequence[str]
) -> list[FieldChange]:
    """List the tracked fields whose values differ between two snapshots."""
    return [
        FieldChange(field=name, old=before.get(name), new=after.get(name))
        for name in fields
        if before.get(name) != after.get(name)
    ]


def record_revision(
    db: AsyncSession,
    *,
    owner_id: uuid.UUID,
    entity_type: str,
    entity_id: uuid.UUID,
    version: int,
    changes: list[FieldChange],
    changed_by: uuid.UUID,
) -> Revision | None:
    """Stage a Revision row; nothing is recorded for an empty change list."""
    if not changes:
        return None
    revision = Revision(
        id=uuid.uuid4(),
        owner_id=owner_id,
        entity_type=entity_type,
        entity_id=entity_id,
        version=version,
        changes=[change.model_dump() for change in changes],
        changed_by=changed_by,
    )
    db.add(revision)
    return revision


async def list_revisions(
    db: AsyncSession, owner_id: uuid.UUID, entity_type: str, entity_id: uuid.UUID
) -> list[Revision]:
    result = await db.execute(
        select(Revision)
        .where(
            Revision.owner_id == owner_id,
            Revision.entity_type == entity_type,
            Revision.entity_id == entity_id,
        )
        .order_by(Revision.changed_at, Revision.version)
    )
    return list(result.scalars().all())
