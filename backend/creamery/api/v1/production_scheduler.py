"""Automatic production schedule generation endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from creamery.core.auth import ActorId, OwnerId
from creamery.core.config import settings
from creamery.core.database import get_db
from creamery.core.exceptions import SchedulingError, raise_http_error
from creamery.schemas.schedule import ScheduleGenerationOptions, ScheduleGenerationResult
from creamery.services.schedule_generator import ScheduleGenerator

router = APIRouter(prefix="/production-scheduler", tags=["production-scheduler"])


@router.post("/generate", response_model=ScheduleGenerationResult)
async def generate_schedule(
    payload: ScheduleGenerationOptions,
    owner_id: OwnerId,
    actor_id: ActorId,
    db: AsyncSession = Depends(get_db),
) -> ScheduleGenerationResult:
    """Place the requested recipes into free machine time of the plan's week.

    Recipes that cannot be placed are returned in ``unscheduled_recipes``;
    the ones that could are committed regardless.
    """
    try:
        generator = ScheduleGenerator(
            db, owner_id, actor_id, default_tubs_per_batch=settings.DEFAULT_TUBS_PER_BATCH
        )
        return await generator.generate_schedule(payload)
    except SchedulingError as exc:
        raise_http_error(exc)
