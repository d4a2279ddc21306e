"""API v1 router aggregating all sub-routers."""

from fastapi import APIRouter, Depends

from creamery.api.v1.employees import router as employees_router
from creamery.api.v1.machines import router as machines_router
from creamery.api.v1.production_blocks import router as production_blocks_router
from creamery.api.v1.production_plans import router as production_plans_router
from creamery.api.v1.production_scheduler import router as production_scheduler_router
from creamery.api.v1.recipe_yields import router as recipe_yields_router
from creamery.core.auth import verify_api_key

# Public router (no authentication required)
api_v1_router = APIRouter()


@api_v1_router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint returning 200 OK."""
    return {"status": "ok"}


_authenticated = APIRouter(dependencies=[Depends(verify_api_key)])
_authenticated.include_router(machines_router)
_authenticated.include_router(employees_router)
_authenticated.include_router(recipe_yields_router)
_authenticated.include_router(production_plans_router)
_authenticated.include_router(production_blocks_router)
_authenticated.include_router(production_scheduler_router)

api_v1_router.include_router(_authenticated)
