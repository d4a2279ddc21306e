"""SQLAlchemy ORM models."""

from creamery.models.employee import Employee, MachineCertification
from creamery.models.machine import Machine
from creamery.models.production import PlanRecipe, ProductionBlock, ProductionPlan
from creamery.models.recipe import Recipe, RecipeMachineYield
from creamery.models.revision import Revision

__all__ = [
    "Employee",
    "Machine",
    "MachineCertification",
    "PlanRecipe",
    "ProductionBlock",
    "ProductionPlan",
    "Recipe",
    "RecipeMachineYield",
    "Revision",
]
