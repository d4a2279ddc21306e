"""ProductionPlan, PlanRecipe and ProductionBlock SQLAlchemy models."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from creamery.core.database import Base

PLAN_STATUSES = ("draft", "active", "completed", "archived")
FROZEN_PLAN_STATUSES = ("completed", "archived")

BLOCK_TYPES = ("prep", "production", "cleaning")
BLOCK_STATUSES = ("scheduled", "in-progress", "completed", "cancelled")
TERMINAL_BLOCK_STATUSES = ("completed", "cancelled")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductionPlan(Base):
    """Weekly container of production blocks and recipe targets."""

    __tablename__ = "production_plans"
    __table_args__ = (Index("ix_production_plans_owner_week", "owner_id", "week_start_date"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="draft")
    completion_status: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0", comment="Percent 0-100"
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_modified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    recipes: Mapped[list["PlanRecipe"]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", order_by="PlanRecipe.created_at"
    )
    blocks: Mapped[list["ProductionBlock"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="ProductionBlock.position",
        collection_class=ordering_list("position"),
    )

    @property
    def is_frozen(self) -> bool:
        return self.status in FROZEN_PLAN_STATUSES

    @property
    def block_ids(self) -> list[uuid.UUID]:
        return [block.id for block in self.blocks]


class PlanRecipe(Base):
    """Planned and completed tubs of one recipe within a plan."""

    __tablename__ = "plan_recipes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("production_plans.id", ondelete="CASCADE"),
        nullable=False,
    )
    recipe_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("recipes.id"),
        nullable=False,
    )
    planned_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completed_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )

    plan: Mapped["ProductionPlan"] = relationship(back_populates="recipes")


class ProductionBlock(Base):
    """A prep, production or cleaning interval on one machine with one employee."""

    __tablename__ = "production_blocks"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_block_time_order"),
        CheckConstraint(
            "(block_type <> 'production') OR (recipe_id IS NOT NULL AND quantity IS NOT NULL)",
            name="ck_production_block_recipe",
        ),
        Index("ix_blocks_machine_window", "machine_id", "start_time", "end_time"),
        Index("ix_blocks_employee_window", "employee_id", "start_time", "end_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    plan_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("production_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    block_type: Mapped[str] = mapped_column(String(20), nullable=False)
    machine_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("machines.id"), nullable=False
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("employees.id"), nullable=False
    )
    recipe_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("recipes.id"), nullable=True
    )
    quantity: Mapped[float | None] = mapped_column(Float, nullable=True, comment="Tubs")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="scheduled")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    actual_start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_modified_by: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    last_modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    plan: Mapped["ProductionPlan"] = relationship(back_populates="blocks")

    @property
    def is_live(self) -> bool:
        return self.status not in TERMINAL_BLOCK_STATUSES
