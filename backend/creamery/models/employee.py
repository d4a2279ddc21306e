"""Employee and MachineCertification SQLAlchemy models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from creamery.core.database import Base

EMPLOYEE_ROLES = ("admin", "manager", "operator", "trainee")


class Employee(Base):
    """Shop employee who can be assigned to production blocks."""

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, server_default="operator")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    shifts: Mapped[list | None] = mapped_column(
        JSONB, nullable=True, comment="List of {day, start_time, end_time} in HH:MM"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    machine_certifications: Mapped[list["MachineCertification"]] = relationship(
        back_populates="employee", cascade="all, delete-orphan"
    )

    def is_certified_for(self, machine_id: uuid.UUID) -> bool:
        return any(cert.machine_id == machine_id for cert in self.machine_certifications)


class MachineCertification(Base):
    """Certification of an employee to operate one machine."""

    __tablename__ = "machine_certifications"
    __table_args__ = (
        UniqueConstraint("employee_id", "machine_id", name="uq_certification_employee_machine"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    machine_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("machines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    certification_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    employee: Mapped["Employee"] = relationship(back_populates="machine_certifications")
