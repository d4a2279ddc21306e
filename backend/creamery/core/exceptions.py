"""Domain errors raised by the scheduling services.

Routes translate these into HTTP responses via ``raise_http_error``; services
never raise ``HTTPException`` themselves.
"""

from typing import Any, NoReturn

from fastapi import HTTPException, status


class SchedulingError(Exception):
    """Base class for scheduling domain errors."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Any:
        return self.message


class NotFoundError(SchedulingError):
    """A machine, employee, recipe, plan, block or yield does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any = None) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class ScheduleValidationError(SchedulingError):
    """Input rejected before any persistence attempt."""

    status_code = status.HTTP_400_BAD_REQUEST


class CertificationError(ScheduleValidationError):
    """Employee is not certified for the machine they are assigned to."""


class SchedulingConflictError(SchedulingError):
    """Proposed window overlaps a live block on the machine or the employee."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, report: Any, message: str = "Scheduling conflict detected") -> None:
        super().__init__(message)
        self.report = report

    def to_detail(self) -> Any:
        return {
            "message": self.message,
            "conflicts": self.report.model_dump(mode="json"),
        }


class ResourceBusyError(SchedulingError):
    """A schedule lock for the requested machine could not be acquired in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def raise_http_error(exc: SchedulingError) -> NoReturn:
    """Re-raise a domain error as the matching HTTPException."""
    raise HTTPException(status_code=exc.status_code, detail=exc.to_detail()) from exc
