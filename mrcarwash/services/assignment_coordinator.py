"""
Assign several car wash services to a vehicle in one batch.

The API has no transactions, so a batch can end half done. Each service is
created on its own and its outcome recorded; successes are never rolled back
and failures are never dropped. The caller decides whether to resubmit the
failed subset (see `retry_failed`).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Sequence

from mrcarwash.domains.errors import ApiError, DuplicateServiceSelection, NoServicesSelected
from mrcarwash.domains.models import AssignmentDraft, ServiceAssignment, Vehicle
from mrcarwash.infrastructure.repositories.assignments import ServiceAssignmentRepository
from mrcarwash.services.locks import VehicleLocks
from mrcarwash.utils.logger import get_logger

logger = get_logger()


class BatchState(str, Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    PARTIALLY_FAILED = "partially_failed"


@dataclass(frozen=True)
class AssignmentFailure:
    service_id: int
    reason: str
    error: ApiError


@dataclass
class AssignmentBatch:
    plate: str
    service_ids: tuple[int, ...]
    state: BatchState = BatchState.PENDING
    created: list[ServiceAssignment] = field(default_factory=list)
    failures: list[AssignmentFailure] = field(default_factory=list)

    @property
    def assignment_ids(self) -> list[int]:
        return [a.id for a in self.created]

    @property
    def failed_service_ids(self) -> list[int]:
        return [f.service_id for f in self.failures]

    @property
    def completed(self) -> bool:
        return self.state is BatchState.COMPLETED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentCoordinator:
    def __init__(
        self,
        assignments: ServiceAssignmentRepository,
        locks: VehicleLocks | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._assignments = assignments
        self._locks = locks or VehicleLocks()
        self._clock = clock

    def assign(self, vehicle: Vehicle, service_ids: Sequence[int]) -> AssignmentBatch:
        """
        Create one assignment per service id, in order.

        Raises:
            NoServicesSelected: If `service_ids` is empty.
            DuplicateServiceSelection: If a service id appears more than once.

        Returns:
            The finished batch: COMPLETED, or PARTIALLY_FAILED with the
            created assignments and the failed service ids with reasons.
        """
        ids = tuple(service_ids)
        if not ids:
            raise NoServicesSelected(vehicle.plate)
        dups = [sid for sid, n in Counter(ids).items() if n > 1]
        if dups:
            raise DuplicateServiceSelection(vehicle.plate, dups)

        batch = AssignmentBatch(plate=vehicle.plate, service_ids=ids)
        with self._locks.hold(vehicle.plate):
            batch.state = BatchState.IN_FLIGHT
            for sid in ids:
                draft = AssignmentDraft(service_id=sid, performed_at=self._clock())
                try:
                    batch.created.append(self._assignments.create(vehicle.plate, draft))
                except ApiError as e:
                    logger.warning("Assigning service %s to %s failed: %s", sid, vehicle.plate, e)
                    batch.failures.append(AssignmentFailure(service_id=sid, reason=str(e), error=e))
            batch.state = BatchState.PARTIALLY_FAILED if batch.failures else BatchState.COMPLETED

        logger.info(
            "Assignment batch for %s: %s (%d created, %d failed)",
            vehicle.plate, batch.state.value, len(batch.created), len(batch.failures),
        )
        return batch

    def retry_failed(self, vehicle: Vehicle, batch: AssignmentBatch) -> AssignmentBatch:
        """Resubmit only the failed services of `batch` as a new batch."""
        if vehicle.plate != batch.plate:
            raise ValueError(f"Batch belongs to {batch.plate}, not {vehicle.plate}")
        return self.assign(vehicle, batch.failed_service_ids)
