"""
Service assignments: the per-vehicle sub-resource `vehiculos/{placa}/servicios`.

The billed flag can only be set, never cleared; there is no call for it.
"""

from __future__ import annotations

from mrcarwash.domains.errors import DecodeError
from mrcarwash.domains.models import AssignmentDraft, ServiceAssignment
from mrcarwash.infrastructure.api.client import ApiClient, path_segment
from mrcarwash.infrastructure.repositories.base import expect_list
from mrcarwash.utils.logger import get_logger

logger = get_logger()


class ServiceAssignmentRepository:
    def __init__(self, api: ApiClient) -> None:
        self._api = api

    @staticmethod
    def _collection(plate: str) -> str:
        return f"vehiculos/{path_segment(plate)}/servicios"

    def list_for_vehicle(self, plate: str) -> list[ServiceAssignment]:
        path = self._collection(plate)
        items = expect_list(self._api.get(path), path)
        return [ServiceAssignment.from_api(item, plate=plate) for item in items]

    def list_unbilled(self, plate: str) -> list[ServiceAssignment]:
        return [a for a in self.list_for_vehicle(plate) if not a.billed]

    def create(self, plate: str, draft: AssignmentDraft) -> ServiceAssignment:
        """
        Assign one service to a vehicle. Not idempotent, so never retried.

        Raises:
            ValidationError: The API rejected the assignment (e.g. duplicate).
            NotFoundError: The vehicle does not exist.
        """
        payload = self._api.post(self._collection(plate), draft.to_api())
        assignment = ServiceAssignment.from_api(payload, plate=plate)
        logger.info("Assigned service %s to %s (assignment %s)", draft.service_id, plate, assignment.id)
        return assignment

    def mark_billed(self, assignment: ServiceAssignment) -> ServiceAssignment:
        """
        Set `Facturado` on an assignment. Already billed ones are returned untouched.

        Any 2xx answer counts as success; the echo is used only when it is a
        well-formed assignment.
        """
        if assignment.billed:
            return assignment
        path = f"{self._collection(assignment.plate)}/{path_segment(assignment.id)}"
        try:
            payload = self._api.put(path, {"Facturado": True})
            if payload is None:
                return assignment.as_billed()
            updated = ServiceAssignment.from_api(payload, plate=assignment.plate)
        except DecodeError as e:
            logger.info("Assignment %s marked billed; answer ignored: %s", assignment.id, e)
            return assignment.as_billed()
        # Only ever move the flag forward, whatever the echo says.
        return updated.as_billed()
