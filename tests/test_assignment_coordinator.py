"""
Tests for batch service assignment: partial failure, resubmission, validation.
"""

from __future__ import annotations

import gc

import pytest

from mrcarwash.domains.errors import DuplicateServiceSelection, NoServicesSelected, ValidationError
from mrcarwash.domains.models import Vehicle
from mrcarwash.services.assignment_coordinator import AssignmentCoordinator, BatchState
from mrcarwash.services.locks import VehicleLocks

ASSIGN_PATH = "vehiculos/ABC123/servicios"


@pytest.fixture
def vehicle() -> Vehicle:
    return Vehicle(plate="ABC123", make="Toyota", model="Corolla", color="Rojo", client_id=1001)


@pytest.fixture
def coordinator(repos, clock) -> AssignmentCoordinator:
    return AssignmentCoordinator(repos.assignments, clock=clock)


def test_assign_all_services(coordinator: AssignmentCoordinator, vehicle: Vehicle, api) -> None:
    batch = coordinator.assign(vehicle, [1, 2])

    assert batch.state is BatchState.COMPLETED
    assert batch.completed
    assert [a.service_id for a in batch.created] == [1, 2]
    assert batch.failures == []
    stored = api.assignments["ABC123"]
    assert [r["Servicio_id"] for r in stored] == [1, 2]
    assert all(r["Fecha_Servicio"] == "2024-05-01T12:00:00+00:00" for r in stored)


def test_partial_failure_then_resubmit_only_failed(
    coordinator: AssignmentCoordinator, vehicle: Vehicle, api
) -> None:
    api.fail("POST", ASSIGN_PATH, ValidationError("Servicio duplicado", status_code=400),
             when=lambda p: p["Servicio_id"] == 2)

    batch = coordinator.assign(vehicle, [1, 2])

    assert batch.state is BatchState.PARTIALLY_FAILED
    assert batch.assignment_ids == [api.assignments["ABC123"][0]["id"]]
    assert batch.failed_service_ids == [2]
    assert batch.failures[0].reason == "Servicio duplicado"
    # The successful assignment stays.
    assert [r["Servicio_id"] for r in api.assignments["ABC123"]] == [1]

    retry = coordinator.retry_failed(vehicle, batch)

    assert retry.completed
    assert retry.service_ids == (2,)
    assert sorted(r["Servicio_id"] for r in api.assignments["ABC123"]) == [1, 2]


def test_every_item_failing_is_still_reported(
    coordinator: AssignmentCoordinator, vehicle: Vehicle, api
) -> None:
    api.fail("POST", ASSIGN_PATH, ValidationError("rechazado"), times=-1)

    batch = coordinator.assign(vehicle, [1, 2])

    assert batch.state is BatchState.PARTIALLY_FAILED
    assert batch.created == []
    assert batch.failed_service_ids == [1, 2]


def test_unknown_service_fails_only_that_item(
    coordinator: AssignmentCoordinator, vehicle: Vehicle
) -> None:
    batch = coordinator.assign(vehicle, [1, 99])
    assert [a.service_id for a in batch.created] == [1]
    assert batch.failed_service_ids == [99]


def test_empty_selection_is_rejected_before_any_call(
    coordinator: AssignmentCoordinator, vehicle: Vehicle, api
) -> None:
    with pytest.raises(NoServicesSelected):
        coordinator.assign(vehicle, [])
    assert api.calls == []


def test_duplicate_selection_is_rejected_before_any_call(
    coordinator: AssignmentCoordinator, vehicle: Vehicle, api
) -> None:
    with pytest.raises(DuplicateServiceSelection) as exc:
        coordinator.assign(vehicle, [1, 2, 1])
    assert exc.value.service_ids == [1]
    assert api.calls == []


def test_retry_with_other_vehicle_is_refused(
    coordinator: AssignmentCoordinator, vehicle: Vehicle, api
) -> None:
    api.fail("POST", ASSIGN_PATH, ValidationError("rechazado"))
    batch = coordinator.assign(vehicle, [1])
    other = Vehicle(plate="XYZ9", make="Kia", model="Rio", color="Azul", client_id=None)
    with pytest.raises(ValueError):
        coordinator.retry_failed(other, batch)


def test_vehicle_locks_are_per_plate() -> None:
    locks = VehicleLocks()
    with locks.hold("ABC123"):
        assert locks._lock_for("ABC123").locked()
        assert not locks._lock_for("XYZ9").locked()
    assert not locks._lock_for("ABC123").locked()


def test_vehicle_locks_are_released_after_use() -> None:
    locks = VehicleLocks()
    with locks.hold("ABC123"):
        assert "ABC123" in locks._locks
    gc.collect()
    assert "ABC123" not in locks._locks
