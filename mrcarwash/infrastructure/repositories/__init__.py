"""Repositories over the car wash REST API."""

from __future__ import annotations

from dataclasses import dataclass

from mrcarwash.infrastructure.api.client import ApiClient
from mrcarwash.infrastructure.repositories.assignments import ServiceAssignmentRepository
from mrcarwash.infrastructure.repositories.base import EntityRepository, ReadRepository
from mrcarwash.infrastructure.repositories.catalog import (
    CarWashInvoiceRepository,
    CarWashServiceRepository,
    ClientRepository,
    ParkingInvoiceRepository,
    ParkingTariffRepository,
    VehicleRepository,
)


@dataclass
class Repositories:
    clients: ClientRepository
    vehicles: VehicleRepository
    tariffs: ParkingTariffRepository
    services: CarWashServiceRepository
    assignments: ServiceAssignmentRepository
    car_wash_invoices: CarWashInvoiceRepository
    parking_invoices: ParkingInvoiceRepository


def build_repositories(api: ApiClient | None = None) -> Repositories:
    """Create every repository over one ApiClient (a default one when None)."""
    api = api or ApiClient()
    return Repositories(
        clients=ClientRepository(api),
        vehicles=VehicleRepository(api),
        tariffs=ParkingTariffRepository(api),
        services=CarWashServiceRepository(api),
        assignments=ServiceAssignmentRepository(api),
        car_wash_invoices=CarWashInvoiceRepository(api),
        parking_invoices=ParkingInvoiceRepository(api),
    )


__all__ = [
    "CarWashInvoiceRepository",
    "CarWashServiceRepository",
    "ClientRepository",
    "EntityRepository",
    "ParkingInvoiceRepository",
    "ParkingTariffRepository",
    "ReadRepository",
    "Repositories",
    "ServiceAssignmentRepository",
    "VehicleRepository",
    "build_repositories",
]
