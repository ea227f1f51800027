"""Repositories for clients, vehicles, tariffs, services and invoices."""

from __future__ import annotations

from mrcarwash.domains.models import (
    CarWashInvoice,
    CarWashService,
    Client,
    ParkingInvoice,
    ParkingTariff,
    Vehicle,
)
from mrcarwash.infrastructure.api.client import ApiClient
from mrcarwash.infrastructure.repositories.base import EntityRepository, ReadRepository


class ClientRepository(EntityRepository[Client, int]):
    resource = "clientes"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, Client.from_api, lambda c: c.national_id, natural_key=True)


class VehicleRepository(EntityRepository[Vehicle, str]):
    resource = "vehiculos"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, Vehicle.from_api, lambda v: v.plate, natural_key=True)

    def owned_by(self, national_id: int) -> list[Vehicle]:
        """Vehicles of one client in the last fetched list."""
        return [v for v in self.snapshot() if v.client_id == national_id]


class ParkingTariffRepository(EntityRepository[ParkingTariff, int]):
    resource = "tarifas_parking"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, ParkingTariff.from_api, lambda t: t.id)


class CarWashServiceRepository(EntityRepository[CarWashService, int]):
    resource = "servicios_car_wash"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, CarWashService.from_api, lambda s: s.id)


class CarWashInvoiceRepository(ReadRepository[CarWashInvoice, int]):
    resource = "facturas_car_wash"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, CarWashInvoice.from_api, lambda i: i.id)


class ParkingInvoiceRepository(ReadRepository[ParkingInvoice, int]):
    resource = "facturas_parking"

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api, ParkingInvoice.from_api, lambda i: i.id)

    def for_ticket(self, ticket_id: int) -> ParkingInvoice | None:
        """Fetch the invoices and return the one for `ticket_id`, if any."""
        for invoice in self.list():
            if invoice.ticket_id == ticket_id:
                return invoice
        return None
