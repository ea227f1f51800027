"""
Read-only views over the last fetched catalog.

Nothing here talks to the API or keeps state: screens fetch a `CatalogSnapshot`
and pass it explicitly to the functions below, which return plain dicts ready
to render.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from mrcarwash.domains.errors import (
    CarWashError,
    ConflictError,
    InvoiceCreatedBillingIncomplete,
    NotFoundError,
    TransportError,
)
from mrcarwash.domains.models import (
    UNASSIGNED_OWNER,
    CarWashInvoice,
    CarWashService,
    Client,
    ParkingInvoice,
    ParkingTariff,
    Vehicle,
)
from mrcarwash.infrastructure.repositories import Repositories
from mrcarwash.services.assignment_coordinator import AssignmentBatch
from mrcarwash.utils.config import currency_symbol


@dataclass(frozen=True)
class CatalogSnapshot:
    clients: list[Client] = field(default_factory=list)
    vehicles: list[Vehicle] = field(default_factory=list)
    tariffs: list[ParkingTariff] = field(default_factory=list)
    services: list[CarWashService] = field(default_factory=list)
    car_wash_invoices: list[CarWashInvoice] = field(default_factory=list)
    parking_invoices: list[ParkingInvoice] = field(default_factory=list)

    def client(self, national_id: int | None) -> Client | None:
        if national_id is None:
            return None
        return next((c for c in self.clients if c.national_id == national_id), None)

    def vehicle(self, plate: str) -> Vehicle | None:
        return next((v for v in self.vehicles if v.plate == plate), None)

    def tariff(self, tariff_id: int) -> ParkingTariff | None:
        return next((t for t in self.tariffs if t.id == tariff_id), None)


def fetch_snapshot(repos: Repositories) -> CatalogSnapshot:
    """Fetch every list from the API. Errors propagate; no partial snapshot."""
    return CatalogSnapshot(
        clients=repos.clients.list(),
        vehicles=repos.vehicles.list(),
        tariffs=repos.tariffs.list(),
        services=repos.services.list(),
        car_wash_invoices=repos.car_wash_invoices.list(),
        parking_invoices=repos.parking_invoices.list(),
    )


def format_amount(amount: Decimal) -> str:
    """`$25` for whole amounts, `$12.50` otherwise."""
    symbol = currency_symbol()
    if amount == amount.to_integral_value():
        return f"{symbol}{int(amount)}"
    return f"{symbol}{amount.quantize(Decimal('0.01'))}"


def _format_when(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def owner_name(snapshot: CatalogSnapshot, vehicle: Vehicle) -> str:
    """Owner's name, or the unassigned label when the client is not in the snapshot."""
    client = snapshot.client(vehicle.client_id)
    return client.name if client else UNASSIGNED_OWNER


def client_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    return [
        {
            "key": c.national_id,
            "Nombre": c.name,
            "Cédula": c.national_id,
            "Teléfono": c.phone,
            "Dirección": c.address,
            "Vehículos": sum(1 for v in snapshot.vehicles if v.client_id == c.national_id),
        }
        for c in snapshot.clients
    ]


def vehicle_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    return [
        {
            "key": v.plate,
            "Vehículo": f"{v.make} - {v.model}",
            "Placa": v.plate,
            "Color": v.color,
            "Propietario": owner_name(snapshot, v),
        }
        for v in snapshot.vehicles
    ]


def car_wash_invoice_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    rows = []
    for inv in snapshot.car_wash_invoices:
        client = snapshot.client(inv.client_id)
        rows.append({
            "key": inv.id,
            "Factura": inv.id,
            "Cliente": client.name if client else (inv.client_id if inv.client_id is not None else UNASSIGNED_OWNER),
            "Vehículo": inv.plate,
            "Fecha": _format_when(inv.issued_at),
            "Total": format_amount(inv.total),
        })
    return rows


def invoice_detail(snapshot: CatalogSnapshot, invoice: CarWashInvoice) -> dict[str, Any]:
    """Header and line items of one car wash invoice, from its own snapshot lines."""
    client = snapshot.client(invoice.client_id)
    return {
        "id": invoice.id,
        "client": client.name if client else UNASSIGNED_OWNER,
        "plate": invoice.plate,
        "date": _format_when(invoice.issued_at),
        "lines": [
            {"Servicio": line.name, "Tarifa": format_amount(line.tariff)}
            for line in invoice.services
        ],
        "total": format_amount(invoice.total),
    }


def tariff_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    return [
        {
            "key": t.id,
            "Tipo de vehículo": t.vehicle_type,
            "Tarifa por hora": format_amount(t.hourly_rate),
            "Fracción": f"{t.fraction_hours.normalize():f} horas",
        }
        for t in snapshot.tariffs
    ]


def service_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    return [
        {
            "key": s.id,
            "Servicio": s.name,
            "Tarifa": format_amount(s.tariff),
            "Descripción": s.description,
        }
        for s in snapshot.services
    ]


def service_choices(snapshot: CatalogSnapshot) -> dict[int, str]:
    """Service id -> "Name ($tariff)" for a multi-select."""
    return {s.id: f"{s.name} ({format_amount(s.tariff)})" for s in snapshot.services}


def parking_invoice_rows(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    rows = []
    for inv in snapshot.parking_invoices:
        tariff = snapshot.tariff(inv.tariff_id)
        rows.append({
            "key": inv.id,
            "Factura": inv.id,
            "Ticket": inv.ticket_id,
            "Tarifa": tariff.vehicle_type if tariff else inv.tariff_id,
            "Salida": _format_when(inv.exit_time),
            "Total": format_amount(inv.total),
            "Fecha": _format_when(inv.issued_at),
        })
    return rows


def batch_message(snapshot: CatalogSnapshot, batch: AssignmentBatch) -> tuple[str, str]:
    """(level, text) for an assignment batch; level is "success" or "warning"."""
    names = {s.id: s.name for s in snapshot.services}
    if batch.completed:
        done = ", ".join(names.get(a.service_id, str(a.service_id)) for a in batch.created)
        return "success", f"Servicios asignados a {batch.plate}: {done}"
    parts = []
    if batch.created:
        done = ", ".join(names.get(a.service_id, str(a.service_id)) for a in batch.created)
        parts.append(f"Asignados: {done}.")
    failed = "; ".join(
        f"{names.get(f.service_id, str(f.service_id))}: {f.reason}" for f in batch.failures
    )
    parts.append(f"Fallaron: {failed}.")
    return "warning", " ".join(parts)


def error_message(error: CarWashError) -> str:
    """Operator-facing text for any error of the package."""
    if isinstance(error, InvoiceCreatedBillingIncomplete):
        invoice_id = getattr(error.invoice, "id", None)
        head = f"La factura {invoice_id}" if invoice_id is not None else "La factura"
        parts = [f"{head} de {error.plate} se creó"]
        if error.invoice_error is not None:
            parts.append("pero no se pudo leer la respuesta de la API")
        if error.unbilled_ids:
            parts.append(
                f"los servicios {', '.join(str(i) for i in error.unbilled_ids)} "
                "no se marcaron como facturados"
            )
        return ", ".join(parts) + ". No vuelvas a generar la factura; avisa a un administrador."
    if isinstance(error, ConflictError):
        return f"No se puede eliminar: {error}"
    if isinstance(error, NotFoundError):
        return f"El registro ya no existe: {error}"
    if isinstance(error, TransportError):
        return f"No se pudo contactar la API: {error}"
    return str(error)
