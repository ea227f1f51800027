"""
Typed records exchanged with the car wash API.

Entities are decoded from the API's JSON objects with `from_api` and drafts are
encoded with `to_api`. Wire field names (Cedula, Placa, Tarifa, ...) are the
API's contract and only appear in this module.

Amounts are `Decimal`; they go back on the wire as JSON numbers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar

from mrcarwash.domains.errors import DecodeError

T = TypeVar("T")

UNASSIGNED_OWNER = "Sin asignar"


# --- value helpers ---


def to_decimal(value: Any) -> Decimal:
    """Convert an API/user number to Decimal. Raises ValueError on anything else."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        d = value
    else:
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if not d.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return d


def json_number(value: Decimal) -> int | float:
    """Decimal -> JSON number; integral amounts stay integers."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; accepts the trailing `Z` JavaScript emits."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not a timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _optional_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    return parse_datetime(value)


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Not an integer: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Not an integer: {value!r}")
    return int(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _text(payload: dict[str, Any], key: str) -> str:
    val = payload.get(key)
    return "" if val is None else str(val)


def _decode(kind: str, payload: Any, build: Callable[[dict[str, Any]], T]) -> T:
    if not isinstance(payload, dict):
        raise DecodeError(f"Expected a {kind} object, got {type(payload).__name__}")
    try:
        return build(payload)
    except (KeyError, TypeError, ValueError) as e:
        raise DecodeError(f"Malformed {kind} record: {e!r}", original=e) from e


def _require_text(value: str, label: str) -> None:
    if not (value or "").strip():
        raise ValueError(f"{label} must not be empty")


# --- entities ---


@dataclass(frozen=True)
class Client:
    national_id: int
    name: str
    phone: str
    address: str

    @property
    def key(self) -> int:
        return self.national_id

    @classmethod
    def from_api(cls, payload: Any) -> Client:
        return _decode("client", payload, lambda p: cls(
            national_id=_as_int(p["Cedula"]),
            name=str(p["Nombre"]),
            phone=_text(p, "Telefono"),
            address=_text(p, "Direccion"),
        ))


@dataclass(frozen=True)
class Vehicle:
    plate: str
    make: str
    model: str
    color: str
    client_id: int | None

    @property
    def key(self) -> str:
        return self.plate

    @classmethod
    def from_api(cls, payload: Any) -> Vehicle:
        def build(p: dict[str, Any]) -> Vehicle:
            owner = p.get("Cedula_Cliente")
            return cls(
                plate=str(p["Placa"]),
                make=_text(p, "Marca"),
                model=_text(p, "Modelo"),
                color=_text(p, "Color"),
                client_id=_as_int(owner) if owner not in (None, "") else None,
            )

        return _decode("vehicle", payload, build)


@dataclass(frozen=True)
class ParkingTariff:
    id: int
    vehicle_type: str
    hourly_rate: Decimal
    fraction_hours: Decimal

    def __post_init__(self) -> None:
        if self.fraction_hours <= 0:
            raise ValueError(f"Fraccion must be positive, got {self.fraction_hours}")
        if self.hourly_rate < 0:
            raise ValueError(f"Hora must not be negative, got {self.hourly_rate}")

    @property
    def key(self) -> int:
        return self.id

    @classmethod
    def from_api(cls, payload: Any) -> ParkingTariff:
        return _decode("parking tariff", payload, lambda p: cls(
            id=_as_int(p["id"]),
            vehicle_type=_text(p, "Tipo_Vehiculo"),
            hourly_rate=to_decimal(p["Hora"]),
            fraction_hours=to_decimal(p["Fraccion"]),
        ))


@dataclass(frozen=True)
class CarWashService:
    id: int
    name: str
    description: str
    tariff: Decimal

    def __post_init__(self) -> None:
        if self.tariff < 0:
            raise ValueError(f"Tarifa must not be negative, got {self.tariff}")

    @property
    def key(self) -> int:
        return self.id

    @classmethod
    def from_api(cls, payload: Any) -> CarWashService:
        return _decode("car wash service", payload, lambda p: cls(
            id=_as_int(p["id"]),
            name=str(p["Nombre"]),
            description=_text(p, "Descripcion"),
            tariff=to_decimal(p["Tarifa"]),
        ))


@dataclass(frozen=True)
class ServiceAssignment:
    """A service requested for a vehicle. `billed` only ever goes False -> True."""

    id: int
    plate: str
    service_id: int
    performed_at: datetime | None
    billed: bool = False

    @property
    def key(self) -> int:
        return self.id

    def as_billed(self) -> ServiceAssignment:
        return self if self.billed else replace(self, billed=True)

    @classmethod
    def from_api(cls, payload: Any, plate: str | None = None) -> ServiceAssignment:
        # The per-vehicle endpoint may leave the plate out of each item.
        return _decode("service assignment", payload, lambda p: cls(
            id=_as_int(p["id"]),
            plate=str(p.get("Placa_Vehiculo") or plate or ""),
            service_id=_as_int(p["Servicio_id"]),
            performed_at=_optional_datetime(p.get("Fecha_Servicio")),
            billed=_as_bool(p.get("Facturado", False)),
        ))


@dataclass(frozen=True)
class ServiceSnapshot:
    """Invoice line: service name and tariff copied at generation time."""

    service_id: int
    name: str
    tariff: Decimal

    @classmethod
    def of(cls, service: CarWashService) -> ServiceSnapshot:
        return cls(service_id=service.id, name=service.name, tariff=service.tariff)

    @classmethod
    def from_api(cls, payload: Any) -> ServiceSnapshot:
        return _decode("invoice line", payload, lambda p: cls(
            service_id=_as_int(p["Servicio_id"]),
            name=_text(p, "Nombre"),
            tariff=to_decimal(p["Tarifa"]),
        ))

    def to_api(self) -> dict[str, Any]:
        return {
            "Servicio_id": self.service_id,
            "Nombre": self.name,
            "Tarifa": json_number(self.tariff),
        }


@dataclass(frozen=True)
class CarWashInvoice:
    id: int
    client_id: int | None
    plate: str
    services: tuple[ServiceSnapshot, ...]
    total: Decimal
    issued_at: datetime | None

    @property
    def key(self) -> int:
        return self.id

    @classmethod
    def from_api(cls, payload: Any) -> CarWashInvoice:
        def build(p: dict[str, Any]) -> CarWashInvoice:
            lines = p.get("Servicios") or []
            if not isinstance(lines, list):
                raise TypeError("Servicios must be a list")
            owner = p.get("Cedula_Cliente")
            return cls(
                id=_as_int(p["id"]),
                client_id=_as_int(owner) if owner not in (None, "") else None,
                plate=str(p["Placa_Vehiculo"]),
                services=tuple(ServiceSnapshot.from_api(line) for line in lines),
                total=to_decimal(p["Total"]),
                issued_at=_optional_datetime(p.get("Fecha_Factura")),
            )

        return _decode("car wash invoice", payload, build)


@dataclass(frozen=True)
class ParkingTicket:
    """Caller-supplied ticket: the API exposes no ticket resource."""

    id: int
    entry_time: datetime
    plate: str | None = None


@dataclass(frozen=True)
class ParkingInvoice:
    id: int
    ticket_id: int
    tariff_id: int
    exit_time: datetime | None
    total: Decimal
    issued_at: datetime | None

    @property
    def key(self) -> int:
        return self.id

    @classmethod
    def from_api(cls, payload: Any) -> ParkingInvoice:
        return _decode("parking invoice", payload, lambda p: cls(
            id=_as_int(p["id"]),
            ticket_id=_as_int(p["Ticket_id"]),
            tariff_id=_as_int(p["Tarifas_Parking_id"]),
            exit_time=_optional_datetime(p.get("Hora_Salida")),
            total=to_decimal(p["Total"]),
            issued_at=_optional_datetime(p.get("Fecha_Factura")),
        ))


# --- drafts (what the caller supplies on create/update) ---


@dataclass(frozen=True)
class ClientDraft:
    national_id: int
    name: str
    phone: str
    address: str

    def __post_init__(self) -> None:
        if self.national_id <= 0:
            raise ValueError("Cedula must be a positive number")
        _require_text(self.name, "Nombre")

    @property
    def key(self) -> int:
        return self.national_id

    @classmethod
    def of(cls, client: Client) -> ClientDraft:
        return cls(client.national_id, client.name, client.phone, client.address)

    def to_api(self) -> dict[str, Any]:
        return {
            "Cedula": self.national_id,
            "Nombre": self.name,
            "Telefono": self.phone,
            "Direccion": self.address,
        }


@dataclass(frozen=True)
class VehicleDraft:
    plate: str
    make: str
    model: str
    color: str
    client_id: int

    def __post_init__(self) -> None:
        _require_text(self.plate, "Placa")

    @property
    def key(self) -> str:
        return self.plate

    @classmethod
    def of(cls, vehicle: Vehicle) -> VehicleDraft:
        if vehicle.client_id is None:
            raise ValueError(f"Vehicle {vehicle.plate} has no owner")
        return cls(vehicle.plate, vehicle.make, vehicle.model, vehicle.color, vehicle.client_id)

    def to_api(self) -> dict[str, Any]:
        return {
            "Placa": self.plate,
            "Marca": self.make,
            "Modelo": self.model,
            "Color": self.color,
            "Cedula_Cliente": self.client_id,
        }


@dataclass(frozen=True)
class TariffDraft:
    vehicle_type: str
    hourly_rate: Decimal
    fraction_hours: Decimal

    def __post_init__(self) -> None:
        _require_text(self.vehicle_type, "Tipo_Vehiculo")
        if self.fraction_hours <= 0:
            raise ValueError("Fraccion must be positive")
        if self.hourly_rate < 0:
            raise ValueError("Hora must not be negative")

    def to_api(self) -> dict[str, Any]:
        return {
            "Tipo_Vehiculo": self.vehicle_type,
            "Hora": json_number(self.hourly_rate),
            "Fraccion": json_number(self.fraction_hours),
        }


@dataclass(frozen=True)
class ServiceDraft:
    name: str
    description: str
    tariff: Decimal

    def __post_init__(self) -> None:
        _require_text(self.name, "Nombre")
        if self.tariff < 0:
            raise ValueError("Tarifa must not be negative")

    def to_api(self) -> dict[str, Any]:
        return {
            "Nombre": self.name,
            "Descripcion": self.description,
            "Tarifa": json_number(self.tariff),
        }


@dataclass(frozen=True)
class AssignmentDraft:
    service_id: int
    performed_at: datetime

    def to_api(self) -> dict[str, Any]:
        return {
            "Servicio_id": self.service_id,
            "Fecha_Servicio": self.performed_at.isoformat(),
        }


@dataclass(frozen=True)
class CarWashInvoiceDraft:
    client_id: int | None
    plate: str
    services: tuple[ServiceSnapshot, ...]
    total: Decimal
    issued_at: datetime

    def to_api(self) -> dict[str, Any]:
        return {
            "Cedula_Cliente": self.client_id,
            "Placa_Vehiculo": self.plate,
            "Servicios": [s.to_api() for s in self.services],
            "Total": json_number(self.total),
            "Fecha_Factura": _format_datetime(self.issued_at),
        }


@dataclass(frozen=True)
class ParkingInvoiceDraft:
    ticket_id: int
    tariff_id: int
    exit_time: datetime
    total: Decimal
    issued_at: datetime

    def to_api(self) -> dict[str, Any]:
        return {
            "Ticket_id": self.ticket_id,
            "Tarifas_Parking_id": self.tariff_id,
            "Hora_Salida": _format_datetime(self.exit_time),
            "Total": json_number(self.total),
            "Fecha_Factura": _format_datetime(self.issued_at),
        }
