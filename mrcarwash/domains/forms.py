"""
Edit forms for clients, vehicles, parking tariffs and car wash services.

A form is opened for exactly one kind of record and keeps that kind until it is
saved; the kind is never guessed from which fields happen to be filled in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mrcarwash.domains.errors import CarWashError
from mrcarwash.domains.models import (
    CarWashService,
    Client,
    ClientDraft,
    ParkingTariff,
    ServiceDraft,
    TariffDraft,
    Vehicle,
    VehicleDraft,
    to_decimal,
)


class FormKind(str, Enum):
    CLIENT = "client"
    VEHICLE = "vehicle"
    TARIFF = "tariff"
    SERVICE = "service"


# Field name -> label shown to staff.
FIELD_LABELS: dict[FormKind, dict[str, str]] = {
    FormKind.CLIENT: {
        "national_id": "Cédula",
        "name": "Nombre",
        "phone": "Teléfono",
        "address": "Dirección",
    },
    FormKind.VEHICLE: {
        "plate": "Placa",
        "make": "Marca",
        "model": "Modelo",
        "color": "Color",
        "client_id": "Cliente",
    },
    FormKind.TARIFF: {
        "vehicle_type": "Tipo de vehículo",
        "hourly_rate": "Tarifa por hora",
        "fraction_hours": "Fracción (horas)",
    },
    FormKind.SERVICE: {
        "name": "Nombre",
        "description": "Descripción",
        "tariff": "Tarifa",
    },
}

# Kind -> name shown in form titles.
KIND_LABELS: dict[FormKind, str] = {
    FormKind.CLIENT: "Cliente",
    FormKind.VEHICLE: "Vehículo",
    FormKind.TARIFF: "Tarifa de Parking",
    FormKind.SERVICE: "Servicio",
}

_OPTIONAL_FIELDS: dict[FormKind, set[str]] = {
    FormKind.SERVICE: {"description"},
}


class FormIncomplete(CarWashError):
    def __init__(self, kind: FormKind, missing: list[str]) -> None:
        labels = [FIELD_LABELS[kind].get(f, f) for f in missing]
        super().__init__("Por favor, completa todos los campos: " + ", ".join(labels))
        self.kind = kind
        self.missing = missing


class FormInvalid(CarWashError):
    def __init__(self, kind: FormKind, reason: str) -> None:
        super().__init__(f"Datos no válidos ({KIND_LABELS[kind]}): {reason}")
        self.kind = kind
        self.reason = reason


@dataclass
class EntityForm:
    """Form state. `key` is set when editing an existing record."""

    kind: FormKind
    values: dict[str, Any] = field(default_factory=dict)
    key: int | str | None = None

    @property
    def editing(self) -> bool:
        return self.key is not None

    @property
    def labels(self) -> dict[str, str]:
        return FIELD_LABELS[self.kind]

    @property
    def title(self) -> str:
        return KIND_LABELS[self.kind]


def open_client_form(client: Client | None = None) -> EntityForm:
    if client is None:
        return EntityForm(FormKind.CLIENT, {f: "" for f in FIELD_LABELS[FormKind.CLIENT]})
    return EntityForm(
        FormKind.CLIENT,
        {
            "national_id": client.national_id,
            "name": client.name,
            "phone": client.phone,
            "address": client.address,
        },
        key=client.national_id,
    )


def open_vehicle_form(vehicle: Vehicle | None = None) -> EntityForm:
    if vehicle is None:
        values = {f: "" for f in FIELD_LABELS[FormKind.VEHICLE]}
        values["client_id"] = None
        return EntityForm(FormKind.VEHICLE, values)
    return EntityForm(
        FormKind.VEHICLE,
        {
            "plate": vehicle.plate,
            "make": vehicle.make,
            "model": vehicle.model,
            "color": vehicle.color,
            "client_id": vehicle.client_id,
        },
        key=vehicle.plate,
    )


def open_tariff_form(tariff: ParkingTariff | None = None) -> EntityForm:
    if tariff is None:
        return EntityForm(FormKind.TARIFF, {f: "" for f in FIELD_LABELS[FormKind.TARIFF]})
    return EntityForm(
        FormKind.TARIFF,
        {
            "vehicle_type": tariff.vehicle_type,
            "hourly_rate": tariff.hourly_rate,
            "fraction_hours": tariff.fraction_hours,
        },
        key=tariff.id,
    )


def open_service_form(service: CarWashService | None = None) -> EntityForm:
    if service is None:
        return EntityForm(FormKind.SERVICE, {f: "" for f in FIELD_LABELS[FormKind.SERVICE]})
    return EntityForm(
        FormKind.SERVICE,
        {"name": service.name, "description": service.description, "tariff": service.tariff},
        key=service.id,
    )


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(form: EntityForm) -> list[str]:
    """Required fields that are still empty, in display order."""
    optional = _OPTIONAL_FIELDS.get(form.kind, set())
    return [
        f for f in FIELD_LABELS[form.kind]
        if f not in optional and _blank(form.values.get(f))
    ]


def _str(form: EntityForm, name: str) -> str:
    val = form.values.get(name)
    return "" if val is None else str(val).strip()


def _int(form: EntityForm, name: str) -> int:
    raw = form.values.get(name)
    if isinstance(raw, bool):
        raise ValueError(f"{FIELD_LABELS[form.kind][name]} debe ser un número")
    try:
        return int(str(raw).strip())
    except ValueError as e:
        raise ValueError(f"{FIELD_LABELS[form.kind][name]} debe ser un número entero") from e


def build_draft(form: EntityForm) -> ClientDraft | VehicleDraft | TariffDraft | ServiceDraft:
    """
    Turn a complete form into a validated draft.

    Raises:
        FormIncomplete: If a required field is empty.
        FormInvalid: If a value cannot be converted or breaks a record invariant.
    """
    missing = missing_fields(form)
    if missing:
        raise FormIncomplete(form.kind, missing)
    try:
        if form.kind is FormKind.CLIENT:
            return ClientDraft(
                national_id=_int(form, "national_id"),
                name=_str(form, "name"),
                phone=_str(form, "phone"),
                address=_str(form, "address"),
            )
        if form.kind is FormKind.VEHICLE:
            return VehicleDraft(
                plate=_str(form, "plate"),
                make=_str(form, "make"),
                model=_str(form, "model"),
                color=_str(form, "color"),
                client_id=_int(form, "client_id"),
            )
        if form.kind is FormKind.TARIFF:
            return TariffDraft(
                vehicle_type=_str(form, "vehicle_type"),
                hourly_rate=to_decimal(form.values.get("hourly_rate")),
                fraction_hours=to_decimal(form.values.get("fraction_hours")),
            )
        return ServiceDraft(
            name=_str(form, "name"),
            description=_str(form, "description"),
            tariff=to_decimal(form.values.get("tariff")),
        )
    except ValueError as e:
        raise FormInvalid(form.kind, str(e)) from e


def save_form(form: EntityForm, repos: Any) -> Any:
    """
    Create or update the record behind `form` through the matching repository.

    `repos` is a `Repositories` bundle. Errors from the API propagate unchanged.
    """
    draft = build_draft(form)
    repo = {
        FormKind.CLIENT: repos.clients,
        FormKind.VEHICLE: repos.vehicles,
        FormKind.TARIFF: repos.tariffs,
        FormKind.SERVICE: repos.services,
    }[form.kind]
    if form.editing:
        return repo.update(form.key, draft)
    return repo.create(draft)
