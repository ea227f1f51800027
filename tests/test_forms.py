"""
Tests for entity forms: required fields, conversion, create vs update.
"""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from mrcarwash.domains.forms import (
    EntityForm,
    FormIncomplete,
    FormInvalid,
    FormKind,
    build_draft,
    missing_fields,
    open_client_form,
    open_service_form,
    open_tariff_form,
    open_vehicle_form,
    save_form,
)
from mrcarwash.domains.models import Client, ParkingTariff, ServiceDraft, Vehicle


def test_new_client_form_starts_empty() -> None:
    form = open_client_form()
    assert form.kind is FormKind.CLIENT
    assert not form.editing
    assert missing_fields(form) == ["national_id", "name", "phone", "address"]


def test_incomplete_form_lists_missing_labels() -> None:
    form = open_client_form()
    form.values.update({"national_id": "1001", "name": "Ana"})
    with pytest.raises(FormIncomplete) as exc:
        build_draft(form)
    assert exc.value.missing == ["phone", "address"]
    assert "Teléfono" in str(exc.value)


def test_blank_text_counts_as_missing() -> None:
    form = open_tariff_form()
    form.values.update({"vehicle_type": "   ", "hourly_rate": "2", "fraction_hours": "1"})
    assert missing_fields(form) == ["vehicle_type"]


def test_service_description_is_optional() -> None:
    form = open_service_form()
    form.values.update({"name": "Wash", "tariff": "10"})
    draft = build_draft(form)
    assert draft == ServiceDraft(name="Wash", description="", tariff=Decimal("10"))


@pytest.mark.parametrize("values", [
    {"vehicle_type": "Moto", "hourly_rate": "abc", "fraction_hours": "1"},
    {"vehicle_type": "Moto", "hourly_rate": "2", "fraction_hours": "0"},
    {"vehicle_type": "Moto", "hourly_rate": "-1", "fraction_hours": "1"},
])
def test_bad_tariff_values_are_invalid(values) -> None:
    form = open_tariff_form()
    form.values.update(values)
    with pytest.raises(FormInvalid):
        build_draft(form)


def test_non_numeric_cedula_is_invalid() -> None:
    form = open_client_form()
    form.values.update({"national_id": "12a", "name": "Ana", "phone": "1", "address": "x"})
    with pytest.raises(FormInvalid, match="Cédula"):
        build_draft(form)


def test_new_vehicle_needs_an_owner() -> None:
    form = open_vehicle_form()
    form.values.update({"plate": "DEF456", "make": "Mazda", "model": "3", "color": "Gris"})
    assert missing_fields(form) == ["client_id"]
    form.values["client_id"] = 1001
    assert build_draft(form).client_id == 1001


def test_save_new_client_creates_it(repos, api) -> None:
    form = open_client_form()
    form.values.update({"national_id": " 2002 ", "name": "Luis", "phone": "555", "address": "Calle 2"})

    client = save_form(form, repos)

    assert client == Client(2002, "Luis", "555", "Calle 2")
    assert api.tables["clientes"][2002]["Nombre"] == "Luis"


def test_save_edited_vehicle_updates_it(repos, api) -> None:
    vehicle = Vehicle("ABC123", "Toyota", "Corolla", "Rojo", 1001)
    form = open_vehicle_form(vehicle)
    assert form.editing and form.key == "ABC123"
    form.values["color"] = "Negro"

    updated = save_form(form, repos)

    assert updated.color == "Negro"
    assert api.calls_to("POST", "vehiculos") == []
    assert api.tables["vehiculos"]["ABC123"]["Color"] == "Negro"


def test_form_kind_decides_the_repository() -> None:
    repos = MagicMock()
    form = EntityForm(FormKind.SERVICE, {"name": "Wash", "description": "", "tariff": "10"})
    save_form(form, repos)
    repos.services.create.assert_called_once()
    repos.tariffs.create.assert_not_called()


def test_edited_tariff_is_updated_by_id() -> None:
    repos = MagicMock()
    tariff = ParkingTariff(4, "Carro", Decimal("2"), Decimal("1"))
    form = open_tariff_form(tariff)
    form.values["hourly_rate"] = "3"
    save_form(form, repos)
    key, draft = repos.tariffs.update.call_args.args
    assert key == 4
    assert draft.hourly_rate == Decimal("3")


def test_form_messages_are_in_spanish() -> None:
    form = open_client_form()
    with pytest.raises(FormIncomplete) as incomplete:
        build_draft(form)
    assert str(incomplete.value).startswith("Por favor, completa todos los campos")

    form.values.update({"national_id": "abc", "name": "Ana", "phone": "1", "address": "x"})
    with pytest.raises(FormInvalid) as invalid:
        build_draft(form)
    assert "Datos no válidos (Cliente)" in str(invalid.value)


def test_form_titles_name_the_entity() -> None:
    assert open_client_form().title == "Cliente"
    assert open_vehicle_form().title == "Vehículo"
    assert open_tariff_form().title == "Tarifa de Parking"
    assert open_service_form().title == "Servicio"
