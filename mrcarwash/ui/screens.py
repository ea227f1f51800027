"""Streamlit rendering for the two staff screens.

Every write goes through a repository or a workflow service; after a write the
snapshot is dropped so the next run fetches fresh lists from the API.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Any, Callable

import streamlit as st

from mrcarwash.domains.errors import CarWashError, InvoiceCreatedBillingIncomplete
from mrcarwash.domains.forms import (
    EntityForm,
    FormKind,
    open_client_form,
    open_service_form,
    open_tariff_form,
    open_vehicle_form,
    save_form,
)
from mrcarwash.domains.models import ParkingTicket, Vehicle
from mrcarwash.infrastructure.repositories import Repositories
from mrcarwash.services.assignment_coordinator import AssignmentCoordinator
from mrcarwash.services.invoice_generator import InvoiceGenerator
from mrcarwash.ui.view_models import (
    CatalogSnapshot,
    batch_message,
    car_wash_invoice_rows,
    client_rows,
    error_message,
    format_amount,
    invoice_detail,
    parking_invoice_rows,
    service_choices,
    service_rows,
    tariff_rows,
    vehicle_rows,
)
from mrcarwash.utils.logger import get_logger

logger = get_logger()

SNAPSHOT_KEY = "snapshot"
_FORM_KEY = "entity_form"
_CONFIRM_KEY = "confirm_delete"
_FLASH_KEY = "flash"


def refresh(st=st) -> None:
    """Drop the snapshot and rerun so every list is fetched again."""
    st.session_state.pop(SNAPSHOT_KEY, None)
    st.rerun()


def _flash(level: str, text: str, st=st) -> None:
    st.session_state[_FLASH_KEY] = (level, text)


def show_flash(st=st) -> None:
    pending = st.session_state.pop(_FLASH_KEY, None)
    if not pending:
        return
    level, text = pending
    getattr(st, level, st.info)(text)


def _attempt(action: Callable[[], Any], done: str | None = None, st=st) -> Any:
    """Run a write; show the error and return None when it fails, else refresh."""
    try:
        result = action()
    except CarWashError as e:
        logger.warning("Action failed: %s", e)
        st.error(error_message(e))
        return None
    if done:
        _flash("success", done, st=st)
    refresh(st=st)
    return result


def _open(form: EntityForm, st=st) -> None:
    st.session_state[_FORM_KEY] = form
    st.rerun()


def _render_form(kind: FormKind, snapshot: CatalogSnapshot, repos: Repositories, st=st) -> None:
    form: EntityForm | None = st.session_state.get(_FORM_KEY)
    if form is None or form.kind is not kind:
        return
    action = "Editar" if form.editing else "Agregar"
    with st.form(f"form_{kind.value}"):
        st.subheader(f"{action} {form.title}")
        values: dict[str, Any] = {}
        for name, label in form.labels.items():
            current = form.values.get(name)
            if kind is FormKind.VEHICLE and name == "client_id":
                options = [c.national_id for c in snapshot.clients]
                names = {c.national_id: f"{c.name} ({c.national_id})" for c in snapshot.clients}
                index = options.index(current) if current in options else None
                values[name] = st.selectbox(label, options, index=index, format_func=names.get)
            else:
                # Natural keys cannot change once created.
                locked = form.editing and name in ("national_id", "plate")
                values[name] = st.text_input(label, value="" if current is None else str(current), disabled=locked)
        cols = st.columns(2)
        submitted = cols[0].form_submit_button("Guardar")
        cancelled = cols[1].form_submit_button("Cancelar")
    if cancelled:
        st.session_state.pop(_FORM_KEY, None)
        st.rerun()
    if submitted:
        if form.editing:
            values.pop("national_id" if kind is FormKind.CLIENT else "plate", None)
        form.values.update(values)
        saved = _attempt_save(form, repos, st=st)
        if saved is not None:
            st.session_state.pop(_FORM_KEY, None)
            refresh(st=st)


def _attempt_save(form: EntityForm, repos: Repositories, st=st) -> Any:
    try:
        return save_form(form, repos)
    except CarWashError as e:
        st.error(error_message(e))
        return None


def _delete_button(label_key: str, describe: str, delete: Callable[[], None], st=st) -> None:
    if st.button("Eliminar", key=f"del_{label_key}"):
        st.session_state[_CONFIRM_KEY] = label_key
    if st.session_state.get(_CONFIRM_KEY) == label_key:
        st.warning(f"¿Estás seguro de eliminar {describe}?")
        if st.button("Confirmar", key=f"confirm_{label_key}"):
            st.session_state.pop(_CONFIRM_KEY, None)
            _attempt(delete, f"{describe} eliminado", st=st)


def _invoice_vehicle(vehicle: Vehicle, generator: InvoiceGenerator, st=st) -> None:
    try:
        invoice = generator.generate_car_wash_invoice(vehicle)
    except InvoiceCreatedBillingIncomplete as e:
        # The invoice exists; the lists must show it even though billing is incomplete.
        _flash("error", error_message(e), st=st)
        refresh(st=st)
        return
    except CarWashError as e:
        st.error(error_message(e))
        return
    _flash("success", f"Factura {invoice.id} generada por {format_amount(invoice.total)}", st=st)
    refresh(st=st)


def render_clients_and_vehicles(
    snapshot: CatalogSnapshot,
    repos: Repositories,
    coordinator: AssignmentCoordinator,
    generator: InvoiceGenerator,
    st=st,
) -> None:
    show_flash(st=st)

    st.header("Clientes")
    if st.button("Agregar Cliente"):
        _open(open_client_form(), st=st)
    _render_form(FormKind.CLIENT, snapshot, repos, st=st)
    for row, client in zip(client_rows(snapshot), snapshot.clients):
        with st.container(border=True):
            st.markdown(f"**{row['Nombre']}**")
            st.caption(f"Cédula: {row['Cédula']} · Teléfono: {row['Teléfono']} · Dirección: {row['Dirección']}")
            cols = st.columns(2)
            with cols[0]:
                if st.button("Editar", key=f"edit_client_{client.national_id}"):
                    _open(open_client_form(client), st=st)
            with cols[1]:
                _delete_button(
                    f"client_{client.national_id}", f"el cliente {client.name}",
                    lambda c=client: repos.clients.delete(c.national_id), st=st,
                )

    st.header("Vehículos")
    if st.button("Agregar Vehículo"):
        _open(open_vehicle_form(), st=st)
    _render_form(FormKind.VEHICLE, snapshot, repos, st=st)
    choices = service_choices(snapshot)
    for row, vehicle in zip(vehicle_rows(snapshot), snapshot.vehicles):
        with st.container(border=True):
            st.markdown(f"**{row['Vehículo']}**")
            st.caption(f"Placa: {row['Placa']} · Color: {row['Color']} · Propietario: {row['Propietario']}")
            selected = st.multiselect(
                "Servicios", list(choices), format_func=choices.get, key=f"svc_{vehicle.plate}"
            )
            cols = st.columns(4)
            with cols[0]:
                if st.button("Asignar Servicio", key=f"assign_{vehicle.plate}"):
                    try:
                        batch = coordinator.assign(vehicle, selected)
                    except CarWashError as e:
                        st.error(error_message(e))
                    else:
                        _flash(*batch_message(snapshot, batch), st=st)
                        refresh(st=st)
            with cols[1]:
                if st.button("Generar Factura", key=f"invoice_{vehicle.plate}"):
                    _invoice_vehicle(vehicle, generator, st=st)
            with cols[2]:
                if st.button("Editar", key=f"edit_vehicle_{vehicle.plate}"):
                    _open(open_vehicle_form(vehicle), st=st)
            with cols[3]:
                _delete_button(
                    f"vehicle_{vehicle.plate}", f"el vehículo {vehicle.plate}",
                    lambda v=vehicle: repos.vehicles.delete(v.plate), st=st,
                )

    st.header("Facturas")
    for row, invoice in zip(car_wash_invoice_rows(snapshot), snapshot.car_wash_invoices):
        with st.expander(f"Factura {row['Factura']} · {row['Vehículo']} · {row['Total']}"):
            detail = invoice_detail(snapshot, invoice)
            st.write(f"Cliente: {detail['client']} · Fecha: {detail['date']}")
            st.table(detail["lines"])
            st.markdown(f"**Total: {detail['total']}**")


def _render_parking_invoice_form(snapshot: CatalogSnapshot, generator: InvoiceGenerator, st=st) -> None:
    if not snapshot.tariffs:
        return
    with st.form("parking_invoice"):
        st.subheader("Facturar ticket de parking")
        ticket_id = st.number_input("Ticket", min_value=1, step=1)
        tariff = st.selectbox("Tarifa", snapshot.tariffs, format_func=lambda t: t.vehicle_type)
        day = st.date_input("Fecha")
        entry = st.time_input("Entrada", value=time(9, 0))
        exit_ = st.time_input("Salida", value=time(10, 0))
        submitted = st.form_submit_button("Generar")
    if submitted:
        ticket = ParkingTicket(id=int(ticket_id), entry_time=datetime.combine(day, entry))
        _attempt(
            lambda: generator.generate_parking_invoice(ticket, tariff, datetime.combine(day, exit_)),
            f"Ticket {int(ticket_id)} facturado",
            st=st,
        )


def render_services_screen(
    snapshot: CatalogSnapshot,
    repos: Repositories,
    generator: InvoiceGenerator,
    st=st,
) -> None:
    show_flash(st=st)

    st.header("Tarifas de Parking")
    if st.button("Agregar Tarifa"):
        _open(open_tariff_form(), st=st)
    _render_form(FormKind.TARIFF, snapshot, repos, st=st)
    for row, tariff in zip(tariff_rows(snapshot), snapshot.tariffs):
        with st.container(border=True):
            st.markdown(f"**{row['Tipo de vehículo']}**")
            st.caption(f"Tarifa por hora: {row['Tarifa por hora']} · Fracción: {row['Fracción']}")
            cols = st.columns(2)
            with cols[0]:
                if st.button("Editar", key=f"edit_tariff_{tariff.id}"):
                    _open(open_tariff_form(tariff), st=st)
            with cols[1]:
                _delete_button(
                    f"tariff_{tariff.id}", f"la tarifa {tariff.vehicle_type}",
                    lambda t=tariff: repos.tariffs.delete(t.id), st=st,
                )

    st.header("Servicios de Car Wash")
    if st.button("Agregar Servicio"):
        _open(open_service_form(), st=st)
    _render_form(FormKind.SERVICE, snapshot, repos, st=st)
    for row, service in zip(service_rows(snapshot), snapshot.services):
        with st.container(border=True):
            st.markdown(f"**{row['Servicio']}** · {row['Tarifa']}")
            st.caption(row["Descripción"])
            cols = st.columns(2)
            with cols[0]:
                if st.button("Editar", key=f"edit_service_{service.id}"):
                    _open(open_service_form(service), st=st)
            with cols[1]:
                _delete_button(
                    f"service_{service.id}", f"el servicio {service.name}",
                    lambda s=service: repos.services.delete(s.id), st=st,
                )

    st.header("Facturas de Parking")
    _render_parking_invoice_form(snapshot, generator, st=st)
    rows = parking_invoice_rows(snapshot)
    if rows:
        st.dataframe([{k: v for k, v in r.items() if k != "key"} for r in rows], hide_index=True)
    else:
        st.caption("Sin facturas de parking.")
