"""
Invoice generation for car wash services and parking tickets.

A car wash invoice bills every unbilled assignment of a vehicle once: it copies
each service's current name and tariff into the invoice, persists it, then
flags the assignments as billed. Totals come from `domains.billing.pricing`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

from mrcarwash.domains.billing.pricing import car_wash_total, parking_total
from mrcarwash.domains.errors import (
    ApiError,
    DecodeError,
    InvoiceCreatedBillingIncomplete,
    NoUnbilledAssignments,
    NotFoundError,
    TicketAlreadyInvoiced,
)
from mrcarwash.domains.models import (
    CarWashInvoice,
    CarWashInvoiceDraft,
    ParkingInvoice,
    ParkingInvoiceDraft,
    ParkingTariff,
    ParkingTicket,
    ServiceSnapshot,
    Vehicle,
)
from mrcarwash.infrastructure.repositories import Repositories
from mrcarwash.services.locks import VehicleLocks
from mrcarwash.utils.logger import get_logger

logger = get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvoiceGenerator:
    def __init__(
        self,
        repos: Repositories,
        locks: VehicleLocks | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repos = repos
        self._locks = locks or VehicleLocks()
        self._clock = clock

    def generate_car_wash_invoice(self, vehicle: Vehicle) -> CarWashInvoice:
        """
        Bill all unbilled services of `vehicle` in one invoice.

        Raises:
            NoUnbilledAssignments: Nothing to bill; nothing was written.
            NotFoundError: An assigned service no longer exists; nothing was written.
            InvoiceCreatedBillingIncomplete: The invoice exists but its answer
                was unreadable or some assignments are still flagged unbilled.
                Do not retry.
            ApiError: Any API failure before the invoice was persisted.
        """
        plate = vehicle.plate
        with self._locks.hold(plate):
            pending = self._repos.assignments.list_unbilled(plate)
            if not pending:
                raise NoUnbilledAssignments(plate)

            catalog = {s.id: s for s in self._repos.services.list()}
            lines: list[ServiceSnapshot] = []
            for assignment in pending:
                service = catalog.get(assignment.service_id)
                if service is None:
                    raise NotFoundError(
                        f"Service {assignment.service_id} assigned to {plate} "
                        f"(assignment {assignment.id}) no longer exists"
                    )
                lines.append(ServiceSnapshot.of(service))

            draft = CarWashInvoiceDraft(
                client_id=vehicle.client_id,
                plate=plate,
                services=tuple(lines),
                total=car_wash_total(lines),
                issued_at=self._clock(),
            )
            invoice: CarWashInvoice | None = None
            invoice_error: DecodeError | None = None
            try:
                invoice = self._repos.car_wash_invoices.create(draft)
            except DecodeError as e:
                # A 2xx answer was received: the invoice exists even if its echo is unreadable.
                invoice_error = e
                logger.error("Car wash invoice for %s accepted but unreadable: %s", plate, e)
            else:
                logger.info("Car wash invoice %s for %s: %d services, total %s",
                            invoice.id, plate, len(lines), draft.total)

            errors: dict[int, Exception] = {}
            for assignment in pending:
                try:
                    self._repos.assignments.mark_billed(assignment)
                except ApiError as e:
                    errors[assignment.id] = e

        if errors or invoice is None:
            incident = InvoiceCreatedBillingIncomplete(
                invoice, plate, unbilled_ids=list(errors), errors=errors,
                invoice_error=invoice_error,
            )
            logger.error("Billing incomplete: %s", incident)
            raise incident
        return invoice

    def generate_parking_invoice(
        self,
        ticket: ParkingTicket,
        tariff: ParkingTariff,
        exit_time: datetime,
    ) -> ParkingInvoice:
        """
        Invoice one parking ticket.

        Raises:
            TicketAlreadyInvoiced: An invoice already references the ticket.
            InvalidDuration: `exit_time` is not after the ticket's entry time.
        """
        total = parking_total(tariff, ticket.entry_time, exit_time)
        existing = self._repos.parking_invoices.for_ticket(ticket.id)
        if existing is not None:
            raise TicketAlreadyInvoiced(ticket.id, existing.id)

        draft = ParkingInvoiceDraft(
            ticket_id=ticket.id,
            tariff_id=tariff.id,
            exit_time=exit_time,
            total=total,
            issued_at=self._clock(),
        )
        invoice = self._repos.parking_invoices.create(draft)
        logger.info("Parking invoice %s for ticket %s: total %s", invoice.id, ticket.id, total)
        return invoice
