"""
Error taxonomy for the car wash client.

Entity-level errors (`ApiError` and subclasses) come from talking to the REST
API and propagate unchanged through the workflow layer. Workflow-level errors
(`BillingError` and subclasses) are raised where a billing invariant is violated
and carry the identifiers an operator needs to act on them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable


class CarWashError(RuntimeError):
    """Base class for every error raised by this package."""


# --- entity-level ---


class ApiError(CarWashError):
    """The REST API failed or rejected a request."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.original = original


class TransportError(ApiError):
    """Network failure, timeout, or a 5xx answer."""


class DecodeError(ApiError):
    """The response body does not have the expected shape."""


class ValidationError(ApiError):
    """The API rejected the submitted fields (e.g. duplicate natural key)."""


class NotFoundError(ApiError):
    """The addressed record no longer exists."""


class ConflictError(ApiError):
    """A referential constraint blocked the operation (e.g. client still owns vehicles)."""


# --- workflow-level ---


class BillingError(CarWashError):
    """A billing or assignment invariant was violated."""


class InvalidDuration(BillingError):
    def __init__(self, entry_time: datetime, exit_time: datetime) -> None:
        super().__init__(
            f"Exit time {exit_time.isoformat()} is not after entry time {entry_time.isoformat()}"
        )
        self.entry_time = entry_time
        self.exit_time = exit_time


class EmptyServiceSet(BillingError):
    def __init__(self) -> None:
        super().__init__("An invoice needs at least one service line")


class NoServicesSelected(BillingError):
    def __init__(self, plate: str) -> None:
        super().__init__(f"No services selected for vehicle {plate}")
        self.plate = plate


class DuplicateServiceSelection(BillingError):
    def __init__(self, plate: str, service_ids: Iterable[int]) -> None:
        self.plate = plate
        self.service_ids = sorted(set(service_ids))
        super().__init__(
            f"Services selected more than once for vehicle {plate}: "
            + ", ".join(str(s) for s in self.service_ids)
        )


class NoUnbilledAssignments(BillingError):
    def __init__(self, plate: str) -> None:
        super().__init__(f"Vehicle {plate} has no unbilled services")
        self.plate = plate


class TicketAlreadyInvoiced(BillingError):
    def __init__(self, ticket_id: int, invoice_id: int | None = None) -> None:
        msg = f"Parking ticket {ticket_id} is already invoiced"
        if invoice_id is not None:
            msg += f" (invoice {invoice_id})"
        super().__init__(msg)
        self.ticket_id = ticket_id
        self.invoice_id = invoice_id


class InvoiceCreatedBillingIncomplete(BillingError):
    """
    The API accepted the invoice but the generation did not finish cleanly:
    its answer could not be read (`invoice` is None, `invoice_error` is set),
    some assignments could not be marked billed (`unbilled_ids`), or both.
    An operator has to reconcile the records. Retrying the generation would
    bill those services twice.
    """

    def __init__(
        self,
        invoice: Any,
        plate: str,
        unbilled_ids: list[int],
        errors: dict[int, Exception],
        invoice_error: Exception | None = None,
    ) -> None:
        invoice_id = getattr(invoice, "id", None)
        label = f"Invoice {invoice_id}" if invoice_id is not None else "An invoice"
        parts = [f"{label} for vehicle {plate} was created"]
        if invoice_error is not None:
            parts.append(f"but the API answer could not be read ({invoice_error})")
        if unbilled_ids:
            parts.append(
                f"assignments {', '.join(str(i) for i in unbilled_ids)} "
                "could not be marked as billed"
            )
        super().__init__(
            ", ".join(parts) + ". Do not generate the invoice again; check it manually."
        )
        self.invoice = invoice
        self.plate = plate
        self.unbilled_ids = unbilled_ids
        self.errors = errors
        self.invoice_error = invoice_error
