"""
Billing arithmetic for parking and car wash invoices.

Pure functions, no I/O. Every invoice total in the package is computed here;
nothing else rounds or sums amounts.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from mrcarwash.domains.errors import EmptyServiceSet, InvalidDuration
from mrcarwash.domains.models import ParkingTariff, ServiceSnapshot

_SECONDS_PER_HOUR = Decimal(3600)
_MICROSECONDS_PER_SECOND = Decimal(1_000_000)


def _elapsed_seconds(entry_time: datetime, exit_time: datetime) -> Decimal:
    elapsed = exit_time - entry_time
    if elapsed <= timedelta(0):
        raise InvalidDuration(entry_time, exit_time)
    # Integer microseconds keep the division exact.
    return Decimal(elapsed // timedelta(microseconds=1)) / _MICROSECONDS_PER_SECOND


def billable_hours(tariff: ParkingTariff, entry_time: datetime, exit_time: datetime) -> Decimal:
    """
    Elapsed time rounded up to the next multiple of the tariff's fraction.

    Never less than one fraction (minimum charge).

    Raises:
        InvalidDuration: If exit_time is not after entry_time.
    """
    seconds = _elapsed_seconds(entry_time, exit_time)
    fraction_seconds = tariff.fraction_hours * _SECONDS_PER_HOUR
    fractions = max(1, math.ceil(seconds / fraction_seconds))
    return fractions * tariff.fraction_hours


def parking_total(tariff: ParkingTariff, entry_time: datetime, exit_time: datetime) -> Decimal:
    """
    Parking charge: billable hours times the hourly rate.

    Example: Hora=2, Fraccion=1, 09:00 -> 09:45 bills 1 hour, total 2.
    """
    return billable_hours(tariff, entry_time, exit_time) * tariff.hourly_rate


def car_wash_total(snapshots: Iterable[ServiceSnapshot]) -> Decimal:
    """
    Sum of the snapshot tariffs.

    Raises:
        EmptyServiceSet: If there are no snapshots.
    """
    lines = list(snapshots)
    if not lines:
        raise EmptyServiceSet()
    return sum((s.tariff for s in lines), Decimal(0))
