"""Billing rules: parking and car wash totals."""

from mrcarwash.domains.billing.pricing import billable_hours, car_wash_total, parking_total

__all__ = ["billable_hours", "car_wash_total", "parking_total"]
