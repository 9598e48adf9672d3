from __future__ import annotations

from typing import Any


def _money(value: float) -> float:
    return round(float(value), 2)


def final_price(paid_amount: float | None, discount_amount: float | None) -> float:
    return _money(max(0.0, float(paid_amount or 0.0) - float(discount_amount or 0.0)))


def discount_amount_from_percentage(paid_amount: float | None, percentage: float | None) -> float:
    return _money(float(paid_amount or 0.0) * float(percentage or 0.0) / 100.0)


def apply_discount_update(
    webinar: Any,
    discount_percentage: float | None = None,
    discount_amount: float | None = None,
) -> None:
    """Store discount fields on a webinar.

    The two fields are kept independently. A percentage on its own also sets
    the amount from the current paid_amount; an explicit amount is stored as
    sent and wins over whatever the percentage would give.
    """
    if discount_percentage is not None:
        if discount_percentage < 0 or discount_percentage > 100:
            raise ValueError("discount_percentage must be between 0 and 100")
        webinar.discount_percentage = float(discount_percentage) or None
        if discount_amount is None:
            webinar.discount_amount = discount_amount_from_percentage(webinar.paid_amount, discount_percentage) or None

    if discount_amount is not None:
        if discount_amount < 0:
            raise ValueError("discount_amount must be >= 0")
        webinar.discount_amount = _money(discount_amount) or None


def webinar_price_fields(webinar: Any) -> dict:
    return {
        "isPaid": bool(webinar.is_paid),
        "paidAmount": webinar.paid_amount,
        "discountPercentage": webinar.discount_percentage,
        "discountAmount": webinar.discount_amount,
        "finalPrice": final_price(webinar.paid_amount, webinar.discount_amount) if webinar.is_paid else 0.0,
    }
