"""Payment reconciler.

One sale can be settled by any number of contributions. Cash-only
"amount received" checkout is simply a single cash contribution, and the
split-payment flow is the same list with more entries.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from backend.salepoint.core.errors import (
    ContributionNotFound,
    InvalidAmount,
    MissingReference,
    UnderPayment,
)
from backend.salepoint.schemas.sale import PaymentContribution, PaymentMethod, ReconciliationState
from backend.salepoint.services.pricing import ZERO, money

Payments = tuple[PaymentContribution, ...]

_UNSET = object()


def _checked_amount(amount: object) -> Decimal:
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount(f"Payment amount {amount!r} is not a number")
    if not value.is_finite():
        raise InvalidAmount("Payment amount must be a finite number")
    if value < ZERO:
        raise InvalidAmount("Payment amount cannot be negative")
    return money(value)


def _clean_reference(reference: str | None) -> str | None:
    if reference is None:
        return None
    return reference.strip() or None


def _check_index(payments: Payments, index: int) -> None:
    if not 0 <= index < len(payments):
        raise ContributionNotFound(f"No payment at position {index}")


def add_contribution(
    payments: Payments,
    method: PaymentMethod,
    amount: object,
    reference: str | None = None,
) -> Payments:
    contribution = PaymentContribution(
        method=method,
        amount=_checked_amount(amount),
        reference=_clean_reference(reference),
    )
    return payments + (contribution,)


def update_contribution(
    payments: Payments,
    index: int,
    amount: object = _UNSET,
    reference: object = _UNSET,
) -> Payments:
    """Change the amount and/or reference of an existing contribution."""
    _check_index(payments, index)
    update: dict = {}
    if amount is not _UNSET and amount is not None:
        update["amount"] = _checked_amount(amount)
    if reference is not _UNSET:
        update["reference"] = _clean_reference(reference)  # type: ignore[arg-type]
    updated = payments[index].model_copy(update=update)
    return payments[:index] + (updated,) + payments[index + 1:]


def remove_contribution(payments: Payments, index: int) -> Payments:
    _check_index(payments, index)
    return payments[:index] + payments[index + 1:]


def reconcile(payments: Payments, amount_due: Decimal) -> ReconciliationState:
    """Match the contributions against ``amount_due``.

    Digital payments without a reference are not counted yet.
    """
    paid = sum((p.amount for p in payments if p.is_complete), ZERO)
    return ReconciliationState(
        amount_due=amount_due,
        amount_paid=paid,
        remaining=max(ZERO, amount_due - paid),
        change=max(ZERO, paid - amount_due),
    )


def suggested_amount(state: ReconciliationState) -> Decimal:
    """Default amount for a new contribution: whatever is still owed."""
    return state.remaining if state.remaining > ZERO else ZERO


def ensure_settled(payments: Payments, state: ReconciliationState) -> None:
    """Raise unless the contributions fully and validly cover the amount due."""
    for index, payment in enumerate(payments):
        if not payment.is_complete:
            raise MissingReference(index, payment.method.value)
    if not state.is_settled:
        raise UnderPayment(state.remaining)
