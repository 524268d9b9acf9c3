"""Cart pricing: subtotal, discount, per-line tax and total.

Tax is charged per line on the line's share of the discounted subtotal, so
a cart mixing taxed and zero-rated categories carries the discount
proportionally across both before tax is applied:

    ratio            = discount_amount / subtotal      (0 when subtotal is 0)
    line_after_disc  = line_total * (1 - ratio)
    line_tax         = line_after_disc * rate(category)
    total            = subtotal - discount_amount + sum(line_tax)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, ROUND_HALF_UP

from backend.salepoint.core.config import settings
from backend.salepoint.core.errors import InvalidDiscount
from backend.salepoint.schemas.sale import DiscountSpec, DiscountType, LineItem, Totals

Q = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TaxPolicy:
    """Maps a product category to its tax rate.

    Rates are given in percent (``16`` means 16%); categories not listed
    fall back to ``default_rate``.
    """

    def __init__(self, rates: Mapping[str, Decimal] | None = None, default_rate: Decimal = ZERO) -> None:
        self._rates = {category: Decimal(str(rate)) for category, rate in (rates or {}).items()}
        self.default_rate = Decimal(str(default_rate))

    @classmethod
    def from_settings(cls) -> TaxPolicy:
        return cls(settings.TAX_RATES, settings.DEFAULT_TAX_RATE)

    def rate_for(self, category: str) -> Decimal:
        """Return the rate for ``category`` as a fraction (0.16)."""
        return self._rates.get(category, self.default_rate) / HUNDRED


def money(value: Decimal) -> Decimal:
    return value.quantize(Q, rounding=ROUND_HALF_UP)


def validate_discount(discount: DiscountSpec | None) -> DiscountSpec | None:
    """Reject discount input that must never reach ``compute_totals``."""
    if discount is None:
        return None
    value = discount.value
    if not value.is_finite():
        raise InvalidDiscount("Discount must be a finite number")
    if value < ZERO:
        raise InvalidDiscount("Discount cannot be negative")
    if discount.type == DiscountType.PERCENTAGE and value > HUNDRED:
        raise InvalidDiscount("Percentage discount cannot exceed 100")
    return discount


def resolve_discount(subtotal: Decimal, discount: DiscountSpec | None) -> Decimal:
    if discount is None or subtotal <= ZERO:
        return ZERO
    if discount.type == DiscountType.AMOUNT:
        amount = min(discount.value, subtotal)
    else:
        amount = subtotal * (discount.value / HUNDRED)
    return max(ZERO, min(amount, subtotal))


def compute_totals(
    lines: Iterable[LineItem],
    discount: DiscountSpec | None,
    tax_policy: TaxPolicy,
) -> Totals:
    """Price a set of line items. Pure: same input, same output."""
    lines = list(lines)
    if not lines:
        return Totals()

    line_totals = [line.product.price * line.quantity for line in lines]
    subtotal = sum(line_totals, ZERO)
    discount_amount = resolve_discount(subtotal, discount)

    ratio = discount_amount / subtotal if subtotal > ZERO else ZERO
    tax_amount = ZERO
    for line, line_total in zip(lines, line_totals):
        after_discount = line_total * (1 - ratio)
        tax_amount += after_discount * tax_policy.rate_for(line.product.category)

    subtotal = money(subtotal)
    discount_amount = money(discount_amount)
    tax_amount = money(tax_amount)
    return Totals(
        subtotal=subtotal,
        discount_amount=discount_amount,
        tax_amount=tax_amount,
        total=subtotal - discount_amount + tax_amount,
    )
