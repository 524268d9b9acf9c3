from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, computed_field

from backend.salepoint.schemas.catalog import CatalogProduct, CustomerRef

ZERO = Decimal("0")


# ─── Enums ───────────────────────────────────────────────────────────────────


class DiscountType(str, Enum):
    AMOUNT = "amount"
    PERCENTAGE = "percentage"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MPESA = "mpesa"
    AIRTEL = "airtel"
    VOUCHER = "voucher"

    @property
    def requires_reference(self) -> bool:
        return self is not PaymentMethod.CASH


# ─── Cart ────────────────────────────────────────────────────────────────────


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: CatalogProduct
    quantity: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class Cart(BaseModel):
    """Line items in insertion order, one line per product id."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[LineItem, ...] = ()
    customer: CustomerRef | None = None
    note: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def line_for(self, product_id: UUID) -> LineItem | None:
        for line in self.lines:
            if line.product.id == product_id:
                return line
        return None


class DiscountSpec(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    type: DiscountType
    value: Decimal


class Totals(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO


# ─── Payments ────────────────────────────────────────────────────────────────


class PaymentContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod
    amount: Decimal
    reference: str | None = None

    @property
    def is_complete(self) -> bool:
        """Cash always counts; digital payments count once referenced."""
        if not self.method.requires_reference:
            return True
        return bool(self.reference and self.reference.strip())


class ReconciliationState(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_due: Decimal = ZERO
    amount_paid: Decimal = ZERO
    remaining: Decimal = ZERO
    change: Decimal = ZERO

    @property
    def is_settled(self) -> bool:
        return self.remaining == ZERO


# ─── Finalized sale ──────────────────────────────────────────────────────────


class SaleLineRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class SaleRecord(BaseModel):
    """Finalized sale handed to persistence and receipt rendering."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    receipt_number: str | None = None
    lines: tuple[SaleLineRecord, ...]
    subtotal: Decimal
    discount: DiscountSpec | None = None
    discount_amount: Decimal
    tax_amount: Decimal
    total: Decimal
    payments: tuple[PaymentContribution, ...]
    amount_received: Decimal
    change: Decimal
    customer: CustomerRef | None = None
    note: str = ""
    created_at: datetime
    status: str = "completed"


# ─── Parked sales ────────────────────────────────────────────────────────────


class ParkedSale(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    cart: Cart
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def item_count(self) -> int:
        return self.cart.item_count


# ─── Sale history ────────────────────────────────────────────────────────────


class SaleListItemOut(BaseModel):
    id: UUID
    receipt_number: str
    created_at: datetime
    customer_name: str | None
    item_count: int
    payment_methods: list[str]
    total: str
    status: str


class SalesSummaryOut(BaseModel):
    currency: str
    sale_count: int
    total_revenue: str
    average_sale: str
