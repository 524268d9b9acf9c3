from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, RootModel

from backend.salepoint.schemas.sale import (
    Cart,
    DiscountSpec,
    PaymentContribution,
    PaymentMethod,
    ReconciliationState,
    SaleRecord,
    Totals,
)


class CheckoutState(str, Enum):
    BUILDING = "building"
    RECONCILING = "reconciling"
    COMMITTING = "committing"
    COMMITTED = "committed"
    FAILED = "failed"


class SaleSession(BaseModel):
    """The whole in-progress sale of one till session.

    Never mutated in place: every action produces a new value.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    cart: Cart = Cart()
    discount: DiscountSpec | None = None
    payments: tuple[PaymentContribution, ...] = ()
    state: CheckoutState = CheckoutState.BUILDING
    last_sale: SaleRecord | None = None
    last_error: dict | None = None


# ─── Actions ─────────────────────────────────────────────────────────────────


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class AddItem(_Action):
    type: Literal["add_item"] = "add_item"
    product_id: UUID


class SetQuantity(_Action):
    type: Literal["set_quantity"] = "set_quantity"
    product_id: UUID
    quantity: int
    clamp: bool = False


class RemoveItem(_Action):
    type: Literal["remove_item"] = "remove_item"
    product_id: UUID


class ClearCart(_Action):
    type: Literal["clear_cart"] = "clear_cart"


class SetCustomer(_Action):
    type: Literal["set_customer"] = "set_customer"
    customer_id: UUID | None = None


class SetNote(_Action):
    type: Literal["set_note"] = "set_note"
    note: str = ""


class SetDiscount(_Action):
    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    type: Literal["set_discount"] = "set_discount"
    discount: DiscountSpec | None = None


class BeginCheckout(_Action):
    type: Literal["begin_checkout"] = "begin_checkout"


class AddPayment(_Action):
    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    type: Literal["add_payment"] = "add_payment"
    method: PaymentMethod
    # None means "whatever is still owed"
    amount: Decimal | None = None
    reference: str | None = None


class UpdatePayment(_Action):
    model_config = ConfigDict(frozen=True, allow_inf_nan=True)

    type: Literal["update_payment"] = "update_payment"
    index: int
    amount: Decimal | None = None
    reference: str | None = None


class RemovePayment(_Action):
    type: Literal["remove_payment"] = "remove_payment"
    index: int


class Park(_Action):
    type: Literal["park"] = "park"


class Resume(_Action):
    type: Literal["resume"] = "resume"
    parked_id: UUID


class Commit(_Action):
    type: Literal["commit"] = "commit"


class Cancel(_Action):
    type: Literal["cancel"] = "cancel"


Action = Annotated[
    Union[
        AddItem,
        SetQuantity,
        RemoveItem,
        ClearCart,
        SetCustomer,
        SetNote,
        SetDiscount,
        BeginCheckout,
        AddPayment,
        UpdatePayment,
        RemovePayment,
        Park,
        Resume,
        Commit,
        Cancel,
    ],
    Field(discriminator="type"),
]


class ActionRequest(RootModel[Action]):
    """Request body carrying exactly one action, tagged by ``type``."""


# ─── Views ───────────────────────────────────────────────────────────────────


class SessionOut(BaseModel):
    """Everything the till UI renders for one session."""

    id: UUID
    currency: str
    state: CheckoutState
    cart: Cart
    discount: DiscountSpec | None
    payments: list[PaymentContribution]
    totals: Totals
    reconciliation: ReconciliationState
    can_commit: bool
    last_sale: SaleRecord | None = None
    last_error: dict | None = None
