"""Sale session reducer.

``SaleEngine.dispatch(session, action)`` is the only way a ``SaleSession``
changes: it returns the next session or raises a ``SaleError`` and leaves
the given session as it was.
"""

from __future__ import annotations

import logging
from functools import singledispatchmethod

from backend.salepoint.core.config import settings
from backend.salepoint.core.errors import CommitInProgress, SaleInProgress
from backend.salepoint.schemas.session import (
    AddItem,
    AddPayment,
    BeginCheckout,
    Cancel,
    CheckoutState,
    ClearCart,
    Commit,
    Park,
    RemoveItem,
    RemovePayment,
    Resume,
    SaleSession,
    SessionOut,
    SetCustomer,
    SetDiscount,
    SetNote,
    SetQuantity,
    UpdatePayment,
)
from backend.salepoint.services import cart as cart_ops
from backend.salepoint.services import payments as payment_ops
from backend.salepoint.services.checkout import CheckoutCoordinator
from backend.salepoint.services.interfaces import CustomerDirectory
from backend.salepoint.services.parking import ParkedSaleStore
from backend.salepoint.services.pricing import validate_discount

logger = logging.getLogger(__name__)


class SaleEngine:
    def __init__(
        self,
        checkout: CheckoutCoordinator,
        customers: CustomerDirectory,
        parked: ParkedSaleStore,
        currency: str | None = None,
    ) -> None:
        self.checkout = checkout
        self.currency = currency or settings.CURRENCY
        self.catalog = checkout.catalog
        self.customers = customers
        self.parked = parked

    def view(self, session: SaleSession) -> SessionOut:
        return SessionOut(
            id=session.id,
            currency=self.currency,
            state=session.state,
            cart=session.cart,
            discount=session.discount,
            payments=list(session.payments),
            totals=self.checkout.totals(session),
            reconciliation=self.checkout.reconciliation(session),
            can_commit=self.checkout.can_commit(session),
            last_sale=session.last_sale,
            last_error=session.last_error,
        )

    def dispatch(self, session: SaleSession, action: object) -> SaleSession:
        if session.state == CheckoutState.COMMITTING:
            raise CommitInProgress()
        new = self._apply(action, session)
        if new is not session:
            logger.debug(
                "session=%s %s: %s -> %s",
                session.id, type(action).__name__, session.state.value, new.state.value,
            )
        return new

    # ─── Helpers ─────────────────────────────────────────────────────────

    @staticmethod
    def _editing(session: SaleSession, **update: object) -> SaleSession:
        """Apply a cart edit.

        Editing after a commit starts the next sale; editing after a failed
        commit goes back to reconciling with the payments kept.
        """
        if session.state == CheckoutState.COMMITTED:
            update.update(state=CheckoutState.BUILDING, last_sale=None)
        elif session.state == CheckoutState.FAILED:
            update["state"] = CheckoutState.RECONCILING
        update["last_error"] = None
        return session.model_copy(update=update)

    # ─── Actions ─────────────────────────────────────────────────────────

    @singledispatchmethod
    def _apply(self, action: object, session: SaleSession) -> SaleSession:
        raise TypeError(f"Unknown sale action {type(action).__name__}")

    @_apply.register
    def _(self, action: AddItem, session: SaleSession) -> SaleSession:
        product = self.catalog.get_product(action.product_id)
        return self._editing(session, cart=cart_ops.add_item(session.cart, product))

    @_apply.register
    def _(self, action: SetQuantity, session: SaleSession) -> SaleSession:
        cart = cart_ops.set_quantity(session.cart, action.product_id, action.quantity, clamp=action.clamp)
        return self._editing(session, cart=cart)

    @_apply.register
    def _(self, action: RemoveItem, session: SaleSession) -> SaleSession:
        return self._editing(session, cart=cart_ops.remove_item(session.cart, action.product_id))

    @_apply.register
    def _(self, action: ClearCart, session: SaleSession) -> SaleSession:
        return SaleSession(id=session.id)

    @_apply.register
    def _(self, action: SetCustomer, session: SaleSession) -> SaleSession:
        customer = self.customers.get(action.customer_id) if action.customer_id else None
        return self._editing(session, cart=cart_ops.set_customer(session.cart, customer))

    @_apply.register
    def _(self, action: SetNote, session: SaleSession) -> SaleSession:
        return self._editing(session, cart=cart_ops.set_note(session.cart, action.note))

    @_apply.register
    def _(self, action: SetDiscount, session: SaleSession) -> SaleSession:
        return self._editing(session, discount=validate_discount(action.discount))

    @_apply.register
    def _(self, action: BeginCheckout, session: SaleSession) -> SaleSession:
        return self.checkout.begin(session)

    @_apply.register
    def _(self, action: AddPayment, session: SaleSession) -> SaleSession:
        session = self.checkout.begin(session)
        amount = action.amount
        if amount is None:
            amount = payment_ops.suggested_amount(self.checkout.reconciliation(session))
        payments = payment_ops.add_contribution(session.payments, action.method, amount, action.reference)
        return session.model_copy(update={"payments": payments})

    @_apply.register
    def _(self, action: UpdatePayment, session: SaleSession) -> SaleSession:
        update: dict = {}
        if action.amount is not None:
            update["amount"] = action.amount
        if "reference" in action.model_fields_set:
            update["reference"] = action.reference
        payments = payment_ops.update_contribution(session.payments, action.index, **update)
        return session.model_copy(update={"payments": payments, "last_error": None})

    @_apply.register
    def _(self, action: RemovePayment, session: SaleSession) -> SaleSession:
        payments = payment_ops.remove_contribution(session.payments, action.index)
        return session.model_copy(update={"payments": payments, "last_error": None})

    @_apply.register
    def _(self, action: Park, session: SaleSession) -> SaleSession:
        self.parked.park(session.cart)
        return SaleSession(id=session.id)

    @_apply.register
    def _(self, action: Resume, session: SaleSession) -> SaleSession:
        if not session.cart.is_empty:
            raise SaleInProgress()
        cart = self.parked.resume(action.parked_id)
        return SaleSession(id=session.id, cart=cart)

    @_apply.register
    def _(self, action: Commit, session: SaleSession) -> SaleSession:
        committed, _sale = self.checkout.commit(session)
        return committed

    @_apply.register
    def _(self, action: Cancel, session: SaleSession) -> SaleSession:
        return self.checkout.cancel(session)
