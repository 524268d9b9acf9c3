"""Checkout coordinator: the state machine that turns a paid cart into a sale.

    building ──begin──▶ reconciling ──commit──▶ committing ──▶ committed
                                                     └──────▶ failed ──commit──▶ ...

The commit is all-or-nothing. Stock is re-checked against the catalog for
every line before anything is mutated; lines are then decremented one by
one, and any rejection (or a persistence failure afterwards) re-increments
every decrement already applied, newest first, before the error is raised.
A commit on a ``building`` session goes through ``begin`` first.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID, uuid4

from backend.salepoint.core.errors import (
    CommitError,
    CommitInProgress,
    EmptyCart,
    InvalidTransition,
    NotFound,
    PersistenceFailed,
    SaleError,
    StockMutationFailed,
)
from backend.salepoint.schemas.sale import (
    LineItem,
    ReconciliationState,
    SaleLineRecord,
    SaleRecord,
    Totals,
)
from backend.salepoint.schemas.session import CheckoutState, SaleSession
from backend.salepoint.services.interfaces import CatalogService, SaleRecorder, StockService
from backend.salepoint.services.payments import ensure_settled, reconcile
from backend.salepoint.services.pricing import TaxPolicy, compute_totals, money

logger = logging.getLogger(__name__)

COMMITTABLE = {CheckoutState.RECONCILING, CheckoutState.FAILED}


class StockReservation:
    """Decrement for one line, with its compensating increment."""

    def __init__(self, stock: StockService, line: LineItem, reason: str) -> None:
        self.stock = stock
        self.product_id: UUID = line.product.id
        self.product_name = line.product.name
        self.quantity = line.quantity
        self.reason = reason

    def run(self) -> None:
        try:
            result = self.stock.decrement_stock(self.product_id, self.quantity, self.reason)
        except Exception as exc:
            raise StockMutationFailed(
                f"Stock update failed for '{self.product_name}': {exc}",
                product_id=self.product_id,
                partial=True,
            ) from exc
        if not result.ok:
            raise StockMutationFailed(
                result.message or f"Stock update rejected for '{self.product_name}'",
                product_id=self.product_id,
                partial=result.partial,
            )
        logger.info("[%s] reserved %s x %s", self.reason, self.quantity, self.product_name)

    def compensate(self) -> None:
        result = self.stock.increment_stock(self.product_id, self.quantity, f"{self.reason}:rollback")
        if not result.ok:
            raise RuntimeError(result.message or "increment rejected")
        logger.info("[%s] released %s x %s", self.reason, self.quantity, self.product_name)


class CheckoutCoordinator:
    def __init__(
        self,
        catalog: CatalogService,
        stock: StockService,
        recorder: SaleRecorder,
        tax_policy: TaxPolicy,
    ) -> None:
        self.catalog = catalog
        self.stock = stock
        self.recorder = recorder
        self.tax_policy = tax_policy

    # ─── Derived state ───────────────────────────────────────────────────

    def totals(self, session: SaleSession) -> Totals:
        return compute_totals(session.cart.lines, session.discount, self.tax_policy)

    def reconciliation(self, session: SaleSession) -> ReconciliationState:
        return reconcile(session.payments, self.totals(session).total)

    def can_commit(self, session: SaleSession) -> bool:
        try:
            self.check_ready(session)
        except SaleError:
            return False
        return True

    # ─── Transitions ─────────────────────────────────────────────────────

    def begin(self, session: SaleSession) -> SaleSession:
        """``building -> reconciling``; needs a non-empty cart."""
        if session.state == CheckoutState.COMMITTING:
            raise CommitInProgress()
        if session.cart.is_empty:
            raise EmptyCart()
        if session.state == CheckoutState.RECONCILING:
            return session
        return session.model_copy(update={"state": CheckoutState.RECONCILING, "last_error": None})

    def check_ready(self, session: SaleSession) -> ReconciliationState:
        if session.state == CheckoutState.BUILDING:
            session = self.begin(session)
        if session.state == CheckoutState.COMMITTING:
            raise CommitInProgress()
        if session.state not in COMMITTABLE:
            raise InvalidTransition(f"Cannot commit a sale in state '{session.state.value}'")
        if session.cart.is_empty:
            raise EmptyCart()
        state = self.reconciliation(session)
        ensure_settled(session.payments, state)
        return state

    def cancel(self, session: SaleSession) -> SaleSession:
        """Drop the payments and go back to ``building``. Never touches stock."""
        if session.state == CheckoutState.COMMITTING:
            raise CommitInProgress()
        return session.model_copy(update={
            "state": CheckoutState.BUILDING,
            "payments": (),
            "last_error": None,
        })

    def commit(self, session: SaleSession) -> tuple[SaleSession, SaleRecord]:
        """Reserve stock, persist the sale and return a cleared session.

        On a commit-phase failure the raised ``CommitError`` carries the
        ``failed`` session (cart and payments untouched) as ``exc.session``.
        """
        if session.state == CheckoutState.BUILDING:
            session = self.begin(session)
        state = self.check_ready(session)
        totals = self.totals(session)
        sale_id = uuid4()
        reason = f"sale:{sale_id}"
        logger.info(
            "[%s] commit start session=%s lines=%s total=%s",
            reason, session.id, len(session.cart.lines), totals.total,
        )

        try:
            reservations = self._reserve_stock(session, reason)
            try:
                sale = self._build_sale(sale_id, session, totals, state)
                receipt_number = self.recorder.record_sale(sale)
            except Exception as exc:
                logger.error("[%s] sale could not be recorded: %s", reason, exc)
                self._release(reservations, reason)
                raise PersistenceFailed(f"Sale could not be recorded: {exc}") from exc
        except CommitError as exc:
            exc.session = session.model_copy(update={
                "state": CheckoutState.FAILED,
                "last_error": exc.to_detail(),
            })
            logger.warning("[%s] commit failed: %s", reason, exc)
            raise

        sale = sale.model_copy(update={"receipt_number": receipt_number})
        logger.info("[%s] commit ok receipt=%s", reason, receipt_number)
        committed = SaleSession(
            id=session.id,
            state=CheckoutState.COMMITTED,
            last_sale=sale,
        )
        return committed, sale

    # ─── Commit steps ────────────────────────────────────────────────────

    def _precheck(self, session: SaleSession) -> None:
        for line in session.cart.lines:
            try:
                current = self.catalog.get_product(line.product.id)
            except NotFound as exc:
                raise StockMutationFailed(
                    f"'{line.product.name}' is no longer in the catalog",
                    product_id=line.product.id,
                ) from exc
            except Exception as exc:
                raise StockMutationFailed(
                    f"Stock check failed for '{line.product.name}': {exc}",
                    product_id=line.product.id,
                ) from exc
            if current.stock < line.quantity:
                raise StockMutationFailed(
                    f"Insufficient stock for '{current.name}': "
                    f"{current.stock} available, {line.quantity} requested",
                    product_id=line.product.id,
                )

    def _reserve_stock(self, session: SaleSession, reason: str) -> list[StockReservation]:
        self._precheck(session)
        completed: list[StockReservation] = []
        for line in session.cart.lines:
            step = StockReservation(self.stock, line, reason)
            try:
                step.run()
            except StockMutationFailed as exc:
                if exc.partial:
                    logger.error(
                        "[%s] PARTIAL DECREMENT of %s x %s left to the stock service: %s",
                        reason, step.quantity, step.product_name, exc,
                    )
                if not self._release(completed, reason):
                    exc.partial = True
                raise
            completed.append(step)
        return completed

    def _release(self, reservations: list[StockReservation], reason: str) -> bool:
        """Undo reservations newest first; False if any could not be undone."""
        clean = True
        for step in reversed(reservations):
            try:
                step.compensate()
            except Exception as exc:
                clean = False
                logger.error(
                    "[%s] COMPENSATION FAILED for %s x %s: %s",
                    reason, step.quantity, step.product_name, exc,
                )
        return clean

    def _build_sale(
        self,
        sale_id: UUID,
        session: SaleSession,
        totals: Totals,
        state: ReconciliationState,
    ) -> SaleRecord:
        cart = session.cart
        return SaleRecord(
            id=sale_id,
            lines=tuple(
                SaleLineRecord(
                    product_id=line.product.id,
                    name=line.product.name,
                    quantity=line.quantity,
                    unit_price=line.product.price,
                    line_total=money(line.line_total),
                )
                for line in cart.lines
            ),
            subtotal=totals.subtotal,
            discount=session.discount,
            discount_amount=totals.discount_amount,
            tax_amount=totals.tax_amount,
            total=totals.total,
            payments=session.payments,
            amount_received=state.amount_paid,
            change=state.change,
            customer=cart.customer,
            note=cart.note,
            created_at=datetime.now(timezone.utc),
        )
