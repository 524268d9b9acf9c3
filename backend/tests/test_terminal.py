"""Tests for terminal session bookkeeping and commit serialization.

These use in-memory collaborators so commits can be paused mid-flight.
"""
from __future__ import annotations

import threading
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from backend.salepoint.core.errors import (
    CommitInProgress,
    PersistenceFailed,
    ProductNotFound,
    SessionNotFound,
    StockMutationFailed,
    UnderPayment,
)
from backend.salepoint.schemas.catalog import CatalogProduct, CustomerCreate, CustomerRef
from backend.salepoint.schemas.sale import PaymentMethod, SaleRecord
from backend.salepoint.schemas.session import AddItem, AddPayment, Cancel, CheckoutState, Commit
from backend.salepoint.services.checkout import CheckoutCoordinator
from backend.salepoint.services.interfaces import StockMutation
from backend.salepoint.services.pricing import TaxPolicy
from backend.salepoint.services.session import SaleEngine
from backend.salepoint.services.terminal import Terminal


# ─── In-memory collaborators ─────────────────────────────────────────────────


class MemoryShop:
    """Catalog and stock service over one dict."""

    def __init__(self, *products: CatalogProduct) -> None:
        self.products = {p.id: p for p in products}

    def get_product(self, product_id: UUID) -> CatalogProduct:
        if product_id not in self.products:
            raise ProductNotFound(str(product_id))
        return self.products[product_id]

    def search(self, query: str = "", category: str | None = None) -> list[CatalogProduct]:
        return list(self.products.values())

    def _shift(self, product_id: UUID, delta: int) -> StockMutation:
        product = self.products[product_id]
        if product.stock + delta < 0:
            return StockMutation(ok=False, message="insufficient")
        self.products[product_id] = product.model_copy(update={"stock": product.stock + delta})
        return StockMutation(ok=True)

    def decrement_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation:
        return self._shift(product_id, -quantity)

    def increment_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation:
        return self._shift(product_id, quantity)


class LockedShop(MemoryShop):
    """Catalog reads fail once ``locked`` is set."""

    locked = False

    def get_product(self, product_id: UUID) -> CatalogProduct:
        if self.locked:
            raise RuntimeError("database is locked")
        return super().get_product(product_id)


class NoCustomers:
    def get(self, customer_id: UUID) -> CustomerRef:
        raise NotImplementedError

    def search(self, query: str) -> list[CustomerRef]:
        return []

    def create(self, fields: CustomerCreate) -> CustomerRef:
        raise NotImplementedError


class GatedRecorder:
    """Blocks inside ``record_sale`` until ``release`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.entered = threading.Event()
        self.release = threading.Event()
        self.fail = fail
        self.sales: list[SaleRecord] = []

    def record_sale(self, sale: SaleRecord) -> str:
        self.entered.set()
        self.release.wait(timeout=5)
        if self.fail:
            raise RuntimeError("database is locked")
        self.sales.append(sale)
        return f"R-TEST-{len(self.sales):06d}"


@pytest.fixture()
def bread() -> CatalogProduct:
    return CatalogProduct(id=uuid4(), name="Bread Loaf", price=Decimal("60"), category="Bakery", stock=25)


@pytest.fixture()
def shop(bread: CatalogProduct) -> MemoryShop:
    return MemoryShop(bread)


def _engine(shop: MemoryShop, recorder: GatedRecorder, terminal: Terminal) -> SaleEngine:
    checkout = CheckoutCoordinator(shop, shop, recorder, TaxPolicy())
    return SaleEngine(checkout, NoCustomers(), terminal.parked)


def _ready(terminal: Terminal, engine: SaleEngine, bread: CatalogProduct) -> UUID:
    session = terminal.open_session()
    terminal.dispatch(session.id, AddItem(product_id=bread.id), engine)
    terminal.dispatch(session.id, AddPayment(method=PaymentMethod.CASH), engine)
    return session.id


# ─── TestTerminal ────────────────────────────────────────────────────────────


class TestTerminal:
    def test_dispatch_stores_new_session(self, shop: MemoryShop, bread: CatalogProduct) -> None:
        terminal = Terminal("till-1")
        recorder = GatedRecorder()
        recorder.release.set()
        engine = _engine(shop, recorder, terminal)

        session_id = _ready(terminal, engine, bread)
        assert terminal.get(session_id).state == CheckoutState.RECONCILING

        terminal.dispatch(session_id, Commit(), engine)
        assert terminal.get(session_id).state == CheckoutState.COMMITTED
        assert shop.products[bread.id].stock == 24

    def test_rejected_action_keeps_session(self, shop: MemoryShop, bread: CatalogProduct) -> None:
        terminal = Terminal("till-1")
        engine = _engine(shop, GatedRecorder(), terminal)
        session = terminal.open_session()
        terminal.dispatch(session.id, AddItem(product_id=bread.id), engine)
        before = terminal.get(session.id)

        with pytest.raises(UnderPayment):
            terminal.dispatch(session.id, Commit(), engine)
        assert terminal.get(session.id) == before

    def test_commit_failure_leaves_failed_session(self, shop: MemoryShop, bread: CatalogProduct) -> None:
        terminal = Terminal("till-1")
        recorder = GatedRecorder(fail=True)
        recorder.release.set()
        engine = _engine(shop, recorder, terminal)
        session_id = _ready(terminal, engine, bread)

        with pytest.raises(PersistenceFailed):
            terminal.dispatch(session_id, Commit(), engine)

        failed = terminal.get(session_id)
        assert failed.state == CheckoutState.FAILED
        assert failed.last_error["code"] == "persistence_failed"
        assert len(failed.payments) == 1
        assert shop.products[bread.id].stock == 25

    def test_catalog_error_leaves_failed_session(self, bread: CatalogProduct) -> None:
        terminal = Terminal("till-1")
        shop = LockedShop(bread)
        recorder = GatedRecorder()
        recorder.release.set()
        engine = _engine(shop, recorder, terminal)
        session_id = _ready(terminal, engine, bread)
        shop.locked = True

        with pytest.raises(StockMutationFailed):
            terminal.dispatch(session_id, Commit(), engine)

        failed = terminal.get(session_id)
        assert failed.state == CheckoutState.FAILED
        assert failed.last_error["retryable"] is True
        assert recorder.sales == []
        assert shop.products[bread.id].stock == 25

    def test_cancel_waits_for_running_commit(self, shop: MemoryShop, bread: CatalogProduct) -> None:
        """A cancel issued mid-commit runs only once the commit has finished."""
        terminal = Terminal("till-1")
        recorder = GatedRecorder()
        engine = _engine(shop, recorder, terminal)
        session_id = _ready(terminal, engine, bread)

        committer = threading.Thread(target=terminal.dispatch, args=(session_id, Commit(), engine))
        committer.start()
        assert recorder.entered.wait(timeout=5)
        assert terminal.get(session_id).state == CheckoutState.COMMITTING

        cancelled = threading.Event()

        def _cancel() -> None:
            terminal.dispatch(session_id, Cancel(), engine)
            cancelled.set()

        canceller = threading.Thread(target=_cancel)
        canceller.start()
        assert not cancelled.wait(timeout=0.2)

        recorder.release.set()
        committer.join(timeout=5)
        canceller.join(timeout=5)

        assert cancelled.is_set()
        assert len(recorder.sales) == 1
        assert shop.products[bread.id].stock == 24
        assert terminal.get(session_id).cart.is_empty

    def test_sessions_are_independent(self, shop: MemoryShop, bread: CatalogProduct) -> None:
        terminal = Terminal("till-1")
        engine = _engine(shop, GatedRecorder(), terminal)
        first, second = terminal.open_session(), terminal.open_session()

        terminal.dispatch(first.id, AddItem(product_id=bread.id), engine)
        assert terminal.get(second.id).cart.is_empty
        assert len(terminal.sessions()) == 2

    def test_close_session(self) -> None:
        terminal = Terminal("till-1")
        session = terminal.open_session()
        terminal.close_session(session.id)
        with pytest.raises(SessionNotFound):
            terminal.get(session.id)
        with pytest.raises(SessionNotFound):
            terminal.close_session(session.id)

    def test_close_while_committing(self) -> None:
        terminal = Terminal("till-1")
        session = terminal.open_session()
        terminal._store(session.model_copy(update={"state": CheckoutState.COMMITTING}))
        with pytest.raises(CommitInProgress):
            terminal.close_session(session.id)
