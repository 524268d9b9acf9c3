"""Tests for the parked-sale store."""
from __future__ import annotations

import threading
from decimal import Decimal
from uuid import uuid4

import pytest

from backend.salepoint.core.errors import EmptyCart, ParkedSaleNotFound
from backend.salepoint.schemas.catalog import CatalogProduct, CustomerRef
from backend.salepoint.schemas.sale import Cart
from backend.salepoint.services import cart as cart_ops
from backend.salepoint.services.parking import ParkedSaleStore


def _cart(note: str = "table 4") -> Cart:
    cart = Cart()
    for name, price in (("Milk 1L", "120"), ("Bread Loaf", "60"), ("Sugar 1kg", "150")):
        product = CatalogProduct(id=uuid4(), name=name, price=Decimal(price), category="Pantry", stock=10)
        cart = cart_ops.add_item(cart, product)
    customer = CustomerRef(id=uuid4(), name="Jane Wanjiku", phone="0712345678")
    return cart_ops.set_note(cart_ops.set_customer(cart, customer), note)


class TestParkedSaleStore:
    def test_park_then_resume_round_trips(self) -> None:
        store = ParkedSaleStore()
        cart = _cart()

        parked = store.park(cart)
        assert parked.item_count == 3
        assert store.list() == [parked]

        resumed = store.resume(parked.id)
        assert resumed == cart
        assert parked.id not in store
        assert store.list() == []

    def test_resume_unknown_id(self) -> None:
        with pytest.raises(ParkedSaleNotFound):
            ParkedSaleStore().resume(uuid4())

    def test_resume_twice(self) -> None:
        store = ParkedSaleStore()
        parked = store.park(_cart())
        store.resume(parked.id)
        with pytest.raises(ParkedSaleNotFound):
            store.resume(parked.id)

    def test_empty_cart_cannot_be_parked(self) -> None:
        with pytest.raises(EmptyCart):
            ParkedSaleStore().park(Cart())

    def test_list_is_oldest_first(self) -> None:
        store = ParkedSaleStore()
        ids = [store.park(_cart(f"table {n}")).id for n in range(3)]
        assert [p.id for p in store.list()] == ids

        store.resume(ids[1])
        assert [p.id for p in store.list()] == [ids[0], ids[2]]
        assert len(store) == 2

    def test_concurrent_resume_succeeds_once(self) -> None:
        """Several tills racing for one parked sale: exactly one gets it."""
        store = ParkedSaleStore()
        parked = store.park(_cart())
        barrier = threading.Barrier(8)
        won: list[Cart] = []
        lost: list[Exception] = []

        def _resume() -> None:
            barrier.wait()
            try:
                won.append(store.resume(parked.id))
            except ParkedSaleNotFound as exc:
                lost.append(exc)

        threads = [threading.Thread(target=_resume) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(won) == 1
        assert len(lost) == 7
