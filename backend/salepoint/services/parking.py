"""Parked-sale store shared by every session on a terminal."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from uuid import UUID, uuid4

from backend.salepoint.core.errors import EmptyCart, ParkedSaleNotFound
from backend.salepoint.schemas.sale import Cart, ParkedSale

logger = logging.getLogger(__name__)


class ParkedSaleStore:
    """Holds suspended carts under a handle until they are resumed.

    ``park``, ``resume`` and ``list`` are serialized, so two sessions can
    never resume the same parked sale.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._parked: dict[UUID, ParkedSale] = {}

    def park(self, cart: Cart) -> ParkedSale:
        if cart.is_empty:
            raise EmptyCart("Cannot park an empty cart")
        # Cart is frozen all the way down; deep copy so the snapshot owns its data
        parked = ParkedSale(
            id=uuid4(),
            cart=cart.model_copy(deep=True),
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._parked[parked.id] = parked
        logger.info("Parked sale %s (%s items)", parked.id, cart.item_count)
        return parked

    def resume(self, parked_id: UUID) -> Cart:
        with self._lock:
            parked = self._parked.pop(parked_id, None)
        if parked is None:
            raise ParkedSaleNotFound(f"Parked sale {parked_id} not found")
        logger.info("Resumed parked sale %s", parked_id)
        return parked.cart

    def get(self, parked_id: UUID) -> ParkedSale:
        with self._lock:
            parked = self._parked.get(parked_id)
        if parked is None:
            raise ParkedSaleNotFound(f"Parked sale {parked_id} not found")
        return parked

    def list(self) -> list[ParkedSale]:
        """Parked sales, oldest first."""
        with self._lock:
            return list(self._parked.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._parked)

    def __contains__(self, parked_id: object) -> bool:
        with self._lock:
            return parked_id in self._parked
