from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.salepoint.models.catalog import Product, StockMovement
from backend.salepoint.services.interfaces import StockMutation

logger = logging.getLogger(__name__)


class SqlStockService:
    """Stock mutations as single conditional UPDATEs.

    A decrement only applies while enough stock is left, so two tills
    selling the last unit cannot both succeed. Each successful call commits
    on its own together with its ``StockMovement`` row.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _mutate(self, product_id: UUID, delta: int, reason: str) -> StockMutation:
        stmt = update(Product).where(Product.id == product_id)
        if delta < 0:
            stmt = stmt.where(Product.current_stock >= -delta)
        stmt = stmt.values(current_stock=Product.current_stock + delta)
        try:
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
            if result.rowcount != 1:
                self.db.rollback()
                return StockMutation(ok=False, message=f"Insufficient stock for product {product_id}")
            self.db.add(StockMovement(product_id=product_id, quantity=delta, reason=reason))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Stock mutation failed for %s (%s)", product_id, reason)
            return StockMutation(ok=False, message=str(exc))
        return StockMutation(ok=True)

    def decrement_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation:
        if quantity <= 0:
            return StockMutation(ok=False, message="Quantity must be greater than zero")
        return self._mutate(product_id, -quantity, reason)

    def increment_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation:
        if quantity <= 0:
            return StockMutation(ok=False, message="Quantity must be greater than zero")
        return self._mutate(product_id, quantity, reason)
