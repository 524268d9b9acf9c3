"""Collaborators the sale engine talks to.

The engine only depends on these protocols; ``services.catalog``,
``services.stock``, ``services.customers`` and ``services.sales`` provide
the SQLAlchemy implementations used by the API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from backend.salepoint.schemas.catalog import CatalogProduct, CustomerCreate, CustomerRef
from backend.salepoint.schemas.sale import SaleRecord


@dataclass(frozen=True)
class StockMutation:
    """Outcome of one stock mutation.

    ``partial`` is set when the call failed but some of its effect may
    have been applied anyway. Undoing that effect is the stock service's
    job; the checkout coordinator only compensates calls that succeeded
    and logs the partial one at ERROR.
    """

    ok: bool
    partial: bool = False
    message: str = ""


class CatalogService(Protocol):
    def get_product(self, product_id: UUID) -> CatalogProduct: ...

    def search(self, query: str = "", category: str | None = None) -> list[CatalogProduct]: ...


class StockService(Protocol):
    def decrement_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation: ...

    def increment_stock(self, product_id: UUID, quantity: int, reason: str) -> StockMutation: ...


class CustomerDirectory(Protocol):
    def get(self, customer_id: UUID) -> CustomerRef: ...

    def search(self, query: str) -> list[CustomerRef]: ...

    def create(self, fields: CustomerCreate) -> CustomerRef: ...


class SaleRecorder(Protocol):
    def record_sale(self, sale: SaleRecord) -> str:
        """Persist ``sale`` and return its receipt number; raise on failure."""
        ...
