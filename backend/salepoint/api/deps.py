from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from backend.salepoint.core.config import settings
from backend.salepoint.core.database import get_db
from backend.salepoint.core.errors import (
    CommitError,
    InvalidTransition,
    NotFound,
    SaleError,
    StockExceeded,
)
from backend.salepoint.services.catalog import SqlCatalog
from backend.salepoint.services.checkout import CheckoutCoordinator
from backend.salepoint.services.customers import SqlCustomerDirectory
from backend.salepoint.services.pricing import TaxPolicy
from backend.salepoint.services.sales import SqlSaleRecorder
from backend.salepoint.services.session import SaleEngine
from backend.salepoint.services.stock import SqlStockService
from backend.salepoint.services.terminal import Terminal

_terminal = Terminal(settings.TERMINAL_ID)


def get_terminal() -> Terminal:
    return _terminal


def get_tax_policy() -> TaxPolicy:
    return TaxPolicy.from_settings()


def get_engine(
    db: Session = Depends(get_db),
    terminal: Terminal = Depends(get_terminal),
    tax_policy: TaxPolicy = Depends(get_tax_policy),
) -> SaleEngine:
    checkout = CheckoutCoordinator(
        catalog=SqlCatalog(db),
        stock=SqlStockService(db),
        recorder=SqlSaleRecorder(db, terminal.terminal_id),
        tax_policy=tax_policy,
    )
    return SaleEngine(checkout, SqlCustomerDirectory(db), terminal.parked)


def http_error(exc: SaleError) -> HTTPException:
    """Translate an engine error into the HTTP response the till UI expects."""
    if isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (CommitError, InvalidTransition, StockExceeded)):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=exc.to_detail())
