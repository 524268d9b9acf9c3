"""Shared test fixtures.

Each test gets its own in-memory SQLite database, so tests never pollute
each other or the real database. Service code commits freely; the whole
database is thrown away when the test ends.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from backend.salepoint.api.deps import get_tax_policy, get_terminal
from backend.salepoint.core.database import get_db, init_db
from backend.salepoint.main import app
from backend.salepoint.models.catalog import Product
from backend.salepoint.models.customer import Customer
from backend.salepoint.services.catalog import SqlCatalog
from backend.salepoint.services.checkout import CheckoutCoordinator
from backend.salepoint.services.customers import SqlCustomerDirectory
from backend.salepoint.services.parking import ParkedSaleStore
from backend.salepoint.services.pricing import TaxPolicy
from backend.salepoint.services.sales import SqlSaleRecorder
from backend.salepoint.services.session import SaleEngine
from backend.salepoint.services.stock import SqlStockService
from backend.salepoint.services.terminal import Terminal


# ─── Database ────────────────────────────────────────────────────────────────


@pytest.fixture()
def db_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(db_engine: Engine) -> Generator[Session, None, None]:
    session = Session(bind=db_engine)
    yield session
    session.close()


# ─── Catalog & customers ─────────────────────────────────────────────────────


def _product(db: Session, **fields: object) -> Product:
    product = Product(**fields)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture()
def product_a(db: Session) -> Product:
    """100 KSh, taxed at 16%."""
    return _product(
        db, name="Product A", sku="A-001", barcode="1000001",
        category="Taxed", unit_price=Decimal("100"), current_stock=10,
    )


@pytest.fixture()
def product_b(db: Session) -> Product:
    """50 KSh, zero-rated."""
    return _product(
        db, name="Product B", sku="B-001", barcode="1000002",
        category="Exempt", unit_price=Decimal("50"), current_stock=10,
    )


@pytest.fixture()
def product_c(db: Session) -> Product:
    """20 KSh, zero-rated, a single unit left."""
    return _product(
        db, name="Product C", sku="C-001",
        category="Exempt", unit_price=Decimal("20"), current_stock=1,
    )


@pytest.fixture()
def customer(db: Session) -> Customer:
    c = Customer(name="Jane Wanjiku", phone="0712345678", email="jane@example.com")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


# ─── Engine wiring ───────────────────────────────────────────────────────────


@pytest.fixture()
def tax_policy() -> TaxPolicy:
    return TaxPolicy({"Taxed": Decimal("16")}, Decimal("0"))


@pytest.fixture()
def coordinator(db: Session, tax_policy: TaxPolicy) -> CheckoutCoordinator:
    return CheckoutCoordinator(
        catalog=SqlCatalog(db),
        stock=SqlStockService(db),
        recorder=SqlSaleRecorder(db, "till-test"),
        tax_policy=tax_policy,
    )


@pytest.fixture()
def parked() -> ParkedSaleStore:
    return ParkedSaleStore()


@pytest.fixture()
def sale_engine(
    db: Session, coordinator: CheckoutCoordinator, parked: ParkedSaleStore
) -> SaleEngine:
    return SaleEngine(coordinator, SqlCustomerDirectory(db), parked)


# ─── HTTP ────────────────────────────────────────────────────────────────────


@pytest.fixture()
def client(db: Session, tax_policy: TaxPolicy) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test database and a fresh terminal."""
    terminal = Terminal("till-test")

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_terminal] = lambda: terminal
    app.dependency_overrides[get_tax_policy] = lambda: tax_policy
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
