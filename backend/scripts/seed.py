"""Create the tables and seed a demo catalog and a few customers.

Usage:
    python -m backend.scripts.seed
"""

from __future__ import annotations

from decimal import Decimal

from backend.salepoint.core.database import SessionLocal, init_db
from backend.salepoint.models.catalog import Product
from backend.salepoint.models.customer import Customer

PRODUCTS: list[tuple[str, str, Decimal, str, int, str | None]] = [
    # (sku, name, price, category, stock, barcode)
    ("DRK-001", "Coca-Cola 500ml", Decimal("80"), "Drinks", 50, "123456789"),
    ("BAK-001", "Bread Loaf", Decimal("60"), "Bakery", 25, None),
    ("DRY-001", "Milk 1L", Decimal("120"), "Dairy", 30, None),
    ("GRN-001", "Rice 2kg", Decimal("350"), "Grains", 15, None),
    ("CKG-001", "Cooking Oil 1L", Decimal("280"), "Cooking", 20, None),
    ("PNT-001", "Sugar 1kg", Decimal("150"), "Pantry", 40, None),
]

CUSTOMERS: list[tuple[str, str, str | None]] = [
    ("Walk-in Regular", "0700000001", None),
    ("Jane Wanjiku", "0712345678", "jane@example.com"),
    ("Otieno Traders", "0722000111", "orders@otieno.example.com"),
]


def seed() -> None:
    init_db()
    db = SessionLocal()
    try:
        for sku, name, price, category, stock, barcode in PRODUCTS:
            if db.query(Product).filter(Product.sku == sku).first():
                continue
            db.add(Product(
                sku=sku,
                name=name,
                unit_price=price,
                category=category,
                current_stock=stock,
                barcode=barcode,
            ))
        for name, phone, email in CUSTOMERS:
            if db.query(Customer).filter(Customer.phone == phone).first():
                continue
            db.add(Customer(name=name, phone=phone, email=email))
        db.commit()
        print(f"Seeded {len(PRODUCTS)} products and {len(CUSTOMERS)} customers")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
