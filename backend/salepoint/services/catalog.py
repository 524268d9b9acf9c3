from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from backend.salepoint.core.errors import ProductNotFound
from backend.salepoint.models.catalog import Product
from backend.salepoint.schemas.catalog import CatalogProduct


def to_catalog_product(product: Product) -> CatalogProduct:
    return CatalogProduct(
        id=product.id,
        name=product.name,
        price=product.unit_price,
        category=product.category,
        stock=product.current_stock,
        barcode=product.barcode,
        sku=product.sku,
    )


class SqlCatalog:
    """Catalog reads. Every call hits the database, so stock is current."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_product(self, product_id: UUID) -> CatalogProduct:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise ProductNotFound(f"Product {product_id} not found")
        # Bypass the identity map: another till may have sold stock since
        self.db.refresh(product)
        return to_catalog_product(product)

    def search(self, query: str = "", category: str | None = None) -> list[CatalogProduct]:
        """Match on name, SKU or barcode, optionally within one category."""
        q = self.db.query(Product)
        if query:
            like = f"%{query}%"
            q = q.filter(
                Product.name.ilike(like)
                | Product.sku.ilike(like)
                | Product.barcode.ilike(like)
            )
        if category and category != "All":
            q = q.filter(Product.category == category)
        return [to_catalog_product(p) for p in q.order_by(Product.name).all()]

    def find_by_barcode(self, barcode: str) -> CatalogProduct:
        product = (
            self.db.query(Product)
            .filter((Product.barcode == barcode) | (Product.sku == barcode))
            .first()
        )
        if not product:
            raise ProductNotFound(f"No product with barcode {barcode}")
        return to_catalog_product(product)

    def categories(self) -> list[str]:
        rows = self.db.query(Product.category).distinct().order_by(Product.category).all()
        return [row[0] for row in rows]
