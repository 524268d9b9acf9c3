from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.salepoint.core.database import get_db
from backend.salepoint.core.errors import ProductNotFound
from backend.salepoint.schemas.catalog import CatalogProduct, ScanRequest
from backend.salepoint.services.catalog import SqlCatalog

router = APIRouter()


@router.get("/products", response_model=list[CatalogProduct])
def search_products(
    q: str | None = Query(None, description="Search by name, SKU or barcode"),
    category: str | None = Query(None),
    db: Session = Depends(get_db),
) -> list[CatalogProduct]:
    return SqlCatalog(db).search(q or "", category)


@router.get("/products/{product_id}", response_model=CatalogProduct)
def get_product(product_id: UUID, db: Session = Depends(get_db)) -> CatalogProduct:
    try:
        return SqlCatalog(db).get_product(product_id)
    except ProductNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/categories", response_model=list[str])
def list_categories(db: Session = Depends(get_db)) -> list[str]:
    return SqlCatalog(db).categories()


@router.post("/scan", response_model=CatalogProduct)
def scan_barcode(payload: ScanRequest, db: Session = Depends(get_db)) -> CatalogProduct:
    try:
        return SqlCatalog(db).find_by_barcode(payload.barcode)
    except ProductNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
