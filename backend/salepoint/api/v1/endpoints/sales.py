from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from backend.salepoint.core.database import get_db
from backend.salepoint.core.errors import NotFound
from backend.salepoint.schemas.sale import SaleListItemOut, SaleRecord, SalesSummaryOut
from backend.salepoint.services.sales import get_sale, list_sales, sales_summary

router = APIRouter()


@router.get("/", response_model=list[SaleListItemOut])
def get_sales(
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[SaleListItemOut]:
    return list_sales(db, limit=limit)


@router.get("/summary", response_model=SalesSummaryOut)
def get_sales_summary(db: Session = Depends(get_db)) -> SalesSummaryOut:
    return sales_summary(db)


@router.get("/{sale_id}", response_model=SaleRecord)
def get_sale_detail(sale_id: UUID, db: Session = Depends(get_db)) -> SaleRecord:
    try:
        return get_sale(db, sale_id)
    except NotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sale not found")
