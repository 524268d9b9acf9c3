from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backend.salepoint.core.database import get_db
from backend.salepoint.schemas.catalog import CustomerCreate, CustomerRef
from backend.salepoint.services.customers import SqlCustomerDirectory

router = APIRouter()


@router.get("/", response_model=list[CustomerRef])
def search_customers(
    q: str = Query("", description="Search by name, phone, or email"),
    db: Session = Depends(get_db),
) -> list[CustomerRef]:
    return SqlCustomerDirectory(db).search(q)


@router.post("/", response_model=CustomerRef, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
) -> CustomerRef:
    return SqlCustomerDirectory(db).create(payload)
