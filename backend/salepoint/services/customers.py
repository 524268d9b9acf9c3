from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from backend.salepoint.core.config import settings
from backend.salepoint.core.errors import CustomerNotFound
from backend.salepoint.models.customer import Customer
from backend.salepoint.schemas.catalog import CustomerCreate, CustomerRef

logger = logging.getLogger(__name__)


def to_customer_ref(customer: Customer) -> CustomerRef:
    return CustomerRef(
        id=customer.id,
        name=customer.name,
        phone=customer.phone or "",
        email=customer.email,
        loyalty_points=customer.loyalty_points,
    )


class SqlCustomerDirectory:
    def __init__(self, db: Session, min_query_length: int | None = None) -> None:
        self.db = db
        self.min_query_length = (
            settings.MIN_CUSTOMER_QUERY_LENGTH if min_query_length is None else min_query_length
        )

    def get(self, customer_id: UUID) -> CustomerRef:
        customer = (
            self.db.query(Customer)
            .filter(Customer.id == customer_id, Customer.is_active.is_(True))
            .first()
        )
        if not customer:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        return to_customer_ref(customer)

    def search(self, query: str) -> list[CustomerRef]:
        """Active customers matching name, phone or email.

        Queries shorter than ``min_query_length`` return nothing rather than
        the whole directory.
        """
        query = query.strip()
        if len(query) < self.min_query_length:
            return []
        like = f"%{query}%"
        customers = (
            self.db.query(Customer)
            .filter(
                Customer.is_active.is_(True),
                Customer.name.ilike(like)
                | Customer.phone.ilike(like)
                | Customer.email.ilike(like),
            )
            .order_by(Customer.name)
            .limit(20)
            .all()
        )
        return [to_customer_ref(c) for c in customers]

    def create(self, fields: CustomerCreate) -> CustomerRef:
        customer = Customer(**fields.model_dump())
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        logger.info("Created customer %s", customer.id)
        return to_customer_ref(customer)
