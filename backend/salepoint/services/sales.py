from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from uuid import UUID

from sqlalchemy import desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.salepoint.core.config import settings
from backend.salepoint.core.errors import NotFound
from backend.salepoint.models.customer import Customer
from backend.salepoint.models.sale import Sale, SaleLine, SalePayment, SaleStatus
from backend.salepoint.schemas.catalog import CustomerRef
from backend.salepoint.schemas.sale import (
    DiscountSpec,
    DiscountType,
    PaymentContribution,
    PaymentMethod,
    SaleLineRecord,
    SaleListItemOut,
    SaleRecord,
    SalesSummaryOut,
)

logger = logging.getLogger(__name__)

Q = Decimal("0.0001")
ZERO = Decimal("0")


def generate_receipt_number(sequence: int, year: int | None = None) -> str:
    """Return a formatted receipt number like R-2026-000001."""
    if year is None:
        year = datetime.now().year
    return f"R-{year}-{sequence:06d}"


class SqlSaleRecorder:
    """Sale-history persistence.

    Writes the sale with its lines and payments in one transaction, then
    credits the customer's spend and loyalty points.
    """

    def __init__(self, db: Session, terminal_id: str | None = None) -> None:
        self.db = db
        self.terminal_id = terminal_id or settings.TERMINAL_ID

    def record_sale(self, sale: SaleRecord) -> str:
        """Persist ``sale`` and return its receipt number.

        Receipt numbers follow the row count; when another till takes the
        same number first, the write is rolled back and retried with the
        next one.
        """
        collision: IntegrityError | None = None
        for attempt in range(settings.RECEIPT_NUMBER_ATTEMPTS):
            try:
                count = self.db.query(func.count(Sale.id)).scalar() or 0
                receipt_number = generate_receipt_number(count + 1 + attempt, sale.created_at.year)
                self._write(sale, receipt_number)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                collision = exc
                logger.warning("Receipt number %s already taken for sale %s, retrying", receipt_number, sale.id)
                continue
            except SQLAlchemyError:
                self.db.rollback()
                raise
            logger.info("Recorded sale %s as %s total=%s", sale.id, receipt_number, sale.total)
            return receipt_number
        assert collision is not None
        raise collision

    def _write(self, sale: SaleRecord, receipt_number: str) -> None:
        row = Sale(
            id=sale.id,
            receipt_number=receipt_number,
            terminal_id=self.terminal_id,
            customer_id=sale.customer.id if sale.customer else None,
            note=sale.note,
            subtotal=sale.subtotal,
            discount_type=sale.discount.type.value if sale.discount else None,
            discount_value=sale.discount.value if sale.discount else None,
            discount_amount=sale.discount_amount,
            tax_amount=sale.tax_amount,
            total=sale.total,
            amount_received=sale.amount_received,
            change=sale.change,
            status=SaleStatus.COMPLETED,
            created_at=sale.created_at,
        )
        row.lines = [
            SaleLine(
                position=position,
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for position, line in enumerate(sale.lines)
        ]
        row.payments = [
            SalePayment(
                position=position,
                method=payment.method.value,
                amount=payment.amount,
                reference=payment.reference,
            )
            for position, payment in enumerate(sale.payments)
        ]
        self.db.add(row)

        if sale.customer:
            self._credit_customer(sale.customer.id, sale.total, sale.created_at)

    def _credit_customer(self, customer_id: UUID, total: Decimal, at: datetime) -> None:
        customer = self.db.query(Customer).filter(Customer.id == customer_id).first()
        if not customer:
            return
        customer.total_spent = Decimal(str(customer.total_spent)) + total
        customer.loyalty_points += int(total // settings.LOYALTY_POINT_VALUE)
        customer.last_purchase_at = at


# ─── Sale history ────────────────────────────────────────────────────────────


def _to_record(row: Sale, db: Session) -> SaleRecord:
    customer: CustomerRef | None = None
    if row.customer_id:
        c = db.query(Customer).filter(Customer.id == row.customer_id).first()
        if c:
            customer = CustomerRef(
                id=c.id, name=c.name, phone=c.phone or "", email=c.email,
                loyalty_points=c.loyalty_points,
            )
    discount = None
    if row.discount_type:
        discount = DiscountSpec(type=DiscountType(row.discount_type), value=Decimal(str(row.discount_value)))
    return SaleRecord(
        id=row.id,
        receipt_number=row.receipt_number,
        lines=tuple(
            SaleLineRecord(
                product_id=line.product_id,
                name=line.product_name,
                quantity=line.quantity,
                unit_price=Decimal(str(line.unit_price)),
                line_total=Decimal(str(line.line_total)),
            )
            for line in row.lines
        ),
        subtotal=Decimal(str(row.subtotal)),
        discount=discount,
        discount_amount=Decimal(str(row.discount_amount)),
        tax_amount=Decimal(str(row.tax_amount)),
        total=Decimal(str(row.total)),
        payments=tuple(
            PaymentContribution(
                method=PaymentMethod(p.method),
                amount=Decimal(str(p.amount)),
                reference=p.reference,
            )
            for p in row.payments
        ),
        amount_received=Decimal(str(row.amount_received)),
        change=Decimal(str(row.change)),
        customer=customer,
        note=row.note,
        created_at=row.created_at,
        status=row.status.value,
    )


def get_sale(db: Session, sale_id: UUID) -> SaleRecord:
    row = db.query(Sale).filter(Sale.id == sale_id).first()
    if not row:
        raise NotFound(f"Sale {sale_id} not found")
    return _to_record(row, db)


def list_sales(db: Session, limit: int = 100) -> list[SaleListItemOut]:
    """Most recent sales first."""
    rows = db.query(Sale).order_by(desc(Sale.created_at)).limit(limit).all()

    results: list[SaleListItemOut] = []
    for row in rows:
        customer_name: str | None = None
        if row.customer_id:
            customer = db.query(Customer).filter(Customer.id == row.customer_id).first()
            if customer:
                customer_name = customer.name
        results.append(SaleListItemOut(
            id=row.id,
            receipt_number=row.receipt_number,
            created_at=row.created_at,
            customer_name=customer_name,
            item_count=sum(line.quantity for line in row.lines),
            payment_methods=sorted({p.method for p in row.payments}),
            total=str(row.total),
            status=row.status.value,
        ))
    return results


def sales_summary(db: Session) -> SalesSummaryOut:
    count, revenue = db.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total), 0),
    ).one()
    revenue = Decimal(str(revenue)).quantize(Q, rounding=ROUND_HALF_UP)
    average = (revenue / count).quantize(Q, rounding=ROUND_HALF_UP) if count else ZERO.quantize(Q)
    return SalesSummaryOut(
        currency=settings.CURRENCY,
        sale_count=count,
        total_revenue=str(revenue),
        average_sale=str(average),
    )
