from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.salepoint.core.database import Base


class SaleStatus(str, enum.Enum):
    COMPLETED = "completed"


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    receipt_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    terminal_id: Mapped[str] = mapped_column(String(50), nullable=False)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subtotal: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    discount_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    discount_value: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    amount_received: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    change: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    status: Mapped[SaleStatus] = mapped_column(
        Enum(SaleStatus), nullable=False, default=SaleStatus.COMPLETED
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    lines: Mapped[list[SaleLine]] = relationship(
        back_populates="sale", cascade="all, delete-orphan", order_by="SaleLine.position"
    )
    payments: Mapped[list[SalePayment]] = relationship(
        back_populates="sale", cascade="all, delete-orphan", order_by="SalePayment.position"
    )

    __table_args__ = (
        CheckConstraint("total >= 0", name="ck_sale_total_non_negative"),
        CheckConstraint("discount_amount >= 0", name="ck_sale_discount_non_negative"),
        Index("ix_sales_created_at", "created_at"),
        Index("ix_sales_customer", "customer_id"),
    )


class SaleLine(Base):
    __tablename__ = "sale_lines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("sales.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("products.id"), nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)

    sale: Mapped[Sale] = relationship(back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_line_quantity_positive"),
        Index("ix_sale_lines_sale", "sale_id"),
    )


class SalePayment(Base):
    __tablename__ = "sale_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sale_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("sales.id"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=20, scale=4), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    sale: Mapped[Sale] = relationship(back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_sale_payment_amount_non_negative"),
        Index("ix_sale_payments_sale", "sale_id"),
        Index("ix_sale_payments_method", "method"),
    )
