from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


# ─── Catalog ─────────────────────────────────────────────────────────────────


class CatalogProduct(BaseModel):
    """Read-only snapshot of a catalog product; ``stock`` may be stale."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    price: Decimal
    category: str
    stock: int
    barcode: str | None = None
    sku: str | None = None


class ScanRequest(BaseModel):
    barcode: str


# ─── Customers ───────────────────────────────────────────────────────────────


class CustomerRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    phone: str = ""
    email: str | None = None
    loyalty_points: int = 0


class CustomerCreate(BaseModel):
    name: str
    phone: str
    email: str | None = None
    address: str | None = None

    @field_validator("name", "phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name and phone are required")
        return v

    @field_validator("email", "address")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

