"""Error taxonomy of the sale transaction engine.

Every engine operation either returns a new value or raises one of these.
They subclass ``ValueError`` so callers that only care about "the request
was rejected" can keep catching that, the same way the service layer has
always signalled bad input.

Validation errors block the offending transition and leave state untouched.
``CommitError`` subclasses are raised from the commit phase; they are
retryable and the session that raised them is left in ``failed`` with its
cart and payments intact.
"""

from __future__ import annotations

from decimal import Decimal


class SaleError(ValueError):
    code = "sale_error"
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


# ─── Validation ─────────────────────────────────────────────────────────────


class EmptyCart(SaleError):
    code = "empty_cart"

    def __init__(self, message: str = "Cart must contain at least one item") -> None:
        super().__init__(message)


class StockExceeded(SaleError):
    code = "stock_exceeded"

    def __init__(self, product_id: object, product_name: str, requested: int, available: int) -> None:
        super().__init__(
            f"Insufficient stock for '{product_name}': "
            f"{available} available, {requested} requested"
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail.update({
            "product_id": str(self.product_id),
            "requested": self.requested,
            "available": self.available,
        })
        return detail


class InvalidDiscount(SaleError):
    code = "invalid_discount"


class InvalidAmount(SaleError):
    code = "invalid_amount"


class UnderPayment(SaleError):
    code = "under_payment"

    def __init__(self, remaining: Decimal) -> None:
        super().__init__(f"Payment incomplete: {remaining} remaining")
        self.remaining = remaining

    def to_detail(self) -> dict:
        detail = super().to_detail()
        detail["remaining"] = str(self.remaining)
        return detail


class MissingReference(SaleError):
    code = "missing_reference"

    def __init__(self, index: int, method: str) -> None:
        super().__init__(f"Payment #{index + 1} ({method}) requires a reference")
        self.index = index
        self.method = method


# ─── State machine guards ───────────────────────────────────────────────────


class InvalidTransition(SaleError):
    code = "invalid_transition"


class CommitInProgress(InvalidTransition):
    code = "commit_in_progress"

    def __init__(self) -> None:
        super().__init__("A commit is already in progress for this sale")


class SaleInProgress(InvalidTransition):
    code = "sale_in_progress"

    def __init__(self) -> None:
        super().__init__("Park or clear the current sale before resuming another")


# ─── Lookups ────────────────────────────────────────────────────────────────


class NotFound(SaleError):
    code = "not_found"


class LineNotFound(NotFound):
    code = "line_not_found"


class ContributionNotFound(NotFound):
    code = "payment_not_found"


class ParkedSaleNotFound(NotFound):
    code = "parked_sale_not_found"


class ProductNotFound(NotFound):
    code = "product_not_found"


class CustomerNotFound(NotFound):
    code = "customer_not_found"


class SessionNotFound(NotFound):
    code = "session_not_found"


# ─── Commit phase ───────────────────────────────────────────────────────────


class CommitError(SaleError):
    retryable = True
    # The ``failed`` session left behind; set by the checkout coordinator
    session: object | None = None


class StockMutationFailed(CommitError):
    code = "stock_mutation_failed"

    def __init__(self, message: str, product_id: object | None = None, partial: bool = False) -> None:
        super().__init__(message)
        self.product_id = product_id
        self.partial = partial


class PersistenceFailed(CommitError):
    code = "persistence_failed"
