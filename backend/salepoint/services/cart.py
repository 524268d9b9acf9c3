"""Cart manager.

Every function takes a ``Cart`` and returns a new one; none of them touch
the catalog or any other service. Stock bounds are checked against the
product snapshot carried by the line, which is the stock the cashier saw.
"""

from __future__ import annotations

from uuid import UUID

from backend.salepoint.core.errors import LineNotFound, StockExceeded
from backend.salepoint.schemas.catalog import CatalogProduct, CustomerRef
from backend.salepoint.schemas.sale import Cart, LineItem


def _replace_line(cart: Cart, product_id: UUID, line: LineItem | None) -> Cart:
    lines: list[LineItem] = []
    for existing in cart.lines:
        if existing.product.id != product_id:
            lines.append(existing)
        elif line is not None:
            lines.append(line)
    return cart.model_copy(update={"lines": tuple(lines)})


def add_item(cart: Cart, product: CatalogProduct) -> Cart:
    """Add one unit of ``product``; a new line goes to the end of the cart."""
    existing = cart.line_for(product.id)
    current = existing.quantity if existing else 0
    if current + 1 > product.stock:
        raise StockExceeded(product.id, product.name, current + 1, product.stock)

    if existing is None:
        line = LineItem(product=product, quantity=1)
        return cart.model_copy(update={"lines": cart.lines + (line,)})
    return _replace_line(cart, product.id, LineItem(product=product, quantity=current + 1))


def set_quantity(cart: Cart, product_id: UUID, quantity: int, clamp: bool = False) -> Cart:
    """Set a line's quantity; zero or less removes the line.

    Asking for more than the known stock raises ``StockExceeded`` unless
    ``clamp`` is set, in which case the quantity is capped at the stock.
    """
    existing = cart.line_for(product_id)
    if existing is None:
        raise LineNotFound(f"Product {product_id} is not in the cart")
    if quantity <= 0:
        return _replace_line(cart, product_id, None)

    product = existing.product
    if quantity > product.stock:
        if not clamp:
            raise StockExceeded(product.id, product.name, quantity, product.stock)
        quantity = product.stock
        if quantity <= 0:
            return _replace_line(cart, product_id, None)
    return _replace_line(cart, product_id, LineItem(product=product, quantity=quantity))


def remove_item(cart: Cart, product_id: UUID) -> Cart:
    if cart.line_for(product_id) is None:
        raise LineNotFound(f"Product {product_id} is not in the cart")
    return _replace_line(cart, product_id, None)


def clear_cart(cart: Cart | None = None) -> Cart:
    return Cart()


def set_customer(cart: Cart, customer: CustomerRef | None) -> Cart:
    return cart.model_copy(update={"customer": customer})


def set_note(cart: Cart, note: str) -> Cart:
    return cart.model_copy(update={"note": note})
