"""
Priced cart built from the catalog reference.

The cart is an immutable snapshot: unit prices are read from the catalog at the
moment it is built, and each line total is rounded to cents on its own before
any summation.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from catalog.models import Product
from core.exceptions import InvalidRequest
from core.money import ZERO, to_money


@dataclass(frozen=True)
class CartLine:
    product_id: int
    category_id: int
    unit_price: Decimal
    quantity: int

    @property
    def total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class Cart:
    lines: tuple

    @property
    def subtotal(self) -> Decimal:
        return sum((line.total for line in self.lines), ZERO)

    @property
    def product_ids(self) -> frozenset:
        return frozenset(line.product_id for line in self.lines)

    @property
    def category_ids(self) -> frozenset:
        return frozenset(line.category_id for line in self.lines)

    def eligible_subtotal(self, product_ids: Optional[Iterable] = None, category_ids: Optional[Iterable] = None):
        """
        Subtotal of the lines matching the given product or category sets.
        With neither set given every line is eligible.
        """
        if product_ids is None and category_ids is None:
            return self.subtotal

        product_ids = set(product_ids or ())
        category_ids = set(category_ids or ())
        return sum(
            (line.total for line in self.lines if line.product_id in product_ids or line.category_id in category_ids),
            ZERO,
        )


def build_cart(items) -> Cart:
    """
    Builds a priced cart from (product_id, quantity) pairs.

    Quantities of repeated products are merged. Unknown or unavailable products,
    and lines asking for more than the stock on hand, are rejected before
    anything else happens. Stock is only read here.
    """
    quantities = {}
    for product_id, quantity in items:
        if quantity is None or int(quantity) <= 0:
            raise InvalidRequest(f"Quantity for product {product_id} must be positive.", rule="invalid_quantity")
        quantities[product_id] = quantities.get(product_id, 0) + int(quantity)

    if not quantities:
        raise InvalidRequest("A sale needs at least one item.", rule="empty_cart")

    products = Product.objects.in_bulk(list(quantities))

    lines = []
    for product_id, quantity in quantities.items():
        product = products.get(product_id)
        if product is None:
            raise InvalidRequest(f"Product with ID {product_id} not found.", rule="unknown_product")
        if not product.is_available:
            raise InvalidRequest(f"Product {product.name} is not available.", rule="product_unavailable")
        if product.stock < quantity:
            raise InvalidRequest(
                f"Insufficient stock for {product.name}. Available: {product.stock}, Requested: {quantity}",
                rule="insufficient_stock",
            )
        lines.append(
            CartLine(
                product_id=product.pk,
                category_id=product.category_id,
                unit_price=product.price,
                quantity=quantity,
            )
        )

    return Cart(lines=tuple(lines))
