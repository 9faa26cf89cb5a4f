"""
Cart and order pricing.

Pure functions over rows fetched from Supabase. All money is handled as
Decimal rounded to 2 places (ROUND_HALF_UP); database NUMERIC values arrive
as JSON numbers and are converted through str() to avoid float artefacts.

The totals computed here are tentative. After the order is persisted the
`recalculate_order_total` RPC re-derives the authoritative total from stored
product prices, and the payment gateway is always charged that value.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """Convert a DB/JSON numeric (or None) into a 2-place Decimal."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value))
    return amount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Any) -> int:
    """Rupees to paise, rounded to the nearest integer."""
    paise = (to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(paise)


def index_add_ons(add_ons: Iterable[Mapping[str, Any]]) -> Dict[str, Decimal]:
    """Map add-on id -> price."""
    return {str(a["id"]): to_decimal(a.get("price")) for a in add_ons if a.get("id")}


def calculate_item_total(
    unit_price: Any,
    selected_add_on_ids: Optional[Iterable[str]],
    add_on_prices: Mapping[str, Decimal],
    quantity: int,
) -> Decimal:
    """
    Line total: (unit price + selected add-on prices) x quantity.

    Unknown add-on ids contribute nothing.
    """
    add_ons_total = sum(
        (add_on_prices.get(str(add_on_id), ZERO) for add_on_id in (selected_add_on_ids or [])),
        ZERO,
    )
    total = (to_decimal(unit_price) + add_ons_total) * int(quantity)
    return total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def cart_item_total(item: Mapping[str, Any], add_on_prices: Mapping[str, Decimal]) -> Decimal:
    """Line total for a cart_items row joined with products(*)."""
    product = item.get("products") or {}
    return calculate_item_total(
        unit_price=product.get("price"),
        selected_add_on_ids=item.get("selected_add_ons"),
        add_on_prices=add_on_prices,
        quantity=int(item.get("quantity") or 0),
    )


def calculate_subtotal(
    cart_items: Iterable[Mapping[str, Any]],
    add_on_prices: Mapping[str, Decimal],
) -> Decimal:
    return sum((cart_item_total(item, add_on_prices) for item in cart_items), ZERO)


def calculate_coupon_discount(subtotal: Any, discount_percentage: Any) -> Decimal:
    discount = to_decimal(subtotal) * Decimal(str(discount_percentage)) / Decimal(100)
    return discount.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def calculate_order_total(subtotal: Any, delivery_charge: Any, discount: Any) -> Decimal:
    """subtotal + delivery - discount, floored at zero."""
    total = to_decimal(subtotal) + to_decimal(delivery_charge) - to_decimal(discount)
    return max(total, ZERO)


@dataclass
class OrderQuote:
    subtotal: Decimal
    delivery_charge: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None


def build_quote(
    cart_items: List[Mapping[str, Any]],
    add_ons: Iterable[Mapping[str, Any]],
    delivery_charge: Any,
    discount_percentage: Any = None,
    coupon_code: Optional[str] = None,
) -> OrderQuote:
    """
    Tentative totals for a cart.

    Args:
        cart_items: cart_items rows joined with products(*)
        add_ons: all add_ons rows
        delivery_charge: flat delivery charge from site settings
        discount_percentage: coupon percentage, when one is applied
        coupon_code: code of the applied coupon (echoed in the quote)
    """
    add_on_prices = index_add_ons(add_ons)
    subtotal = calculate_subtotal(cart_items, add_on_prices)
    discount = ZERO
    if discount_percentage is not None:
        discount = calculate_coupon_discount(subtotal, discount_percentage)
    delivery = to_decimal(delivery_charge)

    return OrderQuote(
        subtotal=subtotal,
        delivery_charge=delivery,
        discount=discount,
        total=calculate_order_total(subtotal, delivery, discount),
        coupon_code=coupon_code if discount_percentage is not None else None,
    )
