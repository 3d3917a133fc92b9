# sharedcart/services/cart_totals.py
from typing import Iterable

from sharedcart.data.models import SharedCartItemModel


def calculate_cart_total(cart_id: int, items: Iterable[SharedCartItemModel]) -> int:
    """Suma unit_price * quantity po pozycjach koszyka ``cart_id``, w groszach (kobo)."""
    return sum(
        (i.unit_price * i.quantity for i in items if i.cart_id == cart_id),
        0,
    )
