"""
Session-scoped cart storage.

Carts are keyed by (user, vendor) so switching vendors never leaks items
between carts. Create one store per session and pass it to whatever
needs it.
"""

from typing import Dict, List, Tuple
from tapnchow.domain.models import OrderLineItem


class CartStore:
    """Carts for one session, keyed by (user_id, vendor_id)."""

    def __init__(self):
        self._carts: Dict[Tuple[str, str], List[OrderLineItem]] = {}

    def get_items(self, user_id: str, vendor_id: str) -> List[OrderLineItem]:
        """Items in the cart, empty if there is none."""
        return list(self._carts.get((user_id, vendor_id), []))

    def save_items(self, user_id: str, vendor_id: str, items: List[OrderLineItem]) -> None:
        """Replace the cart contents."""
        for item in items:
            if item.vendor_id != vendor_id:
                raise ValueError(
                    f"Product {item.product_id} belongs to vendor {item.vendor_id}, not {vendor_id}"
                )
        if items:
            self._carts[(user_id, vendor_id)] = list(items)
        else:
            self._carts.pop((user_id, vendor_id), None)

    def add_item(self, user_id: str, item: OrderLineItem) -> List[OrderLineItem]:
        """Add an item, merging quantity with an existing line for the product."""
        if item.quantity <= 0:
            raise ValueError("The quantity must be a positive number.")
        items = self.get_items(user_id, item.vendor_id)
        for i, existing in enumerate(items):
            if existing.product_id == item.product_id:
                items[i] = OrderLineItem(
                    product_id=existing.product_id,
                    vendor_id=existing.vendor_id,
                    quantity=existing.quantity + item.quantity,
                    unit_price=existing.unit_price,
                    product_name=existing.product_name,
                )
                break
        else:
            items.append(item)
        self._carts[(user_id, item.vendor_id)] = items
        return list(items)

    def clear(self, user_id: str, vendor_id: str) -> None:
        """Drop one cart, e.g. after a successful checkout."""
        self._carts.pop((user_id, vendor_id), None)

    def clear_all(self, user_id: str) -> None:
        for key in [k for k in self._carts if k[0] == user_id]:
            del self._carts[key]
