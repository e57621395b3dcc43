"""
Interfaces of the external systems the order service talks to.

Persistence, payments and stock live outside this package. Anything with
matching methods can be passed in; no base class is required.
"""

from datetime import datetime
from typing import Callable, List, Optional, Protocol
from tapnchow.domain.models import Order, OrderStatus, PaymentStatus, RefundReceipt


OrderFilter = Callable[[Order], bool]


class OrderRepository(Protocol):
    """Document store holding orders. Writes to one order are atomic."""

    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    def update_status(self, order_id: str, status: OrderStatus, updated_at: datetime) -> None:
        ...

    def list_orders(self, order_filter: Optional[OrderFilter] = None) -> List[Order]:
        ...

    def add_order(self, order: Order) -> None:
        ...

    def update_payment_status(self, order_id: str, status: PaymentStatus) -> None:
        ...


class PaymentGateway(Protocol):
    """Payment provider. Raises PaymentGatewayError when a call fails."""

    def refund_payment(self, capture_id: str) -> RefundReceipt:
        ...


class StockLedger(Protocol):
    """Product stock counts."""

    def adjust_stock(self, product_id: str, delta: int) -> None:
        ...
