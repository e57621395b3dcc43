"""
Order service: the entry point for order lifecycle operations.

Ties together the status table, revenue attribution and the external
collaborators (order store, payment provider, stock ledger).

Cancellation runs as sequential external calls: refund first, then the
status commit, then stock reversal. There is no compensating transaction
if the process stops between them.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Union
from tapnchow.config import settings as default_settings
from tapnchow.domain.exceptions import (
    DataIntegrityAnomaly, EmptyOrderError, OrderNotFound, PaymentGatewayError, RefundFailed,
)
from tapnchow.domain.models import (
    Order, OrderLineItem, OrderStatus, PaymentMethod, PaymentStatus, StatusChange, utc_now,
)
from tapnchow.engine.collaborators import OrderRepository, PaymentGateway, StockLedger
from tapnchow.engine.revenue import RevenueAttributor
from tapnchow.engine.status_table import CANCELLABLE, StatusTransitionTable

logger = logging.getLogger("tapnchow")


class OrderService:
    """Orchestrates checkout, status changes, cancellation and refunds."""

    def __init__(self, orders: OrderRepository, payments: PaymentGateway, stock: StockLedger,
                 table: Optional[StatusTransitionTable] = None,
                 attributor: Optional[RevenueAttributor] = None,
                 clock: Callable[[], datetime] = utc_now):
        """
        Initialize the service.

        Args:
            orders: Order persistence collaborator
            payments: Payment provider used for refunds
            stock: Stock ledger used to reserve and release items
            table: Status rules (default: 60 second cancellation window)
            attributor: Pricing rules used at checkout
            clock: Source of "now" when callers do not pass one (UTC-aware)
        """
        self.orders = orders
        self.payments = payments
        self.stock = stock
        self.table = table or StatusTransitionTable()
        self.attributor = attributor or RevenueAttributor()
        self.clock = clock

    @classmethod
    def from_settings(cls, orders: OrderRepository, payments: PaymentGateway,
                      stock: StockLedger, config=None, **kwargs) -> "OrderService":
        """Build a service whose rules come from Settings (environment by default)."""
        config = config or default_settings
        return cls(
            orders, payments, stock,
            table=StatusTransitionTable(config.cancellation_window_seconds),
            attributor=RevenueAttributor.from_settings(config),
            **kwargs,
        )

    def get_order(self, order_id: str) -> Order:
        """
        Fetch an order.

        Raises:
            OrderNotFound: If the repository has no such order
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

    def place_order(self, customer_id: str, line_items: List[OrderLineItem],
                    payment_method: PaymentMethod = PaymentMethod.CASH,
                    shipping_address: str = "", capture_id: str = "",
                    discount: Decimal = Decimal("0"),
                    now: Optional[datetime] = None) -> Order:
        """
        Create a pending order from checked-out items.

        Totals are priced before any stock moves. Stock for every item is
        then reserved and the order stored; if a reservation or the store
        write fails, the reservations already made are released and the
        error propagates.

        Returns:
            The stored order

        Raises:
            EmptyOrderError: If there are no items
            ValueError: If an item has a non-positive quantity or the
                discount is negative
        """
        if not line_items:
            raise EmptyOrderError("Cannot place an order with no items")
        for item in line_items:
            if item.quantity <= 0:
                raise ValueError(f"Quantity must be positive for product {item.product_id}")

        now = now or self.clock()
        totals = self.attributor.checkout_totals(line_items, discount)
        order = Order(
            order_id=self._next_order_id(),
            customer_id=customer_id,
            line_items=list(line_items),
            total_price=totals.total,
            created_at=now,
            status=OrderStatus.PENDING,
            payment_method=payment_method,
            shipping_address=shipping_address,
            capture_id=capture_id,
            payment_status=PaymentStatus.COMPLETED if capture_id else PaymentStatus.PENDING,
        )

        reserved: List[OrderLineItem] = []
        try:
            for item in line_items:
                self.stock.adjust_stock(item.product_id, -item.quantity)
                reserved.append(item)
            self.orders.add_order(order)
        except Exception:
            for item in reserved:
                self.stock.adjust_stock(item.product_id, item.quantity)
            raise

        logger.info("order placed order=%s customer=%s total=%s payment=%s",
                    order.order_id, customer_id, order.total_price, payment_method.value)
        return order

    def request_status_change(self, order_id: str, target: Union[OrderStatus, str],
                              now: Optional[datetime] = None) -> StatusChange:
        """
        Move an order to a new status.

        Args:
            order_id: Order to update
            target: Requested status (enum or stored string)
            now: Evaluation time for the cancellation window

        Returns:
            StatusChange describing the result

        Raises:
            OrderNotFound: Unknown order
            InvalidTransition: Move not allowed by the state machine
            CancellationWindowExpired: Cancellation requested too late
            RefundFailed: Refund rejected; nothing was changed
        """
        if isinstance(target, str):
            target = OrderStatus.parse(target)
        order = self.get_order(order_id)
        now = now or self.clock()

        self.table.validate(order.status, target, order.elapsed_seconds(now))

        if target == OrderStatus.CANCELLED:
            return self._cancel(order, now)

        previous = order.status
        self.orders.update_status(order.order_id, target, now)
        order.status = target
        order.updated_at = now
        logger.info("status change order=%s %s->%s", order.order_id, previous.value, target.value)
        return StatusChange(order=order, previous_status=previous)

    def advance(self, order_id: str, now: Optional[datetime] = None) -> StatusChange:
        """Move an order one step forward."""
        order = self.get_order(order_id)
        target = self.table.next_status(order.status)
        if target is None:
            # Let the table produce the terminal-state error
            target = OrderStatus.COMPLETED
        return self.request_status_change(order_id, target, now)

    def cancel_order(self, order_id: str, now: Optional[datetime] = None) -> StatusChange:
        return self.request_status_change(order_id, OrderStatus.CANCELLED, now)

    def cancellation_time_remaining(self, order_id: str, now: Optional[datetime] = None) -> int:
        """Seconds left to cancel, 0 once the window closed or the order moved on."""
        order = self.get_order(order_id)
        if order.status not in CANCELLABLE:
            return 0
        now = now or self.clock()
        return self.table.cancellation_time_remaining(order.elapsed_seconds(now))

    def _cancel(self, order: Order, now: datetime) -> StatusChange:
        previous = order.status
        refund = None
        anomaly = None

        if order.payment_method == PaymentMethod.PAYPAL:
            if order.capture_id:
                try:
                    refund = self.payments.refund_payment(order.capture_id)
                except PaymentGatewayError as exc:
                    logger.error("refund failed order=%s capture=%s err=%s",
                                 order.order_id, order.capture_id, exc)
                    raise RefundFailed(order.order_id, order.capture_id, str(exc)) from exc
                logger.info("refund issued order=%s capture=%s refund=%s",
                            order.order_id, order.capture_id, refund.refund_id)
            else:
                anomaly = DataIntegrityAnomaly(
                    order.order_id, "PayPal order has no capture id; refund needs manual reconciliation"
                )
                logger.error("cancel without refund order=%s reason=missing capture id",
                             order.order_id)

        self.orders.update_status(order.order_id, OrderStatus.CANCELLED, now)
        order.status = OrderStatus.CANCELLED
        order.updated_at = now

        if refund is not None:
            self.orders.update_payment_status(order.order_id, PaymentStatus.REFUNDED)
            order.payment_status = PaymentStatus.REFUNDED

        for item in order.line_items:
            self.stock.adjust_stock(item.product_id, item.quantity)

        logger.info("order cancelled order=%s from=%s", order.order_id, previous.value)
        return StatusChange(order=order, previous_status=previous, refund=refund, anomaly=anomaly)

    def _next_order_id(self) -> str:
        count = len(self.orders.list_orders())
        return f"O{count + 1:03d}"
