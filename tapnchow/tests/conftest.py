import pytest
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from tapnchow.domain.exceptions import PaymentGatewayError
from tapnchow.domain.models import (
    Order, OrderLineItem, OrderStatus, PaymentMethod, RefundReceipt,
)
from tapnchow.engine.order_service import OrderService


# Wednesday
REFERENCE = datetime(2026, 10, 14, 15, 30)


class FakeOrderRepository:
    """In-memory order store recording every status write."""

    def __init__(self):
        self.orders = {}
        self.status_writes = []
        self.payment_writes = []

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def update_status(self, order_id, status, updated_at):
        self.status_writes.append((order_id, status))
        self.orders[order_id].status = status
        self.orders[order_id].updated_at = updated_at

    def list_orders(self, order_filter=None):
        orders = list(self.orders.values())
        if order_filter is not None:
            orders = [o for o in orders if order_filter(o)]
        return orders

    def add_order(self, order):
        self.orders[order.order_id] = order

    def update_payment_status(self, order_id, status):
        self.payment_writes.append((order_id, status))
        self.orders[order_id].payment_status = status


class FakePaymentGateway:
    """Payment provider that succeeds unless told to fail."""

    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.refunded = []

    def refund_payment(self, capture_id):
        if self.fail_with:
            raise PaymentGatewayError(self.fail_with)
        self.refunded.append(capture_id)
        return RefundReceipt(refund_id=f"R-{capture_id}", capture_id=capture_id)


class FakeStockLedger:
    """Stock counts; refuses to go below zero."""

    def __init__(self, initial=None):
        self.stock = defaultdict(int, initial or {})
        self.adjustments = []

    def adjust_stock(self, product_id, delta):
        if self.stock[product_id] + delta < 0:
            raise ValueError(f"Insufficient stock for {product_id}")
        self.stock[product_id] += delta
        self.adjustments.append((product_id, delta))


def make_item(product_id="P1", vendor_id="V0001", quantity=1, unit_price="10.00"):
    return OrderLineItem(
        product_id=product_id,
        vendor_id=vendor_id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
    )


def make_order(order_id="O001", created_at=REFERENCE, status=OrderStatus.PENDING,
               total_price="100.00", line_items=None,
               payment_method=PaymentMethod.CASH, capture_id=""):
    return Order(
        order_id=order_id,
        customer_id="C0001",
        line_items=line_items if line_items is not None else [make_item()],
        total_price=Decimal(total_price),
        created_at=created_at,
        status=status,
        payment_method=payment_method,
        capture_id=capture_id,
    )


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def repository():
    return FakeOrderRepository()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def failing_gateway():
    return FakePaymentGateway(fail_with="CAPTURE_FULLY_REFUNDED")


@pytest.fixture
def stock():
    return FakeStockLedger({"P1": 50, "P2": 50, "P3": 50})


@pytest.fixture
def service(repository, gateway, stock):
    return OrderService(repository, gateway, stock, clock=lambda: REFERENCE)
