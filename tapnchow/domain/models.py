"""
Core domain models for the ordering platform.

This module defines the data structures for orders, their line items and
the computed revenue values derived from them. Money is always Decimal;
reported values are quantized to cents.
"""

from enum import Enum
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from datetime import datetime, timezone
from typing import Dict, List, Optional


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a numeric value to currency precision."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert an aware one to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class OrderStatus(Enum):
    """Current status of an order in its lifecycle."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, text: str) -> "OrderStatus":
        """Parse a stored status string, ignoring case and whitespace."""
        try:
            return cls(text.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown order status: {text!r}") from None

    @property
    def display_text(self) -> str:
        return _STATUS_DISPLAY[self]

    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


_STATUS_DISPLAY = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready for Pickup",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}


class PaymentMethod(Enum):
    """How the customer paid at checkout."""
    CASH = "cash"
    PAYPAL = "paypal"
    CARD = "card"


class PaymentStatus(Enum):
    """State of the payment behind an order."""
    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"


@dataclass
class OrderLineItem:
    """
    One product line of an order.

    Attributes:
        product_id: Product reference
        vendor_id: Vendor owning the product
        quantity: Units ordered
        unit_price: Price per unit at checkout
        product_name: Name shown on receipts
    """
    product_id: str
    vendor_id: str
    quantity: int
    unit_price: Decimal
    product_name: str = ""

    @property
    def subtotal(self) -> Decimal:
        """Unit price times quantity."""
        return self.unit_price * self.quantity


@dataclass
class Order:
    """
    Represents a customer order.

    Attributes:
        order_id: Unique identifier (e.g. 'O001')
        customer_id: Customer who placed the order
        line_items: Products ordered, each tied to a vendor
        total_price: Amount charged at checkout
        status: Current order status
        created_at: When the order was placed
        updated_at: When the status last changed
        payment_method: How the order was paid
        shipping_address: Delivery address
        capture_id: Payment provider capture reference (PayPal only)
        payment_status: Whether the payment is pending, taken or refunded
    """
    order_id: str
    customer_id: str
    line_items: List[OrderLineItem]
    total_price: Decimal
    created_at: datetime
    status: OrderStatus = OrderStatus.PENDING
    updated_at: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    shipping_address: str = ""
    capture_id: str = ""
    payment_status: PaymentStatus = PaymentStatus.PENDING

    def __post_init__(self):
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def subtotal(self) -> Decimal:
        """Sum of line item subtotals."""
        return sum((item.subtotal for item in self.line_items), Decimal("0"))

    def vendor_ids(self) -> List[str]:
        """Vendors with at least one line item, in first-seen order."""
        seen: List[str] = []
        for item in self.line_items:
            if item.vendor_id not in seen:
                seen.append(item.vendor_id)
        return seen

    def is_complete(self) -> bool:
        """Check if order is in a terminal state."""
        return self.status.is_terminal()

    def elapsed_seconds(self, now: datetime) -> float:
        """
        Seconds since the order was placed, never negative.

        Naive datetimes are read as UTC, so a naive clock can be compared
        with timezone-aware stored timestamps and the other way round.
        """
        return max(0.0, (as_utc(now) - as_utc(self.created_at)).total_seconds())


@dataclass(frozen=True)
class Attribution:
    """Share of an order attributable to one vendor."""
    subtotal: Decimal
    tax: Decimal
    total: Decimal


@dataclass(frozen=True)
class RevenueSplit:
    """Platform and vendor portions of a settled total."""
    platform: Decimal
    vendor: Decimal

    @property
    def total(self) -> Decimal:
        return self.platform + self.vendor


@dataclass(frozen=True)
class CheckoutTotals:
    """Amounts shown to the customer at checkout."""
    subtotal: Decimal
    service_fee: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


@dataclass(frozen=True)
class TimeBucket:
    """A labelled chart point. Produced by reports, never persisted."""
    label: str
    value: Decimal


@dataclass(frozen=True)
class RefundReceipt:
    """Confirmation returned by the payment provider for a refund."""
    refund_id: str
    capture_id: str
    status: str = "COMPLETED"


@dataclass
class StatusChange:
    """
    Outcome of a status change request.

    Attributes:
        order: The order after the change
        previous_status: Status before the change
        refund: Refund receipt when a payment was reversed
        anomaly: Data problem needing manual reconciliation, if any
    """
    order: Order
    previous_status: OrderStatus
    refund: Optional[RefundReceipt] = None
    anomaly: Optional[Exception] = None

    @property
    def needs_reconciliation(self) -> bool:
        return self.anomaly is not None


@dataclass(frozen=True)
class PeriodComparison:
    """Revenue of the current trailing period against the one before it."""
    current_revenue: Decimal
    previous_revenue: Decimal
    current_orders: int
    previous_orders: int
    change_percent: Decimal


@dataclass
class VendorSalesSummary:
    """Aggregated sales figures for one vendor."""
    vendor_id: str
    total_revenue: Decimal
    total_tax: Decimal
    total_orders: int
    status_counts: Dict[OrderStatus, int] = field(default_factory=dict)
    recent_orders: List[Order] = field(default_factory=list)

    @property
    def total_revenue_with_tax(self) -> Decimal:
        return self.total_revenue + self.total_tax

    @property
    def average_order_value(self) -> Decimal:
        if self.total_orders == 0:
            return Decimal("0.00")
        return to_money(self.total_revenue / self.total_orders)

    @property
    def average_tax(self) -> Decimal:
        if self.total_orders == 0:
            return Decimal("0.00")
        return to_money(self.total_tax / self.total_orders)

    @property
    def average_order_value_with_tax(self) -> Decimal:
        if self.total_orders == 0:
            return Decimal("0.00")
        return to_money(self.total_revenue_with_tax / self.total_orders)
