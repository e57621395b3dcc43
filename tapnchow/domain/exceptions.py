"""
Domain exceptions for the order core.

Exception Hierarchy:
    OrderCoreError (base)
    ├── InvalidTransition
    ├── CancellationWindowExpired
    ├── RefundFailed
    ├── DataIntegrityAnomaly
    ├── OrderNotFound
    ├── EmptyOrderError
    └── InvalidGranularity

    PaymentGatewayError is raised by payment collaborators and wrapped
    into RefundFailed by the order service.

Every failure is local to one order operation. Callers decide how to
present it.
"""


class OrderCoreError(Exception):
    """Base exception for all order core errors."""
    pass


class InvalidTransition(OrderCoreError):
    """Requested status change violates the order state machine."""

    def __init__(self, current, target, message=None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move order from {current.value} to {target.value}"
        )


class CancellationWindowExpired(OrderCoreError):
    """Cancellation requested after the grace period ended."""

    def __init__(self, elapsed_seconds, window_seconds):
        self.elapsed_seconds = elapsed_seconds
        self.window_seconds = window_seconds
        super().__init__(
            f"Cancellation window of {window_seconds}s expired "
            f"({elapsed_seconds:.0f}s since order was placed)"
        )


class RefundFailed(OrderCoreError):
    """
    Payment provider rejected the refund during cancellation.

    The order status and stock were left untouched.
    """

    def __init__(self, order_id, capture_id, reason):
        self.order_id = order_id
        self.capture_id = capture_id
        self.reason = reason
        super().__init__(f"Refund failed for order {order_id}: {reason}")


class DataIntegrityAnomaly(OrderCoreError):
    """Stored data is inconsistent, e.g. a PayPal order without capture id."""

    def __init__(self, order_id, detail):
        self.order_id = order_id
        self.detail = detail
        super().__init__(f"Order {order_id}: {detail}")


class OrderNotFound(OrderCoreError):
    """Order id is unknown to the repository."""
    pass


class EmptyOrderError(OrderCoreError):
    """Checkout attempted with no line items."""
    pass


class InvalidGranularity(OrderCoreError):
    """
    Report granularity is not one of day, week, month, year or quarter.

    Example:
        raise InvalidGranularity("Invalid granularity: 'hour'")
    """
    pass


class PaymentGatewayError(Exception):
    """Raised by payment collaborators when a provider call fails."""
    pass
