"""
Order status state machine.

Orders move strictly forward through:
    pending -> confirmed -> preparing -> ready -> completed

Cancellation is the one exception: it is reachable from pending,
confirmed and preparing, but only within a short window measured
from the order's creation time. Completed and cancelled are terminal.

Window checks are evaluated at call time from the elapsed seconds the
caller supplies; there is no background expiry.
"""

from typing import Dict, Optional
from tapnchow.domain.models import OrderStatus
from tapnchow.domain.exceptions import InvalidTransition, CancellationWindowExpired


FORWARD: Dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.COMPLETED,
}

CANCELLABLE = frozenset({
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
})

DEFAULT_CANCELLATION_WINDOW_SECONDS = 60


class StatusTransitionTable:
    """Valid order status transitions and their ordering."""

    def __init__(self, cancellation_window_seconds: int = DEFAULT_CANCELLATION_WINDOW_SECONDS):
        """
        Initialize the table.

        Args:
            cancellation_window_seconds: Grace period after order creation
                during which cancellation is allowed (inclusive)
        """
        if cancellation_window_seconds < 0:
            raise ValueError("Cancellation window must not be negative")
        self.cancellation_window_seconds = cancellation_window_seconds

    def next_status(self, current: OrderStatus) -> Optional[OrderStatus]:
        """
        Get the single forward-adjacent status.

        Returns:
            Next status, or None if current is terminal
        """
        return FORWARD.get(current)

    def can_transition(self, current: OrderStatus, target: OrderStatus,
                       elapsed_seconds: float) -> bool:
        """
        Check whether current -> target is allowed.

        Args:
            current: Status the order is in now
            target: Requested status
            elapsed_seconds: Seconds since the order was created

        Returns:
            True for the forward-adjacent move, or for a cancellation
            requested within the window from a cancellable state
        """
        if target == OrderStatus.CANCELLED:
            return current in CANCELLABLE and self._within_window(elapsed_seconds)
        return FORWARD.get(current) == target

    def validate(self, current: OrderStatus, target: OrderStatus,
                 elapsed_seconds: float) -> None:
        """
        Raise if current -> target is not allowed.

        Raises:
            CancellationWindowExpired: Cancellation from a cancellable state
                requested after the window closed
            InvalidTransition: Any other disallowed move
        """
        if self.can_transition(current, target, elapsed_seconds):
            return

        if target == OrderStatus.CANCELLED and current in CANCELLABLE:
            raise CancellationWindowExpired(
                max(0.0, elapsed_seconds), self.cancellation_window_seconds
            )

        if current.is_terminal():
            raise InvalidTransition(
                current, target,
                f"Order is {current.value} and can no longer change status"
            )
        raise InvalidTransition(current, target)

    def cancellation_time_remaining(self, elapsed_seconds: float) -> int:
        """Whole seconds left in the cancellation window, floored at zero."""
        remaining = self.cancellation_window_seconds - max(0.0, elapsed_seconds)
        return max(0, int(remaining))

    def _within_window(self, elapsed_seconds: float) -> bool:
        # Clock skew can make elapsed negative; treat it as just placed
        return max(0.0, elapsed_seconds) <= self.cancellation_window_seconds
