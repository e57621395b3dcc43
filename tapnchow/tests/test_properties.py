"""
Property-based tests using Hypothesis.

These tests generate random orders and totals to prove invariants:
- Order subtotal equals the sum of unit price times quantity
- Platform split loses no money
- Terminal states are absorbing
- Cancellation window boundary
- Reports never lose or invent revenue
"""

from decimal import Decimal
from datetime import datetime, timedelta
from hypothesis import given, strategies as st, settings
from tapnchow.domain.models import Order, OrderLineItem, OrderStatus, to_money
from tapnchow.engine.reports import Granularity, ReportAggregator
from tapnchow.engine.revenue import attribute, platform_cut
from tapnchow.engine.status_table import StatusTransitionTable


money = st.decimals(min_value=Decimal("0"), max_value=Decimal("10000"), places=2)

REFERENCE = datetime(2026, 10, 14, 15, 30)


@st.composite
def line_item_strategy(draw):
    """Generate a line item from one of three vendors."""
    return OrderLineItem(
        product_id=draw(st.sampled_from(["P1", "P2", "P3", "P4"])),
        vendor_id=draw(st.sampled_from(["V0001", "V0002", "V0003"])),
        quantity=draw(st.integers(min_value=1, max_value=50)),
        unit_price=draw(money),
    )


@st.composite
def order_strategy(draw, max_days_back=400):
    """Generate an order placed some time before the reference instant."""
    items = draw(st.lists(line_item_strategy(), min_size=0, max_size=6))
    seconds_back = draw(st.integers(min_value=0, max_value=max_days_back * 86400))
    return Order(
        order_id=draw(st.text(min_size=1, max_size=6, alphabet="O0123456789")),
        customer_id="C0001",
        line_items=items,
        total_price=draw(money),
        created_at=REFERENCE - timedelta(seconds=seconds_back),
        status=draw(st.sampled_from(list(OrderStatus))),
    )


@given(order_strategy())
@settings(max_examples=100)
def test_subtotal_is_sum_of_lines(order):
    """Property: subtotal == sum(unit_price * quantity)."""
    expected = Decimal("0")
    for item in order.line_items:
        expected += item.unit_price * item.quantity
    assert order.subtotal == expected


@given(money)
@settings(max_examples=200)
def test_platform_cut_conserves_total(total):
    """Property: platform + vendor == total."""
    split = platform_cut(total)
    assert split.platform + split.vendor == total
    assert split.platform >= 0
    assert split.vendor >= 0


@given(order_strategy())
@settings(max_examples=100)
def test_attribution_partitions_order(order):
    """Property: vendor subtotals add up to the order subtotal."""
    vendors = {"V0001", "V0002", "V0003"}
    parts = sum(attribute(order.line_items, v).subtotal for v in vendors)
    assert parts == to_money(order.subtotal)


@given(st.sampled_from(list(OrderStatus)), st.floats(min_value=0, max_value=1e6))
@settings(max_examples=100)
def test_terminal_states_absorbing(target, elapsed):
    """Property: nothing leaves completed or cancelled."""
    table = StatusTransitionTable()
    assert not table.can_transition(OrderStatus.COMPLETED, target, elapsed)
    assert not table.can_transition(OrderStatus.CANCELLED, target, elapsed)


@given(st.sampled_from([OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING]),
       st.floats(min_value=0, max_value=1e6))
@settings(max_examples=100)
def test_cancellation_window(status, elapsed):
    """Property: cancellable iff elapsed <= 60."""
    table = StatusTransitionTable()
    assert table.can_transition(status, OrderStatus.CANCELLED, elapsed) == (elapsed <= 60)


@given(st.sampled_from(list(OrderStatus)), st.sampled_from(list(OrderStatus)))
def test_non_cancel_moves_are_forward_adjacent(current, target):
    """Property: every allowed non-cancel move is the single next status."""
    table = StatusTransitionTable()
    if target != OrderStatus.CANCELLED and table.can_transition(current, target, 0):
        assert table.next_status(current) == target


@given(st.lists(order_strategy(max_days_back=3), max_size=30))
@settings(max_examples=50)
def test_year_report_counts_every_order_of_the_year(orders):
    """Property: year buckets sum to the platform fee of this year's orders."""
    aggregator = ReportAggregator()
    buckets = aggregator.aggregate(orders, Granularity.YEAR, REFERENCE, include_cancelled=True)
    expected = sum(
        (aggregator.contribution(o) for o in orders if o.created_at.year == REFERENCE.year),
        Decimal("0"),
    )
    assert len(buckets) == 4
    assert sum(b.value for b in buckets) == expected


@given(st.lists(order_strategy(), max_size=30), st.sampled_from(list(Granularity)))
@settings(max_examples=50)
def test_bucket_count_fixed(orders, granularity):
    """Property: bucket count depends only on granularity."""
    buckets = ReportAggregator().aggregate(orders, granularity, REFERENCE)
    expected = 7 if granularity == Granularity.WEEK else 4
    assert len(buckets) == expected
    assert all(b.value >= 0 for b in buckets)
