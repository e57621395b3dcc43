"""
Time-bucketed revenue reports for charts.

Orders are placed into a fixed set of buckets for the requested
granularity, relative to a reference instant (usually "now"):

- day:     4 six-hour buckets of the reference date
- week:    7 daily buckets, either the calendar week (Mon-Sun) holding
           the reference date or the trailing 7 days ending on it
- month:   4 week-of-month buckets, weeks starting Monday; week 5 and
           later fold into week 4
- year:    4 quarter buckets of the reference year ("quarter" is an alias)

By default each order contributes the platform fee on its total. A
vendor-scoped report instead contributes the vendor's attributed subtotal
plus report tax. Datetimes are compared as given, so orders and the
reference instant must share a timezone convention.
"""

import logging
from collections import defaultdict
from dataclasses import replace
from enum import Enum
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple
from tapnchow.domain.exceptions import InvalidGranularity
from tapnchow.domain.models import (
    Order, OrderStatus, PeriodComparison, RevenueSplit, TimeBucket,
    VendorSalesSummary, to_money,
)
from tapnchow.engine.revenue import RevenueAttributor, TaxContext

logger = logging.getLogger("tapnchow")

ZERO = Decimal("0.00")
TREND_THRESHOLD = Decimal("0.1")


class Granularity(Enum):
    """Chart time range."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, text: str) -> "Granularity":
        """Parse a time range name; 'quarter' is accepted for year."""
        key = text.strip().lower()
        if key == "quarter":
            return cls.YEAR
        try:
            return cls(key)
        except ValueError:
            raise InvalidGranularity(
                f"Invalid granularity: {text!r}. Valid options: day, week, month, year, quarter"
            ) from None


class WeekFraming(Enum):
    """Which seven days a week report covers."""
    CALENDAR = "calendar"
    TRAILING = "trailing"


class Trend(Enum):
    """Direction of a value series."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


DAY_LABELS = ["12am", "6am", "12pm", "6pm"]
WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = ["Week 1", "Week 2", "Week 3", "Week 4"]
QUARTER_LABELS = ["Q1", "Q2", "Q3", "Q4"]

# Trailing window lengths used for period-over-period comparison
PERIOD_SECONDS: Dict[Granularity, int] = {
    Granularity.DAY: 86400,
    Granularity.WEEK: 604800,
    Granularity.MONTH: 2592000,
    Granularity.YEAR: 31536000,
}


def week_of_month(day: date) -> int:
    """1-based week of month with weeks starting on Monday."""
    first = day.replace(day=1)
    return (day.day - 1 + first.weekday()) // 7 + 1


class ReportAggregator:
    """Builds chart series, trends and sales summaries from fetched orders."""

    def __init__(self, attributor: Optional[RevenueAttributor] = None,
                 trend_threshold: Decimal = TREND_THRESHOLD):
        self.attributor = attributor or RevenueAttributor()
        self.trend_threshold = trend_threshold

    @classmethod
    def from_settings(cls, config) -> "ReportAggregator":
        return cls(RevenueAttributor.from_settings(config), config.trend_threshold)

    def labels(self, granularity: Granularity, reference: datetime,
               week_framing: WeekFraming = WeekFraming.CALENDAR) -> List[str]:
        """Bucket labels for a granularity, in chart order."""
        if granularity == Granularity.DAY:
            return list(DAY_LABELS)
        if granularity == Granularity.WEEK:
            if week_framing == WeekFraming.CALENDAR:
                return list(WEEKDAY_LABELS)
            start = reference.date() - timedelta(days=6)
            return [(start + timedelta(days=i)).strftime("%m/%d") for i in range(7)]
        if granularity == Granularity.MONTH:
            return list(MONTH_LABELS)
        return list(QUARTER_LABELS)

    def aggregate(self, orders: Iterable[Order], granularity, reference: datetime,
                  vendor_id: Optional[str] = None,
                  week_framing: WeekFraming = WeekFraming.CALENDAR,
                  include_cancelled: bool = False) -> List[TimeBucket]:
        """
        Bucket orders by time and sum their revenue contribution.

        Args:
            orders: Orders already fetched by the caller
            granularity: Granularity or its name
            reference: Instant the report is relative to
            vendor_id: Scope the report to one vendor's attributed revenue
            week_framing: Calendar week or trailing 7 days (week only)
            include_cancelled: Count cancelled orders too

        Returns:
            Ordered list of TimeBucket; every label is present even when
            no order falls into it

        Raises:
            InvalidGranularity: If granularity text is not recognised
        """
        if isinstance(granularity, str):
            granularity = Granularity.parse(granularity)

        labels = self.labels(granularity, reference, week_framing)
        values = [Decimal("0")] * len(labels)
        index_of = self._indexer(granularity, reference, week_framing)

        for order in orders:
            if order.status == OrderStatus.CANCELLED and not include_cancelled:
                continue
            index = index_of(order.created_at)
            if index is None:
                continue
            values[index] += self.contribution(order, vendor_id)

        return [TimeBucket(label=label, value=to_money(value))
                for label, value in zip(labels, values)]

    def build_chart_series(self, orders: Iterable[Order], granularity, reference: datetime,
                           **kwargs) -> List[Tuple[str, Decimal]]:
        """Same as aggregate, flattened to (label, value) pairs."""
        return [(bucket.label, bucket.value)
                for bucket in self.aggregate(orders, granularity, reference, **kwargs)]

    def contribution(self, order: Order, vendor_id: Optional[str] = None) -> Decimal:
        """Revenue one order adds to a report."""
        if vendor_id is None:
            return to_money(order.total_price * self.attributor.platform_rate)
        return self.attributor.attribute(
            order.line_items, vendor_id, TaxContext.VENDOR_REPORT
        ).total

    def _indexer(self, granularity: Granularity, reference: datetime,
                 week_framing: WeekFraming) -> Callable[[datetime], Optional[int]]:
        ref_day = reference.date()

        if granularity == Granularity.DAY:
            def index(moment: datetime) -> Optional[int]:
                if moment.date() != ref_day:
                    return None
                return moment.hour // 6
            return index

        if granularity == Granularity.WEEK:
            if week_framing == WeekFraming.CALENDAR:
                start = ref_day - timedelta(days=ref_day.weekday())
            else:
                start = ref_day - timedelta(days=6)

            def index(moment: datetime) -> Optional[int]:
                offset = (moment.date() - start).days
                return offset if 0 <= offset < 7 else None
            return index

        if granularity == Granularity.MONTH:
            def index(moment: datetime) -> Optional[int]:
                if (moment.year, moment.month) != (ref_day.year, ref_day.month):
                    return None
                return min(week_of_month(moment.date()), 4) - 1
            return index

        def index(moment: datetime) -> Optional[int]:
            if moment.year != ref_day.year:
                return None
            return (moment.month - 1) // 3
        return index

    def trend_ratio(self, values: Sequence) -> Decimal:
        """
        Relative change between the first and second half of a series.

        Halves have length len(values) // 2, so the middle element of an
        odd-length series is ignored. Returns 0 for fewer than two values
        or when the first half averages zero.
        """
        half = len(values) // 2
        if half == 0:
            return Decimal("0")
        numbers = [Decimal(str(v)) for v in values]
        first_avg = sum(numbers[:half]) / half
        second_avg = sum(numbers[len(numbers) - half:]) / half
        if first_avg == 0:
            return Decimal("0")
        return (second_avg - first_avg) / first_avg

    def classify_trend(self, values: Sequence) -> Trend:
        ratio = self.trend_ratio(values)
        if ratio > self.trend_threshold:
            return Trend.INCREASING
        if ratio < -self.trend_threshold:
            return Trend.DECREASING
        return Trend.STABLE

    def compare_periods(self, orders: Iterable[Order], granularity, reference: datetime,
                        include_cancelled: bool = False) -> PeriodComparison:
        """
        Compare gross revenue of the trailing period with the period before.

        Period lengths are 1, 7, 30 and 365 days for day, week, month and
        year. Change is a percentage, 0 when the previous period had no
        revenue.
        """
        if isinstance(granularity, str):
            granularity = Granularity.parse(granularity)
        period = PERIOD_SECONDS[granularity]

        current_revenue = previous_revenue = Decimal("0")
        current_orders = previous_orders = 0
        for order in orders:
            if order.status == OrderStatus.CANCELLED and not include_cancelled:
                continue
            age = (reference - order.created_at).total_seconds()
            if 0 <= age < period:
                current_revenue += order.total_price
                current_orders += 1
            elif period <= age < period * 2:
                previous_revenue += order.total_price
                previous_orders += 1

        if previous_revenue > 0:
            change = (current_revenue - previous_revenue) / previous_revenue * 100
        else:
            change = Decimal("0")

        return PeriodComparison(
            current_revenue=to_money(current_revenue),
            previous_revenue=to_money(previous_revenue),
            current_orders=current_orders,
            previous_orders=previous_orders,
            change_percent=to_money(change),
        )

    def summarize_vendor_sales(self, orders: Iterable[Order], vendor_id: str) -> VendorSalesSummary:
        """
        Sales figures for one vendor across orders.

        Orders without any of the vendor's items are skipped. Cancelled
        orders are counted per status and listed, but add no revenue.
        Listed orders are copies whose total is the vendor's share plus
        report tax, not the customer's checkout total.
        """
        status_counts: Dict[OrderStatus, int] = defaultdict(int)
        vendor_orders: List[Order] = []
        revenue = tax = Decimal("0")
        valid_orders = 0

        for order in orders:
            if vendor_id not in order.vendor_ids():
                continue
            attribution = self.attributor.attribute(
                order.line_items, vendor_id, TaxContext.VENDOR_REPORT
            )
            vendor_orders.append(replace(order, total_price=attribution.total))
            status_counts[order.status] += 1
            if order.status == OrderStatus.CANCELLED:
                continue
            revenue += attribution.subtotal
            tax += attribution.tax
            valid_orders += 1

        vendor_orders.sort(key=lambda o: o.created_at, reverse=True)
        logger.debug("vendor summary vendor=%s orders=%s revenue=%s",
                     vendor_id, valid_orders, revenue)
        return VendorSalesSummary(
            vendor_id=vendor_id,
            total_revenue=to_money(revenue),
            total_tax=to_money(tax),
            total_orders=valid_orders,
            status_counts=dict(status_counts),
            recent_orders=vendor_orders,
        )

    def summarize_platform_revenue(self, orders: Iterable[Order]) -> RevenueSplit:
        """Platform and vendor shares of all non-cancelled order totals."""
        gross = sum(
            (o.total_price for o in orders if o.status != OrderStatus.CANCELLED),
            Decimal("0"),
        )
        return self.attributor.platform_cut(gross)


_default_aggregator = ReportAggregator()


def build_chart_series(orders, granularity, reference, **kwargs) -> List[Tuple[str, Decimal]]:
    """Module-level shortcut using the standard rates."""
    return _default_aggregator.build_chart_series(orders, granularity, reference, **kwargs)
