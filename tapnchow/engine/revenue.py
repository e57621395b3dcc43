"""
Revenue attribution and platform split.

An order may hold items from several vendors. Attribution picks out the
items belonging to one vendor and applies tax; the platform split then
divides a settled total into the platform's fee and the vendor's share.

Two tax rates are in use: vendor sales reports apply 6%, customer
checkout applies 8%. They are kept as separate contexts so every caller
states which one it means.
"""

from enum import Enum
from decimal import Decimal
from typing import Dict, Iterable, Optional
from tapnchow.domain.models import (
    Attribution, CheckoutTotals, OrderLineItem, RevenueSplit, to_money,
)


PLATFORM_RATE = Decimal("0.10")
SERVICE_FEE_RATE = Decimal("0.10")
ZERO = Decimal("0.00")


class TaxContext(Enum):
    """Where a tax figure is shown, which decides its rate."""
    VENDOR_REPORT = "vendor_report"
    CHECKOUT = "checkout"


DEFAULT_TAX_RATES: Dict[TaxContext, Decimal] = {
    TaxContext.VENDOR_REPORT: Decimal("0.06"),
    TaxContext.CHECKOUT: Decimal("0.08"),
}


class RevenueAttributor:
    """Computes vendor attribution, tax and the platform/vendor split."""

    def __init__(self, platform_rate: Decimal = PLATFORM_RATE,
                 tax_rates: Optional[Dict[TaxContext, Decimal]] = None,
                 service_fee_rate: Decimal = SERVICE_FEE_RATE):
        """
        Initialize the attributor.

        Args:
            platform_rate: Fraction of a settled total kept by the platform
            tax_rates: Tax rate per context (defaults: report 6%, checkout 8%)
            service_fee_rate: Checkout service fee as a fraction of subtotal
        """
        if not ZERO <= platform_rate <= Decimal("1"):
            raise ValueError("Platform rate must be between 0 and 1")
        self.platform_rate = platform_rate
        self.tax_rates = dict(DEFAULT_TAX_RATES)
        if tax_rates:
            self.tax_rates.update(tax_rates)
        self.service_fee_rate = service_fee_rate

    @classmethod
    def from_settings(cls, config) -> "RevenueAttributor":
        return cls(
            platform_rate=config.platform_rate,
            tax_rates={
                TaxContext.VENDOR_REPORT: config.vendor_report_tax_rate,
                TaxContext.CHECKOUT: config.checkout_tax_rate,
            },
            service_fee_rate=config.service_fee_rate,
        )

    def tax_rate(self, context: TaxContext) -> Decimal:
        return self.tax_rates[context]

    def attribute(self, line_items: Iterable[OrderLineItem], vendor_id: str,
                  context: TaxContext = TaxContext.VENDOR_REPORT) -> Attribution:
        """
        Compute the part of a set of line items owned by one vendor.

        Args:
            line_items: Items of one or more orders
            vendor_id: Vendor to attribute
            context: Which tax rate applies

        Returns:
            Attribution with subtotal, tax and total; all zero when the
            vendor owns none of the items
        """
        subtotal = sum(
            (item.subtotal for item in line_items if item.vendor_id == vendor_id),
            Decimal("0"),
        )
        subtotal = to_money(subtotal)
        tax = to_money(subtotal * self.tax_rate(context))
        return Attribution(subtotal=subtotal, tax=tax, total=subtotal + tax)

    def platform_cut(self, total: Decimal) -> RevenueSplit:
        """
        Split a settled total between platform and vendor.

        The platform share is rounded to cents and the vendor receives the
        remainder, so the two parts always add up to the rounded total.
        """
        total = to_money(total)
        platform = to_money(total * self.platform_rate)
        return RevenueSplit(platform=platform, vendor=total - platform)

    def compute_revenue_split(self, line_items: Iterable[OrderLineItem], vendor_id: str,
                              context: TaxContext = TaxContext.VENDOR_REPORT):
        """Attribute a vendor's items and split the taxed total in one call."""
        attribution = self.attribute(line_items, vendor_id, context)
        return attribution, self.platform_cut(attribution.total)

    def checkout_totals(self, line_items: Iterable[OrderLineItem],
                        discount: Decimal = ZERO) -> CheckoutTotals:
        """
        Compute what the customer pays at checkout.

        Service fee and checkout tax are both charged on the item subtotal.
        A voucher discount is taken off the end and never drives the total
        below zero.
        """
        if discount < 0:
            raise ValueError("Discount must not be negative")
        subtotal = to_money(sum((item.subtotal for item in line_items), Decimal("0")))
        service_fee = to_money(subtotal * self.service_fee_rate)
        tax = to_money(subtotal * self.tax_rate(TaxContext.CHECKOUT))
        discount = to_money(discount)
        total = max(ZERO, subtotal + service_fee + tax - discount)
        return CheckoutTotals(
            subtotal=subtotal,
            service_fee=service_fee,
            tax=tax,
            discount=discount,
            total=total,
        )


_default_attributor = RevenueAttributor()


def attribute(line_items, vendor_id, context=TaxContext.VENDOR_REPORT) -> Attribution:
    return _default_attributor.attribute(line_items, vendor_id, context)


def platform_cut(total) -> RevenueSplit:
    return _default_attributor.platform_cut(total)


def compute_revenue_split(line_items, vendor_id, context=TaxContext.VENDOR_REPORT):
    """Module-level shortcut using the standard rates."""
    return _default_attributor.compute_revenue_split(line_items, vendor_id, context)
