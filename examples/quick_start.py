#!/usr/bin/env python3
"""
Quick Start Example
===================

Prices a two-line cart under a 19% IVA, first with tax added on top of
the prices and then with the tax already included in them.

Usage:
    python examples/quick_start.py
"""

from decimal import Decimal

from cart_tax.calculator import LineItem, compute_cart_taxes
from cart_tax.rates import InMemoryTaxSource, TaxCatalog, TaxRateDefinition
from cart_tax.report_generator import format_tax_calculation_for_log
from cart_tax.resolver import compute_cart_taxes_complete, default_applied_taxes


def main() -> None:
    catalog = TaxCatalog(
        "1",
        [
            TaxRateDefinition("iva", "IVA", Decimal("19"), is_default=True),
            TaxRateDefinition("ico", "Impuesto al consumo", Decimal("8")),
        ],
    )
    items = [
        LineItem(Decimal("2"), Decimal("50.00"), product_id="P-1"),
        LineItem(Decimal("1"), Decimal("119.00"), product_id="P-2"),
    ]

    # Organization defaults, prices exclude tax
    applied = default_applied_taxes(catalog)
    result = compute_cart_taxes(items, applied, catalog, tax_included=False)
    print("Tax excluded:", format_tax_calculation_for_log(result))

    # Same cart, prices already include tax
    result = compute_cart_taxes(items, applied, catalog, tax_included=True)
    print("Tax included:", format_tax_calculation_for_log(result))

    # Product P-2 carries its own tax, which then governs the whole cart
    source = InMemoryTaxSource([catalog], {"1": {"P-2": ["ico"]}})
    result = compute_cart_taxes_complete(items, source, tax_included=False)
    print("Resolved:    ", format_tax_calculation_for_log(result))


if __name__ == "__main__":
    main()
