"""
Cart Tax Engine
===============

Multi-rate tax calculation for order, invoice and point-of-sale line
items, in tax-inclusive and tax-exclusive pricing modes.

Modules:
    rates            - Tax rate definitions, catalogs and product tax mappings
    calculator       - Line tax calculator and cart tax aggregator
    resolver         - Applicable-tax resolution and complete cart pricing
    settings         - Stored tax-inclusive pricing preference
    logging_config   - Logger setup and event observer
    report_generator - Cart reports with CSV/JSON export
    cli              - Command-line interface
"""

__version__ = "1.0.0"

from cart_tax.calculator import (
    CartTaxResult,
    LineItem,
    TaxResult,
    compute_cart_taxes,
    compute_line_taxes,
    round2,
)
from cart_tax.errors import CartTaxError, TaxCatalogError, TaxSourceError
from cart_tax.rates import InMemoryTaxSource, TaxCatalog, TaxRateDefinition
from cart_tax.resolver import (
    TaxSource,
    compute_cart_taxes_complete,
    default_applied_taxes,
)

__all__ = [
    "CartTaxResult",
    "LineItem",
    "TaxResult",
    "compute_cart_taxes",
    "compute_line_taxes",
    "round2",
    "CartTaxError",
    "TaxCatalogError",
    "TaxSourceError",
    "InMemoryTaxSource",
    "TaxCatalog",
    "TaxRateDefinition",
    "TaxSource",
    "compute_cart_taxes_complete",
    "default_applied_taxes",
]
