"""Exceptions raised by the cart tax engine."""

from __future__ import annotations


class CartTaxError(Exception):
    """Base class for all cart tax engine errors."""


class TaxSourceError(CartTaxError):
    """A tax source could not serve a lookup (missing tenant, bad data)."""


class TaxCatalogError(CartTaxError):
    """
    The tax catalog could not be fetched.

    Fatal for a calculation: proceeding without a catalog would silently
    apply zero taxes. Callers should treat it as retryable.
    """
