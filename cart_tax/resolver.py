"""
Tax resolution: decide which taxes apply to a cart, then price it.

Product-specific tax mappings take precedence over organization defaults
for the whole cart. Product lookups are fanned out to a thread pool; a
failing lookup degrades to "no override" while a failing catalog fetch
aborts the calculation.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional, Protocol, Sequence

from cart_tax.calculator import (
    CartTaxResult,
    LineItem,
    Observer,
    compute_cart_taxes,
)
from cart_tax.errors import TaxCatalogError
from cart_tax.rates import ProductId, TaxRateDefinition

logger = logging.getLogger(__name__)


class TaxSource(Protocol):
    """Tenant-scoped lookups the resolver depends on."""

    def get_organization_taxes(self) -> list[TaxRateDefinition]:
        ...

    def get_product_taxes(self, product_id: ProductId) -> list[str]:
        ...


def default_applied_taxes(
    tax_catalog: Iterable[TaxRateDefinition],
) -> dict[str, bool]:
    """Initial selection for a cart: every tax mapped to its default flag."""
    return {tax.tax_id: tax.is_default for tax in tax_catalog}


def _fetch_product_taxes(
    tax_source: TaxSource,
    product_ids: Sequence[ProductId],
    max_workers: int,
) -> dict[ProductId, list[str]]:
    overrides: dict[ProductId, list[str]] = {}
    if not product_ids:
        return overrides

    workers = max(1, min(max_workers, len(product_ids)))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_product = {
            executor.submit(tax_source.get_product_taxes, pid): pid
            for pid in product_ids
        }
        for future in as_completed(future_to_product):
            pid = future_to_product[future]
            try:
                overrides[pid] = [str(t) for t in (future.result() or [])]
            except Exception as e:
                logger.warning(
                    "Could not resolve taxes for product %s, using no override: %s",
                    pid,
                    e,
                )
                overrides[pid] = []
    return overrides


def resolve_applied_taxes(
    items: Sequence[LineItem],
    tax_source: TaxSource,
    tax_catalog: Sequence[TaxRateDefinition],
    max_workers: int = 4,
) -> tuple[dict[str, bool], bool]:
    """
    Work out the applied-tax selection for a cart.

    Returns ``(applied_taxes, has_product_specific_taxes)``. When any
    product carries a tax mapping, the selection is the union of mapped
    tax ids; otherwise it is the catalog's default taxes.
    """
    product_ids: list[ProductId] = []
    for item in items:
        if item.product_id is not None and item.product_id not in product_ids:
            product_ids.append(item.product_id)

    overrides = _fetch_product_taxes(tax_source, product_ids, max_workers)

    applied: dict[str, bool] = {}
    # product_ids order keeps the selection deterministic
    for pid in product_ids:
        for tax_id in overrides.get(pid, []):
            applied[tax_id] = True

    if applied:
        known = {tax.tax_id for tax in tax_catalog}
        for tax_id in applied:
            if tax_id not in known:
                logger.warning(
                    "Product tax %s is not in the organization catalog; ignored",
                    tax_id,
                )
        return applied, True

    return {tax.tax_id: True for tax in tax_catalog if tax.is_default}, False


def compute_cart_taxes_complete(
    items: Iterable[LineItem],
    tax_source: TaxSource,
    tax_included: bool,
    tax_catalog: Optional[Iterable[TaxRateDefinition]] = None,
    max_workers: int = 4,
    observer: Optional[Observer] = None,
) -> CartTaxResult:
    """
    Resolve applicable taxes for a cart and compute its totals.

    Raises:
        TaxCatalogError: the catalog was not supplied and fetching it failed.
    """
    items = list(items)

    if tax_catalog is None:
        try:
            catalog = list(tax_source.get_organization_taxes())
        except Exception as e:
            raise TaxCatalogError(f"Could not load tax catalog: {e}") from e
    else:
        catalog = list(tax_catalog)

    applied, product_specific = resolve_applied_taxes(
        items, tax_source, catalog, max_workers=max_workers
    )

    result = compute_cart_taxes(
        items, applied, catalog, tax_included, observer=observer
    )
    result.applied_taxes = applied
    result.has_product_specific_taxes = product_specific

    if observer is not None:
        observer(
            "cart_taxes_resolved",
            {
                "items": len(items),
                "applied_taxes": sorted(applied),
                "product_specific": product_specific,
                "tax_included": tax_included,
                "final_total": result.final_total,
            },
        )
    return result
