"""
Multi-rate tax calculation engine.

Handles:
- Per-line tax computation under several simultaneous percentage taxes
- Tax-inclusive (back-out) and tax-exclusive pricing
- Cart-level aggregation with a per-tax breakdown

Both entry points are pure functions of their arguments: no I/O, no shared
state. Money is carried as ``Decimal`` and rounded to cents at exactly two
points: once per line (base and each tax amount), and once more on the
cart totals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from cart_tax.rates import ProductId, TaxRateDefinition

Observer = Callable[[str, dict], None]

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


def round2(amount: Decimal) -> Decimal:
    """Round to the nearest cent, halves away from zero."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class LineItem:
    """One product/quantity/price tuple within an order or invoice."""

    quantity: Decimal
    unit_price: Decimal
    product_id: Optional[ProductId] = None

    @property
    def line_total(self) -> Decimal:
        return _to_decimal(self.quantity) * _to_decimal(self.unit_price)

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        product_id = data.get("product_id")
        return cls(
            quantity=_to_decimal(data.get("quantity", 1)),
            unit_price=_to_decimal(data["unit_price"]),
            product_id=product_id if product_id not in ("", None) else None,
        )


@dataclass
class TaxResult:
    """Amount owed for one tax, on one line or accumulated over a cart."""

    tax_id: str
    name: str
    rate: Decimal
    base_amount: Decimal
    tax_amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "tax_id": self.tax_id,
            "name": self.name,
            "rate": self.rate,
            "base_amount": self.base_amount,
            "tax_amount": self.tax_amount,
        }


@dataclass
class CartTaxResult:
    """Totals and per-tax breakdown for a whole cart."""

    subtotal: Decimal
    total_tax_amount: Decimal
    final_total: Decimal
    tax_breakdown: list[TaxResult]
    applied_taxes: dict[str, bool] = field(default_factory=dict)
    has_product_specific_taxes: bool = False

    def breakdown_for(self, tax_id: str) -> Optional[TaxResult]:
        for entry in self.tax_breakdown:
            if entry.tax_id == tax_id:
                return entry
        return None


def _selected_rates(
    applied_taxes: Mapping[str, bool],
    tax_catalog: Iterable[TaxRateDefinition],
) -> list[tuple[TaxRateDefinition, Decimal]]:
    """Catalog taxes that are selected and carry a positive rate."""
    selected = []
    for tax in tax_catalog:
        rate = _to_decimal(tax.rate)
        if applied_taxes.get(tax.tax_id) and rate > _ZERO:
            selected.append((tax, rate))
    return selected


def compute_line_taxes(
    item: LineItem,
    applied_taxes: Mapping[str, bool],
    tax_catalog: Iterable[TaxRateDefinition],
    tax_included: bool,
    observer: Optional[Observer] = None,
) -> list[TaxResult]:
    """
    Compute the taxable base and amount owed per tax for one line item.

    In tax-inclusive mode the line total already contains every applied
    tax, so a single shared base is backed out with
    ``total / (1 + sum_of_rates / 100)``. In tax-exclusive mode the line
    total is the base of every tax.

    Inactive taxes are computed when selected; the catalog is not filtered
    by ``is_active``.
    """
    line_total = item.line_total
    selected = _selected_rates(applied_taxes, tax_catalog)

    base = line_total
    if tax_included:
        sum_of_rates = sum((rate for _, rate in selected), _ZERO)
        if sum_of_rates > _ZERO:
            base = round2(line_total / (1 + sum_of_rates / _HUNDRED))

    results = [
        TaxResult(
            tax_id=tax.tax_id,
            name=tax.name,
            rate=rate,
            base_amount=base,
            tax_amount=round2(base * rate / _HUNDRED),
        )
        for tax, rate in selected
    ]

    if observer is not None:
        observer(
            "line_taxes_computed",
            {
                "product_id": item.product_id,
                "line_total": line_total,
                "tax_included": tax_included,
                "taxes": [r.tax_id for r in results],
                "tax_amount": sum((r.tax_amount for r in results), _ZERO),
            },
        )
    return results


def compute_cart_taxes(
    items: Iterable[LineItem],
    applied_taxes: Mapping[str, bool],
    tax_catalog: Iterable[TaxRateDefinition],
    tax_included: bool,
    observer: Optional[Observer] = None,
) -> CartTaxResult:
    """
    Apply the line calculator to every item and aggregate the cart.

    Per-tax base and amount are accumulated in first-seen order. In
    tax-inclusive mode a line adds its backed-out base to the subtotal and
    its nominal total to the final total; in tax-exclusive mode it adds its
    total to the subtotal and total plus tax to the final total. The three
    cart totals are rounded once, after accumulation.
    """
    catalog = list(tax_catalog)
    breakdown: dict[str, TaxResult] = {}
    subtotal = _ZERO
    tax_total = _ZERO
    grand_total = _ZERO
    line_count = 0

    for item in items:
        line_count += 1
        line_total = item.line_total
        line_results = compute_line_taxes(
            item, applied_taxes, catalog, tax_included, observer=observer
        )
        line_tax = sum((r.tax_amount for r in line_results), _ZERO)

        for r in line_results:
            entry = breakdown.get(r.tax_id)
            if entry is None:
                breakdown[r.tax_id] = TaxResult(
                    tax_id=r.tax_id,
                    name=r.name,
                    rate=r.rate,
                    base_amount=r.base_amount,
                    tax_amount=r.tax_amount,
                )
            else:
                entry.base_amount += r.base_amount
                entry.tax_amount += r.tax_amount

        if tax_included:
            subtotal += line_results[0].base_amount if line_results else line_total
            grand_total += line_total
        else:
            subtotal += line_total
            grand_total += line_total + line_tax
        tax_total += line_tax

    result = CartTaxResult(
        subtotal=round2(subtotal),
        total_tax_amount=round2(tax_total),
        final_total=round2(grand_total),
        tax_breakdown=list(breakdown.values()),
    )

    if observer is not None:
        observer(
            "cart_taxes_computed",
            {
                "items": line_count,
                "tax_included": tax_included,
                "subtotal": result.subtotal,
                "total_tax_amount": result.total_tax_amount,
                "final_total": result.final_total,
            },
        )
    return result
