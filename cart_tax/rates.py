"""
Organization tax rate catalog and product tax mappings.

A tenant configures any number of named percentage taxes (IVA, ICA,
consumption tax, ...), flags some of them as defaults, and may attach a
subset of them to individual products. This module holds that reference
data in memory and serves it through the lookups the resolver expects.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional, Union

from cart_tax.errors import TaxSourceError
from cart_tax.settings import parse_flag

ProductId = Union[str, int]


def _flag(data: dict, key: str, default: bool) -> bool:
    if key not in data or data[key] is None:
        return default
    value = parse_flag(data[key])
    if value is None:
        raise ValueError(f"{key} must be a boolean, got {data[key]!r}")
    return value


@dataclass(frozen=True)
class TaxRateDefinition:
    """One configured tax. ``rate`` is a percentage, e.g. 19 = 19%."""

    tax_id: str
    name: str
    rate: Decimal
    is_default: bool = False
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "TaxRateDefinition":
        tax_id = data.get("tax_id", data.get("id"))
        if tax_id is None:
            raise KeyError("tax_id")
        return cls(
            tax_id=str(tax_id),
            name=str(data.get("name", tax_id)),
            rate=Decimal(str(data.get("rate", 0))),
            is_default=_flag(data, "is_default", False),
            is_active=_flag(data, "is_active", True),
        )


@dataclass
class TaxCatalog:
    """Ordered collection of the tax rates configured for one organization."""

    organization_id: str
    taxes: list[TaxRateDefinition] = field(default_factory=list)

    def __iter__(self):
        return iter(self.taxes)

    def __len__(self) -> int:
        return len(self.taxes)

    def get(self, tax_id: str) -> Optional[TaxRateDefinition]:
        for tax in self.taxes:
            if tax.tax_id == tax_id:
                return tax
        return None

    def add(self, tax: TaxRateDefinition) -> None:
        """Add a tax, replacing any existing entry with the same id."""
        for i, existing in enumerate(self.taxes):
            if existing.tax_id == tax.tax_id:
                self.taxes[i] = tax
                return
        self.taxes.append(tax)


class InMemoryTaxSource:
    """
    Tax source backed by in-memory catalogs.

    Serves the organization catalog and per-product tax overrides for a
    single tenant, the way the hosted backend does for the POS screens.
    Product overrides only report taxes that exist in the tenant catalog
    and are active.
    """

    def __init__(
        self,
        catalogs: Iterable[TaxCatalog] = (),
        product_taxes: Optional[dict[str, dict[str, list[str]]]] = None,
        organization_id: Optional[str] = None,
    ) -> None:
        self._catalogs: dict[str, TaxCatalog] = {
            c.organization_id: c for c in catalogs
        }
        self._product_taxes: dict[str, dict[str, list[str]]] = {
            org: {str(pid): list(ids) for pid, ids in mapping.items()}
            for org, mapping in (product_taxes or {}).items()
        }
        if organization_id is None and len(self._catalogs) == 1:
            organization_id = next(iter(self._catalogs))
        self.organization_id = organization_id

    def _catalog(self) -> TaxCatalog:
        catalog = self._catalogs.get(str(self.organization_id))
        if catalog is None:
            raise TaxSourceError(
                f"No tax catalog for organization {self.organization_id}"
            )
        return catalog

    def get_organization_taxes(self) -> list[TaxRateDefinition]:
        """Return every tax configured for the current organization."""
        return list(self._catalog().taxes)

    def get_product_taxes(self, product_id: ProductId) -> list[str]:
        """Return the active tax ids explicitly attached to a product."""
        catalog = self._catalog()
        mapping = self._product_taxes.get(catalog.organization_id, {})
        tax_ids: list[str] = []
        for tax_id in mapping.get(str(product_id), []):
            tax = catalog.get(tax_id)
            if tax is not None and tax.is_active:
                tax_ids.append(tax.tax_id)
        return tax_ids

    @classmethod
    def from_dict(cls, data: dict) -> "InMemoryTaxSource":
        """
        Build a single-tenant source from a plain dict.

        Expected shape::

            {"organization_id": "1",
             "taxes": [{"id": "iva", "name": "IVA", "rate": 19,
                        "is_default": true}],
             "product_taxes": {"42": ["iva"]}}
        """
        org_id = str(data.get("organization_id", "default"))
        catalog = TaxCatalog(org_id)
        try:
            for entry in data.get("taxes", []):
                catalog.add(TaxRateDefinition.from_dict(entry))
        except (KeyError, ValueError, ArithmeticError) as e:
            raise TaxSourceError(f"Invalid tax definition: {e}") from e
        product_taxes = {
            str(pid): [str(t) for t in ids]
            for pid, ids in (data.get("product_taxes") or {}).items()
        }
        return cls(
            catalogs=[catalog],
            product_taxes={org_id: product_taxes},
            organization_id=org_id,
        )

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "InMemoryTaxSource":
        json_path = Path(path)
        try:
            with open(json_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise TaxSourceError(f"Cannot read tax file {json_path}: {e}") from e
        return cls.from_dict(data)
