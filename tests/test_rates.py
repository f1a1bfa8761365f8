"""Tests for tax rate definitions, catalogs and the in-memory tax source."""

import json
from decimal import Decimal

import pytest

from cart_tax.errors import TaxSourceError
from cart_tax.rates import InMemoryTaxSource, TaxCatalog, TaxRateDefinition


@pytest.fixture
def catalog() -> TaxCatalog:
    return TaxCatalog(
        "org-1",
        [
            TaxRateDefinition("iva", "IVA", Decimal("19"), is_default=True),
            TaxRateDefinition("ico", "Consumo", Decimal("8")),
            TaxRateDefinition("old", "Retired", Decimal("16"), is_active=False),
        ],
    )


@pytest.fixture
def source(catalog: TaxCatalog) -> InMemoryTaxSource:
    return InMemoryTaxSource(
        [catalog],
        {"org-1": {"10": ["ico"], "11": ["old", "iva"], "12": ["missing"]}},
    )


# ── Tax rate definitions ─────────────────────────────────────────────


def test_definition_from_dict_with_id_key():
    tax = TaxRateDefinition.from_dict(
        {"id": 7, "name": "IVA", "rate": "19.5", "is_default": True}
    )
    assert tax.tax_id == "7"
    assert tax.rate == Decimal("19.5")
    assert tax.is_default is True
    assert tax.is_active is True


def test_definition_from_dict_float_rate_is_exact():
    tax = TaxRateDefinition.from_dict({"tax_id": "x", "rate": 0.1})
    assert tax.rate == Decimal("0.1")
    assert tax.name == "x"


def test_definition_from_dict_requires_id():
    with pytest.raises(KeyError):
        TaxRateDefinition.from_dict({"name": "IVA", "rate": 19})


def test_definition_from_dict_string_flags():
    tax = TaxRateDefinition.from_dict(
        {"id": "iva", "rate": 19, "is_default": "false", "is_active": "true"}
    )
    assert tax.is_default is False
    assert tax.is_active is True


def test_definition_from_dict_numeric_and_null_flags():
    tax = TaxRateDefinition.from_dict(
        {"id": "iva", "rate": 19, "is_default": 1, "is_active": None}
    )
    assert tax.is_default is True
    assert tax.is_active is True


@pytest.mark.parametrize("value", ["maybe", 2, [True]])
def test_definition_from_dict_rejects_unknown_flag(value):
    with pytest.raises(ValueError):
        TaxRateDefinition.from_dict({"id": "iva", "rate": 19, "is_active": value})


# ── Catalog ──────────────────────────────────────────────────────────


def test_catalog_lookup(catalog: TaxCatalog):
    assert catalog.get("ico").name == "Consumo"
    assert catalog.get("nope") is None
    assert len(catalog) == 3


def test_catalog_add_replaces_same_id(catalog: TaxCatalog):
    catalog.add(TaxRateDefinition("ico", "Consumo", Decimal("4")))
    catalog.add(TaxRateDefinition("ica", "ICA", Decimal("0.966")))
    assert catalog.get("ico").rate == Decimal("4")
    assert [t.tax_id for t in catalog] == ["iva", "ico", "old", "ica"]


# ── In-memory tax source ─────────────────────────────────────────────


def test_source_defaults_to_only_organization(source: InMemoryTaxSource):
    assert source.organization_id == "org-1"
    assert len(source.get_organization_taxes()) == 3


def test_source_product_taxes(source: InMemoryTaxSource):
    assert source.get_product_taxes(10) == ["ico"]
    assert source.get_product_taxes("10") == ["ico"]
    assert source.get_product_taxes(99) == []


def test_source_product_taxes_skip_inactive(source: InMemoryTaxSource):
    assert source.get_product_taxes(11) == ["iva"]


def test_source_product_taxes_skip_unknown(source: InMemoryTaxSource):
    assert source.get_product_taxes(12) == []


def test_source_unknown_organization_raises(catalog: TaxCatalog):
    source = InMemoryTaxSource([catalog], organization_id="org-2")
    with pytest.raises(TaxSourceError):
        source.get_organization_taxes()
    with pytest.raises(TaxSourceError):
        source.get_product_taxes(1)


def test_source_is_tenant_scoped(catalog: TaxCatalog):
    other = TaxCatalog("org-2", [TaxRateDefinition("vat", "VAT", Decimal("20"))])
    source = InMemoryTaxSource([catalog, other], organization_id="org-2")
    assert [t.tax_id for t in source.get_organization_taxes()] == ["vat"]


def test_source_from_dict():
    source = InMemoryTaxSource.from_dict(
        {
            "organization_id": 5,
            "taxes": [{"id": "iva", "name": "IVA", "rate": 19, "is_default": True}],
            "product_taxes": {"1": ["iva"]},
        }
    )
    assert source.organization_id == "5"
    assert source.get_organization_taxes()[0].rate == Decimal("19")
    assert source.get_product_taxes(1) == ["iva"]


def test_source_from_dict_bad_rate():
    with pytest.raises(TaxSourceError):
        InMemoryTaxSource.from_dict({"taxes": [{"id": "x", "rate": "abc"}]})



def test_source_from_dict_bad_flag():
    with pytest.raises(TaxSourceError):
        InMemoryTaxSource.from_dict(
            {"taxes": [{"id": "x", "rate": 19, "is_default": "sometimes"}]}
        )


def test_source_from_dict_last_duplicate_wins():
    source = InMemoryTaxSource.from_dict(
        {
            "taxes": [
                {"id": "iva", "rate": 16},
                {"id": "ico", "rate": 8},
                {"id": "iva", "rate": 19, "is_default": "yes"},
            ]
        }
    )
    taxes = source.get_organization_taxes()
    assert [t.tax_id for t in taxes] == ["iva", "ico"]
    assert taxes[0].rate == Decimal("19")
    assert taxes[0].is_default is True


def test_source_from_json(tmp_path):
    path = tmp_path / "taxes.json"
    path.write_text(
        json.dumps({"taxes": [{"id": "iva", "rate": 19}]}), encoding="utf-8"
    )
    source = InMemoryTaxSource.from_json(path)
    assert source.organization_id == "default"
    assert source.get_organization_taxes()[0].tax_id == "iva"


def test_source_from_json_missing_file(tmp_path):
    with pytest.raises(TaxSourceError):
        InMemoryTaxSource.from_json(tmp_path / "nope.json")


def test_source_from_json_invalid(tmp_path):
    path = tmp_path / "taxes.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(TaxSourceError):
        InMemoryTaxSource.from_json(path)
