"""
Command-line interface for the cart tax engine.

Provides subcommands for pricing a cart, inspecting a tax catalog,
and managing the stored tax-inclusive pricing preference.
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box
from rich.markup import escape

from cart_tax.calculator import LineItem
from cart_tax.errors import TaxCatalogError, TaxSourceError
from cart_tax.logging_config import log_observer, setup_logger
from cart_tax.rates import InMemoryTaxSource
from cart_tax.report_generator import (
    ReportGenerator,
    format_tax_calculation_for_log,
)
from cart_tax.resolver import compute_cart_taxes_complete
from cart_tax.settings import get_tax_included_setting, set_tax_included_setting

console = Console()
logger = logging.getLogger(__name__)


def _load_items_csv(path: str) -> list[LineItem]:
    """
    Load cart line items from a CSV file.

    Expected columns: product_id, quantity, unit_price
    """
    items: list[LineItem] = []
    csv_path = Path(path)
    if not csv_path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        sys.exit(1)

    with open(csv_path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for i, row in enumerate(reader):
            try:
                items.append(
                    LineItem(
                        quantity=Decimal(row.get("quantity") or "1"),
                        unit_price=Decimal(row["unit_price"]),
                        product_id=(row.get("product_id") or "").strip() or None,
                    )
                )
            except (KeyError, TypeError, InvalidOperation) as e:
                console.print(f"[yellow]Skipping row {i + 1}: {escape(str(e))}[/yellow]")
    return items


def _load_tax_source(path: str) -> InMemoryTaxSource:
    try:
        return InMemoryTaxSource.from_json(path)
    except TaxSourceError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)


# -----------------------------------------------------------------------
# Subcommand: calculate
# -----------------------------------------------------------------------


def cmd_calculate(args: argparse.Namespace) -> None:
    """Price a cart from a CSV of line items and a taxes JSON file."""
    items = _load_items_csv(args.items)
    source = _load_tax_source(args.taxes)

    tax_included = args.tax_included
    if tax_included is None:
        tax_included = get_tax_included_setting(False)

    try:
        result = compute_cart_taxes_complete(
            items, source, tax_included, observer=log_observer
        )
    except TaxCatalogError as e:
        console.print(f"[red]{e}. Try again later.[/red]")
        sys.exit(2)

    logger.info(format_tax_calculation_for_log(result))

    table = Table(title="Tax Breakdown", box=box.ROUNDED, show_lines=True)
    table.add_column("Tax", style="bold")
    table.add_column("Rate", justify="right")
    table.add_column("Base", justify="right")
    table.add_column("Tax Amount", justify="right", style="bold")
    for t in result.tax_breakdown:
        table.add_row(
            t.name,
            f"{t.rate:g}%",
            f"{t.base_amount:,.2f}",
            f"{t.tax_amount:,.2f}",
        )
    console.print(table)

    source_label = (
        "product-specific" if result.has_product_specific_taxes
        else "organization defaults"
    )
    console.print(
        Panel(
            f"[bold]Items:[/bold] {len(items)}\n"
            f"[bold]Pricing:[/bold] {'tax included' if tax_included else 'tax excluded'}\n"
            f"[bold]Taxes From:[/bold] {source_label}\n"
            f"[bold]Subtotal:[/bold] {result.subtotal:,.2f}\n"
            f"[bold]Total Tax:[/bold] {result.total_tax_amount:,.2f}\n"
            f"[bold]Total:[/bold] {result.final_total:,.2f}",
            title="Cart Totals",
            border_style="green",
        )
    )

    if args.export_json or args.export_csv:
        rg = ReportGenerator(args.output_dir or "reports")
        if args.export_json:
            report = rg.cart_report(result, tax_included, label=Path(args.items).stem)
            rg.to_json(report, args.export_json)
            console.print(f"[green]JSON exported to {args.export_json}[/green]")
        if args.export_csv:
            rg.to_csv(result, args.export_csv)
            console.print(f"[green]CSV exported to {args.export_csv}[/green]")


# -----------------------------------------------------------------------
# Subcommand: taxes
# -----------------------------------------------------------------------


def cmd_taxes(args: argparse.Namespace) -> None:
    """Display the configured tax catalog."""
    source = _load_tax_source(args.taxes)
    taxes = source.get_organization_taxes()

    table = Table(
        title=f"Taxes - Organization {source.organization_id}",
        box=box.ROUNDED,
    )
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Rate", justify="right")
    table.add_column("Default", justify="center")
    table.add_column("Active", justify="center")

    for tax in taxes:
        table.add_row(
            tax.tax_id,
            tax.name,
            f"{tax.rate:g}%",
            "Y" if tax.is_default else "",
            "Y" if tax.is_active else "",
            style="" if tax.is_active else "dim",
        )
    console.print(table)


# -----------------------------------------------------------------------
# Subcommand: preference
# -----------------------------------------------------------------------


def cmd_preference(args: argparse.Namespace) -> None:
    """Show or store the tax-inclusive pricing preference."""
    if args.set is not None:
        path = set_tax_included_setting(args.set == "on", args.path)
        console.print(f"[green]Saved tax-inclusive pricing = {args.set} in {path}[/green]")
        return

    current = get_tax_included_setting(False, args.path)
    console.print(f"Tax-inclusive pricing: [bold]{'on' if current else 'off'}[/bold]")


# -----------------------------------------------------------------------
# Argument parser
# -----------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cart-tax",
        description="Cart Tax Engine - Multi-rate tax calculation for orders and invoices",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # calculate
    calc_p = subparsers.add_parser("calculate", help="Calculate taxes for a cart")
    calc_p.add_argument("--items", "-i", required=True, help="CSV file with line items")
    calc_p.add_argument("--taxes", "-t", required=True, help="JSON file with tax configuration")
    mode = calc_p.add_mutually_exclusive_group()
    mode.add_argument(
        "--tax-included", dest="tax_included", action="store_true", default=None,
        help="Prices already include taxes",
    )
    mode.add_argument(
        "--tax-excluded", dest="tax_included", action="store_false",
        help="Taxes are added on top of prices",
    )
    calc_p.add_argument("--export-json", help="Export results to JSON file")
    calc_p.add_argument("--export-csv", help="Export tax breakdown to CSV file")
    calc_p.add_argument("--output-dir", help="Output directory for exports")
    calc_p.set_defaults(func=cmd_calculate, tax_included=None)

    # taxes
    taxes_p = subparsers.add_parser("taxes", help="View the tax catalog")
    taxes_p.add_argument("--taxes", "-t", required=True, help="JSON file with tax configuration")
    taxes_p.set_defaults(func=cmd_taxes)

    # preference
    pref_p = subparsers.add_parser(
        "preference", help="Show or set the tax-inclusive pricing preference"
    )
    pref_p.add_argument("--set", choices=["on", "off"], help="Store a new value")
    pref_p.add_argument("--path", help="Preferences file location")
    pref_p.set_defaults(func=cmd_preference)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logger("cart_tax", args.log_level)
    args.func(args)
