"""
Cart tax report generator.

Produces:
- Structured cart reports (totals, per-tax breakdown, applied taxes)
- Console-friendly text and one-line log summaries
- JSON and CSV export, and a pandas view of the breakdown
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from cart_tax.calculator import CartTaxResult

BREAKDOWN_COLUMNS = ["tax_id", "name", "rate", "base_amount", "tax_amount"]


class _DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal and date objects."""

    def default(self, o: Any) -> Any:
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, date):
            return o.isoformat()
        return super().default(o)


def format_tax_calculation_for_log(result: CartTaxResult) -> str:
    """Render a cart result as a compact single line for log output."""
    taxes = ", ".join(
        f"{t.name} {t.rate}%: {t.tax_amount} on {t.base_amount}"
        for t in result.tax_breakdown
    )
    applied = ",".join(k for k, v in result.applied_taxes.items() if v)
    return (
        f"subtotal={result.subtotal} tax={result.total_tax_amount} "
        f"total={result.final_total} taxes=[{taxes}]"
        + (f" applied={applied}" if applied else "")
        + (" (product-specific)" if result.has_product_specific_taxes else "")
    )


class ReportGenerator:
    """
    Builds cart tax reports with export capabilities.

    Reports are plain dicts that can be rendered to text or exported to
    JSON/CSV files under ``output_dir``.
    """

    def __init__(self, output_dir: Optional[str] = None) -> None:
        self.output_dir = Path(output_dir) if output_dir else Path("reports")

    def cart_report(
        self,
        result: CartTaxResult,
        tax_included: bool,
        label: str = "",
    ) -> dict[str, Any]:
        """Build a structured report for one priced cart."""
        return {
            "report_type": "cart_tax_summary",
            "label": label,
            "generated_date": date.today().isoformat(),
            "pricing": "tax_included" if tax_included else "tax_excluded",
            "summary": {
                "subtotal": result.subtotal,
                "total_tax_amount": result.total_tax_amount,
                "final_total": result.final_total,
            },
            "tax_breakdown": [t.to_dict() for t in result.tax_breakdown],
            "applied_taxes": sorted(
                k for k, v in result.applied_taxes.items() if v
            ),
            "product_specific_taxes": result.has_product_specific_taxes,
        }

    def breakdown_frame(self, result: CartTaxResult) -> pd.DataFrame:
        """Per-tax breakdown as a DataFrame, one row per tax id."""
        rows = [
            {
                "tax_id": t.tax_id,
                "name": t.name,
                "rate": float(t.rate),
                "base_amount": float(t.base_amount),
                "tax_amount": float(t.tax_amount),
            }
            for t in result.tax_breakdown
        ]
        return pd.DataFrame(rows, columns=BREAKDOWN_COLUMNS)

    # ------------------------------------------------------------------
    # Export methods
    # ------------------------------------------------------------------

    def _write(self, filename: str, content: str) -> Path:
        path = self.output_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def to_json(
        self,
        report: dict[str, Any],
        filename: Optional[str] = None,
    ) -> str:
        """Export a report to JSON. Returns the JSON string."""
        json_str = json.dumps(report, indent=2, cls=_DecimalEncoder)
        if filename:
            self._write(filename, json_str)
        return json_str

    def to_csv(
        self,
        result: CartTaxResult,
        filename: Optional[str] = None,
    ) -> str:
        """Export the tax breakdown to CSV. Returns the CSV string."""
        csv_str = self.breakdown_frame(result).to_csv(index=False)
        if filename:
            self._write(filename, csv_str)
        return csv_str

    # ------------------------------------------------------------------
    # Console-formatted text output
    # ------------------------------------------------------------------

    def format_text(self, report: dict[str, Any]) -> str:
        """Format a report as human-readable text for console output."""
        lines: list[str] = []
        report_type = report.get("report_type", "report").replace("_", " ").title()
        lines.append(f"{'=' * 60}")
        lines.append(f"  {report_type}")
        lines.append(f"  Generated: {report.get('generated_date', '')}")
        if report.get("label"):
            lines.append(f"  Cart: {report['label']}")
        if report.get("pricing"):
            lines.append(f"  Pricing: {report['pricing'].replace('_', ' ')}")
        lines.append(f"{'=' * 60}")
        lines.append("")

        summary = report.get("summary", {})
        if summary:
            lines.append("SUMMARY")
            lines.append("-" * 40)
            for key, value in summary.items():
                label = key.replace("_", " ").title()
                lines.append(f"  {label}: {float(value):,.2f}")
            lines.append("")

        breakdown = report.get("tax_breakdown", [])
        if breakdown:
            lines.append("TAX BREAKDOWN")
            lines.append("-" * 40)
            for t in breakdown:
                lines.append(
                    f"  {t['name']} ({float(t['rate']):g}%): "
                    f"{float(t['base_amount']):>12,.2f} base | "
                    f"{float(t['tax_amount']):>10,.2f} tax"
                )
            lines.append("")

        return "\n".join(lines)
