from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter


def _money(x) -> float:
    try:
        return float(Decimal(str(x or "0")))
    except Exception:
        return 0.0


def _autosize(ws, ncols: int, width: int = 18) -> None:
    for col in range(1, ncols + 1):
        ws.column_dimensions[get_column_letter(col)].width = width


def _header(ws, headers) -> None:
    ws.append(headers)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)


def build_inventory_report_excel(fp, report: Dict[str, Any],
                                 transactions: Iterable) -> None:
    """
    Three sheets: period summary, per-medication movement, raw ledger rows.
    """
    wb = Workbook()

    ws = wb.active
    ws.title = "Summary"
    period = report.get("period", {})
    summary = report.get("summary", {})
    ws.append(["From", period.get("from")])
    ws.append(["To", period.get("to")])
    ws.append([])
    _header(ws, ["Metric", "Value"])
    ws.append(["Total transactions", summary.get("total_transactions", 0)])
    ws.append(["Stock in (units)", summary.get("stock_in", 0)])
    ws.append(["Stock out (units)", summary.get("stock_out", 0)])
    ws.append(["Adjustments", summary.get("adjustments", 0)])
    ws.append(["Total cost", _money(summary.get("total_cost"))])
    ws.append([])
    _header(ws, ["Type", "Count", "Net quantity", "Total cost"])
    for t, row in (report.get("by_type") or {}).items():
        ws.append([
            t,
            row["count"],
            row["total_quantity"],
            _money(row["total_cost"]),
        ])
    _autosize(ws, 4, 22)

    ws = wb.create_sheet("By Medication")
    headers = [
        "Medication ID", "Medication", "Transactions", "Net Change",
        "Total Cost"
    ]
    _header(ws, headers)
    for row in report.get("by_medication") or []:
        ws.append([
            row["medication_id"],
            row["medication_name"],
            row["transactions_count"],
            row["net_quantity_change"],
            _money(row["total_cost"]),
        ])
    _autosize(ws, len(headers))

    ws = wb.create_sheet("Transactions")
    headers = [
        "Date", "Medication", "Type", "Change", "Before", "After",
        "Unit Cost", "Total Cost", "Reference", "Batch", "Supplier", "Notes"
    ]
    _header(ws, headers)
    for t in transactions:
        ref = f"{t.reference_type}:{t.reference_id}" if t.reference_type else ""
        ws.append([
            t.created_at,
            getattr(getattr(t, "medication", None), "name", "") or "",
            t.type,
            t.quantity_change,
            t.quantity_before,
            t.quantity_after,
            _money(t.unit_cost),
            _money(t.total_cost),
            ref,
            t.batch_number or "",
            t.supplier or "",
            t.notes or "",
        ])
    _autosize(ws, len(headers))

    wb.save(fp)
