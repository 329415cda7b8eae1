from __future__ import annotations

import io
from datetime import date, datetime
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .domain import PAYMENT_METHOD_LABELS, PAYMENT_STATUS_LABELS, SHIPPING_STATUS_LABELS

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Orders"

# (row key, header label, column width)
EXPORT_COLUMNS: list[tuple[str, str, int]] = [
    ("order_number", "Order number", 16),
    ("order_date", "Date", 12),
    ("customer_name", "Customer", 30),
    ("customer_national_id", "National ID", 14),
    ("customer_phone", "Phone", 14),
    ("products", "Products", 50),
    ("subtotal", "Subtotal", 14),
    ("tax", "Tax (19%)", 12),
    ("total", "Total", 14),
    ("payment_method", "Payment method", 16),
    ("payment_status", "Payment status", 15),
    ("shipping_status", "Shipping status", 15),
    ("invoice_number", "Invoice number", 15),
    ("notes", "Notes", 30),
]

MONEY_COLUMNS = ("subtotal", "tax", "total")
MONEY_FORMAT = "#,##0"

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="0440A5", end_color="0440A5", fill_type="solid")
SUMMARY_FONT = Font(bold=True)


def _export_row(row: dict) -> list:
    out = {key: row.get(key) if row.get(key) is not None else "" for key, _, _ in EXPORT_COLUMNS}
    order_date = row.get("order_date")
    if isinstance(order_date, (datetime, date)):
        out["order_date"] = order_date.strftime("%d/%m/%Y")
    out["payment_method"] = PAYMENT_METHOD_LABELS.get(row.get("payment_method"), row.get("payment_method"))
    out["payment_status"] = PAYMENT_STATUS_LABELS.get(row.get("payment_status"), row.get("payment_status"))
    out["shipping_status"] = SHIPPING_STATUS_LABELS.get(row.get("shipping_status"), row.get("shipping_status"))
    return [out[key] for key, _, _ in EXPORT_COLUMNS]


def orders_to_xlsx(rows: Iterable[dict]) -> bytes:
    """Workbook with one line per order, then a blank line and a bold
    summary line with the order count and summed amounts."""
    rows = list(rows)
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE

    ws.append([label for _, label, _ in EXPORT_COLUMNS])
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center")
    for idx, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
    ws.freeze_panes = "A2"

    for row in rows:
        ws.append(_export_row(row))

    if rows:
        ws.append([])
        summary = {
            "order_number": f"Total: {len(rows)} order{'s' if len(rows) != 1 else ''}",
            "subtotal": sum(int(r["subtotal"]) for r in rows),
            "tax": sum(int(r["tax"]) for r in rows),
            "total": sum(int(r["total"]) for r in rows),
        }
        ws.append([summary.get(key) for key, _, _ in EXPORT_COLUMNS])
        for cell in ws[ws.max_row]:
            cell.font = SUMMARY_FONT

    money_cols = [i for i, (key, _, _) in enumerate(EXPORT_COLUMNS, start=1) if key in MONEY_COLUMNS]
    for col in money_cols:
        for (cell,) in ws.iter_rows(min_row=2, min_col=col, max_col=col):
            cell.number_format = MONEY_FORMAT

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_filename(date_from: date | None, date_to: date | None) -> str:
    name = "orders"
    if date_from and date_to:
        name += f"-{date_from.isoformat()}-to-{date_to.isoformat()}"
    elif date_from:
        name += f"-from-{date_from.isoformat()}"
    elif date_to:
        name += f"-until-{date_to.isoformat()}"
    else:
        name += "-all"
    return name + ".xlsx"
