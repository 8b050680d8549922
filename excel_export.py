"""
Excel settlement report for SettleLedger
"""
from __future__ import annotations
from datetime import date
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from models import ExpenseStatus, Ledger, TransferStatus
from computations import balance_status, filter_expenses_by_date, settle

MONEY = "0.00"

_STATUS_FILLS = {
    TransferStatus.FULLY_CONFIRMED: PatternFill("solid", fgColor="D4EDDA"),
    TransferStatus.PARTIALLY_CONFIRMED: PatternFill("solid", fgColor="FFF3CD"),
}


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Auto-size columns based on content"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = 0
        for cell in ws[letter]:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def _new_sheet(wb, title, headers):
    ws = wb.create_sheet(title)
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    return ws


def _money_columns(ws, *cols):
    for r in range(2, ws.max_row + 1):
        for c in cols:
            ws.cell(r, c).number_format = MONEY


def export_excel(
    ledger: Ledger,
    filepath: str,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> None:
    """
    Export a settlement report with sheets:
    - Expenses (every record, any status)
    - Balances (paid, share, net per person)
    - Transfers (proposed payments with confirmation progress)
    - Anomalies (only when something was flagged)
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    report = settle(ledger, start, end)
    exps = filter_expenses_by_date(ledger.expenses, start, end)

    ws = _new_sheet(wb, "Expenses", ["Date", "Description", "Amount", "Paid By", "Split Between", "Status"])
    for e in sorted(exps, key=lambda e: (e.date, str(e.id))):
        ws.append([e.date, e.description, e.amount, e.paid_by, ", ".join(e.split_between), e.status])
        if e.status != ExpenseStatus.APPROVED:
            ws.cell(ws.max_row, 6).font = Font(italic=True, color="808080")
    _money_columns(ws, 3)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Balances", ["Person", "Paid", "Share", "Net (Paid-Share)", "Status"])
    for p, s in report.summary.items():
        ws.append([p, s["paid"], s["share"], s["net"], balance_status(s["net"])])
    ws.append(["GROUP TOTAL", report.total_spent, report.total_spent, None, None])
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)
    _money_columns(ws, 2, 3, 4)
    _autosize_columns(ws)

    ws = _new_sheet(wb, "Transfers", ["From (Debtor)", "To (Creditor)", "Amount", "Confirmed", "Remaining", "Status"])
    for t in report.transfers:
        ws.append([t.from_person, t.to_person, t.amount, t.confirmed_amount, t.remaining_amount, t.status])
        fill = _STATUS_FILLS.get(t.status)
        if fill is not None:
            for cell in ws[ws.max_row]:
                cell.fill = fill
    if report.transfers:
        ws.append(["TOTALS", "", f"=SUM(C2:C{ws.max_row})", f"=SUM(D2:D{ws.max_row})", f"=SUM(E2:E{ws.max_row})", ""])
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)
    _money_columns(ws, 3, 4, 5)
    _autosize_columns(ws)

    if report.anomalies:
        ws = _new_sheet(wb, "Anomalies", ["Kind", "Expense", "Person", "Message"])
        for a in report.anomalies:
            ws.append([a.kind, a.expense_id or "", a.person or "", a.message])
        _autosize_columns(ws)

    wb.save(filepath)
