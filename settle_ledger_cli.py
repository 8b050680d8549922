"""
SettleLedger - who owes whom in a group

settle-ledger balances                     # Net balance per participant
settle-ledger transfers --json             # Proposed payments with confirmation progress
settle-ledger summary Alice                # What one person paid and owes
settle-ledger confirm Bob Alice 100 --by Alice
settle-ledger export-excel report.xlsx
settle-ledger --ledger trip.json import-csv expenses.csv
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import List, Optional

from computations import balance_status, canonical_name, build_roster, person_summary, settle
from config import load_ledger, save_ledger
from csv_handler import export_expenses_to_csv, import_expenses_from_csv
from exceptions import SettleLedgerError, ValidationError
from excel_export import export_excel
from models import Ledger, SettlementConfirmation
from utils import format_currency, is_number, parse_date, utc_now_iso

VERSION = "SettleLedger 1.0"


def _date_arg(s: str):
    try:
        return parse_date(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {s!r}")


def _print_anomalies(report) -> None:
    for a in report.anomalies:
        print(f"⚠ {a.message}")


def cmd_balances(ledger: Ledger, args) -> int:
    report = settle(ledger)
    if args.json:
        print(json.dumps({p: round(v, 2) for p, v in report.balances.items()}, ensure_ascii=False, indent=2))
        return 0
    if not report.balances:
        print("No participants yet.")
        return 0
    for person, bal in report.balances.items():
        status = balance_status(bal)
        label = {"creditor": "should receive", "debtor": "should pay", "settled": "settled up"}[status]
        sign = "+" if status == "creditor" else "-" if status == "debtor" else " "
        print(f"  {person:20} {sign}{format_currency(abs(bal), ledger.currency):>12}  {label}")
    print(f"  Total spent: {format_currency(report.total_spent, ledger.currency)}")
    _print_anomalies(report)
    return 0


def cmd_transfers(ledger: Ledger, args) -> int:
    report = settle(ledger, args.start, args.end)
    if args.json:
        print(json.dumps([t.to_dict() for t in report.transfers], ensure_ascii=False, indent=2))
        return 0
    if not report.transfers:
        print("🎉 Everyone is settled up! No payments needed.")
    for t in report.transfers:
        line = f"  {t.from_person} → {t.to_person}: {format_currency(t.amount, ledger.currency)}"
        if t.confirmed:
            line += "  ✓ settled"
        elif t.confirmed_amount > 0:
            line += (f"  ({format_currency(t.confirmed_amount, ledger.currency)} paid, "
                     f"{format_currency(t.remaining_amount, ledger.currency)} left)")
        print(line)
    _print_anomalies(report)
    return 0


def cmd_summary(ledger: Ledger, args) -> int:
    s = person_summary(ledger, args.name)
    net = s["net"]
    if s["status"] == "creditor":
        print(f"{s['name']} is owed {format_currency(net, ledger.currency)}")
    elif s["status"] == "debtor":
        print(f"{s['name']} owes {format_currency(-net, ledger.currency)}")
    else:
        print(f"{s['name']} is all settled up!")
    print(f"  Paid:  {format_currency(s['paid'], ledger.currency)}")
    print(f"  Share: {format_currency(s['share'], ledger.currency)}")
    print(f"  Group total: {format_currency(s['group_total'], ledger.currency)}")
    return 0


def cmd_confirm(ledger: Ledger, args) -> int:
    if not is_number(args.amount) or args.amount <= 0:
        raise ValidationError(f"Amount must be positive, got {args.amount}")
    roster = build_roster(ledger.participants)
    from_person, _ = canonical_name(args.from_person, roster)
    to_person, _ = canonical_name(args.to_person, roster)
    ledger.confirmations.append(SettlementConfirmation(
        from_person=from_person,
        to_person=to_person,
        amount=args.amount,
        confirmed_by=args.by,
        confirmed_at=utc_now_iso(),
    ))
    # validate the log before it is written
    report = settle(ledger)
    save_ledger(ledger, args.ledger)
    print(f"✓ Confirmed: {from_person} paid {format_currency(args.amount, ledger.currency)} to {to_person}")
    _print_anomalies(report)
    return 0


def cmd_export_excel(ledger: Ledger, args) -> int:
    export_excel(ledger, args.path, args.start, args.end)
    print(f"Exported: {args.path}")
    return 0


def cmd_export_csv(ledger: Ledger, args) -> int:
    export_expenses_to_csv(ledger.expenses, args.path)
    print(f"Exported {len(ledger.expenses)} expenses to {args.path}")
    return 0


def cmd_import_csv(ledger: Ledger, args) -> int:
    imported = import_expenses_from_csv(args.path)
    if args.replace:
        ledger.expenses = imported
        settle(ledger)
        fp = save_ledger(ledger, args.ledger)
        print(f"Replaced with {len(imported)} expenses in {fp}")
        return 0
    # merge by id: a re-imported record overwrites the stored one
    position = {str(e.id).strip(): i for i, e in enumerate(ledger.expenses)}
    added = updated = 0
    for e in imported:
        eid = str(e.id).strip()
        if eid in position:
            ledger.expenses[position[eid]] = e
            updated += 1
        else:
            position[eid] = len(ledger.expenses)
            ledger.expenses.append(e)
            added += 1
    settle(ledger)
    fp = save_ledger(ledger, args.ledger)
    print(f"Added {added}, updated {updated} expenses in {fp}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="settle-ledger",
        description="SettleLedger - balances and settle-up plan for shared expenses",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--ledger', help='Ledger JSON file (default: ledger.json in $SETTLE_LEDGER_HOME or ~/.settle_ledger)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    parser.add_argument('--version', action='version', version=VERSION)
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('balances', help='Net balance per participant')
    p.add_argument('--json', action='store_true')
    p.set_defaults(func=cmd_balances)

    p = sub.add_parser('transfers', help='Proposed payments and their confirmation status')
    p.add_argument('--json', action='store_true')
    p.add_argument('--start', type=_date_arg)
    p.add_argument('--end', type=_date_arg)
    p.set_defaults(func=cmd_transfers)

    p = sub.add_parser('summary', help='Paid, share and net for one participant')
    p.add_argument('name')
    p.set_defaults(func=cmd_summary)

    p = sub.add_parser('confirm', help='Record a (partial) payment of a proposed transfer')
    p.add_argument('from_person', metavar='FROM')
    p.add_argument('to_person', metavar='TO')
    p.add_argument('amount', type=float)
    p.add_argument('--by', required=True, help='Who is confirming')
    p.set_defaults(func=cmd_confirm, creates=True)

    p = sub.add_parser('export-excel', help='Write an .xlsx settlement report')
    p.add_argument('path')
    p.add_argument('--start', type=_date_arg)
    p.add_argument('--end', type=_date_arg)
    p.set_defaults(func=cmd_export_excel)

    p = sub.add_parser('export-csv', help='Write all expenses to CSV')
    p.add_argument('path')
    p.set_defaults(func=cmd_export_csv)

    p = sub.add_parser('import-csv', help='Load expenses from CSV into the ledger')
    p.add_argument('path')
    p.add_argument('--replace', action='store_true', help='Replace instead of append')
    p.set_defaults(func=cmd_import_csv, creates=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        ledger = load_ledger(args.ledger, create=getattr(args, "creates", False))
        return args.func(ledger, args)
    except (SettleLedgerError, OSError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
