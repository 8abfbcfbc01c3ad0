from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from erp_ledger.accounting.posting import compute_account_balance
from erp_ledger.chart_of_accounts.service import get_account
from erp_ledger.models import Account, AccountStatus, JournalEntry, JournalLine
from erp_ledger.reports.balances import EMPTY_TOTALS, ensure_date_range, posted_line_totals, signed_total
from erp_ledger.utils.money import ZERO, quantize_money, to_decimal


def _opening_balance(db: Session, account: Account, start_date: Optional[date]) -> Decimal:
    opening = to_decimal(account.opening_balance)
    if start_date is None:
        return opening
    totals = posted_line_totals(db, before=start_date, account_ids=[account.id])
    return opening + signed_total(account, totals.get(account.id, EMPTY_TOTALS))


def get_account_ledger(
    db: Session,
    account_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> dict:
    """Posted activity of one account with a running balance.

    Without ``start_date`` the ledger starts from the account's opening balance;
    without ``end_date`` it runs through the latest posted line.
    """
    ensure_date_range(start_date, end_date)
    account = get_account(db, account_id)
    opening = _opening_balance(db, account, start_date)

    query = (
        db.query(JournalLine, JournalEntry)
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .filter(JournalLine.account_id == account.id, JournalEntry.posted.is_(True))
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    rows = query.order_by(JournalEntry.entry_date, JournalEntry.entry_seq, JournalLine.position).all()

    running = opening
    total_debit = ZERO
    total_credit = ZERO
    lines = []
    for line, entry in rows:
        debit = to_decimal(line.debit)
        credit = to_decimal(line.credit)
        running += compute_account_balance(account.normal_balance, debit, credit)
        total_debit += debit
        total_credit += credit
        lines.append(
            {
                "entry_id": entry.id,
                "entry_no": entry.entry_no,
                "entry_date": entry.entry_date,
                "entry_type": entry.entry_type,
                "description": line.description or entry.description,
                "reference_no": entry.reference_no,
                "debit": quantize_money(debit),
                "credit": quantize_money(credit),
                "balance": quantize_money(running),
            }
        )

    return {
        "account": {
            "id": account.id,
            "code": account.code,
            "name": account.name,
            "account_type": account.account_type,
            "normal_balance": account.normal_balance,
        },
        "start_date": start_date,
        "end_date": end_date,
        "opening_balance": quantize_money(opening),
        "lines": lines,
        "total_debit": quantize_money(total_debit),
        "total_credit": quantize_money(total_credit),
        "closing_balance": quantize_money(running),
    }


def get_ledger_summary(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    *,
    show_zero_balances: bool = False,
) -> dict:
    ensure_date_range(start_date, end_date)
    accounts = (
        db.query(Account)
        .filter(Account.is_header.is_(False), Account.status == AccountStatus.ACTIVE)
        .order_by(Account.code)
        .all()
    )
    before = posted_line_totals(db, before=start_date) if start_date else {}
    period = posted_line_totals(db, start_date=start_date, end_date=end_date)

    rows = []
    total_debits = ZERO
    total_credits = ZERO
    for account in accounts:
        opening = to_decimal(account.opening_balance) + signed_total(account, before.get(account.id, EMPTY_TOTALS))
        movement = period.get(account.id, EMPTY_TOTALS)
        closing = opening + signed_total(account, movement)
        net_movement = movement.debit - movement.credit
        if not show_zero_balances and closing == 0 and net_movement == 0 and movement.count == 0:
            continue
        total_debits += movement.debit
        total_credits += movement.credit
        rows.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.account_type,
                "normal_balance": account.normal_balance,
                "opening_balance": quantize_money(opening),
                "total_debits": quantize_money(movement.debit),
                "total_credits": quantize_money(movement.credit),
                "net_movement": quantize_money(net_movement),
                "closing_balance": quantize_money(closing),
                "transaction_count": movement.count,
            }
        )

    return {
        "start_date": start_date,
        "end_date": end_date,
        "accounts": rows,
        "totals": {
            "total_debits": quantize_money(total_debits),
            "total_credits": quantize_money(total_credits),
            "account_count": len(rows),
        },
    }
