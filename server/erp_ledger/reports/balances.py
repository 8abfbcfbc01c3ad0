from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from erp_ledger.accounting.posting import compute_account_balance
from erp_ledger.errors import FieldError, ValidationError
from erp_ledger.models import Account, JournalEntry, JournalLine
from erp_ledger.utils.money import ZERO, quantize_money, to_decimal


@dataclass(frozen=True)
class LineTotals:
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    count: int = 0


EMPTY_TOTALS = LineTotals()


def ensure_date_range(start_date: Optional[date], end_date: Optional[date]) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            "Invalid reporting period.",
            [FieldError("start_date", "start date must be on or before end date")],
        )


def posted_line_totals(
    db: Session,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    before: Optional[date] = None,
    account_ids: Optional[Iterable[int]] = None,
) -> dict[int, LineTotals]:
    """Debit/credit sums of posted lines per account, aggregated in SQL."""
    query = (
        db.query(
            JournalLine.account_id,
            func.coalesce(func.sum(JournalLine.debit), 0),
            func.coalesce(func.sum(JournalLine.credit), 0),
            func.count(JournalLine.id),
        )
        .join(JournalEntry, JournalEntry.id == JournalLine.journal_entry_id)
        .filter(JournalEntry.posted.is_(True))
    )
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if before:
        query = query.filter(JournalEntry.entry_date < before)
    if account_ids is not None:
        query = query.filter(JournalLine.account_id.in_(list(account_ids)))

    rows = query.group_by(JournalLine.account_id).all()
    return {
        account_id: LineTotals(debit=to_decimal(debit), credit=to_decimal(credit), count=int(count or 0))
        for account_id, debit, credit, count in rows
    }


def signed_total(account: Account, totals: LineTotals) -> Decimal:
    return compute_account_balance(account.normal_balance, totals.debit, totals.credit)


def balances_as_of(db: Session, accounts: list[Account], as_of_date: Optional[date] = None) -> dict[int, Decimal]:
    """Balance per account on ``as_of_date``; without a date, the posted ``current_balance``."""
    if as_of_date is None:
        return {account.id: to_decimal(account.current_balance) for account in accounts}
    totals = posted_line_totals(db, end_date=as_of_date, account_ids=[account.id for account in accounts])
    return {
        account.id: to_decimal(account.opening_balance) + signed_total(account, totals.get(account.id, EMPTY_TOTALS))
        for account in accounts
    }


def activity_between(db: Session, accounts: list[Account], start_date: date, end_date: date) -> dict[int, Decimal]:
    totals = posted_line_totals(
        db, start_date=start_date, end_date=end_date, account_ids=[account.id for account in accounts]
    )
    return {account.id: signed_total(account, totals.get(account.id, EMPTY_TOTALS)) for account in accounts}


def rollup_hierarchy(accounts: list[Account], amounts: dict[int, Decimal]) -> tuple[list[dict], Decimal]:
    """Flatten ``accounts`` into display rows with header totals rolled up from children.

    Returns the rows in tree order (parents before children, siblings by code) and
    the sum of the root totals.
    """
    ordered = sorted(accounts, key=lambda account: account.code)
    by_id = {account.id: account for account in ordered}
    children: dict[int, list[Account]] = {}
    roots: list[Account] = []
    for account in ordered:
        if account.parent_id in by_id and account.parent_id != account.id:
            children.setdefault(account.parent_id, []).append(account)
        else:
            roots.append(account)

    totals: dict[int, Decimal] = {}
    stack: list[tuple[Account, bool]] = [(root, False) for root in reversed(roots)]
    while stack:
        account, expanded = stack.pop()
        if account.id in totals:
            continue
        if expanded:
            totals[account.id] = amounts.get(account.id, ZERO) + sum(
                (totals.get(child.id, ZERO) for child in children.get(account.id, [])), ZERO
            )
            continue
        stack.append((account, True))
        for child in children.get(account.id, []):
            if child.id not in totals:
                stack.append((child, False))

    rows: list[dict] = []
    walk: list[tuple[Account, int]] = [(root, 0) for root in reversed(roots)]
    visited: set[int] = set()
    while walk:
        account, indent = walk.pop()
        if account.id in visited:
            continue
        visited.add(account.id)
        rows.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.account_type,
                "is_header": account.is_header,
                "parent_id": account.parent_id,
                "indent_level": indent,
                "balance": quantize_money(amounts.get(account.id, ZERO)),
                "total_balance": quantize_money(totals.get(account.id, ZERO)),
            }
        )
        for child in reversed(children.get(account.id, [])):
            walk.append((child, indent + 1))

    grand_total = sum((totals.get(root.id, ZERO) for root in roots), ZERO)
    return rows, grand_total
