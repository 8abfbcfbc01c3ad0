from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, selectinload

from erp_ledger.chart_of_accounts.service import adjust_balance
from erp_ledger.config import get_settings
from erp_ledger.errors import (
    AccountConstraintError,
    ConcurrencyError,
    FieldError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from erp_ledger.models import Account, JournalEntry, NormalBalance
from erp_ledger.utils.money import ZERO, has_cent_precision, to_decimal

logger = logging.getLogger(__name__)

MIN_LINES = 2
MAX_LINES = 100


@dataclass(frozen=True)
class JournalLineInput:
    account_id: int
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")
    description: str | None = None


class UnbalancedEntryError(ValidationError):
    pass


def compute_account_balance(normal_balance: NormalBalance, debit: Decimal, credit: Decimal) -> Decimal:
    """Signed effect of a debit/credit pair on an account with the given polarity."""
    if NormalBalance(normal_balance) == NormalBalance.DEBIT:
        return to_decimal(debit) - to_decimal(credit)
    return to_decimal(credit) - to_decimal(debit)


def entry_totals(lines: Iterable) -> tuple[Decimal, Decimal]:
    lines = list(lines)
    total_debits = sum((to_decimal(line.debit) for line in lines), ZERO)
    total_credits = sum((to_decimal(line.credit) for line in lines), ZERO)
    return total_debits, total_credits


def line_errors(lines: Sequence) -> list[FieldError]:
    errors: list[FieldError] = []
    if len(lines) < MIN_LINES:
        errors.append(FieldError("lines", f"journal entry must have at least {MIN_LINES} lines"))
    if len(lines) > MAX_LINES:
        errors.append(FieldError("lines", f"journal entry cannot have more than {MAX_LINES} lines"))

    for index, line in enumerate(lines):
        debit = to_decimal(line.debit)
        credit = to_decimal(line.credit)
        if line.account_id is None:
            errors.append(FieldError(f"lines[{index}].account_id", "account is required"))
        for field, amount in (("debit", debit), ("credit", credit)):
            if amount < 0:
                errors.append(FieldError(f"lines[{index}].{field}", "must be non-negative"))
            elif not has_cent_precision(amount):
                errors.append(FieldError(f"lines[{index}].{field}", "must have at most 2 decimal places"))
        if debit > 0 and credit > 0:
            errors.append(FieldError(f"lines[{index}]", "a line cannot have both debit and credit amounts"))
        elif debit == 0 and credit == 0:
            errors.append(FieldError(f"lines[{index}]", "a line must have either a debit or a credit amount"))
    return errors


def ensure_balanced(lines: Sequence, tolerance: Optional[Decimal] = None) -> None:
    if tolerance is None:
        tolerance = get_settings().balance_tolerance
    total_debits, total_credits = entry_totals(lines)
    difference = total_debits - total_credits
    if abs(difference) > tolerance:
        raise UnbalancedEntryError(
            f"Journal entry is unbalanced: debits={total_debits} credits={total_credits}",
            [FieldError("lines", f"total debits must equal total credits (difference {difference})")],
        )


def validate_lines(lines: Sequence, tolerance: Optional[Decimal] = None) -> None:
    errors = line_errors(lines)
    if errors:
        raise ValidationError("Invalid journal lines.", errors)
    ensure_balanced(lines, tolerance)


def load_entry(db: Session, entry_id: int, *, for_update: bool = False) -> JournalEntry:
    query = (
        db.query(JournalEntry)
        .options(selectinload(JournalEntry.lines))
        .filter(JournalEntry.id == entry_id)
        .populate_existing()
    )
    if for_update:
        query = query.with_for_update(of=JournalEntry)
    entry = query.first()
    if not entry:
        raise NotFoundError(f"Journal entry not found: {entry_id}")
    return entry


def _resolve_deltas(db: Session, entry: JournalEntry) -> tuple[dict[int, Decimal], list[Account]]:
    account_ids = {line.account_id for line in entry.lines}
    accounts = {
        account.id: account
        for account in db.query(Account).filter(Account.id.in_(account_ids)).populate_existing().all()
    }

    deltas: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for line in entry.lines:
        account = accounts.get(line.account_id)
        if account is None:
            raise AccountConstraintError(f"Account not found: {line.account_id}")
        if account.is_header:
            raise AccountConstraintError(f"Cannot post to header account: {account.code} {account.name}")
        if not account.is_active:
            raise AccountConstraintError(f"Account is inactive: {account.code} {account.name}")
        deltas[account.id] += compute_account_balance(account.normal_balance, line.debit, line.credit)
    return dict(deltas), list(accounts.values())


def _claim_posted(db: Session, entry: JournalEntry, posted_by: int) -> None:
    result = db.execute(
        update(JournalEntry)
        .where(JournalEntry.id == entry.id, JournalEntry.posted.is_(False))
        .values(posted=True, posted_by_id=posted_by, posted_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidStateError(f"Journal entry {entry.entry_no} is already posted.")


def post_journal_entry(db: Session, entry_id: int, *, posted_by: int) -> JournalEntry:
    """Move a draft entry to Posted and apply its lines to account balances.

    Balance updates and the posted flag are written in one savepoint; if any step
    fails nothing from this entry is kept and it stays a draft. The caller commits.
    """
    try:
        with db.begin_nested():
            entry = load_entry(db, entry_id, for_update=True)
            if entry.posted:
                raise InvalidStateError(f"Journal entry {entry.entry_no} is already posted.")
            validate_lines(entry.lines)
            _claim_posted(db, entry, posted_by)
            deltas, accounts = _resolve_deltas(db, entry)
            # fixed lock order across concurrent postings
            for account_id in sorted(deltas):
                adjust_balance(db, account_id, deltas[account_id])
    except OperationalError as exc:
        logger.warning("Posting journal entry %s hit a database conflict: %s", entry_id, exc.orig)
        raise ConcurrencyError(f"Journal entry {entry_id} could not be posted due to a concurrent update; retry.") from exc

    for account in accounts:
        db.expire(account, ["current_balance", "updated_at"])
    db.refresh(entry)
    logger.info(
        "Posted journal entry %s: accounts=%s posted_by=%s",
        entry.entry_no,
        len(deltas),
        posted_by,
    )
    return entry
