from datetime import date
import logging
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from erp_ledger.accounting.posting import (
    JournalLineInput,
    entry_totals,
    ensure_balanced,
    line_errors,
    load_entry,
)
from erp_ledger.accounting.sequence import format_entry_no, next_entry_number
from erp_ledger.config import get_settings
from erp_ledger.errors import FieldError, InvalidStateError, ValidationError
from erp_ledger.models import Account, EntryType, JournalEntry, JournalLine
from erp_ledger.utils.money import to_decimal

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "entry_no": (JournalEntry.entry_date, JournalEntry.entry_seq),
    "entry_date": (JournalEntry.entry_date, JournalEntry.entry_seq),
    "entry_type": (JournalEntry.entry_type, JournalEntry.entry_seq),
    "total_debit": (JournalEntry.total_debit, JournalEntry.entry_seq),
}
EDITABLE_FIELDS = ("entry_date", "entry_type", "description", "reference_type", "reference_no", "notes", "lines")


def _coerce_lines(lines: Iterable) -> list[JournalLineInput]:
    coerced: list[JournalLineInput] = []
    for line in lines:
        if isinstance(line, JournalLineInput):
            coerced.append(line)
            continue
        data = line if isinstance(line, dict) else vars(line)
        coerced.append(
            JournalLineInput(
                account_id=data.get("account_id"),
                debit=to_decimal(data.get("debit")),
                credit=to_decimal(data.get("credit")),
                description=data.get("description") or None,
            )
        )
    return coerced


def _header_errors(entry_date: Optional[date], entry_type, description: Optional[str]) -> list[FieldError]:
    errors: list[FieldError] = []
    if entry_date is None:
        errors.append(FieldError("entry_date", "entry date is required"))
    try:
        EntryType(entry_type)
    except ValueError:
        errors.append(FieldError("entry_type", f"invalid entry type '{entry_type}'"))
    description = (description or "").strip()
    if not 3 <= len(description) <= 500:
        errors.append(FieldError("description", "must be between 3 and 500 characters"))
    return errors


def _account_errors(db: Session, lines: list[JournalLineInput]) -> list[FieldError]:
    account_ids = {line.account_id for line in lines if line.account_id is not None}
    accounts = {account.id: account for account in db.query(Account).filter(Account.id.in_(account_ids)).all()}
    errors: list[FieldError] = []
    for index, line in enumerate(lines):
        if line.account_id is None:
            continue
        account = accounts.get(line.account_id)
        path = f"lines[{index}].account_id"
        if account is None:
            errors.append(FieldError(path, f"account not found: {line.account_id}"))
        elif account.is_header:
            errors.append(FieldError(path, f"cannot use header account '{account.code} {account.name}'"))
        elif not account.is_active:
            errors.append(FieldError(path, f"account '{account.code} {account.name}' is inactive"))
    return errors


def _validate_lines_for_write(db: Session, lines: list[JournalLineInput], errors: list[FieldError]) -> None:
    errors.extend(line_errors(lines))
    errors.extend(_account_errors(db, lines))
    if errors:
        raise ValidationError("Journal entry validation failed.", errors)
    ensure_balanced(lines)


def _build_lines(lines: list[JournalLineInput]) -> list[JournalLine]:
    return [
        JournalLine(
            account_id=line.account_id,
            position=index,
            debit=line.debit,
            credit=line.credit,
            description=line.description,
        )
        for index, line in enumerate(lines)
    ]


def create_journal_entry(
    db: Session,
    *,
    entry_date: date,
    entry_type: EntryType,
    description: str,
    lines: Iterable,
    created_by: int,
    reference_no: Optional[str] = None,
    reference_type: Optional[str] = None,
    notes: Optional[str] = None,
    reversed_entry_id: Optional[int] = None,
) -> JournalEntry:
    """Validate and store a draft entry; nothing is written when validation fails."""
    lines = _coerce_lines(lines)
    errors = _header_errors(entry_date, entry_type, description)
    _validate_lines_for_write(db, lines, errors)

    total_debit, total_credit = entry_totals(lines)
    entry_no, entry_seq = next_entry_number(db, entry_date)
    entry = JournalEntry(
        entry_no=entry_no,
        entry_seq=entry_seq,
        entry_date=entry_date,
        entry_type=EntryType(entry_type),
        description=description.strip(),
        reference_type=reference_type or None,
        reference_no=reference_no or None,
        notes=notes or None,
        total_debit=total_debit,
        total_credit=total_credit,
        posted=False,
        created_by_id=created_by,
        reversed_entry_id=reversed_entry_id,
    )
    entry.lines = _build_lines(lines)
    db.add(entry)
    db.flush()
    logger.info("Created journal entry %s (%s lines, total %s)", entry.entry_no, len(lines), total_debit)
    return entry


def get_journal_entry(db: Session, entry_id: int) -> JournalEntry:
    return load_entry(db, entry_id)


def list_journal_entries(
    db: Session,
    *,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    entry_type: Optional[EntryType] = None,
    posted: Optional[bool] = None,
    account_id: Optional[int] = None,
    search: Optional[str] = None,
    sort_by: str = "entry_date",
    order: str = "desc",
    offset: int = 0,
    limit: int = 10,
) -> tuple[list[JournalEntry], int]:
    query = db.query(JournalEntry)
    if start_date:
        query = query.filter(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(JournalEntry.entry_date <= end_date)
    if entry_type:
        query = query.filter(JournalEntry.entry_type == EntryType(entry_type))
    if posted is not None:
        query = query.filter(JournalEntry.posted.is_(posted))
    if account_id is not None:
        query = query.filter(JournalEntry.lines.any(JournalLine.account_id == account_id))
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                JournalEntry.entry_no.ilike(like),
                JournalEntry.description.ilike(like),
                JournalEntry.reference_no.ilike(like),
            )
        )

    total = query.count()
    columns = SORT_COLUMNS.get(sort_by, SORT_COLUMNS["entry_date"])
    ordering = [column.asc() if order == "asc" else column.desc() for column in columns]
    entries = query.options(selectinload(JournalEntry.lines)).order_by(*ordering).offset(offset).limit(limit).all()
    return entries, total


def _ensure_draft(entry: JournalEntry, action: str) -> None:
    if not entry.can_edit:
        raise InvalidStateError(f"Cannot {action} posted journal entry {entry.entry_no}; reverse it instead.")


def update_journal_entry(db: Session, entry_id: int, changes: dict) -> JournalEntry:
    entry = load_entry(db, entry_id, for_update=True)
    _ensure_draft(entry, "modify")
    changes = {key: value for key, value in changes.items() if key in EDITABLE_FIELDS}

    errors = _header_errors(
        changes.get("entry_date") or entry.entry_date,
        changes.get("entry_type") or entry.entry_type,
        changes["description"] if changes.get("description") is not None else entry.description,
    )
    if changes.get("lines") is not None:
        lines = _coerce_lines(changes["lines"])
        _validate_lines_for_write(db, lines, errors)
        entry.lines = _build_lines(lines)
        entry.total_debit, entry.total_credit = entry_totals(lines)
    elif errors:
        raise ValidationError("Journal entry validation failed.", errors)

    if changes.get("entry_date") is not None:
        entry.entry_date = changes["entry_date"]
        # the number keeps its sequence value; only the year prefix follows the date
        entry.entry_no = format_entry_no(entry.entry_date, entry.entry_seq)
    if changes.get("entry_type") is not None:
        entry.entry_type = EntryType(changes["entry_type"])
    if changes.get("description") is not None:
        entry.description = changes["description"].strip()
    for key in ("reference_type", "reference_no", "notes"):
        if key in changes:
            setattr(entry, key, changes[key] or None)

    db.flush()
    logger.info("Updated draft journal entry %s", entry.entry_no)
    return entry


def delete_journal_entry(db: Session, entry_id: int) -> None:
    entry = load_entry(db, entry_id, for_update=True)
    _ensure_draft(entry, "delete")
    db.delete(entry)
    db.flush()
    logger.info("Deleted draft journal entry %s", entry.entry_no)


def validate_journal_entry(db: Session, entry_id: int, *, today: Optional[date] = None) -> dict:
    """Report whether a stored entry could be posted right now, without raising."""
    entry = load_entry(db, entry_id)
    lines = _coerce_lines(
        {"account_id": line.account_id, "debit": line.debit, "credit": line.credit} for line in entry.lines
    )
    errors = [f"{error.path}: {error.message}" for error in line_errors(lines) + _account_errors(db, lines)]
    warnings: list[str] = []

    if entry.posted:
        errors.append("journal entry is already posted")
    total_debit, total_credit = entry_totals(lines)
    if abs(total_debit - total_credit) > get_settings().balance_tolerance:
        errors.append(f"entry is not balanced (difference {total_debit - total_credit})")

    if entry.entry_date > (today or date.today()):
        warnings.append(f"entry is dated in the future ({entry.entry_date.isoformat()})")
    debit_accounts = {line.account_id for line in lines if line.debit > 0}
    credit_accounts = {line.account_id for line in lines if line.credit > 0}
    for account_id in sorted(debit_accounts & credit_accounts):
        warnings.append(f"account {account_id} is both debited and credited in this entry")

    return {
        "entry_id": entry.id,
        "entry_no": entry.entry_no,
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "total_debit": total_debit,
        "total_credit": total_credit,
    }
