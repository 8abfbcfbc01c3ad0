from datetime import date
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from erp_ledger.accounting.posting import JournalLineInput, load_entry, post_journal_entry
from erp_ledger.accounting.service import create_journal_entry
from erp_ledger.config import get_settings
from erp_ledger.errors import ConcurrencyError, InvalidStateError
from erp_ledger.models import JournalEntry

logger = logging.getLogger(__name__)

REVERSAL_PREFIX = "REVERSAL: "


def build_reversal_lines(entry: JournalEntry) -> list[JournalLineInput]:
    return [
        JournalLineInput(
            account_id=line.account_id,
            debit=line.credit,
            credit=line.debit,
            description=line.description,
        )
        for line in entry.lines
    ]


def _ensure_reversible(entry: JournalEntry, allow_reversal_of_reversal: bool) -> None:
    if not entry.posted:
        raise InvalidStateError(f"Can only reverse posted journal entries; {entry.entry_no} is a draft.")
    if entry.reversal_entry_id is not None:
        raise InvalidStateError(f"Journal entry {entry.entry_no} has already been reversed.")
    if entry.is_reversal and not allow_reversal_of_reversal:
        raise InvalidStateError(f"Journal entry {entry.entry_no} is itself a reversal and cannot be reversed.")


def reverse_journal_entry(
    db: Session,
    entry_id: int,
    *,
    created_by: int,
    reversal_date: Optional[date] = None,
    allow_reversal_of_reversal: Optional[bool] = None,
) -> JournalEntry:
    """Create and post the mirror image of a posted entry.

    Creation, posting and the back-reference on the original share one savepoint:
    when any of them fails no reversal entry is left behind and the original keeps
    ``reversal_entry_id`` unset.
    """
    if allow_reversal_of_reversal is None:
        allow_reversal_of_reversal = get_settings().allow_reversal_of_reversal

    try:
        with db.begin_nested():
            original = load_entry(db, entry_id, for_update=True)
            _ensure_reversible(original, allow_reversal_of_reversal)

            description = f"{REVERSAL_PREFIX}{original.description}"[:500]
            reversal = create_journal_entry(
                db,
                entry_date=reversal_date or date.today(),
                entry_type=original.entry_type,
                description=description,
                lines=build_reversal_lines(original),
                created_by=created_by,
                reference_no=original.reference_no,
                reference_type=original.reference_type,
                reversed_entry_id=original.id,
            )
            post_journal_entry(db, reversal.id, posted_by=created_by)

            result = db.execute(
                update(JournalEntry)
                .where(JournalEntry.id == original.id, JournalEntry.reversal_entry_id.is_(None))
                .values(reversal_entry_id=reversal.id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidStateError(f"Journal entry {original.entry_no} has already been reversed.")
    except OperationalError as exc:
        logger.warning("Reversing journal entry %s hit a database conflict: %s", entry_id, exc.orig)
        raise ConcurrencyError(f"Journal entry {entry_id} could not be reversed due to a concurrent update; retry.") from exc

    db.refresh(original)
    db.refresh(reversal)
    logger.info("Reversed journal entry %s with %s", original.entry_no, reversal.entry_no)
    return reversal
