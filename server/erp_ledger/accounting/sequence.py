from datetime import date
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_ledger.models import SequenceCounter

logger = logging.getLogger(__name__)

JOURNAL_ENTRY_PREFIX = "JV"
JOURNAL_SEQUENCE = "journal_entry"


def format_entry_no(entry_date: date, value: int) -> str:
    return f"{JOURNAL_ENTRY_PREFIX}-{entry_date.year}-{value:04d}"


def _increment(db: Session, name: str) -> bool:
    result = db.execute(
        update(SequenceCounter)
        .where(SequenceCounter.name == name)
        .values(current_value=SequenceCounter.current_value + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def next_value(db: Session, name: str) -> int:
    """Reserve the next value of a named counter inside the caller's transaction.

    The increment is a single UPDATE, so the counter row stays write-locked until the
    caller commits and no two transactions can read the same value.
    """
    if not _increment(db, name):
        try:
            with db.begin_nested():
                db.add(SequenceCounter(name=name, current_value=1))
                db.flush()
        except IntegrityError:
            # another transaction created the row first
            _increment(db, name)
    value = db.execute(select(SequenceCounter.current_value).where(SequenceCounter.name == name)).scalar_one()
    logger.debug("Allocated sequence value: name=%s value=%s", name, value)
    return int(value)


def next_entry_number(db: Session, entry_date: date) -> tuple[str, int]:
    """One counter across all years; the entry date only supplies the ``JV-YYYY`` prefix."""
    value = next_value(db, JOURNAL_SEQUENCE)
    return format_entry_no(entry_date, value), value
