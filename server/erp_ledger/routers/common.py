import logging
from datetime import date
from math import ceil

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from erp_ledger.errors import ConcurrencyError

logger = logging.getLogger(__name__)


def commit(db: Session) -> None:
    try:
        db.commit()
    except OperationalError as exc:
        db.rollback()
        logger.warning("Commit failed on a database conflict: %s", exc.orig)
        raise ConcurrencyError("The database is busy; retry the request.") from exc


def pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "pages": ceil(total / limit) if limit else 0}


def year_to_date(start_date: date | None, end_date: date | None, today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return start_date or date(today.year, 1, 1), end_date or today
