from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_ledger.auth import get_current_user
from erp_ledger.db import get_read_db
from erp_ledger.reports import schemas
from erp_ledger.reports.ledger import get_account_ledger, get_ledger_summary
from erp_ledger.routers.common import year_to_date

router = APIRouter(prefix="/api/ledger", tags=["ledger"], dependencies=[Depends(get_current_user)])


@router.get("/summary", response_model=schemas.LedgerSummaryResponse)
def ledger_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    show_zero_balances: bool = False,
    db: Session = Depends(get_read_db),
):
    start_date, end_date = year_to_date(start_date, end_date)
    return get_ledger_summary(db, start_date, end_date, show_zero_balances=show_zero_balances)


@router.get("/{account_id}", response_model=schemas.AccountLedgerResponse)
def account_ledger(
    account_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_read_db),
):
    start_date, end_date = year_to_date(start_date, end_date)
    return get_account_ledger(db, account_id, start_date, end_date)
