from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_ledger.auth import get_current_user
from erp_ledger.db import get_read_db
from erp_ledger.reports import schemas
from erp_ledger.reports.statements import (
    get_balance_sheet,
    get_comparative_balance_sheet,
    get_comparative_profit_loss,
    get_financial_ratios,
    get_profit_loss,
)
from erp_ledger.reports.trial_balance import (
    get_grouped_trial_balance,
    get_trial_balance,
    validate_trial_balance,
)
from erp_ledger.routers.common import year_to_date

router = APIRouter(prefix="/api", tags=["reports"], dependencies=[Depends(get_current_user)])


@router.get(
    "/trial-balance",
    response_model=Union[schemas.GroupedTrialBalanceResponse, schemas.TrialBalanceResponse],
)
def trial_balance(as_of_date: Optional[date] = None, grouped: bool = False, db: Session = Depends(get_read_db)):
    if grouped:
        return get_grouped_trial_balance(db, as_of_date)
    return get_trial_balance(db, as_of_date)


@router.get("/trial-balance/validate", response_model=schemas.TrialBalanceValidationResponse)
def trial_balance_validation(as_of_date: Optional[date] = None, db: Session = Depends(get_read_db)):
    return validate_trial_balance(db, as_of_date)


@router.get(
    "/profit-loss",
    response_model=Union[schemas.ComparativeProfitLossResponse, schemas.ProfitLossResponse],
)
def profit_loss(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    comparative: bool = False,
    previous_start_date: Optional[date] = None,
    previous_end_date: Optional[date] = None,
    db: Session = Depends(get_read_db),
):
    start_date, end_date = year_to_date(start_date, end_date)
    if comparative:
        return get_comparative_profit_loss(db, start_date, end_date, previous_start_date, previous_end_date)
    return get_profit_loss(db, start_date, end_date)


@router.get(
    "/balance-sheet",
    response_model=Union[schemas.ComparativeBalanceSheetResponse, schemas.BalanceSheetResponse],
)
def balance_sheet(
    as_of_date: Optional[date] = None,
    compare_to: Optional[date] = None,
    db: Session = Depends(get_read_db),
):
    if compare_to is not None:
        return get_comparative_balance_sheet(db, as_of_date or date.today(), compare_to)
    return get_balance_sheet(db, as_of_date)


@router.get("/financial-ratios", response_model=schemas.FinancialRatiosResponse)
def financial_ratios(as_of_date: Optional[date] = None, db: Session = Depends(get_read_db)):
    return get_financial_ratios(db, as_of_date)
