from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from erp_ledger.models import Account, AccountStatus, AccountType
from erp_ledger.reports.balances import activity_between, balances_as_of, ensure_date_range, rollup_hierarchy
from erp_ledger.utils.money import ZERO, quantize_money


def _accounts_of_type(db: Session, *account_types: AccountType) -> list[Account]:
    return (
        db.query(Account)
        .filter(Account.account_type.in_(account_types))
        .order_by(Account.code)
        .all()
    )


def _visible(rows: list[dict], accounts: list[Account]) -> list[dict]:
    # inactive accounts only show up while they still carry an amount
    inactive = {account.id for account in accounts if account.status == AccountStatus.INACTIVE}
    return [row for row in rows if row["account_id"] not in inactive or row["total_balance"] != 0]


def _section(accounts: list[Account], amounts: dict[int, Decimal]) -> tuple[list[dict], Decimal]:
    rows, total = rollup_hierarchy(accounts, amounts)
    return _visible(rows, accounts), total


def _percent_change(current: Decimal, previous: Decimal) -> Optional[Decimal]:
    if previous == 0:
        return None
    return quantize_money((current - previous) / abs(previous) * 100)


def get_profit_loss(db: Session, start_date: date, end_date: date) -> dict:
    """Revenue and expense activity posted within ``start_date``..``end_date``."""
    ensure_date_range(start_date, end_date)
    revenue_accounts = _accounts_of_type(db, AccountType.REVENUE)
    expense_accounts = _accounts_of_type(db, AccountType.EXPENSE)
    amounts = activity_between(db, revenue_accounts + expense_accounts, start_date, end_date)

    revenue_rows, total_revenue = _section(revenue_accounts, amounts)
    expense_rows, total_expenses = _section(expense_accounts, amounts)
    net_income = total_revenue - total_expenses
    return {
        "start_date": start_date,
        "end_date": end_date,
        "revenue": revenue_rows,
        "expenses": expense_rows,
        "total_revenue": quantize_money(total_revenue),
        "total_expenses": quantize_money(total_expenses),
        "net_income": quantize_money(net_income),
        "is_profitable": net_income > 0,
    }


def previous_period(start_date: date, end_date: date) -> tuple[date, date]:
    """The equal-length period that ends the day before ``start_date``."""
    length = (end_date - start_date).days
    previous_end = start_date - timedelta(days=1)
    return previous_end - timedelta(days=length), previous_end


def get_comparative_profit_loss(
    db: Session,
    start_date: date,
    end_date: date,
    previous_start_date: Optional[date] = None,
    previous_end_date: Optional[date] = None,
) -> dict:
    if previous_start_date is None or previous_end_date is None:
        previous_start_date, previous_end_date = previous_period(start_date, end_date)
    current = get_profit_loss(db, start_date, end_date)
    previous = get_profit_loss(db, previous_start_date, previous_end_date)

    changes = {}
    for key in ("total_revenue", "total_expenses", "net_income"):
        changes[key] = {
            "amount": quantize_money(current[key] - previous[key]),
            "percent": _percent_change(current[key], previous[key]),
        }
    return {"current": current, "previous": previous, "changes": changes}


def get_balance_sheet(db: Session, as_of_date: Optional[date] = None) -> dict:
    """Assets, liabilities and equity as of a date.

    Revenue minus expense balances that have not been closed into equity are
    reported as ``current_earnings`` so the statement balances.
    """
    accounts = _accounts_of_type(db, *AccountType)
    balances = balances_as_of(db, accounts, as_of_date)
    by_type: dict[AccountType, list[Account]] = {account_type: [] for account_type in AccountType}
    for account in accounts:
        by_type[AccountType(account.account_type)].append(account)

    asset_rows, total_assets = _section(by_type[AccountType.ASSET], balances)
    liability_rows, total_liabilities = _section(by_type[AccountType.LIABILITY], balances)
    equity_rows, total_equity = _section(by_type[AccountType.EQUITY], balances)
    revenue = sum((balances.get(account.id, ZERO) for account in by_type[AccountType.REVENUE]), ZERO)
    expenses = sum((balances.get(account.id, ZERO) for account in by_type[AccountType.EXPENSE]), ZERO)
    current_earnings = revenue - expenses

    total_liabilities_and_equity = total_liabilities + total_equity + current_earnings
    difference = total_assets - total_liabilities_and_equity
    return {
        "as_of_date": as_of_date,
        "assets": asset_rows,
        "liabilities": liability_rows,
        "equity": equity_rows,
        "total_assets": quantize_money(total_assets),
        "total_liabilities": quantize_money(total_liabilities),
        "total_equity": quantize_money(total_equity),
        "current_earnings": quantize_money(current_earnings),
        "total_liabilities_and_equity": quantize_money(total_liabilities_and_equity),
        "difference": quantize_money(difference),
        "is_balanced": abs(difference) < Decimal("0.01"),
    }


def get_comparative_balance_sheet(db: Session, as_of_date: date, compare_to: date) -> dict:
    current = get_balance_sheet(db, as_of_date)
    previous = get_balance_sheet(db, compare_to)
    changes = {}
    for key in ("total_assets", "total_liabilities", "total_equity", "current_earnings"):
        changes[key] = {
            "amount": quantize_money(current[key] - previous[key]),
            "percent": _percent_change(current[key], previous[key]),
        }
    return {"current": current, "previous": previous, "changes": changes}


def _ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == 0:
        return quantize_money(ZERO)
    return quantize_money(numerator / denominator)


def get_financial_ratios(db: Session, as_of_date: Optional[date] = None) -> dict:
    sheet = get_balance_sheet(db, as_of_date)
    total_assets = sheet["total_assets"]
    total_liabilities = sheet["total_liabilities"]
    equity = sheet["total_equity"] + sheet["current_earnings"]
    return {
        "as_of_date": as_of_date,
        "current_ratio": _ratio(total_assets, total_liabilities),
        "debt_to_equity": _ratio(total_liabilities, equity),
        "equity_ratio": _ratio(equity, total_assets),
        "total_assets": total_assets,
        "total_liabilities": total_liabilities,
        "total_equity": quantize_money(equity),
    }
