from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from erp_ledger.models import Account, AccountStatus, AccountType, NormalBalance
from erp_ledger.reports.balances import balances_as_of
from erp_ledger.utils.money import ZERO, quantize_money

BALANCED_THRESHOLD = Decimal("0.01")


def _trial_balance_rows(db: Session, as_of_date: Optional[date]) -> list[dict]:
    accounts = (
        db.query(Account)
        .filter(Account.is_header.is_(False), Account.status == AccountStatus.ACTIVE)
        .order_by(Account.code)
        .all()
    )
    balances = balances_as_of(db, accounts, as_of_date)

    rows = []
    for account in accounts:
        balance = balances.get(account.id, ZERO)
        if balance == 0:
            continue
        # a negative balance sits on the side opposite the normal balance
        is_abnormal = balance < 0
        on_debit_side = (account.normal_balance == NormalBalance.DEBIT) != is_abnormal
        amount = abs(balance)
        rows.append(
            {
                "account_id": account.id,
                "account_code": account.code,
                "account_name": account.name,
                "account_type": account.account_type,
                "normal_balance": account.normal_balance,
                "balance": quantize_money(balance),
                "debit": quantize_money(amount if on_debit_side else ZERO),
                "credit": quantize_money(ZERO if on_debit_side else amount),
                "is_abnormal": is_abnormal,
            }
        )
    return rows


def _totals(rows: list[dict]) -> dict:
    total_debit = sum((row["debit"] for row in rows), ZERO)
    total_credit = sum((row["credit"] for row in rows), ZERO)
    difference = total_debit - total_credit
    return {
        "total_debit": quantize_money(total_debit),
        "total_credit": quantize_money(total_credit),
        "difference": quantize_money(difference),
        "is_balanced": abs(difference) < BALANCED_THRESHOLD,
    }


def get_trial_balance(db: Session, as_of_date: Optional[date] = None) -> dict:
    """Debit/credit listing of every active posting account with a balance.

    Without ``as_of_date`` the materialized ``current_balance`` is used; with a
    date each balance is rebuilt from the opening balance and posted lines dated
    on or before it.
    """
    rows = _trial_balance_rows(db, as_of_date)
    return {"as_of_date": as_of_date, "accounts": rows, **_totals(rows)}


def get_grouped_trial_balance(db: Session, as_of_date: Optional[date] = None) -> dict:
    rows = _trial_balance_rows(db, as_of_date)
    groups = []
    for account_type in AccountType:
        members = [row for row in rows if row["account_type"] == account_type]
        groups.append(
            {
                "account_type": account_type,
                "accounts": members,
                "subtotal_debit": quantize_money(sum((row["debit"] for row in members), ZERO)),
                "subtotal_credit": quantize_money(sum((row["credit"] for row in members), ZERO)),
            }
        )
    return {"as_of_date": as_of_date, "groups": groups, **_totals(rows)}


def validate_trial_balance(db: Session, as_of_date: Optional[date] = None) -> dict:
    trial_balance = get_trial_balance(db, as_of_date)
    errors: list[str] = []
    warnings: list[str] = []

    if not trial_balance["is_balanced"]:
        errors.append(
            f"Trial balance is out of balance by {trial_balance['difference']} "
            f"(debits {trial_balance['total_debit']}, credits {trial_balance['total_credit']})"
        )
    for row in trial_balance["accounts"]:
        if row["is_abnormal"]:
            expected = NormalBalance(row["normal_balance"]).value.lower()
            warnings.append(
                f"Account {row['account_code']} {row['account_name']} has an abnormal balance "
                f"of {row['balance']} (normally {expected})"
            )

    return {
        "as_of_date": as_of_date,
        "is_valid": not errors,
        "is_balanced": trial_balance["is_balanced"],
        "errors": errors,
        "warnings": warnings,
        "totals": {
            "total_debit": trial_balance["total_debit"],
            "total_credit": trial_balance["total_credit"],
            "difference": trial_balance["difference"],
        },
    }
