from datetime import date
from decimal import Decimal

import pytest

from erp_ledger.accounting.posting import post_journal_entry
from erp_ledger.accounting.service import create_journal_entry
from erp_ledger.errors import NotFoundError, ValidationError
from erp_ledger.models import Account, AccountType, EntryType
from erp_ledger.reports.ledger import get_account_ledger, get_ledger_summary
from erp_ledger.reports.statements import (
    get_balance_sheet,
    get_comparative_balance_sheet,
    get_comparative_profit_loss,
    get_financial_ratios,
    get_profit_loss,
    previous_period,
)
from erp_ledger.reports.trial_balance import (
    get_grouped_trial_balance,
    get_trial_balance,
    validate_trial_balance,
)


def _record(db, accounts, entry_date, debit_code, credit_code, amount, *, post=True, description="Activity"):
    entry = create_journal_entry(
        db,
        entry_date=entry_date,
        entry_type=EntryType.MANUAL,
        description=description,
        lines=[
            {"account_id": accounts[debit_code], "debit": Decimal(amount)},
            {"account_id": accounts[credit_code], "credit": Decimal(amount)},
        ],
        created_by=1,
    )
    if post:
        post_journal_entry(db, entry.id, posted_by=1)
    db.commit()
    return entry


@pytest.fixture()
def activity(db, accounts):
    _record(db, accounts, date(2024, 1, 15), "1001", "4001", "500.00", description="Cash sale")
    _record(db, accounts, date(2024, 2, 10), "5001", "1001", "200.00", description="February rent")
    _record(db, accounts, date(2024, 3, 5), "1002", "4001", "300.00", description="Credit sale")
    _record(db, accounts, date(2024, 3, 20), "1001", "4001", "50.00", post=False, description="Unposted sale")
    return accounts


def test_account_ledger_running_balance(db, activity):
    ledger = get_account_ledger(db, activity["1001"], date(2024, 2, 1), date(2024, 12, 31))
    assert ledger["opening_balance"] == Decimal("1500.00")
    assert [(line["credit"], line["balance"]) for line in ledger["lines"]] == [(Decimal("200.00"), Decimal("1300.00"))]
    assert ledger["total_debit"] == Decimal("0.00")
    assert ledger["total_credit"] == Decimal("200.00")
    assert ledger["closing_balance"] == Decimal("1300.00")


def test_ledger_closing_matches_current_balance(db, activity):
    ledger = get_account_ledger(db, activity["1001"])
    cash = db.get(Account, activity["1001"], populate_existing=True)
    assert ledger["opening_balance"] == Decimal("1000.00")
    assert [line["balance"] for line in ledger["lines"]] == [Decimal("1500.00"), Decimal("1300.00")]
    assert ledger["closing_balance"] == cash.current_balance


def test_ledger_orders_same_day_entries_by_sequence(db, accounts):
    first = _record(db, accounts, date(2024, 4, 1), "1001", "4001", "10.00")
    second = _record(db, accounts, date(2024, 4, 1), "5001", "1001", "5.00")
    ledger = get_account_ledger(db, accounts["1001"], date(2024, 4, 1), date(2024, 4, 1))
    assert [line["entry_no"] for line in ledger["lines"]] == [first.entry_no, second.entry_no]


def test_ledger_for_unknown_account(db, accounts):
    with pytest.raises(NotFoundError):
        get_account_ledger(db, 9999)


def test_ledger_rejects_inverted_range(db, accounts):
    with pytest.raises(ValidationError) as exc_info:
        get_account_ledger(db, accounts["1001"], date(2024, 6, 1), date(2024, 1, 1))
    assert exc_info.value.errors[0].path == "start_date"

    with pytest.raises(ValidationError):
        get_ledger_summary(db, date(2024, 6, 1), date(2024, 1, 1))


def test_ledger_summary(db, activity):
    summary = get_ledger_summary(db, date(2024, 2, 1), date(2024, 12, 31))
    rows = {row["account_code"]: row for row in summary["accounts"]}
    assert set(rows) == {"1001", "1002", "3001", "4001", "5001"}
    assert rows["1001"]["opening_balance"] == Decimal("1500.00")
    assert rows["1001"]["net_movement"] == Decimal("-200.00")
    assert rows["1001"]["closing_balance"] == Decimal("1300.00")
    assert rows["4001"]["closing_balance"] == Decimal("800.00")
    assert rows["4001"]["transaction_count"] == 1
    assert summary["totals"]["total_debits"] == summary["totals"]["total_credits"] == Decimal("500.00")

    everything = get_ledger_summary(db, date(2024, 2, 1), date(2024, 12, 31), show_zero_balances=True)
    assert "2001" in {row["account_code"] for row in everything["accounts"]}


def test_trial_balance_uses_current_balances(db, activity):
    trial_balance = get_trial_balance(db)
    rows = {row["account_code"]: row for row in trial_balance["accounts"]}
    assert rows["1001"]["debit"] == Decimal("1300.00")
    assert rows["1002"]["debit"] == Decimal("300.00")
    assert rows["5001"]["debit"] == Decimal("200.00")
    assert rows["3001"]["credit"] == Decimal("1000.00")
    assert rows["4001"]["credit"] == Decimal("800.00")
    assert "2001" not in rows
    assert trial_balance["total_debit"] == trial_balance["total_credit"] == Decimal("1800.00")
    assert trial_balance["difference"] == Decimal("0.00")
    assert trial_balance["is_balanced"] is True


def test_trial_balance_as_of_date(db, activity):
    trial_balance = get_trial_balance(db, date(2024, 1, 31))
    rows = {row["account_code"]: row for row in trial_balance["accounts"]}
    assert rows["1001"]["debit"] == Decimal("1500.00")
    assert rows["4001"]["credit"] == Decimal("500.00")
    assert "5001" not in rows
    assert trial_balance["is_balanced"] is True


def test_abnormal_balance_is_flagged(db, activity):
    _record(db, activity, date(2024, 4, 1), "2001", "1001", "100.00", description="Supplier overpayment")

    trial_balance = get_trial_balance(db)
    payable = next(row for row in trial_balance["accounts"] if row["account_code"] == "2001")
    assert payable["is_abnormal"] is True
    assert payable["debit"] == Decimal("100.00")
    assert payable["credit"] == Decimal("0.00")
    assert trial_balance["is_balanced"] is True

    validation = validate_trial_balance(db)
    assert validation["is_valid"] is True
    assert len(validation["warnings"]) == 1
    assert "2001" in validation["warnings"][0]


def test_grouped_trial_balance_lists_every_type(db, activity):
    grouped = get_grouped_trial_balance(db)
    assert [group["account_type"] for group in grouped["groups"]] == list(AccountType)
    groups = {group["account_type"]: group for group in grouped["groups"]}
    assert groups[AccountType.ASSET]["subtotal_debit"] == Decimal("1600.00")
    assert groups[AccountType.LIABILITY]["accounts"] == []
    assert groups[AccountType.REVENUE]["subtotal_credit"] == Decimal("800.00")
    assert grouped["is_balanced"] is True


def test_profit_loss_uses_activity_in_range(db, activity):
    report = get_profit_loss(db, date(2024, 2, 1), date(2024, 3, 31))
    assert report["total_revenue"] == Decimal("300.00")
    assert report["total_expenses"] == Decimal("200.00")
    assert report["net_income"] == Decimal("100.00")
    assert report["is_profitable"] is True
    revenue = [(row["account_code"], row["indent_level"], row["total_balance"]) for row in report["revenue"]]
    assert revenue == [("4000", 0, Decimal("300.00")), ("4001", 1, Decimal("300.00"))]

    full_year = get_profit_loss(db, date(2024, 1, 1), date(2024, 12, 31))
    assert full_year["net_income"] == Decimal("600.00")


def test_profit_loss_rejects_inverted_range(db, activity):
    with pytest.raises(ValidationError):
        get_profit_loss(db, date(2024, 3, 1), date(2024, 2, 1))


def test_previous_period_has_equal_length():
    assert previous_period(date(2024, 3, 1), date(2024, 3, 31)) == (date(2024, 1, 30), date(2024, 2, 29))


def test_comparative_profit_loss(db, activity):
    report = get_comparative_profit_loss(db, date(2024, 3, 1), date(2024, 3, 31))
    assert report["previous"]["start_date"] == date(2024, 1, 30)
    assert report["current"]["net_income"] == Decimal("300.00")
    assert report["previous"]["net_income"] == Decimal("-200.00")
    assert report["changes"]["net_income"] == {"amount": Decimal("500.00"), "percent": Decimal("250.00")}
    assert report["changes"]["total_revenue"]["percent"] is None


def test_balance_sheet_balances_with_current_earnings(db, activity):
    sheet = get_balance_sheet(db)
    assert sheet["total_assets"] == Decimal("1600.00")
    assert sheet["total_liabilities"] == Decimal("0.00")
    assert sheet["total_equity"] == Decimal("1000.00")
    assert sheet["current_earnings"] == Decimal("600.00")
    assert sheet["total_liabilities_and_equity"] == Decimal("1600.00")
    assert sheet["is_balanced"] is True
    assert [row["account_code"] for row in sheet["assets"]] == ["1000", "1001", "1002"]

    earlier = get_balance_sheet(db, date(2024, 1, 31))
    assert earlier["total_assets"] == Decimal("1500.00")
    assert earlier["current_earnings"] == Decimal("500.00")
    assert earlier["is_balanced"] is True


def test_comparative_balance_sheet(db, activity):
    report = get_comparative_balance_sheet(db, date(2024, 3, 31), date(2024, 1, 31))
    assert report["changes"]["total_assets"]["amount"] == Decimal("100.00")
    assert report["changes"]["current_earnings"]["amount"] == Decimal("100.00")


def test_financial_ratios(db, activity):
    _record(db, activity, date(2024, 4, 1), "5001", "2001", "400.00", description="Rent accrual")
    ratios = get_financial_ratios(db)
    # assets 1600, liabilities 400, equity 1000 + earnings 200
    assert ratios["current_ratio"] == Decimal("4.00")
    assert ratios["debt_to_equity"] == Decimal("0.33")
    assert ratios["equity_ratio"] == Decimal("0.75")
