from decimal import Decimal

from erp_ledger import seed_chart_of_accounts as seed
from erp_ledger.models import Account, User
from erp_ledger.reports.trial_balance import get_trial_balance


def test_seed_builds_standard_chart_once(db):
    inserted, skipped = seed.seed_chart_of_accounts(db)
    db.commit()
    assert inserted == len(seed.STANDARD_CHART)
    assert skipped == 0

    inserted, skipped = seed.seed_chart_of_accounts(db)
    db.commit()
    assert inserted == 0
    assert skipped == len(seed.STANDARD_CHART)
    assert db.query(Account).count() == len(seed.STANDARD_CHART)


def test_seed_links_parents_and_levels(db):
    seed.seed_chart_of_accounts(db)
    db.commit()

    cash = db.query(Account).filter(Account.code == "1101").one()
    assert cash.parent.code == "1100"
    assert cash.parent.parent.code == "1000"
    assert cash.level == 2
    assert cash.current_balance == Decimal("50000.00")


def test_seeded_opening_balances_balance(db):
    seed.seed_chart_of_accounts(db)
    db.commit()

    trial_balance = get_trial_balance(db)
    assert trial_balance["is_balanced"] is True
    assert trial_balance["total_debit"] == Decimal("2750000.00")


def test_seed_keeps_existing_accounts(db, accounts):
    inserted, skipped = seed.seed_chart_of_accounts(db)
    db.commit()
    # the fixture chart already holds the top-level headers and 3001/4001
    assert skipped == 7
    assert inserted == len(seed.STANDARD_CHART) - 7
    assert db.query(Account).filter(Account.code == "3001").one().opening_balance == Decimal("1000.00")


def test_get_or_create_user_is_idempotent(db):
    first = seed._get_or_create_user(db, "owner@erp-ledger.local", "password123")
    second = seed._get_or_create_user(db, "owner@erp-ledger.local", "other")
    db.commit()
    assert first.id == second.id
    assert db.query(User).filter(User.email == "owner@erp-ledger.local").count() == 1
