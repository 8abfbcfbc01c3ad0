import logging
import os
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .auth import hash_password
from .chart_of_accounts.service import count_accounts, create_account
from .config import configure_logging
from .db import SessionLocal
from .models import Account, AccountType, User

logger = logging.getLogger(__name__)

# (code, name, type, parent code, is_header, opening balance)
STANDARD_CHART: list[tuple[str, str, AccountType, Optional[str], bool, str]] = [
    ("1000", "Assets", AccountType.ASSET, None, True, "0"),
    ("1100", "Current Assets", AccountType.ASSET, "1000", True, "0"),
    ("1101", "Cash in Hand", AccountType.ASSET, "1100", False, "50000"),
    ("1102", "Cash at Bank", AccountType.ASSET, "1100", False, "500000"),
    ("1103", "Accounts Receivable", AccountType.ASSET, "1100", False, "250000"),
    ("1104", "Inventory", AccountType.ASSET, "1100", False, "300000"),
    ("1200", "Fixed Assets", AccountType.ASSET, "1000", True, "0"),
    ("1201", "Furniture & Fixtures", AccountType.ASSET, "1200", False, "150000"),
    ("1202", "Machinery & Equipment", AccountType.ASSET, "1200", False, "500000"),
    ("1203", "Vehicles", AccountType.ASSET, "1200", False, "1000000"),
    ("2000", "Liabilities", AccountType.LIABILITY, None, True, "0"),
    ("2100", "Current Liabilities", AccountType.LIABILITY, "2000", True, "0"),
    ("2101", "Accounts Payable", AccountType.LIABILITY, "2100", False, "150000"),
    ("2102", "Sales Tax Payable", AccountType.LIABILITY, "2100", False, "50000"),
    ("2103", "Income Tax Payable", AccountType.LIABILITY, "2100", False, "30000"),
    ("3000", "Equity", AccountType.EQUITY, None, True, "0"),
    ("3001", "Owner Equity", AccountType.EQUITY, "3000", False, "2500000"),
    # balancing figure for the opening trial balance
    ("3002", "Retained Earnings", AccountType.EQUITY, "3000", False, "20000"),
    ("4000", "Revenue", AccountType.REVENUE, None, True, "0"),
    ("4001", "Sales Revenue", AccountType.REVENUE, "4000", False, "0"),
    ("4002", "Service Revenue", AccountType.REVENUE, "4000", False, "0"),
    ("5000", "Expenses", AccountType.EXPENSE, None, True, "0"),
    ("5100", "Operating Expenses", AccountType.EXPENSE, "5000", True, "0"),
    ("5101", "Salaries & Wages", AccountType.EXPENSE, "5100", False, "0"),
    ("5102", "Rent Expense", AccountType.EXPENSE, "5100", False, "0"),
    ("5103", "Utilities Expense", AccountType.EXPENSE, "5100", False, "0"),
    ("5104", "Office Supplies", AccountType.EXPENSE, "5100", False, "0"),
    ("5105", "Depreciation Expense", AccountType.EXPENSE, "5100", False, "0"),
]


def seed_chart_of_accounts(db: Session) -> tuple[int, int]:
    """Create any missing standard accounts; existing codes are left untouched."""
    existing = {account.code: account for account in db.query(Account).all()}
    inserted = 0
    skipped = 0
    for code, name, account_type, parent_code, is_header, opening in STANDARD_CHART:
        if code in existing:
            skipped += 1
            continue
        parent = existing.get(parent_code) if parent_code else None
        existing[code] = create_account(
            db,
            code=code,
            name=name,
            account_type=account_type,
            parent_id=parent.id if parent else None,
            is_header=is_header,
            opening_balance=Decimal(opening),
        )
        inserted += 1
    return inserted, skipped


def _get_or_create_user(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(email=email, full_name="System Admin", hashed_password=hash_password(password), is_active=True)
    db.add(user)
    db.flush()
    return user


def main() -> None:
    configure_logging()
    db: Session = SessionLocal()
    try:
        admin_email = os.getenv("SEED_ADMIN_EMAIL")
        if admin_email:
            _get_or_create_user(db, admin_email, os.getenv("SEED_ADMIN_PASSWORD", "password123"))
        inserted, skipped = seed_chart_of_accounts(db)
        db.commit()
        print(f"Chart of Accounts seed complete: inserted={inserted}, skipped={skipped}, total={count_accounts(db)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
