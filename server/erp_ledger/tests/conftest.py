from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from erp_ledger.auth import get_current_user
from erp_ledger.chart_of_accounts.service import create_account
from erp_ledger.db import Base, build_engine, build_session_factory, get_db, get_read_db
from erp_ledger.main import app
from erp_ledger.models import AccountType, User


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_user] = lambda: User(
        id=1,
        email="admin@erp-ledger.local",
        full_name="Test Admin",
        hashed_password="x",
        is_active=True,
    )
    yield
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    TestingSessionLocal = build_session_factory(engine)
    with TestingSessionLocal() as db:
        db.add(User(id=1, email="admin@erp-ledger.local", full_name="Test Admin", hashed_password="x"))
        db.commit()
    yield TestingSessionLocal
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_read_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_read_db, None)


def seed_accounts(db) -> dict[str, int]:
    """A small two-level chart; returns account ids keyed by code."""
    assets = create_account(db, code="1000", name="Assets", account_type=AccountType.ASSET, is_header=True)
    liabilities = create_account(
        db, code="2000", name="Liabilities", account_type=AccountType.LIABILITY, is_header=True
    )
    equity = create_account(db, code="3000", name="Equity", account_type=AccountType.EQUITY, is_header=True)
    revenue = create_account(db, code="4000", name="Revenue", account_type=AccountType.REVENUE, is_header=True)
    expenses = create_account(db, code="5000", name="Expenses", account_type=AccountType.EXPENSE, is_header=True)

    accounts = {
        "1000": assets,
        "2000": liabilities,
        "3000": equity,
        "4000": revenue,
        "5000": expenses,
        "1001": create_account(
            db,
            code="1001",
            name="Cash",
            account_type=AccountType.ASSET,
            parent_id=assets.id,
            opening_balance=Decimal("1000.00"),
        ),
        "1002": create_account(
            db, code="1002", name="Accounts Receivable", account_type=AccountType.ASSET, parent_id=assets.id
        ),
        "2001": create_account(
            db, code="2001", name="Accounts Payable", account_type=AccountType.LIABILITY, parent_id=liabilities.id
        ),
        "3001": create_account(
            db,
            code="3001",
            name="Owner Equity",
            account_type=AccountType.EQUITY,
            parent_id=equity.id,
            opening_balance=Decimal("1000.00"),
        ),
        "4001": create_account(
            db, code="4001", name="Sales Revenue", account_type=AccountType.REVENUE, parent_id=revenue.id
        ),
        "5001": create_account(
            db, code="5001", name="Rent Expense", account_type=AccountType.EXPENSE, parent_id=expenses.id
        ),
    }
    db.commit()
    return {code: account.id for code, account in accounts.items()}


@pytest.fixture()
def accounts(db) -> dict[str, int]:
    return seed_accounts(db)


@pytest.fixture()
def api_accounts(session_factory) -> dict[str, int]:
    with session_factory() as db:
        return seed_accounts(db)
