from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from erp_ledger.accounting.posting import post_journal_entry
from erp_ledger.accounting.service import create_journal_entry
from erp_ledger.chart_of_accounts.service import (
    build_account_tree,
    create_account,
    get_hierarchy_path,
    update_account,
)
from erp_ledger.errors import AccountConstraintError, NotFoundError, ValidationError
from erp_ledger.models import Account, AccountStatus, AccountType, EntryType, NormalBalance


def test_list_accounts(client: TestClient, api_accounts):
    response = client.get("/api/accounts", params={"is_header": False})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 6
    assert [row["code"] for row in data["data"]] == ["1001", "1002", "2001", "3001", "4001", "5001"]

    response = client.get("/api/accounts", params={"search": "cash"})
    assert [row["code"] for row in response.json()["data"]] == ["1001"]


def test_create_update_delete_account(client: TestClient, api_accounts):
    created = client.post(
        "/api/accounts",
        json={
            "code": "5002",
            "name": "Office Supplies",
            "account_type": "Expense",
            "parent_id": api_accounts["5000"],
        },
    )
    assert created.status_code == 201
    body = created.json()
    assert body["normal_balance"] == "Debit"
    assert body["level"] == 1
    assert body["status"] == "Active"
    account_id = body["id"]

    updated = client.patch(f"/api/accounts/{account_id}", json={"name": "Office Supplies Expense"})
    assert updated.status_code == 200
    assert updated.json()["name"] == "Office Supplies Expense"

    deleted = client.delete(f"/api/accounts/{account_id}")
    assert deleted.status_code == 200
    assert client.get(f"/api/accounts/{account_id}").status_code == 404


def test_create_account_normalizes_code_and_rejects_duplicates(client: TestClient, api_accounts):
    created = client.post(
        "/api/accounts", json={"code": "ar-2", "name": "Other Receivables", "account_type": "Asset"}
    )
    assert created.status_code == 201
    assert created.json()["code"] == "AR-2"

    duplicate = client.post(
        "/api/accounts", json={"code": "1001", "name": "Second Cash", "account_type": "Asset"}
    )
    assert duplicate.status_code == 400
    body = duplicate.json()
    assert body["kind"] == "validation_error"
    assert body["errors"][0]["path"] == "code"


def test_create_account_rejects_mismatched_normal_balance(client: TestClient, api_accounts):
    response = client.post(
        "/api/accounts",
        json={"code": "1003", "name": "Petty Cash", "account_type": "Asset", "normal_balance": "Credit"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["path"] == "normal_balance"


def test_header_account_cannot_have_opening_balance(client: TestClient, api_accounts):
    response = client.post(
        "/api/accounts",
        json={"code": "1500", "name": "Investments", "account_type": "Asset", "is_header": True, "opening_balance": "10.00"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["path"] == "opening_balance"


def test_parent_must_exist_and_share_type(client: TestClient, api_accounts):
    missing = client.post(
        "/api/accounts", json={"code": "1600", "name": "Deposits", "account_type": "Asset", "parent_id": 9999}
    )
    assert missing.status_code == 404
    assert missing.json()["kind"] == "not_found"

    wrong_type = client.post(
        "/api/accounts",
        json={"code": "1601", "name": "Deposits", "account_type": "Asset", "parent_id": api_accounts["2000"]},
    )
    assert wrong_type.status_code == 400
    assert wrong_type.json()["errors"][0]["path"] == "parent_id"


def test_tree_and_path_endpoints(client: TestClient, api_accounts):
    tree = client.get("/api/accounts/tree").json()
    assert [node["code"] for node in tree] == ["1000", "2000", "3000", "4000", "5000"]
    assert [child["code"] for child in tree[0]["children"]] == ["1001", "1002"]

    path = client.get(f"/api/accounts/{api_accounts['1001']}/path").json()
    assert [item["code"] for item in path] == ["1000", "1001"]

    by_type = client.get("/api/accounts/by-type/Revenue").json()
    assert [row["code"] for row in by_type] == ["4000", "4001"]


def test_deactivate_and_activate(client: TestClient, api_accounts):
    account_id = api_accounts["1002"]
    response = client.post(f"/api/accounts/{account_id}/deactivate")
    assert response.json()["status"] == "Inactive"
    assert "1002" not in [row["code"] for row in client.get("/api/accounts/by-type/Asset").json()]

    response = client.post(f"/api/accounts/{account_id}/activate")
    assert response.json()["status"] == "Active"


def test_delete_account_in_use_is_rejected(client: TestClient, api_accounts):
    response = client.delete(f"/api/accounts/{api_accounts['1000']}")
    assert response.status_code == 400
    assert response.json()["kind"] == "account_constraint"


def test_deep_hierarchy_is_built_iteratively(db):
    parent = create_account(db, code="L0", name="Level 0", account_type=AccountType.ASSET, is_header=True)
    for depth in range(1, 1500):
        parent = create_account(
            db,
            code=f"L{depth}",
            name=f"Level {depth}",
            account_type=AccountType.ASSET,
            parent_id=parent.id,
            is_header=True,
        )
    db.commit()

    tree = build_account_tree(db)
    assert len(tree) == 1
    depth = 0
    node = tree[0]
    while node["children"]:
        node = node["children"][0]
        depth += 1
    assert depth == 1499
    assert node["level"] == 1499

    path = get_hierarchy_path(db, parent.id)
    assert len(path) == 1500
    assert path[0]["code"] == "L0"


def test_inactive_parent_promotes_children_to_roots(db, accounts):
    db.get(Account, accounts["1000"]).status = AccountStatus.INACTIVE
    db.commit()

    roots = [node["code"] for node in build_account_tree(db, account_type=AccountType.ASSET)]
    assert roots == ["1001", "1002"]


def test_parent_change_rejects_cycles_and_relevels(db, accounts):
    current = create_account(
        db, code="1100", name="Current Assets", account_type=AccountType.ASSET, parent_id=accounts["1000"], is_header=True
    )
    db.commit()

    with pytest.raises(ValidationError):
        update_account(db, accounts["1000"], {"parent_id": current.id})
    db.rollback()

    update_account(db, accounts["1001"], {"parent_id": current.id})
    db.commit()
    assert db.get(Account, accounts["1001"]).level == 2

    update_account(db, current.id, {"parent_id": None})
    db.commit()
    assert db.get(Account, current.id).level == 0
    assert db.get(Account, accounts["1001"]).level == 1


def test_opening_balance_change_shifts_current_balance(db, accounts):
    entry = create_journal_entry(
        db,
        entry_date=date(2024, 1, 2),
        entry_type=EntryType.RECEIPT,
        description="Customer receipt",
        lines=[
            {"account_id": accounts["1001"], "debit": Decimal("200.00")},
            {"account_id": accounts["4001"], "credit": Decimal("200.00")},
        ],
        created_by=1,
    )
    post_journal_entry(db, entry.id, posted_by=1)
    db.commit()

    update_account(db, accounts["1001"], {"opening_balance": Decimal("1500.00")})
    db.commit()

    cash = db.get(Account, accounts["1001"], populate_existing=True)
    assert cash.opening_balance == Decimal("1500.00")
    assert cash.current_balance == Decimal("1700.00")


def test_type_change_blocked_once_lines_exist(db, accounts):
    entry = create_journal_entry(
        db,
        entry_date=date(2024, 1, 2),
        entry_type=EntryType.MANUAL,
        description="Rent accrual",
        lines=[
            {"account_id": accounts["5001"], "debit": Decimal("50.00")},
            {"account_id": accounts["2001"], "credit": Decimal("50.00")},
        ],
        created_by=1,
    )
    db.commit()

    with pytest.raises(AccountConstraintError):
        update_account(db, accounts["5001"], {"account_type": AccountType.ASSET, "parent_id": accounts["1000"]})
    db.rollback()
    with pytest.raises(AccountConstraintError):
        update_account(db, accounts["5001"], {"is_header": True})
    db.rollback()

    account = db.get(Account, accounts["5001"])
    assert account.account_type == AccountType.EXPENSE
    assert account.normal_balance == NormalBalance.DEBIT
    assert entry.id is not None


def test_unknown_account_raises_not_found(db, accounts):
    with pytest.raises(NotFoundError):
        update_account(db, 9999, {"name": "Ghost"})
