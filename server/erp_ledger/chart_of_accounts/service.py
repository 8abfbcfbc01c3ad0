from decimal import Decimal
import logging
import re
from typing import Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_ledger.errors import AccountConstraintError, FieldError, NotFoundError, ValidationError
from erp_ledger.models import (
    NORMAL_BALANCE_BY_TYPE,
    Account,
    AccountStatus,
    AccountType,
    JournalLine,
    NormalBalance,
)
from erp_ledger.utils.money import ZERO, has_cent_precision, to_decimal

logger = logging.getLogger(__name__)

ACCOUNT_CODE_PATTERN = re.compile(r"^[A-Z0-9-]{1,10}$")
UPDATABLE_FIELDS = ("code", "name", "account_type", "normal_balance", "parent_id", "is_header", "opening_balance", "description")


def expected_normal_balance(account_type: AccountType) -> NormalBalance:
    return NORMAL_BALANCE_BY_TYPE[AccountType(account_type)]


def get_account(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id)
    if not account:
        raise NotFoundError(f"Account not found: {account_id}")
    return account


def account_has_lines(db: Session, account_id: int) -> bool:
    return db.query(JournalLine.id).filter(JournalLine.account_id == account_id).first() is not None


def account_has_children(db: Session, account_id: int) -> bool:
    return db.query(Account.id).filter(Account.parent_id == account_id).first() is not None


def list_accounts(
    db: Session,
    *,
    account_type: Optional[AccountType] = None,
    is_header: Optional[bool] = None,
    status: Optional[AccountStatus] = None,
    parent_id: Optional[int] = None,
    search: Optional[str] = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Account], int]:
    query = db.query(Account)
    if account_type:
        query = query.filter(Account.account_type == AccountType(account_type))
    if is_header is not None:
        query = query.filter(Account.is_header.is_(is_header))
    if status:
        query = query.filter(Account.status == AccountStatus(status))
    if parent_id is not None:
        query = query.filter(Account.parent_id == parent_id)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Account.code.ilike(like), Account.name.ilike(like)))

    total = query.count()
    accounts = query.order_by(Account.code.asc()).offset(offset).limit(limit).all()
    return accounts, total


def list_accounts_by_type(db: Session, account_type: AccountType, *, active_only: bool = True) -> list[Account]:
    query = db.query(Account).filter(Account.account_type == AccountType(account_type))
    if active_only:
        query = query.filter(Account.status == AccountStatus.ACTIVE)
    return query.order_by(Account.code.asc()).all()


def _tree_node(account: Account) -> dict:
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "account_type": account.account_type,
        "normal_balance": account.normal_balance,
        "is_header": account.is_header,
        "status": account.status,
        "level": account.level,
        "parent_id": account.parent_id,
        "current_balance": account.current_balance,
        "children": [],
    }


def build_account_tree(
    db: Session,
    *,
    account_type: Optional[AccountType] = None,
    active_only: bool = True,
) -> list[dict]:
    """Nest accounts under their parents from a single query.

    An account whose parent is filtered out of the result is promoted to a root.
    """
    query = db.query(Account)
    if account_type:
        query = query.filter(Account.account_type == AccountType(account_type))
    if active_only:
        query = query.filter(Account.status == AccountStatus.ACTIVE)
    accounts = query.order_by(Account.code.asc()).all()

    nodes = {account.id: _tree_node(account) for account in accounts}
    roots: list[dict] = []
    for account in accounts:
        parent = nodes.get(account.parent_id)
        if parent is None:
            roots.append(nodes[account.id])
        else:
            parent["children"].append(nodes[account.id])
    return roots


def _parent_map(db: Session) -> dict[int, Optional[int]]:
    return {account_id: parent_id for account_id, parent_id in db.query(Account.id, Account.parent_id).all()}


def get_hierarchy_path(db: Session, account_id: int) -> list[dict]:
    """Ancestor chain ordered root first, ending with the account itself."""
    get_account(db, account_id)
    rows = db.query(Account.id, Account.parent_id, Account.code, Account.name).all()
    lookup = {row.id: row for row in rows}

    path: list[dict] = []
    seen: set[int] = set()
    current_id: Optional[int] = account_id
    while current_id is not None and current_id in lookup and current_id not in seen:
        seen.add(current_id)
        row = lookup[current_id]
        path.append({"id": row.id, "code": row.code, "name": row.name})
        current_id = row.parent_id
    path.reverse()
    return path


def adjust_balance(db: Session, account_id: int, delta: Decimal, *, postable_only: bool = True) -> None:
    """Apply a signed delta to ``current_balance`` in one UPDATE statement.

    The increment happens in the database so concurrent adjustments on the same
    account serialize on its row instead of overwriting each other.
    """
    stmt = update(Account).where(Account.id == account_id)
    if postable_only:
        stmt = stmt.where(Account.is_header.is_(False), Account.status == AccountStatus.ACTIVE)
    result = db.execute(
        stmt.values(current_balance=Account.current_balance + delta).execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        logger.debug("Adjusted account balance: account_id=%s delta=%s", account_id, delta)
        return

    account = db.get(Account, account_id, populate_existing=True)
    if account is None:
        raise NotFoundError(f"Account not found: {account_id}")
    if account.is_header:
        raise AccountConstraintError(f"Cannot post to header account: {account.code} {account.name}")
    raise AccountConstraintError(f"Account is inactive: {account.code} {account.name}")


def _normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def _validate_account_fields(
    db: Session,
    *,
    account_id: Optional[int],
    code: str,
    name: str,
    account_type: AccountType,
    normal_balance: NormalBalance,
    is_header: bool,
    opening_balance: Decimal,
) -> list[FieldError]:
    errors: list[FieldError] = []
    if not ACCOUNT_CODE_PATTERN.match(code):
        errors.append(
            FieldError("code", "must be 1-10 characters of uppercase letters, numbers, and hyphens")
        )
    else:
        clash = db.query(Account.id).filter(Account.code == code)
        if account_id is not None:
            clash = clash.filter(Account.id != account_id)
        if clash.first() is not None:
            errors.append(FieldError("code", f"account code '{code}' already exists"))
    if not 3 <= len(name) <= 100:
        errors.append(FieldError("name", "must be between 3 and 100 characters"))
    if normal_balance != expected_normal_balance(account_type):
        errors.append(
            FieldError(
                "normal_balance",
                f"{account_type.value} accounts must have a {expected_normal_balance(account_type).value} normal balance",
            )
        )
    if not has_cent_precision(opening_balance):
        errors.append(FieldError("opening_balance", "must have at most 2 decimal places"))
    if is_header and opening_balance != 0:
        errors.append(FieldError("opening_balance", "header accounts cannot have an opening balance"))
    return errors


def _resolve_parent(db: Session, parent_id: Optional[int], account_type: AccountType) -> Optional[Account]:
    if parent_id is None:
        return None
    parent = db.get(Account, parent_id)
    if not parent:
        raise NotFoundError(f"Parent account not found: {parent_id}")
    if parent.account_type != account_type:
        raise ValidationError(
            "Invalid parent account.",
            [FieldError("parent_id", f"parent account must also be of type {account_type.value}")],
        )
    return parent


def _flush_account(db: Session, account: Account) -> None:
    try:
        with db.begin_nested():
            db.add(account)
            db.flush()
    except IntegrityError:
        raise ValidationError(
            "Invalid account.", [FieldError("code", f"account code '{account.code}' already exists")]
        ) from None


def create_account(
    db: Session,
    *,
    code: str,
    name: str,
    account_type: AccountType,
    normal_balance: Optional[NormalBalance] = None,
    parent_id: Optional[int] = None,
    is_header: bool = False,
    opening_balance: Decimal | int | str = ZERO,
    description: Optional[str] = None,
) -> Account:
    account_type = AccountType(account_type)
    normal_balance = NormalBalance(normal_balance) if normal_balance else expected_normal_balance(account_type)
    code = _normalize_code(code)
    name = (name or "").strip()
    opening_balance = to_decimal(opening_balance)

    errors = _validate_account_fields(
        db,
        account_id=None,
        code=code,
        name=name,
        account_type=account_type,
        normal_balance=normal_balance,
        is_header=is_header,
        opening_balance=opening_balance,
    )
    if errors:
        raise ValidationError("Invalid account.", errors)

    parent = _resolve_parent(db, parent_id, account_type)
    account = Account(
        code=code,
        name=name,
        account_type=account_type,
        normal_balance=normal_balance,
        parent_id=parent.id if parent else None,
        level=parent.level + 1 if parent else 0,
        is_header=is_header,
        status=AccountStatus.ACTIVE,
        opening_balance=opening_balance,
        current_balance=opening_balance,
        description=description,
    )
    _flush_account(db, account)
    logger.info("Created account %s %s (%s)", account.code, account.name, account.account_type.value)
    return account


def _ensure_no_cycle(db: Session, account_id: int, new_parent_id: int) -> None:
    if new_parent_id == account_id:
        raise ValidationError("Invalid parent account.", [FieldError("parent_id", "an account cannot be its own parent")])
    parents = _parent_map(db)
    seen: set[int] = set()
    current = new_parent_id
    while current is not None and current not in seen:
        if current == account_id:
            raise ValidationError(
                "Invalid parent account.",
                [FieldError("parent_id", "an account cannot be moved under one of its descendants")],
            )
        seen.add(current)
        current = parents.get(current)


def _relevel_descendants(db: Session, root: Account) -> None:
    children_by_parent: dict[int, list[Account]] = {}
    for account in db.query(Account).filter(Account.parent_id.isnot(None)).all():
        children_by_parent.setdefault(account.parent_id, []).append(account)

    stack = [root]
    while stack:
        node = stack.pop()
        for child in children_by_parent.get(node.id, []):
            child.level = node.level + 1
            stack.append(child)


def update_account(db: Session, account_id: int, changes: dict) -> Account:
    account = get_account(db, account_id)
    changes = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
    has_lines = account_has_lines(db, account_id)

    account_type = AccountType(changes.get("account_type") or account.account_type)
    if "normal_balance" in changes and changes["normal_balance"] is not None:
        normal_balance = NormalBalance(changes["normal_balance"])
    elif "account_type" in changes:
        normal_balance = expected_normal_balance(account_type)
    else:
        normal_balance = account.normal_balance
    code = _normalize_code(changes["code"]) if changes.get("code") is not None else account.code
    name = changes["name"].strip() if changes.get("name") is not None else account.name
    is_header = changes["is_header"] if changes.get("is_header") is not None else account.is_header
    if changes.get("opening_balance") is not None:
        opening_balance = to_decimal(changes["opening_balance"])
    else:
        opening_balance = to_decimal(account.opening_balance)

    errors = _validate_account_fields(
        db,
        account_id=account.id,
        code=code,
        name=name,
        account_type=account_type,
        normal_balance=normal_balance,
        is_header=is_header,
        opening_balance=opening_balance,
    )
    if errors:
        raise ValidationError("Invalid account.", errors)

    if has_lines and (account_type != account.account_type or normal_balance != account.normal_balance):
        raise AccountConstraintError("Cannot change the type of an account that has journal lines.")
    if is_header and not account.is_header and has_lines:
        raise AccountConstraintError("Cannot convert an account with journal lines into a header account.")

    parent_changed = "parent_id" in changes and changes["parent_id"] != account.parent_id
    if parent_changed:
        new_parent_id = changes["parent_id"]
        if new_parent_id is not None:
            _ensure_no_cycle(db, account.id, new_parent_id)
            parent = _resolve_parent(db, new_parent_id, account_type)
            account.level = parent.level + 1
        else:
            account.level = 0
        account.parent_id = new_parent_id
    elif account.parent_id is not None and account_type != account.account_type:
        _resolve_parent(db, account.parent_id, account_type)

    opening_delta = opening_balance - to_decimal(account.opening_balance)
    account.code = code
    account.name = name
    account.account_type = account_type
    account.normal_balance = normal_balance
    account.is_header = is_header
    account.opening_balance = opening_balance
    if "description" in changes:
        account.description = changes["description"]

    _flush_account(db, account)
    if opening_delta:
        adjust_balance(db, account.id, opening_delta, postable_only=False)
        db.refresh(account)
        logger.info("Opening balance of account %s shifted by %s", account.code, opening_delta)
    if parent_changed:
        _relevel_descendants(db, account)
        db.flush()
    return account


def deactivate_account(db: Session, account_id: int) -> Account:
    account = get_account(db, account_id)
    account.status = AccountStatus.INACTIVE
    db.flush()
    logger.info("Deactivated account %s", account.code)
    return account


def activate_account(db: Session, account_id: int) -> Account:
    account = get_account(db, account_id)
    account.status = AccountStatus.ACTIVE
    db.flush()
    return account


def delete_account(db: Session, account_id: int) -> None:
    account = get_account(db, account_id)
    if account_has_children(db, account_id):
        raise AccountConstraintError("Cannot delete an account with child accounts; deactivate it instead.")
    if account_has_lines(db, account_id):
        raise AccountConstraintError("Cannot delete an account with journal lines; deactivate it instead.")
    db.delete(account)
    db.flush()
    logger.info("Deleted account %s", account.code)


def count_accounts(db: Session) -> int:
    return db.query(func.count(Account.id)).scalar() or 0
