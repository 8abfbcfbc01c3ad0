from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erp_ledger.auth import get_current_user
from erp_ledger.chart_of_accounts import schemas, service
from erp_ledger.db import get_db
from erp_ledger.models import Account, AccountStatus, AccountType
from erp_ledger.routers.common import commit

router = APIRouter(prefix="/api/accounts", tags=["chart-of-accounts"], dependencies=[Depends(get_current_user)])


def _serialize_account(account: Account) -> schemas.AccountResponse:
    return schemas.AccountResponse.model_validate(account)


@router.get("", response_model=schemas.AccountListResponse)
def list_accounts(
    account_type: Optional[AccountType] = None,
    is_header: Optional[bool] = None,
    status: Optional[AccountStatus] = None,
    parent_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    offset: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    accounts, total = service.list_accounts(
        db,
        account_type=account_type,
        is_header=is_header,
        status=status,
        parent_id=parent_id,
        search=search,
        offset=offset,
        limit=limit,
    )
    return {
        "data": [_serialize_account(account) for account in accounts],
        "total": total,
        "offset": offset,
        "limit": limit,
    }


@router.post("", response_model=schemas.AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(payload: schemas.AccountCreate, db: Session = Depends(get_db)):
    account = service.create_account(db, **payload.model_dump())
    commit(db)
    db.refresh(account)
    return _serialize_account(account)


@router.get("/tree", response_model=List[schemas.AccountTreeNode])
def get_account_tree(
    account_type: Optional[AccountType] = None,
    active_only: bool = True,
    db: Session = Depends(get_db),
):
    return service.build_account_tree(db, account_type=account_type, active_only=active_only)


@router.get("/by-type/{account_type}", response_model=List[schemas.AccountResponse])
def list_accounts_by_type(account_type: AccountType, active_only: bool = True, db: Session = Depends(get_db)):
    accounts = service.list_accounts_by_type(db, account_type, active_only=active_only)
    return [_serialize_account(account) for account in accounts]


@router.get("/{account_id}", response_model=schemas.AccountResponse)
def get_account(account_id: int, db: Session = Depends(get_db)):
    return _serialize_account(service.get_account(db, account_id))


@router.get("/{account_id}/path", response_model=List[schemas.AccountPathItem])
def get_account_path(account_id: int, db: Session = Depends(get_db)):
    return service.get_hierarchy_path(db, account_id)


@router.patch("/{account_id}", response_model=schemas.AccountResponse)
def update_account(account_id: int, payload: schemas.AccountUpdate, db: Session = Depends(get_db)):
    account = service.update_account(db, account_id, payload.model_dump(exclude_unset=True))
    commit(db)
    db.refresh(account)
    return _serialize_account(account)


@router.post("/{account_id}/deactivate", response_model=schemas.AccountResponse)
def deactivate_account(account_id: int, db: Session = Depends(get_db)):
    account = service.deactivate_account(db, account_id)
    commit(db)
    db.refresh(account)
    return _serialize_account(account)


@router.post("/{account_id}/activate", response_model=schemas.AccountResponse)
def activate_account(account_id: int, db: Session = Depends(get_db)):
    account = service.activate_account(db, account_id)
    commit(db)
    db.refresh(account)
    return _serialize_account(account)


@router.delete("/{account_id}", response_model=dict)
def delete_account(account_id: int, db: Session = Depends(get_db)):
    service.delete_account(db, account_id)
    commit(db)
    return {"status": "ok"}
