from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from erp_ledger.accounting import schemas
from erp_ledger.accounting.posting import post_journal_entry
from erp_ledger.accounting.reversal import reverse_journal_entry
from erp_ledger.accounting.service import (
    create_journal_entry,
    delete_journal_entry,
    get_journal_entry,
    list_journal_entries,
    update_journal_entry,
    validate_journal_entry,
)
from erp_ledger.auth import get_current_user
from erp_ledger.db import get_db
from erp_ledger.models import Account, EntryType, JournalEntry, User
from erp_ledger.routers.common import commit, pagination

router = APIRouter(prefix="/api/journal-entries", tags=["journal-entries"])


def _account_lookup(db: Session, entries: list[JournalEntry]) -> dict[int, Account]:
    account_ids = {line.account_id for entry in entries for line in entry.lines}
    if not account_ids:
        return {}
    return {account.id: account for account in db.query(Account).filter(Account.id.in_(account_ids)).all()}


def _to_response(entry: JournalEntry, accounts: dict[int, Account]) -> schemas.JournalEntryResponse:
    lines = []
    for line in entry.lines:
        account = accounts.get(line.account_id)
        lines.append(
            schemas.JournalLineResponse(
                id=line.id,
                account_id=line.account_id,
                account_code=account.code if account else None,
                account_name=account.name if account else None,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
            )
        )
    return schemas.JournalEntryResponse(
        id=entry.id,
        entry_no=entry.entry_no,
        entry_date=entry.entry_date,
        entry_type=entry.entry_type,
        description=entry.description,
        reference_type=entry.reference_type,
        reference_no=entry.reference_no,
        notes=entry.notes,
        total_debit=entry.total_debit,
        total_credit=entry.total_credit,
        posted=entry.posted,
        status=entry.status,
        is_reversal=entry.is_reversal,
        posted_by_id=entry.posted_by_id,
        posted_at=entry.posted_at,
        created_by_id=entry.created_by_id,
        created_at=entry.created_at,
        reversed_entry_id=entry.reversed_entry_id,
        reversal_entry_id=entry.reversal_entry_id,
        lines=lines,
    )


def _respond(db: Session, entry: JournalEntry) -> schemas.JournalEntryResponse:
    return _to_response(entry, _account_lookup(db, [entry]))


@router.get("", response_model=schemas.JournalEntryListResponse)
def list_journal_entries_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    entry_type: Optional[EntryType] = None,
    posted: Optional[bool] = None,
    account_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    sort_by: schemas.EntrySortField = "entry_date",
    order: schemas.SortOrder = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entries, total = list_journal_entries(
        db,
        start_date=start_date,
        end_date=end_date,
        entry_type=entry_type,
        posted=posted,
        account_id=account_id,
        search=search,
        sort_by=sort_by,
        order=order,
        offset=(page - 1) * limit,
        limit=limit,
    )
    accounts = _account_lookup(db, entries)
    return {
        "data": [_to_response(entry, accounts) for entry in entries],
        "pagination": pagination(page, limit, total),
    }


@router.post("", response_model=schemas.JournalEntryResponse, status_code=status.HTTP_201_CREATED)
def create_journal_entry_endpoint(
    payload: schemas.JournalEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    entry = create_journal_entry(
        db,
        entry_date=payload.entry_date,
        entry_type=payload.entry_type,
        description=payload.description,
        reference_type=payload.reference_type,
        reference_no=payload.reference_no,
        notes=payload.notes,
        lines=[line.model_dump() for line in payload.lines],
        created_by=current_user.id,
    )
    commit(db)
    return _respond(db, get_journal_entry(db, entry.id))


@router.get("/{entry_id}", response_model=schemas.JournalEntryResponse)
def get_journal_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _respond(db, get_journal_entry(db, entry_id))


@router.put("/{entry_id}", response_model=schemas.JournalEntryResponse)
def update_journal_entry_endpoint(
    entry_id: int,
    payload: schemas.JournalEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    update_journal_entry(db, entry_id, payload.model_dump(exclude_unset=True))
    commit(db)
    return _respond(db, get_journal_entry(db, entry_id))


@router.delete("/{entry_id}", response_model=dict)
def delete_journal_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    delete_journal_entry(db, entry_id)
    commit(db)
    return {"status": "ok"}


@router.get("/{entry_id}/validate", response_model=schemas.JournalEntryValidationResponse)
def validate_journal_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return validate_journal_entry(db, entry_id)


@router.post("/{entry_id}/post", response_model=schemas.JournalEntryResponse)
def post_journal_entry_endpoint(
    entry_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post_journal_entry(db, entry_id, posted_by=current_user.id)
    commit(db)
    return _respond(db, get_journal_entry(db, entry_id))


@router.post("/{entry_id}/reverse", response_model=schemas.JournalEntryResponse, status_code=status.HTTP_201_CREATED)
def reverse_journal_entry_endpoint(
    entry_id: int,
    payload: Optional[schemas.JournalEntryReverse] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    reversal = reverse_journal_entry(
        db,
        entry_id,
        created_by=current_user.id,
        reversal_date=payload.reversal_date if payload else None,
    )
    commit(db)
    return _respond(db, get_journal_entry(db, reversal.id))
