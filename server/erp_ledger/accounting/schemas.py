from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal

from erp_ledger.models import EntryStatus, EntryType


MoneyInput = condecimal(ge=Decimal("0"), max_digits=14, decimal_places=2)
EntrySortField = Literal["entry_no", "entry_date", "entry_type", "total_debit"]
SortOrder = Literal["asc", "desc"]


class JournalLineCreate(BaseModel):
    account_id: int
    debit: MoneyInput = Decimal("0.00")
    credit: MoneyInput = Decimal("0.00")
    description: Optional[str] = Field(None, max_length=255)


class JournalEntryCreate(BaseModel):
    entry_date: date
    entry_type: EntryType = EntryType.MANUAL
    description: str = Field(..., min_length=3, max_length=500)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_no: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    lines: list[JournalLineCreate] = Field(..., max_length=100)


class JournalEntryUpdate(BaseModel):
    entry_date: Optional[date] = None
    entry_type: Optional[EntryType] = None
    description: Optional[str] = Field(None, min_length=3, max_length=500)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_no: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)
    lines: Optional[list[JournalLineCreate]] = Field(None, max_length=100)


class JournalEntryReverse(BaseModel):
    reversal_date: Optional[date] = None


class JournalLineResponse(BaseModel):
    id: int
    account_id: int
    account_code: Optional[str] = None
    account_name: Optional[str] = None
    debit: Decimal
    credit: Decimal
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class JournalEntryResponse(BaseModel):
    id: int
    entry_no: str
    entry_date: date
    entry_type: EntryType
    description: str
    reference_type: Optional[str] = None
    reference_no: Optional[str] = None
    notes: Optional[str] = None
    total_debit: Decimal
    total_credit: Decimal
    posted: bool
    status: EntryStatus
    is_reversal: bool
    posted_by_id: Optional[int] = None
    posted_at: Optional[datetime] = None
    created_by_id: int
    created_at: datetime
    reversed_entry_id: Optional[int] = None
    reversal_entry_id: Optional[int] = None
    lines: list[JournalLineResponse]

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class JournalEntryListResponse(BaseModel):
    data: list[JournalEntryResponse]
    pagination: Pagination


class JournalEntryValidationResponse(BaseModel):
    entry_id: int
    entry_no: str
    valid: bool
    errors: list[str]
    warnings: list[str]
    total_debit: Decimal
    total_credit: Decimal
