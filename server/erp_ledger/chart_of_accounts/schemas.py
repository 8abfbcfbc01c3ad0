from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, condecimal

from erp_ledger.models import AccountStatus, AccountType, NormalBalance


MoneyInput = condecimal(max_digits=14, decimal_places=2)


class AccountCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=3, max_length=100)
    account_type: AccountType
    normal_balance: Optional[NormalBalance] = None
    parent_id: Optional[int] = None
    is_header: bool = False
    opening_balance: MoneyInput = Decimal("0.00")
    description: Optional[str] = Field(None, max_length=500)


class AccountUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=10)
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    account_type: Optional[AccountType] = None
    normal_balance: Optional[NormalBalance] = None
    parent_id: Optional[int] = None
    is_header: Optional[bool] = None
    opening_balance: Optional[MoneyInput] = None
    description: Optional[str] = Field(None, max_length=500)


class AccountParentSummary(BaseModel):
    id: int
    code: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: Optional[int] = None
    parent: Optional[AccountParentSummary] = None
    level: int
    is_header: bool
    status: AccountStatus
    opening_balance: Decimal
    current_balance: Decimal
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountListResponse(BaseModel):
    data: list[AccountResponse]
    total: int
    offset: int
    limit: int


class AccountTreeNode(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_header: bool
    status: AccountStatus
    level: int
    parent_id: Optional[int] = None
    current_balance: Decimal
    children: list[AccountTreeNode] = Field(default_factory=list)


class AccountPathItem(BaseModel):
    id: int
    code: str
    name: str
