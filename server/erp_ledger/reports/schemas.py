from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from erp_ledger.models import AccountType, EntryType, NormalBalance


class LedgerAccount(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance


class LedgerLine(BaseModel):
    entry_id: int
    entry_no: str
    entry_date: date
    entry_type: EntryType
    description: Optional[str] = None
    reference_no: Optional[str] = None
    debit: Decimal
    credit: Decimal
    balance: Decimal


class AccountLedgerResponse(BaseModel):
    account: LedgerAccount
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    opening_balance: Decimal
    lines: list[LedgerLine]
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal


class LedgerSummaryRow(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    opening_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal
    net_movement: Decimal
    closing_balance: Decimal
    transaction_count: int


class LedgerSummaryTotals(BaseModel):
    total_debits: Decimal
    total_credits: Decimal
    account_count: int


class LedgerSummaryResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    accounts: list[LedgerSummaryRow]
    totals: LedgerSummaryTotals


class TrialBalanceRow(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    balance: Decimal
    debit: Decimal
    credit: Decimal
    is_abnormal: bool


class TrialBalanceResponse(BaseModel):
    as_of_date: Optional[date] = None
    accounts: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool


class TrialBalanceGroup(BaseModel):
    account_type: AccountType
    accounts: list[TrialBalanceRow]
    subtotal_debit: Decimal
    subtotal_credit: Decimal


class GroupedTrialBalanceResponse(BaseModel):
    as_of_date: Optional[date] = None
    groups: list[TrialBalanceGroup]
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool


class TrialBalanceTotals(BaseModel):
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal


class TrialBalanceValidationResponse(BaseModel):
    as_of_date: Optional[date] = None
    is_valid: bool
    is_balanced: bool
    errors: list[str]
    warnings: list[str]
    totals: TrialBalanceTotals


class StatementRow(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    is_header: bool
    parent_id: Optional[int] = None
    indent_level: int
    balance: Decimal
    total_balance: Decimal


class ProfitLossResponse(BaseModel):
    start_date: date
    end_date: date
    revenue: list[StatementRow]
    expenses: list[StatementRow]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    is_profitable: bool


class Change(BaseModel):
    amount: Decimal
    percent: Optional[Decimal] = None


class ComparativeProfitLossResponse(BaseModel):
    current: ProfitLossResponse
    previous: ProfitLossResponse
    changes: dict[str, Change]


class BalanceSheetResponse(BaseModel):
    as_of_date: Optional[date] = None
    assets: list[StatementRow]
    liabilities: list[StatementRow]
    equity: list[StatementRow]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    current_earnings: Decimal
    total_liabilities_and_equity: Decimal
    difference: Decimal
    is_balanced: bool


class ComparativeBalanceSheetResponse(BaseModel):
    current: BalanceSheetResponse
    previous: BalanceSheetResponse
    changes: dict[str, Change]


class FinancialRatiosResponse(BaseModel):
    as_of_date: Optional[date] = None
    current_ratio: Decimal
    debt_to_equity: Decimal
    equity_ratio: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
