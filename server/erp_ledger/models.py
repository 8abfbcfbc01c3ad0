from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from .db import Base


class AccountType(str, PyEnum):
    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"


class NormalBalance(str, PyEnum):
    DEBIT = "Debit"
    CREDIT = "Credit"


class AccountStatus(str, PyEnum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class EntryType(str, PyEnum):
    SALES = "Sales"
    PURCHASE = "Purchase"
    PAYMENT = "Payment"
    RECEIPT = "Receipt"
    ADJUSTMENT = "Adjustment"
    PAYROLL = "Payroll"
    MANUAL = "Manual"


class EntryStatus(str, PyEnum):
    DRAFT = "Draft"
    POSTED = "Posted"
    REVERSED = "Reversed"


NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    code = Column(String(10), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    account_type = Column(_enum_column(AccountType, "account_type"), nullable=False)
    normal_balance = Column(_enum_column(NormalBalance, "normal_balance"), nullable=False)
    parent_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    level = Column(Integer, nullable=False, default=0)
    is_header = Column(Boolean, nullable=False, default=False)
    status = Column(_enum_column(AccountStatus, "account_status"), nullable=False, default=AccountStatus.ACTIVE)
    opening_balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    current_balance = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    parent = relationship("Account", remote_side=[id])

    __table_args__ = (
        CheckConstraint("NOT is_header OR opening_balance = 0", name="ck_account_header_opening_zero"),
        Index("ix_accounts_type_status", "account_type", "status"),
        Index("ix_accounts_parent_id", "parent_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), nullable=False, unique=True)
    current_value = Column(BigInteger, nullable=False, default=0)


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True)
    entry_no = Column(String(20), nullable=False, unique=True)
    entry_seq = Column(Integer, nullable=False)
    entry_date = Column(Date, nullable=False)
    entry_type = Column(_enum_column(EntryType, "entry_type"), nullable=False)
    description = Column(String(500), nullable=False)
    reference_type = Column(String(50), nullable=True)
    reference_no = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    total_debit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_credit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    posted = Column(Boolean, nullable=False, default=False)
    posted_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    posted_at = Column(DateTime, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    reversed_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)
    reversal_entry_id = Column(Integer, ForeignKey("journal_entries.id"), nullable=True)

    lines = relationship(
        "JournalLine",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.position",
    )

    __table_args__ = (
        Index("ix_journal_entries_date_seq", "entry_date", "entry_seq"),
        Index("ix_journal_entries_posted_date", "posted", "entry_date"),
        Index("ix_journal_entries_reversed_entry_id", "reversed_entry_id", unique=True),
    )

    @property
    def is_reversal(self) -> bool:
        return self.reversed_entry_id is not None

    @property
    def status(self) -> EntryStatus:
        if not self.posted:
            return EntryStatus.DRAFT
        if self.reversal_entry_id is not None:
            return EntryStatus.REVERSED
        return EntryStatus.POSTED

    @property
    def can_edit(self) -> bool:
        return not self.posted


class JournalLine(Base):
    __tablename__ = "journal_lines"

    id = Column(Integer, primary_key=True)
    journal_entry_id = Column(Integer, ForeignKey("journal_entries.id", ondelete="CASCADE"), nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=True)
    debit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    credit = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    journal_entry = relationship("JournalEntry", back_populates="lines")
    account = relationship("Account")

    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_journal_line_non_negative"),
        Index("ix_journal_lines_account_id", "account_id"),
        Index("ix_journal_lines_entry_id", "journal_entry_id"),
    )
