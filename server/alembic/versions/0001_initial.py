"""initial ledger schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=200)),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=10), nullable=False, unique=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column(
            "account_type",
            _enum("account_type", "Asset", "Liability", "Equity", "Revenue", "Expense"),
            nullable=False,
        ),
        sa.Column("normal_balance", _enum("normal_balance", "Debit", "Credit"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("accounts.id")),
        sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_header", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", _enum("account_status", "Active", "Inactive"), nullable=False),
        sa.Column("opening_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("current_balance", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("NOT is_header OR opening_balance = 0", name="ck_account_header_opening_zero"),
    )
    op.create_index("ix_accounts_type_status", "accounts", ["account_type", "status"])
    op.create_index("ix_accounts_parent_id", "accounts", ["parent_id"])

    op.create_table(
        "sequence_counters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("current_value", sa.BigInteger(), nullable=False, server_default="0"),
    )

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("entry_no", sa.String(length=20), nullable=False, unique=True),
        sa.Column("entry_seq", sa.Integer(), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column(
            "entry_type",
            _enum("entry_type", "Sales", "Purchase", "Payment", "Receipt", "Adjustment", "Payroll", "Manual"),
            nullable=False,
        ),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("reference_type", sa.String(length=50)),
        sa.Column("reference_no", sa.String(length=100)),
        sa.Column("notes", sa.Text()),
        sa.Column("total_debit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("total_credit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("posted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("posted_by_id", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("posted_at", sa.DateTime()),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("reversed_entry_id", sa.Integer(), sa.ForeignKey("journal_entries.id")),
        sa.Column("reversal_entry_id", sa.Integer(), sa.ForeignKey("journal_entries.id")),
    )
    op.create_index("ix_journal_entries_date_seq", "journal_entries", ["entry_date", "entry_seq"])
    op.create_index("ix_journal_entries_posted_date", "journal_entries", ["posted", "entry_date"])
    op.create_index(
        "ix_journal_entries_reversed_entry_id", "journal_entries", ["reversed_entry_id"], unique=True
    )

    op.create_table(
        "journal_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "journal_entry_id",
            sa.Integer(),
            sa.ForeignKey("journal_entries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.String(length=255)),
        sa.Column("debit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("credit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.CheckConstraint("debit >= 0 AND credit >= 0", name="ck_journal_line_non_negative"),
    )
    op.create_index("ix_journal_lines_account_id", "journal_lines", ["account_id"])
    op.create_index("ix_journal_lines_entry_id", "journal_lines", ["journal_entry_id"])


def downgrade() -> None:
    op.drop_index("ix_journal_lines_entry_id", table_name="journal_lines")
    op.drop_index("ix_journal_lines_account_id", table_name="journal_lines")
    op.drop_table("journal_lines")
    op.drop_index("ix_journal_entries_reversed_entry_id", table_name="journal_entries")
    op.drop_index("ix_journal_entries_posted_date", table_name="journal_entries")
    op.drop_index("ix_journal_entries_date_seq", table_name="journal_entries")
    op.drop_table("journal_entries")
    op.drop_table("sequence_counters")
    op.drop_index("ix_accounts_parent_id", table_name="accounts")
    op.drop_index("ix_accounts_type_status", table_name="accounts")
    op.drop_table("accounts")
    op.drop_table("users")
