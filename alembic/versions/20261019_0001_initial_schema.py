"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = postgresql.ENUM("admin", "manager", "staff", name="user_role", create_type=False)
work_type = postgresql.ENUM("hourly", "job", name="work_type", create_type=False)
payment_type = postgresql.ENUM("full", "partial", "balance", name="payment_type", create_type=False)
job_status = postgresql.ENUM("in_progress", "completed", name="job_status", create_type=False)
job_type = postgresql.ENUM("shooting", "upgrade", "product", name="job_type", create_type=False)
bill_status = postgresql.ENUM("pending", "paid", name="bill_status", create_type=False)


def upgrade() -> None:
    user_role.create(op.get_bind(), checkfirst=True)
    work_type.create(op.get_bind(), checkfirst=True)
    payment_type.create(op.get_bind(), checkfirst=True)
    job_status.create(op.get_bind(), checkfirst=True)
    job_type.create(op.get_bind(), checkfirst=True)
    bill_status.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="staff"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "timesheet_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("work_type", work_type, nullable=False),
        sa.Column("job_description", sa.String(length=2000), nullable=False),
        sa.Column("hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("job_count", sa.Integer(), nullable=True),
        sa.Column("job_rate", sa.Numeric(12, 2), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=True),
        sa.Column("end_time", sa.Time(), nullable=True),
        sa.Column("total_salary", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_salary >= 0", name="ck_timesheet_entries_total_salary_non_negative"),
    )
    op.create_index("ix_timesheet_entries_user_date", "timesheet_entries", ["user_id", "date"])

    op.create_table(
        "expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("receipt_path", sa.String(length=512), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_user_date", "expenses", ["user_id", "date"])

    op.create_table(
        "company_income",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("brand", sa.String(length=255), nullable=False),
        sa.Column("client", sa.String(length=255), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_type", payment_type, nullable=False, server_default="full"),
        sa.Column("payment_method", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("job_status", job_status, nullable=False, server_default="completed"),
        sa.Column("job_completion_date", sa.Date(), nullable=True),
        sa.Column("job_type", job_type, nullable=True),
        sa.Column("payment_slip_path", sa.String(length=512), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_company_income_amount_positive"),
    )
    op.create_index("ix_company_income_date", "company_income", ["date"])
    op.create_index("ix_company_income_brand", "company_income", ["brand"])

    op.create_table(
        "studio_expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("merchant", sa.String(length=255), nullable=False),
        sa.Column("details", sa.String(length=2000), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("method", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_studio_expenses_amount_positive"),
    )
    op.create_index("ix_studio_expenses_date", "studio_expenses", ["date"])

    op.create_table(
        "personal_expenses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("merchant", sa.String(length=255), nullable=False),
        sa.Column("details", sa.String(length=2000), nullable=True),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("method", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("paid_by", sa.String(length=255), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_personal_expenses_amount_positive"),
    )
    op.create_index("ix_personal_expenses_date", "personal_expenses", ["date"])

    op.create_table(
        "vendors",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "vendor_bills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("vendors.id"), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(length=2000), nullable=True),
        sa.Column("method", sa.String(length=64), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", bill_status, nullable=False, server_default="pending"),
        sa.Column("invoice_path", sa.String(length=512), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False),
        sa.Column("paid_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_vendor_bills_amount_positive"),
    )
    op.create_index("ix_vendor_bills_due_date", "vendor_bills", ["due_date"])
    op.create_index("ix_vendor_bills_vendor_id", "vendor_bills", ["vendor_id"])


def downgrade() -> None:
    op.drop_index("ix_vendor_bills_vendor_id", table_name="vendor_bills")
    op.drop_index("ix_vendor_bills_due_date", table_name="vendor_bills")
    op.drop_table("vendor_bills")
    op.drop_table("vendors")

    op.drop_index("ix_personal_expenses_date", table_name="personal_expenses")
    op.drop_table("personal_expenses")

    op.drop_index("ix_studio_expenses_date", table_name="studio_expenses")
    op.drop_table("studio_expenses")

    op.drop_index("ix_company_income_brand", table_name="company_income")
    op.drop_index("ix_company_income_date", table_name="company_income")
    op.drop_table("company_income")

    op.drop_index("ix_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")

    op.drop_index("ix_timesheet_entries_user_date", table_name="timesheet_entries")
    op.drop_table("timesheet_entries")

    op.drop_table("profiles")

    bill_status.drop(op.get_bind(), checkfirst=True)
    job_type.drop(op.get_bind(), checkfirst=True)
    job_status.drop(op.get_bind(), checkfirst=True)
    payment_type.drop(op.get_bind(), checkfirst=True)
    work_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
