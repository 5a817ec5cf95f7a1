"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "counters",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("value", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "labs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=20), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_labs_code", "labs", ["code"], unique=True)

    op.create_table(
        "custom_roles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lab_id", "name", name="uq_custom_roles_lab_name"),
    )
    op.create_index("ix_custom_roles_lab_id", "custom_roles", ["lab_id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("system_role", sa.String(length=20), nullable=True),
        sa.Column("custom_role_id", sa.Integer(), nullable=True),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["custom_role_id"], ["custom_roles.id"]),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_lab_id", "users", ["lab_id"], unique=False)

    op.create_table(
        "user_sessions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_sessions_user_id", "user_sessions", ["user_id"], unique=False)
    op.create_index("ix_user_sessions_expires_at", "user_sessions", ["expires_at"], unique=False)

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("patient_id", sa.String(length=30), nullable=False),
        sa.Column("registration_year", sa.Integer(), nullable=False),
        sa.Column("registration_number", sa.Integer(), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("gender", sa.String(length=10), nullable=False),
        sa.Column("age_value", sa.Integer(), nullable=False),
        sa.Column("age_unit", sa.String(length=10), nullable=False),
        sa.Column("address", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("registration_year", "patient_id", name="uq_patients_year_patient_id"),
    )
    op.create_index("ix_patients_lab_id", "patients", ["lab_id"], unique=False)
    op.create_index("ix_patients_patient_id", "patients", ["patient_id"], unique=False)
    op.create_index("ix_patients_registration_number", "patients", ["registration_number"], unique=False)
    op.create_index("ix_patients_phone", "patients", ["phone"], unique=False)

    op.create_table(
        "test_definitions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        _money("price"),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_test_definitions_lab_id", "test_definitions", ["lab_id"], unique=False)
    op.create_index("ix_test_definitions_name", "test_definitions", ["name"], unique=False)
    op.create_index("ix_test_definitions_category", "test_definitions", ["category"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("receipt_number", sa.Integer(), nullable=False),
        sa.Column("receipt_year", sa.Integer(), nullable=False),
        sa.Column("db_crn", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=30), nullable=False),
        sa.Column("booking_id", sa.String(length=30), nullable=False),
        sa.Column("patient_code", sa.String(length=30), nullable=False),
        sa.Column("patient_snapshot", sa.JSON(), nullable=False),
        sa.Column("mode", sa.String(length=30), nullable=True),
        sa.Column("doctor_ref_no", sa.String(length=50), nullable=True),
        sa.Column("doctor", sa.JSON(), nullable=True),
        sa.Column("department", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        _money("gross_amount"),
        _money("total_discount"),
        _money("total_amount"),
        _money("paid_amount"),
        _money("due_amount"),
        sa.Column("payment_status", sa.String(length=20), nullable=False),
        sa.Column("payment_method", sa.String(length=30), nullable=True),
        sa.Column("is_printed", sa.Boolean(), nullable=False),
        sa.Column("printed_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("receipt_year", "receipt_number", name="uq_invoices_receipt"),
        sa.UniqueConstraint("db_crn"),
        sa.UniqueConstraint("invoice_number"),
        sa.UniqueConstraint("booking_id"),
    )
    op.create_index("ix_invoices_lab_id", "invoices", ["lab_id"], unique=False)
    op.create_index("ix_invoices_receipt_number", "invoices", ["receipt_number"], unique=False)
    op.create_index("ix_invoices_patient_code", "invoices", ["patient_code"], unique=False)
    op.create_index("ix_invoices_created_at", "invoices", ["created_at"], unique=False)

    op.create_table(
        "invoice_lines",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("test_id", sa.Integer(), nullable=True),
        sa.Column("test_name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        _money("price"),
        sa.Column("quantity", sa.Integer(), nullable=False),
        _money("discount"),
        _money("net_amount"),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["test_id"], ["test_definitions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoice_lines_invoice_id", "invoice_lines", ["invoice_id"], unique=False)

    op.create_table(
        "invoice_payments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        _money("amount"),
        sa.Column("method", sa.String(length=30), nullable=False),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("received_by", sa.String(length=255), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoice_payments_invoice_id", "invoice_payments", ["invoice_id"], unique=False)

    op.create_table(
        "invoice_adjustments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        _money("delta"),
        sa.Column("action", sa.String(length=10), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoice_adjustments_invoice_id", "invoice_adjustments", ["invoice_id"], unique=False)

    op.create_table(
        "invoice_edits",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("edited_at", sa.DateTime(), nullable=False),
        sa.Column("edited_by", sa.String(length=255), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_invoice_edits_invoice_id", "invoice_edits", ["invoice_id"], unique=False)

    op.create_table(
        "pathology_registrations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("receipt_number", sa.Integer(), nullable=False),
        sa.Column("edit_allowed", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"]),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_id"),
    )
    op.create_index("ix_pathology_registrations_lab_id", "pathology_registrations", ["lab_id"], unique=False)
    op.create_index(
        "ix_pathology_registrations_receipt_number", "pathology_registrations", ["receipt_number"], unique=False
    )

    op.create_table(
        "pathology_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("invoice_id", sa.String(length=36), nullable=False),
        sa.Column("receipt_number", sa.Integer(), nullable=False),
        sa.Column("generated_by", sa.String(length=255), nullable=True),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"]),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_id"),
    )
    op.create_index("ix_pathology_reports_lab_id", "pathology_reports", ["lab_id"], unique=False)
    op.create_index("ix_pathology_reports_receipt_number", "pathology_reports", ["receipt_number"], unique=False)

    op.create_table(
        "deleted_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lab_id", sa.Integer(), nullable=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("original_id", sa.String(length=36), nullable=False),
        sa.Column("receipt_number", sa.Integer(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
        sa.Column("deleted_at", sa.DateTime(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["lab_id"], ["labs.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_deleted_records_lab_id", "deleted_records", ["lab_id"], unique=False)
    op.create_index("ix_deleted_records_original_id", "deleted_records", ["original_id"], unique=False)


def downgrade() -> None:
    for table in (
        "deleted_records",
        "pathology_reports",
        "pathology_registrations",
        "invoice_edits",
        "invoice_adjustments",
        "invoice_payments",
        "invoice_lines",
        "invoices",
        "test_definitions",
        "patients",
        "user_sessions",
        "users",
        "custom_roles",
        "labs",
        "counters",
    ):
        op.drop_table(table)
