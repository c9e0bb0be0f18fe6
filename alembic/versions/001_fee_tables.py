"""Fee structures, fee records, payments and supporting tables

Revision ID: 001_fee_tables
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_fee_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(15, 2), nullable=nullable, server_default="0.00")


def upgrade() -> None:
    # Users table (role and student link only; credentials live elsewhere)
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("student_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_student_id", "users", ["student_id"], unique=False)

    # Document sequences table
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("prefix", sa.String(20), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id", name="pk_document_sequences"),
        sa.UniqueConstraint("prefix", "year", name="uq_document_sequence_prefix_year"),
    )

    # Audit logs table
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_identifier", sa.String(200), nullable=True),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Classes and students
    op.create_table(
        "school_classes",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("section", sa.String(20), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_school_classes"),
    )

    op.create_table(
        "students",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("admission_number", sa.String(50), nullable=False),
        sa.Column("roll_number", sa.String(20), nullable=True),
        sa.Column("class_id", sa.BigInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("parent_user_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_students"),
        sa.ForeignKeyConstraint(
            ["class_id"], ["school_classes.id"], name="fk_students_class_id_school_classes"
        ),
        sa.ForeignKeyConstraint(
            ["parent_user_id"], ["users.id"], name="fk_students_parent_user_id_users"
        ),
    )
    op.create_index("ix_students_admission_number", "students", ["admission_number"], unique=True)
    op.create_index("ix_students_class_id", "students", ["class_id"])
    op.create_index("ix_students_parent_user_id", "students", ["parent_user_id"])

    # Fee structures
    op.create_table(
        "fee_structures",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("fee_type", sa.String(20), nullable=False),
        sa.Column("class_id", sa.BigInteger(), nullable=False),
        sa.Column("academic_year", sa.String(20), nullable=False),
        _money("amount"),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False, server_default="one-time"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_fee_structures"),
        sa.ForeignKeyConstraint(
            ["class_id"], ["school_classes.id"], name="fk_fee_structures_class_id_school_classes"
        ),
    )
    op.create_index("ix_fee_structures_fee_type", "fee_structures", ["fee_type"])
    op.create_index("ix_fee_structures_class_id", "fee_structures", ["class_id"])
    op.create_index("ix_fee_structures_academic_year", "fee_structures", ["academic_year"])

    # Fee records
    op.create_table(
        "fee_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("structure_id", sa.BigInteger(), nullable=True),
        sa.Column("fee_type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("academic_year", sa.String(20), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        _money("amount"),
        _money("discount"),
        _money("fine"),
        _money("total_amount"),
        _money("amount_paid"),
        _money("balance_due"),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="unpaid"),
        sa.Column("receipt_number", sa.String(50), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_fee_records"),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_fee_records_student_id_students"
        ),
        sa.ForeignKeyConstraint(
            ["structure_id"],
            ["fee_structures.id"],
            name="fk_fee_records_structure_id_fee_structures",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_fee_records_student_id", "fee_records", ["student_id"])
    op.create_index("ix_fee_records_structure_id", "fee_records", ["structure_id"])
    op.create_index("ix_fee_records_fee_type", "fee_records", ["fee_type"])
    op.create_index("ix_fee_records_academic_year", "fee_records", ["academic_year"])
    op.create_index("ix_fee_records_due_date", "fee_records", ["due_date"])
    op.create_index("ix_fee_records_payment_status", "fee_records", ["payment_status"])

    # Payments
    op.create_table(
        "fee_payments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("fee_record_id", sa.BigInteger(), nullable=False),
        sa.Column("student_id", sa.BigInteger(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("paid_by", sa.String(20), nullable=False, server_default="admin"),
        sa.Column("transaction_ref", sa.String(100), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="success"),
        sa.Column("receipt_number", sa.String(50), nullable=False),
        sa.Column("recorded_by_id", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_fee_payments"),
        sa.ForeignKeyConstraint(
            ["fee_record_id"], ["fee_records.id"], name="fk_fee_payments_fee_record_id_fee_records"
        ),
        sa.ForeignKeyConstraint(
            ["student_id"], ["students.id"], name="fk_fee_payments_student_id_students"
        ),
        sa.ForeignKeyConstraint(
            ["recorded_by_id"], ["users.id"], name="fk_fee_payments_recorded_by_id_users"
        ),
    )
    op.create_index("ix_fee_payments_fee_record_id", "fee_payments", ["fee_record_id"])
    op.create_index("ix_fee_payments_student_id", "fee_payments", ["student_id"])
    op.create_index("ix_fee_payments_payment_method", "fee_payments", ["payment_method"])
    op.create_index("ix_fee_payments_status", "fee_payments", ["status"])
    op.create_index(
        "ix_fee_payments_receipt_number", "fee_payments", ["receipt_number"], unique=True
    )


def downgrade() -> None:
    op.drop_table("fee_payments")
    op.drop_table("fee_records")
    op.drop_table("fee_structures")
    op.drop_table("students")
    op.drop_table("school_classes")
    op.drop_table("audit_logs")
    op.drop_table("document_sequences")
    op.drop_table("users")
