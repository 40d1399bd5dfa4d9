"""Create registration, payment and voucher tables."""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_create_registration_tables"
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column(
        "created_at",
        sa.DateTime(),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(80), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(10), nullable=False,
                  server_default="Staff"),
        sa.Column("is_active", sa.Boolean(), nullable=False,
                  server_default=sa.text("1")),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.CheckConstraint("role IN ('Admin', 'Staff')", name="ck_users_role"),
    )

    op.create_table(
        "student",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("firstname", sa.String(100), nullable=False),
        sa.Column("lastname", sa.String(100), nullable=False),
        sa.Column("dob", sa.Date(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("firstname", "lastname", "dob",
                            name="unique_student_identity"),
    )

    op.create_table(
        "contact",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("firstname", sa.String(100), nullable=False),
        sa.Column("lastname", sa.String(100), nullable=False),
        sa.Column("email", sa.String(512), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("address", sa.String(512), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("state", sa.String(4), nullable=True),
        sa.Column("zip", sa.String(10), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "contact_student",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("contact_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["contact_id"], ["contact.id"]),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contact_id", "student_id",
                            name="unique_contact_student"),
    )

    op.create_table(
        "voucher",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("percentage", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("applies_to", sa.String(20), nullable=True),
        sa.Column("valid_from", sa.DateTime(), nullable=True),
        sa.Column("valid_until", sa.DateTime(), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("times_used", sa.Integer(), nullable=False,
                  server_default="0"),
        sa.Column("active", sa.Boolean(), nullable=False,
                  server_default=sa.text("1")),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(percentage IS NOT NULL AND amount IS NULL) OR "
            "(percentage IS NULL AND amount IS NOT NULL)",
            name="voucher_discount_check",
        ),
    )
    op.create_index("ix_voucher_code", "voucher", ["code"], unique=True)

    op.create_table(
        "payment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.String(50), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("voucher_id", sa.Integer(), nullable=True),
        sa.Column("short_code", sa.String(6), nullable=False),
        sa.Column("refunded_at", sa.DateTime(), nullable=True),
        sa.Column("cheque_number", sa.String(20), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["voucher_id"], ["voucher.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("short_code"),
    )

    op.create_table(
        "registration",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("activity", sa.String(64), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("payment_id", sa.Integer(), nullable=True),
        sa.Column("cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("donation", sa.Numeric(10, 2), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("answer", sa.String(120), nullable=True),
        sa.Column("terms_agreement", sa.Boolean(), nullable=True),
        sa.Column("reserved_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("reminded_at", sa.DateTime(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["student_id"], ["student.id"]),
        sa.ForeignKeyConstraint(["contact_id"], ["contact.id"]),
        sa.ForeignKeyConstraint(["payment_id"], ["payment.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("activity", "student_id",
                            name="unique_registration_activity_student"),
    )
    op.create_index("ix_registration_activity", "registration", ["activity"])
    # Seat counting filters on these together
    op.create_index("ix_registration_activity_hold", "registration",
                    ["activity", "cancelled_at", "payment_id", "reserved_at"])

    op.create_table(
        "activity_lock",
        sa.Column("activity", sa.String(64), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("activity"),
    )


def downgrade():
    op.drop_table("activity_lock")
    op.drop_index("ix_registration_activity_hold", table_name="registration")
    op.drop_index("ix_registration_activity", table_name="registration")
    op.drop_table("registration")
    op.drop_table("payment")
    op.drop_index("ix_voucher_code", table_name="voucher")
    op.drop_table("voucher")
    op.drop_table("contact_student")
    op.drop_table("contact")
    op.drop_table("student")
    op.drop_table("users")
