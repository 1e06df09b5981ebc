"""initial: system feature flags and bookings

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "system_feature_flags",
        sa.Column("flag", sa.String(length=64), primary_key=True),
        sa.Column("is_enabled", sa.Boolean(), nullable=True),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.bulk_insert(
        sa.table(
            "system_feature_flags",
            sa.column("flag", sa.String()),
            sa.column("is_enabled", sa.Boolean()),
        ),
        [
            {"flag": "enableCrmLive", "is_enabled": False},
            {"flag": "enableInvoicingLive", "is_enabled": False},
            {"flag": "enableAlerting", "is_enabled": False},
            {"flag": "enableAiCopilot", "is_enabled": False},
            {"flag": "enableTelemetryPipelines", "is_enabled": False},
        ],
    )

    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_code", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("crm_status_id", sa.String(length=32), nullable=True),
        sa.Column("crm_lead_id", sa.String(length=64), nullable=True),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("vehicle_name", sa.String(length=255), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("external_code", name="uq_bookings_external_code"),
    )
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_crm_status_id", "bookings", ["crm_status_id"])


def downgrade() -> None:
    op.drop_index("ix_bookings_crm_status_id", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("system_feature_flags")
