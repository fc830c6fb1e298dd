"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

RECORD_TABLES = ("captured_records", "pooled_records", "confirmed_records")


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


def upgrade() -> None:
    # Create customers table
    op.create_table(
        "customers",
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("national_id", sa.String(20), nullable=True),
        sa.Column("tax_id", sa.String(20), nullable=True),
        sa.Column("owner_type", sa.String(20), nullable=True),
        sa.Column("first_name", sa.String(150), nullable=True),
        sa.Column("last_name", sa.String(30), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("birth_date", sa.Date, nullable=True),
        sa.Column("birthplace", sa.String(100), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("customer_id", name="pk_customers"),
        sa.UniqueConstraint(
            "tenant_id", "national_id", name="uq_customers_tenant_id_national_id"
        ),
        sa.UniqueConstraint("tenant_id", "tax_id", name="uq_customers_tenant_id_tax_id"),
    )
    op.create_index(
        "idx_customer_tenant_last_name", "customers", ["tenant_id", "last_name"]
    )
    op.create_index(
        "idx_customer_tenant_first_name", "customers", ["tenant_id", "first_name"]
    )

    # Create record store tables (same matchable shape)
    for table in RECORD_TABLES:
        extra_columns = []
        if table == "pooled_records":
            extra_columns.append(
                sa.Column(
                    "contracting_party_id",
                    postgresql.UUID(as_uuid=True),
                    sa.ForeignKey(
                        "customers.customer_id",
                        name=f"fk_{table}_contracting_party_id_customers",
                    ),
                    nullable=True,
                )
            )

        op.create_table(
            table,
            sa.Column("record_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column(
                "customer_id",
                postgresql.UUID(as_uuid=True),
                sa.ForeignKey("customers.customer_id", name=f"fk_{table}_customer_id_customers"),
                nullable=True,
            ),
            sa.Column("national_id", sa.String(20), nullable=True),
            sa.Column("tax_id", sa.String(20), nullable=True),
            sa.Column("insured_name", sa.String(200), nullable=True),
            sa.Column("plate", sa.String(20), nullable=True),
            sa.Column("start_date", sa.Date, nullable=True),
            *extra_columns,
            *_timestamps(),
            sa.PrimaryKeyConstraint("record_id", name=f"pk_{table}"),
        )
        for column in ("tenant_id", "customer_id", "national_id", "tax_id"):
            op.create_index(f"ix_{table}_{column}", table, [column])

    op.create_index(
        "ix_pooled_records_contracting_party_id", "pooled_records", ["contracting_party_id"]
    )
    op.create_index(
        "idx_confirmed_tenant_plate", "confirmed_records", ["tenant_id", "plate"]
    )

    # Create audit_events table
    op.create_table(
        "audit_events",
        sa.Column("audit_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("correlation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("event_data", postgresql.JSONB, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("audit_id", name="pk_audit_events"),
    )
    op.create_index("idx_audit_tenant", "audit_events", ["tenant_id"])
    op.create_index("idx_audit_correlation", "audit_events", ["correlation_id"])
    op.create_index("idx_audit_event_type", "audit_events", ["event_type"])
    op.create_index("idx_audit_customer", "audit_events", ["customer_id"])
    op.create_index("idx_audit_created", "audit_events", ["created_at"])
    op.create_index("idx_audit_resource", "audit_events", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    for table in reversed(RECORD_TABLES):
        op.drop_table(table)
    op.drop_table("customers")
