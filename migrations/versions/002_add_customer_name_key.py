"""Add folded name key to customers

Revision ID: 002
Revises: 001
Create Date: 2026-10-20

Name search compares Turkish-folded, upper-cased names. SQL lower() does not
fold İ/ı/Ş/Ğ, so the folded form is stored and indexed. Existing rows are
backfilled with the same folding the application applies on write.
"""

from alembic import op
import sqlalchemy as sa

from brokerdesk.utils.text import normalize_name

# revision identifiers
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None

customers = sa.table(
    "customers",
    sa.column("customer_id"),
    sa.column("first_name", sa.String),
    sa.column("last_name", sa.String),
    sa.column("name_key", sa.String),
)


def upgrade() -> None:
    op.add_column("customers", sa.Column("name_key", sa.String(181), nullable=True))

    # Backfill existing customers
    connection = op.get_bind()
    rows = connection.execute(
        sa.select(customers.c.customer_id, customers.c.first_name, customers.c.last_name)
    ).all()
    for customer_id, first_name, last_name in rows:
        full_name = " ".join(part for part in (first_name, last_name) if part)
        connection.execute(
            customers.update()
            .where(customers.c.customer_id == customer_id)
            .values(name_key=normalize_name(full_name) or None)
        )

    op.create_index(
        "idx_customer_tenant_name_key", "customers", ["tenant_id", "name_key"]
    )


def downgrade() -> None:
    op.drop_index("idx_customer_tenant_name_key", table_name="customers")
    op.drop_column("customers", "name_key")
