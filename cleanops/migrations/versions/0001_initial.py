"""Initial cleaning operations schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-28 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM(
    "operator",
    "supervisor",
    "admin",
    name="user_role",
    create_type=False,
)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    user_role.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default=sa.text("'operator'")),
        sa.Column("email", sa.String(length=255), nullable=True),
        _created_at(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        _created_at(),
    )

    op.create_table(
        "objectives",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("address", sa.String(length=512), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_objectives_client_id", "objectives", ["client_id"], unique=False)

    op.create_table(
        "sectors",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("objective_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["objective_id"], ["objectives.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_sectors_objective_id", "sectors", ["objective_id"], unique=False)

    op.create_table(
        "supplies",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(length=32), nullable=True),
        sa.Column("quantity_in_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("min_stock_level", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
    )

    op.create_table(
        "cleaning_records",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("sector_id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=True),
        _created_at("cleaned_at"),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'completed'")),
        sa.ForeignKeyConstraint(["sector_id"], ["sectors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["operator_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_cleaning_records_sector_id", "cleaning_records", ["sector_id"], unique=False)
    op.create_index("ix_cleaning_records_operator_id", "cleaning_records", ["operator_id"], unique=False)
    op.create_index("ix_cleaning_records_cleaned_at", "cleaning_records", ["cleaned_at"], unique=False)

    op.create_table(
        "observations",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("sector_id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=True),
        sa.Column("text", sa.Text(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["sector_id"], ["sectors.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["operator_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_observations_sector_id", "observations", ["sector_id"], unique=False)
    op.create_index("ix_observations_operator_id", "observations", ["operator_id"], unique=False)
    op.create_index("ix_observations_created_at", "observations", ["created_at"], unique=False)

    op.create_table(
        "supply_usage",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("supply_id", sa.Integer(), nullable=False),
        sa.Column("objective_id", sa.Integer(), nullable=False),
        sa.Column("operator_id", sa.Integer(), nullable=True),
        sa.Column("quantity_used", sa.Integer(), nullable=False),
        _created_at("used_at"),
        sa.ForeignKeyConstraint(["supply_id"], ["supplies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["objective_id"], ["objectives.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["operator_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("quantity_used > 0", name="ck_supply_usage_quantity_positive"),
    )
    op.create_index("ix_supply_usage_supply_id", "supply_usage", ["supply_id"], unique=False)
    op.create_index("ix_supply_usage_objective_id", "supply_usage", ["objective_id"], unique=False)
    op.create_index("ix_supply_usage_used_at", "supply_usage", ["used_at"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("from_user_id", sa.Integer(), nullable=False),
        sa.Column("to_user_id", sa.Integer(), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.ForeignKeyConstraint(["from_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["to_user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_messages_from_user_id", "messages", ["from_user_id"], unique=False)
    op.create_index("ix_messages_to_user_id", "messages", ["to_user_id"], unique=False)
    op.create_index("ix_messages_created_at", "messages", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_messages_created_at", table_name="messages")
    op.drop_index("ix_messages_to_user_id", table_name="messages")
    op.drop_index("ix_messages_from_user_id", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_supply_usage_used_at", table_name="supply_usage")
    op.drop_index("ix_supply_usage_objective_id", table_name="supply_usage")
    op.drop_index("ix_supply_usage_supply_id", table_name="supply_usage")
    op.drop_table("supply_usage")

    op.drop_index("ix_observations_created_at", table_name="observations")
    op.drop_index("ix_observations_operator_id", table_name="observations")
    op.drop_index("ix_observations_sector_id", table_name="observations")
    op.drop_table("observations")

    op.drop_index("ix_cleaning_records_cleaned_at", table_name="cleaning_records")
    op.drop_index("ix_cleaning_records_operator_id", table_name="cleaning_records")
    op.drop_index("ix_cleaning_records_sector_id", table_name="cleaning_records")
    op.drop_table("cleaning_records")

    op.drop_table("supplies")

    op.drop_index("ix_sectors_objective_id", table_name="sectors")
    op.drop_table("sectors")

    op.drop_index("ix_objectives_client_id", table_name="objectives")
    op.drop_table("objectives")

    op.drop_table("clients")

    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    user_role.drop(bind, checkfirst=True)
