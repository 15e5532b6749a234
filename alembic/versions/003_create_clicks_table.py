"""Create clicks table.

Revision ID: 003
Revises: 002
Create Date: 2024-01-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the clicks table."""
    op.create_table(
        "clicks",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "link_id",
            UUID(as_uuid=True),
            nullable=False,
            comment="UUID of the shortened link",
        ),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            nullable=True,
            comment="Authenticated user who clicked (anonymous clicks allowed)",
        ),
        sa.Column(
            "ip_address",
            sa.String(64),
            nullable=False,
            comment="Resolved client IP address (0.0.0.0 when unknown)",
        ),
        sa.Column(
            "user_agent",
            sa.Text(),
            nullable=False,
            comment="HTTP User-Agent header",
        ),
        sa.Column(
            "country",
            sa.String(255),
            nullable=True,
            comment="Country name; NULL = not resolved, 'unknown' = lookup failed",
        ),
        sa.Column(
            "city",
            sa.String(255),
            nullable=True,
            comment="City name; NULL = not resolved, 'unknown' = lookup failed",
        ),
        sa.Column(
            "device",
            sa.String(50),
            nullable=False,
            comment="Classified device type",
        ),
        sa.Column(
            "browser",
            sa.String(100),
            nullable=False,
            comment="Classified browser name",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_clicks")),
        sa.ForeignKeyConstraint(
            ["link_id"],
            ["api.links.id"],
            name=op.f("fk_clicks_link_id_links"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["api.users.id"],
            name=op.f("fk_clicks_user_id_users"),
            ondelete="SET NULL",
        ),
        schema="analytics",
    )

    # Create indexes
    op.create_index(
        op.f("ix_clicks_link_id"),
        "clicks",
        ["link_id"],
        schema="analytics",
    )
    op.create_index(
        op.f("ix_clicks_user_id"),
        "clicks",
        ["user_id"],
        schema="analytics",
    )
    op.create_index(
        op.f("ix_clicks_created_at"),
        "clicks",
        ["created_at"],
        schema="analytics",
    )
    op.create_index(
        "ix_clicks_link_id_created_at",
        "clicks",
        ["link_id", "created_at"],
        schema="analytics",
    )


def downgrade() -> None:
    """Drop the clicks table."""
    op.drop_index(
        "ix_clicks_link_id_created_at",
        table_name="clicks",
        schema="analytics",
    )
    op.drop_index(
        op.f("ix_clicks_created_at"),
        table_name="clicks",
        schema="analytics",
    )
    op.drop_index(
        op.f("ix_clicks_user_id"),
        table_name="clicks",
        schema="analytics",
    )
    op.drop_index(
        op.f("ix_clicks_link_id"),
        table_name="clicks",
        schema="analytics",
    )
    op.drop_table("clicks", schema="analytics")
