"""initial schema: auth, audit and tour content tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(length=320), nullable=False, unique=True),
            sa.Column("name", sa.String(length=255), nullable=True),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("last_login_at", sa.DateTime(timezone=False), nullable=True),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("key", sa.String(length=64), nullable=False, unique=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        )

    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("key", sa.String(length=128), nullable=False, unique=True),
            sa.Column("name", sa.String(length=128), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )

    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column(
                "permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
            ),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.current_timestamp()),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("client_ip", sa.String(length=64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(length=320), nullable=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("entity_type", sa.String(length=128), nullable=True),
            sa.Column("entity_id", sa.String(length=255), nullable=True),
            sa.Column("reason", sa.String(length=512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )

    if "categories" not in existing_tables:
        op.create_table(
            "categories",
            sa.Column("id", sa.String(length=255), primary_key=True, nullable=False),
            sa.Column("title", sa.String(length=100), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("image_url", sa.Text(), nullable=False),
            sa.Column("icon", sa.String(length=50), nullable=False),
            sa.Column("color", sa.String(length=100), nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_categories_enabled", "categories", ["enabled"])
        op.create_index("idx_categories_created_at", "categories", ["created_at"])

    if "destinations" not in existing_tables:
        op.create_table(
            "destinations",
            sa.Column("id", sa.String(length=255), primary_key=True, nullable=False),
            sa.Column(
                "category_id",
                sa.String(length=255),
                sa.ForeignKey("categories.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
            sa.Column("duration", sa.String(length=100), nullable=False),
            sa.Column("highlights", JSONType, nullable=False),
            sa.Column("images", JSONType, nullable=False),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_destinations_category", "destinations", ["category_id"])
        op.create_index("idx_destinations_enabled", "destinations", ["enabled"])

    if "places" not in existing_tables:
        op.create_table(
            "places",
            sa.Column("id", sa.String(length=255), primary_key=True, nullable=False),
            sa.Column(
                "destination_id",
                sa.String(length=255),
                sa.ForeignKey("destinations.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
            sa.Column("duration", sa.String(length=100), nullable=False),
            sa.Column("time_duration", sa.String(length=100), nullable=False),
            sa.Column("highlights", JSONType, nullable=False),
            sa.Column("images", JSONType, nullable=False),
            sa.Column("location", JSONType, nullable=False),
            sa.Column("best_time", sa.String(length=200), nullable=True),
            sa.Column("travel_time", sa.String(length=200), nullable=True),
            sa.Column("ideal_for", sa.String(length=300), nullable=True),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_places_destination", "places", ["destination_id"])
        op.create_index("idx_places_enabled", "places", ["enabled"])

    if "ads" not in existing_tables:
        op.create_table(
            "ads",
            sa.Column("id", sa.String(length=255), primary_key=True, nullable=False),
            sa.Column(
                "place_id",
                sa.String(length=255),
                sa.ForeignKey("places.id", ondelete="CASCADE"),
                nullable=False,
                unique=True,
            ),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("images", JSONType, nullable=False),
            sa.Column("poster", sa.Text(), nullable=True),
            sa.Column("rating", sa.Float(), nullable=False, server_default="4.5"),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("whatsapp", sa.String(length=50), nullable=True),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("link", sa.Text(), nullable=False),
            sa.Column("booking_link", sa.Text(), nullable=True),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )


def downgrade() -> None:
    for table in (
        "ads",
        "places",
        "destinations",
        "categories",
        "audit_events",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
