"""create part requests, offers, targets, viewers, favorites

Revision ID: 4e2b7c1d9a30
Revises:
Create Date: 2026-10-12 18:42:10.215304

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e2b7c1d9a30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "part_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("customer_id", sa.String(length=64), nullable=False),
        sa.Column("customer_name", sa.String(length=120), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("customer_phone", sa.String(length=32), nullable=True),
        sa.Column("part_name", sa.String(length=200), nullable=False),
        sa.Column("vehicle_model", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("condition", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reference_photo", sa.String(length=500), nullable=True),
        sa.Column("budget_min", sa.Integer(), nullable=False),
        sa.Column("budget_max", sa.Integer(), nullable=False),
        sa.Column("location_state", sa.String(length=100), nullable=False),
        sa.Column("location_district", sa.String(length=100), nullable=False),
        sa.Column("location_area", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_part_requests_id", "part_requests", ["id"])
    op.create_index("ix_part_requests_customer_id", "part_requests", ["customer_id"])
    op.create_index("ix_part_requests_status", "part_requests", ["status"])
    op.create_index("ix_part_requests_expires_at", "part_requests", ["expires_at"])
    op.create_index(
        "ix_part_requests_location_category",
        "part_requests",
        ["location_state", "location_district", "category"],
    )

    op.create_table(
        "request_offers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("part_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("shopkeeper_id", sa.String(length=64), nullable=False),
        sa.Column("shopkeeper_name", sa.String(length=120), nullable=True),
        sa.Column("shop_name", sa.String(length=200), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("photo", sa.String(length=500), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_offers_request_shopkeeper"
        ),
    )
    op.create_index("ix_request_offers_id", "request_offers", ["id"])
    op.create_index("ix_request_offers_request_id", "request_offers", ["request_id"])
    op.create_index(
        "ix_request_offers_shopkeeper_id", "request_offers", ["shopkeeper_id"]
    )

    op.create_table(
        "request_targets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("part_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("shopkeeper_id", sa.String(length=64), nullable=False),
        sa.UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_targets_request_shopkeeper"
        ),
    )
    op.create_index("ix_request_targets_request_id", "request_targets", ["request_id"])
    op.create_index(
        "ix_request_targets_shopkeeper_id", "request_targets", ["shopkeeper_id"]
    )

    op.create_table(
        "request_viewers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "request_id",
            sa.Integer(),
            sa.ForeignKey("part_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("shopkeeper_id", sa.String(length=64), nullable=False),
        sa.Column("viewed_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "request_id", "shopkeeper_id", name="uq_request_viewers_request_shopkeeper"
        ),
    )
    op.create_index("ix_request_viewers_request_id", "request_viewers", ["request_id"])

    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("added_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "product_id", name="uq_favorites_user_product"),
    )
    op.create_index("ix_favorites_id", "favorites", ["id"])
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_favorites_user_id", table_name="favorites")
    op.drop_index("ix_favorites_id", table_name="favorites")
    op.drop_table("favorites")

    op.drop_index("ix_request_viewers_request_id", table_name="request_viewers")
    op.drop_table("request_viewers")

    op.drop_index("ix_request_targets_shopkeeper_id", table_name="request_targets")
    op.drop_index("ix_request_targets_request_id", table_name="request_targets")
    op.drop_table("request_targets")

    op.drop_index("ix_request_offers_shopkeeper_id", table_name="request_offers")
    op.drop_index("ix_request_offers_request_id", table_name="request_offers")
    op.drop_index("ix_request_offers_id", table_name="request_offers")
    op.drop_table("request_offers")

    op.drop_index("ix_part_requests_location_category", table_name="part_requests")
    op.drop_index("ix_part_requests_expires_at", table_name="part_requests")
    op.drop_index("ix_part_requests_status", table_name="part_requests")
    op.drop_index("ix_part_requests_customer_id", table_name="part_requests")
    op.drop_index("ix_part_requests_id", table_name="part_requests")
    op.drop_table("part_requests")
