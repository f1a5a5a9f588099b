"""initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ENUMS: dict[str, tuple[str, ...]] = {
    "actor_role": ("STUDENT", "ADMIN"),
    "listing_status": (
        "draft",
        "pending_review",
        "approved",
        "rejected",
        "interest_received",
        "in_transaction",
        "completed",
        "expired",
        "flagged",
        "archived",
        "removed",
    ),
    "request_status": (
        "idle",
        "sent",
        "accepted",
        "declined",
        "meeting_scheduled",
        "completed",
        "expired",
        "cancelled",
        "withdrawn",
        "disputed",
        "resolved",
    ),
    "dispute_status": ("OPEN", "UNDER_REVIEW", "RESOLVED", "REJECTED", "ESCALATED"),
    "dispute_type": ("FRAUD", "ITEM_NOT_AS_DESCRIBED", "NO_SHOW", "OTHER"),
    "audit_action": (
        "LISTING_CREATE",
        "LISTING_STATUS_UPDATE",
        "REQUEST_CREATE",
        "REQUEST_EVENT",
        "DISPUTE_CREATE",
        "DISPUTE_STATUS_UPDATE",
    ),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*_ENUMS[name], name=name)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("display_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("role", _enum("actor_role"), nullable=False),
        # Trust counters
        sa.Column("completed_exchanges", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cancelled_requests", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("admin_flags", sa.Integer(), nullable=False, server_default="0"),
        _timestamp("created_at"),
    )

    op.create_table(
        "listings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", _enum("listing_status"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_listings_owner_id", "listings", ["owner_id"])
    op.create_index("ix_listings_status", "listings", ["status"])

    op.create_table(
        "requests",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("listing_id", UUID(as_uuid=True), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("buyer_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("seller_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", _enum("request_status"), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_requests_listing_buyer_status", "requests", ["listing_id", "buyer_id", "status"]
    )
    op.create_index("ix_requests_seller_id", "requests", ["seller_id"])

    op.create_table(
        "disputes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("request_id", UUID(as_uuid=True), sa.ForeignKey("requests.id"), nullable=True),
        sa.Column("listing_id", UUID(as_uuid=True), sa.ForeignKey("listings.id"), nullable=True),
        sa.Column("initiator_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("target_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", _enum("dispute_type"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", _enum("dispute_status"), nullable=False),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        # Lifecycle timestamps
        _timestamp("filed_at"),
        _timestamp("review_started_at", nullable=True),
        _timestamp("resolved_at", nullable=True),
        _timestamp("rejected_at", nullable=True),
        _timestamp("escalated_at", nullable=True),
        _timestamp("updated_at"),
    )
    op.create_index("ix_disputes_request_id", "disputes", ["request_id"])
    op.create_index("ix_disputes_target_id", "disputes", ["target_id"])

    # Append-only audit trail
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("actor_id", UUID(as_uuid=True), nullable=False),
        sa.Column("action", _enum("audit_action"), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", UUID(as_uuid=True), nullable=False),
        sa.Column("metadata", JSONB, nullable=False, server_default=sa.text("'{}'")),
        _timestamp("created_at"),
    )
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])

    op.create_table(
        "idempotency_keys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("scope", sa.String(255), nullable=False),
        sa.Column("response", JSONB, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "key", name="uq_idempotency_keys_user_key"),
    )
    op.create_index("ix_idempotency_keys_expires_at", "idempotency_keys", ["expires_at"])


def downgrade() -> None:
    op.drop_table("idempotency_keys")
    op.drop_table("audit_logs")
    op.drop_table("disputes")
    op.drop_table("requests")
    op.drop_table("listings")
    op.drop_table("users")
    for name in _ENUMS:
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
