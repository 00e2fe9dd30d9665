"""initial merchant onboarding schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "merchants",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False, index=True),
        sa.Column("business_name", sa.String(255), nullable=False, index=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("phone", sa.String(50)),
        sa.Column("business_type", sa.String(100), index=True),
        sa.Column("description", sa.Text()),
        sa.Column("address", sa.String(500)),
        sa.Column("location", sa.String(255)),
        sa.Column("landmark", sa.String(255)),
        sa.Column("website", sa.String(255)),
        sa.Column("year_established", sa.Integer()),
        sa.Column("logo", sa.String(500)),
        sa.Column("business_hours", sa.JSON()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false(), index=True),
        sa.Column("verified_at", sa.DateTime(timezone=True)),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("featured_at", sa.DateTime(timezone=True)),
        sa.Column("onboarding_status", sa.String(50), nullable=False, index=True),
        sa.Column("document_review_status", sa.String(50), nullable=False, index=True),
        sa.Column("documents_submitted_at", sa.DateTime(timezone=True), index=True),
        sa.Column("account_setup_at", sa.DateTime(timezone=True)),
        sa.Column("profile_completeness", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("documents_completeness", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("setup_token_hash", sa.String(64), index=True),
        sa.Column("setup_token_expires_at", sa.DateTime(timezone=True)),
        sa.Column("reset_token_hash", sa.String(64), index=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True)),
        sa.Column("created_by_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by_admin_id", sa.String(36)),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )

    op.create_table(
        "merchant_documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False, index=True),
        sa.Column(
            "merchant_id",
            sa.String(36),
            sa.ForeignKey("merchants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("document_type", sa.String(50), nullable=False, index=True),
        sa.Column("storage_locator", sa.String(500), nullable=False),
        sa.Column("original_filename", sa.String(255)),
        sa.Column("file_size_bytes", sa.Integer()),
        sa.Column("mime_type", sa.String(100)),
        sa.Column("description", sa.Text()),
        sa.Column("uploaded_by", sa.String(36)),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("reviewed_by", sa.String(36)),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        sa.Column("review_notes", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index(
        "uq_merchant_documents_active_required",
        "merchant_documents",
        ["merchant_id", "document_type"],
        unique=True,
        sqlite_where=sa.text("is_active = 1 AND document_type != 'additionalDoc'"),
        postgresql_where=sa.text("is_active AND document_type != 'additionalDoc'"),
    )

    op.create_table(
        "verification_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False, index=True),
        sa.Column(
            "merchant_id",
            sa.String(36),
            sa.ForeignKey("merchants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("performed_by", sa.String(36)),
        sa.Column("notes", sa.Text()),
        sa.Column("documents_involved", sa.JSON()),
        sa.Column(
            "performed_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
            nullable=False, index=True,
        ),
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False, index=True),
        sa.Column(
            "merchant_id",
            sa.String(36),
            sa.ForeignKey("merchants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("user_id", sa.String(36), nullable=False, index=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("merchant_id", "user_id", name="uq_reviews_merchant_user"),
    )

    op.create_table(
        "audit_trail",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(100), nullable=False, index=True),
        sa.Column("actor_id", sa.String(36), index=True),
        sa.Column("actor_role", sa.String(20)),
        sa.Column("ip_address", sa.String(50)),
        sa.Column("user_agent", sa.String(512)),
        sa.Column("action", sa.String(100), nullable=False, index=True),
        sa.Column("entity_type", sa.String(100), nullable=False, index=True),
        sa.Column("entity_id", sa.String(36), index=True),
        sa.Column("status_code", sa.Integer(), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
            nullable=False, index=True,
        ),
    )


def downgrade() -> None:
    op.drop_table("audit_trail")
    op.drop_table("reviews")
    op.drop_table("verification_history")
    op.drop_index("uq_merchant_documents_active_required", table_name="merchant_documents")
    op.drop_table("merchant_documents")
    op.drop_table("merchants")
