"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    def ensure_indexes(table: str, specs: list[tuple[str, list[str], bool]]) -> None:
        idxs = existing_indexes(table)
        for name, cols, unique in specs:
            if name not in idxs:
                op.create_index(name, table, cols, unique=unique)

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("email", sa.String(), nullable=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("is_admin", sa.Boolean(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("pending", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        )
    ensure_indexes("users", [("ix_users_id", ["id"], False), ("ix_users_email", ["email"], True)])

    if "subscriptions" not in existing_tables:
        op.create_table(
            "subscriptions",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("payment_id", sa.String(), nullable=True),
            sa.Column("type", sa.String(), nullable=False),
            sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("unlocked_content", sa.JSON(), nullable=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    ensure_indexes(
        "subscriptions",
        [
            ("ix_subscriptions_id", ["id"], False),
            ("ix_subscriptions_user_id", ["user_id"], False),
            ("ix_subscriptions_payment_id", ["payment_id"], True),
            ("ix_subscriptions_type", ["type"], False),
            ("ix_subscriptions_is_active", ["is_active"], False),
        ],
    )

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("razorpay_order_id", sa.String(), nullable=False),
            sa.Column("razorpay_payment_id", sa.String(), nullable=True),
            sa.Column("razorpay_signature", sa.String(), nullable=True),
            sa.Column("amount", sa.Float(), nullable=True),
            sa.Column("currency", sa.String(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("plan_type", sa.String(), nullable=True),
            sa.Column("user_id", sa.String(), nullable=False),
            sa.Column("webinar_id", sa.String(), nullable=True),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    ensure_indexes(
        "payments",
        [
            ("ix_payments_id", ["id"], False),
            ("ix_payments_razorpay_order_id", ["razorpay_order_id"], True),
            ("ix_payments_razorpay_payment_id", ["razorpay_payment_id"], True),
            ("ix_payments_status", ["status"], False),
            ("ix_payments_plan_type", ["plan_type"], False),
            ("ix_payments_user_id", ["user_id"], False),
            ("ix_payments_webinar_id", ["webinar_id"], False),
        ],
    )

    if "webinars" not in existing_tables:
        op.create_table(
            "webinars",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("webinar_name", sa.String(), nullable=True),
            sa.Column("webinar_title", sa.String(), nullable=True),
            sa.Column("webinar_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("webinar_time", sa.String(), nullable=True),
            sa.Column("duration_hours", sa.Integer(), nullable=True),
            sa.Column("duration_minutes", sa.Integer(), nullable=True),
            sa.Column("duration_seconds", sa.Integer(), nullable=True),
            sa.Column("is_paid", sa.Boolean(), nullable=True),
            sa.Column("paid_amount", sa.Float(), nullable=True),
            sa.Column("discount_percentage", sa.Float(), nullable=True),
            sa.Column("discount_amount", sa.Float(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("video_url", sa.String(), nullable=True),
            sa.Column("brand_image", sa.String(), nullable=True),
            sa.Column("selected_language", sa.String(), nullable=True),
            sa.Column("instant_watch_enabled", sa.Boolean(), nullable=True),
            sa.Column("scheduled_dates", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    ensure_indexes(
        "webinars",
        [
            ("ix_webinars_id", ["id"], False),
            ("ix_webinars_webinar_title", ["webinar_title"], False),
            ("ix_webinars_status", ["status"], False),
        ],
    )

    if "ebooks" not in existing_tables:
        op.create_table(
            "ebooks",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("title", sa.String(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("file_url", sa.Text(), nullable=True),
            sa.Column("file_type", sa.String(), nullable=True),
            sa.Column("file_size", sa.Integer(), nullable=True),
            sa.Column("thumbnail", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("is_free", sa.Boolean(), nullable=True),
            sa.Column("downloads", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    ensure_indexes("ebooks", [("ix_ebooks_id", ["id"], False), ("ix_ebooks_title", ["title"], False)])

    if "videos" not in existing_tables:
        op.create_table(
            "videos",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("title", sa.String(), nullable=True),
            sa.Column("url", sa.String(), nullable=True),
            sa.Column("public_id", sa.String(), nullable=True),
            sa.Column("webinar_id", sa.String(), nullable=True),
            sa.Column("day", sa.Integer(), nullable=True),
            sa.Column("is_free", sa.Boolean(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("views", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    ensure_indexes(
        "videos",
        [
            ("ix_videos_id", ["id"], False),
            ("ix_videos_title", ["title"], False),
            ("ix_videos_webinar_id", ["webinar_id"], False),
        ],
    )


def downgrade() -> None:
    for table in ("videos", "ebooks", "webinars", "payments", "subscriptions", "users"):
        op.drop_table(table)
