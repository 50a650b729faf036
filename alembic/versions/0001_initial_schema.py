from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def upgrade() -> None:
    # -------------------- USERS & TOKENS --------------------
    op.create_table(
        "users",
        _id(),
        sa.Column("firstname", sa.String(length=100), nullable=False),
        sa.Column("lastname", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("user_type", sa.String(length=16), nullable=False, server_default="standard"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "tokens",
        _id(),
        sa.Column("token", sa.String(length=512), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_tokens_token", "tokens", ["token"], unique=True)
    op.create_index("ix_tokens_user_id", "tokens", ["user_id"])

    op.create_table(
        "reset_password_tokens",
        _id(),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_reset_password_tokens_token", "reset_password_tokens", ["token"], unique=True)

    # -------------------- GEOGRAPHY --------------------
    op.create_table(
        "countries",
        _id(),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "departments",
        _id(),
        sa.Column("department_number", sa.Integer(), nullable=False),
        sa.Column("department_name", sa.String(length=100), nullable=False),
        sa.Column("country_id", sa.Uuid(), sa.ForeignKey("countries.id"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_departments_department_number", "departments", ["department_number"])

    op.create_table(
        "department_perimeters",
        _id(),
        sa.Column(
            "first_department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "second_department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False
        ),
        sa.UniqueConstraint("first_department_id", "second_department_id"),
    )
    op.create_index(
        "ix_department_perimeters_first_department_id", "department_perimeters", ["first_department_id"]
    )

    op.create_table(
        "cities",
        _id(),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id"), nullable=False),
    )
    op.create_index("ix_cities_city", "cities", ["city"])
    op.create_index("ix_cities_department_id", "cities", ["department_id"])

    # -------------------- ADS & TAGS --------------------
    op.create_table(
        "ads",
        _id(),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("city_id", sa.Uuid(), sa.ForeignKey("cities.id"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("generosity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("images", sa.JSON(), nullable=True),
        sa.Column("show", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_ads_city_id", "ads", ["city_id"])
    op.create_index("ix_ads_user_id", "ads", ["user_id"])

    for name in ("demand", "offer"):
        op.create_table(
            f"{name}s",
            _id(),
            sa.Column(name, sa.String(length=255), nullable=False),
            sa.Column("ad_id", sa.Uuid(), sa.ForeignKey("ads.id", ondelete="CASCADE"), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        )
        op.create_index(f"ix_{name}s_ad_id", f"{name}s", ["ad_id"])

    op.create_table(
        "demand_offers",
        _id(),
        sa.Column("demand_id", sa.Uuid(), sa.ForeignKey("demands.id", ondelete="CASCADE"), nullable=False),
        sa.Column("offer_id", sa.Uuid(), sa.ForeignKey("offers.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("demand_id", "offer_id"),
    )

    op.create_table(
        "hearts",
        _id(),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ad_id", sa.Uuid(), sa.ForeignKey("ads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_hearts_user_id", "hearts", ["user_id"])
    op.create_index("ix_hearts_ad_id", "hearts", ["ad_id"])

    # -------------------- CATEGORIES --------------------
    op.create_table(
        "categories",
        _id(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("main_category_id", sa.Uuid(), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )

    for name in ("demand", "offer"):
        op.create_table(
            f"category_{name}s",
            _id(),
            sa.Column("category_id", sa.Uuid(), sa.ForeignKey("categories.id", ondelete="CASCADE"), nullable=False),
            sa.Column(f"{name}_id", sa.Uuid(), sa.ForeignKey(f"{name}s.id", ondelete="CASCADE"), nullable=False),
            sa.UniqueConstraint("category_id", f"{name}_id"),
        )

    # -------------------- CONTACTS --------------------
    op.create_table(
        "contacts",
        _id(),
        sa.Column("ad_link", sa.String(length=512), nullable=False),
        sa.Column("facebook_link", sa.String(length=512), nullable=False),
        sa.Column("contact_name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    op.create_table(
        "user_contacts",
        _id(),
        sa.Column("first_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("second_user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("are_contacts", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("first_user_id", "second_user_id"),
    )
    op.create_index("ix_user_contacts_first_user_id", "user_contacts", ["first_user_id"])
    op.create_index("ix_user_contacts_second_user_id", "user_contacts", ["second_user_id"])


def downgrade() -> None:
    for table in (
        "user_contacts",
        "contacts",
        "category_offers",
        "category_demands",
        "categories",
        "hearts",
        "demand_offers",
        "offers",
        "demands",
        "ads",
        "cities",
        "department_perimeters",
        "departments",
        "countries",
        "reset_password_tokens",
        "tokens",
        "users",
    ):
        op.drop_table(table)
