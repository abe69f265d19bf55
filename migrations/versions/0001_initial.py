"""Initial card catalog schema."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _tag_table(name: str, value_column: str, value_type, *, index_value: bool = False) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column(value_column, value_type, nullable=False),
    )
    op.create_index(f"ix_{name}_card_id", name, ["card_id"], unique=False)
    if index_value:
        op.create_index(f"ix_{name}_{value_column}", name, [value_column], unique=False)


def upgrade() -> None:
    # Cards ----------------------------------------------------------------
    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("alias", sa.String(length=64), nullable=True),
        sa.Column("set_code", sa.String(length=255), nullable=True),
        sa.Column("order", sa.String(length=16), nullable=True),
        sa.Column("rarity", sa.String(length=32), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=True),
        sa.Column("cost", sa.String(length=8), nullable=True),
        sa.Column("power", sa.String(length=16), nullable=True),
        sa.Column("attribute", sa.String(length=32), nullable=True),
        sa.Column("counter", sa.String(length=32), nullable=True),
        sa.Column("life", sa.String(length=8), nullable=True),
        sa.Column("trigger_card", sa.Text(), nullable=True),
        sa.Column("region", sa.String(length=16), nullable=True),
        sa.Column("alternate_art", sa.String(length=64), nullable=True),
        sa.Column("illustrator", sa.String(length=128), nullable=True),
        sa.Column("src", sa.String(length=512), nullable=True),
        sa.Column("tcg_url", sa.String(length=512), nullable=True),
        sa.Column("is_first_edition", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_pro", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("market_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("low_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("high_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_currency", sa.String(length=8), nullable=True),
        sa.Column("price_updated_at", sa.DateTime(), nullable=True),
        sa.Column("base_card_id", sa.Integer(), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_cards_name", "cards", ["name"], unique=False)
    op.create_index("ix_cards_code_id", "cards", ["code", "id"], unique=False)
    op.create_index("ix_cards_base_card_id", "cards", ["base_card_id"], unique=False)
    op.create_index("ix_cards_set_code", "cards", ["set_code"], unique=False)
    op.create_index("ix_cards_created_at", "cards", ["created_at"], unique=False)

    # Tags -----------------------------------------------------------------
    _tag_table("card_types", "type", sa.String(length=128), index_value=True)
    _tag_table("card_colors", "color", sa.String(length=32), index_value=True)
    _tag_table("card_effects", "effect", sa.Text())
    _tag_table("card_conditions", "condition", sa.Text())
    _tag_table("card_texts", "text", sa.Text())

    op.create_table(
        "card_rulings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
    )
    op.create_index("ix_card_rulings_card_id", "card_rulings", ["card_id"], unique=False)

    # Sets -----------------------------------------------------------------
    op.create_table(
        "sets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=True),
        sa.Column("image", sa.String(length=512), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("is_event", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_sets_title", "sets", ["title"], unique=False)
    op.create_index("ix_sets_code", "sets", ["code"], unique=False)

    op.create_table(
        "card_sets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("card_id", sa.Integer(), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("set_id", sa.Integer(), sa.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("card_id", "set_id", name="uq_card_sets_card_set"),
    )
    op.create_index("ix_card_sets_card_id", "card_sets", ["card_id"], unique=False)
    op.create_index("ix_card_sets_set_id", "card_sets", ["set_id"], unique=False)


def downgrade() -> None:
    op.drop_table("card_sets")
    op.drop_table("sets")
    op.drop_table("card_rulings")
    for name in ("card_texts", "card_conditions", "card_effects", "card_colors", "card_types"):
        op.drop_table(name)
    op.drop_table("cards")
