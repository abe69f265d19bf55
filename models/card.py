from datetime import datetime

from extensions import db


class Card(db.Model):
    """One printed card. Rows with ``base_card_id`` set are alternate prints of that base."""

    __tablename__ = "cards"
    __table_args__ = (
        db.Index("ix_cards_code_id", "code", "id"),
        db.Index("ix_cards_base_card_id", "base_card_id"),
        db.Index("ix_cards_set_code", "set_code"),
        db.Index("ix_cards_created_at", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)

    # Identity
    name     = db.Column(db.String(255), index=True, nullable=False)
    code     = db.Column(db.String(32), nullable=False)
    alias    = db.Column(db.String(64), nullable=True)
    set_code = db.Column(db.String(255), nullable=True)
    order    = db.Column("order", db.String(16), nullable=True)

    # Gameplay attributes
    rarity       = db.Column(db.String(32), nullable=True)
    category     = db.Column(db.String(32), nullable=True)
    cost         = db.Column(db.String(8), nullable=True)
    power        = db.Column(db.String(16), nullable=True)
    attribute    = db.Column(db.String(32), nullable=True)
    counter      = db.Column(db.String(32), nullable=True)
    life         = db.Column(db.String(8), nullable=True)
    trigger_card = db.Column(db.Text, nullable=True)

    # Print details
    region           = db.Column(db.String(16), nullable=True)
    alternate_art    = db.Column(db.String(64), nullable=True)
    illustrator      = db.Column(db.String(128), nullable=True)
    src              = db.Column(db.String(512), nullable=True)
    tcg_url          = db.Column(db.String(512), nullable=True)
    is_first_edition = db.Column(db.Boolean, nullable=False, default=False)
    is_pro           = db.Column(db.Boolean, nullable=False, default=False)

    # Pricing
    market_price     = db.Column(db.Numeric(10, 2), nullable=True)
    low_price        = db.Column(db.Numeric(10, 2), nullable=True)
    high_price       = db.Column(db.Numeric(10, 2), nullable=True)
    price_currency   = db.Column(db.String(8), nullable=True)
    price_updated_at = db.Column(db.DateTime, nullable=True)

    base_card_id = db.Column(
        db.Integer,
        db.ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=True,
    )

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    base_card = db.relationship("Card", remote_side=[id], back_populates="alternates")
    alternates = db.relationship(
        "Card",
        back_populates="base_card",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    types = db.relationship("CardType", back_populates="card", cascade="all, delete-orphan")
    colors = db.relationship("CardColor", back_populates="card", cascade="all, delete-orphan")
    effects = db.relationship("CardEffect", back_populates="card", cascade="all, delete-orphan")
    conditions = db.relationship("CardCondition", back_populates="card", cascade="all, delete-orphan")
    texts = db.relationship("CardText", back_populates="card", cascade="all, delete-orphan")
    rulings = db.relationship("CardRuling", back_populates="card", cascade="all, delete-orphan")
    sets = db.relationship("CardSet", back_populates="card", cascade="all, delete-orphan")

    @property
    def is_alternate(self) -> bool:
        return self.base_card_id is not None

    def __repr__(self):
        kind = "alt" if self.is_alternate else "base"
        return f"<Card {self.code} {self.name!r} ({kind})>"
