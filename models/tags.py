"""Tag rows attached to a card (types, colors, effects, conditions, texts, rulings)."""

from __future__ import annotations

from extensions import db


class CardType(db.Model):
    __tablename__ = "card_types"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    type = db.Column(db.String(128), nullable=False, index=True)

    card = db.relationship("Card", back_populates="types")


class CardColor(db.Model):
    __tablename__ = "card_colors"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    color = db.Column(db.String(32), nullable=False, index=True)

    card = db.relationship("Card", back_populates="colors")


class CardEffect(db.Model):
    __tablename__ = "card_effects"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    effect = db.Column(db.Text, nullable=False)

    card = db.relationship("Card", back_populates="effects")


class CardCondition(db.Model):
    __tablename__ = "card_conditions"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    condition = db.Column(db.Text, nullable=False)

    card = db.relationship("Card", back_populates="conditions")


class CardText(db.Model):
    __tablename__ = "card_texts"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    text = db.Column(db.Text, nullable=False)

    card = db.relationship("Card", back_populates="texts")


class CardRuling(db.Model):
    __tablename__ = "card_rulings"

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=False)

    card = db.relationship("Card", back_populates="rulings")
