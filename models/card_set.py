from datetime import datetime

from extensions import db


class Set(db.Model):
    __tablename__ = "sets"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, index=True)
    code = db.Column(db.String(32), nullable=True, index=True)
    image = db.Column(db.String(512), nullable=True)
    release_date = db.Column(db.Date, nullable=True)
    is_event = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    cards = db.relationship("CardSet", back_populates="set", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Set {self.code or '-'} {self.title!r}>"


class CardSet(db.Model):
    """Set membership of a card."""

    __tablename__ = "card_sets"
    __table_args__ = (
        db.UniqueConstraint("card_id", "set_id", name="uq_card_sets_card_set"),
    )

    id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True)
    set_id = db.Column(db.Integer, db.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False, index=True)

    card = db.relationship("Card", back_populates="sets")
    set = db.relationship("Set", back_populates="cards")
