"""SQLAlchemy models package for the card catalog.
Re-exports the shared `db` instance to avoid import loops and provides
convenient names for the model classes.

Usage:
    from models import db, Card, Set, CardSet
"""
from __future__ import annotations

from extensions import db  # shared SQLAlchemy() instance

# Import models only after db exists to avoid circular imports
from .card import Card  # type: ignore F401
from .card_set import CardSet, Set  # type: ignore F401
from .tags import (  # type: ignore F401
    CardColor,
    CardCondition,
    CardEffect,
    CardRuling,
    CardText,
    CardType,
)

__all__ = [
    "db",
    "Card",
    "CardColor",
    "CardCondition",
    "CardEffect",
    "CardRuling",
    "CardSet",
    "CardText",
    "CardType",
    "Set",
]
