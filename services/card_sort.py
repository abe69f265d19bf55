"""Collection ordering for catalog cards.

Cards sort by print family first (main sets, extra boosters, starter decks,
promos, premium boosters, DON!! cards, everything else) and then by code.
The same ranking exists twice: as a Python key for in-memory lists and as a
SQL ``CASE`` expression so the database can sort and paginate on it.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from sqlalchemy import case

DON_CATEGORY = "DON"
DON_RANK = 5
UNKNOWN_RANK = 6

# Checked in order; PRB must precede P.
PREFIX_RANKS: tuple[tuple[str, int], ...] = (
    ("OP", 0),
    ("EB", 1),
    ("ST", 2),
    ("PRB", 4),
    ("P", 3),
)

_LEADING_INT = re.compile(r"^\d+")


@lru_cache(maxsize=4096)
def collection_order_index(code: Optional[str], category: Optional[str] = None) -> int:
    if category == DON_CATEGORY:
        return DON_RANK
    upper = (code or "").upper()
    for prefix, rank in PREFIX_RANKS:
        if upper.startswith(prefix):
            return rank
    return UNKNOWN_RANK


def collection_order_expr(entity):
    """SQL expression ranking ``entity`` rows like ``collection_order_index``."""
    code = entity.code
    whens = [(entity.category == DON_CATEGORY, DON_RANK)]
    whens.extend((code.ilike(f"{prefix}%"), rank) for prefix, rank in PREFIX_RANKS)
    return case(*whens, else_=UNKNOWN_RANK)


def leading_number(value: Optional[str]) -> int:
    if not value:
        return 0
    match = _LEADING_INT.match(value.strip())
    return int(match.group(0)) if match else 0


def alternate_order_key(order: Optional[str]) -> tuple[int, str]:
    """Numeric prefix of the ``order`` string, then the string itself."""
    text = order if order is not None else "0"
    return leading_number(text), text


__all__ = [
    "alternate_order_key",
    "collection_order_expr",
    "collection_order_index",
    "leading_number",
]
