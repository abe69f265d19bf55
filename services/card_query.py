"""Filterable card catalog queries.

Every filter dimension is expressed once as ``condition(entity) -> clause`` and
applied to a base card and to each of its alternates through
``match_self_or_variant``: a base card matches a dimension when it matches
directly or when any linked alternate does. Dimensions are ANDed.

Pagination is keyset based over the fixed ordering
``(collection order, code, id)``; ``id`` is the unique tie-breaker, so a cursor
(the id of the last row seen) identifies exactly where the next page starts.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from flask import current_app, has_app_context
from sqlalchemy import and_, func, literal, or_, select
from sqlalchemy.orm import aliased, selectinload

from extensions import cache, db
from models import Card, CardEffect, CardColor, CardSet, CardText, CardType, Set
from services.card_filters import (
    NO_COUNTER,
    NO_TRIGGER,
    CardsFilters,
    serialize_filters_for_key,
)
from services.card_sort import alternate_order_key, collection_order_expr, collection_order_index
from utils.validation import sanitize_sql_like_pattern
from viewmodels.card_vm import AlternateVM, CardVM, alternate_to_vm, card_to_vm, vm_to_json

log = logging.getLogger(__name__)

PAGE_LIMIT_MIN = 1
PAGE_LIMIT_MAX = 200
BULK_LIMIT_MIN = 1
BULK_LIMIT_MAX = 5000
COUNT_CACHE_PREFIX = "cards:count:"

Condition = Callable[[Any], Any]


@dataclass(slots=True)
class CardsPage:
    items: list[CardVM] = field(default_factory=list)
    next_cursor: Optional[int] = None
    has_more: bool = False
    total_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [vm_to_json(item) for item in self.items],
            "nextCursor": self.next_cursor,
            "hasMore": self.has_more,
            "totalCount": self.total_count,
        }


def clamp(value: int, low: int, high: int) -> int:
    return min(max(int(value), low), high)


def clamp_page_limit(limit: Optional[int]) -> int:
    return clamp(limit if limit is not None else PAGE_LIMIT_MIN, PAGE_LIMIT_MIN, PAGE_LIMIT_MAX)


def clamp_bulk_limit(limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    return clamp(limit, BULK_LIMIT_MIN, BULK_LIMIT_MAX)


# ---------------------------------------------------------------------------
# Predicate helpers
# ---------------------------------------------------------------------------

def _clean(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v.strip() for v in values if v and v.strip()))


def _clean_lower(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(v.lower() for v in _clean(values)))


def _contains_ci(column, term: str):
    return column.ilike(f"%{sanitize_sql_like_pattern(term)}%", escape="\\")


def _related(model, entity, criterion):
    """EXISTS a ``model`` row attached to ``entity`` satisfying ``criterion``."""
    return select(model.id).where(model.card_id == entity.id, criterion).exists()


def _in_set(entity, criterion):
    return (
        select(CardSet.id)
        .join(Set, Set.id == CardSet.set_id)
        .where(CardSet.card_id == entity.id, criterion)
        .exists()
    )


def match_self_or_variant(condition: Condition):
    """``condition`` on the base card OR on any alternate that points at it."""
    alternate = aliased(Card)
    variant_match = (
        select(alternate.id)
        .where(alternate.base_card_id == Card.id, condition(alternate))
        .exists()
    )
    return or_(condition(Card), variant_match)


# ---------------------------------------------------------------------------
# Dimensions
# ---------------------------------------------------------------------------

def _search_condition(term: str) -> Condition:
    def condition(entity):
        return or_(
            _contains_ci(entity.name, term),
            _contains_ci(entity.code, term),
            _contains_ci(entity.alias, term),
            _related(CardEffect, entity, _contains_ci(CardEffect.effect, term)),
            _related(CardText, entity, _contains_ci(CardText.text, term)),
            _in_set(entity, _contains_ci(Set.title, term)),
        )
    return condition


def _sets_condition(values: list[str]) -> Condition:
    def condition(entity):
        return or_(
            entity.set_code.in_(values),
            _in_set(entity, or_(Set.code.in_(values), Set.title.in_(values))),
        )
    return condition


def _set_codes_condition(values: list[str]) -> Condition:
    def condition(entity):
        return or_(*[_contains_ci(entity.code, value) for value in values])
    return condition


def _lowered(values: list[str]) -> list:
    return [func.lower(literal(value)) for value in values]


def _lower_in_condition(attr: str, values: list[str]) -> Condition:
    def condition(entity):
        return func.lower(getattr(entity, attr)).in_(_lowered(values))
    return condition


def _colors_condition(values: list[str]) -> Condition:
    def condition(entity):
        return _related(CardColor, entity, func.lower(CardColor.color).in_(_lowered(values)))
    return condition


def _exact_in_condition(attr: str, values: list[str]) -> Condition:
    def condition(entity):
        return getattr(entity, attr).in_(values)
    return condition


def _types_condition(values: list[str]) -> Condition:
    def condition(entity):
        return _related(CardType, entity, CardType.type.in_(values))
    return condition


def _effects_condition(values: list[str]) -> Condition:
    def condition(entity):
        return _related(CardEffect, entity, CardEffect.effect.in_(values))
    return condition


def _region_condition(value: str) -> Condition:
    def condition(entity):
        return entity.region == value
    return condition


def _counter_condition(value: str) -> Condition:
    if value == NO_COUNTER:
        return lambda entity: entity.counter.is_(None)
    return lambda entity: entity.counter.contains(value, autoescape=True)


def _trigger_condition(value: str) -> Condition:
    if value == NO_TRIGGER:
        return lambda entity: entity.trigger_card.is_(None)
    return lambda entity: entity.trigger_card == value


def build_dimension_conditions(filters: CardsFilters) -> list[tuple[str, Condition]]:
    """One named condition per active filter dimension."""
    dims: list[tuple[str, Condition]] = []

    search = (filters.search or "").strip()
    if search:
        dims.append(("search", _search_condition(search)))

    sets = _clean(filters.sets)
    if sets:
        dims.append(("sets", _sets_condition(sets)))

    set_codes = _clean(filters.set_codes)
    if set_codes:
        dims.append(("set_codes", _set_codes_condition(set_codes)))

    colors = _clean_lower(filters.colors)
    if colors:
        dims.append(("colors", _colors_condition(colors)))

    for name, attr in (("rarities", "rarity"), ("categories", "category"), ("alt_arts", "alternate_art")):
        values = _clean_lower(getattr(filters, name))
        if values:
            dims.append((name, _lower_in_condition(attr, values)))

    for name, attr in (("costs", "cost"), ("power", "power"), ("attributes", "attribute")):
        values = _clean(getattr(filters, name))
        if values:
            dims.append((name, _exact_in_condition(attr, values)))

    types = _clean(filters.types)
    if types:
        dims.append(("types", _types_condition(types)))

    effects = _clean(filters.effects)
    if effects:
        dims.append(("effects", _effects_condition(effects)))

    if filters.region:
        dims.append(("region", _region_condition(filters.region)))
    if filters.counter:
        dims.append(("counter", _counter_condition(filters.counter)))
    if filters.trigger:
        dims.append(("trigger", _trigger_condition(filters.trigger)))

    return dims


def build_dimension_clauses(filters: CardsFilters, entity=Card) -> list:
    """Dimension clauses evaluated against ``entity`` alone (no variant expansion)."""
    return [condition(entity) for _name, condition in build_dimension_conditions(filters)]


def build_card_predicate(filters: CardsFilters):
    """WHERE clause selecting base cards that match, directly or through an alternate."""
    dims = build_dimension_conditions(filters)
    if dims:
        log.debug("Card predicate dimensions: %s", [name for name, _ in dims])
    clauses = [match_self_or_variant(condition) for _name, condition in dims]
    return and_(Card.base_card_id.is_(None), *clauses)


# ---------------------------------------------------------------------------
# Loading and mapping
# ---------------------------------------------------------------------------

_BASE_RELATIONS = (Card.types, Card.colors, Card.effects, Card.conditions, Card.texts, Card.rulings)
_ALTERNATE_RELATIONS = (Card.types, Card.colors, Card.effects, Card.texts)


def _loader_options(include_relations: bool, include_alternates: bool, include_counts: bool) -> list:
    options: list = []
    if include_relations:
        options.extend(selectinload(rel) for rel in _BASE_RELATIONS)
        options.append(selectinload(Card.sets).selectinload(CardSet.set))
    if include_alternates or include_counts:
        if include_alternates and include_relations:
            options.extend(selectinload(Card.alternates).selectinload(rel) for rel in _ALTERNATE_RELATIONS)
            options.append(selectinload(Card.alternates).selectinload(Card.sets).selectinload(CardSet.set))
        else:
            options.append(selectinload(Card.alternates))
    return options


def normalize_alternates(alternates: Iterable[Card], *, include_relations: bool = False) -> list[AlternateVM]:
    mapped = [alternate_to_vm(alt, include_relations=include_relations) for alt in alternates]
    return sorted(mapped, key=lambda alt: alternate_order_key(alt.order))


def map_card(
    card: Card,
    *,
    include_relations: bool = False,
    include_alternates: bool = True,
    include_counts: bool = False,
) -> CardVM:
    alternates = (
        normalize_alternates(card.alternates, include_relations=include_relations)
        if include_alternates
        else []
    )
    num_of_variations = len(card.alternates) if include_counts else None
    return card_to_vm(
        card,
        alternates=alternates,
        num_of_variations=num_of_variations,
        include_relations=include_relations,
    )


def _ordered(stmt):
    return stmt.order_by(collection_order_expr(Card).asc(), Card.code.asc(), Card.id.asc())


def _after_cursor(cursor: int):
    """Rows strictly after ``cursor`` in the fixed ordering, or None when the cursor row is gone."""
    row = db.session.execute(
        select(Card.code, Card.category, Card.id).where(Card.id == cursor)
    ).first()
    if row is None:
        return None
    code, category, card_id = row
    rank = collection_order_index(code, category)
    rank_expr = collection_order_expr(Card)
    return or_(
        rank_expr > rank,
        and_(rank_expr == rank, Card.code > code),
        and_(rank_expr == rank, Card.code == code, Card.id > card_id),
    )


# ---------------------------------------------------------------------------
# Counting
# ---------------------------------------------------------------------------

def count_base_matches(filters: CardsFilters) -> int:
    stmt = select(func.count(Card.id)).where(build_card_predicate(filters))
    return int(db.session.execute(stmt).scalar_one())


def count_alternate_matches(filters: CardsFilters) -> int:
    stmt = select(func.count(Card.id)).where(
        Card.base_card_id.is_not(None),
        *build_dimension_clauses(filters, Card),
    )
    return int(db.session.execute(stmt).scalar_one())


def count_cards(filters: CardsFilters) -> int:
    """Base-card matches plus alternate rows that match on their own (raw row count)."""
    return count_base_matches(filters) + count_alternate_matches(filters)


def cached_card_count(filters: CardsFilters) -> int:
    key = COUNT_CACHE_PREFIX + serialize_filters_for_key(filters)
    cached = cache.get(key)
    if cached is not None:
        return cached
    total = count_cards(filters)
    timeout = current_app.config.get("CARDS_COUNT_CACHE_TIMEOUT") if has_app_context() else None
    cache.set(key, total, timeout=timeout)
    return total


def is_memory_sqlite(url) -> bool:
    """True for SQLite databases that live in one connection's memory."""
    if url.get_backend_name() != "sqlite":
        return False
    database = url.database or ""
    return (
        database in ("", ":memory:")
        or database.startswith("file::memory:")
        or url.query.get("mode") == "memory"
    )


def _count_in_worker(app) -> bool:
    # A worker connection would open a fresh, empty in-memory database
    return bool(app.config.get("CARDS_PARALLEL_COUNT", True)) and not is_memory_sqlite(db.engine.url)


def _count_in_app_context(app, filters: CardsFilters) -> int:
    with app.app_context():
        return count_base_matches(filters)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

def _page_rows(filters: CardsFilters, take: int, cursor: Optional[int], options: list) -> Optional[list[Card]]:
    stmt = select(Card).where(build_card_predicate(filters))
    if cursor is not None:
        after = _after_cursor(cursor)
        if after is None:
            return None
        stmt = stmt.where(after)
    stmt = _ordered(stmt).limit(take + 1).options(*options)
    return list(db.session.scalars(stmt).all())


def fetch_cards_page(
    filters: CardsFilters,
    limit: int,
    cursor: Optional[int] = None,
    *,
    include_relations: bool = False,
    include_alternates: bool = True,
    include_counts: bool = False,
) -> CardsPage:
    """One page of base cards plus the size of the full matching set."""
    take = clamp_page_limit(limit)
    options = _loader_options(include_relations, include_alternates, include_counts)

    app = current_app._get_current_object()
    if _count_in_worker(app):
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="cards-count") as executor:
            count_future = executor.submit(_count_in_app_context, app, filters)
            rows = _page_rows(filters, take, cursor, options)
            total = count_future.result()
    else:
        rows = _page_rows(filters, take, cursor, options)
        total = count_base_matches(filters)

    if rows is None:
        log.info("Unknown card cursor %s; returning an empty page.", cursor)
        return CardsPage(items=[], next_cursor=None, has_more=False, total_count=total)

    has_more = len(rows) > take
    trimmed = rows[:take]
    items = [
        map_card(
            card,
            include_relations=include_relations,
            include_alternates=include_alternates,
            include_counts=include_counts,
        )
        for card in trimmed
    ]
    next_cursor = trimmed[-1].id if has_more and trimmed else None
    return CardsPage(items=items, next_cursor=next_cursor, has_more=has_more, total_count=total)


def fetch_all_cards(
    filters: CardsFilters,
    *,
    limit: Optional[int] = None,
    include_relations: bool = False,
    include_alternates: bool = True,
    include_counts: bool = False,
) -> list[CardVM]:
    """Every matching base card in the fixed ordering, optionally truncated."""
    stmt = _ordered(select(Card).where(build_card_predicate(filters)))
    take = clamp_bulk_limit(limit)
    if take is not None:
        stmt = stmt.limit(take)
    stmt = stmt.options(*_loader_options(include_relations, include_alternates, include_counts))
    cards = db.session.scalars(stmt).all()
    return [
        map_card(
            card,
            include_relations=include_relations,
            include_alternates=include_alternates,
            include_counts=include_counts,
        )
        for card in cards
    ]


def fetch_card(card_id: int) -> Optional[CardVM]:
    """A single card with relations, alternates and variation count."""
    options = _loader_options(True, True, True)
    card = db.session.get(Card, card_id, options=options)
    if card is None:
        return None
    return map_card(card, include_relations=True, include_alternates=True, include_counts=True)


__all__ = [
    "BULK_LIMIT_MAX",
    "CardsPage",
    "PAGE_LIMIT_MAX",
    "build_card_predicate",
    "build_dimension_clauses",
    "build_dimension_conditions",
    "cached_card_count",
    "clamp_bulk_limit",
    "clamp_page_limit",
    "count_alternate_matches",
    "count_base_matches",
    "count_cards",
    "fetch_all_cards",
    "fetch_card",
    "fetch_cards_page",
    "is_memory_sqlite",
    "map_card",
    "match_self_or_variant",
    "normalize_alternates",
]
