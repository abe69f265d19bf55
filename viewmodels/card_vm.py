"""Card view models for JSON responses."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

# Relation/count fields that are omitted from JSON when they were not requested
OPTIONAL_KEYS = {
    "types",
    "colors",
    "effects",
    "conditions",
    "texts",
    "sets",
    "rulings",
    "num_of_variations",
}


@dataclass(slots=True)
class SetRefVM:
    id: int
    title: str
    code: Optional[str] = None


@dataclass(slots=True)
class RulingVM:
    id: int
    question: str
    answer: str


@dataclass(slots=True)
class AlternateVM:
    id: int
    code: str
    src: Optional[str]
    alias: Optional[str]
    order: str
    alternate_art: Optional[str]
    is_first_edition: bool
    tcg_url: Optional[str]
    is_pro: bool
    region: Optional[str]
    set_code: Optional[str]
    base_card_id: Optional[int]
    types: Optional[list[dict]] = None
    colors: Optional[list[dict]] = None
    effects: Optional[list[dict]] = None
    texts: Optional[list[dict]] = None
    sets: Optional[list[SetRefVM]] = None


@dataclass(slots=True)
class CardVM:
    id: int
    name: str
    code: str
    alias: Optional[str]
    set_code: Optional[str]
    order: Optional[str]
    rarity: Optional[str]
    category: Optional[str]
    cost: Optional[str]
    power: Optional[str]
    attribute: Optional[str]
    counter: Optional[str]
    life: Optional[str]
    trigger_card: Optional[str]
    region: Optional[str]
    alternate_art: Optional[str]
    illustrator: Optional[str]
    src: Optional[str]
    tcg_url: Optional[str]
    is_first_edition: bool
    is_pro: bool
    market_price: Optional[Decimal]
    low_price: Optional[Decimal]
    high_price: Optional[Decimal]
    price_currency: Optional[str]
    price_updated_at: Optional[datetime]
    base_card_id: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    alternates: list[AlternateVM] = field(default_factory=list)
    num_of_variations: Optional[int] = None
    types: Optional[list[dict]] = None
    colors: Optional[list[dict]] = None
    effects: Optional[list[dict]] = None
    conditions: Optional[list[dict]] = None
    texts: Optional[list[dict]] = None
    sets: Optional[list[SetRefVM]] = None
    rulings: Optional[list[RulingVM]] = None


def _tags(rows: Iterable[Any], attr: str) -> list[dict]:
    return [{"id": row.id, attr: getattr(row, attr)} for row in rows]


def _set_refs(memberships: Iterable[Any]) -> list[SetRefVM]:
    refs = []
    for membership in memberships:
        card_set = membership.set
        if card_set is None:
            continue
        refs.append(SetRefVM(id=card_set.id, title=card_set.title, code=card_set.code))
    return refs


def alternate_to_vm(card, *, include_relations: bool = False) -> AlternateVM:
    vm = AlternateVM(
        id=card.id,
        code=card.code,
        src=card.src,
        alias=card.alias,
        order=card.order if card.order is not None else "0",
        alternate_art=card.alternate_art,
        is_first_edition=bool(card.is_first_edition),
        tcg_url=card.tcg_url,
        is_pro=bool(card.is_pro),
        region=card.region,
        set_code=card.set_code,
        base_card_id=card.base_card_id,
    )
    if include_relations:
        vm.types = _tags(card.types, "type")
        vm.colors = _tags(card.colors, "color")
        vm.effects = _tags(card.effects, "effect")
        vm.texts = _tags(card.texts, "text")
        vm.sets = _set_refs(card.sets)
    return vm


def card_to_vm(
    card,
    *,
    alternates: Optional[list[AlternateVM]] = None,
    num_of_variations: Optional[int] = None,
    include_relations: bool = False,
) -> CardVM:
    vm = CardVM(
        id=card.id,
        name=card.name,
        code=card.code,
        alias=card.alias,
        set_code=card.set_code,
        order=card.order,
        rarity=card.rarity,
        category=card.category,
        cost=card.cost,
        power=card.power,
        attribute=card.attribute,
        counter=card.counter,
        life=card.life,
        trigger_card=card.trigger_card,
        region=card.region,
        alternate_art=card.alternate_art,
        illustrator=card.illustrator,
        src=card.src,
        tcg_url=card.tcg_url,
        is_first_edition=bool(card.is_first_edition),
        is_pro=bool(card.is_pro),
        market_price=card.market_price,
        low_price=card.low_price,
        high_price=card.high_price,
        price_currency=card.price_currency,
        price_updated_at=card.price_updated_at,
        base_card_id=card.base_card_id,
        created_at=card.created_at,
        updated_at=card.updated_at,
        alternates=alternates or [],
        num_of_variations=num_of_variations,
    )
    if include_relations:
        vm.types = _tags(card.types, "type")
        vm.colors = _tags(card.colors, "color")
        vm.effects = _tags(card.effects, "effect")
        vm.conditions = _tags(card.conditions, "condition")
        vm.texts = _tags(card.texts, "text")
        vm.sets = _set_refs(card.sets)
        vm.rulings = [RulingVM(id=r.id, question=r.question, answer=r.answer) for r in card.rulings]
    return vm


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if hasattr(value, "__dataclass_fields__"):
        return vm_to_json(value)
    return value


def vm_to_json(vm: Any) -> dict[str, Any]:
    """camelCase dict for a card/alternate view model; unrequested relations are omitted."""
    out: dict[str, Any] = {}
    for f in fields(vm):
        value = getattr(vm, f.name)
        if value is None and f.name in OPTIONAL_KEYS:
            continue
        out[_camel(f.name)] = _jsonable(value)
    return out


__all__ = [
    "AlternateVM",
    "CardVM",
    "RulingVM",
    "SetRefVM",
    "alternate_to_vm",
    "card_to_vm",
    "vm_to_json",
]
