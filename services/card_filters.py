"""Card catalog filters: construction from query strings and canonical cache keys."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable, Mapping, Optional

# Query-string parameter -> CardsFilters field
LIST_PARAMS: dict[str, str] = {
    "sets": "sets",
    "codes": "set_codes",
    "colors": "colors",
    "rarities": "rarities",
    "categories": "categories",
    "costs": "costs",
    "power": "power",
    "attributes": "attributes",
    "types": "types",
    "effects": "effects",
    "altArts": "alt_arts",
}
SCALAR_PARAMS: dict[str, str] = {
    "search": "search",
    "region": "region",
    "counter": "counter",
    "trigger": "trigger",
    "sortBy": "sort_by",
}

NO_COUNTER = "No counter"
NO_TRIGGER = "No trigger"


@dataclass(frozen=True, slots=True)
class CardsFilters:
    """Immutable description of one catalog query. Empty tuples mean "no constraint"."""

    search: Optional[str] = None
    sets: tuple[str, ...] = ()
    set_codes: tuple[str, ...] = ()
    colors: tuple[str, ...] = ()
    rarities: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    costs: tuple[str, ...] = ()
    power: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    effects: tuple[str, ...] = ()
    alt_arts: tuple[str, ...] = ()
    region: Optional[str] = None
    counter: Optional[str] = None
    trigger: Optional[str] = None
    sort_by: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples so instances stay hashable
        for name in LIST_PARAMS.values():
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, ())
            elif not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    def evolve(self, **changes: Any) -> "CardsFilters":
        return replace(self, **changes)


def split_param(value: Optional[str]) -> list[str]:
    """Split a comma-separated parameter, trimming entries and dropping empties."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_all(args: Mapping[str, Any], key: str) -> list[str]:
    getlist = getattr(args, "getlist", None)
    if callable(getlist):
        return [v for v in getlist(key) if v is not None]
    value = args.get(key)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def build_filters_from_args(args: Mapping[str, Any]) -> CardsFilters:
    """Build filters from query-string parameters (``request.args`` or a plain dict)."""
    values: dict[str, Any] = {}
    for param, field_name in LIST_PARAMS.items():
        items: list[str] = []
        for raw in _get_all(args, param):
            items.extend(split_param(raw))
        values[field_name] = tuple(items)
    for param, field_name in SCALAR_PARAMS.items():
        raw_values = _get_all(args, param)
        values[field_name] = raw_values[0] if raw_values else None
    return CardsFilters(**values)


def _canonical_list(values: Iterable[str]) -> list[str]:
    return sorted(v.strip() for v in values if v is not None and v.strip())


def canonical_filters(filters: CardsFilters) -> dict[str, Any]:
    """Only the meaningful fields, with list values trimmed and sorted."""
    out: dict[str, Any] = {}
    for f in fields(filters):
        value = getattr(filters, f.name)
        if isinstance(value, tuple):
            items = _canonical_list(value)
            if items:
                out[f.name] = items
        elif value is not None and value != "":
            out[f.name] = value
    return out


def serialize_filters_for_key(filters: CardsFilters) -> str:
    """Deterministic cache key for a filters object."""
    return json.dumps(canonical_filters(filters), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def has_active_filters(filters: CardsFilters) -> bool:
    canonical = canonical_filters(filters)
    canonical.pop("sort_by", None)
    if "search" in canonical and not str(canonical["search"]).strip():
        canonical.pop("search")
    return bool(canonical)


def filters_to_query_args(filters: CardsFilters) -> dict[str, str]:
    """Query-string parameters that rebuild ``filters`` through ``build_filters_from_args``."""
    args: dict[str, str] = {}
    for param, field_name in SCALAR_PARAMS.items():
        value = getattr(filters, field_name)
        if value is not None and value != "":
            args[param] = value
    for param, field_name in LIST_PARAMS.items():
        items = [v.strip() for v in getattr(filters, field_name) if v and v.strip()]
        if items:
            args[param] = ",".join(items)
    return args


__all__ = [
    "CardsFilters",
    "NO_COUNTER",
    "NO_TRIGGER",
    "build_filters_from_args",
    "canonical_filters",
    "filters_to_query_args",
    "has_active_filters",
    "serialize_filters_for_key",
    "split_param",
]
