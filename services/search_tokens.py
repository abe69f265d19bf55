"""Free-text search tokenizer.

Turns a search box string such as ``"red leader op01 luffy"`` into structured
tokens (colors, rarities, codes, ...) plus whatever plain text remains, so a
single search input can drive the structured filters. English and Spanish
aliases are recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from services.card_filters import NO_TRIGGER, CardsFilters

COLOR_ALIASES = {
    "red": "red", "rojo": "red", "roja": "red",
    "blue": "blue", "azul": "blue",
    "green": "green", "verde": "green",
    "yellow": "yellow", "amarillo": "yellow", "amarilla": "yellow",
    "black": "black", "negro": "black", "negra": "black",
    "purple": "purple", "morado": "purple", "morada": "purple", "purpura": "purple",
}

RARITY_ALIASES = {
    "l": "Leader", "leader": "Leader", "lider": "Leader",
    "r": "Rare", "rare": "Rare", "raro": "Rare", "rara": "Rare",
    "uc": "Uncommon", "uncommon": "Uncommon", "pococomun": "Uncommon",
    "c": "Common", "common": "Common", "comun": "Common",
    "sr": "Super Rare", "superrare": "Super Rare", "superrara": "Super Rare",
    "sec": "Secret Rare", "secret": "Secret Rare", "secreta": "Secret Rare", "secreto": "Secret Rare",
    "p": "Promo", "promo": "Promo",
}

CATEGORY_ALIASES = {
    "don": "DON",
    "character": "Character", "personaje": "Character",
    "event": "Event", "evento": "Event",
    "stage": "Stage", "escenario": "Stage",
}

ALT_ART_ALIASES = {
    "aa": "Alternate Art", "alt": "Alternate Art", "alternate": "Alternate Art",
    "alternateart": "Alternate Art", "alterna": "Alternate Art",
    "manga": "Manga Art", "mangaart": "Manga Art",
    "fullart": "Full Art", "full": "Full Art", "artecompleto": "Full Art", "completo": "Full Art",
    "treasurecup": "Treasure Cup", "treasure": "Treasure Cup", "treasurerare": "Treasure Rare",
    "sp": "Special Card", "special": "Special Card", "specialcard": "Special Card",
    "judge": "Judge", "juez": "Judge",
    "textured": "Textured Foil", "texturedfoil": "Textured Foil", "texturizada": "Textured Foil",
    "textura": "Textured Foil",
    "piratefoil": "Jolly Roger Foil", "jollyroger": "Jolly Roger Foil", "jollyrogerfoil": "Jolly Roger Foil",
    "prerelease": "Pre-Release", "pre": "Pre-Release",
    "1stanniversary": "1st Anniversary", "1st": "1st Anniversary",
    "2ndanniversary": "2nd Anniversary", "2nd": "2nd Anniversary",
    "3rdanniversary": "3rd Anniversary", "3rd": "3rd Anniversary",
    "serial": "Serial", "seriada": "Serial",
    "reprint": "Reprint", "reimpresion": "Reprint",
    "winner": "Winner Version", "ganador": "Winner Version", "ganadora": "Winner Version",
    "winnerversion": "Winner Version",
    "finalist": "Finalist Version", "finalista": "Finalist Version", "finalistversion": "Finalist Version",
    "topplayer": "Top Player Version", "top": "Top Player Version", "jugadortop": "Top Player Version",
    "topplayerversion": "Top Player Version",
    "participation": "Participation Version", "participacion": "Participation Version",
    "participationversion": "Participation Version",
    "preerrata": "Pre-Errata", "errata": "Pre-Errata",
    "demo": "Demo Version", "demoversion": "Demo Version",
    "notforsale": "Not for sale", "nfs": "Not for sale",
}

TRIGGER_ALIASES = {
    "trigger": "Trigger", "gatillo": "Trigger",
    "notrigger": NO_TRIGGER, "sintrigger": NO_TRIGGER, "singatillo": NO_TRIGGER,
}

# Multi-word labels only recognisable once spaces are removed
COMPACT_ALT_ARTS = {
    "notforsale": "Not for sale",
    "prerelease": "Pre-Release",
    "preerrata": "Pre-Errata",
    "1stanniversary": "1st Anniversary",
    "2ndanniversary": "2nd Anniversary",
    "3rdanniversary": "3rd Anniversary",
}
COMPACT_NO_TRIGGER = ("notrigger", "sintrigger", "singatillo")

ILLUSTRATOR_MARKERS = {"ill", "illustrator", "ilustrador", "artist"}

_NON_TOKEN = re.compile(r"[^a-z0-9\s-]")
_TOKEN = re.compile(r"[a-z0-9-]+")
_FULL_CODE = re.compile(r"^(op|st|eb|prb|p)(\d{2,3})(\d{3})$")
_SET_CODE = re.compile(r"^(op|st|eb|prb|p)\d{1,3}$")


@dataclass(slots=True)
class SearchTokens:
    text_tokens: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    rarities: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    alt_arts: list[str] = field(default_factory=list)
    triggers: list[str] = field(default_factory=list)
    costs: list[str] = field(default_factory=list)
    powers: list[str] = field(default_factory=list)
    code_tokens: list[str] = field(default_factory=list)
    code_suffix_tokens: list[str] = field(default_factory=list)
    illustrator_tokens: list[str] = field(default_factory=list)


def _add(bucket: list[str], value: str) -> None:
    if value not in bucket:
        bucket.append(value)


def _classify_number(token: str, tokens: SearchTokens) -> bool:
    if len(token) <= 2:
        _add(tokens.costs, str(int(token)))
        return True
    if len(token) == 3:
        _add(tokens.code_suffix_tokens, token)
        return True
    if len(token) in (4, 5):
        _add(tokens.powers, str(int(token)))
        return True
    return False


def parse_search_tokens(search: str) -> SearchTokens:
    tokens = SearchTokens()
    normalized = _NON_TOKEN.sub(" ", (search or "").lower())
    compact = re.sub(r"\s+", "", normalized)
    raw_tokens = _TOKEN.findall(normalized)
    illustrator_mode = any(token in ILLUSTRATOR_MARKERS for token in raw_tokens)

    for needle, label in COMPACT_ALT_ARTS.items():
        if needle in compact:
            _add(tokens.alt_arts, label)
    if any(needle in compact for needle in COMPACT_NO_TRIGGER):
        _add(tokens.triggers, NO_TRIGGER)

    for token in raw_tokens:
        if not token:
            continue

        if token in RARITY_ALIASES:
            _add(tokens.rarities, RARITY_ALIASES[token])
            continue
        if token in CATEGORY_ALIASES:
            _add(tokens.categories, CATEGORY_ALIASES[token])
            continue
        if token in ALT_ART_ALIASES:
            _add(tokens.alt_arts, ALT_ART_ALIASES[token])
            continue
        if token in TRIGGER_ALIASES:
            _add(tokens.triggers, TRIGGER_ALIASES[token])
            continue
        if token in COLOR_ALIASES:
            _add(tokens.colors, COLOR_ALIASES[token])
            continue
        if illustrator_mode and token in ILLUSTRATOR_MARKERS:
            continue

        if token.isdigit() and _classify_number(token, tokens):
            continue

        compact_code = token.replace("-", "")
        full = _FULL_CODE.match(compact_code)
        if full:
            prefix, set_number, card_number = full.groups()
            _add(tokens.code_tokens, f"{prefix.upper()}{set_number}-{card_number}")
            continue
        if _SET_CODE.match(compact_code):
            _add(tokens.code_tokens, token.upper())
            continue

        if illustrator_mode:
            _add(tokens.illustrator_tokens, token)
            continue

        tokens.text_tokens.append(token)

    return tokens


def apply_search_tokens(filters: CardsFilters) -> CardsFilters:
    """Move structured tokens out of ``filters.search`` into the matching dimensions."""
    if not filters.search or not filters.search.strip():
        return filters
    tokens = parse_search_tokens(filters.search)

    def merged(existing: tuple[str, ...], extra: list[str]) -> tuple[str, ...]:
        return tuple(dict.fromkeys([*existing, *extra]))

    trigger = filters.trigger
    if not trigger and tokens.triggers:
        trigger = tokens.triggers[0]

    # Illustrator names and code suffixes stay free text
    text = " ".join([*tokens.text_tokens, *tokens.illustrator_tokens, *tokens.code_suffix_tokens])
    return filters.evolve(
        search=text or None,
        colors=merged(filters.colors, tokens.colors),
        rarities=merged(filters.rarities, tokens.rarities),
        categories=merged(filters.categories, tokens.categories),
        alt_arts=merged(filters.alt_arts, tokens.alt_arts),
        costs=merged(filters.costs, tokens.costs),
        power=merged(filters.power, tokens.powers),
        set_codes=merged(filters.set_codes, tokens.code_tokens),
        trigger=trigger,
    )


__all__ = ["SearchTokens", "apply_search_tokens", "parse_search_tokens"]
