"""JSON API over the card catalog query layer."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request, url_for

from extensions import limiter
from services.card_filters import (
    CardsFilters,
    build_filters_from_args,
    filters_to_query_args,
    has_active_filters,
    serialize_filters_for_key,
)
from services.card_query import cached_card_count, fetch_all_cards, fetch_card, fetch_cards_page
from services.search_tokens import apply_search_tokens
from utils.validation import (
    ValidationError,
    log_validation_error,
    parse_bool,
    parse_optional_int,
    parse_optional_positive_int,
    parse_positive_int,
)
from viewmodels.card_vm import vm_to_json

cards_api = Blueprint("cards_api", __name__, url_prefix="/api/cards")

INCLUDE_PARAMS = ("includeRelations", "includeAlternates", "includeCounts")


def _request_filters() -> CardsFilters:
    filters = build_filters_from_args(request.args)
    if parse_bool(request.args.get("smart")):
        filters = apply_search_tokens(filters)
    return filters


def _include_flags() -> dict[str, bool]:
    return {
        "include_relations": parse_bool(request.args.get("includeRelations")),
        "include_alternates": parse_bool(request.args.get("includeAlternates"), default=True),
        "include_counts": parse_bool(request.args.get("includeCounts")),
    }


def _next_page_url(filters: CardsFilters, limit: int, cursor: int) -> str:
    # Smart search is already folded into ``filters``, so ``smart`` is not repeated
    args = filters_to_query_args(filters)
    for name in INCLUDE_PARAMS:
        if name in request.args:
            args[name] = request.args[name]
    return url_for("cards_api.list_cards", limit=limit, cursor=cursor, **args)


def _bulk_rate_limit() -> str:
    return current_app.config.get("BULK_EXPORT_RATE_LIMIT", "10 per minute")


@cards_api.get("")
def list_cards():
    """Paginated catalog: ``{items, nextCursor, hasMore, totalCount}`` plus a ``Link: rel="next"`` header."""
    try:
        limit = parse_optional_int(request.args.get("limit"), field="limit")
        cursor = parse_optional_positive_int(request.args.get("cursor"), field="cursor")
    except ValidationError as exc:
        log_validation_error(exc, context="list_cards")
        raise
    if limit is None:
        limit = current_app.config.get("CARDS_DEFAULT_PAGE_SIZE", 60)
    filters = _request_filters()
    page = fetch_cards_page(filters, limit, cursor, **_include_flags())
    resp = jsonify(page.to_dict())
    if page.next_cursor is not None:
        resp.headers["Link"] = f'<{_next_page_url(filters, limit, page.next_cursor)}>; rel="next"'
    return resp


@cards_api.get("/all")
@limiter.limit(_bulk_rate_limit)
def list_all_cards():
    """Every matching card as a flat array (export use)."""
    try:
        limit = parse_optional_int(request.args.get("limit"), field="limit")
    except ValidationError as exc:
        log_validation_error(exc, context="list_all_cards")
        raise
    filters = _request_filters()
    if limit is None and not has_active_filters(filters):
        current_app.logger.warning("Unfiltered, unlimited bulk card export requested.")
    cards = fetch_all_cards(filters, limit=limit, **_include_flags())
    current_app.logger.info(
        "Bulk card export: %d cards for %s", len(cards), serialize_filters_for_key(filters)
    )
    return jsonify([vm_to_json(card) for card in cards])


@cards_api.get("/count")
def count_cards():
    filters = _request_filters()
    return jsonify(
        {
            "total": cached_card_count(filters),
            "key": serialize_filters_for_key(filters),
            "filtered": has_active_filters(filters),
        }
    )


@cards_api.get("/<card_id>")
def card_detail(card_id: str):
    try:
        ident = parse_positive_int(card_id, field="card id")
    except ValidationError as exc:
        log_validation_error(exc, context="card_detail")
        raise
    card = fetch_card(ident)
    if card is None:
        return jsonify({"error": "not_found", "detail": "Card not found."}), 404
    return jsonify(vm_to_json(card))


__all__ = ["cards_api", "card_detail", "count_cards", "list_all_cards", "list_cards"]
