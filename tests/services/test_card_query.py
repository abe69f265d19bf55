import pytest
from sqlalchemy.engine import make_url

from extensions import cache, db
from services.card_filters import NO_COUNTER, NO_TRIGGER, CardsFilters
from services.card_query import (
    BULK_LIMIT_MAX,
    PAGE_LIMIT_MAX,
    cached_card_count,
    clamp_bulk_limit,
    clamp_page_limit,
    count_alternate_matches,
    count_base_matches,
    count_cards,
    fetch_all_cards,
    fetch_card,
    fetch_cards_page,
    is_memory_sqlite,
)


def _ids(items):
    return [item.id for item in items]


def _page_ids(filters, limit=50, cursor=None, **kwargs):
    return _ids(fetch_cards_page(filters, limit, cursor, **kwargs).items)


@pytest.fixture
def catalog(create_card):
    """205 plain base cards with ascending codes, committed in one go."""
    cards = [
        create_card(name=f"Crew {i}", code=f"OP01-{i:03d}", commit=False)
        for i in range(1, 206)
    ]
    db.session.commit()
    return cards


def test_clamp_limits():
    assert clamp_page_limit(0) == 1
    assert clamp_page_limit(-5) == 1
    assert clamp_page_limit(1000) == PAGE_LIMIT_MAX
    assert clamp_page_limit(None) == 1
    assert clamp_bulk_limit(None) is None
    assert clamp_bulk_limit(0) == 1
    assert clamp_bulk_limit(10**6) == BULK_LIMIT_MAX


def test_first_page_of_205(catalog):
    page = fetch_cards_page(CardsFilters(), 50)
    assert len(page.items) == 50
    assert page.has_more is True
    assert page.next_cursor == page.items[-1].id == catalog[49].id
    assert page.total_count == 205


def test_cursor_walk_visits_every_card_once(catalog):
    seen = []
    cursor = None
    while True:
        page = fetch_cards_page(CardsFilters(), 60, cursor)
        seen.extend(_ids(page.items))
        if not page.has_more:
            assert page.next_cursor is None
            break
        cursor = page.next_cursor
    assert seen == [card.id for card in catalog]


def test_page_limit_is_clamped(catalog):
    assert len(fetch_cards_page(CardsFilters(), 0).items) == 1
    assert len(fetch_cards_page(CardsFilters(), -5).items) == 1
    page = fetch_cards_page(CardsFilters(), 1000)
    assert len(page.items) == PAGE_LIMIT_MAX
    assert page.has_more is True


def test_last_page_has_no_cursor(create_card):
    for i in range(3):
        create_card(code=f"OP01-{i:03d}")
    page = fetch_cards_page(CardsFilters(), 3)
    assert len(page.items) == 3
    assert page.has_more is False
    assert page.next_cursor is None


def test_unknown_cursor_returns_empty_page(create_card):
    create_card()
    page = fetch_cards_page(CardsFilters(), 10, cursor=999_999)
    assert page.items == []
    assert page.has_more is False
    assert page.next_cursor is None
    assert page.total_count == 1


def test_serial_count_matches_parallel(catalog, serial_count):  # noqa: ARG001
    page = fetch_cards_page(CardsFilters(), 50)
    assert page.total_count == 205
    assert page.next_cursor == catalog[49].id


def test_collection_ordering(create_card):
    first = create_card(code="OP01-005")
    second = create_card(code="OP01-005")
    ordered = [
        create_card(code="X-1"),
        create_card(code="DON-001", category="DON"),
        create_card(code="PRB01-001"),
        create_card(code="P-001"),
        create_card(code="ST01-001"),
        create_card(code="EB01-001"),
        create_card(code="OP02-001"),
    ]
    expected = [first.id, second.id] + [card.id for card in reversed(ordered)]
    assert _page_ids(CardsFilters()) == expected
    assert _ids(fetch_all_cards(CardsFilters())) == expected


def test_alternates_are_not_listed_as_items(create_card, create_alternate):
    base = create_card(name="Nami")
    create_alternate(base, alternate_art="Manga Art")
    page = fetch_cards_page(CardsFilters(), 10)
    assert _ids(page.items) == [base.id]
    assert page.total_count == 1


def test_search_matches_through_alternate_effect(create_card, create_alternate):
    base = create_card(name="Roronoa Zoro", effects=["[On Play] Draw 1 card."])
    create_alternate(base, effects=["If your Leader is Luffy, gain +1000 power."])
    other = create_card(name="Nami", effects=["[Blocker]"])

    assert _page_ids(CardsFilters(search="luffy")) == [base.id]
    assert _page_ids(CardsFilters(search="LUFFY")) == [base.id]
    assert other.id in _page_ids(CardsFilters(search="nami"))


def test_search_fields(create_card, create_set):
    romance = create_set(title="Romance Dawn", code="OP-01")
    by_name = create_card(name="Monkey D. Luffy")
    by_alias = create_card(name="Straw Hat", alias="luffy-leader")
    by_text = create_card(name="Gum-Gum", texts=["Luffy stretches"])
    by_set = create_card(name="Usopp", sets=[romance])
    create_card(name="Shanks")

    assert set(_page_ids(CardsFilters(search="luffy"))) == {by_name.id, by_alias.id, by_text.id}
    assert _page_ids(CardsFilters(search="romance")) == [by_set.id]


def test_search_treats_wildcards_literally(create_card):
    percent = create_card(name="100% Power")
    create_card(name="Plain")
    assert _page_ids(CardsFilters(search="%")) == [percent.id]


def test_colors_are_case_insensitive_and_deduplicated(create_card):
    red = create_card(colors=["Red"])
    create_card(colors=["Blue"])
    assert _page_ids(CardsFilters(colors=["Red", "red"])) == [red.id]


def test_multiple_values_in_a_dimension_are_ored(create_card):
    red = create_card(colors=["Red"])
    blue = create_card(colors=["Blue"])
    create_card(colors=["Green"])
    assert set(_page_ids(CardsFilters(colors=["red", "BLUE"]))) == {red.id, blue.id}


def test_dimensions_are_anded(create_card):
    red_leader = create_card(colors=["Red"], rarity="Leader")
    create_card(colors=["Red"], rarity="Common")
    create_card(colors=["Blue"], rarity="Leader")
    assert _page_ids(CardsFilters(colors=["Red"], rarities=["leader"])) == [red_leader.id]


def test_each_dimension_may_match_a_different_print(create_card, create_alternate):
    base = create_card(colors=["Red"], rarity="Common")
    create_alternate(base, rarity="Secret Rare")
    assert _page_ids(CardsFilters(colors=["Red"], rarities=["Secret Rare"])) == [base.id]


def test_sets_match_set_code_or_membership(create_card, create_set):
    romance = create_set(title="Romance Dawn", code="OP-01")
    direct = create_card(set_code="OP01")
    by_title = create_card(set_code=None, sets=[romance])
    create_card(set_code="OP02")

    assert set(_page_ids(CardsFilters(sets=["OP01", "Romance Dawn"]))) == {direct.id, by_title.id}
    assert _page_ids(CardsFilters(sets=["OP-01"])) == [by_title.id]


def test_set_codes_match_code_fragments(create_card):
    match = create_card(code="ST10-002")
    create_card(code="OP01-002")
    assert _page_ids(CardsFilters(set_codes=["st10"])) == [match.id]


def test_scalar_and_tag_dimensions(create_card):
    target = create_card(
        category="Character",
        cost="4",
        power="5000",
        attribute="Slash",
        region="JP",
        types=["Straw Hat Crew"],
        effects=["[Blocker]"],
    )
    create_card(category="Event", cost="4", power="5000", region="EN")

    assert _page_ids(CardsFilters(categories=["character"])) == [target.id]
    assert _page_ids(CardsFilters(costs=["4"], power=["5000"], region="JP")) == [target.id]
    assert _page_ids(CardsFilters(attributes=["Slash"])) == [target.id]
    assert _page_ids(CardsFilters(types=["Straw Hat Crew"])) == [target.id]
    assert _page_ids(CardsFilters(effects=["[Blocker]"])) == [target.id]


def test_alt_art_matches_through_alternate(create_card, create_alternate):
    base = create_card()
    create_alternate(base, alternate_art="Manga Art")
    create_card()
    assert _page_ids(CardsFilters(alt_arts=["manga art"])) == [base.id]


def test_counter_contains_and_sentinel(create_card):
    thousand = create_card(counter="+1000")
    two_thousand = create_card(counter="+2000")
    none = create_card(counter=None)

    assert _page_ids(CardsFilters(counter="1000")) == [thousand.id]
    assert _page_ids(CardsFilters(counter=NO_COUNTER)) == [none.id]
    assert two_thousand.id not in _page_ids(CardsFilters(counter="1000"))


def test_trigger_exact_and_sentinel(create_card):
    trigger = create_card(trigger_card="Trigger")
    plain = create_card(trigger_card=None)

    assert _page_ids(CardsFilters(trigger="Trigger")) == [trigger.id]
    assert _page_ids(CardsFilters(trigger=NO_TRIGGER)) == [plain.id]


def test_alternates_are_sorted_by_order(create_card, create_alternate):
    base = create_card()
    create_alternate(base, order="10")
    create_alternate(base, order="2")
    create_alternate(base, order=None)

    item = fetch_cards_page(CardsFilters(), 10).items[0]
    assert [alt.order for alt in item.alternates] == ["0", "2", "10"]


def test_include_flags(create_card, create_alternate):
    base = create_card(types=["Supernovas"], colors=["Red"], rulings=[("Q?", "A.")])
    create_alternate(base, order="1")
    create_alternate(base, order="2")

    plain = fetch_cards_page(CardsFilters(), 10).items[0]
    assert plain.types is None
    assert plain.num_of_variations is None
    assert len(plain.alternates) == 2

    full = fetch_cards_page(
        CardsFilters(), 10, include_relations=True, include_counts=True, include_alternates=False
    ).items[0]
    assert full.alternates == []
    assert full.num_of_variations == 2
    assert [t["type"] for t in full.types] == ["Supernovas"]
    assert [c["color"] for c in full.colors] == ["Red"]
    assert full.rulings[0].question == "Q?"


def test_fetch_all_cards_limits(create_card):
    for i in range(5):
        create_card(code=f"OP01-{i:03d}")
    assert len(fetch_all_cards(CardsFilters())) == 5
    assert len(fetch_all_cards(CardsFilters(), limit=2)) == 2
    assert len(fetch_all_cards(CardsFilters(), limit=0)) == 1


def test_count_cards_adds_matching_alternates(create_card, create_alternate):
    base = create_card(colors=["Red"])
    create_alternate(base, colors=["Red"])
    create_alternate(base)
    create_card(colors=["Blue"])

    filters = CardsFilters(colors=["Red"])
    assert count_base_matches(filters) == 1
    assert count_alternate_matches(filters) == 1
    assert count_cards(filters) == 2
    assert count_cards(CardsFilters()) == 4


def test_cached_card_count_is_memoized(create_card):
    create_card()
    filters = CardsFilters()
    assert cached_card_count(filters) == 1
    create_card()
    assert cached_card_count(filters) == 1
    cache.clear()
    assert cached_card_count(filters) == 2


def test_fetch_card(create_card, create_alternate, create_set):
    romance = create_set(title="Romance Dawn", code="OP-01")
    base = create_card(name="Nami", sets=[romance], effects=["[Blocker]"])
    create_alternate(base, order="1", alternate_art="Manga Art")

    card = fetch_card(base.id)
    assert card.name == "Nami"
    assert card.num_of_variations == 1
    assert card.alternates[0].alternate_art == "Manga Art"
    assert card.sets[0].title == "Romance Dawn"
    assert fetch_card(999_999) is None


def test_cursor_walk_across_print_families(create_card):
    cards = [
        create_card(code="X-1"),
        create_card(code="DON-001", category="DON"),
        create_card(code="PRB01-001"),
        create_card(code="P-001"),
        create_card(code="ST01-001"),
        create_card(code="EB01-001"),
        create_card(code="OP02-001"),
    ]
    seen = []
    cursor = None
    while True:
        page = fetch_cards_page(CardsFilters(), 2, cursor)
        seen.extend(_ids(page.items))
        if not page.has_more:
            break
        cursor = page.next_cursor
    assert seen == [card.id for card in reversed(cards)]


def test_non_ascii_labels_match_case_insensitively(create_card):
    epic = create_card(rarity="Épico", category="Personaje", colors=["Índigo"])
    create_card(rarity="Común", colors=["Rojo"])

    assert _page_ids(CardsFilters(rarities=["Épico"])) == [epic.id]
    assert _page_ids(CardsFilters(rarities=["épico"])) == [epic.id]
    assert _page_ids(CardsFilters(rarities=["ÉPICO"])) == [epic.id]
    assert _page_ids(CardsFilters(colors=["índigo"])) == [epic.id]


def test_non_ascii_search_is_case_insensitive(create_card):
    card = create_card(name="Ñami la Navegante")
    assert _page_ids(CardsFilters(search="ñami")) == [card.id]


def test_sentinels_match_through_alternate(create_card, create_alternate):
    base = create_card(counter="+1000", trigger_card="Trigger")
    create_alternate(base, counter=None, trigger_card=None)
    create_card(counter="+2000", trigger_card="Trigger")

    assert _page_ids(CardsFilters(counter=NO_COUNTER)) == [base.id]
    assert _page_ids(CardsFilters(trigger=NO_TRIGGER)) == [base.id]


def test_scalar_dimensions_match_through_alternate(create_card, create_alternate):
    base = create_card(region="EN", cost="3", trigger_card=None)
    create_alternate(base, region="JP", cost="4", trigger_card="Trigger")
    create_card(region="EN", cost="3")

    assert _page_ids(CardsFilters(region="JP")) == [base.id]
    assert _page_ids(CardsFilters(costs=["4"])) == [base.id]
    assert _page_ids(CardsFilters(trigger="Trigger")) == [base.id]
    assert count_alternate_matches(CardsFilters(region="JP")) == 1


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("sqlite://", True),
        ("sqlite:///:memory:", True),
        ("sqlite:///file::memory:?cache=shared&uri=true", True),
        ("sqlite:///catalog.db", False),
        ("postgresql://user@localhost/catalog", False),
    ],
)
def test_is_memory_sqlite(url, expected):
    assert is_memory_sqlite(make_url(url)) is expected


def test_in_memory_database_counts_inline(create_card, monkeypatch):
    from services import card_query

    create_card()

    def _no_worker(*args, **kwargs):
        raise AssertionError("count must not run on a worker thread")

    monkeypatch.setattr(card_query, "is_memory_sqlite", lambda url: True)
    monkeypatch.setattr(card_query, "ThreadPoolExecutor", _no_worker)

    page = fetch_cards_page(CardsFilters(), 10)
    assert page.total_count == 1
