import random

from case_fetcher.lookup import (
    CATEGORY_LABELS,
    MOCK_CASES,
    CategoryRandomLookupResolver,
    ExactLookupResolver,
)
from case_fetcher.models import CaseQuery, OutcomeKind


def test_exact_lookup_finds_seeded_case() -> None:
    outcome = ExactLookupResolver().resolve(CaseQuery("criminal", "101", "2023"))
    assert outcome.kind is OutcomeKind.FOUND
    assert outcome.record.parties == "State vs. A"
    assert outcome.record.orders[0].description == "Order on bail."


def test_exact_lookup_misses_on_wrong_year() -> None:
    outcome = ExactLookupResolver().resolve(CaseQuery("criminal", "101", "2024"))
    assert outcome.kind is OutcomeKind.NOT_FOUND


def test_exact_lookup_is_deterministic() -> None:
    resolver = ExactLookupResolver()
    query = CaseQuery("civil", "456", "2024")
    assert resolver.resolve(query) == resolver.resolve(query)


def test_exact_lookup_with_custom_table() -> None:
    cases = {"writ": MOCK_CASES["writ"][:1]}
    resolver = ExactLookupResolver(cases=cases)
    assert resolver.resolve(CaseQuery("writ", "301", "2021")).ok
    assert not resolver.resolve(CaseQuery("writ", "302", "2022")).ok


def test_category_lookup_never_crosses_categories() -> None:
    resolver = CategoryRandomLookupResolver(rng=random.Random(7))
    for category, label in CATEGORY_LABELS.items():
        for _ in range(20):
            outcome = resolver.resolve(CaseQuery(category, "999", "1999"))
            assert outcome.kind is OutcomeKind.FOUND
            assert outcome.record.case_type == label
            assert outcome.record in MOCK_CASES[category]


def test_category_lookup_unknown_category_is_not_found() -> None:
    resolver = CategoryRandomLookupResolver(rng=random.Random(1))
    for _ in range(5):
        assert resolver.resolve(CaseQuery("unknown", "1", "2023")).kind is OutcomeKind.NOT_FOUND


def test_category_lookup_uses_injected_rng() -> None:
    query = CaseQuery("civil", "1", "2023")
    first = CategoryRandomLookupResolver(rng=random.Random(42)).resolve(query)
    second = CategoryRandomLookupResolver(rng=random.Random(42)).resolve(query)
    assert first.record == second.record
