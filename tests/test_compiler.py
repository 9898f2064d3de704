from datetime import datetime, timezone

import pytest

from hotsheets.matching import SortOrder, compile_criteria, compile_sort, normalize_criteria
from hotsheets.matching.compiler import split_terms
from hotsheets.matching.predicates import (
    TRUE,
    And,
    Eq,
    In,
    Like,
    Not,
    Or,
    Range,
    is_true,
    matches,
)
from hotsheets.models import (
    Criteria,
    GeoFilter,
    GeoSelector,
    KeywordFilter,
    NumericRange,
    PriceFilter,
)


def _geo(*selectors, state=None):
    return Criteria(geo=GeoFilter(state=state, selectors=tuple(selectors)))


def test_empty_criteria_compiles_to_identity():
    assert is_true(compile_criteria(Criteria()))


def test_compilation_is_deterministic():
    criteria = normalize_criteria(
        {"selectedTowns": ["Boston", "Cambridge-Harvard Square"], "priceMax": 900000}
    )
    assert compile_criteria(criteria) == compile_criteria(criteria)


def test_city_only_selectors_collapse_to_in_clause():
    predicate = compile_criteria(
        _geo(GeoSelector(city="Boston"), GeoSelector(city="Cambridge"))
    )
    assert predicate == In("city", ("Boston", "Cambridge"))


def test_city_and_neighborhood_selectors_are_unioned():
    predicate = compile_criteria(
        _geo(
            GeoSelector(city="Boston"),
            GeoSelector(city="Boston", neighborhood="Back Bay"),
        )
    )
    assert predicate == Or(
        (
            In("city", ("Boston",)),
            And((Eq("city", "Boston"), Eq("neighborhood", "Back Bay"))),
        )
    )


def test_city_selector_covers_every_neighborhood_of_that_city():
    predicate = compile_criteria(
        _geo(
            GeoSelector(city="Boston"),
            GeoSelector(city="Boston", neighborhood="Back Bay"),
        )
    )
    assert matches(predicate, {"city": "Boston", "neighborhood": "South End"})
    assert matches(predicate, {"city": "Boston", "neighborhood": "Back Bay"})
    assert matches(predicate, {"city": "Boston", "neighborhood": None})
    assert not matches(predicate, {"city": "Cambridge", "neighborhood": "Back Bay"})


def test_neighborhood_selector_requires_both_fields():
    predicate = compile_criteria(_geo(GeoSelector(city="Boston", neighborhood="Back Bay")))
    assert predicate == And((Eq("city", "Boston"), Eq("neighborhood", "Back Bay")))
    assert not matches(predicate, {"city": "Boston", "neighborhood": None})


def test_state_clause_comes_first():
    predicate = compile_criteria(_geo(GeoSelector(city="Boston"), state="MA"))
    assert predicate == And((Eq("state", "MA"), In("city", ("Boston",))))


def test_price_override_flags_remove_bounds():
    criteria = Criteria(price=PriceFilter(min=500000, max=900000, has_no_min=True))
    predicate = compile_criteria(criteria)
    assert predicate == Range("price", None, 900000.0)
    assert matches(predicate, {"price": 100000})


def test_both_price_overrides_drop_the_clause():
    criteria = Criteria(
        price=PriceFilter(min=500000, max=900000, has_no_min=True, has_no_max=True)
    )
    assert is_true(compile_criteria(criteria))


def test_zero_price_is_a_real_bound():
    predicate = compile_criteria(Criteria(price=PriceFilter(min=0)))
    assert predicate == Range("price", 0.0, None)


def test_property_types_are_mapped_and_unknown_pass_through():
    criteria = Criteria(property_types=frozenset({"condo", "co_op"}))
    assert compile_criteria(criteria) == In("property_type", ("Condominium", "co_op"))


def test_default_statuses_apply_only_without_explicit_statuses():
    assert compile_criteria(Criteria(), ["coming_soon", "active"]) == In(
        "status", ("active", "coming_soon")
    )
    explicit = Criteria(statuses=frozenset({"sold"}))
    assert compile_criteria(explicit, ["active"]) == In("status", ("sold",))


def test_numeric_ranges_map_to_listing_columns():
    criteria = Criteria(
        beds=NumericRange(min=2),
        parking=NumericRange(max=1),
        sqft=NumericRange(min=1000, max=2000),
    )
    assert compile_criteria(criteria) == And(
        (
            Range("bedrooms", 2.0, None),
            Range("square_feet", 1000.0, 2000.0),
            Range("total_parking_spaces", None, 1.0),
        )
    )


def test_non_finite_bound_is_treated_as_absent():
    criteria = Criteria(beds=NumericRange(min=float("nan"), max=3))
    assert compile_criteria(criteria) == Range("bedrooms", None, 3.0)


def test_keywords_any_mode():
    criteria = Criteria(keywords=KeywordFilter(include="pool, garage"))
    predicate = compile_criteria(criteria)
    assert predicate == Or((Like("description", "pool"), Like("description", "garage")))
    assert matches(predicate, {"description": "Sunny colonial with GARAGE"})


def test_keywords_all_mode():
    criteria = Criteria(keywords=KeywordFilter(include="pool, garage", mode="all"))
    predicate = compile_criteria(criteria)
    assert predicate == And((Like("description", "pool"), Like("description", "garage")))
    assert not matches(predicate, {"description": "garage only"})


def test_keyword_exclusion_keeps_listings_without_description():
    criteria = Criteria(keywords=KeywordFilter(exclude="basement"))
    predicate = compile_criteria(criteria)
    assert predicate == Not(Like("description", "basement"))
    assert matches(predicate, {"description": None})
    assert not matches(predicate, {"description": "Finished basement"})


def test_address_fields_compile_to_like_clauses():
    criteria = Criteria(zip_code="021", street_name=" Beacon ", listing_number="73")
    assert compile_criteria(criteria) == And(
        (
            Like("address", "Beacon"),
            Like("zip_code", "021", mode="prefix"),
            Like("listing_number", "73"),
        )
    )


@pytest.mark.parametrize(
    "raw, expected",
    [
        ({}, SortOrder("created_at", True)),
        ({"sortBy": "price-low"}, SortOrder("price", False)),
        ({"sortColumn": "bedrooms", "sortDirection": "desc"}, SortOrder("bedrooms", True)),
        ({"sortColumn": "price; drop table listings"}, SortOrder()),
    ],
)
def test_compile_sort(raw, expected):
    assert compile_sort(normalize_criteria(raw)) == expected


def test_split_terms_drops_blanks_and_duplicates():
    assert split_terms("pool, garage,, pool ,") == ["pool", "garage"]
    assert split_terms(None) == []


def test_identity_constant_is_empty_and():
    assert TRUE == And(())


NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)


def test_list_date_today_starts_at_midnight():
    predicate = compile_criteria(Criteria(list_date_days=0), now=NOW)
    assert predicate == Range("created_at", "2026-03-10T00:00:00+00:00", None)


def test_list_date_window_counts_back_from_now():
    predicate = compile_criteria(Criteria(list_date_days=7), now=NOW)
    assert predicate == Range("created_at", "2026-03-03T15:30:00+00:00", None)
    assert matches(predicate, {"created_at": "2026-03-05T00:00:00+00:00"})
    assert not matches(predicate, {"created_at": "2026-02-01T00:00:00+00:00"})


def test_off_market_window_uses_updated_at():
    predicate = compile_criteria(Criteria(off_market_days=30), now=NOW)
    assert predicate == Range("updated_at", "2026-02-08T15:30:00+00:00", None)


def test_only_open_houses_requires_scheduled_open_houses():
    predicate = compile_criteria(Criteria(only_open_houses=True))
    assert predicate == Not(Eq("open_houses", None))
    assert matches(predicate, {"open_houses": [{"date": "2026-03-14"}]})
    assert not matches(predicate, {"open_houses": None})


def test_price_per_sqft_requires_positive_square_feet():
    predicate = compile_criteria(Criteria(max_price_per_sqft=450))
    assert matches(predicate, {"square_feet": 1200})
    assert not matches(predicate, {"square_feet": 0})
    assert not matches(predicate, {"square_feet": None})


def test_time_windows_are_deterministic_for_a_fixed_now():
    criteria = Criteria(list_date_days=3, off_market_days=10)
    assert compile_criteria(criteria, now=NOW) == compile_criteria(criteria, now=NOW)


def test_geography_matches_catalog_spelling_exactly():
    predicate = compile_criteria(normalize_criteria({"selectedTowns": [" Boston-Back Bay "]}))
    assert predicate == And((Eq("city", "Boston"), Eq("neighborhood", "Back Bay")))
    assert matches(predicate, {"city": "Boston", "neighborhood": "Back Bay"})
    assert not matches(predicate, {"city": "boston", "neighborhood": "back bay"})
