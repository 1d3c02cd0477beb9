"""Tests for filter state, range coercion and transitions."""

import dataclasses
import math

import pytest

from core.filters import (
    ExplorerState,
    GrantFilters,
    Range,
    clear_range,
    coerce_range,
    deselect_value,
    filters_to_dict,
    normalize_filters,
    range_bounds,
    reset_filters,
    reset_state,
    select_value,
    set_range,
    set_selection,
)


class TestRangeCoercion:
    def test_dict_and_pair_are_equivalent(self) -> None:
        assert coerce_range({"min": 2010, "max": 2020}) == coerce_range([2010, 2020]) == Range(2010.0, 2020.0)

    def test_range_instance_passes_through(self) -> None:
        assert range_bounds(Range(1, 2)) == (1.0, 2.0)

    def test_unset(self) -> None:
        assert range_bounds(None) is None
        assert coerce_range(None) is None

    @pytest.mark.parametrize("raw", [{"min": "abc", "max": 5}, [None, 5], [1], "1-5", {"max": 3}, 42])
    def test_malformed_bounds_become_nan(self, raw) -> None:
        lo, hi = range_bounds(raw)
        assert math.isnan(lo) or math.isnan(hi)

    def test_numeric_strings_are_accepted(self) -> None:
        assert range_bounds({"min": "2010", "max": "2012"}) == (2010.0, 2012.0)


class TestNormalizeFilters:
    def test_empty_payload_is_default(self) -> None:
        f = normalize_filters({})
        assert f == GrantFilters()
        assert f.is_default
        assert normalize_filters(None) == GrantFilters()

    def test_payload(self) -> None:
        f = normalize_filters(
            {
                "agency": ["NIH", "NIH", None],
                "state": "CA",
                "fiscal_year": [2015, 2020],
                "amount_usd": {"min": 0, "max": 1000},
                "unknown": ["ignored"],
            }
        )
        assert f.agency == ("NIH",)
        assert f.state == ("CA",)
        assert f.fiscal_year == Range(2015.0, 2020.0)
        assert f.amount_usd == Range(0.0, 1000.0)

    def test_scalar_selection_is_wrapped(self) -> None:
        f = normalize_filters({"agency": 5, "state": True, "readiness": None})
        assert f.agency == ("5",)
        assert f.state == ("True",)
        assert f.readiness == ()

    def test_round_trip_through_dict(self) -> None:
        f = GrantFilters(agency_ic=("NCI",), fiscal_year=Range(2010.0, 2012.0))
        assert normalize_filters(filters_to_dict(f)) == f

    def test_selections_map_to_record_columns(self) -> None:
        f = GrantFilters(objective_general=("Cure",))
        selections = dict(f.selections())
        assert selections["Objective - General"] == ("Cure",)
        assert selections["Agency IC"] == ()
        assert dict(f.ranges()) == {"Fiscal Year": None, "Amount": None}


class TestTransitions:
    def test_filters_are_frozen(self) -> None:
        f = GrantFilters()
        with pytest.raises(dataclasses.FrozenInstanceError):
            f.agency = ("NIH",)  # type: ignore[misc]

    def test_select_and_deselect(self) -> None:
        f = select_value(GrantFilters(), "agency", "NIH")
        f = select_value(f, "agency", "DoD")
        f = select_value(f, "agency", "NIH")
        assert f.agency == ("NIH", "DoD")
        f = deselect_value(f, "agency", "NIH")
        assert f.agency == ("DoD",)

    def test_transitions_do_not_mutate(self) -> None:
        base = GrantFilters()
        select_value(base, "state", "CA")
        set_range(base, "fiscal_year", [2010, 2011])
        assert base == GrantFilters()

    def test_set_selection(self) -> None:
        f = set_selection(GrantFilters(), "intervention", ["Drug", "Device", "Drug"])
        assert f.intervention == ("Drug", "Device")

    def test_set_and_clear_range(self) -> None:
        f = set_range(GrantFilters(), "amount_usd", {"min": 10, "max": 20})
        assert f.amount_usd == Range(10.0, 20.0)
        assert clear_range(f, "amount_usd").amount_usd is None

    def test_unknown_names_raise(self) -> None:
        with pytest.raises(KeyError):
            select_value(GrantFilters(), "amount", "x")
        with pytest.raises(KeyError):
            set_range(GrantFilters(), "agency", [1, 2])

    def test_reset(self) -> None:
        f = select_value(set_range(GrantFilters(), "fiscal_year", [2010, 2011]), "state", "CA")
        assert f != reset_filters()
        assert reset_filters() == GrantFilters()
        assert reset_state() == ExplorerState(filters=GrantFilters(), query="")
