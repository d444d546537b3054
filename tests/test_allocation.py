"""Tests for allocation slices and renormalization."""

from decimal import Decimal

import pytest

from holdings.aggregation import calculate_holdings
from holdings.allocation import (
    AllocationSlice,
    allocation_group_by,
    renormalize,
    slice_holdings,
    toggle_excluded,
)
from holdings.models import GroupBy, ValueIn

from factories import EUR, SGD, USD, make_contract, make_portfolio, make_position


def make_slice(key, value):
    return AllocationSlice(key=key, label=key, value=Decimal(value), percentage=Decimal("0"),
                           gain_on_day=Decimal("0"), irr=None)


class TestSliceHoldings:
    """Tests for flattening holding groups into allocation slices."""

    def test_percentages_of_total(self):
        positions = [
            make_position("AAPL", "600", gain_on_day="6"),
            make_position("VTI", "300", category="ETF"),
            make_position("USD", "100", category="CASH"),
        ]
        holdings = calculate_holdings(make_contract(positions))
        slices = slice_holdings(holdings, ValueIn.PORTFOLIO, USD, {})

        assert [s.key for s in slices] == ["Equity", "ETF", "Cash"]
        assert [s.percentage for s in slices] == [Decimal("60"), Decimal("30"), Decimal("10")]
        assert slices[0].gain_on_day == Decimal("6")
        assert slices[0].irr is None

    def test_converts_into_display_currency(self):
        positions = [make_position("AAPL", "100"), make_position("VTI", "100", category="ETF")]
        holdings = calculate_holdings(make_contract(positions))
        slices = slice_holdings(holdings, ValueIn.PORTFOLIO, EUR, {("USD", "EUR"): Decimal("0.9")})
        assert [s.value for s in slices] == [Decimal("90.0"), Decimal("90.0")]
        assert [s.percentage for s in slices] == [Decimal("50"), Decimal("50")]

    def test_mixed_trade_group_reads_base(self):
        positions = [
            make_position("AAPL", "100", trade_currency=USD, base_currency=SGD, base_value="130"),
            make_position("SAP", "100", trade_currency=EUR, base_currency=SGD, base_value="150"),
        ]
        portfolio = make_portfolio(currency=USD, base=SGD)
        holdings = calculate_holdings(make_contract(positions, portfolio), value_in=ValueIn.TRADE)
        slices = slice_holdings(holdings, ValueIn.TRADE, SGD, {})
        assert slices[0].value == Decimal("280")

    def test_zero_total_has_no_slices(self):
        holdings = calculate_holdings(make_contract([make_position("A", "0")]))
        assert slice_holdings(holdings, ValueIn.PORTFOLIO, USD, {}) == []

    def test_missing_rate_warns_and_passes_through(self):
        holdings = calculate_holdings(make_contract([make_position("A", "10")]))
        with pytest.warns(UserWarning):
            slices = slice_holdings(holdings, ValueIn.PORTFOLIO, EUR, {})
        assert slices[0].value == Decimal("10")

    def test_market_currency_charts_by_market(self):
        assert allocation_group_by(GroupBy.MARKET_CURRENCY) == GroupBy.MARKET
        assert allocation_group_by(GroupBy.SECTOR) == GroupBy.SECTOR


class TestRenormalize:
    """Tests for excluding slices and recomputing percentages."""

    def test_proportional_renormalization(self):
        slices = [make_slice("Equity", "50"), make_slice("ETF", "30"), make_slice("Cash", "20")]
        result = renormalize(slices, {"Cash"})
        assert result.total == Decimal("80")
        assert [s.key for s in result.slices] == ["Equity", "ETF"]
        assert [s.percentage for s in result.slices] == [Decimal("62.5"), Decimal("37.5")]

    def test_no_exclusions_sum_to_hundred(self):
        slices = [make_slice("A", "1"), make_slice("B", "3")]
        result = renormalize(slices)
        assert sum(s.percentage for s in result.slices) == Decimal("100")

    def test_excluding_everything(self):
        result = renormalize([make_slice("A", "1")], ["A"])
        assert result.slices == ()
        assert result.total == Decimal("0")

    def test_input_is_not_modified(self):
        slices = [make_slice("A", "1"), make_slice("B", "1")]
        renormalize(slices, ["A"])
        assert [s.percentage for s in slices] == [Decimal("0"), Decimal("0")]

    def test_toggle_excluded(self):
        excluded = toggle_excluded(set(), "Cash")
        assert excluded == frozenset({"Cash"})
        assert toggle_excluded(excluded, "Cash") == frozenset()
