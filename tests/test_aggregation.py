"""Tests for subtotals, grand totals and holdings calculation."""

from decimal import Decimal

import pytest

from holdings.aggregation import (
    calculate_holdings,
    calculate_weight,
    grand_total,
    is_mixed_currencies,
    portfolio_market_values,
    position_weight,
    subtotal,
    sum_money_values,
    view_totals,
)
from holdings.models import ADDITIVE_FIELDS, GroupBy, MoneyValues, Position, ValueIn
from holdings.sorting import SortConfig, SortDirection

from factories import EUR, SGD, USD, make_contract, make_portfolio, make_position


class TestCalculateWeight:
    """Tests for weight against the portfolio market value."""

    def test_basic_weight(self):
        weight = calculate_weight(Decimal("8000"), Decimal("12643.74"))
        assert weight == Decimal("8000") / Decimal("12643.74")
        assert weight.quantize(Decimal("0.0001")) == Decimal("0.6327")

    def test_zero_portfolio_is_zero(self):
        assert calculate_weight(Decimal("500"), Decimal("0")) == Decimal("0")


class TestSumMoneyValues:
    """Tests for field-wise summation."""

    def test_missing_fields_count_as_zero(self):
        total = sum_money_values([
            MoneyValues(currency=USD, market_value=Decimal("10"), total_gain=Decimal("2")),
            MoneyValues(currency=USD, market_value=Decimal("5")),
        ])
        assert total.market_value == Decimal("15")
        assert total.total_gain == Decimal("2")
        assert total.dividends == Decimal("0")

    def test_non_additive_fields_are_not_summed(self):
        total = sum_money_values([
            MoneyValues(currency=USD, market_value=Decimal("10"), irr=Decimal("0.1"), average_cost=Decimal("3")),
            MoneyValues(currency=USD, market_value=Decimal("10"), irr=Decimal("0.2"), average_cost=Decimal("4")),
        ])
        assert total.irr is None
        assert total.roi is None
        assert total.average_cost is None

    def test_shared_currency_is_kept(self):
        total = sum_money_values([MoneyValues(currency=USD), MoneyValues(currency=USD)])
        assert total.currency == USD

    def test_different_currencies_have_no_currency(self):
        total = sum_money_values([MoneyValues(currency=USD), MoneyValues(currency=EUR)])
        assert total.currency is None

    def test_empty_sum(self):
        total = sum_money_values([])
        assert total.market_value == Decimal("0")
        assert total.currency is None


class TestSubtotal:
    """Tests for aggregating one group in one bucket."""

    def test_basic_aggregation(self):
        """Two positions in one group sum to the subtotal, weighted against the portfolio."""
        a = make_position("A", "8000")
        b = make_position("B", "2000")
        result = subtotal([a, b], ValueIn.PORTFOLIO, Decimal("12643.74"))
        assert result.market_value == Decimal("10000")
        assert result.weight == Decimal("10000") / Decimal("12643.74")
        assert position_weight(a, ValueIn.PORTFOLIO, Decimal("12643.74")) == Decimal("8000") / Decimal("12643.74")

    def test_group_irr_is_not_computed(self):
        a = make_position("A", "100", irr="0.12")
        b = make_position("B", "100", irr="0.08")
        result = subtotal([a, b], ValueIn.PORTFOLIO, Decimal("200"))
        assert result.irr is None
        assert result.roi is None

    def test_cash_positions_count_towards_cash(self):
        stock = make_position("AAPL", "700")
        cash = make_position("USD", "300", category="CASH", market="NASDAQ")
        result = subtotal([stock, cash], ValueIn.PORTFOLIO, Decimal("1000"))
        assert result.cash == Decimal("300")
        assert result.market_value == Decimal("1000")

    def test_position_without_bucket_counts_as_zero(self):
        a = make_position("A", "100")
        b = make_position("B", "50")
        b = Position(asset=b.asset, money_values={ValueIn.TRADE: b.money_values[ValueIn.TRADE]})
        result = subtotal([a, b], ValueIn.PORTFOLIO, Decimal("100"))
        assert result.market_value == Decimal("100")

    def test_inputs_are_not_modified(self):
        a = make_position("A", "100", total_gain="5")
        before = a.money_values[ValueIn.PORTFOLIO]
        subtotal([a], ValueIn.PORTFOLIO, Decimal("100"))
        assert a.money_values[ValueIn.PORTFOLIO] is before
        assert before.cash is None
        assert before.weight is None


class TestGrandTotal:
    """Tests for portfolio-wide totals."""

    def test_sum_of_subtotals_equals_sum_of_positions(self):
        positions = [
            make_position("AAPL", "1234.56", total_gain="10.01", gain_on_day="-3.33"),
            make_position("D05", "789.10", market="SGX", sector="Financials", total_gain="-4.50"),
            make_position("VTI", "4321.99", category="ETF", total_gain="0.49", gain_on_day="1.11"),
            make_position("USD", "100.00", category="CASH"),
        ]
        holdings = calculate_holdings(make_contract(positions))
        for bucket in ValueIn:
            direct = sum_money_values(p.money_values[bucket] for p in positions)
            assert holdings.totals[bucket].market_value == direct.market_value
            assert holdings.totals[bucket].total_gain == direct.total_gain
            assert holdings.totals[bucket].gain_on_day == direct.gain_on_day

    def test_grand_total_weight_is_one(self):
        positions = [make_position("A", "300"), make_position("B", "700", category="ETF")]
        holdings = calculate_holdings(make_contract(positions))
        assert holdings.totals[ValueIn.PORTFOLIO].weight == Decimal("1")

    def test_group_weights_sum_to_one(self):
        """Group weights add up to one in every bucket, even for thirds."""
        positions = [
            make_position("AAPL", "100", portfolio_value="100", base_value="100"),
            make_position("VTI", "100", category="ETF", portfolio_value="100", base_value="100"),
            make_position("USD", "100", category="CASH", portfolio_value="100", base_value="100"),
        ]
        holdings = calculate_holdings(make_contract(positions))
        assert len(holdings.holding_groups) == 3
        for bucket in ValueIn:
            total_weight = sum(g.subtotal_in(bucket).weight for g in holdings.holding_groups)
            assert abs(total_weight - 1) < Decimal("1e-20")

    def test_every_field_consistent_in_every_bucket(self):
        """Subtotals, direct sums and grand totals agree field by field."""
        def fields(scale):
            return {name: str(Decimal(index + 1) * scale) for index, name in enumerate(ADDITIVE_FIELDS)
                    if name != "market_value"}

        positions = [
            make_position(
                code, value, category=category, market=market, sector=sector,
                portfolio_value=str(Decimal(value) * 2), base_value=str(Decimal(value) * 3),
                bucket_extra={
                    ValueIn.TRADE: fields(Decimal("1.01") * n),
                    ValueIn.PORTFOLIO: fields(Decimal("20.3") * n),
                    ValueIn.BASE: fields(Decimal("-300.7") * n),
                },
            )
            for n, (code, value, category, market, sector) in enumerate([
                ("AAPL", "1234.56", "EQUITY", "NASDAQ", "Technology"),
                ("D05", "789.10", "EQUITY", "SGX", "Financials"),
                ("VTI", "4321.99", "ETF", "NYSE", None),
                ("USD", "100.00", "CASH", None, None),
            ], start=1)
        ]

        for dimension in GroupBy:
            holdings = calculate_holdings(make_contract(positions), group_by=dimension)
            for bucket in ValueIn:
                direct = sum_money_values(p.money_values[bucket] for p in positions)
                from_groups = sum_money_values(g.subtotal_in(bucket) for g in holdings.holding_groups)
                for name in ADDITIVE_FIELDS:
                    assert from_groups.get(name) == direct.get(name), (dimension, bucket, name)
                    assert holdings.totals[bucket].get(name) == direct.get(name), (dimension, bucket, name)

    def test_empty_groups(self):
        totals = grand_total([], {bucket: Decimal("0") for bucket in ValueIn})
        assert totals[ValueIn.BASE].market_value == Decimal("0")
        assert totals[ValueIn.BASE].weight == Decimal("0")


class TestMixedCurrencies:
    """Tests for TRADE totals across several trade currencies."""

    def test_detects_mixed_trade_currencies(self):
        assert is_mixed_currencies([make_position("A", "1"), make_position("B", "1", market="SGX")])
        assert not is_mixed_currencies([make_position("A", "1"), make_position("B", "1", market="NYSE")])

    def test_trade_totals_fall_back_to_base(self):
        """A USD and a EUR trade position resolve combined TRADE totals to BASE."""
        usd = make_position("AAPL", "100", trade_currency=USD, base_currency=SGD, base_value="135")
        eur = make_position("SAP", "50", trade_currency=EUR, base_currency=SGD, base_value="73")
        portfolio = make_portfolio(currency=USD, base=SGD)
        holdings = calculate_holdings(make_contract([usd, eur], portfolio), value_in=ValueIn.TRADE)

        assert holdings.is_mixed_currencies
        assert holdings.currency == SGD
        assert holdings.view_totals.market_value == Decimal("208")
        assert holdings.view_totals is holdings.totals[ValueIn.BASE]

    def test_single_trade_currency_uses_that_currency(self):
        positions = [make_position("D05", "10", market="SGX"), make_position("O39", "20", market="SGX")]
        holdings = calculate_holdings(make_contract(positions), value_in=ValueIn.TRADE)
        assert not holdings.is_mixed_currencies
        assert holdings.currency == SGD
        assert holdings.view_totals is holdings.totals[ValueIn.TRADE]

    def test_view_totals_for_other_buckets(self):
        totals = {bucket: MoneyValues(market_value=Decimal(i)) for i, bucket in enumerate(ValueIn)}
        assert view_totals(totals, ValueIn.PORTFOLIO, mixed=True) is totals[ValueIn.PORTFOLIO]
        assert view_totals(totals, ValueIn.TRADE, mixed=True) is totals[ValueIn.BASE]


class TestCalculateHoldings:
    """Tests for the full group, sort and aggregate pass."""

    def test_groups_by_asset_class_in_display_order(self):
        positions = [
            make_position("USD", "50", category="CASH"),
            make_position("VTI", "200", category="ETF"),
            make_position("AAPL", "300"),
        ]
        holdings = calculate_holdings(make_contract(positions))
        assert holdings.group_keys == ["Equity", "ETF", "Cash"]
        assert holdings.position_count == 3

    def test_single_position_group_is_suppressed(self):
        """A single-position group still computes a subtotal equal to its position."""
        positions = [make_position("AAPL", "300"), make_position("VTI", "200", category="ETF"),
                     make_position("QQQ", "100", category="ETF")]
        holdings = calculate_holdings(make_contract(positions))

        equity = holdings.group("Equity")
        assert equity.position_count == 1
        assert equity.suppress_subtotal
        assert equity.subtotal_in(ValueIn.PORTFOLIO).market_value == Decimal("300")
        assert not holdings.group("ETF").suppress_subtotal

    def test_zero_portfolio_weights(self):
        positions = [make_position("A", "0"), make_position("B", "0", category="ETF")]
        holdings = calculate_holdings(make_contract(positions))
        for group in holdings.holding_groups:
            for bucket in ValueIn:
                assert group.subtotal_in(bucket).weight == Decimal("0")

    def test_default_order_within_group(self):
        positions = [
            make_position("CASH", "900", category="CASH", sector="Cash"),
            make_position("SMALL", "10", sector="Tech"),
            make_position("BIG", "500", sector="Tech"),
        ]
        holdings = calculate_holdings(make_contract(positions), group_by=GroupBy.MARKET)
        codes = [p.asset.code for p in holdings.group("NASDAQ").positions]
        assert codes == ["BIG", "SMALL", "CASH"]

    def test_column_sort(self):
        positions = [make_position("MSFT", "10"), make_position("AAPL", "20"), make_position("GOOG", "30")]
        holdings = calculate_holdings(
            make_contract(positions),
            sort=SortConfig("asset_name", SortDirection.ASC),
        )
        assert [p.asset.code for p in holdings.group("Equity").positions] == ["AAPL", "GOOG", "MSFT"]

    def test_hide_empty(self):
        positions = [make_position("A", "100"), make_position("SOLD", "0", quantity="0")]
        assert calculate_holdings(make_contract(positions)).position_count == 2
        assert calculate_holdings(make_contract(positions), hide_empty=True).position_count == 1

    def test_contract_is_not_modified(self):
        positions = (make_position("B", "1"), make_position("A", "2"))
        contract = make_contract(positions)
        calculate_holdings(contract)
        assert contract.positions == positions

    def test_portfolio_market_values_per_bucket(self):
        positions = [make_position("A", "100", portfolio_value="150", base_value="200")]
        values = portfolio_market_values(positions)
        assert values[ValueIn.TRADE] == Decimal("100")
        assert values[ValueIn.PORTFOLIO] == Decimal("150")
        assert values[ValueIn.BASE] == Decimal("200")

    def test_missing_group_raises(self):
        holdings = calculate_holdings(make_contract([make_position("A", "1")]))
        with pytest.raises(KeyError):
            holdings.group("Nope")
