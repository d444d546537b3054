"""Subtotals per group and grand totals per portfolio, for every currency bucket.

Group subtotals and the grand total are both produced by
:func:`sum_money_values`, so summing the subtotals of all groups gives exactly
the total obtained by summing every position directly.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from .categories import is_cash_related
from .contract import HoldingContract
from .conversion import combined_bucket, resolve_source_currency
from .currency import Currency
from .grouping import group_positions
from .models import ADDITIVE_FIELDS, GroupBy, HoldingGroup, Holdings, MoneyValues, Position, ValueIn
from .sorting import SortConfig, sort_positions, sort_positions_within_group

SUMMED_FIELDS: tuple[str, ...] = ADDITIVE_FIELDS + ("cash",)


def calculate_weight(market_value: Decimal, portfolio_market_value: Decimal) -> Decimal:
    """Return ``market_value`` as a fraction of the portfolio, or 0 for an empty portfolio."""
    if portfolio_market_value == 0:
        return Decimal("0")
    return market_value / portfolio_market_value


def _common_currency(values: Iterable[MoneyValues]) -> Currency | None:
    # The shared currency of all values, or None when they differ
    currency: Currency | None = None
    for value in values:
        if value.currency is None:
            continue
        if currency is None:
            currency = value.currency
        elif currency.code != value.currency.code:
            return None
    return currency


def sum_money_values(values: Iterable[MoneyValues], currency: Currency | None = None) -> MoneyValues:
    """
    Sum money values field-wise.

    Missing fields count as zero. IRR, ROI, average cost and weight are not
    additive and are left as None for the caller to derive.

    Args:
        values: Money values in a single bucket.
        currency: Currency of the result. Defaults to the currency the values
            share, or None when they are in different currencies.

    Returns:
        A new MoneyValues holding the sums.
    """
    values = list(values)
    totals = {name: Decimal("0") for name in SUMMED_FIELDS}
    for value in values:
        for name in SUMMED_FIELDS:
            totals[name] += value.get(name)

    if currency is None:
        currency = _common_currency(values)

    return MoneyValues(currency=currency, **totals)


def _contribution(position: Position, bucket: ValueIn) -> MoneyValues | None:
    # What a position adds to a subtotal. Cash-like positions count towards cash.
    values = position.money_values.get(bucket)
    if values is None:
        return None
    cash = values.get("market_value") if is_cash_related(position.asset) else Decimal("0")
    return replace(values, cash=cash)


def subtotal(
    positions: Iterable[Position],
    bucket: ValueIn,
    portfolio_market_value: Decimal,
    currency: Currency | None = None,
) -> MoneyValues:
    """
    Aggregate positions into a subtotal for one bucket.

    Args:
        positions: Positions of one group.
        bucket: The bucket to aggregate.
        portfolio_market_value: Total portfolio market value in the same bucket,
            used to derive the weight.
        currency: Currency of the result, if known.

    Returns:
        The subtotal. ``weight`` is the group's share of the portfolio and
        ``irr`` is None because IRR is not additive across positions.
    """
    contributions = [c for c in (_contribution(p, bucket) for p in positions) if c is not None]
    total = sum_money_values(contributions, currency)
    return replace(total, weight=calculate_weight(total.get("market_value"), portfolio_market_value))


def portfolio_market_values(positions: Sequence[Position]) -> dict[ValueIn, Decimal]:
    """Return the total market value of all positions, per bucket."""
    result: dict[ValueIn, Decimal] = {}
    for bucket in ValueIn:
        contributions = [c for c in (_contribution(p, bucket) for p in positions) if c is not None]
        result[bucket] = sum_money_values(contributions).get("market_value")
    return result


def position_weight(position: Position, bucket: ValueIn, portfolio_market_value: Decimal) -> Decimal:
    """Return a position's market value as a fraction of the portfolio."""
    values = position.money_values.get(bucket)
    market_value = values.get("market_value") if values is not None else Decimal("0")
    return calculate_weight(market_value, portfolio_market_value)


def subtotals(
    positions: Sequence[Position],
    market_values: Mapping[ValueIn, Decimal],
) -> dict[ValueIn, MoneyValues]:
    """
    Aggregate positions into a subtotal for every bucket.

    Args:
        positions: Positions of one group.
        market_values: Portfolio market value per bucket.

    Returns:
        Subtotals keyed by bucket.
    """
    return {
        bucket: subtotal(positions, bucket, market_values.get(bucket, Decimal("0")))
        for bucket in ValueIn
    }


def grand_total(
    holding_groups: Iterable[HoldingGroup],
    market_values: Mapping[ValueIn, Decimal],
) -> dict[ValueIn, MoneyValues]:
    """
    Sum group subtotals into portfolio-wide totals for every bucket.

    Args:
        holding_groups: Groups with computed subtotals.
        market_values: Portfolio market value per bucket.

    Returns:
        Totals keyed by bucket, so switching the selected bucket is a lookup.
    """
    holding_groups = list(holding_groups)
    totals: dict[ValueIn, MoneyValues] = {}
    for bucket in ValueIn:
        total = sum_money_values(g.sub_totals[bucket] for g in holding_groups if bucket in g.sub_totals)
        totals[bucket] = replace(
            total,
            weight=calculate_weight(total.get("market_value"), market_values.get(bucket, Decimal("0"))),
        )
    return totals


def is_mixed_currencies(positions: Iterable[Position]) -> bool:
    """Return True when positions trade in more than one currency."""
    codes = {p.trade_currency.code for p in positions if p.trade_currency is not None}
    return len(codes) > 1


def view_totals(totals: Mapping[ValueIn, MoneyValues], bucket: ValueIn, mixed: bool) -> MoneyValues:
    """
    Return the grand total to display for the selected bucket.

    A TRADE total over positions in several trade currencies is meaningless, so
    the BASE total is shown instead.
    """
    return totals[combined_bucket(bucket, mixed)]


def build_holding_group(
    key: str,
    positions: Sequence[Position],
    market_values: Mapping[ValueIn, Decimal],
) -> HoldingGroup:
    """Create a group with subtotals for every bucket."""
    return HoldingGroup(key=key, positions=tuple(positions), sub_totals=subtotals(positions, market_values))


def calculate_holdings(
    contract: HoldingContract,
    value_in: ValueIn = ValueIn.PORTFOLIO,
    group_by: GroupBy = GroupBy.ASSET_CLASS,
    hide_empty: bool = False,
    sort: SortConfig | None = None,
) -> Holdings:
    """
    Group, sort and aggregate the positions of a holdings payload.

    Args:
        contract: Holdings payload from the data source. Not modified.
        value_in: The bucket selected for display.
        group_by: The grouping dimension.
        hide_empty: If True, drop positions with a total quantity of zero.
        sort: Optional column sort applied within each group. Defaults to
            cash last, then descending market value.

    Returns:
        Holdings with groups in display order, subtotals and grand totals for
        every bucket, and view totals for ``value_in``.
    """
    positions = [
        p for p in contract.positions
        if not (hide_empty and p.quantity_values.total == 0)
    ]
    market_values = portfolio_market_values(positions)
    mixed = contract.is_mixed_currencies or is_mixed_currencies(positions)

    holding_groups: list[HoldingGroup] = []
    for key, members in group_positions(positions, group_by):
        if sort is not None:
            ordered = sort_positions(members, sort, value_in)
        else:
            ordered = sort_positions_within_group(members, value_in)
        holding_groups.append(build_holding_group(key, ordered, market_values))

    totals = grand_total(holding_groups, market_values)

    return Holdings(
        portfolio=contract.portfolio,
        holding_groups=tuple(holding_groups),
        totals=totals,
        view_totals=view_totals(totals, value_in, mixed),
        value_in=value_in,
        currency=resolve_source_currency(value_in, contract.portfolio, mixed=mixed, positions=positions),
        is_mixed_currencies=mixed,
    )
