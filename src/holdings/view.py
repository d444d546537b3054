"""Explicit view configuration and the combined result a holdings screen renders.

The caller owns a :class:`ViewConfig` and replaces it whenever the user changes
the grouping, bucket, display currency or sort. Each change is passed to
:func:`build_holdings_view`, which holds no state between calls.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal

from .aggregation import calculate_holdings
from .allocation import AllocationSlice, allocation_group_by, slice_holdings
from .contract import HoldingContract
from .conversion import (
    DisplayCurrency,
    DisplayCurrencyConversion,
    RateSource,
    as_rate_manager,
    combined_bucket,
    display_conversion,
)
from .models import GroupBy, Holdings, ValueIn
from .sorting import SortConfig


@dataclass(frozen=True)
class ViewConfig:
    """User selections that drive one aggregation pass."""
    group_by: GroupBy = GroupBy.ASSET_CLASS
    value_in: ValueIn = ValueIn.PORTFOLIO
    display_currency: DisplayCurrency = field(default_factory=DisplayCurrency)
    hide_empty: bool = True
    sort: SortConfig | None = None

    def with_value_in(self, value_in: ValueIn) -> "ViewConfig":
        """Select a bucket. The display currency resets to match it."""
        return replace(self, value_in=value_in, display_currency=DisplayCurrency.matching(value_in))

    def with_group_by(self, group_by: GroupBy) -> "ViewConfig":
        return replace(self, group_by=group_by)

    def with_display_currency(self, display_currency: DisplayCurrency) -> "ViewConfig":
        return replace(self, display_currency=display_currency)

    def with_sort(self, key: str) -> "ViewConfig":
        """Sort by a column, flipping direction if it is already selected."""
        return replace(self, sort=(self.sort or SortConfig(key=None)).toggled(key))


@dataclass(frozen=True)
class ViewTotals:
    """Headline figures in the display currency."""
    market_value: Decimal
    total_gain: Decimal
    gain_on_day: Decimal


@dataclass(frozen=True)
class HoldingsView:
    holdings: Holdings
    source_bucket: ValueIn
    conversion: DisplayCurrencyConversion
    totals: ViewTotals
    slices: list[AllocationSlice]


def build_holdings_view(contract: HoldingContract, config: ViewConfig, rates: RateSource) -> HoldingsView:
    """
    Calculate holdings for a view configuration and convert headline figures.

    Args:
        contract: Holdings payload from the data source.
        config: The current view selections.
        rates: A rate manager or a ``{(from_code, to_code): rate}`` table.

    Returns:
        A HoldingsView with grouped holdings, the converter used for combined
        totals, converted headline totals and allocation slices.
    """
    rates = as_rate_manager(rates)
    holdings = calculate_holdings(
        contract,
        value_in=config.value_in,
        group_by=config.group_by,
        hide_empty=config.hide_empty,
        sort=config.sort,
    )

    conversion = display_conversion(holdings.currency, config.display_currency, contract.portfolio, rates)

    view_totals = holdings.view_totals
    totals = ViewTotals(
        market_value=conversion(view_totals.get("market_value")),
        total_gain=conversion(view_totals.get("total_gain")),
        gain_on_day=conversion(view_totals.get("gain_on_day")),
    )

    slices = slice_holdings(
        holdings,
        config.value_in,
        conversion.target,
        rates,
        mode=allocation_group_by(config.group_by),
    )

    return HoldingsView(
        holdings=holdings,
        source_bucket=combined_bucket(config.value_in, holdings.is_mixed_currencies),
        conversion=conversion,
        totals=totals,
        slices=slices,
    )
