"""Allocation slices: group totals flattened into percentages for charts and summaries."""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable

from .conversion import RateSource, as_rate_manager, convert, subtotal_bucket
from .currency import Currency
from .models import GroupBy, Holdings, ValueIn
from .sorting import sort_group_keys


@dataclass(frozen=True)
class AllocationSlice:
    """One group's converted value and share of the total."""
    key: str
    label: str
    value: Decimal
    percentage: Decimal
    gain_on_day: Decimal
    irr: Decimal | None


@dataclass(frozen=True)
class RenormalizedSlices:
    """Slices left after exclusions, with percentages of their own total."""
    slices: tuple[AllocationSlice, ...]
    total: Decimal


def allocation_group_by(group_by: GroupBy) -> GroupBy:
    """Map a table grouping onto the grouping used by allocation charts."""
    if group_by == GroupBy.MARKET_CURRENCY:
        return GroupBy.MARKET
    return group_by


def _percentage(value: Decimal, total: Decimal) -> Decimal:
    if total == 0:
        return Decimal("0")
    return value / total * 100


def slice_holdings(
    holdings: Holdings,
    bucket: ValueIn,
    display_currency: Currency,
    rates: RateSource,
    mode: GroupBy = GroupBy.ASSET_CLASS,
) -> list[AllocationSlice]:
    """
    Produce one allocation slice per holding group.

    Values and day gains are converted into ``display_currency`` from the
    currency of each group's subtotal. A TRADE subtotal mixing trade currencies
    is read from the BASE bucket instead.

    Args:
        holdings: Calculated holdings.
        bucket: The bucket to read subtotals from.
        display_currency: Currency to express slice values in.
        rates: A rate manager or a ``{(from_code, to_code): rate}`` table.
        mode: Grouping dimension used to order the slices.

    Returns:
        Slices in group display order with percentages of the total, or an
        empty list when the total is zero.
    """
    rates = as_rate_manager(rates)
    converted: dict[str, AllocationSlice] = {}
    for group in holdings.holding_groups:
        group_bucket = subtotal_bucket(group, bucket)
        subtotal = group.subtotal_in(group_bucket)
        source = subtotal.currency if group_bucket == ValueIn.TRADE else holdings.portfolio.bucket_currency(group_bucket)
        converted[group.key] = AllocationSlice(
            key=group.key,
            label=group.key,
            value=convert(subtotal.get("market_value"), source, display_currency, rates),
            percentage=Decimal("0"),
            gain_on_day=convert(subtotal.get("gain_on_day"), source, display_currency, rates),
            irr=subtotal.irr,
        )

    total = sum((s.value for s in converted.values()), Decimal("0"))
    if total == 0:
        return []

    return [
        replace(converted[key], percentage=_percentage(converted[key].value, total))
        for key in sort_group_keys(converted, mode)
    ]


def renormalize(slices: Iterable[AllocationSlice], excluded_keys: Iterable[str] = ()) -> RenormalizedSlices:
    """
    Recompute percentages over the slices that are not excluded.

    Args:
        slices: Slices to filter. Not modified.
        excluded_keys: Keys of slices to leave out.

    Returns:
        The remaining slices, in their original order, with percentages that
        sum to 100 of the remaining total.
    """
    excluded = set(excluded_keys)
    remaining = [s for s in slices if s.key not in excluded]
    total = sum((s.value for s in remaining), Decimal("0"))
    return RenormalizedSlices(
        slices=tuple(replace(s, percentage=_percentage(s.value, total)) for s in remaining),
        total=total,
    )


def toggle_excluded(excluded: Iterable[str], key: str) -> frozenset[str]:
    """Return a new exclusion set with ``key`` added, or removed if present."""
    excluded = frozenset(excluded)
    if key in excluded:
        return excluded - {key}
    return excluded | {key}
