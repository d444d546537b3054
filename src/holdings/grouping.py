"""Partition positions into named groups along one dimension."""

from typing import Iterable

from .categories import CASH, OTHER, UNCLASSIFIED, get_report_category, is_cash_related
from .models import GroupBy, Position
from .sorting import sort_group_keys


def group_key(position: Position, dimension: GroupBy) -> str:
    """
    Derive the group key for a position.

    Args:
        position: The position to classify.
        dimension: The grouping dimension.

    Returns:
        The group key. Positions lacking the classification land in a fallback
        group: "Unclassified" (or "Cash" for cash-like assets) for sectors and
        "Other" for markets.
    """
    asset = position.asset

    if dimension == GroupBy.ASSET_CLASS:
        return get_report_category(asset)

    if dimension == GroupBy.SECTOR:
        if asset.sector:
            return asset.sector
        return CASH if is_cash_related(asset) else UNCLASSIFIED

    market = asset.market
    if dimension == GroupBy.MARKET:
        return market.code if market is not None and market.code else OTHER

    if dimension == GroupBy.MARKET_CURRENCY:
        if market is not None and market.currency is not None and market.currency.code:
            return market.currency.code
        return OTHER

    raise ValueError(f"Unsupported grouping dimension: {dimension}")


def group_positions(
    positions: Iterable[Position],
    dimension: GroupBy
) -> list[tuple[str, list[Position]]]:
    """
    Group positions by the selected dimension.

    Args:
        positions: Positions to group. Not modified.
        dimension: The grouping dimension.

    Returns:
        A list of ``(group_key, positions)`` pairs in display order. Positions
        keep their input order within each group.
    """
    grouped: dict[str, list[Position]] = {}
    for position in positions:
        grouped.setdefault(group_key(position, dimension), []).append(position)

    return [(key, grouped[key]) for key in sort_group_keys(grouped, dimension)]
