"""Deterministic ordering of group keys and of positions within a group."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import cmp_to_key
from typing import Callable, Iterable, Sequence

from .categories import CASH, OTHER, REPORT_CATEGORY_SORT_ORDER, UNCLASSIFIED, is_cash_related
from .models import GroupBy, Position, ValueIn


def _compare(a, b) -> int:
    return (a > b) - (a < b)


def _compare_text(a: str, b: str) -> int:
    # Case-insensitive first, then exact, so distinct keys never compare equal
    return _compare(a.casefold(), b.casefold()) or _compare(a, b)


def compare_by_report_category(a: str, b: str) -> int:
    """Order report categories by rank; unknown categories follow, alphabetically."""
    unknown = len(REPORT_CATEGORY_SORT_ORDER)
    rank_a = REPORT_CATEGORY_SORT_ORDER.index(a) if a in REPORT_CATEGORY_SORT_ORDER else unknown
    rank_b = REPORT_CATEGORY_SORT_ORDER.index(b) if b in REPORT_CATEGORY_SORT_ORDER else unknown
    return _compare(rank_a, rank_b) or _compare_text(a, b)


def _compare_with_trailing(a: str, b: str, trailing: Sequence[str]) -> int:
    # Keys in ``trailing`` go last, in the order given
    rank_a = trailing.index(a) if a in trailing else -1
    rank_b = trailing.index(b) if b in trailing else -1
    return _compare(rank_a, rank_b) or _compare_text(a, b)


def compare_by_sector(a: str, b: str) -> int:
    """Classified sectors alphabetically, then Unclassified, then Cash."""
    return _compare_with_trailing(a, b, (UNCLASSIFIED, CASH))


def compare_group_keys(a: str, b: str, mode: GroupBy) -> int:
    """
    Compare two group keys for display order.

    Args:
        a: First group key.
        b: Second group key.
        mode: The grouping dimension the keys were produced by.

    Returns:
        A negative number, zero or a positive number. Zero only when the keys
        are identical.
    """
    if mode == GroupBy.ASSET_CLASS:
        return compare_by_report_category(a, b)
    if mode == GroupBy.SECTOR:
        return compare_by_sector(a, b)
    return _compare_with_trailing(a, b, (OTHER,))


def sort_group_keys(keys: Iterable[str], mode: GroupBy) -> list[str]:
    """Return the group keys as a new list in display order."""
    return sorted(keys, key=cmp_to_key(lambda a, b: compare_group_keys(a, b, mode)))


def _market_value(position: Position, bucket: ValueIn) -> Decimal:
    values = position.money_values.get(bucket)
    if values is None:
        return Decimal("0")
    return values.get("market_value")


def compare_positions_within_group(a: Position, b: Position, bucket: ValueIn) -> int:
    """
    Compare two positions of the same group.

    Cash-related positions sort after everything else regardless of value.
    Otherwise positions sort by descending market value in ``bucket``, with a
    missing market value treated as zero. Equal values compare as 0 so a stable
    sort keeps their input order.

    Args:
        a: First position.
        b: Second position.
        bucket: The bucket whose market value is compared.

    Returns:
        A negative number if ``a`` sorts first, positive if ``b`` does, else 0.
    """
    a_cash = is_cash_related(a.asset)
    b_cash = is_cash_related(b.asset)
    if a_cash != b_cash:
        return 1 if a_cash else -1
    return _compare(_market_value(b, bucket), _market_value(a, bucket))


def sort_positions_within_group(positions: Iterable[Position], bucket: ValueIn) -> list[Position]:
    """Return a new, stably sorted list of positions. The input is not modified."""
    return sorted(positions, key=cmp_to_key(lambda a, b: compare_positions_within_group(a, b, bucket)))


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortConfig:
    """A user-selected column sort."""
    key: str | None = "asset_name"
    direction: SortDirection = SortDirection.ASC

    def toggled(self, key: str) -> "SortConfig":
        """Return the config after clicking column ``key``.

        Clicking the active column flips direction; a new column starts
        descending.
        """
        if self.key == key:
            flipped = SortDirection.DESC if self.direction == SortDirection.ASC else SortDirection.ASC
            return SortConfig(key, flipped)
        return SortConfig(key, SortDirection.DESC)


def _money(name: str) -> Callable[[Position, ValueIn], Decimal]:
    def value(position: Position, bucket: ValueIn) -> Decimal:
        values = position.money_values.get(bucket)
        return values.get(name) if values is not None else Decimal("0")
    return value


def _price(position: Position, bucket: ValueIn) -> Decimal:
    values = position.money_values.get(bucket)
    if values is None or values.price_data is None or values.price_data.close is None:
        return Decimal("0")
    return values.price_data.close


def _change_percent(position: Position, bucket: ValueIn) -> Decimal:
    values = position.money_values.get(bucket)
    if values is None or values.price_data is None or values.price_data.change_percent is None:
        return Decimal("0")
    return values.price_data.change_percent


SORT_KEYS: dict[str, Callable[[Position, ValueIn], object]] = {
    "asset_name": lambda position, bucket: position.asset.code.lower(),
    "price": _price,
    "change_percent": _change_percent,
    "gain_on_day": _money("gain_on_day"),
    "quantity": lambda position, bucket: position.quantity_values.total,
    "cost_value": _money("cost_value"),
    "market_value": _money("market_value"),
    "dividends": _money("dividends"),
    "unrealised_gain": _money("unrealised_gain"),
    "realised_gain": _money("realised_gain"),
    "irr": _money("irr"),
    "weight": _money("weight"),
    "total_gain": _money("total_gain"),
}


def sort_positions(positions: Iterable[Position], config: SortConfig, bucket: ValueIn) -> list[Position]:
    """
    Sort positions by a table column.

    Cash-related positions stay after all other positions in either direction.
    Unknown sort keys fall back to the asset code.

    Args:
        positions: Positions to sort. Not modified.
        config: Column and direction.
        bucket: The bucket money columns are read from.

    Returns:
        A new sorted list, or the positions in input order when ``config.key``
        is None.
    """
    positions = list(positions)
    if config.key is None:
        return positions

    value_of = SORT_KEYS.get(config.key, SORT_KEYS["asset_name"])
    sign = 1 if config.direction == SortDirection.ASC else -1

    def compare(a: Position, b: Position) -> int:
        a_cash = is_cash_related(a.asset)
        b_cash = is_cash_related(b.asset)
        if a_cash != b_cash:
            return 1 if a_cash else -1
        return sign * _compare(value_of(a, bucket), value_of(b, bucket))

    return sorted(positions, key=cmp_to_key(compare))
