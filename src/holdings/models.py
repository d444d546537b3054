from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Mapping

from .currency import Currency


class ValueIn(Enum):
    """The currency bucket a monetary figure is denominated in."""

    TRADE = "TRADE"
    PORTFOLIO = "PORTFOLIO"
    BASE = "BASE"


class GroupBy(Enum):
    """Dimensions positions can be grouped by."""

    ASSET_CLASS = "ASSET_CLASS"
    SECTOR = "SECTOR"
    MARKET = "MARKET"
    MARKET_CURRENCY = "MARKET_CURRENCY"


@dataclass(frozen=True)
class PriceData:
    """Latest market price for an asset."""
    close: Decimal | None = None
    previous_close: Decimal | None = None
    change: Decimal | None = None
    change_percent: Decimal | None = None
    price_date: str | None = None


@dataclass(frozen=True)
class MoneyValues:
    """Monetary figures for one position or group in one currency bucket.

    Every numeric field may be None when the upstream valuation service did not
    supply it. Aggregation treats None as zero; presentation decides whether to
    show it as absent.
    """
    currency: Currency | None = None
    market_value: Decimal | None = None
    cost_value: Decimal | None = None
    average_cost: Decimal | None = None
    cost_basis: Decimal | None = None
    unrealised_gain: Decimal | None = None
    realised_gain: Decimal | None = None
    total_gain: Decimal | None = None
    dividends: Decimal | None = None
    gain_on_day: Decimal | None = None
    purchases: Decimal | None = None
    sales: Decimal | None = None
    cash: Decimal | None = None
    fees: Decimal | None = None
    tax: Decimal | None = None
    irr: Decimal | None = None
    roi: Decimal | None = None
    weight: Decimal | None = None
    price_data: PriceData | None = None

    def get(self, name: str) -> Decimal:
        """Return a numeric field, treating a missing value as zero."""
        value = getattr(self, name)
        return value if value is not None else Decimal("0")


# Fields summed field-wise when aggregating positions into groups and totals.
ADDITIVE_FIELDS: tuple[str, ...] = (
    "market_value",
    "cost_value",
    "unrealised_gain",
    "realised_gain",
    "total_gain",
    "dividends",
    "gain_on_day",
    "purchases",
    "sales",
    "fees",
    "tax",
)

MONEY_FIELDS: tuple[str, ...] = tuple(
    f.name for f in fields(MoneyValues) if f.name not in ("currency", "price_data")
)


@dataclass(frozen=True)
class QuantityValues:
    """Share or unit counts for a position. Currency-independent."""
    total: Decimal = Decimal("0")
    purchased: Decimal = Decimal("0")
    sold: Decimal = Decimal("0")
    precision: int = 0


@dataclass(frozen=True)
class DateValues:
    opened: str | None = None
    last: str | None = None
    closed: str | None = None
    last_dividend: str | None = None


@dataclass(frozen=True)
class AssetCategory:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Market:
    code: str
    name: str = ""
    currency: Currency | None = None


@dataclass(frozen=True)
class Asset:
    """A tradeable or held asset."""
    id: str
    code: str
    name: str = ""
    asset_category: AssetCategory | None = None
    market: Market | None = None
    sector: str | None = None
    price_symbol: str | None = None
    effective_report_category: str | None = None


@dataclass(frozen=True)
class Position:
    """A holding of one asset with parallel money values per currency bucket.

    Positions are read-only inputs to the engine and are never modified by it.
    """
    asset: Asset
    money_values: Mapping[ValueIn, MoneyValues]
    quantity_values: QuantityValues = field(default_factory=QuantityValues)
    date_values: DateValues = field(default_factory=DateValues)
    held: Mapping[str, Decimal] | None = None

    def values_in(self, bucket: ValueIn) -> MoneyValues:
        """Return the money values for a bucket.

        Raises:
            KeyError: If the position has no values for the bucket.
        """
        return self.money_values[bucket]

    @property
    def trade_currency(self) -> Currency | None:
        """The currency the asset trades in."""
        trade = self.money_values.get(ValueIn.TRADE)
        if trade is not None and trade.currency is not None:
            return trade.currency
        if self.asset.market is not None:
            return self.asset.market.currency
        return None

    def __repr__(self):
        return f"Position(code={self.asset.code}, quantity={self.quantity_values.total})"


@dataclass(frozen=True)
class Portfolio:
    """Portfolio metadata supplied by the data-fetching layer.

    ``currency`` is the reporting currency and ``base`` the cost-tracking
    currency. Together they anchor the PORTFOLIO and BASE buckets.
    """
    id: str
    code: str
    name: str
    currency: Currency
    base: Currency
    market_value: Decimal = Decimal("0")
    irr: Decimal | None = None

    def bucket_currency(self, bucket: ValueIn) -> Currency | None:
        """Return the fixed currency for a bucket, or None for TRADE."""
        if bucket == ValueIn.PORTFOLIO:
            return self.currency
        if bucket == ValueIn.BASE:
            return self.base
        return None


@dataclass(frozen=True)
class HoldingGroup:
    """Positions sharing a group key with their per-bucket subtotals."""
    key: str
    positions: tuple[Position, ...]
    sub_totals: Mapping[ValueIn, MoneyValues]

    @property
    def position_count(self) -> int:
        return len(self.positions)

    @property
    def suppress_subtotal(self) -> bool:
        """True when a subtotal row would only repeat the group's single position."""
        return self.position_count <= 1

    def subtotal_in(self, bucket: ValueIn) -> MoneyValues:
        """Return the subtotal for a bucket.

        Raises:
            KeyError: If the subtotal was not computed for the bucket.
        """
        return self.sub_totals[bucket]


@dataclass(frozen=True)
class Holdings:
    """Grouped, sorted and aggregated holdings for one view configuration."""
    portfolio: Portfolio
    holding_groups: tuple[HoldingGroup, ...]
    totals: Mapping[ValueIn, MoneyValues]
    view_totals: MoneyValues
    value_in: ValueIn
    currency: Currency
    is_mixed_currencies: bool = False

    def group(self, key: str) -> HoldingGroup:
        """Return the group with the given key.

        Raises:
            KeyError: If no group has the key.
        """
        for holding_group in self.holding_groups:
            if holding_group.key == key:
                return holding_group
        raise KeyError(key)

    @property
    def group_keys(self) -> list[str]:
        return [g.key for g in self.holding_groups]

    @property
    def position_count(self) -> int:
        return sum(g.position_count for g in self.holding_groups)
