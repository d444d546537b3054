"""The holdings payload handed to the engine by the data-fetching layer."""

import json
import os
import warnings
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

from .currency import Currency
from .models import (
    MONEY_FIELDS,
    Asset,
    AssetCategory,
    DateValues,
    Market,
    MoneyValues,
    Portfolio,
    Position,
    PriceData,
    QuantityValues,
    ValueIn,
)


@dataclass(frozen=True)
class HoldingContract:
    """Positions of a portfolio valued upstream in every currency bucket."""
    portfolio: Portfolio
    positions: tuple[Position, ...]
    totals: Mapping[ValueIn, MoneyValues] = field(default_factory=dict)
    is_mixed_currencies: bool = False
    as_at: str | None = None


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# Upstream totals use a few different names for the same figures.
_TOTAL_ALIASES = {"income": "dividends", "gain": "total_gain"}


def _decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def parse_currency(data: Mapping[str, Any] | str | None) -> Currency | None:
    """Parse a currency given as an object or a bare code."""
    if data is None:
        return None
    if isinstance(data, str):
        return Currency.of(data)
    code = data.get("code")
    if not code:
        return None
    known = Currency.of(code)
    return Currency(
        code=known.code,
        name=data.get("name") or known.name,
        symbol=data.get("symbol") or known.symbol,
    )


def parse_price_data(data: Mapping[str, Any] | None) -> PriceData | None:
    if not data:
        return None
    return PriceData(
        close=_decimal(data.get("close")),
        previous_close=_decimal(data.get("previousClose")),
        change=_decimal(data.get("change")),
        change_percent=_decimal(data.get("changePercent")),
        price_date=data.get("priceDate") or None,
    )


def parse_money_values(data: Mapping[str, Any], aliases: Mapping[str, str] | None = None) -> MoneyValues:
    """
    Parse one bucket of money values.

    Args:
        data: The camelCase money values object.
        aliases: Extra payload keys mapped onto field names.

    Returns:
        MoneyValues with absent figures left as None.
    """
    values: dict[str, Decimal | None] = {name: _decimal(data.get(_camel(name))) for name in MONEY_FIELDS}
    for alias, name in (aliases or {}).items():
        if values[name] is None and alias in data:
            values[name] = _decimal(data[alias])

    return MoneyValues(
        currency=parse_currency(data.get("currency")),
        price_data=parse_price_data(data.get("priceData")),
        **values,
    )


def parse_asset(data: Mapping[str, Any]) -> Asset:
    category = data.get("assetCategory")
    market = data.get("market")
    return Asset(
        id=str(data.get("id") or data["code"]),
        code=data["code"],
        name=data.get("name") or data["code"],
        asset_category=AssetCategory(id=category["id"], name=category.get("name", "")) if category else None,
        market=Market(
            code=market["code"],
            name=market.get("name", ""),
            currency=parse_currency(market.get("currency")),
        ) if market else None,
        sector=data.get("sector") or None,
        price_symbol=data.get("priceSymbol") or None,
        effective_report_category=data.get("effectiveReportCategory") or None,
    )


def _parse_buckets(data: Mapping[str, Any], aliases: Mapping[str, str] | None = None) -> dict[ValueIn, MoneyValues]:
    # Unknown bucket names raise ValueError from the enum
    return {ValueIn(name): parse_money_values(values, aliases) for name, values in data.items() if values}


def parse_position(data: Mapping[str, Any]) -> Position:
    """Parse one position object from the holdings payload."""
    quantity = data.get("quantityValues") or {}
    dates = data.get("dateValues") or {}
    held = data.get("held")
    return Position(
        asset=parse_asset(data["asset"]),
        money_values=_parse_buckets(data.get("moneyValues") or {}),
        quantity_values=QuantityValues(
            total=_decimal(quantity.get("total")) or Decimal("0"),
            purchased=_decimal(quantity.get("purchased")) or Decimal("0"),
            sold=_decimal(quantity.get("sold")) or Decimal("0"),
            precision=int(quantity.get("precision") or 0),
        ),
        date_values=DateValues(
            opened=dates.get("opened"),
            last=dates.get("last"),
            closed=dates.get("closed"),
            last_dividend=dates.get("lastDividend"),
        ),
        held={broker: Decimal(str(qty)) for broker, qty in held.items()} if held else None,
    )


def parse_portfolio(data: Mapping[str, Any]) -> Portfolio:
    """Parse the portfolio object. The base currency defaults to the reporting currency."""
    currency = parse_currency(data.get("currency"))
    if currency is None:
        raise ValueError(f"Portfolio {data.get('code')!r} has no currency")
    return Portfolio(
        id=str(data.get("id") or data["code"]),
        code=data["code"],
        name=data.get("name") or data["code"],
        currency=currency,
        base=parse_currency(data.get("base")) or currency,
        market_value=_decimal(data.get("marketValue")) or Decimal("0"),
        irr=_decimal(data.get("irr")),
    )


def holding_contract_from_dict(data: Mapping[str, Any]) -> HoldingContract:
    """
    Build a HoldingContract from the holdings API payload.

    Args:
        data: The decoded JSON payload, optionally wrapped in ``{"data": ...}``.
            ``positions`` may be an object keyed by position id or a list.

    Returns:
        The parsed HoldingContract. ``is_mixed_currencies`` is read from the
        payload, or derived from the positions' trade currencies when absent.

    Raises:
        KeyError: If a required field is missing.
        ValueError: If a value cannot be parsed, such as an unknown bucket.
    """
    if "data" in data and isinstance(data["data"], Mapping):
        data = data["data"]

    raw_positions = data.get("positions") or {}
    if isinstance(raw_positions, Mapping):
        raw_positions = list(raw_positions.values())
    positions = tuple(parse_position(p) for p in raw_positions)

    incomplete = sorted(
        p.asset.code for p in positions
        if any(bucket not in p.money_values for bucket in ValueIn)
    )
    if incomplete:
        warnings.warn(
            f"Positions missing money values for some currency buckets: {', '.join(incomplete)}. "
            f"They count as zero in those buckets.",
            UserWarning
        )

    mixed = data.get("isMixedCurrencies")
    if mixed is None:
        codes = {p.trade_currency.code for p in positions if p.trade_currency is not None}
        mixed = len(codes) > 1

    return HoldingContract(
        portfolio=parse_portfolio(data["portfolio"]),
        positions=positions,
        totals=_parse_buckets(data.get("totals") or {}, _TOTAL_ALIASES),
        is_mixed_currencies=bool(mixed),
        as_at=data.get("asAt"),
    )


def load_holdings_from_json(file_path: str) -> HoldingContract:
    """
    Load a holdings payload from a JSON file.

    Args:
        file_path: Path to the JSON file.

    Returns:
        The parsed HoldingContract.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file does not contain a holdings object.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Holdings file not found: {file_path}")

    with open(file_path, "r") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("JSON file must contain a holdings object")

    return holding_contract_from_dict(data)
