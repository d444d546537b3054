"""Currency conversion of aggregated figures into a display currency.

Conversion is applied lazily at read time. The engine computes every figure in
its bucket currency (TRADE, PORTFOLIO or BASE) and a converter maps it into the
selected display currency using a snapshot of FX rates. A missing rate never
fails the view: the amount passes through unconverted and a ``UserWarning`` is
emitted.
"""

import warnings
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping, Sequence, Union

from .currency import Currency, ExchangeRateManager, FixedExchangeRateManager
from .models import HoldingGroup, Portfolio, Position, ValueIn

RateSource = Union[ExchangeRateManager, Mapping[tuple[str, str], Decimal]]


def as_rate_manager(rates: RateSource) -> ExchangeRateManager:
    """Return ``rates`` as a rate manager, wrapping a plain table in a FixedExchangeRateManager."""
    if isinstance(rates, ExchangeRateManager):
        return rates
    return FixedExchangeRateManager(rates)


def lookup_rate(source: Currency, display: Currency, rates: RateSource) -> Decimal | None:
    """
    Look up the rate from ``source`` to ``display``.

    Args:
        source: Currency the amount is denominated in.
        display: Currency to convert into.
        rates: A rate manager or a ``{(from_code, to_code): rate}`` table.

    Returns:
        The rate, 1 for the same currency, or None when no rate is available.
    """
    if source.code == display.code:
        return Decimal("1")
    try:
        return as_rate_manager(rates).get_exchange_rate(source, display)
    except ValueError:
        return None


def _warn_missing_rate(source: Currency, display: Currency) -> None:
    warnings.warn(
        f"No exchange rate from {source.code} to {display.code}; "
        f"showing {source.code} amounts unconverted.",
        UserWarning,
        stacklevel=3,
    )


def convert(amount: Decimal, source: Currency, display: Currency, rates: RateSource) -> Decimal:
    """
    Convert an amount from its source currency into the display currency.

    Args:
        amount: The amount in ``source``.
        source: Currency the amount is denominated in.
        display: Currency to convert into.
        rates: A rate manager or a ``{(from_code, to_code): rate}`` table.

    Returns:
        The converted amount. The amount is returned unchanged, without
        consulting ``rates``, when both currencies share a code, and also
        (with a warning) when no rate is available.
    """
    if source.code == display.code:
        return amount

    rate = lookup_rate(source, display, rates)
    if rate is None:
        _warn_missing_rate(source, display)
        return amount
    return amount * rate


class DisplayMode(Enum):
    """How the display currency is chosen."""

    PORTFOLIO = "PORTFOLIO"
    BASE = "BASE"
    TRADE = "TRADE"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class DisplayCurrency:
    """The selected display currency option.

    PORTFOLIO, BASE and TRADE display figures in the matching bucket currency.
    CUSTOM displays them in ``custom``, which may differ from both portfolio
    currencies.
    """
    mode: DisplayMode = DisplayMode.PORTFOLIO
    custom: Currency | None = None

    @classmethod
    def matching(cls, bucket: ValueIn) -> "DisplayCurrency":
        """Return the option that displays figures in the bucket's own currency."""
        return cls(DisplayMode(bucket.value))

    @classmethod
    def of(cls, code: str) -> "DisplayCurrency":
        """Return a CUSTOM option for the currency code."""
        return cls(DisplayMode.CUSTOM, Currency.of(code))


def is_cost_approximate(display: DisplayCurrency) -> bool:
    """Cost and gain figures are approximate when converted at today's rate."""
    return display.mode == DisplayMode.CUSTOM


def resolve_source_currency(
    bucket: ValueIn,
    portfolio: Portfolio,
    position: Position | None = None,
    mixed: bool = False,
    positions: Sequence[Position] = (),
) -> Currency:
    """
    Resolve which currency the figures of a bucket are denominated in.

    PORTFOLIO figures are in the portfolio's reporting currency and BASE
    figures in its base currency. TRADE figures for a single position are in
    that position's trade currency. A combined TRADE figure cannot represent
    several trade currencies, so when the portfolio holds mixed trade
    currencies combined totals resolve to BASE instead.

    Args:
        bucket: The selected bucket.
        portfolio: The portfolio being viewed.
        position: The position whose own row is displayed, if any.
        mixed: Whether the positions trade in more than one currency.
        positions: Positions behind a combined TRADE total.

    Returns:
        The source currency of the figures.
    """
    if bucket == ValueIn.PORTFOLIO:
        return portfolio.currency
    if bucket == ValueIn.BASE:
        return portfolio.base

    if position is not None:
        return position.trade_currency or portfolio.currency
    if mixed:
        return portfolio.base
    for candidate in positions:
        if candidate.trade_currency is not None:
            return candidate.trade_currency
    return portfolio.currency


def combined_bucket(bucket: ValueIn, mixed: bool) -> ValueIn:
    """Return the bucket combined totals are read from."""
    if bucket == ValueIn.TRADE and mixed:
        return ValueIn.BASE
    return bucket


def subtotal_bucket(group: HoldingGroup, bucket: ValueIn) -> ValueIn:
    """Return the bucket a group's subtotal is read from.

    A group whose positions trade in different currencies has no single TRADE
    currency, so its subtotal is read from BASE.
    """
    if bucket == ValueIn.TRADE and group.subtotal_in(bucket).currency is None:
        return ValueIn.BASE
    return bucket


def resolve_target_currency(display: DisplayCurrency, source: Currency, portfolio: Portfolio) -> Currency:
    """
    Resolve the currency figures are displayed in.

    Args:
        display: The selected display option.
        source: Currency the figures are denominated in.
        portfolio: The portfolio being viewed.

    Returns:
        The target currency. TRADE, and a CUSTOM option without a currency,
        display figures in their source currency.
    """
    if display.mode == DisplayMode.PORTFOLIO:
        return portfolio.currency
    if display.mode == DisplayMode.BASE:
        return portfolio.base
    if display.mode == DisplayMode.CUSTOM and display.custom is not None:
        return display.custom
    return source


@dataclass(frozen=True)
class DisplayCurrencyConversion:
    """Converts figures from one source currency into the display currency."""
    source: Currency
    target: Currency
    rate: Decimal
    is_custom: bool = False

    def __call__(self, amount: Decimal | None) -> Decimal | None:
        if amount is None:
            return None
        if self.source.code == self.target.code:
            return amount
        return amount * self.rate

    @property
    def currency_code(self) -> str:
        return self.target.code

    @property
    def currency_symbol(self) -> str:
        return self.target.symbol or self.source.symbol or "$"


def display_conversion(
    source: Currency,
    display: DisplayCurrency,
    portfolio: Portfolio,
    rates: RateSource,
) -> DisplayCurrencyConversion:
    """
    Build a converter from ``source`` into the selected display currency.

    When no rate exists the converter passes amounts through and reports the
    source currency as its target, so figures are never labelled with a
    currency they were not converted into.

    Args:
        source: Currency the figures are denominated in.
        display: The selected display option.
        portfolio: The portfolio being viewed.
        rates: A rate manager or a ``{(from_code, to_code): rate}`` table.

    Returns:
        A DisplayCurrencyConversion.
    """
    target = resolve_target_currency(display, source, portfolio)
    is_custom = display.mode == DisplayMode.CUSTOM

    rate = lookup_rate(source, target, rates)
    if rate is None:
        _warn_missing_rate(source, target)
        return DisplayCurrencyConversion(source, source, Decimal("1"), is_custom)
    return DisplayCurrencyConversion(source, target, rate, is_custom)
