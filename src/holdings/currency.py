import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping


@dataclass(frozen=True)
class Currency:
    """A currency reference value.

    Positions, groups and portfolios hold currencies by value. Two currencies
    denote the same money when their ``code`` matches; ``name`` and ``symbol``
    are descriptive only.
    """

    code: str
    name: str = ""
    symbol: str = ""

    @classmethod
    def of(cls, code: str) -> "Currency":
        """Build a Currency from its ISO code, filling name and symbol when known.

        Args:
            code: ISO 4217 currency code (case-insensitive).

        Returns:
            The Currency for the code.
        """
        code = code.upper()
        if code in KNOWN_CURRENCIES:
            return KNOWN_CURRENCIES[code]
        return cls(code=code, name=code, symbol="")

    def __str__(self):
        return self.code


KNOWN_CURRENCIES: dict[str, Currency] = {
    c.code: c
    for c in (
        Currency("USD", "US Dollar", "$"),
        Currency("CAD", "Canadian Dollar", "$"),
        Currency("EUR", "Euro", "€"),
        Currency("TWD", "New Taiwan Dollar", "NT$"),
        Currency("SGD", "Singapore Dollar", "$"),
        Currency("AUD", "Australian Dollar", "$"),
        Currency("NZD", "New Zealand Dollar", "$"),
        Currency("JPY", "Japanese Yen", "¥"),
        Currency("KRW", "South Korean Won", "₩"),
        Currency("GBP", "Pound Sterling", "£"),
        Currency("BRL", "Brazilian Real", "R$"),
        Currency("CNY", "Chinese Yuan", "¥"),
        Currency("HKD", "Hong Kong Dollar", "$"),
        Currency("MXN", "Mexican Peso", "$"),
        Currency("ZAR", "South African Rand", "R"),
        Currency("CHF", "Swiss Franc", "CHF"),
        Currency("THB", "Thai Baht", "฿"),
    )
}


class ExchangeRateManager(ABC):
    """Abstract base class for currency exchange rate providers."""

    @abstractmethod
    def get_exchange_rate(self, from_currency: Currency, to_currency: Currency) -> Decimal:
        """Get the exchange rate between two currencies.

        Args:
            from_currency: The source currency.
            to_currency: The target currency.

        Returns:
            The exchange rate as a Decimal.

        Raises:
            ValueError: If no rate is available for the pair.
        """
        raise NotImplementedError("This method should be overridden by subclasses.")


class FixedExchangeRateManager(ExchangeRateManager):
    """Exchange rate manager backed by a snapshot rate table.

    The table maps ``(from_code, to_code)`` pairs to rates. It is treated as a
    read-only snapshot: the manager copies the table on construction and never
    mutates the caller's mapping.
    """

    def __init__(self, exchange_rates: Mapping[tuple[str, str], Decimal] | None = None):
        """Initialize with a rate table.

        Args:
            exchange_rates: Rates keyed by ``(from_code, to_code)``. Values may be
                Decimal, int, float or numeric strings.
        """
        self.exchange_rates: dict[tuple[str, str], Decimal] = {}
        for (from_code, to_code), rate in (exchange_rates or {}).items():
            self.exchange_rates[(from_code.upper(), to_code.upper())] = Decimal(str(rate))

    @classmethod
    def from_pairs(cls, rates: Mapping[str, object]) -> "FixedExchangeRateManager":
        """Build a manager from a ``{"USD:EUR": 0.92}`` style mapping.

        Args:
            rates: Rates keyed by "FROM:TO" strings.

        Returns:
            A FixedExchangeRateManager holding the parsed rates.

        Raises:
            ValueError: If a key is not of the form "FROM:TO".
        """
        parsed: dict[tuple[str, str], Decimal] = {}
        for key, rate in rates.items():
            parts = key.split(":")
            if len(parts) != 2 or not parts[0] or not parts[1]:
                raise ValueError(f"Invalid currency pair key: {key!r}")
            parsed[(parts[0], parts[1])] = Decimal(str(rate))
        return cls(parsed)

    def set_exchange_rate(self, from_currency: Currency, to_currency: Currency, rate: Decimal | int | float | str):
        """Set or override the exchange rate for a currency pair.

        Args:
            from_currency: The source currency.
            to_currency: The target currency.
            rate: The exchange rate to set. Stored as a Decimal.
        """
        self.exchange_rates[(from_currency.code.upper(), to_currency.code.upper())] = Decimal(str(rate))

    def _lookup(self, from_code: str, to_code: str) -> Decimal | None:
        rate = self.exchange_rates.get((from_code, to_code))
        if rate is not None:
            return rate
        inverse = self.exchange_rates.get((to_code, from_code))
        if inverse:
            return Decimal("1") / inverse
        return None

    def get_exchange_rate(self, from_currency: Currency, to_currency: Currency) -> Decimal:
        """Get the exchange rate between two currencies.

        Tries the direct pair, then the inverse pair, then converts via USD.

        Args:
            from_currency: The source currency.
            to_currency: The target currency.

        Returns:
            The exchange rate as a Decimal.

        Raises:
            ValueError: If no rate is available for the currency pair.
        """
        if from_currency.code == to_currency.code:
            return Decimal("1")

        rate = self._lookup(from_currency.code, to_currency.code)
        if rate is not None:
            return rate

        # If neither currency is USD, try converting via USD
        if from_currency.code != "USD" and to_currency.code != "USD":
            rate_to_usd = self._lookup(from_currency.code, "USD")
            rate_from_usd = self._lookup("USD", to_currency.code)
            if rate_to_usd is not None and rate_from_usd is not None:
                return rate_to_usd * rate_from_usd

        raise ValueError(f"Exchange rate from {from_currency.code} to {to_currency.code} not available.")


def load_exchange_rates_from_json(file_path: str) -> FixedExchangeRateManager:
    """
    Load an FX rate snapshot from a JSON file.

    Args:
        file_path: Path to the JSON file.

    Returns:
        A FixedExchangeRateManager holding the rates.

    Expected JSON structure:
        {
            "USD:EUR": 0.92,
            "SGD:USD": 0.74,
            ...
        }
    """
    with open(file_path, "r") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError("JSON file must contain an object of currency pair rates")

    return FixedExchangeRateManager.from_pairs(data)
