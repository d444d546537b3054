"""Portfolio holdings grouping, aggregation and currency conversion.

Takes positions already valued upstream in three currency buckets (TRADE,
PORTFOLIO and BASE), groups them by asset class, sector, market or market
currency, and produces per-group subtotals and grand totals for every bucket.
Figures are converted into a display currency at read time and flattened into
allocation slices for charts.  The ``holdings`` console script renders a report
with rich.
"""

from importlib.metadata import PackageNotFoundError, version

from .aggregation import (
    calculate_holdings,
    calculate_weight,
    grand_total,
    is_mixed_currencies,
    subtotal,
    sum_money_values,
)
from .allocation import (
    AllocationSlice,
    RenormalizedSlices,
    allocation_group_by,
    renormalize,
    slice_holdings,
    toggle_excluded,
)
from .contract import HoldingContract, holding_contract_from_dict, load_holdings_from_json
from .conversion import (
    DisplayCurrency,
    DisplayCurrencyConversion,
    DisplayMode,
    convert,
    display_conversion,
    resolve_source_currency,
)
from .currency import (
    Currency,
    ExchangeRateManager,
    FixedExchangeRateManager,
    load_exchange_rates_from_json,
)
from .grouping import group_key, group_positions
from .models import (
    Asset,
    AssetCategory,
    GroupBy,
    HoldingGroup,
    Holdings,
    Market,
    MoneyValues,
    Portfolio,
    Position,
    QuantityValues,
    ValueIn,
)
from .signs import Sign, classify_sign
from .sorting import SortConfig, SortDirection, compare_group_keys, sort_positions
from .view import HoldingsView, ViewConfig, build_holdings_view

DISTRIBUTION_NAME = "holdings-engine"

try:
    __version__ = version(DISTRIBUTION_NAME)
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "unknown"

__all__ = [
    "DISTRIBUTION_NAME",
    "__version__",
    # aggregation
    "calculate_holdings",
    "calculate_weight",
    "grand_total",
    "is_mixed_currencies",
    "subtotal",
    "sum_money_values",
    # allocation
    "AllocationSlice",
    "RenormalizedSlices",
    "allocation_group_by",
    "renormalize",
    "slice_holdings",
    "toggle_excluded",
    # contract
    "HoldingContract",
    "holding_contract_from_dict",
    "load_holdings_from_json",
    # conversion
    "DisplayCurrency",
    "DisplayCurrencyConversion",
    "DisplayMode",
    "convert",
    "display_conversion",
    "resolve_source_currency",
    # currency
    "Currency",
    "ExchangeRateManager",
    "FixedExchangeRateManager",
    "load_exchange_rates_from_json",
    # grouping
    "group_key",
    "group_positions",
    # models
    "Asset",
    "AssetCategory",
    "GroupBy",
    "HoldingGroup",
    "Holdings",
    "Market",
    "MoneyValues",
    "Portfolio",
    "Position",
    "QuantityValues",
    "ValueIn",
    # signs
    "Sign",
    "classify_sign",
    # sorting
    "SortConfig",
    "SortDirection",
    "compare_group_keys",
    "sort_positions",
    # view
    "HoldingsView",
    "ViewConfig",
    "build_holdings_view",
]
