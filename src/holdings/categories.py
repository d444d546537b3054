"""Asset classification: report categories and cash-like capability checks."""

from .models import Asset

CASH = "Cash"
EQUITY = "Equity"
ETF = "ETF"
MUTUAL_FUND = "Mutual Fund"
PROPERTY = "Property"

UNCLASSIFIED = "Unclassified"
OTHER = "Other"

# Display order of report categories; anything else sorts after these.
REPORT_CATEGORY_SORT_ORDER: tuple[str, ...] = (EQUITY, ETF, MUTUAL_FUND, PROPERTY, CASH)

_CATEGORY_MAP = {
    "CASH": CASH,
    "ACCOUNT": CASH,
    "TRADE": CASH,
    "BANK ACCOUNT": CASH,
    "EQUITY": EQUITY,
    "RE": PROPERTY,
    "REAL ESTATE": PROPERTY,
    "EXCHANGE TRADED FUND": ETF,
    "ETF": ETF,
    "MUTUAL FUND": MUTUAL_FUND,
}


def map_to_report_category(category: str) -> str:
    """
    Map a detailed asset category to a report category.

    Args:
        category: Category id or name, e.g. "Exchange Traded Fund" or "ACCOUNT".

    Returns:
        The report category, or the category unchanged when it has no mapping.
    """
    return _CATEGORY_MAP.get(category.upper(), category)


def get_report_category(asset: Asset) -> str:
    """
    Get the report category for an asset.

    Uses the upstream ``effective_report_category`` when present, otherwise maps
    the asset category name (or id). Assets without a category are treated as
    Equity.

    Args:
        asset: The asset to classify.

    Returns:
        The report category string.
    """
    if asset.effective_report_category:
        return asset.effective_report_category

    category = asset.asset_category
    category_name = None
    if category is not None:
        category_name = category.name or category.id
    return map_to_report_category(category_name or EQUITY)


def _category_id(asset: Asset) -> str:
    if asset.asset_category is None:
        return ""
    return asset.asset_category.id.upper()


def is_cash(asset: Asset) -> bool:
    return _category_id(asset) == "CASH"


def is_account(asset: Asset) -> bool:
    return _category_id(asset) == "ACCOUNT"


def is_policy(asset: Asset) -> bool:
    return _category_id(asset) == "POLICY"


def is_cash_related(asset: Asset) -> bool:
    """Return True for cash, bank accounts and property held at a constant price."""
    return _category_id(asset) == "RE" or is_cash(asset) or is_account(asset)


def is_constant_price(asset: Asset) -> bool:
    """Return True for assets priced at a constant 1 with no market data."""
    return is_cash(asset) or is_account(asset) or is_policy(asset)
