#!/usr/bin/env python3
"""Report subcommand - Display grouped holdings, totals and allocation."""

import os
import warnings
from dataclasses import replace
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

from ..allocation import renormalize
from ..contract import load_holdings_from_json
from ..conversion import (
    DisplayCurrency,
    display_conversion,
    is_cost_approximate,
    resolve_source_currency,
    subtotal_bucket,
)
from ..currency import FixedExchangeRateManager, load_exchange_rates_from_json
from ..models import GroupBy, MoneyValues, ValueIn
from ..signs import Sign, classify_sign
from ..sorting import SORT_KEYS, SortConfig, SortDirection
from ..view import HoldingsView, ViewConfig, build_holdings_view
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

SIGN_STYLES = {
    Sign.POSITIVE: "green",
    Sign.NEGATIVE: "red",
    Sign.NEUTRAL: "white",
}


def register_subcommand(subparsers):
    """Register the report subcommand with the argument parser.

    Defaults for the value bucket, grouping and display currency are read from
    the HOLDINGS_VALUE_IN, HOLDINGS_GROUP_BY and HOLDINGS_DISPLAY_CURRENCY
    environment variables (a ``.env`` file is honoured).

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "report",
        help="Display grouped holdings report",
        description="Display holdings grouped and totalled per group, with a grand total and allocation.",
    )
    parser.add_argument("filename", help="Path to the holdings JSON payload")
    parser.add_argument(
        "--value-in",
        "-v",
        default=os.getenv("HOLDINGS_VALUE_IN", ValueIn.PORTFOLIO.value),
        choices=[v.value for v in ValueIn],
        help="Currency bucket to show values in (default: PORTFOLIO)",
    )
    parser.add_argument(
        "--group-by",
        "-g",
        default=os.getenv("HOLDINGS_GROUP_BY", GroupBy.ASSET_CLASS.value),
        choices=[g.value for g in GroupBy],
        help="Grouping dimension (default: ASSET_CLASS)",
    )
    parser.add_argument(
        "--display-currency",
        "-d",
        default=os.getenv("HOLDINGS_DISPLAY_CURRENCY"),
        help="Convert figures into this currency code (default: the bucket's own currency)",
    )
    parser.add_argument(
        "--rates",
        "-r",
        help='Path to a JSON FX rate snapshot, e.g. {"USD:EUR": 0.92}',
    )
    parser.add_argument(
        "--sort",
        choices=sorted(SORT_KEYS),
        help="Sort positions within each group by this column",
    )
    parser.add_argument(
        "--ascending",
        action="store_true",
        help="Sort ascending instead of descending",
    )
    parser.add_argument(
        "--show-empty",
        action="store_true",
        help="Include positions with zero quantity",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        metavar="GROUP",
        help="Exclude a group from the allocation percentages (repeatable)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress data warnings such as missing FX rates",
    )
    parser.set_defaults(func=run)


def config_from_args(args) -> ViewConfig:
    """Build the view configuration from parsed arguments.

    Raises:
        ValueError: If a bucket or grouping value is not recognised.
    """
    config = ViewConfig(
        group_by=GroupBy(args.group_by.upper()),
        hide_empty=not args.show_empty,
    ).with_value_in(ValueIn(args.value_in.upper()))

    if args.display_currency:
        config = config.with_display_currency(DisplayCurrency.of(args.display_currency))

    if args.sort:
        direction = SortDirection.ASC if args.ascending else SortDirection.DESC
        config = replace(config, sort=SortConfig(args.sort, direction))
    return config


def format_money(value: Decimal | None, symbol: str = "") -> str:
    """Format an amount with two decimals, or "-" when missing."""
    if value is None:
        return "-"
    return f"{symbol}{value:,.2f}"


def format_percentage(value: Decimal | None, precision: int = 2) -> str:
    """Format a fraction as a percentage string, e.g. 0.05 becomes "5.00%"."""
    if value is None:
        return "-"
    return f"{value * 100:.{precision}f}%"


def styled(text: str, value: Decimal | None) -> str:
    """Wrap text in the color for the sign of ``value``."""
    style = SIGN_STYLES[classify_sign(value)]
    return f"[{style}]{text}[/{style}]"


def render_groups(console: Console, view: HoldingsView, config: ViewConfig, rates) -> None:
    """Print one table per holding group."""
    holdings = view.holdings
    portfolio = holdings.portfolio
    bucket = config.value_in

    for group in holdings.holding_groups:
        table = Table(title=f"{group.key} ({group.position_count})", title_justify="left")
        table.add_column("Asset", style="cyan", justify="left")
        table.add_column("Quantity", style="magenta", justify="right")
        table.add_column("Currency", justify="left")
        table.add_column("Cost", style="yellow", justify="right")
        table.add_column("Market Value", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("Total Gain", justify="right")
        table.add_column("IRR", justify="right")

        for position in group.positions:
            # Positions without values in the bucket still get a row, shown as "-"
            values = position.money_values.get(bucket) or MoneyValues()
            source = resolve_source_currency(bucket, portfolio, position=position)
            convert = display_conversion(source, config.display_currency, portfolio, rates)
            table.add_row(
                f"{position.asset.code}: {position.asset.name}",
                f"{position.quantity_values.total:,.{position.quantity_values.precision}f}",
                convert.currency_code,
                format_money(convert(values.cost_value)),
                format_money(convert(values.market_value)),
                format_percentage(values.weight),
                styled(format_money(convert(values.total_gain)), values.total_gain),
                format_percentage(values.irr),
            )

        if not group.suppress_subtotal:
            group_bucket = subtotal_bucket(group, bucket)
            subtotal = group.subtotal_in(group_bucket)
            source = resolve_source_currency(group_bucket, portfolio, positions=group.positions)
            convert = display_conversion(source, config.display_currency, portfolio, rates)
            table.add_section()
            table.add_row(
                "[bold]Sub Total[/bold]",
                "",
                convert.currency_code,
                format_money(convert(subtotal.cost_value)),
                f"[bold]{format_money(convert(subtotal.market_value))}[/bold]",
                format_percentage(subtotal.weight),
                styled(format_money(convert(subtotal.total_gain)), subtotal.total_gain),
                "",
            )

        console.print(table)


def render_allocation(console: Console, view: HoldingsView, excluded: list[str]) -> None:
    """Print the allocation slices, renormalized over the non-excluded groups."""
    result = renormalize(view.slices, excluded)
    table = Table(title=f"Allocation ({view.conversion.currency_code})")
    table.add_column("Group", style="cyan", justify="left")
    table.add_column("Value", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Gain on Day", justify="right")

    for allocation_slice in result.slices:
        table.add_row(
            allocation_slice.label,
            format_money(allocation_slice.value),
            f"{allocation_slice.percentage:.2f}%",
            styled(format_money(allocation_slice.gain_on_day), allocation_slice.gain_on_day),
        )
    table.add_section()
    table.add_row("[bold]Total[/bold]", format_money(result.total), "100.00%" if result.slices else "-", "")
    console.print(table)


def run(args):
    """Display grouped holdings, subtotals, grand total and allocation.

    Args:
        args: Parsed argparse namespace.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    if args.quiet:
        warnings.filterwarnings("ignore", category=UserWarning)

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        contract = load_holdings_from_json(args.filename)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error: could not load holdings from '{args.filename}': {e}")
        return 1

    if args.rates:
        try:
            rates = load_exchange_rates_from_json(args.rates)
        except (OSError, ValueError) as e:
            print(f"Error: could not load rates from '{args.rates}': {e}")
            return 1
    else:
        rates = FixedExchangeRateManager()

    view = build_holdings_view(contract, config, rates)
    console = Console()

    portfolio = contract.portfolio
    console.print(
        f"[bold]{portfolio.code}[/bold] {portfolio.name} "
        f"- values in {config.value_in.value}, grouped by {config.group_by.value}"
        + (f", as at {contract.as_at}" if contract.as_at else "")
    )

    render_groups(console, view, config, rates)

    symbol = view.conversion.currency_symbol
    summary = [
        f"Currency: {view.conversion.currency_code}"
        + (" (TRADE mixed, totals in BASE)" if view.source_bucket != config.value_in else ""),
        f"Market Value: {format_money(view.totals.market_value, symbol)}",
        "Total Gain: " + styled(format_money(view.totals.total_gain, symbol), view.totals.total_gain),
        "Gain on Day: " + styled(format_money(view.totals.gain_on_day, symbol), view.totals.gain_on_day),
    ]
    upstream = contract.totals.get(config.value_in)
    if upstream is not None and upstream.irr is not None:
        summary.append(f"IRR: {format_percentage(upstream.irr)}")
    if is_cost_approximate(config.display_currency):
        summary.append("[dim]Cost and gains converted at current rates[/dim]")
    console.print(Panel("\n".join(summary), title="Grand Total"))

    render_allocation(console, view, args.exclude)

    return 0
