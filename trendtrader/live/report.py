# -*- coding: utf-8 -*-
"""
Terminal report of a trading cycle.

Renders signals, placed orders, open positions and errors as rich tables.
"""

from typing import Optional

from rich.console import Console
from rich.table import Table
from rich import box

from trendtrader.models import CycleResult


def _pct_text(value: float) -> str:
    color = "green" if value >= 0 else "red"
    return f"[{color}]{value:+.2f}%[/{color}]"


def signals_table(result: CycleResult) -> Table:
    """Create the signals table."""
    table = Table(title=f"Signals ({result.base_currency})", box=box.ROUNDED)
    table.add_column("Currency", style="cyan")
    table.add_column("Price", justify="right")
    table.add_column("Past", justify="right")
    table.add_column("Slope", justify="right")
    table.add_column("Gain", justify="right")
    table.add_column("R²", justify="right")
    table.add_column("Short gain", justify="right")
    table.add_column("Short R²", justify="right")
    table.add_column("Samples", justify="right")

    if not result.signals:
        table.add_row("No signals", "", "", "", "", "", "", "", "")
        return table

    for currency, signal in result.signals.items():
        short = signal.short
        table.add_row(
            currency,
            f"{signal.current_price:.8g}",
            f"{signal.past_price:.8g}",
            f"{signal.slope:+.6g}",
            _pct_text(signal.percentage_gain),
            f"{signal.volatility_factor:.2f}",
            _pct_text(short.percentage_gain) if short else "-",
            f"{short.volatility_factor:.2f}" if short else "-",
            f"{signal.sample_count}/{short.sample_count if short else 0}"
        )
    return table


def orders_table(result: CycleResult) -> Table:
    """Create the placed orders table."""
    table = Table(title="Orders placed", box=box.ROUNDED)
    table.add_column("Side", style="magenta")
    table.add_column("Pair", style="cyan")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Reason", style="yellow")

    if not result.orders_placed:
        table.add_row("No orders", "", "", "", "", "")
        return table

    for order in result.orders_placed:
        table.add_row(order.side.value, order.pair, f"{order.rate:.8g}",
                      f"{order.amount:.8f}", f"{order.cost:.2f}", order.reason)
    return table


def positions_table(result: CycleResult) -> Table:
    """Create the open positions table."""
    state = result.state
    title = f"Open positions (last action: {state.last_action.value})" if state else "Open positions"
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Currency", style="cyan")
    table.add_column("Buy", justify="right")
    table.add_column("Peak", justify="right")
    table.add_column("Low", justify="right")

    if state is None or not state.positions:
        table.add_row("No open positions", "", "", "")
        return table

    for currency, position in sorted(state.positions.items()):
        table.add_row(currency, f"{position.buy_price:.8g}",
                      f"{position.peak_price:.8g}", f"{position.low_price:.8g}")
    return table


def print_cycle_report(result: CycleResult, console: Optional[Console] = None):
    """Print all tables of a cycle result."""
    console = console or Console()
    console.print(signals_table(result))
    console.print(orders_table(result))
    console.print(positions_table(result))
    for error in result.errors:
        scope = error.currency or "cycle"
        console.print(f"[red]✗ {scope}: {error.kind}: {error.message}[/red]")
