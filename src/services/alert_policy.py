# src/services/alert_policy.py

"""New-low alert decision and alert message rendering.

Everything here is computation only: the monitor gathers the inputs
from the store, asks :func:`decide_alert` what to do, and performs the
I/O itself.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from src.models.product import Product
from src.scrapers.registry import platform_label


class DecisionReason(Enum):
    """Which branch of the decision produced the outcome."""

    FIRST_OBSERVATION = "first_observation"
    UNCHANGED = "unchanged"
    NEW_LOW = "new_low"
    ABOVE_WINDOW_MINIMUM = "above_window_minimum"


@dataclass(frozen=True)
class AlertDecision:
    """Outcome of evaluating one fresh price against stored history."""

    fire: bool
    reason: DecisionReason
    savings: Decimal | None = None


def decide_alert(
    current: Decimal,
    previous: Decimal | None,
    window_minimum: Decimal | None,
) -> AlertDecision:
    """Decide whether *current* deserves a new-low alert.

    Rules, first match wins:

    1. No previous observation: silent, history is being bootstrapped.
    2. Price unchanged: silent.
    3. No observations in the window, or *current* at/below the window
       minimum: alert, with ``savings = previous - current``.
    4. Otherwise the price moved but is not a new low: silent.
    """
    if previous is None:
        return AlertDecision(False, DecisionReason.FIRST_OBSERVATION)
    if current == previous:
        return AlertDecision(False, DecisionReason.UNCHANGED)
    if window_minimum is None or current <= window_minimum:
        return AlertDecision(
            True, DecisionReason.NEW_LOW, savings=previous - current,
        )
    return AlertDecision(False, DecisionReason.ABOVE_WINDOW_MINIMUM)


def format_price(value: Decimal) -> str:
    """Render a price as ``₹1,234.00`` (``-₹50.00`` when negative)."""
    sign = "-" if value < 0 else ""
    return f"{sign}₹{abs(value):,.2f}"


def render_alert_message(
    product: Product,
    previous: Decimal,
    current: Decimal,
    window_minimum: Decimal | None,
    window_days: int,
) -> str:
    """Build the human-readable alert text sent to the notifier."""
    if window_minimum is None or current == window_minimum:
        lowest = "YES! 🎉"
    else:
        lowest = format_price(window_minimum)
    return (
        "🚨 PRICE DROP ALERT! 🚨\n\n"
        f"Product: {product.name}\n"
        f"Platform: {platform_label(product.platform)}\n"
        f"Previous Price: {format_price(previous)}\n"
        f"Current Price: {format_price(current)}\n"
        f"Savings: {format_price(previous - current)}\n"
        f"Lowest in {window_days} days: {lowest}\n\n"
        f"🔗 {product.url}"
    )
