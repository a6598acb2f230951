"""Shared formatting helper functions for chart values and display strings."""

import math

import pandas as pd

PERCENTAGE = "percentage"
MONEY = "money"
PLAIN = "plain"


def round_tenth(value: float) -> float:
    """Round half-up to one decimal place (2.25 -> 2.3, -2.25 -> -2.2)."""
    if math.isinf(value):
        return value
    return math.floor(value * 10 + 0.5) / 10


def normalize_value(raw, value_type: str = PLAIN) -> float:
    """
    Normalize a raw attribute value to a chartable number.

    Missing, empty and non-numeric values become 0; everything else is parsed
    as a float and rounded to one decimal place. The value type does not
    change the numeric result.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 0
    try:
        value = float(raw)
    except (ValueError, TypeError):
        return 0
    if math.isnan(value):
        return 0
    return round_tenth(value)


def _plain_number(value: float) -> str:
    """Print a number the way a browser does: no trailing '.0'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_display(value, value_type: str) -> str:
    """Format a normalized value for tooltips and labels."""
    if value is None or pd.isna(value):
        return "N/A"

    if value_type == PERCENTAGE:
        return f"{_plain_number(value)}%"
    if value_type == MONEY:
        amount = math.floor(abs(value) + 0.5)
        sign = "-" if value < 0 and amount else ""
        return f"{sign}${amount:,.0f}"

    # Plain: grouped, up to three fraction digits
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def axis_format(value_type: str) -> str:
    """d3 format string matching format_display for axis ticks."""
    if value_type == MONEY:
        return "$,.0f"
    if value_type == PERCENTAGE:
        # Fixed notation, ungrouped, like the display string
        return "~f"
    return ",.3~f"


def axis_label_expr(value_type: str) -> str | None:
    """Vega expression appended to formatted tick labels, if any."""
    if value_type == PERCENTAGE:
        return "datum.label + '%'"
    return None

