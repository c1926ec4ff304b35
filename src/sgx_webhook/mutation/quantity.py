"""
Quantity Formatting

Renders integer resource totals in the canonical binary-SI string form
Kubernetes uses for quantities (``12``, ``1k``, ``1Ki``, ``10Mi``).
"""

from typing import Tuple


BINARY_SUFFIXES = ["", "Ki", "Mi", "Gi", "Ti", "Pi", "Ei"]
DECIMAL_SUFFIXES = ["", "k", "M", "G", "T", "P", "E"]


def _remove_factors(value: int, base: int, max_exponent: int) -> Tuple[int, int]:
    exponent = 0
    while value != 0 and value % base == 0 and exponent < max_exponent:
        value //= base
        exponent += 1
    return value, exponent


def format_binary_si(value: int) -> str:
    """
    Format an integer as a binary-SI quantity string.

    Values strictly between -1024 and 1024 fall back to the decimal form,
    so 1000 renders as "1k" and 12 as "12".
    """
    sign = "-" if value < 0 else ""
    magnitude = abs(value)

    if magnitude < 1024:
        amount, exponent = _remove_factors(magnitude, 1000, len(DECIMAL_SUFFIXES) - 1)
        return f"{sign}{amount}{DECIMAL_SUFFIXES[exponent]}"

    amount, exponent = _remove_factors(magnitude, 1024, len(BINARY_SUFFIXES) - 1)
    return f"{sign}{amount}{BINARY_SUFFIXES[exponent]}"
