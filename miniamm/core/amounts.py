"""
Amount codec.

Converts between user-entered decimal strings and fixed-point integer
amounts scaled by a token's decimals. Both directions truncate, never
round: a parsed amount never exceeds what the user typed, and a formatted
amount never overstates what the engine computed.

Parsing fails soft. Input is transient and re-editable, so anything that
does not parse is treated as a zero amount instead of an error.
"""

import re

_NON_NUMERIC = re.compile(r"[^0-9.]")


def parse_amount(text: str, decimals: int = 18) -> int:
    """Parse a human decimal string into base units; 0 on any failure."""
    if not text or decimals < 0:
        return 0

    cleaned = _NON_NUMERIC.sub("", text)
    parts = cleaned.split(".")
    if len(parts) > 2:
        return 0

    whole = parts[0]
    fraction = parts[1] if len(parts) == 2 else ""
    if not whole and not fraction:
        return 0

    fraction = fraction[:decimals].ljust(decimals, "0")
    try:
        return int(whole or "0") * 10**decimals + int(fraction or "0")
    except ValueError:
        return 0


def format_amount(value: int, decimals: int = 18, display_decimals: int = 6) -> str:
    """Format base units as a decimal string truncated to ``display_decimals``."""
    sign = "-" if value < 0 else ""
    value = abs(value)

    if decimals <= 0:
        return f"{sign}{value}"

    whole, remainder = divmod(value, 10**decimals)
    fraction = str(remainder).rjust(decimals, "0")[:max(display_decimals, 0)]
    fraction = fraction.rstrip("0")

    if not fraction:
        return f"{sign}{whole}" if whole else "0"
    return f"{sign}{whole}.{fraction}"


def format_percentage(value: float, decimals: int = 2) -> str:
    return f"{value:.{decimals}f}%"


def shorten_address(address: str, chars: int = 4) -> str:
    """``0x1234...abcd`` style short form."""
    if len(address) <= chars * 2 + 2:
        return address
    return f"{address[:chars + 2]}...{address[-chars:]}"


def format_tx_hash(tx_hash: str) -> str:
    if len(tx_hash) <= 10:
        return tx_hash
    return f"{tx_hash[:6]}...{tx_hash[-4:]}"
