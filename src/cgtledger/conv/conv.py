from __future__ import annotations

import datetime as dt
import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

NUM_CLEAN_RE = re.compile(r"[,\s$]")  # remove thousands separators, spaces, dollar

_BROKER_DATE_FMT = "%d-%b-%Y"


def to_dec_strict(s: str | int | Decimal | None) -> Decimal:
    """Convert broker numeric strings to Decimal.

    Raises ValueError on invalid/missing data. Floats are rejected on purpose:
    rates and prices must come in as their decimal text.
    """
    if s is None:
        raise ValueError("Value is None")
    if isinstance(s, Decimal):
        return s
    if isinstance(s, bool):
        raise ValueError(f"Invalid decimal value: {s!r}")
    if isinstance(s, int):
        return Decimal(s)
    if isinstance(s, float):
        raise ValueError(f"Refusing binary float {s!r}; pass a string or Decimal")

    s_stripped = s.strip()
    if not s_stripped:
        raise ValueError("Value is empty string")

    if s_stripped in {"-", "--", "...", "N/A", "n/a"}:
        raise ValueError(f"Value is a placeholder: {s_stripped!r}")

    try:
        s_clean = NUM_CLEAN_RE.sub("", s_stripped)
        return Decimal(s_clean)
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal format: {s!r}") from e


def to_cents(s: str | int | Decimal) -> int:
    """Convert a dollar amount like '$318.47' to integer cents.

    Sub-cent digits are rounded half-to-even, matching the money helpers.
    """
    value = to_dec_strict(s)
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))


def to_whole_shares(s: str | int | Decimal) -> int:
    """Parse a share quantity, rejecting fractional values."""
    value = to_dec_strict(s)
    if value != value.to_integral_value():
        raise ValueError(f"Fractional share quantity not supported: {s!r}")
    return int(value)


def parse_date(d: str | dt.date) -> dt.date:
    """Parse date-like strings.
    Handles 'YYYY-MM-DD', 'YYYY-MM-DD, HH:MM:SS' and broker style '25-Nov-2025'.
    """
    if isinstance(d, dt.datetime):
        return d.date()
    if isinstance(d, dt.date):
        return d
    d = d.strip()
    if "," in d:
        d = d.split(",")[0].strip()
    try:
        return dt.date.fromisoformat(d)
    except ValueError:
        pass
    try:
        return dt.datetime.strptime(d, _BROKER_DATE_FMT).date()
    except ValueError as e:
        raise ValueError(f"Unrecognised date: {d!r}") from e
