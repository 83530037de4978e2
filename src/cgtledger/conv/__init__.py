from .conv import (
    parse_date,
    to_cents,
    to_dec_strict,
    to_whole_shares,
)

__all__ = [
    "parse_date",
    "to_cents",
    "to_dec_strict",
    "to_whole_shares",
]
