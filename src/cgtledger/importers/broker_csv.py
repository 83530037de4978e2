"""Parsers for the broker's equity award CSV exports.

Release (vest) export:
    Vest Date,Order Number,Plan,Type,Status,Price,Quantity,Net Cash Proceeds,...
    25-Nov-2025,RB9995EE17,GSU Class C,Release,Staged,$318.47,14,$0.00,...

Sale export (quantity is negative):
    Execution Date,Order Number,Plan,Type,Order Status,Price,Quantity,Net Amount,...
    18-Mar-2025,WBC8F81C195-1EE,Cash,Sale,Complete,$1.00,-179,$179.72,...
"""

from __future__ import annotations

import csv
import datetime as dt
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from cgtledger.conv import parse_date, to_cents, to_whole_shares
from cgtledger.settlement.errors import ValidationFailure

logger = logging.getLogger(__name__)

COL_DATE = 0
COL_PRICE = 5
COL_QUANTITY = 6


@dataclass
class VestCsvRow:
    date: dt.date
    quantity: int
    price_cents: int


@dataclass
class SaleCsvRow:
    date: dt.date
    quantity: int  # always positive
    price_cents: int


def _records(lines: Iterable[str]) -> Iterator[tuple[int, list[str]]]:
    reader = csv.reader(lines, skipinitialspace=True)
    header = next(reader, None)
    if header is None:
        raise ValidationFailure("CSV is empty; expected a header row")
    for line_no, record in enumerate(reader, start=2):
        if not record or not any(cell.strip() for cell in record):
            continue
        if len(record) <= COL_QUANTITY:
            raise ValidationFailure(
                f"line {line_no}: expected at least {COL_QUANTITY + 1} columns, "
                f"got {len(record)}"
            )
        yield line_no, record


def _parse_fields(line_no: int, record: list[str]) -> tuple[dt.date, int, int]:
    try:
        date = parse_date(record[COL_DATE])
        price_cents = to_cents(record[COL_PRICE])
        quantity = to_whole_shares(record[COL_QUANTITY])
    except ValueError as e:
        raise ValidationFailure(f"line {line_no}: {e}") from e
    return date, quantity, price_cents


def parse_vest_csv(lines: Iterable[str]) -> list[VestCsvRow]:
    rows: list[VestCsvRow] = []
    for line_no, record in _records(lines):
        date, quantity, price_cents = _parse_fields(line_no, record)
        rows.append(VestCsvRow(date=date, quantity=quantity, price_cents=price_cents))
    logger.debug("Parsed %d vest rows", len(rows))
    return rows


def parse_sale_csv(lines: Iterable[str]) -> list[SaleCsvRow]:
    rows: list[SaleCsvRow] = []
    for line_no, record in _records(lines):
        date, quantity, price_cents = _parse_fields(line_no, record)
        rows.append(
            SaleCsvRow(date=date, quantity=abs(quantity), price_cents=price_cents)
        )
    logger.debug("Parsed %d sale rows", len(rows))
    return rows


def read_vest_file(path: str | Path) -> list[VestCsvRow]:
    with open(path, encoding="utf-8", newline="") as fp:
        return parse_vest_csv(fp)


def read_sale_file(path: str | Path) -> list[SaleCsvRow]:
    with open(path, encoding="utf-8", newline="") as fp:
        return parse_sale_csv(fp)
