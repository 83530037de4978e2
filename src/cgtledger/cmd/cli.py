"""
Track RSU vests and share sales and compute Irish capital gains tax per sale
(FIFO matching, acquisition leg at the vest-date ECB rate, disposal leg at the
sale-date ECB rate).

This module acts as the CLI orchestrator, delegating responsibilities to SRP modules:
- Ledger storage: cgtledger.ledger
- Recording and queries: cgtledger.portfolio
- FIFO settlement: cgtledger.settlement
- FX rates: cgtledger.rates
- Output writing: cgtledger.reporting

Usage
-----
    cgtledger add-vest 2023-01-10 GOOG 10 100.00
    cgtledger add-sale 2023-06-09 10 105.00
    cgtledger sales
    cgtledger settle <sale-id>
    cgtledger history
    cgtledger export --year 2023 ./cgt_2023.xlsx

    # Use a local rate table instead of the Frankfurter API
    cgtledger --fx-table ./fx_rates.csv add-sale 2023-06-09 10 105.00

Forex CSV schema (base EUR):
    date,currency,rate
    2023-06-09,USD,1.0773
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from decimal import ROUND_HALF_EVEN, Decimal, getcontext
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cgtledger.conv import parse_date, to_cents, to_dec_strict, to_whole_shares
from cgtledger.ledger import DEFAULT_DATABASE_URL, LedgerDatabase
from cgtledger.logging import configure_logging
from cgtledger.money import cents_to_units
from cgtledger.portfolio import Portfolio
from cgtledger.rates import FrankfurterClient, FxTable, RateSource
from cgtledger.reporting import ExcelReportSink, ReportBuilder
from cgtledger.settlement import DEFAULT_TAX_RATE, SettlementError

# Monetary precision and rounding
getcontext().prec = 28
getcontext().rounding = ROUND_HALF_EVEN

DB_ENV_VAR = "CGT_LEDGER_DB"

logger = logging.getLogger(__name__)


def _open_portfolio(args: argparse.Namespace) -> Portfolio:
    rates: RateSource
    if args.fx_table:
        rates = FxTable.from_csv(args.fx_table)
    else:
        rates = FrankfurterClient()
    database = LedgerDatabase(args.db)
    try:
        database.create_schema()
    except SQLAlchemyError:
        database.dispose()
        raise
    return Portfolio(database, rates, tax_rate=args.tax_rate)


def _print(line: str = "") -> None:
    sys.stdout.write(line + "\n")


def cmd_add_vest(portfolio: Portfolio, args: argparse.Namespace) -> None:
    lot = portfolio.record_acquisition(
        args.date, args.symbol, args.quantity, args.price_cents
    )
    _print(f"{lot.id}  {lot.date}  {lot.symbol}  {lot.quantity} @ {lot.rate} EUR/USD")


def cmd_add_sale(portfolio: Portfolio, args: argparse.Namespace) -> None:
    sale = portfolio.record_disposal(args.date, args.quantity, args.price_cents)
    _print(f"{sale.id}  {sale.date}  {sale.quantity} @ {sale.rate} EUR/USD")


def _print_results(results) -> None:
    for r in results:
        _print(
            f"{r.sale_date}  {r.ticker:<6} {r.num_shares:>6}  "
            f"gain EUR {r.gain_eur:>12}  tax EUR {r.tax_due_eur:>12}  "
            f"net EUR {r.net_proceeds_eur:>12}"
        )


def cmd_settle(portfolio: Portfolio, args: argparse.Namespace) -> None:
    _print_results(portfolio.settle(args.sale_id))


def cmd_settle_all(portfolio: Portfolio, args: argparse.Namespace) -> None:
    _print_results(portfolio.settle_all())


def cmd_inventory(portfolio: Portfolio, args: argparse.Namespace) -> None:
    for item in portfolio.current_inventory():
        lot = item.lot
        _print(
            f"{lot.id}  {lot.date}  {lot.symbol:<6} {item.remaining:>6}/{lot.quantity:<6} "
            f"${cents_to_units(lot.unit_price_cents)}  rate {lot.rate}"
        )


def cmd_sales(portfolio: Portfolio, args: argparse.Namespace) -> None:
    for sale in portfolio.disposals():
        status = "settled" if sale.settled else "open"
        _print(
            f"{sale.id}  {sale.date}  {sale.quantity:>6}  "
            f"${cents_to_units(sale.unit_price_cents)}  rate {sale.rate}  {status}"
        )


def cmd_history(portfolio: Portfolio, args: argparse.Namespace) -> None:
    _print_results(portfolio.settlement_history())


def cmd_import_vests(portfolio: Portfolio, args: argparse.Namespace) -> None:
    lots = portfolio.import_acquisitions(args.csv, args.symbol)
    _print(f"Imported {len(lots)} vest(s)")


def cmd_import_sales(portfolio: Portfolio, args: argparse.Namespace) -> None:
    sales = portfolio.import_disposals(args.csv)
    _print(f"Imported {len(sales)} sale(s)")


def cmd_export(portfolio: Portfolio, args: argparse.Namespace) -> None:
    rb = ReportBuilder(year=args.year)
    rb.add_results(portfolio.settlement_history())
    rb.set_inventory(portfolio.current_inventory())
    out_path = ExcelReportSink(out_path=Path(args.output)).write(rb)
    logger.info("Wrote workbook to %s", out_path)
    _print(str(out_path))


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="cgtledger",
        description="Irish CGT ledger for RSU vests and sales (FIFO, ECB rates)",
    )
    p.add_argument(
        "--db",
        type=str,
        default=os.environ.get(DB_ENV_VAR, DEFAULT_DATABASE_URL),
        help=f"SQLAlchemy database URL (default: ${DB_ENV_VAR} or {DEFAULT_DATABASE_URL})",
    )
    p.add_argument(
        "--fx-table",
        type=str,
        default=None,
        help=(
            "Forex rates CSV with base EUR: 'date,currency,rate' where "
            "'rate' is USD per EUR. Without it rates come from the Frankfurter API"
        ),
    )
    p.add_argument(
        "--tax-rate",
        type=to_dec_strict,
        default=DEFAULT_TAX_RATE,
        help=f"CGT rate applied to gains (default: {DEFAULT_TAX_RATE})",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity: -v (INFO), -vv (DEBUG)",
    )
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("add-vest", help="Record a vest (acquisition)")
    s.add_argument("date", type=parse_date, help="Vest date (YYYY-MM-DD)")
    s.add_argument("symbol", type=str, help="Ticker symbol")
    s.add_argument("quantity", type=to_whole_shares, help="Whole shares vested")
    s.add_argument("price_cents", type=to_cents, metavar="price", help="USD price per share")
    s.set_defaults(func=cmd_add_vest)

    s = sub.add_parser("add-sale", help="Record a sale (disposal)")
    s.add_argument("date", type=parse_date, help="Sale date (YYYY-MM-DD)")
    s.add_argument("quantity", type=to_whole_shares, help="Whole shares sold")
    s.add_argument("price_cents", type=to_cents, metavar="price", help="USD price per share")
    s.set_defaults(func=cmd_add_sale)

    s = sub.add_parser("settle", help="Settle one sale against the oldest vests")
    s.add_argument("sale_id", type=str)
    s.set_defaults(func=cmd_settle)

    s = sub.add_parser("settle-all", help="Settle every open sale, oldest first")
    s.set_defaults(func=cmd_settle_all)

    s = sub.add_parser("inventory", help="List vests with unsold shares")
    s.set_defaults(func=cmd_inventory)

    s = sub.add_parser("sales", help="List all sales")
    s.set_defaults(func=cmd_sales)

    s = sub.add_parser("history", help="List settled sale chunks")
    s.set_defaults(func=cmd_history)

    s = sub.add_parser("import-vests", help="Import a release CSV")
    s.add_argument("csv", type=str)
    s.add_argument("--symbol", type=str, required=True)
    s.set_defaults(func=cmd_import_vests)

    s = sub.add_parser("import-sales", help="Import a sale CSV")
    s.add_argument("csv", type=str)
    s.set_defaults(func=cmd_import_sales)

    s = sub.add_parser("export", help="Write settlement history to an .xlsx workbook")
    s.add_argument("output", type=str)
    s.add_argument("--year", type=int, default=None, help="Only sales in this tax year")
    s.set_defaults(func=cmd_export)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_argparser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    verbosity_map = {
        0: logging.WARNING,  # Default: quiet
        1: logging.INFO,  # -v: informational
        2: logging.DEBUG,  # -vv and above: debug
    }
    level = verbosity_map.get(min(args.verbose, 2), logging.WARNING)
    configure_logging(level=level)

    portfolio: Portfolio | None = None
    try:
        portfolio = _open_portfolio(args)
        args.func(portfolio, args)
    except SettlementError as exc:
        logger.error("%s", exc)
        return 2
    except (ValueError, OSError, SQLAlchemyError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        if portfolio is not None:
            portfolio.database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
