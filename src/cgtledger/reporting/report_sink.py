from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from cgtledger.money import cents_to_units

from .report_builder import ReportBuilder

LABELS = {
    "sheet": {
        "summary": "Totals",
        "settled": "Settled Sales",
        "per_symbol": "Per Symbol Summary",
        "inventory": "Open Inventory",
    },
    "summary": {
        "metric": "Metric",
        "amount": "Amount",
        "gain_eur": "Total Gain/Loss (EUR)",
        "tax_eur": "Total CGT Due (EUR)",
        "sale_eur": "Total Disposal Value (EUR)",
        "cost_eur": "Total Acquisition Cost (EUR)",
        "net_eur": "Total Net Proceeds (EUR)",
        "gain_usd": "Total Gain/Loss (USD)",
    },
    "settled": [
        "Sale Date",
        "Ticker",
        "Num Shares",
        "Sale Price (USD)",
        "Gain/Loss (USD)",
        "Book Value (USD)",
        "Exchange Rate at Vest",
        "Gross Proceeds (USD)",
        "Vesting Value (USD)",
        "Exchange Rate at Sale",
        "Acquisition Cost (EUR)",
        "Euro Sale (EUR)",
        "Euro Gain (EUR)",
        "CGT Tax Due (EUR)",
        "Completed",
        "Net Proceeds (EUR)",
        "Type",
    ],
    "per_symbol": [
        "Ticker",
        "Shares Sold",
        "Gain/Loss (USD)",
        "Acquisition Cost (EUR)",
        "Disposal Value (EUR)",
        "Gain/Loss (EUR)",
        "CGT Tax Due (EUR)",
    ],
    "inventory": [
        "Vest Date",
        "Ticker",
        "Vested Quantity",
        "Remaining Quantity",
        "Price (USD)",
        "Exchange Rate",
        "Rate Date",
    ],
}

DATE_FMT = "YYYY-MM-DD"
RATE_FMT = "0.0000######"
MONEY_FMTS = {"USD": "$#,##0.00", "EUR": "€#,##0.00"}


class ReportSink(Protocol):
    def write(self, report: ReportBuilder) -> Path:  # returns written file path
        ...


def _f(value: Decimal) -> float:
    return float(value)


@dataclass
class ExcelReportSink:
    out_path: Path

    def write(self, report: ReportBuilder) -> Path:
        out_path = Path(self.out_path)
        wb = Workbook()
        wb.remove(wb.active)

        self._write_summary(wb, report)
        self._write_settled(wb, report)
        self._write_per_symbol(wb, report)
        if report.inventory:
            self._write_inventory(wb, report)

        for ws in wb.worksheets:
            self._autosize(ws)

        out_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(out_path)
        return out_path

    def _write_summary(self, wb: Workbook, report: ReportBuilder) -> None:
        labels = LABELS["summary"]
        ws = wb.create_sheet(title=LABELS["sheet"]["summary"])
        ws.append([labels["metric"], labels["amount"]])
        t = report.totals
        for key, total_key, ccy in (
            ("gain_eur", "gain_eur", "EUR"),
            ("tax_eur", "tax_due_eur", "EUR"),
            ("sale_eur", "sale_eur", "EUR"),
            ("cost_eur", "cost_eur", "EUR"),
            ("net_eur", "net_proceeds_eur", "EUR"),
            ("gain_usd", "gain_usd", "USD"),
        ):
            ws.append([labels[key], _f(t[total_key])])
            ws.cell(row=ws.max_row, column=2).number_format = MONEY_FMTS[ccy]

    def _write_settled(self, wb: Workbook, report: ReportBuilder) -> None:
        ws = wb.create_sheet(title=LABELS["sheet"]["settled"])
        ws.append(LABELS["settled"])
        usd_cols = (4, 5, 6, 8, 9)
        eur_cols = (11, 12, 13, 14, 16)
        rate_cols = (7, 10)
        for r in report.results:
            ws.append(
                [
                    r.sale_date,
                    r.ticker,
                    r.num_shares,
                    _f(r.sale_price_usd),
                    _f(r.gain_loss_usd),
                    _f(r.book_value_usd),
                    _f(r.rate_at_vest),
                    _f(r.gross_proceeds_usd),
                    _f(r.vesting_value_usd),
                    _f(r.rate_at_sale),
                    _f(r.cost_eur),
                    _f(r.sale_eur),
                    _f(r.gain_eur),
                    _f(r.tax_due_eur),
                    r.completed,
                    _f(r.net_proceeds_eur),
                    r.method,
                ]
            )
            row = ws.max_row
            ws.cell(row=row, column=1).number_format = DATE_FMT
            for col in usd_cols:
                ws.cell(row=row, column=col).number_format = MONEY_FMTS["USD"]
            for col in eur_cols:
                ws.cell(row=row, column=col).number_format = MONEY_FMTS["EUR"]
            for col in rate_cols:
                ws.cell(row=row, column=col).number_format = RATE_FMT

    def _write_per_symbol(self, wb: Workbook, report: ReportBuilder) -> None:
        ws = wb.create_sheet(title=LABELS["sheet"]["per_symbol"])
        ws.append(LABELS["per_symbol"])
        for ticker in sorted(report.symbol_totals):
            t = report.symbol_totals[ticker]
            ws.append(
                [
                    ticker,
                    int(t["shares"]),
                    _f(t["gain_usd"]),
                    _f(t["cost_eur"]),
                    _f(t["sale_eur"]),
                    _f(t["gain_eur"]),
                    _f(t["tax_due_eur"]),
                ]
            )
            row = ws.max_row
            ws.cell(row=row, column=3).number_format = MONEY_FMTS["USD"]
            for col in (4, 5, 6, 7):
                ws.cell(row=row, column=col).number_format = MONEY_FMTS["EUR"]

    def _write_inventory(self, wb: Workbook, report: ReportBuilder) -> None:
        ws = wb.create_sheet(title=LABELS["sheet"]["inventory"])
        ws.append(LABELS["inventory"])
        for item in report.inventory:
            lot = item.lot
            ws.append(
                [
                    lot.date,
                    lot.symbol,
                    lot.quantity,
                    item.remaining,
                    _f(cents_to_units(lot.unit_price_cents)),
                    _f(lot.rate),
                    lot.rate_date,
                ]
            )
            row = ws.max_row
            ws.cell(row=row, column=1).number_format = DATE_FMT
            ws.cell(row=row, column=5).number_format = MONEY_FMTS["USD"]
            ws.cell(row=row, column=6).number_format = RATE_FMT
            ws.cell(row=row, column=7).number_format = DATE_FMT

    @staticmethod
    def _autosize(sheet, max_width: int = 40, min_width: int = 10) -> None:
        for col in range(1, sheet.max_column + 1):
            max_len = 0
            for row in range(1, sheet.max_row + 1):
                v = sheet.cell(row=row, column=col).value
                if v is None:
                    continue
                # Approximate display width using string conversion
                s = v.strftime("%Y-%m-%d") if hasattr(v, "strftime") else str(v)
                max_len = max(max_len, len(s))
            width = min(max_width, max(min_width, max_len + 2))
            sheet.column_dimensions[get_column_letter(col)].width = width
