from .broker_csv import (
    SaleCsvRow,
    VestCsvRow,
    parse_sale_csv,
    parse_vest_csv,
    read_sale_file,
    read_vest_file,
)

__all__ = [
    "SaleCsvRow",
    "VestCsvRow",
    "parse_sale_csv",
    "parse_vest_csv",
    "read_sale_file",
    "read_vest_file",
]
