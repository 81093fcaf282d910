"""Export and import of ledger data as JSON or CSV."""

from moneymate.services.exchange.exporter import (
    CSV_HEADER,
    merge_transactions,
    parse_csv,
    to_csv,
    to_export_dict,
    to_json,
)

__all__ = [
    "CSV_HEADER",
    "merge_transactions",
    "parse_csv",
    "to_csv",
    "to_export_dict",
    "to_json",
]
