"""
Export / Import Codec

JSON export: {"transactions": [...], "budgets": {...}}, pretty-printed.
CSV export: one row per transaction with a fixed header; every data
cell is double-quoted and `Recurring` is written as Yes/No.

Import is validated in moneymate.validation; this module only turns
validated payloads into concrete transaction lists.
"""

import csv
import io
import json
from decimal import Decimal
from typing import Callable, Iterable, Mapping

from moneymate.models.transaction import Transaction, format_decimal
from moneymate.validation import ImportPayload, ImportValidationError


CSV_HEADER = ["Date", "Type", "Category", "Amount", "Description", "Recurring"]
JSON_INDENT = 2


def to_export_dict(
    transactions: Iterable[Transaction],
    budgets: Mapping[str, Decimal],
) -> dict:
    return {
        "transactions": [tx.to_storage() for tx in transactions],
        "budgets": {category: format_decimal(limit) for category, limit in budgets.items()},
    }


def to_json(
    transactions: Iterable[Transaction],
    budgets: Mapping[str, Decimal],
) -> str:
    return json.dumps(to_export_dict(transactions, budgets), indent=JSON_INDENT)


def to_csv(transactions: Iterable[Transaction]) -> str:
    """
    Render transactions as CSV.

    The header row is bare; data rows are fully quoted. Quotes inside a
    description are doubled, so the output always parses back.
    """
    buffer = io.StringIO()
    buffer.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for tx in transactions:
        writer.writerow([
            tx.date.isoformat(),
            tx.type.value,
            tx.category,
            format_decimal(tx.amount),
            tx.description,
            "Yes" if tx.recurring else "No",
        ])
    return buffer.getvalue().rstrip("\n")


def parse_csv(text: str) -> list[dict]:
    """
    Read a CSV export back into transaction dicts.

    The result has no timestamps; it is shaped for
    `validate_import_payload({"transactions": rows})`.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    if reader.fieldnames is None or [name.strip() for name in reader.fieldnames] != CSV_HEADER:
        raise ImportValidationError([
            f"CSV header must be: {','.join(CSV_HEADER)}"
        ])

    rows = []
    for row in reader:
        rows.append({
            "date": row["Date"],
            "type": row["Type"],
            "category": row["Category"],
            "amount": row["Amount"],
            "description": row["Description"] or "",
            "recurring": (row["Recurring"] or "").strip().lower() == "yes",
        })
    return rows


def merge_transactions(
    existing: Iterable[Transaction],
    payload: ImportPayload,
    make_timestamp: Callable[[set[int]], int],
) -> list[Transaction]:
    """
    Append imported transactions to an existing list.

    Imported rows keep their timestamp unless it is missing or already
    taken, in which case `make_timestamp(taken)` supplies a fresh one.
    A renumbered recurring row stays in the series it came from.
    """
    merged = list(existing)
    taken = {tx.timestamp for tx in merged}
    for item in payload.transactions:
        tx = item.transaction
        if not item.has_timestamp or tx.timestamp in taken:
            update = {"timestamp": make_timestamp(taken)}
            if tx.recurring and item.has_timestamp:
                update["series_id"] = tx.series
            tx = tx.model_copy(update=update)
        taken.add(tx.timestamp)
        merged.append(tx)
    return merged
