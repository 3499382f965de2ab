"""CSV export of processed transactions and category summaries."""

from __future__ import annotations

import csv
from collections.abc import Iterable, Mapping
from decimal import Decimal
from io import StringIO

from .models import Transaction

TRANSACTION_HEADERS: tuple[str, ...] = ("Date", "Description", "Amount", "Category", "Confidence")
SUMMARY_HEADERS: tuple[str, ...] = ("Category", "Total Amount")


def _fmt_amount(d: Decimal) -> str:
    return f"{d:.2f}"


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text; confidence is shown as a percentage."""

    with StringIO() as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(TRANSACTION_HEADERS)
        for t in transactions:
            writer.writerow(
                [
                    t.date,
                    t.description,
                    _fmt_amount(t.amount),
                    t.category,
                    f"{t.confidence * 100:.1f}%",
                ]
            )
        return f.getvalue()


def summary_to_csv(summary: Mapping[str, Decimal]) -> str:
    with StringIO() as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(SUMMARY_HEADERS)
        for category, amount in summary.items():
            writer.writerow([category, _fmt_amount(amount)])
        return f.getvalue()


__all__ = ["summary_to_csv", "transactions_to_csv"]
