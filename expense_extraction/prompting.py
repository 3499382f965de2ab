"""Prompt construction for model-based transaction extraction.

The model is asked for one JSON object shaped ``{"transactions": [...]}``.
Nothing enforces that shape on the model side, which is why responses go
through :mod:`expense_extraction.validation` before use.
"""

from __future__ import annotations

from .models import CategorySet

BEGIN = "BEGIN_STATEMENT_TEXT\n"
END = "\nEND_STATEMENT_TEXT"

_RESPONSE_SHAPE = """{
  "transactions": [
    {
      "id": "unique_id",
      "date": "YYYY-MM-DD",
      "description": "cleaned transaction description",
      "amount": -123.45,
      "category": "category_name",
      "confidence": 0.95
    }
  ]
}"""


def build_system_instructions(categories: CategorySet) -> str:
    """Return the system prompt listing the allowed categories and output shape."""

    names = ", ".join(categories.names)
    return (
        "You are an expert at extracting and categorizing financial transactions "
        "from bank statements.\n\n"
        "Extract every expense transaction from the provided statement text and "
        f"assign each exactly one of these categories: {names}. Use "
        f"{categories.catch_all} for anything that fits no other category. Give a "
        "confidence score between 0 and 1 for each categorization.\n\n"
        "Return only a JSON object with this structure:\n"
        f"{_RESPONSE_SHAPE}\n\n"
        "Rules:\n"
        "- Only include expense transactions (debits), as negative amounts.\n"
        "- Skip deposits, incoming transfers, credits, and reversals.\n"
        "- Dates must be in YYYY-MM-DD format.\n"
        "- Clean descriptions so they are readable.\n"
        "- Do not include duplicate transactions.\n"
        "- Never invent categories."
    )


def build_user_content(raw_text: str) -> str:
    """Embed the statement text between delimiter lines."""

    return (
        "Extract and categorize all expense transactions from this bank statement text.\n\n"
        f"{BEGIN}{raw_text}{END}"
    )


__all__ = ["BEGIN", "END", "build_system_instructions", "build_user_content"]
