"""Recovery and validation of transactions from language-model responses.

A model is asked to answer with ``{"transactions": [...]}`` but nothing
enforces that, so the response is treated as free-form text:

1. :func:`extract_json_object` recovers the JSON object (greedy ``{ ... }``
   slice first, then the whole text) or raises
   :class:`~expense_extraction.errors.ParseFailure`.
2. Each entry is validated with Pydantic. Malformed entries are dropped and
   debug-logged; they never fail the batch.

Normalization applied to surviving entries: amounts negated when positive and
rounded half-up to cents; unknown categories coerced to the catch-all;
confidence clamped into ``[0.5, 1.0]`` (``0.8`` when absent); ``id``
synthesized as ``txn_<NNN>`` from the entry position when missing or already
used earlier in the batch.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator

from .errors import ParseFailure
from .logging_setup import get_logger
from .models import CategorySet, Transaction, as_category_set
from .normalizers import quantize_amount

_logger = get_logger("expense_extraction.validation")

DEFAULT_MODEL_CONFIDENCE = 0.8
MIN_MODEL_CONFIDENCE = 0.5
MAX_MODEL_CONFIDENCE = 1.0

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def synthesize_id(position: int) -> str:
    """Return the batch-local id for a 1-based ``position`` (``txn_001``)."""

    return f"txn_{position:03d}"


# ---------------------------------------------------------------------------
# JSON recovery
# ---------------------------------------------------------------------------


def extract_json_object(response_text: str) -> Mapping[str, Any]:
    """Return the JSON object embedded in ``response_text``.

    Tries the slice from the first ``{`` to the last ``}`` and then the entire
    text. Raises :class:`ParseFailure` when neither decodes to a JSON object.
    """

    attempts: list[str] = []
    first = response_text.find("{")
    last = response_text.rfind("}")
    if first != -1 and last > first:
        attempts.append(response_text[first : last + 1])
    attempts.append(response_text)

    decoded: Any = None
    error: json.JSONDecodeError | None = None
    for candidate in attempts:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError as e:
            error = e
            continue
        if isinstance(decoded, Mapping):
            return decoded

    if decoded is not None or error is None:
        raise ParseFailure("Model response JSON is not an object")
    raise ParseFailure("Failed to parse model response as JSON") from error


# ---------------------------------------------------------------------------
# Entry validation
# ---------------------------------------------------------------------------


class _ModelEntry(BaseModel):
    """Typed view of one model-supplied transaction.

    Validators read ``ValidationInfo.context``:
      - ``categories``: the active :class:`CategorySet`
      - ``position``: 1-based position of the entry in the source array
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    id: str | None = None
    date: str
    description: str
    amount: Decimal
    category: str | None = None
    confidence: float | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, v: Any) -> str | None:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int | str):
            s = str(v).strip()
            return s or None
        return None

    @field_validator("date")
    @classmethod
    def _date_format(cls, v: str) -> str:
        if not _ISO_DATE_RE.match(v):
            raise ValueError("date must be YYYY-MM-DD")
        return v

    @field_validator("description")
    @classmethod
    def _description_non_empty(cls, v: str) -> str:
        s = " ".join(v.split())
        if not s:
            raise ValueError("description must be non-empty")
        return s

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_numeric(cls, v: Any) -> Decimal:
        if isinstance(v, bool) or not isinstance(v, int | float | str | Decimal):
            raise ValueError("amount must be numeric")
        if isinstance(v, str):
            v = v.strip().replace(",", "").replace("$", "")
        d = quantize_amount(v)
        # Expenses only: positive amounts are flipped, negatives kept.
        d = -d if d > 0 else d
        if d == 0:
            raise ValueError("amount must be non-zero")
        return d

    @field_validator("category", mode="before")
    @classmethod
    def _category_in_set(cls, v: Any, info: ValidationInfo) -> str:
        categories: CategorySet = info.context["categories"]
        coerced = categories.coerce(v if isinstance(v, str) else None)
        if coerced != v:
            _logger.debug(
                "validation:category_coerced position=%s value=%r",
                info.context.get("position"),
                v,
            )
        return coerced

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        if isinstance(v, bool) or not isinstance(v, int | float):
            return DEFAULT_MODEL_CONFIDENCE
        # json.loads accepts NaN and Infinity
        if not math.isfinite(v):
            return DEFAULT_MODEL_CONFIDENCE
        return min(max(float(v), MIN_MODEL_CONFIDENCE), MAX_MODEL_CONFIDENCE)


def _claim_id(supplied: str | None, position: int, used: set[str]) -> str:
    """Reserve ``supplied`` if free, else the first unused ``txn_NNN`` from ``position`` on."""

    if supplied and supplied not in used:
        used.add(supplied)
        return supplied
    n = position
    while synthesize_id(n) in used:
        n += 1
    claimed = synthesize_id(n)
    if supplied:
        _logger.debug(
            "validation:id_reassigned position=%d value=%r id=%s", position, supplied, claimed
        )
    used.add(claimed)
    return claimed


def _to_transaction(entry: _ModelEntry, *, txn_id: str, categories: CategorySet) -> Transaction:
    # Field defaults bypass "before" validators, so absent values are filled here.
    return Transaction(
        id=txn_id,
        date=entry.date,
        description=entry.description,
        amount=entry.amount,
        category=entry.category if entry.category is not None else categories.catch_all,
        confidence=(
            entry.confidence if entry.confidence is not None else DEFAULT_MODEL_CONFIDENCE
        ),
    )


def validate_model_response_with_stats(
    response_text: str,
    allowed_categories: CategorySet | Iterable[str],
) -> tuple[list[Transaction], int]:
    """Validate a model response; return ``(transactions, entry_count)``.

    ``entry_count`` is the number of entries found in the ``transactions``
    array before validation, for reporting how many were dropped.
    """

    categories = as_category_set(allowed_categories)
    body = extract_json_object(response_text)

    raw_entries = body.get("transactions")
    if not isinstance(raw_entries, list):
        _logger.warning("validation:no_transactions_array keys=%s", sorted(map(str, body)))
        return [], 0

    out: list[Transaction] = []
    used_ids: set[str] = set()
    for position, raw in enumerate(raw_entries, start=1):
        if not isinstance(raw, Mapping):
            _logger.debug("validation:skip position=%d reason=not_an_object", position)
            continue
        try:
            entry = _ModelEntry.model_validate(
                raw, context={"categories": categories, "position": position}
            )
        except ValidationError as e:
            fields = ",".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
            _logger.debug("validation:skip position=%d fields=%s", position, fields)
            continue
        txn_id = _claim_id(entry.id, position, used_ids)
        out.append(_to_transaction(entry, txn_id=txn_id, categories=categories))

    _logger.info("validation:done entries=%d valid=%d", len(raw_entries), len(out))
    return out, len(raw_entries)


def validate_model_response(
    response_text: str,
    allowed_categories: CategorySet | Iterable[str],
) -> list[Transaction]:
    """Extract and validate model-supplied transactions.

    Raises :class:`ParseFailure` when no JSON object can be recovered. Entries
    that fail validation are omitted; output order follows the source array.
    """

    transactions, _ = validate_model_response_with_stats(response_text, allowed_categories)
    return transactions


__all__ = [
    "DEFAULT_MODEL_CONFIDENCE",
    "extract_json_object",
    "synthesize_id",
    "validate_model_response",
    "validate_model_response_with_stats",
]
