"""Extraction pipeline: raw text to categorized expenses and category totals.

Public API:
    - :func:`process`
    - :func:`extract_with_fallback`
    - :func:`summarize`
    - :func:`deduplicate_transactions`

Every call is a pure function of its inputs (plus the classifier's training
table). There are no retries and no caching here; timeouts and retries for
the slow collaborators (PDF text extraction, model calls) belong to callers.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from decimal import Decimal
from typing import Literal, TypeAlias

from .classifier import KeywordClassifier
from .errors import EmptyInputError, ModelRequestError, ParseFailure
from .line_parser import parse_statement_text
from .logging_setup import get_logger
from .models import (
    DEFAULT_CATEGORIES,
    CategorySet,
    CategorySummary,
    ExtractionMetadata,
    ExtractionResult,
    Transaction,
    as_category_set,
)
from .normalizers import quantize_amount
from .validation import synthesize_id, validate_model_response_with_stats

_logger = get_logger("expense_extraction.pipeline")

# (raw_text, categories) -> free-form model response text
ModelRequester: TypeAlias = Callable[[str, CategorySet], str]


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def _classify_local(
    raw_text: str,
    categories: CategorySet,
    *,
    classifier: KeywordClassifier,
    year: int | None,
) -> tuple[list[Transaction], int]:
    """Parse lines, keep expenses, and classify them.

    Returns ``(transactions, candidate_count)``.
    """

    records = parse_statement_text(raw_text, year=year)
    expenses = [r for r in records if r.amount < 0]
    if len(expenses) != len(records):
        _logger.debug(
            "pipeline:non_expense_dropped count=%d", len(records) - len(expenses)
        )

    results = classifier.classify_batch([r.description for r in expenses])
    out: list[Transaction] = []
    for position, (record, result) in enumerate(zip(expenses, results, strict=True), start=1):
        out.append(
            Transaction(
                id=synthesize_id(position),
                date=record.date,
                description=record.description,
                amount=record.amount,
                category=categories.coerce(result.category),
                confidence=result.confidence,
            )
        )
    return out, len(records)


def deduplicate_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Drop repeats of the same (date, description, amount), keeping the first.

    Descriptions compare case-insensitively. Order is preserved. Statements
    sometimes print one payment twice; the stage is opt-in since two
    identical purchases on the same day are also legitimate.
    """

    seen: set[tuple[str, str, Decimal]] = set()
    out: list[Transaction] = []
    for t in transactions:
        key = (t.date, t.description.casefold(), t.amount)
        if key in seen:
            continue
        seen.add(key)
        out.append(t)
    return out


def summarize(
    transactions: Iterable[Transaction],
    categories: CategorySet | Iterable[str] = DEFAULT_CATEGORIES,
) -> tuple[Decimal, CategorySummary]:
    """Return ``(total_amount, summary)`` over ``abs(amount)``.

    Every category of ``categories`` appears in the summary. Transactions
    whose category is outside the set count toward the total only.
    """

    category_set = as_category_set(categories)
    total = Decimal("0")
    per_category: dict[str, Decimal] = {name: Decimal("0") for name in category_set}
    for t in transactions:
        magnitude = abs(t.amount)
        total += magnitude
        if t.category in per_category:
            per_category[t.category] += magnitude
    return quantize_amount(total), CategorySummary(
        category_set, {k: quantize_amount(v) for k, v in per_category.items()}
    )


def _average_confidence(transactions: Sequence[Transaction]) -> float:
    if not transactions:
        return 0.0
    return round(sum(t.confidence for t in transactions) / len(transactions), 4)


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def process(
    raw_text: str,
    categories: CategorySet | Iterable[str] = DEFAULT_CATEGORIES,
    *,
    model_response: str | None = None,
    classifier: KeywordClassifier | None = None,
    deduplicate: bool = False,
    year: int | None = None,
) -> ExtractionResult:
    """Extract, categorize, and aggregate the expenses in ``raw_text``.

    Parameters
    ----------
    raw_text:
        Statement text. Empty or whitespace-only input raises
        :class:`EmptyInputError`.
    categories:
        Active category set (or names; the catch-all is appended when
        missing).
    model_response:
        When given, transactions come from this language-model response via
        the validator (and :class:`ParseFailure` propagates); otherwise the
        local line parser and keyword classifier are used.
    classifier:
        Classifier for the local path. A fresh default instance is built
        when omitted.
    deduplicate:
        Apply :func:`deduplicate_transactions` before aggregation.
    year:
        Year for short statement dates (local path only).
    """

    if not isinstance(raw_text, str) or not raw_text.strip():
        raise EmptyInputError("No statement text to process")

    category_set = as_category_set(categories)
    source: Literal["local", "model"]
    if model_response is None:
        source = "local"
        transactions, candidate_count = _classify_local(
            raw_text,
            category_set,
            classifier=classifier if classifier is not None else KeywordClassifier(),
            year=year,
        )
    else:
        source = "model"
        transactions, candidate_count = validate_model_response_with_stats(
            model_response, category_set
        )

    duplicate_count = 0
    if deduplicate:
        unique = deduplicate_transactions(transactions)
        duplicate_count = len(transactions) - len(unique)
        transactions = unique

    total, summary = summarize(transactions, category_set)
    metadata = ExtractionMetadata(
        source=source,
        candidate_count=candidate_count,
        expense_count=len(transactions),
        skipped_count=max(candidate_count - len(transactions) - duplicate_count, 0),
        duplicate_count=duplicate_count,
        average_confidence=_average_confidence(transactions),
    )
    _logger.info(
        "pipeline:done source=%s candidates=%d expenses=%d total=%s",
        source,
        candidate_count,
        len(transactions),
        total,
    )
    return ExtractionResult(
        transactions=tuple(transactions),
        total_amount=total,
        summary=summary,
        metadata=metadata,
    )


def extract_with_fallback(
    raw_text: str,
    categories: CategorySet | Iterable[str] = DEFAULT_CATEGORIES,
    *,
    request_model: ModelRequester | None = None,
    classifier: KeywordClassifier | None = None,
    deduplicate: bool = False,
    year: int | None = None,
) -> ExtractionResult:
    """Prefer a language model, falling back to local extraction.

    ``request_model`` receives the raw text and category set and returns the
    model's free-form answer. When it is ``None``, raises
    :class:`ModelRequestError`, or its answer raises :class:`ParseFailure`,
    the deterministic local path is used instead.
    """

    if not isinstance(raw_text, str) or not raw_text.strip():
        raise EmptyInputError("No statement text to process")

    category_set = as_category_set(categories)
    if request_model is not None:
        try:
            response_text = request_model(raw_text, category_set)
            return process(
                raw_text,
                category_set,
                model_response=response_text,
                deduplicate=deduplicate,
            )
        except (ModelRequestError, ParseFailure) as e:
            _logger.warning(
                "pipeline:model_fallback error=%s detail=%s", e.__class__.__name__, e
            )

    return process(
        raw_text, category_set, classifier=classifier, deduplicate=deduplicate, year=year
    )


__all__ = [
    "ModelRequester",
    "deduplicate_transactions",
    "extract_with_fallback",
    "process",
    "summarize",
]
