"""Data models for ``expense_extraction``.

Records are frozen dataclasses so a processed batch can be shared freely
between threads. Amounts are ``Decimal`` values quantized to two places;
``date`` values are kept as canonical ``YYYY-MM-DD`` strings to preserve exact
output formatting.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Literal

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

CATCH_ALL_CATEGORY = "Miscellaneous"


@dataclass(frozen=True, slots=True)
class CategorySet:
    """The active, ordered set of category names.

    ``catch_all`` must be one of ``names``; it receives unclassified records
    and any category value that is not a member of the set.
    """

    names: tuple[str, ...]
    catch_all: str = CATCH_ALL_CATEGORY

    def __post_init__(self) -> None:
        if not self.names:
            raise ValueError("CategorySet requires at least one category name")
        seen: set[str] = set()
        for name in self.names:
            if not isinstance(name, str) or not name.strip() or name != name.strip():
                raise ValueError(f"invalid category name: {name!r}")
            if name in seen:
                raise ValueError(f"duplicate category name: {name!r}")
            seen.add(name)
        if self.catch_all not in seen:
            raise ValueError(f"catch-all category {self.catch_all!r} must be in the set")

    @classmethod
    def of(cls, names: Iterable[str], *, catch_all: str = CATCH_ALL_CATEGORY) -> CategorySet:
        """Build a set from arbitrary names, appending ``catch_all`` when missing.

        Names are trimmed; blanks and repeats are dropped.
        """

        cleaned = [n.strip() for n in names if isinstance(n, str) and n.strip()]
        ordered = list(dict.fromkeys(cleaned))
        if catch_all not in ordered:
            ordered.append(catch_all)
        return cls(tuple(ordered), catch_all)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def coerce(self, name: str | None) -> str:
        """Return ``name`` when it is a member, otherwise the catch-all."""

        if isinstance(name, str) and name.strip() in self.names:
            return name.strip()
        return self.catch_all


DEFAULT_CATEGORIES = CategorySet(
    (
        "Living Expenses",
        "Groceries",
        "Restaurants",
        "Car",
        "Entertainment",
        CATCH_ALL_CATEGORY,
    )
)


def as_category_set(categories: CategorySet | Iterable[str]) -> CategorySet:
    if isinstance(categories, CategorySet):
        return categories
    return CategorySet.of(categories)


# ---------------------------------------------------------------------------
# Transaction records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RawTransaction:
    """An unclassified record produced by the line parser."""

    date: str
    description: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class Transaction:
    """A categorized transaction.

    Attributes
    ----------
    id:
        Unique within one processing batch (``txn_001`` style when synthesized).
    date:
        ``YYYY-MM-DD``.
    description:
        Merchant/activity text cleaned of statement boilerplate.
    amount:
        Signed amount with two decimals. Emitted records are always expenses
        (``amount < 0``).
    category:
        Member of the active :class:`CategorySet`.
    confidence:
        Heuristic certainty in ``[0, 1]``; not a calibrated probability.
    """

    id: str
    date: str
    description: str
    amount: Decimal
    category: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "confidence": self.confidence,
        }


@dataclass(frozen=True, slots=True)
class TrainingEntry:
    """An example phrase, its target category, and associated keywords."""

    description: str
    category: str
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    category: str
    confidence: float
    reasons: tuple[str, ...] = ()

    @property
    def reasoning(self) -> str:
        return ", ".join(self.reasons)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class CategorySummary(Mapping[str, Decimal]):
    """Per-category totals of ``abs(amount)``, keyed exactly by a category set.

    Every category of the set is present (``Decimal("0.00")`` when nothing was
    assigned to it) and iteration follows the set's order.
    """

    __slots__ = ("_categories", "_totals")

    def __init__(self, categories: CategorySet, totals: Mapping[str, Decimal] | None = None):
        self._categories = categories
        values = dict(totals or {})
        unknown = [k for k in values if k not in categories]
        if unknown:
            raise KeyError(f"categories not in the active set: {unknown}")
        self._totals: dict[str, Decimal] = {
            name: values.get(name, Decimal("0.00")) for name in categories.names
        }

    @property
    def categories(self) -> CategorySet:
        return self._categories

    def __getitem__(self, key: str) -> Decimal:
        return self._totals[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._totals)

    def __len__(self) -> int:
        return len(self._totals)

    def __repr__(self) -> str:
        return f"CategorySummary({self._totals!r})"

    def to_dict(self) -> dict[str, float]:
        return {k: float(v) for k, v in self._totals.items()}


@dataclass(frozen=True, slots=True)
class ExtractionMetadata:
    """Bookkeeping about one extraction request.

    ``candidate_count`` is the number of raw records (local path) or JSON
    entries (model path) considered; ``skipped_count`` the ones dropped as
    invalid or non-expense; ``duplicate_count`` those removed by the optional
    dedup stage.
    """

    source: Literal["local", "model"]
    candidate_count: int
    expense_count: int
    skipped_count: int
    duplicate_count: int = 0
    average_confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "candidate_count": self.candidate_count,
            "expense_count": self.expense_count,
            "skipped_count": self.skipped_count,
            "duplicate_count": self.duplicate_count,
            "average_confidence": self.average_confidence,
        }


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    transactions: tuple[Transaction, ...]
    total_amount: Decimal
    summary: CategorySummary
    metadata: ExtractionMetadata = field(
        default_factory=lambda: ExtractionMetadata("local", 0, 0, 0)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "transactions": [t.to_dict() for t in self.transactions],
            "total_amount": float(self.total_amount),
            "summary": self.summary.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


__all__ = [
    "CATCH_ALL_CATEGORY",
    "DEFAULT_CATEGORIES",
    "CategorySet",
    "CategorySummary",
    "ClassificationResult",
    "ExtractionMetadata",
    "ExtractionResult",
    "RawTransaction",
    "TrainingEntry",
    "Transaction",
    "as_category_set",
]
