"""Keyword classifier with confidence scoring.

Public API:
    - :class:`KeywordClassifier`
    - :data:`DEFAULT_TRAINING_DATA`

Scoring, per training entry of a category (entries visited in table order):

- ``+0.9`` when the entry's example phrase is a substring of the description;
- ``+0.7`` for each keyword that is a substring of the description;
- ``+0.3`` for each (description token, keyword) pair where either one
  contains the other.

The highest total wins; ties keep the category that appears first in the
table. Confidence is ``min(score / 2.0, 1.0)`` raised to a floor of ``0.7``
when above ``0.5`` and to ``0.4`` otherwise. The floor is intentional:
callers never see near-zero confidence on a categorized row.

There is no module-level classifier instance. Callers construct one per
process (or per test) and pass it where it is needed.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import CATCH_ALL_CATEGORY, ClassificationResult, TrainingEntry
from .normalizers import collapse_whitespace

_logger = get_logger("expense_extraction.classifier")

EXACT_MATCH_WEIGHT = 0.9
KEYWORD_WEIGHT = 0.7
PARTIAL_MATCH_WEIGHT = 0.3
# Score treated as a "strong" match when normalizing to [0, 1].
STRONG_MATCH_SCORE = 2.0
MAX_REASONS = 3

_HIGH_CONFIDENCE_THRESHOLD = 0.5
_HIGH_CONFIDENCE_FLOOR = 0.7
_LOW_CONFIDENCE_FLOOR = 0.4


def _entry(description: str, category: str, *keywords: str) -> TrainingEntry:
    return TrainingEntry(description=description, category=category, keywords=keywords)


DEFAULT_TRAINING_DATA: tuple[TrainingEntry, ...] = (
    # Living Expenses
    _entry("rent payment", "Living Expenses", "rent", "rental", "apartment", "condo"),
    _entry("mortgage payment", "Living Expenses", "mortgage", "home loan", "property payment"),
    _entry("hydro bill", "Living Expenses", "hydro", "electricity", "electric", "power"),
    _entry(
        "internet service",
        "Living Expenses",
        "internet",
        "wifi",
        "broadband",
        "rogers",
        "bell",
        "telus",
    ),
    _entry("phone bill", "Living Expenses", "phone", "mobile", "cellular", "wireless"),
    _entry("insurance premium", "Living Expenses", "insurance", "premium", "coverage"),
    _entry(
        "property tax", "Living Expenses", "property tax", "municipal tax", "real estate tax"
    ),
    # Groceries
    _entry("supermarket purchase", "Groceries", "supermarket", "grocery", "food store"),
    _entry("safeway", "Groceries", "safeway", "sobeys", "metro", "loblaws"),
    _entry("walmart groceries", "Groceries", "walmart", "costco", "no frills", "freshco"),
    _entry("farmers market", "Groceries", "farmers market", "fresh produce", "organic"),
    # Restaurants
    _entry("restaurant dinner", "Restaurants", "restaurant", "dining", "cafe", "bistro"),
    _entry("fast food", "Restaurants", "mcdonald", "burger king", "subway", "kfc"),
    _entry("coffee shop", "Restaurants", "starbucks", "tim hortons", "coffee", "cafe"),
    _entry("food delivery", "Restaurants", "uber eats", "doordash", "skip dishes", "delivery"),
    _entry("takeout", "Restaurants", "takeout", "take-out", "pickup", "order"),
    # Car
    _entry("gas station", "Car", "gas", "fuel", "petrol", "gasoline"),
    _entry("shell", "Car", "shell", "esso", "petro-canada", "chevron"),
    _entry("car insurance", "Car", "auto insurance", "car insurance", "vehicle insurance"),
    _entry("car repair", "Car", "auto repair", "mechanic", "garage", "service"),
    _entry("parking", "Car", "parking", "meter", "garage parking", "lot"),
    _entry("car wash", "Car", "car wash", "auto wash", "detailing"),
    # Extension to the base table so car-loan debits (TOYOTA FINANCE) land in Car.
    _entry("car payment", "Car", "toyota", "honda", "auto loan", "car loan", "auto finance"),
    # Entertainment
    _entry("movie theater", "Entertainment", "cinema", "movie", "theater", "film"),
    _entry("streaming service", "Entertainment", "netflix", "spotify", "amazon prime", "disney"),
    _entry("concert tickets", "Entertainment", "concert", "show", "tickets", "event"),
    _entry("gaming", "Entertainment", "steam", "playstation", "xbox", "nintendo"),
    _entry("books", "Entertainment", "bookstore", "kindle", "chapters", "library"),
    # Miscellaneous
    _entry("atm withdrawal", CATCH_ALL_CATEGORY, "atm", "cash", "withdrawal"),
    _entry("bank fee", CATCH_ALL_CATEGORY, "fee", "charge", "service charge", "overdraft"),
    _entry("transfer", CATCH_ALL_CATEGORY, "transfer", "e-transfer", "wire"),
    _entry("pharmacy", CATCH_ALL_CATEGORY, "pharmacy", "drugstore", "prescription", "medical"),
)


def _apply_confidence_floor(raw: float) -> float:
    if raw > _HIGH_CONFIDENCE_THRESHOLD:
        return max(raw, _HIGH_CONFIDENCE_FLOOR)
    return max(raw, _LOW_CONFIDENCE_FLOOR)


class KeywordClassifier:
    """Score descriptions against a table of training entries.

    Parameters
    ----------
    training_data:
        Initial entries; defaults to :data:`DEFAULT_TRAINING_DATA`. The table
        is copied, so instances never share mutable state.
    catch_all:
        Category returned when nothing scores above zero.

    The table is held as an immutable tuple. :meth:`add_training_example`
    swaps in a new tuple under a lock, and every classification reads a single
    snapshot, so concurrent readers never observe a partial update.
    """

    def __init__(
        self,
        training_data: Iterable[TrainingEntry] | None = None,
        *,
        catch_all: str = CATCH_ALL_CATEGORY,
    ) -> None:
        entries = DEFAULT_TRAINING_DATA if training_data is None else training_data
        self._entries: tuple[TrainingEntry, ...] = tuple(entries)
        self._catch_all = catch_all
        self._lock = threading.Lock()

    @property
    def catch_all(self) -> str:
        return self._catch_all

    @property
    def training_data(self) -> tuple[TrainingEntry, ...]:
        return self._entries

    def add_training_example(self, entry: TrainingEntry) -> None:
        """Append ``entry`` to the live table for the lifetime of this instance."""

        if not entry.description.strip() or not entry.category.strip():
            raise ValueError("training entry requires a description and a category")
        with self._lock:
            self._entries = (*self._entries, entry)
        _logger.debug(
            "classifier:training_added category=%s keywords=%d",
            entry.category,
            len(entry.keywords),
        )

    def classify(self, description: str) -> ClassificationResult:
        """Return the best category, its confidence, and up to three reasons."""

        entries = self._entries
        text = collapse_whitespace(description).lower()
        words = text.split(" ") if text else []

        scores: dict[str, float] = {}
        reasons: dict[str, list[str]] = {}

        for entry in entries:
            scores.setdefault(entry.category, 0.0)
            reasons.setdefault(entry.category, [])
            if not text:
                continue

            score = 0.0
            found: list[str] = []
            example = entry.description.lower()
            if example in text:
                score += EXACT_MATCH_WEIGHT
                found.append(f'exact match: "{entry.description}"')

            keywords = [k.lower() for k in entry.keywords]
            for keyword, original in zip(keywords, entry.keywords, strict=True):
                if keyword in text:
                    score += KEYWORD_WEIGHT
                    found.append(f'keyword: "{original}"')

            for word in words:
                for keyword, original in zip(keywords, entry.keywords, strict=True):
                    if word in keyword or keyword in word:
                        score += PARTIAL_MATCH_WEIGHT
                        found.append(f'partial match: "{word}" ~ "{original}"')

            if score > 0:
                scores[entry.category] += score
                reasons[entry.category].extend(found)

        best_category = self._catch_all
        best_score = 0.0
        best_reasons: list[str] = []
        # dicts keep first-insertion order, i.e. table order
        for category, score in scores.items():
            if score > best_score:
                best_category = category
                best_score = score
                best_reasons = reasons[category]

        raw_confidence = min(best_score / STRONG_MATCH_SCORE, 1.0)
        return ClassificationResult(
            category=best_category,
            confidence=_apply_confidence_floor(raw_confidence),
            reasons=tuple(best_reasons[:MAX_REASONS]),
        )

    def classify_batch(self, descriptions: Sequence[str]) -> list[ClassificationResult]:
        return [self.classify(d) for d in descriptions]

    def suggestions(self, description: str) -> list[str]:
        """Hints for improving the classification of ``description``."""

        result = self.classify(description)
        out: list[str] = []
        if result.confidence < 0.6:
            out.append("Consider adding more specific keywords for better classification")
        if result.confidence < 0.4:
            out.append("This transaction might need manual categorization")
        return out


__all__ = ["DEFAULT_TRAINING_DATA", "KeywordClassifier"]
