"""Public interface for the ``expense_extraction`` package.

Turns bank-statement text, or a language model's free-form answer, into
validated and categorized expense transactions with per-category totals.
This module only re-exports symbols; there is no runtime logic here.
"""

from .classifier import DEFAULT_TRAINING_DATA, KeywordClassifier
from .errors import EmptyInputError, ExtractionError, ModelRequestError, ParseFailure
from .export import summary_to_csv, transactions_to_csv
from .line_parser import parse_statement_text
from .models import (
    CATCH_ALL_CATEGORY,
    DEFAULT_CATEGORIES,
    CategorySet,
    CategorySummary,
    ClassificationResult,
    ExtractionMetadata,
    ExtractionResult,
    RawTransaction,
    TrainingEntry,
    Transaction,
)
from .normalizers import clean_description
from .pipeline import deduplicate_transactions, extract_with_fallback, process, summarize
from .validation import extract_json_object, validate_model_response

__all__ = [
    # Pipeline
    "process",
    "extract_with_fallback",
    "summarize",
    "deduplicate_transactions",
    # Components
    "parse_statement_text",
    "clean_description",
    "KeywordClassifier",
    "DEFAULT_TRAINING_DATA",
    "extract_json_object",
    "validate_model_response",
    "transactions_to_csv",
    "summary_to_csv",
    # Models
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
    # Errors
    "ExtractionError",
    "EmptyInputError",
    "ParseFailure",
    "ModelRequestError",
]
