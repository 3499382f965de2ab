"""Exception types raised by the extraction pipeline.

Whole-batch failures are exceptions; per-record problems are never raised
(they are dropped and logged at debug level by the component that saw them).
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for failures of a whole extraction request."""


class EmptyInputError(ExtractionError, ValueError):
    """The raw statement text was empty or whitespace only."""


class ParseFailure(ExtractionError, ValueError):
    """No JSON object could be recovered from a model response."""


class ModelRequestError(ExtractionError, RuntimeError):
    """The language-model call failed or returned no text."""


__all__ = ["EmptyInputError", "ExtractionError", "ModelRequestError", "ParseFailure"]
