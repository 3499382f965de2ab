"""Heuristic line parser for raw bank-statement text.

Public API:
    - :func:`parse_statement_text`

Each line that carries a recognizable date and an amount becomes a
:class:`~expense_extraction.models.RawTransaction`. This is a best-effort
layer: reference numbers can look like amounts and balance columns can be
picked up as the last amount on a line. Lines that do not look like
transactions are skipped silently (debug-logged), never raised.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from .logging_setup import get_logger
from .models import RawTransaction
from .normalizers import clean_description, parse_amount_token

_logger = get_logger("expense_extraction.line_parser")

# Literal, case-sensitive tokens marking table header rows.
HEADER_TOKENS: tuple[str, ...] = ("Date", "Description", "Balance")

# Case-insensitive substrings that turn an amount into an expense.
DEBIT_INDICATORS: tuple[str, ...] = ("withdrawal", "debit", "purchase", "payment")

_MONTHS: dict[str, int] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
_MONTH_ALT = "|".join(_MONTHS)

_ISO_DATE_RE = re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)")
_SLASH_DATE_RE = re.compile(r"(?<!\d)(\d{2})/(\d{2})/(\d{4})(?!\d)")
_DAY_MONTH_RE = re.compile(rf"(?<![\w.,])(\d{{1,2}})\s+({_MONTH_ALT})\b", re.IGNORECASE)
_MONTH_DAY_RE = re.compile(rf"\b({_MONTH_ALT})\s+(\d{{1,2}})(?![\w.,])", re.IGNORECASE)

_AMOUNT_RE = re.compile(r"(?<![\d.,])\$?\d[\d,]*\.\d{2}(?!\d)")


class _DateToken(NamedTuple):
    iso: str | None  # None when the token is not a real calendar date
    start: int
    end: int


def _iso_or_none(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _find_date(line: str, year: int) -> _DateToken | None:
    """Locate the first date token, trying ISO, slash, then short forms."""

    m = _ISO_DATE_RE.search(line)
    if m:
        y, mo, d = (int(g) for g in m.groups())
        return _DateToken(_iso_or_none(y, mo, d), m.start(), m.end())

    m = _SLASH_DATE_RE.search(line)
    if m:
        mo, d, y = (int(g) for g in m.groups())
        return _DateToken(_iso_or_none(y, mo, d), m.start(), m.end())

    # Short forms carry no year; whichever of "14 Jul" / "Jul 14" comes first wins.
    candidates: list[tuple[int, int, int, int]] = []
    m = _DAY_MONTH_RE.search(line)
    if m:
        candidates.append((m.start(), m.end(), _MONTHS[m.group(2).lower()], int(m.group(1))))
    m = _MONTH_DAY_RE.search(line)
    if m:
        candidates.append((m.start(), m.end(), _MONTHS[m.group(1).lower()], int(m.group(2))))
    if not candidates:
        return None
    start, end, month, day = min(candidates)
    return _DateToken(_iso_or_none(year, month, day), start, end)


def _is_header(line: str) -> bool:
    return any(tok in line for tok in HEADER_TOKENS)


def _is_debit(text: str) -> bool:
    lowered = text.lower()
    return any(ind in lowered for ind in DEBIT_INDICATORS)


def parse_statement_text(raw_text: str, *, year: int | None = None) -> list[RawTransaction]:
    """Split statement text into raw transaction records.

    Parameters
    ----------
    raw_text:
        Text extracted from a statement PDF or pasted by a user.
    year:
        Year used for short dates (``14 Jul``/``Jul 14``) that carry none.
        Defaults to the current calendar year, which is ambiguous for
        statements spanning a year boundary.

    Returns
    -------
    list[RawTransaction]
        One record per transaction line, in input order, without dedup.
        Amounts are positive unless the line contains a debit indicator.
    """

    resolved_year = year if year is not None else date.today().year
    records: list[RawTransaction] = []

    for lineno, raw_line in enumerate(raw_text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or _is_header(line):
            continue

        token = _find_date(line, resolved_year)
        if token is None:
            continue
        if token.iso is None:
            _logger.debug("line_parser:skip line=%d reason=invalid_date", lineno)
            continue

        remainder = f"{line[: token.start]} {line[token.end :]}".strip()
        amounts = list(_AMOUNT_RE.finditer(remainder))
        if not amounts:
            _logger.debug("line_parser:skip line=%d reason=no_amount", lineno)
            continue
        last = amounts[-1]
        try:
            magnitude = parse_amount_token(last.group(0))
        except ValueError:
            _logger.debug("line_parser:skip line=%d reason=bad_amount", lineno)
            continue
        if magnitude == 0:
            _logger.debug("line_parser:skip line=%d reason=zero_amount", lineno)
            continue

        amount: Decimal = -magnitude if _is_debit(remainder) else magnitude
        described = f"{remainder[: last.start()]} {remainder[last.end() :]}".strip()
        if not described:
            _logger.debug("line_parser:skip line=%d reason=no_description", lineno)
            continue

        records.append(
            RawTransaction(date=token.iso, description=clean_description(described), amount=amount)
        )

    _logger.debug("line_parser:done records=%d", len(records))
    return records


__all__ = ["DEBIT_INDICATORS", "HEADER_TOKENS", "parse_statement_text"]
