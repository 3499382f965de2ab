"""Description and amount normalization helpers.

``clean_description`` removes bank-statement boilerplate from a transaction
description. The amount helpers are shared by the line parser and the model
response validator so both paths round money the same way.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------

# Statement noise seen at the start of descriptions. Only one prefix is
# removed per description.
BOILERPLATE_PREFIXES: tuple[str, ...] = (
    "e:",
    "Contactless Interac purchase",
    "Visa Debit purchase",
    "Misc Payment",
    "Online Banking payment",
    "Transfer sent",
    "Payroll Deposit",
    "Preauthorized Debit",  # extension to the base list, for loan debits
)

_WS_RE = re.compile(r"\s+")
_PREFIX_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in BOILERPLATE_PREFIXES) + r")",
    re.IGNORECASE,
)
# Exactly four digits at the end (reference-number suffix), not the tail of a
# longer number.
_TRAILING_REF_RE = re.compile(r"(?<!\d)\d{4}$")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to a single space and trim."""

    return _WS_RE.sub(" ", text).strip()


def clean_description(raw: str) -> str:
    """Return ``raw`` without boilerplate prefixes and trailing reference digits.

    Never destroys all content: when stripping leaves nothing, the
    whitespace-collapsed input is returned unchanged.
    """

    collapsed = collapse_whitespace(raw)
    s = _PREFIX_RE.sub("", collapsed, count=1).strip()
    s = _TRAILING_REF_RE.sub("", s).strip()
    return s or collapsed


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CENTS = Decimal("0.01")


def quantize_amount(value: Decimal | int | float | str) -> Decimal:
    """Round to two decimal places, half-up.

    Floats go through ``repr`` so JSON numbers like ``119.91`` keep their
    written digits instead of their binary expansion.
    """

    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not d.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    try:
        return d.quantize(_CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        # More digits than the decimal context's precision.
        raise ValueError(f"amount out of range: {value!r}") from exc


def parse_amount_token(token: str) -> Decimal:
    """Parse a statement amount token such as ``$1,234.56`` into a magnitude."""

    s = token.strip()
    if s.startswith("$"):
        s = s[1:]
    s = s.replace(",", "").strip()
    if not s:
        raise ValueError(f"invalid amount: {token!r}")
    return quantize_amount(s)


__all__ = [
    "BOILERPLATE_PREFIXES",
    "clean_description",
    "collapse_whitespace",
    "parse_amount_token",
    "quantize_amount",
]
