"""Pytest configuration for test isolation.

Tests must not depend on the developer's shell: model settings and API keys
are cleared for every test so the model client never reaches the network and
the default model name is predictable.
"""

from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("OPENAI_API_KEY", "EXPENSE_EXTRACTION_MODEL", "EXPENSE_EXTRACTION_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def statement_text() -> str:
    return "\n".join(
        [
            "Date Description Withdrawals Deposits Balance",
            "Jul 14 PREAUTHORIZED DEBIT TOYOTA FINANCE 254.18",
            "Jul 15 Visa Debit purchase SAFEWAY #1234 STORE 82.40",
            "Jul 16 Contactless Interac purchase STARBUCKS COFFEE 6.45",
            "Jul 20 Payroll Deposit ACME CORP 2,500.00",
            "Jul 31 SERVICE CHARGE MONTHLY FEE 6.95",
            "",
            "Page 1 of 2",
        ]
    )
