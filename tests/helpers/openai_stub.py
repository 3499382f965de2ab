"""Test helpers to stub the OpenAI Responses client used by model_client.py.

The stub records each ``responses.create`` call and answers with a canned
text (or raises a canned error) so tests stay focused on inputs/outputs.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from expense_extraction.prompting import BEGIN, END


def extract_statement_text(user_content: str) -> str:
    b = user_content.find(BEGIN)
    e = user_content.rfind(END)
    if b == -1 or e == -1 or e < b:
        raise AssertionError("model_client: user content missing delimited statement text")
    return user_content[b + len(BEGIN) : e]


class StatusError(Exception):
    """Mimics the ``status_code`` attribute of ``openai.APIStatusError``."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class OpenAIStub:
    """Minimal stub matching the ``openai.OpenAI`` Responses surface.

    Parameters
    ----------
    outcomes:
        One entry per expected call: a ``str`` becomes ``resp.output_text``;
        an exception instance is raised. The last entry repeats when calls
        outnumber outcomes.
    """

    def __init__(self, outcomes: Sequence[str | BaseException]) -> None:
        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

        class _Responses:
            def __init__(self, outer: OpenAIStub) -> None:
                self._outer = outer

            def create(self, **kwargs):
                outer = self._outer
                outer.calls.append(kwargs)
                idx = min(len(outer.calls), len(outer._outcomes)) - 1
                outcome = outer._outcomes[idx]
                if isinstance(outcome, BaseException):
                    raise outcome

                class _Resp:
                    output_text: str

                resp = _Resp()
                resp.output_text = outcome
                return resp

        self.responses = _Responses(self)
