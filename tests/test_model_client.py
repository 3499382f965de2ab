from types import SimpleNamespace

import pytest

from expense_extraction import DEFAULT_CATEGORIES, ModelRequestError, extract_with_fallback
from expense_extraction import model_client
from expense_extraction.model_client import request_model_response
from tests.helpers.openai_stub import OpenAIStub, StatusError, extract_statement_text

_ANSWER = '{"transactions": []}'


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    recorded: list[int] = []
    monkeypatch.setattr(model_client, "_sleep_backoff", recorded.append)
    return recorded


def test_request_sends_prompt_and_returns_text(statement_text: str):
    stub = OpenAIStub([_ANSWER])
    assert request_model_response(statement_text, DEFAULT_CATEGORIES, client=stub) == _ANSWER

    (call,) = stub.calls
    assert call["model"] == "gpt-4o"
    assert call["temperature"] == pytest.approx(0.1)
    assert extract_statement_text(call["input"]) == statement_text
    for name in DEFAULT_CATEGORIES:
        assert name in call["instructions"]


def test_model_name_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPENSE_EXTRACTION_MODEL", " gpt-4o-mini ")
    stub = OpenAIStub([_ANSWER])
    request_model_response("x", DEFAULT_CATEGORIES, client=stub)
    assert stub.calls[0]["model"] == "gpt-4o-mini"


def test_explicit_model_wins_over_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPENSE_EXTRACTION_MODEL", "gpt-4o-mini")
    stub = OpenAIStub([_ANSWER])
    request_model_response("x", DEFAULT_CATEGORIES, client=stub, model="gpt-4.1")
    assert stub.calls[0]["model"] == "gpt-4.1"


def test_missing_api_key_raises_without_building_client(monkeypatch: pytest.MonkeyPatch):
    def _boom():
        raise AssertionError("client must not be created")

    monkeypatch.setattr(model_client, "_create_client", _boom)
    with pytest.raises(ModelRequestError, match="OPENAI_API_KEY"):
        request_model_response("x", DEFAULT_CATEGORIES)


def test_api_key_builds_default_client(monkeypatch: pytest.MonkeyPatch):
    stub = OpenAIStub([_ANSWER])
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(model_client, "_create_client", lambda: stub)
    assert request_model_response("x", DEFAULT_CATEGORIES) == _ANSWER
    assert len(stub.calls) == 1


def test_retries_rate_limits_and_server_errors(sleeps: list[int]):
    stub = OpenAIStub([StatusError(429), StatusError(503), _ANSWER])
    assert request_model_response("x", DEFAULT_CATEGORIES, client=stub) == _ANSWER
    assert len(stub.calls) == 3
    assert sleeps == [1, 2]


def test_gives_up_after_final_attempt(sleeps: list[int]):
    stub = OpenAIStub([StatusError(500)])
    with pytest.raises(ModelRequestError) as excinfo:
        request_model_response("x", DEFAULT_CATEGORIES, client=stub)
    assert len(stub.calls) == 3
    assert sleeps == [1, 2]
    assert isinstance(excinfo.value.__cause__, StatusError)


@pytest.mark.parametrize("error", [StatusError(400), StatusError(401), ValueError("bad")])
def test_client_errors_are_not_retried(sleeps: list[int], error: Exception):
    stub = OpenAIStub([error, _ANSWER])
    with pytest.raises(ModelRequestError):
        request_model_response("x", DEFAULT_CATEGORIES, client=stub)
    assert len(stub.calls) == 1
    assert sleeps == []


def test_empty_output_is_an_error():
    with pytest.raises(ModelRequestError, match="no text"):
        request_model_response("x", DEFAULT_CATEGORIES, client=OpenAIStub(["  "]))


def test_response_text_falls_back_to_output_content():
    resp = SimpleNamespace(
        output_text=None,
        output=[SimpleNamespace(content=[SimpleNamespace(text=SimpleNamespace(value="hi"))])],
    )
    assert model_client._extract_response_text(resp) == "hi"

    resp = SimpleNamespace(output=[SimpleNamespace(content=[SimpleNamespace(text="plain")])])
    assert model_client._extract_response_text(resp) == "plain"


def test_model_failure_falls_back_to_local_extraction(statement_text: str, sleeps: list[int]):
    stub = OpenAIStub([StatusError(503)])

    def request(raw_text, categories):
        return request_model_response(raw_text, categories, client=stub)

    result = extract_with_fallback(statement_text, request_model=request, year=2025)
    assert result.metadata.source == "local"
    assert [t.category for t in result.transactions] == ["Car", "Groceries", "Restaurants"]
