"""Failure classification and the OpenAI-compatible provider adapter."""

from types import SimpleNamespace

import httpx
import openai
import pytest

from services.providers import (
    ChatCompletionProvider,
    EmptyCompletionError,
    ObservedFailure,
    Provider,
    Verdict,
    classify_exception,
    classify_failure,
    observe_failure,
)

_REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _api_status_error(cls, status, message):
    return cls(message, response=httpx.Response(status, request=_REQUEST), body=None)


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "status,reason",
        [(401, "auth"), (408, "timeout"), (429, "rate_limit"), (500, "server_error"),
         (502, "gateway"), (503, "overload"), (504, "timeout")],
    )
    def test_retryable_statuses(self, status, reason):
        result = classify_failure(ObservedFailure(status, "boom"))
        assert result.verdict is Verdict.RETRYABLE
        assert result.reason == reason
        assert result.retryable

    @pytest.mark.parametrize(
        "message,reason",
        [
            ("rate limit reached for model", "rate_limit"),
            ("error: too many requests", "rate_limit"),
            ("model is overloaded", "overload"),
            ("503 service unavailable", "overload"),
            ("request timed out", "timeout"),
            ("invalid api key provided", "auth"),
            ("connection error.", "network"),
            ("upstream answered 502", "gateway"),
        ],
    )
    def test_retryable_text(self, message, reason):
        assert classify_failure(ObservedFailure(None, message)).reason == reason

    @pytest.mark.parametrize(
        "status,message",
        [(400, "model not found"), (404, "no such deployment"), (None, "keyerror: 'choices'"), (418, "teapot")],
    )
    def test_fatal(self, status, message):
        result = classify_failure(ObservedFailure(status, message))
        assert result.verdict is Verdict.FATAL
        assert result.reason is None
        assert not result.retryable

    def test_status_is_checked_before_text(self):
        assert classify_failure(ObservedFailure(503, "rate limit")).reason == "overload"

    def test_status_numbers_need_word_boundaries(self):
        assert classify_failure(ObservedFailure(None, "order 15030 failed")).verdict is Verdict.FATAL

    def test_status_in_text_only_without_structured_status(self):
        assert classify_failure(ObservedFailure(None, "upstream 503")).reason == "overload"
        assert classify_failure(ObservedFailure(422, "upstream 503")).verdict is Verdict.FATAL


class TestObserveFailure:
    def test_message_is_lowercased_with_type(self):
        observed = observe_failure(ValueError("Bad Gateway"))
        assert observed.status is None
        assert observed.message == "valueerror: bad gateway"

    def test_status_code_attribute(self, status_error):
        assert observe_failure(status_error("nope", 429)).status == 429

    def test_status_attribute(self):
        exc = RuntimeError("x")
        exc.status = 503
        assert observe_failure(exc).status == 503

    def test_status_on_response(self):
        exc = RuntimeError("x")
        exc.response = SimpleNamespace(status_code=504)
        assert observe_failure(exc).status == 504


class TestSdkErrors:
    def test_rate_limit_error(self):
        exc = _api_status_error(openai.RateLimitError, 429, "Error code: 429 - slow down")
        assert classify_exception(exc).reason == "rate_limit"

    def test_internal_server_error(self):
        exc = _api_status_error(openai.InternalServerError, 503, "Error code: 503")
        assert classify_exception(exc).reason == "overload"

    def test_bad_request_is_fatal(self):
        exc = _api_status_error(openai.BadRequestError, 400, "Error code: 400 - response_format not supported")
        assert classify_exception(exc).verdict is Verdict.FATAL

    def test_bad_request_quoting_a_status_is_fatal(self):
        exc = _api_status_error(openai.BadRequestError, 400, "max_tokens must be <= 500")
        assert classify_exception(exc).verdict is Verdict.FATAL

    def test_timeout(self):
        assert classify_exception(openai.APITimeoutError(request=_REQUEST)).reason == "timeout"

    def test_connection_error(self):
        assert classify_exception(openai.APIConnectionError(request=_REQUEST)).reason == "network"

    def test_empty_completion_is_retryable(self):
        assert classify_exception(EmptyCompletionError("Empty response from groq")).reason == "empty_response"


class FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _provider(content, **overrides):
    completions = FakeCompletions(content)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    options = dict(api_key="k", model="m-1", system_prompt="be terse", json_mode=True, temperature=0.2)
    options.update(overrides)
    return ChatCompletionProvider("groq", client=client, **options), completions


class TestChatCompletionProvider:
    def test_request_shape_in_json_mode(self):
        provider, completions = _provider('{"ok": true}')
        assert provider.complete("plan a trip") == '{"ok": true}'
        assert completions.kwargs["model"] == "m-1"
        assert completions.kwargs["temperature"] == 0.2
        assert completions.kwargs["response_format"] == {"type": "json_object"}
        assert completions.kwargs["messages"] == [
            {"role": "system", "content": "be terse"},
            {"role": "user", "content": "plan a trip"},
        ]

    def test_no_response_format_without_json_mode(self):
        provider, completions = _provider("{}", json_mode=False)
        provider.complete("p")
        assert "response_format" not in completions.kwargs

    @pytest.mark.parametrize("content", [None, "", "   \n"])
    def test_empty_completion(self, content):
        provider, _ = _provider(content)
        with pytest.raises(EmptyCompletionError, match="Empty response from groq"):
            provider.complete("p")

    def test_no_choices(self):
        client = SimpleNamespace(chat=SimpleNamespace(
            completions=SimpleNamespace(create=lambda **kw: SimpleNamespace(choices=[]))
        ))
        provider = ChatCompletionProvider("openrouter", api_key="k", model="m", system_prompt="s", client=client)
        with pytest.raises(EmptyCompletionError):
            provider.complete("p")

    def test_satisfies_protocol(self, provider_factory):
        provider, _ = _provider("{}")
        assert isinstance(provider, Provider)
        assert isinstance(provider_factory("fake", text="{}"), Provider)

    def test_real_client_has_sdk_retries_disabled(self):
        provider = ChatCompletionProvider(
            "groq", api_key="test-key", model="m", system_prompt="s",
            base_url="https://api.groq.com/openai/v1", timeout_s=5,
        )
        assert provider._client.max_retries == 0
        assert str(provider._client.base_url).startswith("https://api.groq.com/openai/v1")
