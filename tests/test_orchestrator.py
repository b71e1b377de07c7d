"""Primary/secondary fallback behaviour."""

import pytest

from errors import ErrorKind, GenerationError
from services.orchestrator import Completion, ProviderOrchestrator


class TestPrimarySucceeds:
    def test_secondary_not_called(self, provider_factory):
        primary = provider_factory("groq", text="A")
        secondary = provider_factory("openrouter", text="B")
        result = ProviderOrchestrator(primary, secondary).complete_with_fallback("prompt")
        assert result == Completion("A", "groq", False)
        assert secondary.calls == []

    def test_generate_returns_text(self, provider_factory):
        orchestrator = ProviderOrchestrator(provider_factory("groq", text="A"))
        assert orchestrator.generate("prompt") == "A"


class TestFallback:
    def test_retryable_primary_falls_back(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("Service Unavailable", 503))
        secondary = provider_factory("openrouter", text="B")
        result = ProviderOrchestrator(primary, secondary).complete_with_fallback("prompt")
        assert result == Completion("B", "openrouter", True)
        assert primary.calls == ["prompt"]
        assert secondary.calls == ["prompt"]

    def test_fallback_success_is_logged(self, provider_factory, status_error, caplog):
        primary = provider_factory("groq", error=status_error("slow down", 429))
        secondary = provider_factory("openrouter", text="B")
        with caplog.at_level("INFO", logger="llm"):
            ProviderOrchestrator(primary, secondary).generate("prompt")
        messages = [r.getMessage() for r in caplog.records]
        assert "Primary provider failed" in messages
        assert "Fallback provider succeeded" in messages

    def test_both_fail_reports_primary(self, provider_factory, status_error):
        primary_exc = status_error("groq is overloaded", 503)
        primary = provider_factory("groq", error=primary_exc)
        secondary = provider_factory("openrouter", error=status_error("openrouter down", 502))

        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary, secondary).generate("prompt")

        err = info.value
        assert err.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert err.detail == "groq is overloaded"
        assert err.provider == "groq"
        assert err.fallback_attempted is True
        assert err.reason == "overload"
        assert err.secondary_detail == "openrouter: openrouter down"
        assert err.__cause__ is primary_exc
        assert err.status_code == 503
        assert len(primary.calls) == 1
        assert len(secondary.calls) == 1

    def test_rate_limited_pair_maps_to_429(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("Too Many Requests", 429))
        secondary = provider_factory("openrouter", error=status_error("Too Many Requests", 429))
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary, secondary).generate("prompt")
        assert info.value.reason == "rate_limit"
        assert info.value.status_code == 429

    def test_secondary_fatal_error_still_exhausts(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("timeout", 504))
        secondary = provider_factory("openrouter", error=ValueError("bad model id"))
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary, secondary).generate("prompt")
        assert info.value.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert "bad model id" in info.value.secondary_detail


class TestEmptyCompletions:
    """Blank text from any provider counts as a retryable failure."""

    @pytest.mark.parametrize("blank", ["", "   \n", None])
    def test_blank_primary_falls_back(self, provider_factory, blank):
        primary = provider_factory("groq", text=blank)
        secondary = provider_factory("openrouter", text="B")
        result = ProviderOrchestrator(primary, secondary).complete_with_fallback("prompt")
        assert result == Completion("B", "openrouter", True)
        assert secondary.calls == ["prompt"]

    def test_blank_primary_without_secondary(self, provider_factory):
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(provider_factory("groq", text="  ")).generate("prompt")
        assert info.value.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert info.value.reason == "empty_response"
        assert info.value.status_code == 503

    def test_blank_secondary_exhausts(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("overloaded", 503))
        secondary = provider_factory("openrouter", text="")
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary, secondary).generate("prompt")
        assert info.value.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert info.value.secondary_detail == "openrouter: Empty response from openrouter"


class TestNoFallback:
    def test_fatal_primary_skips_secondary(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("model not found", 404))
        secondary = provider_factory("openrouter", text="B")
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary, secondary).generate("prompt")
        assert info.value.kind is ErrorKind.PROVIDER_REJECTED
        assert info.value.fallback_attempted is False
        assert info.value.status_code == 500
        assert secondary.calls == []

    def test_no_secondary_configured(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("Service Unavailable", 503))
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary).generate("prompt")
        err = info.value
        assert err.kind is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert err.fallback_attempted is False
        assert err.secondary_detail is None
        assert err.status_code == 503

    def test_public_details_hide_provider_text(self, provider_factory, status_error):
        primary = provider_factory("groq", error=status_error("internal trace id 42", 500))
        with pytest.raises(GenerationError) as info:
            ProviderOrchestrator(primary).generate("prompt")
        body = info.value.to_response()
        assert body["error"] == "all_providers_exhausted"
        assert "trace" not in body["details"]
