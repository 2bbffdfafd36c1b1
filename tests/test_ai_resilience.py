"""Tests for the AI resilience layer."""

from __future__ import annotations

import time
from unittest.mock import MagicMock, patch

import pytest

from ai_resilience import (
    CircuitBreaker,
    CircuitOpenError,
    PROVIDER,
    TransientLLMError,
    _call_with_retry,
    _is_transient,
    get_circuit_breaker,
    resilient_llm_call,
)


# ── CircuitBreaker Tests ────────────────────────────────────


class TestCircuitBreaker:
    def test_starts_closed(self):
        cb = CircuitBreaker()
        assert not cb.is_open("test_provider")
        assert cb.get_state("test_provider") == "closed"

    def test_opens_after_threshold_failures(self):
        cb = CircuitBreaker()
        for _ in range(cb.failure_threshold):
            cb.record_failure("bad_provider")
        assert cb.is_open("bad_provider")
        assert cb.get_state("bad_provider") == "open"

    def test_success_resets(self):
        cb = CircuitBreaker()
        cb.record_failure("p1")
        cb.record_failure("p1")
        cb.record_success("p1")
        assert not cb.is_open("p1")
        assert cb.get_state("p1") == "closed"

    def test_recovery_timeout(self):
        cb = CircuitBreaker(recovery_timeout=0.01)
        for _ in range(cb.failure_threshold):
            cb.record_failure("recover_provider")
        assert cb.is_open("recover_provider")
        time.sleep(0.02)
        assert not cb.is_open("recover_provider")  # half_open
        assert cb.get_state("recover_provider") == "half_open"

    def test_states_snapshot(self):
        cb = CircuitBreaker(failure_threshold=1)
        cb.record_failure("a")
        cb.record_success("b")
        assert cb.states() == {"a": "open", "b": "closed"}

    def test_reset_clears_all_providers(self):
        cb = CircuitBreaker()
        for _ in range(cb.failure_threshold):
            cb.record_failure("x")
        cb.reset()
        assert cb.get_state("x") == "closed"


# ── Transient detection ─────────────────────────────────────


class TestIsTransient:
    @pytest.mark.parametrize("exc", [
        ConnectionError("reset"),
        TimeoutError(),
        RuntimeError("429 Resource has been exhausted"),
        RuntimeError("503 Service Unavailable"),
        RuntimeError("Deadline Exceeded"),
    ])
    def test_transient(self, exc):
        assert _is_transient(exc)

    @pytest.mark.parametrize("exc", [
        ValueError("API key not valid"),
        RuntimeError("400 Bad Request"),
    ])
    def test_not_transient(self, exc):
        assert not _is_transient(exc)


# ── Retry ───────────────────────────────────────────────────


class TestCallWithRetry:
    @patch("ai_resilience._do_call")
    def test_retries_transient_then_succeeds(self, mock_call):
        mock_call.side_effect = [ConnectionError("reset"), "ok"]
        with patch.object(_call_with_retry.retry, "sleep", MagicMock()):
            assert _call_with_retry("m", "p", "k", False) == "ok"
        assert mock_call.call_count == 2

    @patch("ai_resilience._do_call")
    def test_gives_up_after_three_attempts(self, mock_call):
        mock_call.side_effect = ConnectionError("reset")
        with patch.object(_call_with_retry.retry, "sleep", MagicMock()):
            with pytest.raises(TransientLLMError):
                _call_with_retry("m", "p", "k", False)
        assert mock_call.call_count == 3

    @patch("ai_resilience._do_call")
    def test_non_transient_not_retried(self, mock_call):
        mock_call.side_effect = ValueError("API key not valid")
        with pytest.raises(ValueError):
            _call_with_retry("m", "p", "k", False)
        assert mock_call.call_count == 1


# ── resilient_llm_call Tests ────────────────────────────────


class TestResilientLLMCall:
    @patch("ai_resilience._call_with_retry")
    def test_basic_call(self, mock_retry):
        mock_retry.return_value = "LLM says hello"

        text, meta = resilient_llm_call("Hello", api_key="k", model="gemini-1.5-flash")
        assert text == "LLM says hello"
        assert meta["provider"] == PROVIDER
        assert meta["model"] == "gemini-1.5-flash"
        assert meta["latency_ms"] >= 0
        mock_retry.assert_called_once_with("gemini-1.5-flash", "Hello", "k", False)

    def test_circuit_breaker_blocks_call(self):
        cb = get_circuit_breaker()
        for _ in range(cb.failure_threshold):
            cb.record_failure(PROVIDER)

        with pytest.raises(CircuitOpenError, match="Circuit breaker open"):
            resilient_llm_call("prompt", api_key="k")

    @patch("ai_resilience._call_with_retry")
    def test_failure_records_to_circuit_breaker(self, mock_retry):
        mock_retry.side_effect = ValueError("Non-transient error")
        cb = get_circuit_breaker()

        for _ in range(cb.failure_threshold - 1):
            with pytest.raises(ValueError):
                resilient_llm_call("prompt", api_key="k")
        assert cb.get_state(PROVIDER) == "closed"

        with pytest.raises(ValueError):
            resilient_llm_call("prompt", api_key="k")
        assert cb.get_state(PROVIDER) == "open"
