"""AI Resilience Layer — Retry and Circuit Breaker around Gemini calls.

Provides a single resilient_llm_call() entry point. Transient failures
(rate limits, 5xx, timeouts) are retried with exponential backoff; repeated
failures open a per-provider circuit so a dead upstream fails fast.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

PROVIDER = "gemini"


# ── Circuit Breaker ─────────────────────────────────────────

@dataclass
class _ProviderState:
    failures: int = 0
    state: str = "closed"  # closed | open | half_open
    last_failure_time: float = 0.0


class CircuitBreaker:
    """Per-provider state machine: closed -> open -> half_open -> closed.

    After ``failure_threshold`` consecutive failures a provider is refused for
    ``recovery_timeout`` seconds, then a single trial call is let through.
    """

    def __init__(self, failure_threshold: int = 3, recovery_timeout: float = 60) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._providers: dict[str, _ProviderState] = {}
        self._lock = threading.Lock()

    def _get_state(self, provider: str) -> _ProviderState:
        if provider not in self._providers:
            self._providers[provider] = _ProviderState()
        return self._providers[provider]

    def record_success(self, provider: str) -> None:
        with self._lock:
            state = self._get_state(provider)
            state.failures = 0
            state.state = "closed"

    def record_failure(self, provider: str) -> None:
        with self._lock:
            state = self._get_state(provider)
            state.failures += 1
            state.last_failure_time = time.time()
            if state.failures >= self.failure_threshold:
                state.state = "open"

    def is_open(self, provider: str) -> bool:
        with self._lock:
            state = self._get_state(provider)
            if state.state == "closed":
                return False
            if state.state == "open":
                elapsed = time.time() - state.last_failure_time
                if elapsed >= self.recovery_timeout:
                    state.state = "half_open"
                    return False  # allow one attempt
                return True
            return False

    def get_state(self, provider: str) -> str:
        with self._lock:
            return self._get_state(provider).state

    def configure(self, failure_threshold: int, recovery_timeout: float) -> None:
        with self._lock:
            self.failure_threshold = failure_threshold
            self.recovery_timeout = recovery_timeout

    def states(self) -> dict[str, str]:
        with self._lock:
            return {name: s.state for name, s in self._providers.items()}

    def reset(self) -> None:
        with self._lock:
            self._providers.clear()


_circuit_breaker = CircuitBreaker()


# ── Transient error detection ───────────────────────────────

_TRANSIENT_ERRORS = (
    ConnectionError,
    TimeoutError,
)

_TRANSIENT_PATTERNS = (
    "rate limit",
    "429",
    "503",
    "502",
    "500",
    "overloaded",
    "temporarily unavailable",
    "timeout",
    "deadline exceeded",
)


def _is_transient(exc: BaseException) -> bool:
    """Check if an exception is transient (worth retrying)."""
    if isinstance(exc, _TRANSIENT_ERRORS):
        return True
    msg = str(exc).lower()
    return any(p in msg for p in _TRANSIENT_PATTERNS)


class TransientLLMError(Exception):
    """Wrapper for transient LLM errors that should be retried."""


class CircuitOpenError(RuntimeError):
    """Raised instead of calling a provider whose circuit is open."""


# ── Main entry point ────────────────────────────────────────

def _do_call(model: str, prompt: str, api_key: str, json_output: bool) -> str:
    """Execute the actual Gemini API call (no retry)."""
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    generation_config = {"temperature": 0.7, "max_output_tokens": 4096}
    if json_output:
        generation_config["response_mime_type"] = "application/json"
    m = genai.GenerativeModel(model, generation_config=generation_config)
    response = m.generate_content(prompt)
    return response.text


@retry(
    retry=retry_if_exception_type(TransientLLMError),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _call_with_retry(model: str, prompt: str, api_key: str, json_output: bool) -> str:
    """Call Gemini with tenacity retry on transient errors."""
    try:
        return _do_call(model, prompt, api_key, json_output)
    except Exception as exc:
        if _is_transient(exc):
            raise TransientLLMError(str(exc)) from exc
        raise


def resilient_llm_call(
    prompt: str,
    api_key: str,
    model: str = "gemini-1.5-flash",
    json_output: bool = False,
) -> tuple[str, dict]:
    """Call Gemini through the circuit breaker and retry policy.

    Returns:
        (response_text, metadata_dict) where metadata includes provider,
        model and latency_ms.

    Raises:
        CircuitOpenError if the provider circuit is open; otherwise whatever
        the final attempt raised.
    """
    if _circuit_breaker.is_open(PROVIDER):
        raise CircuitOpenError(f"Circuit breaker open for provider: {PROVIDER}")

    start = time.time()
    try:
        response_text = _call_with_retry(model, prompt, api_key, json_output)
    except Exception:
        _circuit_breaker.record_failure(PROVIDER)
        raise

    latency_ms = int((time.time() - start) * 1000)
    _circuit_breaker.record_success(PROVIDER)
    logger.info("gemini call model=%s latency_ms=%d chars=%d", model, latency_ms, len(response_text))

    return response_text, {"provider": PROVIDER, "model": model, "latency_ms": latency_ms}


def get_circuit_breaker() -> CircuitBreaker:
    """Access the module-level circuit breaker singleton."""
    return _circuit_breaker
