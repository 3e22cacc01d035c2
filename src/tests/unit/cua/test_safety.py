"""
Unit tests for the safety guardrails.
"""

import json

import pytest

from cua_agent.domain.errors import (
    ConsecutiveFailuresError,
    RateLimitedError,
    SafetyBlockError,
    SafetyError,
    TakeoverRequestedError,
    TaskTimeoutError,
)
from cua_agent.domain.types import SafetyLevel
from cua_agent.infrastructure.safety import (
    AuditLevel,
    AuditLog,
    Guardrails,
    GuardrailsConfig,
    RateLimiter,
    SensitiveDetector,
    SensitiveLevel,
    SensitivePattern,
    TakeoverController,
    TakeoverReason,
    TakeoverResponse,
)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    """Tests for the sliding-window limiter."""

    def test_window(self):
        clock = FakeClock()
        limiter = RateLimiter(max_per_minute=2, clock=clock)

        assert limiter.allow()
        assert limiter.allow()
        assert not limiter.allow()
        assert limiter.available() == 0

        clock.now = 61
        assert limiter.allow()
        assert limiter.available() == 1

    def test_invalid_limit_uses_default(self):
        assert RateLimiter(max_per_minute=0).max_per_minute == 60

    def test_reset(self):
        limiter = RateLimiter(max_per_minute=1, clock=FakeClock())
        limiter.allow()
        limiter.reset()
        assert limiter.allow()

    @pytest.mark.asyncio
    async def test_wait_when_free(self):
        limiter = RateLimiter(max_per_minute=1, clock=FakeClock())
        assert await limiter.wait() == 0

    @pytest.mark.asyncio
    async def test_wait_for_slot(self):
        limiter = RateLimiter(max_per_minute=1, window_seconds=0.05)
        limiter.allow()
        waited = await limiter.wait()
        assert waited > 0

    @pytest.mark.asyncio
    async def test_wait_without_admit_leaves_slot_free(self):
        limiter = RateLimiter(max_per_minute=2, clock=FakeClock())
        limiter.allow()

        assert await limiter.wait(admit=False) == 0
        assert limiter.available() == 1


class TestSensitiveDetector:
    """Tests for sensitive pattern matching."""

    @pytest.fixture
    def detector(self):
        return SensitiveDetector()

    def test_password_is_confirm(self, detector):
        found = detector.check("type_text", "password123", "Executed type_text")

        assert [m.pattern.name for m in found] == ["password_field"]
        assert detector.highest_level(found) == SensitiveLevel.CONFIRM

    def test_banking_is_block(self, detector):
        found = detector.check("type_text", "my bank account number")
        assert detector.highest_level(found) == SensitiveLevel.BLOCK

    def test_harmless(self, detector):
        assert not detector.is_sensitive("click", "(756, 491)", "Executed click")
        assert detector.highest_level([]) == SensitiveLevel.WARNING

    def test_case_insensitive(self, detector):
        assert detector.is_sensitive("click", "DELETE ALL")

    def test_custom_patterns(self):
        detector = SensitiveDetector(patterns=[])
        assert not detector.is_sensitive("type_text", "password")

        detector.add_pattern(SensitivePattern.compile("launch", r"launch codes", SensitiveLevel.BLOCK))
        assert detector.is_sensitive("type_text", "the launch codes")
        assert detector.remove_pattern("launch")
        assert not detector.remove_pattern("launch")


class TestAuditLog:
    """Tests for the audit trail."""

    def test_file_sink(self, tmp_path):
        path = tmp_path / "logs" / "audit.jsonl"
        audit = AuditLog(log_file=path)

        audit.log_action("click", "Executed click", "(10, 20)")
        audit.log_action_result("click", "Action failed", "(10, 20)", error=RuntimeError("boom"))

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first, second = (json.loads(line) for line in lines)
        assert first["level"] == "ACTION"
        assert first["target"] == "(10, 20)"
        assert "result" not in first
        assert second["level"] == "ERROR"
        assert second["error"] == "boom"

    def test_bounded_buffer(self):
        audit = AuditLog(max_entries=4)
        for i in range(5):
            audit.log_warning(f"w{i}")

        entries = audit.entries()
        assert audit.count() == 4
        assert entries[0].description == "w1"
        assert all(e.level == AuditLevel.WARNING for e in entries)

    def test_clear(self):
        audit = AuditLog()
        audit.log_error("failed", ValueError("x"))
        audit.clear()
        assert audit.count() == 0


class TestTakeoverController:
    """Tests for takeover requests."""

    def test_default_handler_aborts(self):
        controller = TakeoverController()
        assert controller.request(TakeoverReason.HOTKEY) == TakeoverResponse.ABORT
        assert not controller.is_active()

    def test_custom_handler(self):
        seen = []

        def handler(event):
            seen.append(event)
            return TakeoverResponse.RESUME

        controller = TakeoverController(handler)
        response = controller.request(TakeoverReason.CONSECUTIVE_FAILURES, "5 failures")

        assert response == TakeoverResponse.RESUME
        assert seen[0].message == "5 failures"
        assert controller.last_event() is seen[0]
        assert len(controller.history()) == 1

    def test_async_request_single_slot(self):
        controller = TakeoverController()
        controller.request_async(TakeoverReason.PROGRAMMATIC, "first")
        controller.request_async(TakeoverReason.PROGRAMMATIC, "second")

        assert controller.pending().message == "first"
        assert controller.pending() is None
        assert controller.is_active()

    @pytest.mark.asyncio
    async def test_respond(self):
        controller = TakeoverController()
        controller.request_async(TakeoverReason.PROGRAMMATIC)

        assert controller.respond(TakeoverResponse.RETRY)
        assert not controller.respond(TakeoverResponse.ABORT)
        assert await controller.wait_for_response(timeout=1) == TakeoverResponse.RETRY
        assert not controller.is_active()

    @pytest.mark.asyncio
    async def test_response_timeout(self):
        with pytest.raises(TaskTimeoutError):
            await TakeoverController().wait_for_response(timeout=0.1)

    def test_clear_history(self):
        controller = TakeoverController()
        controller.request(TakeoverReason.HOTKEY)
        controller.clear_history()
        assert controller.history() == []
        assert controller.last_event() is None

    @pytest.mark.asyncio
    async def test_handler_may_answer_later(self):
        controller = TakeoverController(lambda event: None)

        assert controller.request(TakeoverReason.HOTKEY) is None
        assert controller.is_active()

        assert controller.respond(TakeoverResponse.RESUME)
        assert await controller.wait_for_response(timeout=1) == TakeoverResponse.RESUME
        assert not controller.is_active()

    def test_stale_response_is_discarded(self):
        controller = TakeoverController(lambda event: None)
        controller.respond(TakeoverResponse.ABORT)

        controller.request(TakeoverReason.PROGRAMMATIC)

        assert controller.respond(TakeoverResponse.RESUME)

    def test_failing_handler_clears_active(self):
        def handler(event):
            raise RuntimeError("ui gone")

        controller = TakeoverController(handler)
        with pytest.raises(RuntimeError):
            controller.request(TakeoverReason.HOTKEY)
        assert not controller.is_active()


class TestGuardrails:
    """Tests for validate_action and failure accounting."""

    def test_allows_harmless_action(self, guardrails):
        guardrails.validate_action("click", "(756, 491)", "Executed click")
        assert guardrails.audit_entries()[-1].action == "click"

    def test_confirm_passes_in_normal(self, guardrails):
        guardrails.validate_action("type_text", "password123", "Executed type_text")

    def test_confirm_blocks_in_strict(self):
        guardrails = Guardrails(GuardrailsConfig(level=SafetyLevel.STRICT))
        with pytest.raises(SafetyError, match="strict mode"):
            guardrails.validate_action("type_text", "password123", "Executed type_text")

    def test_block_in_normal(self, guardrails):
        with pytest.raises(SafetyBlockError):
            guardrails.validate_action("type_text", "my api_key is abc", "Executed type_text")

    def test_minimal_skips_patterns(self):
        guardrails = Guardrails(GuardrailsConfig(level=SafetyLevel.MINIMAL))
        guardrails.validate_action("type_text", "my api_key is abc", "Executed type_text")

    def test_rate_limit(self):
        guardrails = Guardrails(GuardrailsConfig(max_actions_per_minute=2))
        guardrails.validate_action("click")
        guardrails.validate_action("click")
        with pytest.raises(RateLimitedError):
            guardrails.validate_action("click")

    def test_consecutive_failures(self, guardrails):
        for _ in range(5):
            guardrails.record_failure("click", error=RuntimeError("miss"))

        assert guardrails.consecutive_failures() == 5
        with pytest.raises(ConsecutiveFailuresError):
            guardrails.validate_action("click")

        guardrails.reset_failures()
        guardrails.validate_action("click")

    def test_success_resets_failures(self, guardrails):
        guardrails.record_failure("click")
        guardrails.record_success("click", result="ok")
        assert guardrails.consecutive_failures() == 0

    def test_takeover_request_pauses(self, guardrails):
        guardrails.request_takeover()

        with pytest.raises(TakeoverRequestedError):
            guardrails.validate_action("click")
        assert guardrails.is_paused()
        assert guardrails.takeover_requested()
        with pytest.raises(TakeoverRequestedError):
            guardrails.validate_action("click")

        guardrails.resume()
        guardrails.validate_action("click")

    def test_check_order(self):
        """Takeover wins over failures, failures win over the rate limit."""
        guardrails = Guardrails(GuardrailsConfig(max_actions_per_minute=1, max_consecutive_failures=1))
        guardrails.validate_action("click")
        guardrails.record_failure("click")
        guardrails.request_takeover()

        with pytest.raises(TakeoverRequestedError):
            guardrails.validate_action("click")
        guardrails.resume()
        with pytest.raises(ConsecutiveFailuresError):
            guardrails.validate_action("click")
        guardrails.reset_failures()
        with pytest.raises(RateLimitedError):
            guardrails.validate_action("click")

    def test_set_level(self, guardrails):
        guardrails.set_level("strict")
        assert guardrails.config.level == SafetyLevel.STRICT

    def test_request_takeover_records_reason(self, guardrails):
        guardrails.request_takeover(TakeoverReason.HOTKEY, "stop")

        event = guardrails.takeover.last_event()
        assert event.reason == TakeoverReason.HOTKEY
        assert event.message == "stop"

    def test_begin_run_resets_counters(self, guardrails):
        for _ in range(5):
            guardrails.record_failure("click")
        guardrails.pause()

        guardrails.begin_run()

        assert guardrails.consecutive_failures() == 0
        assert not guardrails.is_paused()
        guardrails.validate_action("click")

    def test_begin_run_keeps_queued_takeover(self, guardrails):
        guardrails.request_takeover()

        guardrails.begin_run()

        with pytest.raises(TakeoverRequestedError):
            guardrails.validate_action("click")
