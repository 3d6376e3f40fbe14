"""Tests for ExecutionContext implementations."""

from structlog.testing import capture_logs

from railway import ErrorCode, LoggingExecutionContext, NoOpExecutionContext, Result


class TestNoOpExecutionContext:
    def test_passthrough(self):
        ctx = NoOpExecutionContext()
        assert ctx.execute(lambda: Result.success(42)).value() == 42

    def test_passthrough_failure(self):
        ctx = NoOpExecutionContext()
        result = ctx.execute(lambda: Result.failure(ErrorCode.NONCE_MISSING, "gone"))
        assert result.is_failure()


class TestLoggingExecutionContext:
    def test_logs_success(self):
        ctx = LoggingExecutionContext(operation="OcspResponseValidation")
        with capture_logs() as logs:
            result = ctx.execute(lambda: Result.success("ok"))
        assert result.value() == "ok"
        completed = [e for e in logs if e["event"] == "execution.completed"]
        assert completed[0]["operation"] == "OcspResponseValidation"
        assert completed[0]["state"] == "SUCCESS"
        assert completed[0]["log_level"] == "info"

    def test_logs_failure_with_code(self):
        ctx = LoggingExecutionContext(operation="OcspResponseValidation")
        with capture_logs() as logs:
            result = ctx.execute(lambda: Result.failure(ErrorCode.NONCE_MISMATCH, "replayed"))
        assert result.error().code == ErrorCode.NONCE_MISMATCH
        completed = [e for e in logs if e["event"] == "execution.completed"]
        assert completed[0]["state"] == "FAILURE"
        assert completed[0]["code"] == "NONCE_MISMATCH"
        assert completed[0]["log_level"] == "warning"

    def test_catches_exception(self):
        def failing():
            raise RuntimeError("exploded")

        ctx = LoggingExecutionContext(operation="Boom")
        with capture_logs() as logs:
            result = ctx.execute(failing)
        assert result.error().code == ErrorCode.TECHNICAL_ERROR
        assert isinstance(result.error().exception, RuntimeError)
        assert any(e["event"] == "execution.crashed" for e in logs)

    def test_wraps_inner_context(self):
        ctx = LoggingExecutionContext(inner=NoOpExecutionContext(), operation="Wrapped")
        assert ctx.execute(lambda: Result.success(99)).value() == 99
