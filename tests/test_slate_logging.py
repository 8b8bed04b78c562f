import pytest

from slate.slate_logging import emit, map_log_level
from slate.slate_resolver import ResolverLogLevel


class RecordingLogger:
    def __init__(self):
        self.records = []

    def __getattr__(self, method):
        def log(event, **kw):
            self.records.append((method, event, kw))
        return log


@pytest.mark.parametrize("level, method", [
    (ResolverLogLevel.CRITICAL, "critical"),
    (ResolverLogLevel.ERROR, "error"),
    (ResolverLogLevel.WARNING, "warning"),
    (ResolverLogLevel.INFO, "info"),
    (ResolverLogLevel.DEBUG, "debug"),
    (ResolverLogLevel.TRACE, "trace"),
    ("something-else", "info"),
])
def test_level_table(level, method):
    assert map_log_level(level) == method


def test_trace_goes_out_at_debug():
    logger = RecordingLogger()
    emit(logger, ResolverLogLevel.TRACE, "resolving")
    assert logger.records == [("debug", "resolving", {"trace": True})]


def test_exception_is_attached():
    logger = RecordingLogger()
    err = RuntimeError("boom")
    emit(logger, ResolverLogLevel.ERROR, "failed", err)
    assert logger.records == [("error", "failed", {"exc_info": err})]
