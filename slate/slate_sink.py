"""
The Output Sink: an append-only text channel owned by one session.

Statements write to the sink through `print` (rebound in the session
namespace) and the extension helpers. The sink that receives the text is
selected through a context variable so that concurrently running sessions never
write into each other's buffers.
"""

import io
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional


class OutputSink:
    """Accumulates the textual side effects of the statement being executed."""

    def __init__(self):
        self._buffer = io.StringIO()

    def write(self, text: str) -> int:
        return self._buffer.write(str(text))

    def write_line(self, text: str = "") -> None:
        self._buffer.write(f"{text}\n")

    def flush(self) -> None:
        pass

    @property
    def text(self) -> str:
        return self._buffer.getvalue()

    def __bool__(self):
        return self._buffer.tell() > 0

    def clear(self) -> None:
        self._buffer = io.StringIO()

    def drain(self) -> str:
        """Returns the accumulated text (minus one trailing newline) and resets the sink."""
        text = self._buffer.getvalue()
        self.clear()
        if text.endswith("\n"):
            text = text[:-1]
        return text

    def __repr__(self):
        return f"OutputSink({self.text!r})"


_current_sink: ContextVar[Optional[OutputSink]] = ContextVar("slate_current_sink", default=None)


def current_sink() -> Optional[OutputSink]:
    return _current_sink.get()


@contextmanager
def capturing(sink: OutputSink):
    """Routes `sink_print` and the extension helpers to `sink` for the duration of the block."""
    token = _current_sink.set(sink)
    try:
        yield sink
    finally:
        _current_sink.reset(token)


def sink_print(*values, sep: Optional[str] = " ", end: Optional[str] = "\n", file=None, flush: bool = False):
    """Drop-in `print` bound into every session namespace."""
    sep = " " if sep is None else sep
    end = "\n" if end is None else end
    if file is not None:
        print(*values, sep=sep, end=end, file=file, flush=flush)
        return
    sink = _current_sink.get()
    if sink is None:
        print(*values, sep=sep, end=end, file=sys.stdout, flush=flush)
        return
    sink.write(sep.join(str(v) for v in values) + end)
