"""
Classified outcomes of one executed statement.

    ExecutionResult = Empty | StructuredData | CapturedOutput

Faults are not a variant: they are raised (see slate_datatypes).
"""

from dataclasses import dataclass
from typing import Any, Union

from slate.slate_display import DisplayData
from slate.slate_printer import Printer
from slate.slate_sink import OutputSink


@dataclass(frozen=True)
class Empty:
    """The statement produced no value and wrote nothing."""

    def __str__(self):
        return ""


@dataclass(frozen=True)
class StructuredData:
    """A display payload produced directly by the statement, passed through untouched."""
    payload: Any

    def mimebundle(self) -> dict:
        data = self.payload._repr_mimebundle_()
        if isinstance(data, tuple):
            data = data[0]
        return dict(data or {})

    def __str__(self):
        bundle = self.mimebundle()
        return str(bundle.get("text/plain", repr(self.payload)))


@dataclass(frozen=True)
class CapturedOutput:
    """Text the statement wrote to the Output Sink followed by the rendering of its value."""
    text: str

    def __str__(self):
        return self.text


ExecutionResult = Union[Empty, StructuredData, CapturedOutput]


def is_structured(value: Any) -> bool:
    if isinstance(value, DisplayData):
        return True
    # Rich display protocol (Jupyter); look it up on the type so proxies don't match
    return callable(getattr(type(value), "_repr_mimebundle_", None))


def classify(value: Any, sink: OutputSink, printer: Printer) -> ExecutionResult:
    """Maps a raw statement value onto an ExecutionResult, draining the sink where text is captured."""
    if value is None:
        # Text is only surfaced alongside a value
        sink.clear()
        return Empty()

    if is_structured(value):
        return StructuredData(value)

    sink.write_line(printer.pformat(value))
    return CapturedOutput(sink.drain())
