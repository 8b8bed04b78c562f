from collections import OrderedDict

from slate.slate_display import display_text
from slate.slate_printer import Printer
from slate.slate_results import CapturedOutput, Empty, StructuredData, classify, is_structured
from slate.slate_sink import OutputSink


class Bundle:
    def _repr_mimebundle_(self, include=None, exclude=None):
        return {"text/plain": "bundle"}, {}


def test_none_is_empty_and_sink_stays_empty():
    sink = OutputSink()
    assert isinstance(classify(None, sink, Printer()), Empty)
    assert not sink


def test_value_is_rendered_after_printed_text():
    sink = OutputSink()
    sink.write("first\n")
    res = classify([1, 2], sink, Printer())
    assert res == CapturedOutput("first\n[1, 2]")
    assert not sink


def test_structured_values_skip_the_sink():
    sink = OutputSink()
    sink.write("untouched\n")
    payload = display_text("x")
    res = classify(payload, sink, Printer())
    assert isinstance(res, StructuredData)
    assert res.payload is payload
    assert sink.text == "untouched\n"


def test_rich_display_protocol_is_structured():
    assert is_structured(Bundle())
    assert not is_structured(Bundle)
    assert not is_structured({"text/plain": "x"})
    assert str(StructuredData(Bundle())) == "bundle"


def test_printer_primitives():
    p = Printer()
    assert p.pformat(2) == "2"
    assert p.pformat(2.5) == "2.5"
    assert p.pformat("hi") == "'hi'"
    assert p.pformat(None) == "None"
    assert p.pformat(True) == "True"
    assert p.pformat((1,)) == "(1,)"
    assert p.pformat(set()) == "set()"
    assert p.pformat({3, 1, 2}) == "{1, 2, 3}"


def test_printer_breaks_long_containers():
    p = Printer(max_width=20)
    out = p.pformat({"alpha": [1, 2, 3], "beta": "a long string value"})
    assert out.splitlines() == [
        "{",
        "  'alpha': [1, 2, 3],",
        "  'beta': 'a long string value',",
        "}",
    ]


def test_printer_keeps_custom_reprs():
    p = Printer()
    assert p.pformat(OrderedDict(a=1)) == repr(OrderedDict(a=1))


def test_none_discards_printed_text():
    sink = OutputSink()
    sink.write("orphan\n")
    assert classify(None, sink, Printer()) == Empty()
    assert not sink


class Loud:
    def __repr__(self):
        raise ValueError("no repr for you")


def test_printer_survives_failing_reprs_and_cycles():
    p = Printer()
    assert p.pformat(Loud()).startswith("<")
    assert "Loud object at" in p.pformat([Loud()])
    cyclic = [1]
    cyclic.append(cyclic)
    assert p.pformat(cyclic) == "[1, [...]]"
    # Shared but acyclic children are not mistaken for cycles
    shared = [0]
    assert p.pformat([shared, shared]) == "[[0], [0]]"
