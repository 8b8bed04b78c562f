"""
Utility extensions star-imported into every session by the preamble.
"""

import json as _json
from typing import Any, Optional

import yaml

from slate.slate_printer import Printer
from slate.slate_sink import current_sink, sink_print

__all__ = ["dump", "out", "to_json", "from_json", "to_yaml", "from_yaml"]


def out(*parts: Any) -> None:
    """Writes one line made of `parts` to the session's Output Sink."""
    sink_print(*parts)


def dump(value: Any, title: Optional[str] = None) -> Any:
    """Writes a formatted rendering of `value` to the Output Sink and returns it unchanged.

    As the last expression of a statement the value is therefore shown twice:
    once by `dump` and once as the statement's own result.
    """
    text = Printer().pformat(value)
    if title:
        text = f"{title}: {text}"
    sink = current_sink()
    if sink is None:
        print(text)
    else:
        sink.write_line(text)
    return value


def to_json(value: Any, indent: Optional[int] = 2) -> str:
    return _json.dumps(value, indent=indent, default=str)


def from_json(text: str) -> Any:
    return _json.loads(text)


def to_yaml(value: Any) -> str:
    return yaml.safe_dump(value, sort_keys=False, allow_unicode=True)


def from_yaml(text: str) -> Any:
    return yaml.safe_load(text)
