"""
Display-data construction surface.

Everything listed in `__all__` is star-imported into every session by the
preamble, so statements can return rich payloads directly:

    display_html("<b>done</b>")
    render_html("<h1>{{title}}</h1>", {"title": "Report"})
"""

import base64
import html as _html
import json as _json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Sequence

import pystache

__all__ = [
    "DisplayData",
    "display_text",
    "display_html",
    "display_markdown",
    "display_json",
    "display_svg",
    "display_png",
    "display_table",
    "render_html",
]


@dataclass
class DisplayData:
    """A mime-keyed display payload, returned to the caller untouched."""
    data: Dict[str, Any]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if "text/plain" not in self.data:
            self.data = {**self.data, "text/plain": _plain_fallback(self.data)}

    @property
    def text(self) -> str:
        return str(self.data.get("text/plain", ""))

    def _repr_mimebundle_(self, include=None, exclude=None):
        data = {k: v for k, v in self.data.items()
                if (not include or k in include) and (not exclude or k not in exclude)}
        return data, dict(self.metadata)


def _plain_fallback(data: Dict[str, Any]) -> str:
    if "text/markdown" in data:
        return str(data["text/markdown"])
    if "application/json" in data:
        return _json.dumps(data["application/json"], indent=2, default=str)
    kinds = ", ".join(sorted(data)) or "empty"
    return f"<DisplayData {kinds}>"


def display_text(text: str) -> DisplayData:
    return DisplayData({"text/plain": str(text)})


def display_html(markup: str, plain: Optional[str] = None) -> DisplayData:
    data = {"text/html": markup}
    if plain is not None:
        data["text/plain"] = plain
    return DisplayData(data)


def display_markdown(text: str) -> DisplayData:
    return DisplayData({"text/markdown": text})


def display_json(value: Any, expanded: bool = False) -> DisplayData:
    return DisplayData({"application/json": value}, metadata={"expanded": expanded})


def display_svg(markup: str) -> DisplayData:
    return DisplayData({"image/svg+xml": markup})


def display_png(image: bytes, width: Optional[int] = None, height: Optional[int] = None) -> DisplayData:
    """Wraps raw PNG bytes; the payload is base64 encoded as Jupyter expects."""
    metadata = {}
    if width is not None or height is not None:
        metadata["image/png"] = {k: v for k, v in (("width", width), ("height", height)) if v is not None}
    encoded = base64.b64encode(bytes(image)).decode("ascii")
    return DisplayData({"image/png": encoded}, metadata=metadata)


def display_table(rows: Iterable[Any], headers: Optional[Sequence[str]] = None) -> DisplayData:
    """Renders a sequence of mappings or sequences as an HTML table."""
    rows = list(rows)
    if headers is None:
        if rows and isinstance(rows[0], dict):
            headers = list(rows[0].keys())
        else:
            headers = []
    body = []
    for row in rows:
        cells = [row.get(h) for h in headers] if isinstance(row, dict) else list(row)
        body.append("<tr>" + "".join(f"<td>{_html.escape(str(c))}</td>" for c in cells) + "</tr>")
    head = ""
    if headers:
        head = "<thead><tr>" + "".join(f"<th>{_html.escape(str(h))}</th>" for h in headers) + "</tr></thead>"
    markup = f"<table>{head}<tbody>{''.join(body)}</tbody></table>"

    plain_rows = [" | ".join(str(h) for h in headers)] if headers else []
    for row in rows:
        cells = [row.get(h) for h in headers] if isinstance(row, dict) else list(row)
        plain_rows.append(" | ".join(str(c) for c in cells))
    return display_html(markup, plain="\n".join(plain_rows))


def render_html(template: str, context: Optional[Dict[str, Any]] = None, **values) -> DisplayData:
    """Renders a Mustache template into an HTML payload."""
    renderer = pystache.Renderer()
    scope = {**(context or {}), **values}
    return display_html(renderer.render(template, scope))
