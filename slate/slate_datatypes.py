"""
Defines the core data types shared by the SLATE session host.

Directives, resolved dependencies and the fault hierarchy live here so that
the tokenizer, the resolver and the engine can share them without importing
each other.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, FrozenSet


# =================================================================
# Faults
# =================================================================

class SlateError(Exception):
    """Base class for every fault raised by the session host."""

    def format_error(self) -> str:
        return str(self)


class DirectiveResolutionError(SlateError):
    """A `reference` or `load` directive could not be satisfied."""
    def __init__(self, directive: str, reason: str):
        super().__init__(f"{directive}: {reason}")
        self.directive = directive
        self.reason = reason

    def format_error(self) -> str:
        return f"DirectiveResolutionError: {self.reason}\n  in: {self.directive}"


class EvaluationError(SlateError):
    """A statement failed to parse or raised while it was evaluated."""
    def __init__(self, message: str, statement: str = "", line: Optional[int] = None, col: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.statement = statement
        self.line = line
        self.col = col

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        msg = self.message
        if self.line is None:
            return msg
        col_info = f", col {self.col}" if self.col is not None else ""
        out = f"Error on line {self.line}{col_info}: {msg}"
        context = source_context(self.statement, self.line, self.col)
        if context:
            out = f"{out}\n{context}"
        return out


class ConfigurationError(SlateError):
    """The configuration or the preloaded reference file could not be read."""


class SessionBusyError(SlateError):
    """A statement was submitted while another one is still executing."""


def source_context(source: str, line: int, col: Optional[int], radius: int = 2) -> str:
    lines = source.splitlines()
    if not line or line < 1 or line > len(lines):
        return ""
    start = max(1, line - radius)
    end = min(len(lines), line + radius)
    width = len(str(end))
    out = []
    for i in range(start, end + 1):
        prefix = ">" if i == line else " "
        ln = str(i).rjust(width)
        out.append(f"{prefix} {ln} | {lines[i - 1]}")
        if i == line and col is not None:
            caret = " " * max(col - 1, 0)
            out.append(f"  {' ' * width} | {caret}^")
    return "\n".join(out)


# =================================================================
# Directives & dependencies
# =================================================================

class DirectiveKind(Enum):
    REFERENCE = "reference"
    LOAD = "load"


class ScriptMode(Enum):
    """How the resolver is being driven; the session host always uses REPL."""
    SCRIPT = "script"
    REPL = "repl"


@dataclass(frozen=True)
class Directive:
    """A single `reference X` or `load X` control line."""
    kind: DirectiveKind
    target: str
    text: str

    def __str__(self):
        return self.text


@dataclass(frozen=True)
class ResolvedDependency:
    """One unit of resolver output: reference paths plus auxiliary scripts."""
    name: str
    references: FrozenSet[str] = field(default_factory=frozenset)
    scripts: Tuple[str, ...] = ()
