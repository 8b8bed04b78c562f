"""
Directive tokenizer and processor.

A directive is a line of the form

    reference <path-or-requirement>
    load <script-path-or-url>

The target may be wrapped in single or double quotes. Because directives share
a line-level namespace with Python itself, a line that parses as valid Python
on its own (`load = 5`, `reference .attr`) is never treated as a directive.
"""

import ast
import re
from typing import List, Optional, Tuple, TYPE_CHECKING

import structlog

from slate.slate_datatypes import Directive, DirectiveKind, ScriptMode

if TYPE_CHECKING:
    from slate.slate_engine import Session
    from slate.slate_resolver import DependencyResolver

logger = structlog.get_logger(__name__)

_DIRECTIVE_RE = re.compile(r"^(?P<kind>reference|load) (?P<target>.+?)\s*$")


def _is_python(line: str) -> bool:
    try:
        ast.parse(line)
    except SyntaxError:
        return False
    return True


def _unquote(target: str) -> str:
    target = target.strip()
    if len(target) >= 2 and target[0] == target[-1] and target[0] in ("'", '"'):
        return target[1:-1]
    return target


def parse_directive(line: str) -> Optional[Directive]:
    """Returns the Directive a single line spells, or None."""
    text = line.rstrip("\r\n")
    match = _DIRECTIVE_RE.match(text)
    if not match:
        return None
    target = _unquote(match.group("target"))
    if not target or _is_python(text):
        return None
    return Directive(kind=DirectiveKind(match.group("kind")), target=target, text=text.rstrip())


def split_directives(statement: str) -> Tuple[List[Directive], str]:
    """
    Splits the leading directive lines off a statement.

    Blank lines between directives are skipped. The body is returned with the
    consumed lines replaced by empty lines so that line numbers reported by the
    evaluator still match the statement the caller submitted.
    """
    lines = statement.splitlines()
    directives: List[Directive] = []
    consumed = 0
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        directive = parse_directive(line)
        if directive is None:
            break
        directives.append(directive)
        consumed = i + 1
    if not directives:
        return [], statement
    body = "\n" * consumed + "\n".join(lines[consumed:])
    return directives, body


class DirectiveProcessor:
    """Resolves directives and folds the results into the session's CompilationContext."""

    def __init__(self, session: 'Session', resolver: 'DependencyResolver'):
        self.session = session
        self.resolver = resolver

    async def process(self, text: str) -> bool:
        """Processes the leading directives of `text`; returns whether it began with one."""
        directives, _ = split_directives(text)
        for directive in directives:
            await self.apply(directive)
        return bool(directives)

    async def apply(self, directive: Directive) -> None:
        session = self.session
        dependencies = await self.resolver.resolve(session.working_dir, ScriptMode.REPL, (), directive.text)

        script_map = {dep.name: dep.scripts for dep in dependencies if dep.scripts}
        if script_map:
            session.context = session.context.with_script_map(script_map)
            for name, scripts in script_map.items():
                logger.debug("script_registered", name=name, scripts=list(scripts))

        paths = []
        for dep in dependencies:
            for path in sorted(dep.references):
                if path not in paths:
                    paths.append(path)
        new_paths = [p for p in paths if p not in session.context.references]
        for path in new_paths:
            logger.debug("reference_added", path=path)
        session.context = session.context.with_references(paths)
