"""
Statement evaluation: the state transition of a session.

    new_state = await evaluator.evaluate(state, context, statement)

A SessionState holds the session namespace plus the statements folded into it
so far. Evaluation runs against a live namespace (functions defined by earlier
statements keep seeing later bindings); if the statement fails, the bindings
are restored to their values before the statement and the previous state is
left as the current one.

References are importable only from the evaluation they belong to: a finder on
sys.meta_path consults a context variable instead of sys.path, so concurrent
sessions never see each other's references.
"""

import ast
import importlib
import importlib.abc
import inspect
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from importlib.machinery import PathFinder
from types import FunctionType
from typing import Any, Dict, Iterable, Optional, Tuple

import structlog

from slate.slate_context import CompilationContext
from slate.slate_datatypes import DirectiveKind, EvaluationError
from slate.slate_directives import split_directives
from slate.slate_file import read_text
from slate.slate_sink import OutputSink, capturing, sink_print

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SessionState:
    """Everything executed so far, plus its bound globals."""
    namespace: Dict[str, Any] = field(default_factory=dict)
    history: Tuple[str, ...] = ()
    return_value: Any = None

    @classmethod
    def empty(cls) -> 'SessionState':
        return cls(namespace={"__name__": "__slate__", "__builtins__": __builtins__, "print": sink_print})

    def advance(self, statement: str, value: Any) -> 'SessionState':
        return SessionState(namespace=self.namespace, history=self.history + (statement,), return_value=value)


_active_references: ContextVar[Tuple[str, ...]] = ContextVar("slate_active_references", default=())


class ReferenceFinder(importlib.abc.MetaPathFinder):
    """Finds top-level modules in the references of the evaluation running in the current context."""

    def find_spec(self, fullname, path=None, target=None):
        references = _active_references.get()
        if path is not None or not references:
            return None
        return PathFinder.find_spec(fullname, list(references))


_finder = ReferenceFinder()


def _install_finder() -> None:
    if _finder in sys.meta_path:
        return
    # Ahead of the sys.path search so references shadow site-packages
    try:
        index = sys.meta_path.index(PathFinder)
    except ValueError:
        index = len(sys.meta_path)
    sys.meta_path.insert(index, _finder)


@contextmanager
def _references_importable(references: Iterable[str]):
    """Makes the session's references importable for the current context only."""
    _install_finder()
    token = _active_references.set(tuple(references))
    try:
        yield
    finally:
        _active_references.reset(token)


def _is_async(code) -> bool:
    return bool(code.co_flags & inspect.CO_COROUTINE)


class Evaluator:
    """Compiles and runs Python statements against a SessionState."""

    def __init__(self):
        self._counter = 0

    async def evaluate(self, state: SessionState, context: CompilationContext, statement: str,
                       sink: Optional[OutputSink] = None) -> SessionState:
        ns = state.namespace
        before = dict(ns)
        self._counter += 1
        filename = f"<statement-{self._counter}>"
        try:
            with capturing(sink if sink is not None else OutputSink()), _references_importable(context.references):
                self._bind_imports(ns, context.imports)
                directives, body = split_directives(statement)
                for directive in directives:
                    if directive.kind is DirectiveKind.LOAD:
                        await self._run_scripts(ns, context, directive.target, statement)
                value = await self._run(ns, body, filename, statement)
        except BaseException:
            ns.clear()
            ns.update(before)
            raise
        return state.advance(statement, value)

    def _bind_imports(self, ns: Dict[str, Any], imports: Iterable[str]) -> None:
        for name in imports:
            top = name.split(".")[0]
            if top in ns:
                continue
            try:
                importlib.import_module(name)
                ns[top] = sys.modules[top]
            except ImportError as e:
                logger.warning("default_import_failed", module=name, error=str(e))

    async def _run_scripts(self, ns, context: CompilationContext, target: str, statement: str) -> None:
        try:
            paths = context.resolve_source(target)
        except FileNotFoundError:
            raise EvaluationError(f"LoadError: could not find script '{target}'", statement) from None
        for path in paths:
            source = read_text(path)
            logger.debug("script_loaded", path=path)
            await self._run(ns, source, path, source)

    async def _run(self, ns: Dict[str, Any], source: str, filename: str, statement: str) -> Any:
        """Runs `source`; the value of a trailing expression is returned like an interactive prompt does."""
        try:
            tree = ast.parse(source, filename=filename)
        except SyntaxError as e:
            raise EvaluationError(f"SyntaxError: {e.msg}", statement, e.lineno, e.offset) from e

        if not tree.body:
            return None

        last = tree.body[-1]
        head = tree.body[:-1] if isinstance(last, ast.Expr) else tree.body
        try:
            if head:
                module = ast.Module(body=head, type_ignores=[])
                code = compile(module, filename, "exec", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
                if _is_async(code):
                    await FunctionType(code, ns)()
                else:
                    exec(code, ns)
            if not isinstance(last, ast.Expr):
                return None
            expr = ast.Expression(body=last.value)
            code = compile(expr, filename, "eval", flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT)
            value = eval(code, ns)
            if _is_async(code):
                value = await value
            return value
        except SyntaxError as e:
            raise EvaluationError(f"SyntaxError: {e.msg}", statement, e.lineno, e.offset) from e
        except (Exception, SystemExit, KeyboardInterrupt) as e:
            # exit() or Ctrl+C inside a statement ends the statement, not the host
            raise self._runtime_error(e, filename, statement) from e

    def _runtime_error(self, e: BaseException, filename: str, statement: str) -> EvaluationError:
        line = None
        for frame in reversed(traceback.extract_tb(e.__traceback__)):
            if frame.filename == filename:
                line = frame.lineno
                break
        detail = str(e)
        msg = f"{type(e).__name__}: {detail}" if detail else type(e).__name__
        return EvaluationError(msg, statement, line)
