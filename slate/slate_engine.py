"""
The Session Engine: executes statements one at a time against a growing session.

    engine = InteractiveEngine(working_dir, logger)
    result = await engine.execute("reference ./lib\nimport helpers\nhelpers.run()")

Each call first folds the statement's leading directives into the
CompilationContext, then evaluates the statement against the current
SessionState and classifies the value it produced.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from slate.slate_context import DEFAULT_IMPORTS, CompilationContext
from slate.slate_datatypes import ConfigurationError, DirectiveResolutionError, EvaluationError, SessionBusyError
from slate.slate_directives import DirectiveProcessor, parse_directive
from slate.slate_evaluator import Evaluator, SessionState
from slate.slate_logging import emit
from slate.slate_printer import Printer
from slate.slate_resolver import DependencyResolver, RuntimeDependencyResolver
from slate.slate_results import ExecutionResult, classify
from slate.slate_sink import OutputSink

# Star-imported into every session ahead of the first statement.
DEFAULT_BINDINGS = (
    "from slate.slate_extensions import *",
    "from slate.slate_display import *",
)


@dataclass
class LogEntry:
    statement: str
    result: ExecutionResult


@dataclass
class Session:
    """The mutable state of one interactive conversation."""
    working_dir: str
    context: CompilationContext
    sink: OutputSink = field(default_factory=OutputSink)
    state: Optional[SessionState] = None
    statements: List[LogEntry] = field(default_factory=list)


class InteractiveEngine:
    """Owns one Session and the `execute` contract."""

    # Process-wide; set once (see EngineConfig.apply) before engines are built.
    refs_file_path: Optional[str] = None

    def __init__(self, working_dir: Optional[str] = None, logger=None,
                 resolver: Optional[DependencyResolver] = None,
                 evaluator: Optional[Evaluator] = None,
                 printer: Optional[Printer] = None,
                 default_imports: Iterable[str] = DEFAULT_IMPORTS,
                 cache_dir: Optional[str] = None,
                 http_config: Optional[Dict] = None):
        working_dir = os.path.abspath(working_dir or os.getcwd())
        self.logger = logger or structlog.get_logger(__name__)
        self.session = Session(working_dir=working_dir,
                               context=CompilationContext.default(working_dir, default_imports))
        self.resolver = resolver or RuntimeDependencyResolver(
            log=self._log_resolver, cache_dir=cache_dir, http_config=http_config)
        self.directives = DirectiveProcessor(self.session, self.resolver)
        self.evaluator = evaluator or Evaluator()
        self.printer = printer or Printer()

        self._references = self._read_references(InteractiveEngine.refs_file_path)
        self._references_loaded = False
        self._busy = False

    # --- accessors ---

    @property
    def context(self) -> CompilationContext:
        return self.session.context

    @property
    def state(self) -> Optional[SessionState]:
        return self.session.state

    @property
    def references(self) -> Sequence[str]:
        """Lines of the preloaded reference file."""
        return tuple(self._references)

    # --- setup ---

    def _log_resolver(self, level, message, exc=None):
        emit(self.logger, level, message, exc)

    def _read_references(self, path: Optional[str]) -> List[str]:
        if not path:
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = [line.rstrip("\r\n") for line in f]
        except OSError as e:
            err = ConfigurationError(f"cannot read reference file {path}: {e}")
            self.logger.warning("reference_file_unreadable", path=path, error=str(err))
            return []
        return [line for line in lines if line.strip()]

    async def _load_preloaded_references(self) -> None:
        """Resolves the directive lines of the reference file; retried on every call until all succeed."""
        if self._references_loaded:
            return
        for line in self._references:
            if parse_directive(line) is not None:
                await self.directives.process(line)
        self._references_loaded = True

    def _preamble(self) -> str:
        directive_lines = [l for l in self._references if parse_directive(l) is not None]
        other_lines = [l for l in self._references if parse_directive(l) is None]
        lines: List[str] = []
        for line in directive_lines + other_lines + list(DEFAULT_BINDINGS):
            if line not in lines:
                lines.append(line)
        return "\n".join(lines)

    async def initialize(self) -> None:
        """Resolves the preloaded references and evaluates the preamble, once."""
        await self._load_preloaded_references()
        if self.session.state is not None:
            return
        session = self.session
        state = await self.evaluator.evaluate(SessionState.empty(), session.context, self._preamble(), session.sink)
        session.sink.clear()
        session.state = state
        self.logger.debug("preamble_evaluated", references=len(self._references))

    # --- execution ---

    async def execute(self, statement: str) -> ExecutionResult:
        """Executes one statement; faults propagate and leave the session where it was."""
        if self._busy:
            raise SessionBusyError("a statement is already executing in this session")
        self._busy = True
        try:
            return await self._execute(statement)
        finally:
            self._busy = False

    def execute_sync(self, statement: str) -> ExecutionResult:
        """Blocking variant of `execute` for call sites without a running event loop."""
        return asyncio.run(self.execute(statement))

    async def _execute(self, statement: str) -> ExecutionResult:
        session = self.session
        session.sink.clear()

        try:
            await self._load_preloaded_references()
            await self.directives.process(statement)
        except DirectiveResolutionError as e:
            self.logger.warning("directive_failed", directive=e.directive, reason=e.reason)
            raise
        await self.initialize()

        try:
            state = await self.evaluator.evaluate(session.state, session.context, statement, session.sink)
        except EvaluationError as e:
            self.logger.warning("statement_failed", error=e.message, line=e.line)
            raise

        result = classify(state.return_value, session.sink, self.printer)
        session.state = state
        session.statements.append(LogEntry(statement, result))
        self.logger.debug("statement_executed", index=len(session.statements), result=type(result).__name__)
        return result
