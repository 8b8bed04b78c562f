"""
Dependency resolution for `reference` and `load` directives.

The engine depends only on `DependencyResolver.resolve`. The bundled
`RuntimeDependencyResolver` understands local paths, installed distributions
(through `importlib.metadata`) and remote scripts fetched over HTTP.
"""

import hashlib
import os
from abc import ABC, abstractmethod
from enum import IntEnum
from importlib import metadata
from typing import Callable, Dict, List, Optional, Sequence

from packaging.requirements import InvalidRequirement, Requirement

from slate.slate_datatypes import (
    Directive, DirectiveKind, DirectiveResolutionError, ResolvedDependency, ScriptMode,
)
from slate.slate_directives import parse_directive
from slate.slate_file import looks_like_path, resolve_locator

_REFERENCE_SUFFIXES = (".zip", ".whl", ".egg")


class ResolverLogLevel(IntEnum):
    """The resolver's own severity scale; the engine maps it onto its logger."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5


LogCallback = Callable[[ResolverLogLevel, str, Optional[BaseException]], None]


def _silent(level, message, exc=None):
    pass


class DependencyResolver(ABC):
    """Turns one directive into the dependencies it implies, transitive ones included."""

    @abstractmethod
    async def resolve(self, working_dir: str, mode: ScriptMode, prior_references: Sequence[str],
                      directive_text: str) -> List[ResolvedDependency]:
        raise NotImplementedError


class RuntimeDependencyResolver(DependencyResolver):

    def __init__(self, log: Optional[LogCallback] = None, cache_dir: Optional[str] = None,
                 http_config: Optional[Dict] = None):
        self.log = log or _silent
        self.cache_dir = cache_dir
        self.http_config = dict(http_config or {})

    async def resolve(self, working_dir, mode, prior_references, directive_text):
        directive = parse_directive(directive_text)
        if directive is None:
            raise DirectiveResolutionError(directive_text, "not a reference or load directive")
        self.log(ResolverLogLevel.TRACE, f"Resolving '{directive.text}' in {working_dir} ({mode.value})", None)

        if directive.kind is DirectiveKind.LOAD:
            return [await self._resolve_load(directive, working_dir)]
        return self._resolve_reference(directive, working_dir, prior_references)

    # --- load ---

    async def _resolve_load(self, directive: Directive, working_dir: str) -> ResolvedDependency:
        target = directive.target
        if target.startswith(("http://", "https://")):
            path = await self._fetch_script(directive, working_dir)
        else:
            path = resolve_locator(target, working_dir)
            if not os.path.isfile(path):
                raise DirectiveResolutionError(directive.text, f"script not found: {path}")
        self.log(ResolverLogLevel.DEBUG, f"Resolved script '{target}' => {path}", None)
        return ResolvedDependency(name=target, scripts=(path,))

    async def _fetch_script(self, directive: Directive, working_dir: str) -> str:
        from slate import slate_http

        url = directive.target
        cache_dir = self.cache_dir or os.path.join(working_dir, ".slate", "cache")
        digest = hashlib.sha1(url.encode("utf-8")).hexdigest()
        path = os.path.join(cache_dir, f"{digest}.py")
        if os.path.isfile(path):
            self.log(ResolverLogLevel.DEBUG, f"Using cached script for {url}", None)
            return path

        self.log(ResolverLogLevel.INFO, f"Downloading script {url}", None)
        try:
            source = await slate_http.http_get_text(url, config=self.http_config)
        except Exception as e:
            self.log(ResolverLogLevel.ERROR, f"Failed to download {url}", e)
            raise DirectiveResolutionError(directive.text, f"download failed: {e}") from e

        os.makedirs(cache_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(source)
        return path

    # --- reference ---

    def _resolve_reference(self, directive: Directive, working_dir: str,
                           prior_references: Sequence[str]) -> List[ResolvedDependency]:
        target = directive.target
        path = resolve_locator(target, working_dir)
        if os.path.exists(path):
            return [self._path_dependency(target, path)]
        if looks_like_path(target):
            raise DirectiveResolutionError(directive.text, f"reference not found: {path}")

        try:
            requirement = Requirement(target)
        except InvalidRequirement as e:
            raise DirectiveResolutionError(directive.text, f"invalid requirement: {e}") from e

        resolved: Dict[str, ResolvedDependency] = {}
        self._resolve_distribution(directive, requirement, resolved, top_level=True)
        known = set(prior_references)
        for dep in resolved.values():
            if dep.references <= known:
                self.log(ResolverLogLevel.TRACE, f"'{dep.name}' is already referenced", None)
        return list(resolved.values())

    def _path_dependency(self, target: str, path: str) -> ResolvedDependency:
        if os.path.isdir(path) or path.endswith(_REFERENCE_SUFFIXES):
            root = path
        else:
            # A single module: its directory is what goes on the import path
            root = os.path.dirname(path)
        self.log(ResolverLogLevel.DEBUG, f"Resolved reference '{target}' => {root}", None)
        return ResolvedDependency(name=target, references=frozenset([root]))

    def _resolve_distribution(self, directive: Directive, requirement: Requirement,
                              resolved: Dict[str, ResolvedDependency], top_level: bool) -> None:
        key = requirement.name.lower().replace("_", "-")
        if key in resolved:
            return
        try:
            dist = metadata.distribution(requirement.name)
        except metadata.PackageNotFoundError:
            if top_level:
                self.log(ResolverLogLevel.ERROR, f"Package '{requirement.name}' is not installed", None)
                raise DirectiveResolutionError(directive.text, f"package not installed: {requirement.name}")
            self.log(ResolverLogLevel.WARNING,
                     f"Skipping '{requirement.name}': required by '{directive.target}' but not installed", None)
            return

        version = dist.version
        if requirement.specifier and not requirement.specifier.contains(version, prereleases=True):
            raise DirectiveResolutionError(
                directive.text,
                f"version conflict: {requirement.name} {version} does not satisfy '{requirement.specifier}'",
            )

        root = os.path.abspath(str(dist.locate_file("")))
        resolved[key] = ResolvedDependency(name=dist.metadata["Name"] or requirement.name,
                                           references=frozenset([root]))
        self.log(ResolverLogLevel.DEBUG, f"Resolved {requirement.name} {version} => {root}", None)

        for spec in dist.requires or []:
            try:
                child = Requirement(spec)
            except InvalidRequirement:
                self.log(ResolverLogLevel.WARNING, f"Ignoring malformed requirement '{spec}'", None)
                continue
            if child.marker is not None and not child.marker.evaluate({"extra": ""}):
                continue
            self._resolve_distribution(directive, child, resolved, top_level=False)
