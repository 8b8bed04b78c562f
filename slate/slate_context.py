"""
The Compilation Context: imports, references and script roots active for the
next statement.

A CompilationContext is never mutated. Every change returns a new value, and
nothing is ever removed from one, so the context held by a session can only
grow.
"""

import os
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Iterable, List, Mapping, Tuple

DEFAULT_IMPORTS: Tuple[str, ...] = (
    "os",
    "sys",
    "io",
    "re",
    "math",
    "json",
    "itertools",
    "functools",
    "collections",
    "pathlib",
    "asyncio",
    "datetime",
)


def _ordered_union(existing: Tuple[str, ...], new: Iterable[str]) -> Tuple[str, ...]:
    out = list(existing)
    seen = set(out)
    for item in new:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return tuple(out)


@dataclass(frozen=True)
class CompilationContext:
    imports: Tuple[str, ...] = ()
    references: Tuple[str, ...] = ()
    source_root: str = field(default_factory=os.getcwd)
    script_map: Mapping[str, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def default(cls, source_root: str, imports: Iterable[str] = DEFAULT_IMPORTS) -> 'CompilationContext':
        return cls(imports=_ordered_union((), imports), source_root=os.path.abspath(source_root))

    def with_imports(self, imports: Iterable[str]) -> 'CompilationContext':
        merged = _ordered_union(self.imports, imports)
        return self if merged == self.imports else replace(self, imports=merged)

    def with_references(self, paths: Iterable[str]) -> 'CompilationContext':
        merged = _ordered_union(self.references, (os.path.abspath(p) for p in paths))
        return self if merged == self.references else replace(self, references=merged)

    def with_script_map(self, scripts: Mapping[str, Iterable[str]]) -> 'CompilationContext':
        """Merges `scripts` into the existing map; a name seen again keeps its earlier paths and gains the new ones."""
        merged = dict(self.script_map)
        for name, paths in scripts.items():
            merged[name] = _ordered_union(merged.get(name, ()), paths)
        return replace(self, script_map=MappingProxyType(merged))

    def resolve_source(self, target: str) -> List[str]:
        """Maps a `load` target onto the script files it stands for."""
        if target in self.script_map:
            return list(self.script_map[target])
        path = os.path.expanduser(target)
        if not os.path.isabs(path):
            path = os.path.join(self.source_root, path)
        path = os.path.normpath(path)
        if os.path.isfile(path):
            return [path]
        raise FileNotFoundError(target)
