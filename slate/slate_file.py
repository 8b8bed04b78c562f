from __future__ import annotations
import os
from typing import Optional


def resolve_locator(locator: str, base_dir: Optional[str]) -> str:
    """Turns a directive target (`file://...`, `~/...`, relative or absolute path) into an absolute path."""
    rest = locator[7:] if locator.startswith("file://") else locator
    base = base_dir or os.getcwd()
    # Absolute filesystem root
    if rest.startswith("/"):
        # file:///<abs-path> → /<abs-path>
        return os.path.normpath("/" + rest.lstrip("/"))
    # Home directory
    if rest.startswith("~"):
        return os.path.normpath(os.path.expanduser(rest))
    # Windows drive paths are already absolute
    if os.path.isabs(rest):
        return os.path.normpath(rest)
    # Empty → working directory
    if rest == "":
        return base
    # Default: relative to the working directory
    return os.path.normpath(os.path.join(base, rest))


def looks_like_path(target: str) -> bool:
    """True when a `reference` target names a filesystem location rather than a requirement."""
    if target.startswith(("file://", "/", "~", "./", "../", ".\\", "..\\")):
        return True
    if os.sep in target or (os.altsep and os.altsep in target):
        return True
    return target.endswith((".py", ".zip", ".whl", ".egg"))


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()
