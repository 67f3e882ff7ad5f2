"""Find and import every ``component.py`` that registers a manifest.

Discovery scans ``services/`` and ``resources/`` under the repo root, skips
anything inside a ``tests`` directory, and only keeps files whose source
mentions both ``MANIFEST`` and ``register_component(``.
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Iterator

_SEARCH_DIRS = ("services", "resources")


def _declaring_files(root: Path) -> Iterator[Path]:
    for top in _SEARCH_DIRS:
        if not (root / top).is_dir():
            continue
        for path in sorted((root / top).rglob("component.py")):
            if "tests" in path.relative_to(root).parts:
                continue
            source = path.read_text(encoding="utf-8")
            if "MANIFEST" in source and "register_component(" in source:
                yield path


def discover_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    """Dotted module names of declaring ``component.py`` files, sorted per tree."""
    root = (repo_root or Path.cwd()).resolve()
    return tuple(
        ".".join(path.relative_to(root).with_suffix("").parts)
        for path in _declaring_files(root)
    )


def import_registered_component_modules(repo_root: Path | None = None) -> tuple[str, ...]:
    modules = discover_component_modules(repo_root=repo_root)
    for module in modules:
        importlib.import_module(module)
    return modules
