"""Recursive expansion of directories into importable files."""

import os
from pathlib import Path
from typing import Iterable

# Directories never worth importing
SKIP_DIRS = {
    "__pycache__",
    "node_modules",
    "venv",
    "env",
    "dist",
    "build",
    "site-packages",
}


def expand_paths(paths: Iterable[str | Path], extensions: Iterable[str]) -> list[Path]:
    """Expand directories to the supported files they contain.

    Plain file paths are kept as given. Directory contents are walked
    recursively in sorted order, skipping hidden entries and common build
    artifacts, and filtered to ``extensions``.
    """
    wanted = {ext.lower() for ext in extensions}
    resolved: list[Path] = []
    seen: set[Path] = set()

    for raw in paths:
        path = Path(raw)
        candidates = _walk(path, wanted) if path.is_dir() else [path]
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                resolved.append(candidate)

    return resolved


def _walk(root: Path, wanted: set[str]) -> list[Path]:
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not _should_skip(d))
        for filename in sorted(filenames):
            if _should_skip(filename):
                continue
            if Path(filename).suffix.lower() in wanted:
                found.append(Path(dirpath) / filename)
    return found


def _should_skip(name: str) -> bool:
    """Skip hidden files/folders and build or environment directories."""
    return name.startswith(".") or name in SKIP_DIRS or name.endswith(".egg-info")
