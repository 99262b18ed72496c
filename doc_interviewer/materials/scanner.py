"""Walk a codebase directory and list the files worth analyzing."""

import os
from pathlib import Path

from doc_interviewer.utils import is_project_file, is_scan_excluded_file

EXCLUDED_FOLDERS: frozenset[str] = frozenset({
    ".git",
    "node_modules",
    "bower_components",
    "vendor",
    "dist",
    "build",
    ".venv",
    "venv",
    ".env",
    ".tox",
    ".pytest_cache",
    ".ruff_cache",
    ".mypy_cache",
    "__pycache__",
    ".idea",
    ".vscode",
})


def scan_files(root: Path | str) -> list[tuple[str, int, bool]]:
    """
    Walk ``root`` and return (relative posix path, size in bytes, is project file)
    for every readable file, sorted by path.

    Skips any directory named in EXCLUDED_FOLDERS and files rejected by
    is_scan_excluded_file.
    """
    base = Path(root).resolve()
    if not base.is_dir():
        return []

    entries: list[tuple[str, int, bool]] = []
    for dirpath, dirnames, filenames in os.walk(base):
        # prune in place so os.walk never descends into excluded folders
        dirnames[:] = [d for d in dirnames if d not in EXCLUDED_FOLDERS]
        for name in filenames:
            if is_scan_excluded_file(name):
                continue
            full_path = Path(dirpath) / name
            if not full_path.is_file():
                continue
            try:
                size = full_path.stat().st_size
            except OSError:
                continue
            rel_path = full_path.relative_to(base).as_posix()
            entries.append((rel_path, size, is_project_file(name)))

    entries.sort(key=lambda e: e[0])
    return entries
