"""Read-only snapshot of the codebase a conversation documents."""

import logging
from dataclasses import dataclass
from pathlib import Path

from constants import ANALYZE_MAX_FILES, DATA_DIR, MAX_SCAN_FILE_BYTES
from doc_interviewer.errors import UnreadableMaterials

from .git_utils import clone_repo, is_git_url
from .scanner import scan_files

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterialFile:
    path: str
    size_bytes: int
    is_project_file: bool = False

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class Materials:
    """Files found under ``root``; contents are read on demand, never written."""
    root: Path
    files: tuple[MaterialFile, ...]
    location: str = ""

    @property
    def project_file_names(self) -> list[str]:
        return [f.name for f in self.files if f.is_project_file]

    def read(self, file: MaterialFile, *, max_bytes: int = MAX_SCAN_FILE_BYTES) -> str:
        path = self.root / file.path
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Could not read %s: %s", path, exc)
            return ""
        if len(data) > max_bytes:
            logger.debug("Truncating %s to %d bytes", file.path, max_bytes)
            data = data[:max_bytes]
        return data.decode("utf-8", errors="replace")

    def files_for_analysis(self, max_files: int = ANALYZE_MAX_FILES) -> list[MaterialFile]:
        """Project files first, then the rest in path order, capped at ``max_files``."""
        ordered = sorted(self.files, key=lambda f: (not f.is_project_file, f.path))
        return ordered[:max(0, max_files)]


def load_materials(location: str | Path, *, data_dir: Path | str = DATA_DIR) -> Materials:
    """
    Snapshot a local directory, or shallow-clone a git URL and snapshot that.

    Raises:
        UnreadableMaterials: the path is missing, is not a directory, holds no
            readable file, or the clone failed.
    """
    text = str(location).strip()
    if not text:
        raise UnreadableMaterials(text, "no location given")

    if is_git_url(text):
        try:
            root = clone_repo(text, data_dir)
        except Exception as exc:
            logger.warning("Clone of %s failed: %s", text, exc)
            raise UnreadableMaterials(text, f"clone failed: {exc}") from exc
    else:
        root = Path(text).expanduser()
        if not root.exists():
            raise UnreadableMaterials(text, "path does not exist")
        if not root.is_dir():
            raise UnreadableMaterials(text, "not a directory")

    try:
        entries = scan_files(root)
    except OSError as exc:
        raise UnreadableMaterials(text, str(exc)) from exc
    if not entries:
        raise UnreadableMaterials(text, "no readable files found")

    files = tuple(
        MaterialFile(path=path, size_bytes=size, is_project_file=project)
        for path, size, project in entries
    )
    logger.info("Loaded %d files from %s", len(files), text)
    return Materials(root=Path(root).resolve(), files=files, location=text)
