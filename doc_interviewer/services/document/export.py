"""Write rendered documents to disk as PRD-<service>.md / TSD-<service>.md."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def write_document(content: str, file_name: str, output_dir: Path | str) -> Path:
    """Write ``content`` to ``output_dir/file_name``, replacing any earlier export."""
    if not file_name or "/" in file_name or "\\" in file_name or file_name.startswith("."):
        raise ValueError(f"Invalid document file name: {file_name!r}")
    target_dir = Path(output_dir).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / file_name
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote %s (%d bytes)", path, len(content.encode("utf-8")))
    return path
