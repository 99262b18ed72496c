"""App constants, overridable via environment variables."""

import os
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent

# Data directory; default "data" under repo root, overridable via DATA_DIR env
DATA_DIR = Path(os.environ["DATA_DIR"]) if os.environ.get("DATA_DIR") else _REPO_ROOT / "data"

# Where exported PRD-/TSD- markdown files land when no output dir is given
DOCUMENTS_DIR = DATA_DIR / "documents"

# LLM model used for codebase analysis
LLM_MODEL: str = os.environ.get("LLM_MODEL") or "gpt-5-mini"

# Max bytes read from a single file when building analysis prompts
MAX_SCAN_FILE_BYTES: int = int(os.environ.get("MAX_SCAN_FILE_BYTES", str(200 * 1024)))

# ── Analysis ──────────────────────────────────────────────────────────────────
# Max number of files sent to the analyzer per conversation (project files first)
ANALYZE_MAX_FILES: int = int(os.environ.get("ANALYZE_MAX_FILES", "60"))

# Files per analysis prompt
ANALYZE_BATCH_SIZE: int = int(os.environ.get("ANALYZE_BATCH_SIZE", "6"))

# Concurrent analysis calls to the LLM
ANALYZE_MAX_CONCURRENCY: int = int(os.environ.get("ANALYZE_MAX_CONCURRENCY", "4"))

# Conversation staleness timeout (seconds) for analysis without a heartbeat.
STALE_CONVERSATION_TIMEOUT_SECONDS: int = int(
    os.environ.get("STALE_CONVERSATION_TIMEOUT_SECONDS", "600")
)
