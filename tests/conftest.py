"""Shared pytest fixtures for gate, analyzer, service and API tests."""

import os
import tempfile

# Keep DATA_DIR (sqlite file, clones, exports) out of the repo while testing
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="doc-interviewer-tests-"))

import uuid
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from doc_interviewer.gate import Confidence, Finding, QuestionCategory, QuestionDraft
from doc_interviewer.models.base import Base


# ---------------------------------------------------------------------------
# In-memory SQLite engine + session factory
#
# A named shared-cache in-memory database lets every connection (including
# the ones opened by the analysis thread) see the same data. Each test gets
# a unique name so tests are isolated from each other.
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def engine():
    db_name = f"test_{uuid.uuid4().hex}"
    eng = create_engine(
        f"sqlite+pysqlite:///file:{db_name}?mode=memory&cache=shared&uri=true",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture(scope="function")
def _session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def session(_session_factory) -> Session:
    """Test session; closed (not rolled back) so data committed by services stays visible."""
    s = _session_factory()
    yield s
    s.close()


# ---------------------------------------------------------------------------
# DB adapter mock backed by the shared in-memory engine
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_adapter(_session_factory, monkeypatch):
    """
    Patch get_default_adapter() so every .session() call opens a new session
    on the shared in-memory database.
    """
    adapter = MagicMock()

    @contextmanager
    def thread_safe_session():
        s = _session_factory()
        try:
            yield s
            s.commit()
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    adapter.session.side_effect = thread_safe_session

    for module_path in [
        "doc_interviewer.services.conversation.service",
    ]:
        monkeypatch.setattr(f"{module_path}.get_default_adapter", lambda: adapter)

    return adapter


@pytest.fixture
def sync_thread(monkeypatch):
    """Patch threading.Thread so background analysis runs synchronously."""
    class SyncThread:
        def __init__(self, target=None, daemon=None, name=None, **kwargs):
            self._target = target

        def start(self):
            if self._target:
                self._target()

    monkeypatch.setattr("doc_interviewer.services.conversation.service.threading.Thread", SyncThread)
    return SyncThread


@pytest.fixture
def documents_dir(tmp_path, monkeypatch) -> Path:
    """Point exports at a per-test DOCUMENTS_DIR."""
    target = tmp_path / "documents"
    monkeypatch.setattr("doc_interviewer.services.conversation.service.DOCUMENTS_DIR", target)
    return target


# ---------------------------------------------------------------------------
# Analyzer stand-in
# ---------------------------------------------------------------------------

class FakeAnalyzer:
    """Returns preset findings and records how it was called."""

    def __init__(self, findings: list[Finding] | None = None, error: Exception | None = None):
        self.findings = list(findings or [])
        self.error = error
        self.calls: list[dict[str, object]] = []

    def analyze(
        self,
        materials,
        *,
        schema,
        profile,
        companion_document,
        section_scope,
        notes,
        progress=None,
    ) -> list[Finding]:
        self.calls.append({
            "materials": materials,
            "schema": schema,
            "profile": profile,
            "companion_document": companion_document,
            "section_scope": section_scope,
            "notes": notes,
        })
        if progress is not None:
            progress(1, 1)
        if self.error is not None:
            raise self.error
        return list(self.findings)


@pytest.fixture
def fake_analyzer(monkeypatch) -> FakeAnalyzer:
    analyzer = FakeAnalyzer()
    monkeypatch.setattr(
        "doc_interviewer.services.conversation.service._get_analyzer",
        lambda: analyzer,
    )
    return analyzer


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def make_codebase(root: Path) -> Path:
    """Write a tiny Python service under ``root`` and return it."""
    (root / "billing").mkdir(parents=True, exist_ok=True)
    (root / "pyproject.toml").write_text(
        '[project]\nname = "billing"\ndependencies = ["flask"]\n', encoding="utf-8"
    )
    (root / "billing" / "api.py").write_text(
        "RATE_LIMIT_PER_MINUTE = 100\n\n\ndef charge(amount):\n    return amount\n",
        encoding="utf-8",
    )
    (root / "README.md").write_text("# Billing\n\nCharges customers.\n", encoding="utf-8")
    return root


def make_finding(
    description: str,
    *,
    confidence: Confidence = Confidence.VERIFIED,
    topic: str = "summary",
    assumption: str = "",
    group: str = "",
    details: tuple[tuple[str, str], ...] = (),
    question: QuestionDraft | None = None,
) -> Finding:
    return Finding(
        description=description,
        confidence=confidence,
        topic=topic,
        assumption=assumption,
        group=group,
        details=details,
        question=question,
    )


def rate_limit_finding(topic: str = "constraints") -> Finding:
    """The ambiguous 100/min rate limit: business rule or technical default?"""
    return make_finding(
        "The API enforces a rate limit of 100 requests per minute.",
        confidence=Confidence.ASSUMED,
        topic=topic,
        assumption="The limit is a business rule agreed with customers.",
        question=QuestionDraft(
            category=QuestionCategory.INTENT,
            prompt="Is the 100/min rate limit a business rule or a technical default?",
            options=(
                "A business rule agreed with customers",
                "Technical default, not a business rule",
                "Temporary limit that will be removed",
            ),
        ),
    )


# ---------------------------------------------------------------------------
# OpenAI mock helpers
# ---------------------------------------------------------------------------

def make_openai_response(text: str) -> MagicMock:
    """Return a mock object that looks like an OpenAI Responses API response."""
    mock_resp = MagicMock()
    mock_resp.output_text = text
    return mock_resp
