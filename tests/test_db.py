"""Tests for doc_interviewer.db."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect, text

from doc_interviewer.db import SQLiteAdapter, get_default_adapter
from doc_interviewer.db_managers import ConversationManager


class TestSQLiteAdapter:
    def test_migrate_adds_missing_columns(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setattr(
            "doc_interviewer.db._MIGRATIONS",
            [
                ("conversations", "profile", "VARCHAR(32) NOT NULL DEFAULT 'generic'"),
                ("conversations", "analysis_run", "INTEGER NOT NULL DEFAULT 0"),
            ],
        )
        url = f"sqlite:///{tmp_path / 'old.db'}"
        old = create_engine(url)
        with old.begin() as conn:
            conn.execute(text("CREATE TABLE conversations (conversation_id VARCHAR(36) PRIMARY KEY)"))
        old.dispose()

        adapter = SQLiteAdapter(url)
        adapter.migrate_tables()

        columns = {c["name"] for c in inspect(create_engine(url)).get_columns("conversations")}
        assert {"profile", "analysis_run"} <= columns

    def test_migrate_skips_missing_tables(self, tmp_path) -> None:
        SQLiteAdapter(f"sqlite:///{tmp_path / 'empty.db'}").migrate_tables()

    def test_session_commits(self, tmp_path) -> None:
        adapter = SQLiteAdapter(f"sqlite:///{tmp_path / 'app.db'}")
        adapter.create_tables()
        adapter.migrate_tables()
        with adapter.session() as session:
            conversation_id = ConversationManager(session).add_conversation(
                doc_kind="prd",
                service_name="billing",
                materials="/srv/billing",
                profile="python",
                state="idle",
            ).conversation_id
        with adapter.session() as session:
            assert ConversationManager(session).require(conversation_id).profile == "python"

    def test_session_rolls_back_on_error(self, tmp_path) -> None:
        adapter = SQLiteAdapter(f"sqlite:///{tmp_path / 'app.db'}")
        adapter.create_tables()
        with pytest.raises(RuntimeError):
            with adapter.session() as session:
                ConversationManager(session).add_conversation(
                    doc_kind="prd",
                    service_name="billing",
                    materials="/srv/billing",
                    profile="python",
                    state="idle",
                )
                raise RuntimeError("boom")
        with adapter.session() as session:
            assert ConversationManager(session).list_conversations() == []


class TestGetDefaultAdapter:
    def test_same_url_reuses_adapter(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'shared.db'}")
        assert get_default_adapter() is get_default_adapter()

    def test_rejects_other_backends(self, monkeypatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/docs")
        with pytest.raises(ValueError, match="sqlite"):
            get_default_adapter()


class TestSharedMemoryEngine:
    def test_shared_cache_is_in_memory(self, engine) -> None:
        assert engine.url.query["mode"] == "memory"
        assert not list(Path.cwd().glob("file:test_*"))

    def test_connections_share_tables(self, engine) -> None:
        with engine.connect() as conn:
            names = set(inspect(conn).get_table_names())
        assert {"conversations", "generated_documents"} <= names
