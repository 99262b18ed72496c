"""Conversation model: one documentation conversation and its gate state."""

import json
import time
import uuid
from typing import Any, TypedDict

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from doc_interviewer.gate.types import GateState

from .base import Base


class ConversationProgress(TypedDict, total=False):
    """Analysis progress stored in Conversation.meta_json.

    phase      : human-readable label for the current step ("Analyzing files")
    steps_done : analysis batches finished
    steps_total: analysis batches expected (0 = not known yet)
    """
    phase: str
    steps_done: int
    steps_total: int


def new_conversation_id() -> str:
    return uuid.uuid4().hex


class Conversation(Base):
    """A suspended or finished documentation conversation."""

    __tablename__ = "conversations"

    conversation_id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_conversation_id)
    doc_kind: Mapped[str] = mapped_column(String(8), nullable=False, index=True)
    service_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    materials: Mapped[str] = mapped_column(Text, nullable=False)
    profile: Mapped[str] = mapped_column(String(32), nullable=False, default="generic")
    state: Mapped[str] = mapped_column(String(32), nullable=False, index=True, default=GateState.IDLE.value)
    revision_of: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    section_scope_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    companion_document: Mapped[str | None] = mapped_column(Text, nullable=True)
    gate_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    # bumped on every analysis start; a background run only writes while it still matches
    analysis_run: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(
        Integer, nullable=False, default=lambda: int(time.time())
    )
    updated_at: Mapped[int] = mapped_column(
        Integer, nullable=False, default=lambda: int(time.time())
    )

    def get_gate(self) -> dict[str, Any] | None:
        if not self.gate_json:
            return None
        data = json.loads(self.gate_json)
        return data if isinstance(data, dict) else None

    def set_gate(self, snapshot: dict[str, Any]) -> None:
        self.gate_json = json.dumps(snapshot, sort_keys=True)
        self.state = str(snapshot.get("state") or self.state)

    def get_section_scope(self) -> list[str]:
        if not self.section_scope_json:
            return []
        try:
            data = json.loads(self.section_scope_json)
        except (json.JSONDecodeError, TypeError):
            return []
        return [str(s) for s in data] if isinstance(data, list) else []

    def set_section_scope(self, sections: list[str]) -> None:
        self.section_scope_json = json.dumps(list(sections)) if sections else None

    def get_progress(self) -> ConversationProgress:
        if not self.meta_json:
            return ConversationProgress()
        try:
            data = json.loads(self.meta_json)
            if not isinstance(data, dict):
                return ConversationProgress()
            return ConversationProgress(
                **{k: v for k, v in data.items() if k in ("phase", "steps_done", "steps_total")}
            )
        except (json.JSONDecodeError, TypeError):
            return ConversationProgress()

    def set_progress(self, progress: ConversationProgress) -> None:
        self.meta_json = json.dumps(dict(progress))

    def touch(self) -> None:
        self.updated_at = int(time.time())

    def __repr__(self) -> str:
        return (
            f"<Conversation {self.conversation_id} {self.doc_kind}:{self.service_name} "
            f"state={self.state}>"
        )


def is_conversation_stale(
    conversation: Conversation,
    *,
    timeout_seconds: int,
    now: int | None = None,
) -> bool:
    current = int(time.time()) if now is None else int(now)
    last_update = int(conversation.updated_at or 0)
    return (
        conversation.state == GateState.ANALYZING.value
        and (current - last_update) > timeout_seconds
    )
