"""Service for documentation conversations.

A conversation is one ``ConversationGate`` whose state is stored in SQLite
between turns. Analysis runs in a background thread; every other operation
restores the gate, applies one transition and saves it again.
"""

import dataclasses
import logging
import threading
import time
from pathlib import Path
from typing import Any, TypedDict

from constants import DOCUMENTS_DIR, STALE_CONVERSATION_TIMEOUT_SECONDS
from doc_interviewer.db import get_default_adapter
from doc_interviewer.db_managers import ConversationManager
from doc_interviewer.errors import IncompleteAnswerSet, InvalidTransition
from doc_interviewer.gate import (
    Answer,
    ConversationGate,
    Document,
    GateState,
    detect_profile,
    get_profile,
    get_schema,
    group_questions_by_category,
    is_skip_directive,
    parse_answers,
    render_questions,
)
from doc_interviewer.gate.serialization import provenance_to_dict, question_to_dict
from doc_interviewer.materials import Materials, load_materials
from doc_interviewer.models import Conversation, ConversationProgress, is_conversation_stale
from doc_interviewer.services.analysis import Analyzer, LLMAnalyzer
from doc_interviewer.services.document import write_document

logger = logging.getLogger(__name__)


class ConversationStatus(TypedDict):
    conversation_id: str
    doc_kind: str
    service_name: str
    materials: str
    profile: str
    state: str
    revision_of: str | None
    section_scope: list[str]
    question_count: int
    pending_count: int
    last_error: str | None
    progress: ConversationProgress
    created_at: int
    updated_at: int


class QuestionsPayload(TypedDict):
    conversation_id: str
    state: str
    questions: list[dict[str, object]]
    grouped: dict[str, list[dict[str, object]]]
    prompt: str


class DocumentPayload(TypedDict):
    conversation_id: str
    doc_kind: str
    service_name: str
    file_name: str
    content: str
    provenance: list[dict[str, object]]


class ExportResult(TypedDict):
    conversation_id: str
    file_name: str
    path: str


def _get_analyzer() -> Analyzer:
    return LLMAnalyzer()


class ConversationService:
    """Conversation-related service operations."""

    @staticmethod
    def start_conversation(
        *,
        materials: str,
        kind: str,
        service_name: str,
        profile: str | None = None,
        companion_document: str | None = None,
    ) -> ConversationStatus:
        """
        Load the materials and start analyzing them in a background thread.

        Materials are read before anything is stored, so an unreadable
        location raises ``UnreadableMaterials`` to the caller directly.
        """
        schema = get_schema(kind)
        loaded = load_materials(materials)
        profile_obj = get_profile(profile) if profile else detect_profile(loaded.project_file_names)
        gate = ConversationGate(
            schema,
            _get_analyzer(),
            service_name=service_name,
            profile=profile_obj,
            companion_document=companion_document or None,
        )
        return _create_and_launch(gate, materials=loaded)

    @staticmethod
    def retry_analysis(conversation_id: str) -> ConversationStatus:
        """Re-run analysis of a conversation that fell back to ``idle``."""
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = _require_conversation(manager, conversation_id)
            if conversation.state != GateState.IDLE.value:
                raise InvalidTransition(conversation.state, "retry analysis")
            location = conversation.materials

        loaded = load_materials(location)
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = manager.require(conversation_id)
            gate = _restore_gate(conversation, "retry analysis")
            gate.analyzer = _get_analyzer()
            conversation.state = GateState.ANALYZING.value
            conversation.analysis_run = (conversation.analysis_run or 0) + 1
            run = conversation.analysis_run
            conversation.last_error = None
            conversation.set_progress(ConversationProgress(phase="Starting", steps_done=0, steps_total=0))
            conversation.touch()
            status = _status(conversation)

        _launch_analysis(conversation_id, gate, loaded, run)
        return status

    @staticmethod
    def get_conversation(conversation_id: str) -> ConversationStatus:
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            return _status(_require_conversation(manager, conversation_id))

    @staticmethod
    def list_conversations(*, service_name: str | None = None) -> list[ConversationStatus]:
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversations = manager.list_conversations(service_name=service_name)
            now = int(time.time())
            for conversation in conversations:
                _expire_if_stale(conversation, now=now)
            return [_status(c) for c in conversations]

    @staticmethod
    def get_questions(conversation_id: str) -> QuestionsPayload:
        """Questions still waiting for an answer, grouped by category."""
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = _require_conversation(manager, conversation_id)
            if conversation.state == GateState.ANALYZING.value:
                pending = []
            else:
                pending = _restore_gate(conversation, "list questions").pending_questions()
            grouped = group_questions_by_category(pending)
            return {
                "conversation_id": conversation.conversation_id,
                "state": conversation.state,
                "questions": [question_to_dict(q) for q in pending],
                "grouped": {
                    category.value: [question_to_dict(q) for q in members]
                    for category, members in grouped.items()
                },
                "prompt": render_questions(pending),
            }

    @staticmethod
    def submit_answers(conversation_id: str, answers: list[Answer]) -> ConversationStatus:
        """
        Resume with ``answers`` and generate the document.

        On ``IncompleteAnswerSet`` the valid answers are saved before the
        error is raised, so the next prompt lists only the missing questions.
        """
        return _resume(conversation_id, answers, skip=False)

    @staticmethod
    def submit_answer_text(conversation_id: str, text: str) -> ConversationStatus:
        """Accept a chat reply: ``skip`` or ``<number>: <letter or text>`` lines."""
        if is_skip_directive(text):
            return _resume(conversation_id, [], skip=True)
        return _resume(conversation_id, parse_answers(text), skip=False)

    @staticmethod
    def skip(conversation_id: str) -> ConversationStatus:
        """Default every open question to its stated assumption and generate."""
        return _resume(conversation_id, [], skip=True)

    @staticmethod
    def get_document(conversation_id: str) -> DocumentPayload:
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = _require_conversation(manager, conversation_id)
            document = manager.get_document(conversation_id)
            if document is None:
                raise InvalidTransition(conversation.state, "get the document")
            return {
                "conversation_id": conversation.conversation_id,
                "doc_kind": document.doc_kind,
                "service_name": document.service_name,
                "file_name": document.file_name,
                "content": document.content,
                "provenance": document.get_provenance(),
            }

    @staticmethod
    def export_document(conversation_id: str, output_dir: Path | str | None = None) -> ExportResult:
        """Write the document under DOCUMENTS_DIR, optionally into ``output_dir`` below it."""
        target_dir = _export_dir(output_dir)
        payload = ConversationService.get_document(conversation_id)
        path = write_document(payload["content"], payload["file_name"], target_dir)
        return {
            "conversation_id": conversation_id,
            "file_name": payload["file_name"],
            "path": str(path),
        }

    @staticmethod
    def request_revision(
        conversation_id: str,
        sections: list[str],
        notes: str = "",
    ) -> ConversationStatus:
        """
        Start a new conversation scoped to ``sections`` of a finished one.

        Resolved findings of every other section are carried over verbatim;
        only the named sections are analyzed and asked about again.
        """
        adapter = get_default_adapter()
        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = _require_conversation(manager, conversation_id)
            if conversation.state != GateState.DONE.value:
                raise InvalidTransition(conversation.state, "request a revision")
            previous = _restore_gate(conversation, "request a revision")
            schema = previous.schema
            scope = schema.validate_sections(sections)
            if not scope:
                raise ValueError("At least one section is required for a revision")
            if schema.assumptions_section.title in scope:
                raise ValueError(
                    f"'{schema.assumptions_section.title}' is derived from the other sections; "
                    "revise the sections it refers to instead"
                )
            resolved = previous.resolved.items if previous.resolved is not None else ()
            # earlier ordinals belong to the old question list
            carried = [
                dataclasses.replace(rf, ordinal=None)
                for rf in resolved
                if schema.section_for_topic(rf.finding.topic).title not in scope
            ]
            location = conversation.materials
            companion_document = conversation.companion_document
            service_name = previous.service_name
            profile = previous.profile

        loaded = load_materials(location)
        gate = ConversationGate(
            schema,
            _get_analyzer(),
            service_name=service_name,
            profile=profile,
            companion_document=companion_document,
            section_scope=scope,
            notes=notes,
            carried=carried,
        )
        logger.info(
            "Revision of %s requested for sections=%s carried=%d",
            conversation_id, scope, len(carried),
        )
        return _create_and_launch(gate, materials=loaded, revision_of=conversation_id)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _create_and_launch(
    gate: ConversationGate,
    *,
    materials: Materials,
    revision_of: str | None = None,
) -> ConversationStatus:
    adapter = get_default_adapter()
    with adapter.session() as session:
        manager = ConversationManager(session)
        conversation = manager.add_conversation(
            doc_kind=gate.schema.kind.value,
            service_name=gate.service_name,
            materials=materials.location,
            profile=gate.profile.name if gate.profile else "generic",
            state=GateState.ANALYZING.value,
            companion_document=gate.companion_document,
            section_scope=list(gate.section_scope),
            revision_of=revision_of,
        )
        conversation.set_gate(gate.snapshot())
        # the stored gate stays idle until analysis finishes
        conversation.state = GateState.ANALYZING.value
        conversation.analysis_run = 1
        conversation.set_progress(ConversationProgress(phase="Starting", steps_done=0, steps_total=0))
        conversation_id = conversation.conversation_id
        status = _status(conversation)
        logger.info(
            "Conversation created id=%s kind=%s service=%s",
            conversation_id, conversation.doc_kind, conversation.service_name,
        )

    _launch_analysis(conversation_id, gate, materials, 1)
    return status


def _launch_analysis(
    conversation_id: str,
    gate: ConversationGate,
    materials: Materials,
    run: int,
) -> None:
    """
    Analyze in a daemon thread; ``run`` is the conversation's analysis_run at launch.

    Every write re-reads the row and is dropped once the run is superseded
    (stale expiry, retry), so a late thread never overwrites a newer state.
    """
    adapter = get_default_adapter()

    def _on_progress(done: int, total: int) -> None:
        with adapter.session() as session:
            conversation = _owned_conversation(ConversationManager(session), conversation_id, run)
            if conversation is None:
                return
            conversation.set_progress(ConversationProgress(
                phase="Analyzing files",
                steps_done=done,
                steps_total=total,
            ))
            conversation.touch()

    def _background() -> None:
        try:
            gate.analyze(materials, progress=_on_progress)
            document = gate.generate() if gate.state == GateState.GENERATING else None
        except Exception as exc:
            logger.exception("Analysis failed conversation_id=%s run=%d", conversation_id, run)
            with adapter.session() as session:
                manager = ConversationManager(session)
                conversation = _owned_conversation(manager, conversation_id, run)
                if conversation is None:
                    return
                manager.save_gate(conversation, gate.snapshot(), last_error=str(exc))
                conversation.set_progress(ConversationProgress(phase="Failed"))
            return

        with adapter.session() as session:
            manager = ConversationManager(session)
            conversation = _owned_conversation(manager, conversation_id, run)
            if conversation is None:
                return
            manager.save_gate(conversation, gate.snapshot())
            if document is not None:
                _store_document(manager, conversation, document)
            progress = conversation.get_progress()
            conversation.set_progress(ConversationProgress(
                phase="Completed",
                steps_done=progress.get("steps_done", 0),
                steps_total=progress.get("steps_total", 0),
            ))
        logger.info(
            "Analysis finished conversation_id=%s run=%d state=%s questions=%d",
            conversation_id, run, gate.state.value, len(gate.questions),
        )

    threading.Thread(
        target=_background,
        daemon=True,
        name=f"analyze-{conversation_id[:8]}-{run}",
    ).start()


def _owned_conversation(
    manager: ConversationManager,
    conversation_id: str,
    run: int,
) -> Conversation | None:
    """The conversation while ``run`` is still its live analysis, else None."""
    conversation = manager.require(conversation_id)
    if conversation.state == GateState.ANALYZING.value and conversation.analysis_run == run:
        return conversation
    logger.warning(
        "Dropping write from superseded analysis conversation_id=%s run=%d current_run=%d state=%s",
        conversation_id, run, conversation.analysis_run, conversation.state,
    )
    return None


def _resume(conversation_id: str, answers: list[Answer], *, skip: bool) -> ConversationStatus:
    adapter = get_default_adapter()
    incomplete: IncompleteAnswerSet | None = None
    with adapter.session() as session:
        manager = ConversationManager(session)
        conversation = _require_conversation(manager, conversation_id)
        gate = _restore_gate(conversation, "resume")
        try:
            gate.resume(answers, skip=skip)
        except IncompleteAnswerSet as exc:
            manager.save_gate(conversation, gate.snapshot())
            incomplete = exc
        else:
            document = gate.generate()
            manager.save_gate(conversation, gate.snapshot())
            _store_document(manager, conversation, document)
            logger.info(
                "Document generated conversation_id=%s file=%s skip=%s",
                conversation_id, document.file_name, skip,
            )
        status = _status(conversation)

    if incomplete is not None:
        raise incomplete
    return status


def _store_document(manager: ConversationManager, conversation: Conversation, document: Document) -> None:
    manager.save_document(
        conversation,
        file_name=document.file_name,
        content=document.render(),
        provenance=[provenance_to_dict(e) for e in document.provenance],
    )


def _restore_gate(conversation: Conversation, operation: str) -> ConversationGate:
    if conversation.state == GateState.ANALYZING.value:
        raise InvalidTransition(conversation.state, operation)
    snapshot = conversation.get_gate()
    if snapshot is None:
        raise InvalidTransition(conversation.state, operation)
    return ConversationGate.restore(snapshot, companion_document=conversation.companion_document)


def _require_conversation(manager: ConversationManager, conversation_id: str) -> Conversation:
    conversation = manager.require(conversation_id)
    _expire_if_stale(conversation)
    return conversation


def _expire_if_stale(conversation: Conversation, *, now: int | None = None) -> None:
    current = int(time.time()) if now is None else now
    if not is_conversation_stale(
        conversation,
        timeout_seconds=STALE_CONVERSATION_TIMEOUT_SECONDS,
        now=current,
    ):
        return
    logger.warning(
        "Conversation stale id=%s updated_at=%d",
        conversation.conversation_id,
        conversation.updated_at,
    )
    conversation.state = GateState.IDLE.value
    conversation.last_error = "Analysis went stale: no heartbeat received."
    conversation.updated_at = current


def _status(conversation: Conversation) -> ConversationStatus:
    snapshot: dict[str, Any] = conversation.get_gate() or {}
    questions = snapshot.get("questions") or []
    answered = {a.get("ordinal") for a in snapshot.get("answers") or []}
    pending = 0
    if conversation.state == GateState.AWAITING_CLARIFICATION.value:
        pending = len([q for q in questions if q.get("ordinal") not in answered])
    return ConversationStatus(
        conversation_id=conversation.conversation_id,
        doc_kind=conversation.doc_kind,
        service_name=conversation.service_name,
        materials=conversation.materials,
        profile=conversation.profile,
        state=conversation.state,
        revision_of=conversation.revision_of,
        section_scope=conversation.get_section_scope(),
        question_count=len(questions),
        pending_count=pending,
        last_error=conversation.last_error,
        progress=conversation.get_progress(),
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
    )


def _export_dir(output_dir: Path | str | None) -> Path:
    """Resolve ``output_dir`` against DOCUMENTS_DIR; anything outside it is rejected."""
    root = Path(DOCUMENTS_DIR).resolve()
    if not output_dir:
        return root
    candidate = Path(output_dir).expanduser()
    if not candidate.is_absolute():
        candidate = root / candidate
    candidate = candidate.resolve()
    if not candidate.is_relative_to(root):
        raise ValueError(f"Export directory must be inside {root}: {output_dir}")
    return candidate
