"""Manager for Conversation and GeneratedDocument: CRUD using a DB session."""

import time
from typing import Any

from sqlalchemy.orm import Session

from doc_interviewer.errors import ConversationNotFound
from doc_interviewer.models import Conversation, GeneratedDocument


class ConversationManager:
    """Provides access to conversation models. Takes a DB session as input."""

    def __init__(self, session: Session):
        self._session = session

    def add_conversation(
        self,
        *,
        doc_kind: str,
        service_name: str,
        materials: str,
        profile: str,
        state: str,
        companion_document: str | None = None,
        section_scope: list[str] | None = None,
        revision_of: str | None = None,
    ) -> Conversation:
        now = int(time.time())
        conversation = Conversation(
            doc_kind=doc_kind,
            service_name=service_name,
            materials=materials,
            profile=profile,
            state=state,
            companion_document=companion_document,
            revision_of=revision_of,
            created_at=now,
            updated_at=now,
        )
        conversation.set_section_scope(section_scope or [])
        self._session.add(conversation)
        self._session.flush()
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        return (
            self._session.query(Conversation)
            .filter(Conversation.conversation_id == conversation_id)
            .first()
        )

    def require(self, conversation_id: str) -> Conversation:
        conversation = self.get(conversation_id)
        if conversation is None:
            raise ConversationNotFound(conversation_id)
        return conversation

    def list_conversations(self, *, service_name: str | None = None) -> list[Conversation]:
        query = self._session.query(Conversation)
        if service_name:
            query = query.filter(Conversation.service_name == service_name)
        return query.order_by(Conversation.created_at.desc(), Conversation.conversation_id).all()

    def save_gate(
        self,
        conversation: Conversation,
        snapshot: dict[str, Any],
        *,
        last_error: str | None = None,
    ) -> None:
        conversation.set_gate(snapshot)
        conversation.last_error = last_error
        conversation.touch()
        self._session.flush()

    def save_document(
        self,
        conversation: Conversation,
        *,
        file_name: str,
        content: str,
        provenance: list[dict[str, object]],
    ) -> GeneratedDocument:
        document = self.get_document(conversation.conversation_id)
        if document is None:
            document = GeneratedDocument(conversation_id=conversation.conversation_id)
            self._session.add(document)
        document.doc_kind = conversation.doc_kind
        document.service_name = conversation.service_name
        document.file_name = file_name
        document.content = content
        document.set_provenance(provenance)
        document.created_at = int(time.time())
        self._session.flush()
        return document

    def get_document(self, conversation_id: str) -> GeneratedDocument | None:
        return (
            self._session.query(GeneratedDocument)
            .filter(GeneratedDocument.conversation_id == conversation_id)
            .first()
        )
