"""GeneratedDocument model: the rendered PRD or TSD of a finished conversation."""

import json
import time
import uuid

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class GeneratedDocument(Base):
    __tablename__ = "generated_documents"

    document_id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    conversation_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    doc_kind: Mapped[str] = mapped_column(String(8), nullable=False)
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    provenance_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(
        Integer, nullable=False, default=lambda: int(time.time())
    )

    def get_provenance(self) -> list[dict[str, object]]:
        if not self.provenance_json:
            return []
        try:
            data = json.loads(self.provenance_json)
        except (json.JSONDecodeError, TypeError):
            return []
        return [d for d in data if isinstance(d, dict)] if isinstance(data, list) else []

    def set_provenance(self, entries: list[dict[str, object]]) -> None:
        self.provenance_json = json.dumps(entries)

    def __repr__(self) -> str:
        return f"<GeneratedDocument {self.file_name} conversation={self.conversation_id}>"
