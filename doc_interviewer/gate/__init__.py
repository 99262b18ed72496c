"""Conversation gate: findings, clarifying questions and document rendering."""

from .types import (
    Answer,
    ClarifyingQuestion,
    Confidence,
    DocumentKind,
    Finding,
    GateState,
    ProvenanceEntry,
    QuestionCategory,
    QuestionDraft,
    QuestionOption,
    Resolution,
    ResolvedFinding,
    ResolvedFindings,
)
from .schemas import (
    PRD_SCHEMA,
    TSD_SCHEMA,
    AnalysisProfile,
    DocumentSchema,
    SectionSpec,
    detect_profile,
    get_profile,
    get_schema,
)
from .questions import (
    build_questions,
    dedupe_findings,
    group_questions_by_category,
    is_skip_directive,
    parse_answers,
    render_questions,
)
from .resolution import resolve_findings
from .rendering import Document, DocumentSection, generate_document
from .machine import ConversationGate

__all__ = [
    "Answer",
    "ClarifyingQuestion",
    "Confidence",
    "ConversationGate",
    "Document",
    "DocumentKind",
    "DocumentSection",
    "Finding",
    "GateState",
    "ProvenanceEntry",
    "QuestionCategory",
    "QuestionDraft",
    "QuestionOption",
    "Resolution",
    "ResolvedFinding",
    "ResolvedFindings",
    "PRD_SCHEMA",
    "TSD_SCHEMA",
    "AnalysisProfile",
    "DocumentSchema",
    "SectionSpec",
    "build_questions",
    "dedupe_findings",
    "detect_profile",
    "generate_document",
    "get_profile",
    "get_schema",
    "group_questions_by_category",
    "is_skip_directive",
    "parse_answers",
    "render_questions",
    "resolve_findings",
]
