"""The conversation gate: analysis, one clarification round, then a document."""

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from doc_interviewer.errors import (
    GateError,
    IncompleteAnswerSet,
    InvalidAnswer,
    InvalidTransition,
    UnknownQuestionReference,
)

from .questions import build_questions, dedupe_findings
from .rendering import Document, generate_document
from .resolution import resolve_findings
from .schemas import AnalysisProfile, DocumentSchema, get_profile, get_schema
from .serialization import (
    answer_from_dict,
    answer_to_dict,
    finding_from_dict,
    finding_to_dict,
    question_from_dict,
    question_to_dict,
    resolved_from_dict,
    resolved_to_dict,
)
from .types import (
    Answer,
    ClarifyingQuestion,
    Finding,
    GateState,
    ResolvedFinding,
    ResolvedFindings,
)

if TYPE_CHECKING:
    from doc_interviewer.services.analysis.analyzer import Analyzer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ConversationGate:
    """Sequences one documentation conversation for one service.

    A document can only be generated after the clarification round has
    completed, either with every emitted question answered or with an
    explicit skip directive. Every operation either completes its state
    transition or raises and leaves the gate where it was; the single
    exception is a failed analysis, which aborts the instance to ``idle``.
    """

    def __init__(
        self,
        schema: DocumentSchema,
        analyzer: "Analyzer | None" = None,
        *,
        service_name: str,
        profile: AnalysisProfile | None = None,
        companion_document: str | None = None,
        section_scope: Iterable[str] = (),
        notes: str = "",
        carried: Iterable[ResolvedFinding] = (),
    ):
        if not service_name or not service_name.strip():
            raise ValueError("service_name is required")
        self.schema = schema
        self.analyzer = analyzer
        self.service_name = service_name.strip()
        self.profile = profile
        self.companion_document = companion_document
        self.section_scope: tuple[str, ...] = tuple(schema.validate_sections(section_scope))
        self.notes = notes
        self._carried: tuple[ResolvedFinding, ...] = tuple(carried)
        self._state = GateState.IDLE
        self._findings: tuple[Finding, ...] = ()
        self._questions: list[ClarifyingQuestion] = []
        self._answers: dict[int, Answer] = {}
        self._resolved: ResolvedFindings | None = None
        self._document: Document | None = None

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def findings(self) -> tuple[Finding, ...]:
        return self._findings

    @property
    def questions(self) -> list[ClarifyingQuestion]:
        return list(self._questions)

    @property
    def answers(self) -> dict[int, Answer]:
        return dict(self._answers)

    @property
    def resolved(self) -> ResolvedFindings | None:
        return self._resolved

    @property
    def document(self) -> Document | None:
        if self._document is None and self._state == GateState.DONE and self._resolved is not None:
            self._document = generate_document(self.schema, self.service_name, self._resolved)
        return self._document

    def _require(self, state: GateState, operation: str) -> None:
        if self._state != state:
            raise InvalidTransition(self._state.value, operation)

    # ── analysis ──

    def analyze(self, materials: Any, *, progress: ProgressCallback | None = None) -> tuple[Finding, ...]:
        """Run the analyzer over ``materials`` and prepare the questions.

        Moves to ``awaiting_clarification`` when any finding is not verified,
        otherwise straight to ``generating``. Any failure returns the gate to
        ``idle`` and re-raises.
        """
        self._require(GateState.IDLE, "analyze")
        if self.analyzer is None:
            raise GateError("No analyzer configured for this conversation")
        self._state = GateState.ANALYZING
        try:
            raw = self.analyzer.analyze(
                materials,
                schema=self.schema,
                profile=self.profile,
                companion_document=self.companion_document,
                section_scope=self.section_scope,
                notes=self.notes,
                progress=progress,
            )
            findings = dedupe_findings(raw)
            if self.section_scope:
                findings = tuple(
                    f for f in findings
                    if self.schema.section_for_topic(f.topic).title in self.section_scope
                )
        except Exception:
            self._state = GateState.IDLE
            raise
        self.accept_findings(findings)
        return self._findings

    def accept_findings(self, findings: Iterable[Finding]) -> list[ClarifyingQuestion]:
        """Finish analysis with an already computed set of findings."""
        if self._state not in (GateState.IDLE, GateState.ANALYZING):
            raise InvalidTransition(self._state.value, "accept findings")
        self._findings = dedupe_findings(findings)
        self._questions = build_questions(self._findings)
        self._answers = {}
        if self._questions:
            self._resolved = None
            self._state = GateState.AWAITING_CLARIFICATION
        else:
            self._resolved = resolve_findings(self._findings, (), {}, carried=self._carried)
            self._state = GateState.GENERATING
        logger.info(
            "Analysis of %s finished: %d findings, %d questions",
            self.service_name,
            len(self._findings),
            len(self._questions),
        )
        return list(self._questions)

    # ── clarification ──

    def pending_questions(self) -> list[ClarifyingQuestion]:
        if self._state != GateState.AWAITING_CLARIFICATION:
            return []
        return [q for q in self._questions if q.ordinal not in self._answers]

    def resume(self, answers: Iterable[Answer] = (), *, skip: bool = False) -> ResolvedFindings:
        """Apply answers, or a skip directive, and move to ``generating``.

        Unknown ordinals and invalid values reject the whole call and record
        nothing. A partial answer set without ``skip`` keeps the valid
        answers and raises ``IncompleteAnswerSet`` naming the rest.
        """
        self._require(GateState.AWAITING_CLARIFICATION, "resume")
        incoming = list(answers)
        emitted = {q.ordinal: q for q in self._questions}

        unknown = [a.ordinal for a in incoming if a.ordinal not in emitted]
        if unknown:
            raise UnknownQuestionReference(unknown)

        merged = dict(self._answers)
        for answer in incoming:
            merged[answer.ordinal] = _checked_answer(emitted[answer.ordinal], answer)

        missing = [ordinal for ordinal in emitted if ordinal not in merged]
        self._answers = merged
        if missing and not skip:
            raise IncompleteAnswerSet(missing)
        if missing:
            logger.info(
                "Skip directive for %s: defaulting questions %s",
                self.service_name,
                ", ".join(str(o) for o in missing),
            )

        self._resolved = resolve_findings(
            self._findings, self._questions, merged, carried=self._carried,
        )
        self._state = GateState.GENERATING
        return self._resolved

    # ── generation ──

    def generate(self, resolved: ResolvedFindings | None = None) -> Document:
        self._require(GateState.GENERATING, "generate")
        if resolved is None:
            resolved = self._resolved
        if resolved is None:
            raise GateError("Nothing resolved to generate from")
        document = generate_document(self.schema, self.service_name, resolved)
        self._resolved = resolved
        self._document = document
        self._state = GateState.DONE
        return document

    # ── persistence ──

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe state; the companion document is stored separately."""
        return {
            "kind": self.schema.kind.value,
            "service_name": self.service_name,
            "profile": self.profile.name if self.profile else None,
            "section_scope": list(self.section_scope),
            "notes": self.notes,
            "state": self._state.value,
            "findings": [finding_to_dict(f) for f in self._findings],
            "questions": [question_to_dict(q) for q in self._questions],
            "answers": [answer_to_dict(a) for _, a in sorted(self._answers.items())],
            "carried": [resolved_to_dict(rf) for rf in self._carried],
            "resolved": (
                [resolved_to_dict(rf) for rf in self._resolved.items]
                if self._resolved is not None else None
            ),
        }

    @classmethod
    def restore(
        cls,
        snapshot: dict[str, Any],
        analyzer: "Analyzer | None" = None,
        companion_document: str | None = None,
    ) -> "ConversationGate":
        profile_name = snapshot.get("profile")
        gate = cls(
            get_schema(snapshot["kind"]),
            analyzer,
            service_name=snapshot["service_name"],
            profile=get_profile(profile_name) if profile_name else None,
            companion_document=companion_document,
            section_scope=snapshot.get("section_scope") or (),
            notes=snapshot.get("notes") or "",
            carried=[resolved_from_dict(d) for d in snapshot.get("carried") or []],
        )
        gate._state = GateState(snapshot.get("state") or GateState.IDLE.value)
        gate._findings = tuple(finding_from_dict(d) for d in snapshot.get("findings") or [])
        gate._questions = [question_from_dict(d) for d in snapshot.get("questions") or []]
        gate._answers = {
            a.ordinal: a for a in (answer_from_dict(d) for d in snapshot.get("answers") or [])
        }
        resolved = snapshot.get("resolved")
        if resolved is not None:
            gate._resolved = ResolvedFindings(items=tuple(resolved_from_dict(d) for d in resolved))
        return gate


def _checked_answer(question: ClarifyingQuestion, answer: Answer) -> Answer:
    if answer.choice is not None:
        if question.option(answer.choice) is not None:
            return answer
        if question.allow_free_text:
            return Answer(ordinal=answer.ordinal, free_text=answer.choice)
        letters = ", ".join(o.letter for o in question.options)
        raise InvalidAnswer(question.ordinal, answer.choice, f"choose one of {letters}")

    text = (answer.free_text or "").strip()
    if not text:
        raise InvalidAnswer(question.ordinal, text, "answer is empty")
    if not question.allow_free_text:
        letters = ", ".join(o.letter for o in question.options)
        raise InvalidAnswer(question.ordinal, text, f"choose one of {letters}")
    return Answer(ordinal=answer.ordinal, free_text=text)
