"""Tests for doc_interviewer.gate.machine.ConversationGate."""

import pytest

from doc_interviewer.errors import (
    IncompleteAnswerSet,
    InvalidAnswer,
    InvalidTransition,
    UnknownQuestionReference,
    UnreadableMaterials,
)
from doc_interviewer.gate import (
    PRD_SCHEMA,
    TSD_SCHEMA,
    Answer,
    Confidence,
    ConversationGate,
    GateState,
    QuestionCategory,
    Resolution,
)
from tests.conftest import FakeAnalyzer, make_finding, rate_limit_finding


def _gate(findings, *, schema=PRD_SCHEMA, **kwargs) -> ConversationGate:
    return ConversationGate(schema, FakeAnalyzer(findings), service_name="billing", **kwargs)


def _two_open_findings():
    return [
        make_finding(
            "Invoices are emailed to the account owner.",
            confidence=Confidence.NEEDS_CONFIRMATION,
            topic="functional",
            group="Invoicing",
            assumption="Invoices go to the account owner only.",
        ),
        make_finding(
            "Refunds older than 90 days are rejected.",
            confidence=Confidence.NEEDS_CONFIRMATION,
            topic="business_rules",
            assumption="The 90-day refund window is a business rule.",
        ),
    ]


# ── construction ────────────────────────────────────────────────────────────

class TestConstruction:
    def test_starts_idle(self) -> None:
        assert _gate([]).state == GateState.IDLE

    def test_requires_service_name(self) -> None:
        with pytest.raises(ValueError, match="service_name"):
            ConversationGate(PRD_SCHEMA, FakeAnalyzer(), service_name="  ")

    def test_rejects_unknown_section_scope(self) -> None:
        with pytest.raises(ValueError, match="Unknown PRD sections"):
            _gate([], section_scope=["Tech Stack"])


# ── analyze ─────────────────────────────────────────────────────────────────

class TestAnalyze:
    def test_all_verified_goes_straight_to_generating(self) -> None:
        gate = _gate([make_finding("Billing charges customers monthly.")])
        gate.analyze(object())
        assert gate.questions == []
        assert gate.state == GateState.GENERATING

    def test_open_finding_suspends_for_clarification(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        assert gate.state == GateState.AWAITING_CLARIFICATION
        assert [q.ordinal for q in gate.questions] == [1]

    def test_deduplicates_by_normalized_description(self) -> None:
        gate = _gate([
            make_finding("Charges run nightly."),
            make_finding("charges   run nightly"),
            make_finding("Refunds are manual."),
        ])
        findings = gate.analyze(object())
        assert [f.description for f in findings] == ["Charges run nightly.", "Refunds are manual."]

    def test_failure_returns_to_idle(self) -> None:
        analyzer = FakeAnalyzer(error=UnreadableMaterials("/nowhere", "path does not exist"))
        gate = ConversationGate(PRD_SCHEMA, analyzer, service_name="billing")
        with pytest.raises(UnreadableMaterials):
            gate.analyze(object())
        assert gate.state == GateState.IDLE

    def test_cannot_analyze_twice(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        with pytest.raises(InvalidTransition, match="awaiting_clarification"):
            gate.analyze(object())
        assert gate.state == GateState.AWAITING_CLARIFICATION

    def test_section_scope_filters_findings(self) -> None:
        gate = _gate(_two_open_findings(), section_scope=["Business Rules"])
        findings = gate.analyze(object())
        assert [f.topic for f in findings] == ["business_rules"]
        assert len(gate.questions) == 1

    def test_passes_context_to_analyzer(self) -> None:
        analyzer = FakeAnalyzer([make_finding("Billing charges customers.")])
        gate = ConversationGate(
            TSD_SCHEMA,
            analyzer,
            service_name="billing",
            companion_document="# PRD",
            notes="focus on queues",
        )
        materials = object()
        gate.analyze(materials)
        call = analyzer.calls[0]
        assert call["materials"] is materials
        assert call["schema"] is TSD_SCHEMA
        assert call["companion_document"] == "# PRD"
        assert call["notes"] == "focus on queues"


# ── resume ──────────────────────────────────────────────────────────────────

class TestResume:
    def test_unknown_ordinal_rejected_and_state_unchanged(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        with pytest.raises(UnknownQuestionReference) as exc_info:
            gate.resume([Answer(ordinal=1, choice="B"), Answer(ordinal=7, choice="A")])
        assert exc_info.value.ordinals == [7]
        assert gate.state == GateState.AWAITING_CLARIFICATION
        assert gate.answers == {}

    def test_partial_answers_raise_and_keep_valid_ones(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        with pytest.raises(IncompleteAnswerSet) as exc_info:
            gate.resume([Answer(ordinal=1, choice="A")])
        assert exc_info.value.missing == [2]
        assert gate.state == GateState.AWAITING_CLARIFICATION
        assert [q.ordinal for q in gate.pending_questions()] == [2]

    def test_second_round_completes_with_remaining_answers(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        with pytest.raises(IncompleteAnswerSet):
            gate.resume([Answer(ordinal=1, choice="A")])
        resolved = gate.resume([Answer(ordinal=2, choice="B")])
        assert gate.state == GateState.GENERATING
        assert [rf.resolution for rf in resolved.items] == [Resolution.ANSWERED, Resolution.ANSWERED]

    def test_option_letter_not_offered_is_invalid(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        with pytest.raises(InvalidAnswer):
            gate.resume([Answer(ordinal=1, choice="D")])
        assert gate.answers == {}

    def test_free_text_rejected_when_not_offered(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        with pytest.raises(InvalidAnswer):
            gate.resume([Answer(ordinal=1, free_text="it depends")])

    def test_free_text_accepted_on_fallback_questions(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        resolved = gate.resume([
            Answer(ordinal=1, free_text="Invoices go to the billing contact."),
            Answer(ordinal=2, choice="A"),
        ])
        assert resolved.items[0].text == "Invoices go to the billing contact."

    def test_skip_defaults_open_questions(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        resolved = gate.resume(skip=True)
        assert [rf.resolution for rf in resolved.items] == [Resolution.DEFAULTED, Resolution.DEFAULTED]
        assert resolved.items[1].text == "The 90-day refund window is a business rule."

    def test_skip_keeps_answers_already_given(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        resolved = gate.resume([Answer(ordinal=2, choice="A")], skip=True)
        assert [rf.resolution for rf in resolved.items] == [Resolution.DEFAULTED, Resolution.ANSWERED]

    def test_resume_before_analysis_is_invalid(self) -> None:
        gate = _gate([])
        with pytest.raises(InvalidTransition):
            gate.resume(skip=True)
        assert gate.state == GateState.IDLE


# ── generate ────────────────────────────────────────────────────────────────

class TestGenerate:
    def test_generate_only_from_generating(self) -> None:
        gate = _gate([rate_limit_finding()])
        gate.analyze(object())
        with pytest.raises(InvalidTransition):
            gate.generate()

    def test_no_transition_back_from_done(self) -> None:
        gate = _gate([make_finding("Billing charges customers monthly.")])
        gate.analyze(object())
        gate.generate()
        assert gate.state == GateState.DONE
        for call in (lambda: gate.analyze(object()), lambda: gate.resume(skip=True), gate.generate):
            with pytest.raises(InvalidTransition):
                call()
        assert gate.state == GateState.DONE

    def test_generation_is_idempotent(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        resolved = gate.resume(skip=True)
        first = gate.generate(resolved)
        other = _gate(_two_open_findings())
        other.analyze(object())
        second = other.generate(other.resume(skip=True))
        assert first.render() == second.render()


# ── scenarios ───────────────────────────────────────────────────────────────

class TestScenarios:
    @pytest.mark.parametrize(
        "schema, topic, section",
        [
            (PRD_SCHEMA, "constraints", "System Constraints"),
            (TSD_SCHEMA, "constraints", "Constraints & Limitations"),
        ],
    )
    def test_rate_limit_answered_as_technical_default(self, schema, topic, section) -> None:
        gate = _gate([rate_limit_finding(topic)], schema=schema)
        gate.analyze(object())

        questions = gate.questions
        assert len(questions) == 1
        assert questions[0].category == QuestionCategory.INTENT
        assert [o.letter for o in questions[0].options] == ["A", "B", "C"]

        document = gate.generate(gate.resume([Answer.from_value(1, "B")]))
        body = document.section(section).body
        assert "Technical default, not a business rule" in body
        assert "rate limit of 100 requests per minute" in body
        assert document.provenance[0].resolution == Resolution.ANSWERED

    def test_skip_with_two_findings_lists_two_assumptions(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        document = gate.generate(gate.resume(skip=True))
        entries = [
            line for line in document.section("Assumptions").body.splitlines()
            if line.startswith("- ")
        ]
        assert len(entries) == 2
        assert "Invoices are emailed to the account owner." in entries[0]
        assert "Refunds older than 90 days are rejected." in entries[1]

    def test_provenance_round_trip(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        document = gate.generate(gate.resume([Answer(ordinal=1, choice="A")], skip=True))
        by_ordinal = {e.ordinal: e.resolution for e in document.provenance}
        assert by_ordinal == {1: Resolution.ANSWERED, 2: Resolution.DEFAULTED}
        assumptions = document.section("Assumptions").body
        assert "Q2:" in assumptions
        assert "Q1:" not in assumptions


# ── snapshot / restore ──────────────────────────────────────────────────────

class TestSnapshot:
    def test_restore_keeps_pending_questions_and_answers(self) -> None:
        gate = _gate(_two_open_findings(), profile=None, notes="check refunds")
        gate.analyze(object())
        with pytest.raises(IncompleteAnswerSet):
            gate.resume([Answer(ordinal=1, choice="B")])

        restored = ConversationGate.restore(gate.snapshot())
        assert restored.state == GateState.AWAITING_CLARIFICATION
        assert restored.questions == gate.questions
        assert restored.findings == gate.findings
        assert restored.notes == "check refunds"
        assert [q.ordinal for q in restored.pending_questions()] == [2]

    def test_restored_done_gate_regenerates_same_document(self) -> None:
        gate = _gate(_two_open_findings())
        gate.analyze(object())
        document = gate.generate(gate.resume(skip=True))
        restored = ConversationGate.restore(gate.snapshot())
        assert restored.state == GateState.DONE
        assert restored.document is not None
        assert restored.document.render() == document.render()
