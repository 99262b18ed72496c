"""Settle every finding from the questions asked and the answers received."""

from collections.abc import Iterable, Mapping

from .types import (
    Answer,
    ClarifyingQuestion,
    Finding,
    Resolution,
    ResolvedFinding,
    ResolvedFindings,
)


def resolve_findings(
    findings: Iterable[Finding],
    questions: Iterable[ClarifyingQuestion],
    answers: Mapping[int, Answer],
    *,
    carried: Iterable[ResolvedFinding] = (),
) -> ResolvedFindings:
    """Pair each finding with its resolution.

    Verified findings need no question. A finding whose question has an
    answer is ``answered``; one whose question was left open is
    ``defaulted`` to the question's stated default. ``carried`` findings come
    from an earlier document and are kept as they were.
    """
    question_by_finding = {q.finding_id: q for q in questions}
    items: list[ResolvedFinding] = list(carried)
    for finding in findings:
        question = question_by_finding.get(finding.finding_id)
        if question is None:
            items.append(ResolvedFinding(finding=finding, resolution=Resolution.VERIFIED))
            continue
        answer = answers.get(question.ordinal)
        if answer is None:
            items.append(ResolvedFinding(
                finding=finding,
                resolution=Resolution.DEFAULTED,
                ordinal=question.ordinal,
                text=question.default,
            ))
            continue
        items.append(ResolvedFinding(
            finding=finding,
            resolution=Resolution.ANSWERED,
            ordinal=question.ordinal,
            text=answer_text(question, answer),
        ))
    return ResolvedFindings(items=tuple(items))


def answer_text(question: ClarifyingQuestion, answer: Answer) -> str:
    if answer.choice is not None:
        option = question.option(answer.choice)
        if option is not None:
            return option.text
    return (answer.free_text or "").strip()
