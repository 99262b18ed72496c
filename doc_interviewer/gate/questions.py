"""Turn findings into numbered clarifying questions and parse replies."""

import logging
import re
from collections.abc import Iterable

from doc_interviewer.errors import InvalidAnswer

from .types import (
    OPTION_LETTERS,
    Answer,
    ClarifyingQuestion,
    Confidence,
    Finding,
    QuestionCategory,
    QuestionOption,
    normalize_description,
)

logger = logging.getLogger(__name__)

# Used when the analyzer could not enumerate at least two options
_FALLBACK_OPTIONS: tuple[str, ...] = (
    "Yes, this is accurate as stated",
    "No, this needs correcting",
)

_CATEGORY_ORDER: tuple[QuestionCategory, ...] = (
    QuestionCategory.SCOPE,
    QuestionCategory.INTENT,
    QuestionCategory.ACCURACY,
)

_ANSWER_LINE = re.compile(r"^\s*(?:Q\s*)?(\d+)\s*[:.)=-]\s*(.+?)\s*$", re.IGNORECASE)


def dedupe_findings(findings: Iterable[Finding]) -> tuple[Finding, ...]:
    """Drop findings whose normalized description was already seen."""
    seen: set[str] = set()
    out: list[Finding] = []
    dropped = 0
    for finding in findings:
        key = normalize_description(finding.description)
        if not key or key in seen:
            dropped += 1
            continue
        seen.add(key)
        out.append(finding)
    if dropped:
        logger.debug("Dropped %d duplicate findings", dropped)
    return tuple(out)


def build_questions(findings: Iterable[Finding]) -> list[ClarifyingQuestion]:
    """One question per non-verified finding, numbered 1..n in finding order."""
    questions: list[ClarifyingQuestion] = []
    for finding in findings:
        if finding.is_verified:
            continue
        questions.append(_question_for(finding, ordinal=len(questions) + 1))
    return questions


def _question_for(finding: Finding, *, ordinal: int) -> ClarifyingQuestion:
    draft = finding.question
    if draft is not None:
        category = draft.category
        prompt = draft.prompt.strip() or _default_prompt(finding)
        texts = [t.strip() for t in draft.options if t and t.strip()]
        allow_free_text = draft.allow_free_text
    else:
        category = _default_category(finding)
        prompt = _default_prompt(finding)
        texts = []
        allow_free_text = False

    if len(texts) < 2:
        texts = list(_FALLBACK_OPTIONS)
        allow_free_text = True

    options = tuple(
        QuestionOption(letter=OPTION_LETTERS[idx], text=text)
        for idx, text in enumerate(texts[:len(OPTION_LETTERS)])
    )
    return ClarifyingQuestion(
        ordinal=ordinal,
        category=category,
        prompt=prompt,
        options=options,
        allow_free_text=allow_free_text,
        finding_id=finding.finding_id,
        default=finding.assumption.strip() or finding.description.strip(),
    )


def _default_category(finding: Finding) -> QuestionCategory:
    if finding.confidence == Confidence.ASSUMED:
        return QuestionCategory.INTENT
    return QuestionCategory.ACCURACY


def _default_prompt(finding: Finding) -> str:
    return f"Is this correct? {finding.description.strip()}"


def group_questions_by_category(
    questions: Iterable[ClarifyingQuestion],
) -> dict[QuestionCategory, list[ClarifyingQuestion]]:
    """Group for presentation; ordinals stay global and ascending per group."""
    grouped: dict[QuestionCategory, list[ClarifyingQuestion]] = {}
    ordered = sorted(questions, key=lambda q: q.ordinal)
    for category in _CATEGORY_ORDER:
        members = [q for q in ordered if q.category == category]
        if members:
            grouped[category] = members
    return grouped


def render_questions(questions: Iterable[ClarifyingQuestion]) -> str:
    """Markdown prompt listing the questions grouped by category."""
    grouped = group_questions_by_category(questions)
    if not grouped:
        return "No open questions.\n"
    lines: list[str] = ["# Clarifying Questions", ""]
    for category, members in grouped.items():
        lines.append(f"## {category.value}")
        lines.append("")
        for q in members:
            lines.append(f"{q.ordinal}. {q.prompt}")
            for opt in q.options:
                lines.append(f"   - {opt.letter}) {opt.text}")
            if q.allow_free_text:
                lines.append("   - Or answer in your own words.")
            lines.append(f"   *If skipped: {q.default}*")
            lines.append("")
    lines.append(
        "Reply with one `<number>: <letter or text>` per line, "
        "or `skip` to accept the stated assumptions."
    )
    return "\n".join(lines) + "\n"


def is_skip_directive(text: str) -> bool:
    return text.strip().lower() in {"skip", "/skip", "skip all", "use defaults"}


def parse_answers(text: str) -> list[Answer]:
    """Parse ``1: B`` / ``Q2) free text`` lines into answers.

    Blank lines are ignored; any other line that does not start with a
    question number raises ``InvalidAnswer``.
    """
    answers: list[Answer] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = _ANSWER_LINE.match(line)
        if match is None:
            raise InvalidAnswer(None, line, "expected '<number>: <letter or text>'")
        answers.append(Answer.from_value(int(match.group(1)), match.group(2)))
    return answers


def answers_from_mapping(mapping: dict[str, object]) -> list[Answer]:
    """Build answers from a JSON body like ``{"1": "B", "2": "free text"}``."""
    answers: list[Answer] = []
    for key, value in mapping.items():
        try:
            ordinal = int(str(key).strip().lstrip("Qq"))
        except ValueError:
            raise InvalidAnswer(None, str(key), "question keys must be numbers") from None
        text = str(value or "").strip()
        if not text:
            raise InvalidAnswer(ordinal, text, "answer is empty")
        answers.append(Answer.from_value(ordinal, text))
    return answers
