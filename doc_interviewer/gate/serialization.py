"""JSON-safe dict conversion for gate values, used to persist conversations."""

from .types import (
    Answer,
    ClarifyingQuestion,
    Confidence,
    Finding,
    ProvenanceEntry,
    QuestionCategory,
    QuestionDraft,
    QuestionOption,
    Resolution,
    ResolvedFinding,
)


def finding_to_dict(finding: Finding) -> dict[str, object]:
    data: dict[str, object] = {
        "description": finding.description,
        "confidence": finding.confidence.value,
        "topic": finding.topic,
        "assumption": finding.assumption,
        "group": finding.group,
        "details": [[k, v] for k, v in finding.details],
        "question": None,
    }
    if finding.question is not None:
        data["question"] = {
            "category": finding.question.category.value,
            "prompt": finding.question.prompt,
            "options": list(finding.question.options),
            "allow_free_text": finding.question.allow_free_text,
        }
    return data


def finding_from_dict(data: dict[str, object]) -> Finding:
    question_raw = data.get("question")
    question: QuestionDraft | None = None
    if isinstance(question_raw, dict):
        question = QuestionDraft(
            category=QuestionCategory(str(question_raw.get("category"))),
            prompt=str(question_raw.get("prompt") or ""),
            options=tuple(str(o) for o in (question_raw.get("options") or [])),
            allow_free_text=bool(question_raw.get("allow_free_text", False)),
        )
    details = tuple(
        (str(pair[0]), str(pair[1]))
        for pair in (data.get("details") or [])
        if isinstance(pair, (list, tuple)) and len(pair) == 2
    )
    return Finding(
        description=str(data.get("description") or ""),
        confidence=Confidence(str(data.get("confidence"))),
        topic=str(data.get("topic") or ""),
        assumption=str(data.get("assumption") or ""),
        group=str(data.get("group") or ""),
        details=details,
        question=question,
    )


def question_to_dict(question: ClarifyingQuestion) -> dict[str, object]:
    return {
        "ordinal": question.ordinal,
        "category": question.category.value,
        "prompt": question.prompt,
        "options": [{"letter": o.letter, "text": o.text} for o in question.options],
        "allow_free_text": question.allow_free_text,
        "finding_id": question.finding_id,
        "default": question.default,
    }


def question_from_dict(data: dict[str, object]) -> ClarifyingQuestion:
    return ClarifyingQuestion(
        ordinal=int(data["ordinal"]),
        category=QuestionCategory(str(data["category"])),
        prompt=str(data.get("prompt") or ""),
        options=tuple(
            QuestionOption(letter=str(o["letter"]), text=str(o["text"]))
            for o in (data.get("options") or [])
        ),
        allow_free_text=bool(data.get("allow_free_text", False)),
        finding_id=str(data.get("finding_id") or ""),
        default=str(data.get("default") or ""),
    )


def answer_to_dict(answer: Answer) -> dict[str, object]:
    return {"ordinal": answer.ordinal, "choice": answer.choice, "free_text": answer.free_text}


def answer_from_dict(data: dict[str, object]) -> Answer:
    choice = data.get("choice")
    free_text = data.get("free_text")
    return Answer(
        ordinal=int(data["ordinal"]),
        choice=str(choice) if choice is not None else None,
        free_text=str(free_text) if free_text is not None else None,
    )


def resolved_to_dict(rf: ResolvedFinding) -> dict[str, object]:
    return {
        "finding": finding_to_dict(rf.finding),
        "resolution": rf.resolution.value,
        "ordinal": rf.ordinal,
        "text": rf.text,
    }


def resolved_from_dict(data: dict[str, object]) -> ResolvedFinding:
    ordinal = data.get("ordinal")
    return ResolvedFinding(
        finding=finding_from_dict(data["finding"]),  # type: ignore[arg-type]
        resolution=Resolution(str(data["resolution"])),
        ordinal=int(ordinal) if ordinal is not None else None,
        text=str(data.get("text") or ""),
    )


def provenance_to_dict(entry: ProvenanceEntry) -> dict[str, object]:
    return {
        "ordinal": entry.ordinal,
        "finding_id": entry.finding_id,
        "resolution": entry.resolution.value,
        "value": entry.value,
    }
