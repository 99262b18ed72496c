"""Codebase analysis: turn materials into labeled findings.

Assigning a confidence level is a judgment call, so analysis is a pluggable
capability. ``LLMAnalyzer`` is the default implementation; tests and callers
can supply anything matching the ``Analyzer`` protocol.
"""

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Protocol

from constants import ANALYZE_BATCH_SIZE, ANALYZE_MAX_CONCURRENCY, ANALYZE_MAX_FILES, LLM_MODEL
from doc_interviewer.errors import UnreadableMaterials
from doc_interviewer.gate.questions import dedupe_findings
from doc_interviewer.gate.schemas import AnalysisProfile, DocumentSchema, detect_profile
from doc_interviewer.gate.types import Confidence, Finding, QuestionCategory, QuestionDraft
from doc_interviewer.materials import MaterialFile, Materials
from doc_interviewer.prompts import ANALYZE_SYSTEM_PROMPT
from doc_interviewer.utils.async_openai import OpenAIRequest, stream_batch

logger = logging.getLogger(__name__)

# Cap on the file listing included in every prompt
_MAX_LISTED_PATHS = 300


class Analyzer(Protocol):
    def analyze(
        self,
        materials: Materials,
        *,
        schema: DocumentSchema,
        profile: AnalysisProfile | None,
        companion_document: str | None,
        section_scope: tuple[str, ...],
        notes: str,
        progress: Callable[[int, int], None] | None = None,
    ) -> list[Finding]:
        ...


@dataclass
class LLMAnalyzer:
    model: str = LLM_MODEL
    batch_size: int = ANALYZE_BATCH_SIZE
    max_files: int = ANALYZE_MAX_FILES
    max_concurrency: int = ANALYZE_MAX_CONCURRENCY
    reasoning_effort: str | None = "low"

    def analyze(
        self,
        materials: Materials,
        *,
        schema: DocumentSchema,
        profile: AnalysisProfile | None,
        companion_document: str | None,
        section_scope: tuple[str, ...],
        notes: str,
        progress: Callable[[int, int], None] | None = None,
    ) -> list[Finding]:
        """
        Analyze ``materials`` in file batches, one LLM call per batch.

        Batches run concurrently through ``stream_batch``; results are put
        back in batch order before de-duplication so the output does not
        depend on completion order. A failed batch is logged and skipped.

        Raises:
            UnreadableMaterials: nothing to analyze.
            RuntimeError: every batch failed.
        """
        files = materials.files_for_analysis(self.max_files)
        if not files:
            raise UnreadableMaterials(materials.location or str(materials.root), "no files to analyze")
        if profile is None:
            profile = detect_profile(materials.project_file_names)

        system_prompt = _build_system_prompt(schema, profile, section_scope)
        listing = _build_listing(materials)
        requests = [
            OpenAIRequest(
                system_prompt=system_prompt,
                user_prompt=_build_user_prompt(
                    materials,
                    batch,
                    listing=listing,
                    companion_document=companion_document,
                    notes=notes,
                ),
                model=self.model,
                reasoning_effort=self.reasoning_effort,
            )
            for batch in _batch(files, self.batch_size)
        ]
        logger.info(
            "Analyzing %d files in %d batches (kind=%s profile=%s model=%s)",
            len(files), len(requests), schema.kind.value, profile.name, self.model,
        )

        by_batch: dict[int, list[Finding]] = {}
        errors: list[str] = []
        completed = 0
        for idx, result in stream_batch(requests, max_concurrency=self.max_concurrency):
            completed += 1
            if isinstance(result, Exception):
                logger.error("Analysis batch %d failed: %s", idx, result)
                errors.append(str(result))
            else:
                try:
                    by_batch[idx] = _parse_findings(result, schema)
                except (ValueError, TypeError) as exc:
                    logger.exception("Failed to parse analysis batch %d", idx)
                    errors.append(str(exc))
            if progress is not None:
                progress(completed, len(requests))

        if not by_batch:
            raise RuntimeError(
                f"All {len(requests)} analysis batches failed: {errors[-1] if errors else 'no result'}"
            )

        findings = [f for idx in sorted(by_batch) for f in by_batch[idx]]
        return list(dedupe_findings(findings))


def _batch(items: list[MaterialFile], batch_size: int) -> Iterable[list[MaterialFile]]:
    size = max(1, batch_size)
    for idx in range(0, len(items), size):
        yield items[idx:idx + size]


def _build_system_prompt(
    schema: DocumentSchema,
    profile: AnalysisProfile,
    section_scope: tuple[str, ...],
) -> str:
    lines: list[str] = [ANALYZE_SYSTEM_PROMPT, ""]
    lines.append(f"Target document: {schema.title} ({schema.kind.value.upper()}).")
    lines.append("Allowed topics, by section:")
    for section in schema.sections:
        if not section.topics:
            continue
        if section_scope and section.title not in section_scope:
            continue
        topics = ", ".join(section.topics)
        lines.append(f"- {section.title} [{topics}]: {section.guidance}")
    if section_scope:
        lines.append("")
        lines.append(f"Only report findings for these sections: {', '.join(section_scope)}.")
    lines.append("")
    lines.append(f"Analysis checklist ({profile.label}):")
    for item in profile.checklist:
        lines.append(f"- {item}")
    return "\n".join(lines)


def _build_listing(materials: Materials) -> str:
    paths = [f.path for f in materials.files[:_MAX_LISTED_PATHS]]
    hidden = len(materials.files) - len(paths)
    if hidden > 0:
        paths.append(f"... and {hidden} more files")
    return "\n".join(paths)


def _build_user_prompt(
    materials: Materials,
    files: list[MaterialFile],
    *,
    listing: str,
    companion_document: str | None,
    notes: str,
) -> str:
    lines: list[str] = []
    lines.append("Repository file listing:")
    lines.append(listing)
    if companion_document:
        lines.append("")
        lines.append("Companion document (read-only context, do not restate it):")
        lines.append(companion_document.strip())
    if notes:
        lines.append("")
        lines.append(f"Reviewer notes: {notes.strip()}")
    lines.append("")
    lines.append("Return only JSON. No extra text.")
    for idx, file in enumerate(files, start=1):
        lines.append("")
        lines.append(f"FILE {idx}: {file.path}")
        lines.append(f"file_size_bytes: {file.size_bytes}")
        lines.append("CONTENT:")
        lines.append(materials.read(file))
    return "\n".join(lines)


def _parse_json_object(text: str) -> dict[str, object]:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        cleaned = cleaned.removeprefix("json").strip()
    parsed = json.loads(cleaned)
    if isinstance(parsed, list):
        return {"findings": parsed}
    if isinstance(parsed, dict):
        return parsed
    raise ValueError("Analysis response is not a JSON object.")


def _parse_findings(text: str, schema: DocumentSchema) -> list[Finding]:
    payload = _parse_json_object(text)
    raw = payload.get("findings")
    if not isinstance(raw, list):
        raise ValueError("Analysis response has no findings list.")
    findings: list[Finding] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        finding = _normalize_finding(item, schema)
        if finding is not None:
            findings.append(finding)
    return findings


def _normalize_finding(item: dict[str, object], schema: DocumentSchema) -> Finding | None:
    description = " ".join(str(item.get("description") or "").split())
    if not description:
        return None

    try:
        confidence = Confidence(str(item.get("confidence") or "").strip().lower())
    except ValueError:
        confidence = Confidence.NEEDS_CONFIRMATION

    topic = str(item.get("topic") or "").strip().lower()
    if topic not in schema.topics:
        topic = schema.fallback_topic

    details_raw = item.get("details")
    details: tuple[tuple[str, str], ...] = ()
    if isinstance(details_raw, dict):
        details = tuple(
            (str(k).strip().lower(), str(v).strip())
            for k, v in details_raw.items()
            if v is not None and str(v).strip()
        )

    question: QuestionDraft | None = None
    question_raw = item.get("question")
    if confidence != Confidence.VERIFIED and isinstance(question_raw, dict):
        question = QuestionDraft(
            category=_parse_category(question_raw.get("category"), confidence),
            prompt=str(question_raw.get("prompt") or "").strip(),
            options=tuple(_ensure_string_list(question_raw.get("options"))),
            allow_free_text=bool(question_raw.get("allow_free_text") or False),
        )

    return Finding(
        description=description,
        confidence=confidence,
        topic=topic,
        assumption=str(item.get("assumption") or "").strip(),
        group=str(item.get("group") or "").strip(),
        details=details,
        question=question,
    )


def _parse_category(value: object, confidence: Confidence) -> QuestionCategory:
    wanted = str(value or "").strip().lower()
    for category in QuestionCategory:
        if category.value.lower() == wanted:
            return category
    if confidence == Confidence.ASSUMED:
        return QuestionCategory.INTENT
    return QuestionCategory.ACCURACY


def _ensure_string_list(value: object) -> list[str]:
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []
