"""Deterministic rendering of resolved findings into a PRD or TSD."""

from dataclasses import dataclass

from .schemas import (
    LAYOUT_ASSUMPTIONS,
    LAYOUT_NUMBERED_GROUPS,
    LAYOUT_TABLE,
    DocumentSchema,
    SectionSpec,
)
from .types import DocumentKind, ProvenanceEntry, Resolution, ResolvedFinding, ResolvedFindings

_EMPTY_SECTION = "_Nothing identified._"
_NO_ASSUMPTIONS = "_No open assumptions._"
_DEFAULT_GROUP = "General"


@dataclass(frozen=True)
class DocumentSection:
    title: str
    body: str


@dataclass(frozen=True)
class Document:
    kind: DocumentKind
    title: str
    service_name: str
    file_name: str
    sections: tuple[DocumentSection, ...]
    provenance: tuple[ProvenanceEntry, ...] = ()

    def section(self, title: str) -> DocumentSection:
        for section in self.sections:
            if section.title == title:
                return section
        raise KeyError(title)

    def render(self) -> str:
        lines: list[str] = [f"# {self.title}: {self.service_name}", ""]
        for section in self.sections:
            lines.append(f"## {section.title}")
            lines.append("")
            lines.append(section.body.rstrip())
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"


def generate_document(
    schema: DocumentSchema,
    service_name: str,
    resolved: ResolvedFindings,
) -> Document:
    """Render ``resolved`` into the fixed section list of ``schema``.

    Only the resolved findings are used; nothing else reaches the output.
    """
    by_section: dict[str, list[ResolvedFinding]] = {s.title: [] for s in schema.sections}
    for rf in resolved.items:
        by_section[schema.section_for_topic(rf.finding.topic).title].append(rf)

    sections: list[DocumentSection] = []
    for spec in schema.sections:
        if spec.layout == LAYOUT_ASSUMPTIONS:
            body = _render_assumptions(resolved.defaulted())
        elif spec.layout == LAYOUT_NUMBERED_GROUPS:
            body = _render_numbered_groups(by_section[spec.title])
        elif spec.layout == LAYOUT_TABLE:
            body = _render_table(spec, by_section[spec.title])
        else:
            body = _render_list(by_section[spec.title])
        sections.append(DocumentSection(title=spec.title, body=body))

    return Document(
        kind=schema.kind,
        title=schema.title,
        service_name=service_name,
        file_name=schema.file_name(service_name),
        sections=tuple(sections),
        provenance=resolved.provenance(),
    )


def finding_line(rf: ResolvedFinding) -> str:
    text = _one_line(rf.finding.description)
    if rf.resolution == Resolution.ANSWERED:
        label = f"Clarified (Q{rf.ordinal})" if rf.ordinal is not None else "Clarified"
        return f"{text} {label}: {_one_line(rf.text)}"
    if rf.resolution == Resolution.DEFAULTED:
        label = f"Assumed (Q{rf.ordinal})" if rf.ordinal is not None else "Assumed"
        return f"{text} {label}: {_one_line(rf.text)}"
    return text


def _render_list(items: list[ResolvedFinding]) -> str:
    if not items:
        return _EMPTY_SECTION
    return "\n".join(f"- {finding_line(rf)}" for rf in items)


def _render_numbered_groups(items: list[ResolvedFinding]) -> str:
    if not items:
        return _EMPTY_SECTION
    groups: dict[str, list[ResolvedFinding]] = {}
    for rf in items:
        groups.setdefault(rf.finding.group.strip() or _DEFAULT_GROUP, []).append(rf)
    lines: list[str] = []
    number = 0
    for group, members in groups.items():
        if lines:
            lines.append("")
        lines.append(f"### {group}")
        lines.append("")
        for rf in members:
            number += 1
            lines.append(f"{number}. **FR-{number}** {finding_line(rf)}")
    return "\n".join(lines)


def _render_table(spec: SectionSpec, items: list[ResolvedFinding]) -> str:
    if not items:
        return _EMPTY_SECTION
    columns = spec.columns
    lines = [
        "| " + " | ".join(columns) + " |",
        "| " + " | ".join("---" for _ in columns) + " |",
    ]
    for rf in items:
        cells: list[str] = []
        for idx, column in enumerate(columns):
            value = rf.finding.detail(column.lower())
            if not value and idx == 0:
                value = rf.finding.description
            if idx == len(columns) - 1 and rf.resolution != Resolution.VERIFIED:
                value = " ".join(p for p in (value, _resolution_note(rf)) if p)
            cells.append(_table_cell(value))
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def _render_assumptions(defaulted: list[ResolvedFinding]) -> str:
    if not defaulted:
        return _NO_ASSUMPTIONS
    lines: list[str] = []
    for rf in defaulted:
        ref = f"Q{rf.ordinal}: " if rf.ordinal is not None else ""
        lines.append(f"- {ref}{_one_line(rf.finding.description)} Assumed: {_one_line(rf.text)}")
    return "\n".join(lines)


def _resolution_note(rf: ResolvedFinding) -> str:
    prefix = "Clarified" if rf.resolution == Resolution.ANSWERED else "Assumed"
    ref = f" (Q{rf.ordinal})" if rf.ordinal is not None else ""
    return f"{prefix}{ref}: {_one_line(rf.text)}"


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _table_cell(text: str) -> str:
    return _one_line(text).replace("|", "\\|")
