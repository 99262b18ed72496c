"""Document schemas and analysis profiles.

Both are plain configuration data: a single gate implementation is
parameterized by a ``DocumentSchema`` value, and the analyzer prompt is
extended with the checklist of an ``AnalysisProfile``.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .types import DocumentKind

# Section layouts understood by the renderer
LAYOUT_LIST = "list"
LAYOUT_NUMBERED_GROUPS = "numbered_groups"
LAYOUT_TABLE = "table"
LAYOUT_ASSUMPTIONS = "assumptions"


@dataclass(frozen=True)
class SectionSpec:
    """One section of a document: its title and the finding topics it holds."""
    title: str
    topics: tuple[str, ...] = ()
    guidance: str = ""
    layout: str = LAYOUT_LIST
    columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class DocumentSchema:
    kind: DocumentKind
    title: str
    file_prefix: str
    sections: tuple[SectionSpec, ...]
    fallback_topic: str

    @property
    def section_titles(self) -> list[str]:
        return [s.title for s in self.sections]

    @property
    def assumptions_section(self) -> SectionSpec:
        for section in self.sections:
            if section.layout == LAYOUT_ASSUMPTIONS:
                return section
        raise ValueError(f"Schema {self.kind.value} has no assumptions section")

    @property
    def topics(self) -> list[str]:
        out: list[str] = []
        for section in self.sections:
            out.extend(t for t in section.topics if t not in out)
        return out

    def section_for_topic(self, topic: str) -> SectionSpec:
        """Section holding ``topic``; unknown topics land in the fallback's section."""
        for section in self.sections:
            if topic in section.topics:
                return section
        for section in self.sections:
            if self.fallback_topic in section.topics:
                return section
        return self.sections[0]

    def validate_sections(self, titles: Iterable[str]) -> list[str]:
        """Return ``titles`` in schema order; raise on names the schema lacks."""
        requested = [t.strip() for t in titles if t and t.strip()]
        unknown = [t for t in requested if t not in self.section_titles]
        if unknown:
            raise ValueError(
                f"Unknown {self.kind.value.upper()} sections: {unknown}. "
                f"Available: {self.section_titles}"
            )
        return [t for t in self.section_titles if t in requested]

    def file_name(self, service_name: str) -> str:
        return f"{self.file_prefix}-{service_slug(service_name)}.md"


def service_slug(service_name: str) -> str:
    """Filesystem-safe service name used in document file names."""
    slug = re.sub(r"[^\w\s-]", "", service_name)
    slug = re.sub(r"[-\s]+", "-", slug).strip("-").lower()
    return slug or "service"


PRD_SCHEMA = DocumentSchema(
    kind=DocumentKind.PRD,
    title="Product Requirements Document",
    file_prefix="PRD",
    fallback_topic="summary",
    sections=(
        SectionSpec(
            title="System Summary",
            topics=("summary",),
            guidance="What the system does and for whom, in product terms.",
        ),
        SectionSpec(
            title="User Roles & Permissions",
            topics=("roles",),
            guidance="Each role and what it may do or see.",
        ),
        SectionSpec(
            title="Functional Requirements",
            topics=("functional",),
            guidance="Observable behaviors, grouped by feature area.",
            layout=LAYOUT_NUMBERED_GROUPS,
        ),
        SectionSpec(
            title="Business Rules",
            topics=("business_rules",),
            guidance="Rules that come from the business, not from the implementation.",
        ),
        SectionSpec(
            title="System Constraints",
            topics=("constraints",),
            guidance="Limits, quotas, timeouts and technical defaults.",
        ),
        SectionSpec(
            title="Edge Cases & Error Handling",
            topics=("edge_cases",),
            guidance="Failure modes and how the system responds to them.",
        ),
        SectionSpec(title="Assumptions", layout=LAYOUT_ASSUMPTIONS),
    ),
)

TSD_SCHEMA = DocumentSchema(
    kind=DocumentKind.TSD,
    title="Technical Specification Document",
    file_prefix="TSD",
    fallback_topic="summary",
    sections=(
        SectionSpec(
            title="Service Overview",
            topics=("summary",),
            guidance="Purpose of the service and its place in the wider system.",
        ),
        SectionSpec(
            title="Tech Stack",
            topics=("tech_stack",),
            guidance="Languages, frameworks and runtime versions.",
        ),
        SectionSpec(
            title="Project Structure",
            topics=("structure",),
            guidance="Top-level layout and what each part holds.",
        ),
        SectionSpec(
            title="Architecture",
            topics=("architecture",),
            guidance="Components, data flow and key design decisions.",
        ),
        SectionSpec(
            title="External Dependencies",
            topics=("dependencies",),
            guidance="Databases, queues, APIs and libraries the service relies on.",
            layout=LAYOUT_TABLE,
            columns=("Name", "Type", "Purpose"),
        ),
        SectionSpec(
            title="Configuration & Environment",
            topics=("configuration",),
            guidance="Environment variables, config files and their defaults.",
        ),
        SectionSpec(
            title="Development Workflow",
            topics=("workflow",),
            guidance="How to install, test, run and release.",
        ),
        SectionSpec(
            title="Constraints & Limitations",
            topics=("constraints",),
            guidance="Limits, quotas, timeouts and technical defaults.",
        ),
        SectionSpec(title="Assumptions", layout=LAYOUT_ASSUMPTIONS),
    ),
)

SCHEMAS: dict[DocumentKind, DocumentSchema] = {
    DocumentKind.PRD: PRD_SCHEMA,
    DocumentKind.TSD: TSD_SCHEMA,
}


def get_schema(kind: DocumentKind | str) -> DocumentSchema:
    try:
        key = kind if isinstance(kind, DocumentKind) else DocumentKind(str(kind).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown document kind: {kind!r}. Use 'prd' or 'tsd'.") from None
    return SCHEMAS[key]


# ---------------------------------------------------------------------------
# Analysis profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AnalysisProfile:
    """Ecosystem-flavored checklist appended to the analysis prompt."""
    name: str
    label: str
    detect_files: frozenset[str]
    checklist: tuple[str, ...]


GENERIC_PROFILE = AnalysisProfile(
    name="generic",
    label="General codebase",
    detect_files=frozenset(),
    checklist=(
        "Read the README and any docs folder before the source.",
        "Identify entry points: servers, CLIs, workers, scheduled jobs.",
        "List configuration sources and environment variables.",
        "Note every external system the code talks to.",
        "Use tests to confirm behavior and edge cases.",
    ),
)

PYTHON_PROFILE = AnalysisProfile(
    name="python",
    label="Python (uv / pyproject)",
    detect_files=frozenset({"pyproject.toml", "uv.lock", "setup.py", "setup.cfg", "requirements.txt", "Pipfile"}),
    checklist=(
        "Read pyproject.toml: project metadata, dependencies, optional extras, scripts.",
        "Check uv.lock or requirements files for pinned runtime versions.",
        "Find the application entry point (app factory, __main__, console scripts).",
        "Look for settings modules, .env handling and pydantic/dataclass configs.",
        "Inspect tests/ and conftest.py for fixtures that reveal behavior.",
        "Note the commands used to install, test and run (uv sync, pytest, uvicorn).",
    ),
)

GO_PROFILE = AnalysisProfile(
    name="go",
    label="Go modules",
    detect_files=frozenset({"go.mod"}),
    checklist=(
        "Read go.mod: module path, Go version and required modules.",
        "Find main packages under cmd/ and what each binary does.",
        "Map internal/ and pkg/ packages to responsibilities.",
        "Look for config structs, flags and environment lookups.",
        "Inspect *_test.go files for behavior and edge cases.",
        "Note Makefile or task targets for build, test and lint.",
    ),
)

PROFILES: dict[str, AnalysisProfile] = {
    p.name: p for p in (GENERIC_PROFILE, PYTHON_PROFILE, GO_PROFILE)
}


def get_profile(name: str) -> AnalysisProfile:
    profile = PROFILES.get(name.strip().lower())
    if profile is None:
        raise ValueError(f"Unknown analysis profile: {name!r}. Available: {sorted(PROFILES)}")
    return profile


def detect_profile(project_file_names: Iterable[str]) -> AnalysisProfile:
    """Pick a profile from the project files present; Go wins over Python."""
    names = set(project_file_names)
    if names & GO_PROFILE.detect_files:
        return GO_PROFILE
    if names & PYTHON_PROFILE.detect_files:
        return PYTHON_PROFILE
    return GENERIC_PROFILE
