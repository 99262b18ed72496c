"""Value types shared by the conversation gate, the analyzer and the renderer."""

import hashlib
import re
import string
from dataclasses import dataclass
from enum import Enum


class GateState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"
    AWAITING_CLARIFICATION = "awaiting_clarification"
    GENERATING = "generating"
    DONE = "done"


class Confidence(str, Enum):
    VERIFIED = "verified"
    NEEDS_CONFIRMATION = "needs_confirmation"
    ASSUMED = "assumed"


class QuestionCategory(str, Enum):
    SCOPE = "Scope"
    INTENT = "Intent"
    ACCURACY = "Accuracy"


class DocumentKind(str, Enum):
    PRD = "prd"
    TSD = "tsd"


class Resolution(str, Enum):
    VERIFIED = "verified"
    ANSWERED = "answered"
    DEFAULTED = "defaulted"


OPTION_LETTERS: str = string.ascii_uppercase


def normalize_description(description: str) -> str:
    """Lowercase, collapse whitespace and drop trailing punctuation."""
    text = re.sub(r"\s+", " ", description.strip().lower())
    return text.rstrip(" .;:!?")


def finding_key(description: str) -> str:
    """Stable 12-char id derived from the normalized description."""
    return hashlib.sha1(normalize_description(description).encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class QuestionDraft:
    """What the analyzer suggests asking about a non-verified finding."""
    category: QuestionCategory
    prompt: str
    options: tuple[str, ...] = ()
    allow_free_text: bool = False


@dataclass(frozen=True)
class Finding:
    """A claim about the inspected material, tagged with a confidence level.

    ``topic`` is the content-rule key a document schema uses to place the
    finding in a section. ``assumption`` is the stated default used when the
    question about this finding is skipped.
    """
    description: str
    confidence: Confidence
    topic: str
    assumption: str = ""
    group: str = ""
    details: tuple[tuple[str, str], ...] = ()
    question: QuestionDraft | None = None

    @property
    def finding_id(self) -> str:
        return finding_key(self.description)

    @property
    def is_verified(self) -> bool:
        return self.confidence == Confidence.VERIFIED

    def detail(self, key: str) -> str:
        for name, value in self.details:
            if name == key:
                return value
        return ""


@dataclass(frozen=True)
class QuestionOption:
    letter: str
    text: str


@dataclass(frozen=True)
class ClarifyingQuestion:
    ordinal: int
    category: QuestionCategory
    prompt: str
    options: tuple[QuestionOption, ...]
    allow_free_text: bool
    finding_id: str
    default: str

    def option(self, letter: str) -> QuestionOption | None:
        wanted = letter.strip().upper()
        for opt in self.options:
            if opt.letter == wanted:
                return opt
        return None


@dataclass(frozen=True)
class Answer:
    """A user resolution for one question: an option letter or free text."""
    ordinal: int
    choice: str | None = None
    free_text: str | None = None

    @classmethod
    def from_value(cls, ordinal: int, value: str) -> "Answer":
        """Single letters are option choices, anything else is free text."""
        text = value.strip()
        if len(text) == 1 and text.upper() in OPTION_LETTERS:
            return cls(ordinal=ordinal, choice=text.upper())
        return cls(ordinal=ordinal, free_text=text)

    @property
    def raw_value(self) -> str:
        return self.choice if self.choice is not None else (self.free_text or "")


@dataclass(frozen=True)
class ResolvedFinding:
    """A finding together with how it was settled.

    ``text`` holds the chosen option text or free-text answer for answered
    findings, and the stated default for defaulted ones.
    """
    finding: Finding
    resolution: Resolution
    ordinal: int | None = None
    text: str = ""


@dataclass(frozen=True)
class ProvenanceEntry:
    ordinal: int
    finding_id: str
    resolution: Resolution
    value: str


@dataclass(frozen=True)
class ResolvedFindings:
    items: tuple[ResolvedFinding, ...] = ()

    def defaulted(self) -> list[ResolvedFinding]:
        return [rf for rf in self.items if rf.resolution == Resolution.DEFAULTED]

    def provenance(self) -> tuple[ProvenanceEntry, ...]:
        entries = [
            ProvenanceEntry(
                ordinal=rf.ordinal,
                finding_id=rf.finding.finding_id,
                resolution=rf.resolution,
                value=rf.text,
            )
            for rf in self.items
            if rf.ordinal is not None
        ]
        return tuple(sorted(entries, key=lambda e: e.ordinal))
