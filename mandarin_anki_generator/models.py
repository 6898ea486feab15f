"""
Core data models for the Mandarin Anki Generator.

Every model that crosses a pipeline stage is frozen: an entry is parsed once,
tokenized once, enriched once and consumed once by the package assembler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import ProcessingError


class EntryKind(Enum):
    """Shape of an input line, decided once during tokenization."""
    SENTENCE = "sentence"
    SINGLE_WORD = "word"


@dataclass(frozen=True)
class HighlightSpan:
    """User-marked focus substring, offsets into the marker-free text."""
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class InputRecord:
    """One non-blank record from the input file."""
    line_number: int
    text: str
    translation: Optional[str] = None


@dataclass(frozen=True)
class Entry:
    """One parsed input line before enrichment."""
    raw_text: str
    text: str  # raw_text with the highlight markers removed
    highlighted_span: Optional[HighlightSpan] = None
    user_translation: Optional[str] = None
    line_number: int = 0

    @property
    def has_highlight(self) -> bool:
        return self.highlighted_span is not None


@dataclass(frozen=True)
class Segment:
    """One tokenized word-unit of a sentence with its phonetic reading."""
    hanzi: str
    reading: str = ""
    is_highlighted: bool = False
    in_dictionary: bool = False


@dataclass(frozen=True)
class TokenizedEntry:
    """An entry together with its segments and its fixed classification."""
    entry: Entry
    segments: Tuple[Segment, ...]
    kind: EntryKind

    @property
    def is_word(self) -> bool:
        return self.kind is EntryKind.SINGLE_WORD


@dataclass(frozen=True)
class RelatedWord:
    """A generated vocabulary suggestion for a single-word entry."""
    word: str
    translation: str
    reading: str = ""


@dataclass(frozen=True)
class AudioClip:
    """Synthesized speech for the full text of an entry."""
    text: str
    data: bytes
    extension: str = "mp3"


@dataclass(frozen=True)
class EnrichedEntry:
    """Entry plus translation, readings, audio and related words."""
    entry: Entry
    kind: EntryKind
    translation: str
    segments: Tuple[Segment, ...]
    audio_ref: Optional[AudioClip] = None
    related_words: Optional[Tuple[RelatedWord, ...]] = None
    issues: Tuple[ProcessingError, ...] = ()
    services_attempted: int = 0
    services_succeeded: int = 0


@dataclass(frozen=True)
class TranslationResult:
    """Result of translating Mandarin text to English."""
    mandarin: str
    english: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class TransliterationResult:
    """Result of requesting a Latin-script reading for Mandarin text."""
    mandarin: str
    reading: str
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class SpeechResult:
    """Result of synthesizing speech for Mandarin text."""
    mandarin: str
    audio: Optional[bytes]
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class RelatedWordsResult:
    """
    Result of asking the generative service for related vocabulary.

    ``well_formed`` is False when the response text could only be partially
    parsed; ``words`` then holds whatever pairs could be recovered.
    """
    word: str
    words: Tuple[RelatedWord, ...]
    success: bool
    well_formed: bool = True
    raw_text: str = ""
    error: Optional[str] = None


@dataclass(frozen=True)
class PackageNote:
    """A rendered note ready for serialization."""
    kind: EntryKind
    model_id: int
    fields: Tuple[Tuple[str, str], ...]
    guid: str
    audio_filename: Optional[str] = None
    tags: Tuple[str, ...] = ()
    line_number: int = 0

    def field(self, name: str) -> str:
        return dict(self.fields)[name]

    @property
    def field_values(self) -> List[str]:
        return [value for _, value in self.fields]


@dataclass(frozen=True)
class DeckPackage:
    """The output artifact: notes plus media, keyed by injected identifiers."""
    deck_id: int
    word_model_id: int
    sentence_model_id: int
    deck_name: str
    notes: Tuple[PackageNote, ...]
    media: Dict[str, bytes] = field(default_factory=dict)
    # line number of a repeated line -> line number of the note kept for it
    duplicates: Dict[int, int] = field(default_factory=dict)


class RunState(Enum):
    """Terminal states of one pipeline run."""
    COMPLETED_WITHOUT_ISSUES = "completed_without_issues"
    COMPLETED_WITH_WARNINGS = "completed_with_warnings"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True)
class RunStatus:
    state: RunState
    warning_count: int = 0
    reason: Optional[str] = None

    @classmethod
    def completed(cls, warning_count: int) -> "RunStatus":
        if warning_count:
            return cls(RunState.COMPLETED_WITH_WARNINGS, warning_count=warning_count)
        return cls(RunState.COMPLETED_WITHOUT_ISSUES)

    @classmethod
    def failed(cls, reason: str) -> "RunStatus":
        return cls(RunState.FAILED_FATAL, reason=reason)

    @property
    def is_fatal(self) -> bool:
        return self.state is RunState.FAILED_FATAL

    def __str__(self) -> str:
        if self.state is RunState.COMPLETED_WITH_WARNINGS:
            return f"CompletedWithWarnings({self.warning_count})"
        if self.state is RunState.FAILED_FATAL:
            return f"FailedFatal({self.reason})"
        return "CompletedWithoutIssues"


@dataclass(frozen=True)
class LineOutcome:
    """Per-line result: ``Ok`` when there are no issues, else ``Warning``."""
    line_number: int
    text: str
    issues: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class RunResult:
    """Everything a caller needs after a run."""
    status: RunStatus
    outcomes: Tuple[LineOutcome, ...] = ()
    package: Optional[DeckPackage] = None
    output_path: Optional[str] = None
