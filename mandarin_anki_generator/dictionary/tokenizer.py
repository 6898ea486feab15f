"""
Greedy longest-match tokenizer.

Segmentation is forward maximum matching: at each position the longest
dictionary word starting there wins, and among entries for that word the
first in dictionary order supplies the reading. Han characters no word
covers become single-character segments read by ``pypinyin``; every other
character (Latin, digits, spaces, punctuation) is its own segment with an
empty reading. The highlighted span is segmented on its own so no segment
ever straddles a highlight boundary.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..config import ReadingStyle
from ..models import Entry, EntryKind, HighlightSpan, Segment, TokenizedEntry
from .readings import (
    fallback_syllables,
    han_count,
    has_sentence_terminator,
    is_han,
    render_reading,
)
from .repository import MandarinDictionary


logger = logging.getLogger(__name__)


def classify(text: str, segments: Sequence[Segment]) -> EntryKind:
    """A single segment with no sentence punctuation is a word; anything else is a sentence."""
    if len(segments) == 1 and not has_sentence_terminator(text):
        return EntryKind.SINGLE_WORD
    return EntryKind.SENTENCE


class Tokenizer:
    """Splits Mandarin text into dictionary words with readings."""

    def __init__(self, dictionary: MandarinDictionary,
                 reading_style: ReadingStyle = ReadingStyle.ZHUYIN):
        self.dictionary = dictionary
        self.reading_style = reading_style

    def tokenize(self, text: str, highlight: Optional[HighlightSpan] = None) -> Tuple[Segment, ...]:
        """
        Segment ``text``; concatenating the segments' hanzi gives back ``text``.

        Args:
            text: Marker-free Mandarin text
            highlight: Span whose segments are flagged as highlighted

        Returns:
            Ordered, contiguous segments
        """
        if highlight is None:
            regions = [(text, False)]
        else:
            regions = [
                (text[:highlight.start], False),
                (text[highlight.start:highlight.end], True),
                (text[highlight.end:], False),
            ]

        segments: List[Segment] = []
        for region, highlighted in regions:
            segments.extend(self._segment_region(region, highlighted))
        return tuple(segments)

    def tokenize_entry(self, entry: Entry) -> TokenizedEntry:
        """Segment an entry and fix its kind for the rest of the run."""
        segments = self.tokenize(entry.text, entry.highlighted_span)
        kind = classify(entry.text, segments)
        logger.debug(
            f"Line {entry.line_number}: {kind.value} "
            f"[{' | '.join(segment.hanzi for segment in segments)}]"
        )
        return TokenizedEntry(entry=entry, segments=segments, kind=kind)

    def _segment_region(self, region: str, highlighted: bool) -> List[Segment]:
        segments = []
        position = 0
        while position < len(region):
            char = region[position]
            if not is_han(char):
                segments.append(Segment(hanzi=char, is_highlighted=highlighted))
                position += 1
                continue

            run_end = position
            while run_end < len(region) and is_han(region[run_end]):
                run_end += 1

            segment = self._longest_match(region, position, run_end, highlighted)
            segments.append(segment)
            position += len(segment.hanzi)
        return segments

    def _longest_match(self, region: str, start: int, run_end: int, highlighted: bool) -> Segment:
        longest = min(self.dictionary.max_word_length, run_end - start)
        for length in range(longest, 0, -1):
            candidate = region[start:start + length]
            syllables = self.dictionary.reading_for(candidate)
            if syllables:
                return Segment(
                    hanzi=candidate,
                    reading=render_reading(syllables, self.reading_style),
                    is_highlighted=highlighted,
                    in_dictionary=True,
                )

        char = region[start]
        return Segment(
            hanzi=char,
            reading=render_reading(fallback_syllables(char), self.reading_style),
            is_highlighted=highlighted,
        )


def apply_service_syllables(segments: Sequence[Segment],
                            syllables: Sequence[str]) -> Optional[Tuple[Segment, ...]]:
    """
    Spread one rendered syllable per Han character across the segments.

    Returns:
        New segments carrying the service readings, or None when the syllable
        count does not match the number of Han characters
    """
    if sum(han_count(segment.hanzi) for segment in segments) != len(syllables):
        return None

    aligned = []
    remaining = list(syllables)
    for segment in segments:
        count = han_count(segment.hanzi)
        if count == 0:
            aligned.append(segment)
            continue
        taken, remaining = remaining[:count], remaining[count:]
        aligned.append(Segment(
            hanzi=segment.hanzi,
            reading=" ".join(taken),
            is_highlighted=segment.is_highlighted,
            in_dictionary=segment.in_dictionary,
        ))
    return tuple(aligned)
