"""
Anki note models and field formatting for Mandarin cards.

Both models carry two templates: "Listening" shows only the audio on the
front, "Reading" shows only the characters. The two templates share one back.
"""

import html
import logging
from typing import Optional, Sequence, Tuple

import genanki

from ..config import Config
from ..dictionary.readings import contains_han
from ..models import EnrichedEntry, EntryKind, RelatedWord, Segment


logger = logging.getLogger(__name__)


WORD_FIELDS = ('Hanzi', 'Definition', 'Audio', 'Reading', 'Similar Words')
SENTENCE_FIELDS = ('Hanzi', 'Meaning', 'Audio', 'Reading')


class MandarinCardTemplate:
    """Note models for single words and sentences."""

    CSS = """
.card {
    font-family: arial;
    font-size: 20px;
    text-align: center;
    color: black;
    background-color: white;
}

.starred {
    color: red;
}
"""

    # No listening card is generated for a note without audio
    LISTENING_FRONT = "{{#Audio}}Listen.{{Audio}}{{/Audio}}"
    READING_FRONT = "{{Hanzi}}"

    WORD_BACK = (
        "{{Hanzi}}<br>{{Reading}}<br>{{Definition}}<br>{{Audio}}"
        "<hr id=answer>{{Similar Words}}"
    )
    SENTENCE_BACK = "{{Hanzi}}<br>{{Reading}}<br>{{Meaning}}<br>{{Audio}}"

    @classmethod
    def _templates(cls, back: str):
        return [
            {'name': 'Listening', 'qfmt': cls.LISTENING_FRONT, 'afmt': back},
            {'name': 'Reading', 'qfmt': cls.READING_FRONT, 'afmt': back},
        ]

    @classmethod
    def create_word_model(cls, model_id: int) -> genanki.Model:
        """
        Create the model for single-word notes.

        Args:
            model_id: Configured identifier, identical on every run

        Returns:
            genanki.Model: Configured Anki model
        """
        logger.debug(f"Creating word model with ID {model_id}")
        return genanki.Model(
            model_id=model_id,
            name=Config.WORD_MODEL_NAME,
            fields=[{'name': name} for name in WORD_FIELDS],
            templates=cls._templates(cls.WORD_BACK),
            css=cls.CSS,
        )

    @classmethod
    def create_sentence_model(cls, model_id: int) -> genanki.Model:
        logger.debug(f"Creating sentence model with ID {model_id}")
        return genanki.Model(
            model_id=model_id,
            name=Config.SENTENCE_MODEL_NAME,
            fields=[{'name': name} for name in SENTENCE_FIELDS],
            templates=cls._templates(cls.SENTENCE_BACK),
            css=cls.CSS,
        )


class CardFormatter:
    """
    Formats enriched entries into Anki note fields.
    """

    @staticmethod
    def highlight(markup: str) -> str:
        return f"<span class=starred>{markup}</span>"

    @staticmethod
    def format_hanzi(segments: Sequence[Segment]) -> str:
        """Characters with the highlighted run wrapped in the star style."""
        parts = []
        run = []
        for segment in segments:
            if segment.is_highlighted:
                run.append(html.escape(segment.hanzi))
                continue
            if run:
                parts.append(CardFormatter.highlight("".join(run)))
                run = []
            parts.append(html.escape(segment.hanzi))
        if run:
            parts.append(CardFormatter.highlight("".join(run)))
        return "".join(parts)

    @staticmethod
    def format_reading(segments: Sequence[Segment]) -> str:
        """Space-separated readings of the Han segments, highlighted like the characters."""
        readings = []
        for segment in segments:
            if not segment.reading or not contains_han(segment.hanzi):
                continue
            reading = html.escape(segment.reading)
            readings.append(CardFormatter.highlight(reading) if segment.is_highlighted else reading)
        return " ".join(readings)

    @staticmethod
    def format_related_words(words: Optional[Sequence[RelatedWord]]) -> str:
        """One ``word, reading, translation`` line per related word."""
        lines = []
        for word in words or ():
            columns = [word.word, word.reading, word.translation]
            lines.append(", ".join(html.escape(column) for column in columns if column))
        return "<br>".join(lines)

    @staticmethod
    def sound_tag(audio_filename: Optional[str]) -> str:
        return f"[sound:{audio_filename}]" if audio_filename else ""

    @classmethod
    def format_card_fields(cls, enriched: EnrichedEntry,
                           audio_filename: Optional[str]) -> Tuple[Tuple[str, str], ...]:
        """
        Format one enriched entry into ordered ``(field, value)`` pairs.

        Args:
            enriched: Entry to render
            audio_filename: Media filename of its audio, None without audio

        Returns:
            Fields in model order
        """
        hanzi = cls.format_hanzi(enriched.segments)
        reading = cls.format_reading(enriched.segments)
        translation = html.escape(enriched.translation.strip())
        audio = cls.sound_tag(audio_filename)

        if enriched.kind is EntryKind.SINGLE_WORD:
            values = (hanzi, translation, audio, reading,
                      cls.format_related_words(enriched.related_words))
            fields = tuple(zip(WORD_FIELDS, values))
        else:
            fields = tuple(zip(SENTENCE_FIELDS, (hanzi, translation, audio, reading)))

        logger.debug(f"Formatted {enriched.kind.value} note: {enriched.entry.text} -> {enriched.translation}")
        return fields
