"""
Anki package (.apkg) assembly and generation using the genanki library.

:class:`PackageAssembler` turns enriched entries into a :class:`DeckPackage`
keyed by the configured deck and model identifiers. :class:`PackageWriter`
serializes that package; :class:`PackageValidator` inspects the result.
"""

import json
import logging
import os
import sqlite3
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Sequence

import genanki

from ..config import Config, GeneratorConfig
from ..errors import AnkiGenerationError, ErrorHandler
from ..models import DeckPackage, EnrichedEntry, EntryKind, PackageNote
from .naming import media_filename, note_guid, package_path
from .templates import CardFormatter, MandarinCardTemplate


logger = logging.getLogger(__name__)


class PackageAssembler:
    """
    Builds the deck contents from enriched entries.

    Runs once, after every entry has been enriched, so it is the only writer
    of the note list and media map.
    """

    def __init__(self, deck_id: int, word_model_id: int, sentence_model_id: int,
                 deck_name: str = Config.ANKI_DECK_NAME):
        self.deck_id = deck_id
        self.word_model_id = word_model_id
        self.sentence_model_id = sentence_model_id
        self.deck_name = deck_name
        self.formatter = CardFormatter()

    @classmethod
    def from_config(cls, config: GeneratorConfig) -> "PackageAssembler":
        return cls(
            deck_id=config.model.deck_id,
            word_model_id=config.model.word_model_id,
            sentence_model_id=config.model.sentence_model_id,
            deck_name=config.deck_name,
        )

    def assemble(self, entries: Sequence[EnrichedEntry]) -> DeckPackage:
        """
        Render every entry into a note and collect its audio.

        Args:
            entries: Enriched entries in input order

        Returns:
            Package with notes in the same order
        """
        notes: List[PackageNote] = []
        media: Dict[str, bytes] = {}
        kept_lines: Dict[str, int] = {}
        duplicates: Dict[int, int] = {}

        for enriched in entries:
            line_number = enriched.entry.line_number
            guid = note_guid(enriched.kind, enriched.entry.raw_text)
            if guid in kept_lines:
                duplicates[line_number] = kept_lines[guid]
                logger.debug(f"Line {line_number}: same note as line {kept_lines[guid]}")
                continue
            kept_lines[guid] = line_number

            audio_filename = None
            if enriched.audio_ref is not None:
                audio_filename = media_filename(enriched.audio_ref.text, enriched.audio_ref.extension)
                media.setdefault(audio_filename, enriched.audio_ref.data)

            is_word = enriched.kind is EntryKind.SINGLE_WORD
            notes.append(PackageNote(
                kind=enriched.kind,
                model_id=self.word_model_id if is_word else self.sentence_model_id,
                fields=self.formatter.format_card_fields(enriched, audio_filename),
                guid=guid,
                audio_filename=audio_filename,
                tags=('mandarin', 'word' if is_word else 'sentence'),
                line_number=enriched.entry.line_number,
            ))

        logger.info(f"Assembled {len(notes)} notes with {len(media)} audio clips")
        return DeckPackage(
            deck_id=self.deck_id,
            word_model_id=self.word_model_id,
            sentence_model_id=self.sentence_model_id,
            deck_name=self.deck_name,
            notes=tuple(notes),
            media=media,
            duplicates=duplicates,
        )


class PackageWriter:
    """Serializes a :class:`DeckPackage` into an .apkg archive."""

    def build_deck(self, package: DeckPackage) -> genanki.Deck:
        """Build the genanki deck with both models registered."""
        word_model = MandarinCardTemplate.create_word_model(package.word_model_id)
        sentence_model = MandarinCardTemplate.create_sentence_model(package.sentence_model_id)
        models = {
            package.word_model_id: word_model,
            package.sentence_model_id: sentence_model,
        }

        deck = genanki.Deck(package.deck_id, package.deck_name,
                            description=Config.ANKI_DECK_DESCRIPTION)
        deck.add_model(word_model)
        deck.add_model(sentence_model)

        for note in package.notes:
            deck.add_note(genanki.Note(
                model=models[note.model_id],
                fields=note.field_values,
                guid=note.guid,
                tags=list(note.tags),
            ))
        return deck

    def write(self, package: DeckPackage, output_path) -> Path:
        """
        Write the package, overwriting any existing file.

        Args:
            package: Assembled package
            output_path: Destination, ``.apkg`` appended when missing

        Returns:
            Path of the written file

        Raises:
            AnkiGenerationError: If the archive cannot be written
        """
        output_path = package_path(output_path)
        deck = self.build_deck(package)

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(prefix="mandarin_media_") as media_dir:
                media_files = []
                for filename, data in package.media.items():
                    media_path = Path(media_dir) / filename
                    media_path.write_bytes(data)
                    media_files.append(str(media_path))

                genanki.Package(deck, media_files=media_files).write_to_file(str(output_path))
        except (OSError, sqlite3.Error, zipfile.BadZipFile) as e:
            raise AnkiGenerationError(
                ErrorHandler().handle_anki_generation_error(e, {'path': str(output_path)})
            )

        logger.info(f"Wrote {len(package.notes)} notes and {len(package.media)} media files to {output_path}")
        return output_path


class PackageValidator:
    """
    Validates Anki packages for correctness and completeness.
    """

    @staticmethod
    def validate_package(package_path: str) -> bool:
        """
        Validate that an Anki package is a readable archive with a collection.

        Args:
            package_path: Path to the .apkg file

        Returns:
            True if package is valid, False otherwise
        """
        package_path = str(package_path)
        if not os.path.exists(package_path):
            logger.error(f"Package file not found: {package_path}")
            return False
        if not package_path.lower().endswith('.apkg'):
            logger.error(f"Invalid file extension: {package_path}")
            return False
        if not zipfile.is_zipfile(package_path):
            logger.error(f"Package is not a zip archive: {package_path}")
            return False

        with zipfile.ZipFile(package_path) as archive:
            names = set(archive.namelist())
        missing = {'collection.anki2', 'media'} - names
        if missing:
            logger.error(f"Package is missing {', '.join(sorted(missing))}: {package_path}")
            return False

        logger.info(f"Package validation passed: {package_path} ({os.path.getsize(package_path)} bytes)")
        return True

    @staticmethod
    def get_package_info(package_path: str) -> Dict[str, Any]:
        """
        Read identifiers and counts back out of an Anki package.

        Args:
            package_path: Path to the .apkg file

        Returns:
            Dictionary with deck ids, model ids, note GUIDs and media names
        """
        info = {
            'path': str(package_path),
            'exists': os.path.exists(package_path),
            'valid': False,
        }
        if not info['exists'] or not PackageValidator.validate_package(package_path):
            return info

        with zipfile.ZipFile(package_path) as archive, tempfile.TemporaryDirectory() as tmp:
            media_map = json.loads(archive.read('media').decode('utf-8'))
            collection_path = archive.extract('collection.anki2', tmp)
            connection = sqlite3.connect(collection_path)
            try:
                models = json.loads(connection.execute("SELECT models FROM col").fetchone()[0])
                deck_ids = {row[0] for row in connection.execute("SELECT DISTINCT did FROM cards")}
                notes = connection.execute("SELECT guid, mid, flds FROM notes ORDER BY id").fetchall()
                card_count = connection.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
            finally:
                connection.close()

        info.update({
            'valid': True,
            'size_bytes': os.path.getsize(package_path),
            'deck_ids': deck_ids,
            'model_ids': {int(model_id) for model_id in models},
            'note_guids': [guid for guid, _, _ in notes],
            'note_model_ids': [mid for _, mid, _ in notes],
            'note_fields': [fields.split('\x1f') for _, _, fields in notes],
            'note_count': len(notes),
            'card_count': card_count,
            'media_files': sorted(media_map.values()),
        })
        return info
