"""
Deterministic naming for notes, media and output files.

Names depend only on content, so re-running on the same input produces the
same note GUIDs and media filenames.
"""

import hashlib
import logging
import re
from pathlib import Path

import genanki

from ..models import EntryKind


logger = logging.getLogger(__name__)

MEDIA_PREFIX = "mandarin"
MEDIA_HASH_LENGTH = 20


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def media_filename(text: str, extension: str = "mp3") -> str:
    """
    Media filename for the audio of ``text``.

    Examples:
        >>> media_filename("學習").startswith("mandarin_")
        True
    """
    extension = re.sub(r"[^A-Za-z0-9]", "", extension) or "mp3"
    return f"{MEDIA_PREFIX}_{content_hash(text)[:MEDIA_HASH_LENGTH]}.{extension}"


def note_guid(kind: EntryKind, raw_text: str) -> str:
    """
    GUID stable across runs so a re-imported line updates its note.

    Built from the text as written, highlight markers included, so lines
    that differ only in their highlighted word get separate notes. The user
    translation is left out so editing it updates the existing note.
    """
    return genanki.guid_for(kind.value, raw_text)


def package_path(output_path) -> Path:
    """Normalize the output path to an ``.apkg`` file."""
    path = Path(output_path)
    if path.suffix.lower() != ".apkg":
        path = path.with_name(path.name + ".apkg")
        logger.debug(f"Output path adjusted to {path}")
    return path
