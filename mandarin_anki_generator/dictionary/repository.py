"""
Dictionary repositories backing the tokenizer.

Two sources are supported: a CC-CEDICT file (readings and English
definitions) and the word lists bundled with ``jieba`` and ``pypinyin``
(readings only).
"""

import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from itertools import chain
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import jieba
from pypinyin.constants import PHRASES_DICT, PINYIN_DICT

from ..errors import ErrorHandler, TokenizationError
from .cedict import DictionaryEntry, parse_cedict_lines
from .readings import fallback_syllables, is_han, marked_to_numbered


logger = logging.getLogger(__name__)


class MandarinDictionary(ABC):
    """Read-only word lookup used for segmentation and readings."""

    @property
    @abstractmethod
    def max_word_length(self) -> int:
        """Length in characters of the longest known word."""
        pass

    @abstractmethod
    def lookup(self, word: str) -> Tuple[DictionaryEntry, ...]:
        """
        Return every entry for ``word`` in dictionary order.

        Args:
            word: Exact surface form

        Returns:
            Entries, empty when the word is unknown
        """
        pass

    def contains(self, word: str) -> bool:
        return bool(self.lookup(word))

    def reading_for(self, word: str) -> Optional[Tuple[str, ...]]:
        """Numbered syllables of the first entry for ``word``."""
        entries = self.lookup(word)
        return entries[0].pinyin_tokens if entries else None

    def definition_for(self, word: str) -> Optional[str]:
        """Definition of the first entry for ``word`` that has one."""
        for entry in self.lookup(word):
            if entry.definition:
                return entry.definition
        return None


class CedictDictionary(MandarinDictionary):
    """Dictionary loaded from a CC-CEDICT ``.u8`` file."""

    def __init__(self, entries: List[DictionaryEntry]):
        index: Dict[str, List[DictionaryEntry]] = {}
        for entry in entries:
            index.setdefault(entry.word, []).append(entry)
        self._index = {word: tuple(items) for word, items in index.items()}
        self._max_word_length = max((len(word) for word in self._index), default=1)

    @classmethod
    def from_file(cls, path: Path) -> "CedictDictionary":
        """
        Parse a CC-CEDICT file.

        Raises:
            TokenizationError: If the file cannot be read or holds no entries
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as handle:
                entries = parse_cedict_lines(handle)
        except (OSError, UnicodeDecodeError) as e:
            raise TokenizationError(
                ErrorHandler().handle_tokenization_error(e, {'path': str(path)})
            )
        if not entries:
            raise TokenizationError(ErrorHandler().handle_tokenization_error(
                ValueError(f"No CC-CEDICT entries found in {path}"), {'path': str(path)}
            ))

        logger.info(f"Loaded {len(entries)} dictionary entries from {path}")
        return cls(entries)

    @property
    def max_word_length(self) -> int:
        return self._max_word_length

    def lookup(self, word: str) -> Tuple[DictionaryEntry, ...]:
        return self._index.get(word, ())


class BundledDictionary(MandarinDictionary):
    """
    Dictionary built from word lists that ship with the installed libraries.

    Words come from ``jieba``'s frequency dictionary together with
    ``pypinyin``'s phrase table; readings come from ``pypinyin``. There are
    no English definitions.
    """

    def __init__(self, words: Iterable[str] = None, phrases: Dict[str, list] = None,
                 characters: Dict[int, str] = None):
        self._phrases = PHRASES_DICT if phrases is None else phrases
        self._characters = PINYIN_DICT if characters is None else characters
        if not self._characters:
            raise TokenizationError(ErrorHandler().handle_tokenization_error(
                ValueError("pypinyin character table is empty")
            ))
        if words is None:
            words = _jieba_words()
        # Single characters are read from the character table
        self._words = frozenset(
            word for word in words
            if len(word) > 1 and all(is_han(char) for char in word)
        )
        self._max_word_length = max(
            (len(word) for word in chain(self._words, self._phrases)), default=1
        )
        self._lookup = lru_cache(maxsize=8192)(self._build_entries)
        logger.info(f"Loaded {len(self._words)} words from the bundled word lists")

    @property
    def max_word_length(self) -> int:
        return self._max_word_length

    def lookup(self, word: str) -> Tuple[DictionaryEntry, ...]:
        return self._lookup(word)

    def _build_entries(self, word: str) -> Tuple[DictionaryEntry, ...]:
        if len(word) == 1:
            readings = self._characters.get(ord(word))
            if not readings:
                return ()
            # e.g. "xué,xiáo": one entry per reading, most common first
            return tuple(
                DictionaryEntry(word=word, pinyin_tokens=(marked_to_numbered(reading),))
                for reading in readings.split(",")
            )

        syllables = self._phrases.get(word)
        if syllables and len(syllables) == len(word):
            tokens = tuple(marked_to_numbered(options[0]) for options in syllables)
            return (DictionaryEntry(word=word, pinyin_tokens=tokens),)

        if word not in self._words:
            return ()
        tokens = tuple(fallback_syllables(word))
        if len(tokens) != len(word):
            return ()
        return (DictionaryEntry(word=word, pinyin_tokens=tokens),)


def _jieba_words() -> List[str]:
    """Words with a non-zero frequency in jieba's default dictionary."""
    jieba.setLogLevel(logging.WARNING)
    try:
        jieba.initialize()
    except OSError as e:
        raise TokenizationError(ErrorHandler().handle_tokenization_error(e))
    # FREQ also holds every word prefix with a frequency of 0
    return [word for word, frequency in jieba.dt.FREQ.items() if frequency]


def load_dictionary(cedict_path: Optional[Path] = None) -> MandarinDictionary:
    """
    Build the dictionary for a run.

    Args:
        cedict_path: CC-CEDICT file; the bundled word lists are used when None

    Raises:
        TokenizationError: If the dictionary cannot be loaded at all
    """
    if cedict_path:
        return CedictDictionary.from_file(cedict_path)
    logger.info("No CC-CEDICT file configured; using the bundled word lists")
    return BundledDictionary()
