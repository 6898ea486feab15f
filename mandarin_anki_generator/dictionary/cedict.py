"""
CC-CEDICT line parsing.

Each dictionary line ``TRAD SIMP [pin1 yin1] /gloss/gloss/`` yields one
entry per distinct written form, so lookups work for either script.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple


CEDICT_ENTRY_RE = re.compile(r"^(\S+)\s+(\S+)\s+\[([^]]+)]\s*/(.*)/\s*$")
NUMBERED_SYLLABLE_RE = re.compile(r"[a-zü]+[1-5]")


@dataclass(frozen=True)
class DictionaryEntry:
    """One word form with its numbered pinyin and joined glosses."""
    word: str
    pinyin_tokens: Tuple[str, ...]
    definition: str = ""

    @property
    def pinyin_numbered(self) -> str:
        return " ".join(self.pinyin_tokens)


def normalize_cedict_syllable(token: str) -> Optional[str]:
    """
    Normalize one CC-CEDICT pinyin token to lowercase numbered form.

    CC-CEDICT writes ``ü`` as ``u:`` (and some patch files use ``v``).

    Returns:
        Token such as ``lü4``, or None when the token is not a syllable
    """
    token = token.strip()
    if not token:
        return None
    token = token.replace("u:", "ü").replace("U:", "ü")
    token = token.replace("v", "ü").replace("V", "ü").lower()
    if not NUMBERED_SYLLABLE_RE.fullmatch(token):
        return None
    return token


def _parse_pinyin_tokens(payload: str) -> Optional[Tuple[str, ...]]:
    tokens = []
    for token in payload.split():
        normalized = normalize_cedict_syllable(token)
        if normalized is None:
            return None
        tokens.append(normalized)
    return tuple(tokens) or None


def parse_cedict_line(line: str) -> List[DictionaryEntry]:
    """Parse one line; comments and malformed lines yield no entries."""
    if not line or line.startswith("#"):
        return []
    match = CEDICT_ENTRY_RE.match(line.strip())
    if not match:
        return []

    traditional, simplified, pinyin_field, glosses = match.groups()
    tokens = _parse_pinyin_tokens(pinyin_field)
    if tokens is None:
        return []

    definition = "; ".join(part.strip() for part in glosses.split("/") if part.strip())
    forms = [traditional] if traditional == simplified else [traditional, simplified]
    return [
        DictionaryEntry(word=form, pinyin_tokens=tokens, definition=definition)
        for form in forms
        if len(form) == len(tokens)
    ]


def parse_cedict_lines(lines: Iterable[str]) -> List[DictionaryEntry]:
    """Parse CC-CEDICT lines into entries for both written forms, in file order."""
    entries: List[DictionaryEntry] = []
    for line in lines:
        entries.extend(parse_cedict_line(line))
    return entries
