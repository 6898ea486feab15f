"""
Reading conversions between numbered pinyin, tone-marked pinyin and zhuyin.

Dictionary data is kept as numbered pinyin (``xue2``). Cards show either
tone-marked pinyin (``xué``) or zhuyin (``ㄒㄩㄝˊ``) depending on the
configured reading style.
"""

import re
from typing import Iterable, List

from pypinyin import Style, lazy_pinyin
from pypinyin.contrib.tone_convert import to_tone, to_tone3
from pypinyin.style import convert as convert_style

from ..config import ReadingStyle


HAN_RE = re.compile(
    "[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff\U00020000-\U0002ebef]"
)
# Latin syllables as returned by the transliteration service
MARKED_SYLLABLE_RE = re.compile(
    r"[a-zA-ZüÜāáǎàēéěèīíǐìōóǒòūúǔùǖǘǚǜńňǹḿ]+"
)
SENTENCE_TERMINATORS = "。！？!?.；;…"


def is_han(char: str) -> bool:
    return bool(HAN_RE.fullmatch(char))


def contains_han(text: str) -> bool:
    return bool(HAN_RE.search(text or ""))


def han_count(text: str) -> int:
    return len(HAN_RE.findall(text))


def has_sentence_terminator(text: str) -> bool:
    return any(char in SENTENCE_TERMINATORS for char in text)


def numbered_to_marked(syllable: str) -> str:
    """``xue2`` -> ``xué``; neutral tone (``5``) loses its number."""
    if syllable.endswith("5"):
        return syllable[:-1]
    return to_tone(syllable)


def marked_to_numbered(syllable: str) -> str:
    return to_tone3(syllable.lower(), neutral_tone_with_five=True)


def marked_to_zhuyin(syllable: str) -> str:
    """Tone-marked pinyin to zhuyin; unknown syllables are returned unchanged."""
    converted = convert_style(syllable.lower(), Style.BOPOMOFO, True, default=None)
    return converted or syllable


def render_syllable(numbered: str, style: ReadingStyle) -> str:
    marked = numbered_to_marked(numbered)
    if style is ReadingStyle.ZHUYIN:
        return marked_to_zhuyin(marked)
    return marked


def render_reading(syllables: Iterable[str], style: ReadingStyle) -> str:
    """Render a sequence of numbered syllables in the given style."""
    return " ".join(render_syllable(syllable, style) for syllable in syllables)


def fallback_syllables(hanzi: str) -> List[str]:
    """Numbered syllables for characters no dictionary entry covers."""
    return lazy_pinyin(hanzi, style=Style.TONE3, neutral_tone_with_five=True,
                       errors="ignore")


def split_service_reading(reading: str, style: ReadingStyle, source_text: str = "") -> List[str]:
    """
    Split a tone-marked transliteration into rendered syllables.

    Punctuation and digits the service passes through are dropped, and so are
    Latin words copied over from ``source_text`` (``iPhone`` in ``我用iPhone``),
    so the result lines up with the Han characters of the source text.
    """
    syllables = [match.group(0).lower() for match in MARKED_SYLLABLE_RE.finditer(reading or "")]
    for word in MARKED_SYLLABLE_RE.finditer(source_text or ""):
        copied = word.group(0).lower()
        if copied in syllables:
            syllables.remove(copied)
    if style is ReadingStyle.ZHUYIN:
        return [marked_to_zhuyin(syllable) for syllable in syllables]
    return syllables
