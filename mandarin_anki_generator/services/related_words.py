"""
Related vocabulary from the OpenAI chat completions API.

The model is asked for a small two-column CSV, but replies are free text:
numbered lists, markdown bullets, code fences, a header row or stray prose
all turn up. :func:`parse_related_words` recovers whatever pairs it can and
reports whether the reply was clean.
"""

import logging
import re
from typing import List, Optional, Tuple

from openai import APIConnectionError, APIStatusError, OpenAI, OpenAIError

from ..config import Config, GeneratorConfig
from ..dictionary.readings import HAN_RE, contains_han
from ..errors import ServiceUnavailableError
from ..models import RelatedWord, RelatedWordsResult
from .base import RelatedWordsService
from .http import call_with_retry, is_retryable_status


SYSTEM_PROMPT = "You are a Taiwanese Mandarin Study Assistant generating study material"
USER_PROMPT = (
    "Generate {count} words closely related to {word} which are used commonly in "
    "Taiwanese Mandarin. You should provide the words in {script} and the English "
    "Translation in CSV format with two columns."
)

_BULLET_RE = re.compile(r"^(?:[-*•·]+|\d+\s*[.)、:]|\(\d+\))\s*")
_CSV_SEPARATOR_RE = re.compile(r"\s*[,，\t]\s*")
_LOOSE_SEPARATOR_RE = re.compile(r"\s*(?:[:：=]|\s[-–—]\s)\s*")
_LEADING_HAN_RE = re.compile(f"^(?:{HAN_RE.pattern})+")
_QUOTES = "\"'`“”‘’「」『』"


def _split_row(line: str) -> Tuple[str, str, bool]:
    """Split a row into ``(word, translation, clean)``."""
    parts = _CSV_SEPARATOR_RE.split(line, maxsplit=1)
    if len(parts) == 2:
        return parts[0], parts[1], True
    parts = _LOOSE_SEPARATOR_RE.split(line, maxsplit=1)
    if len(parts) == 2:
        return parts[0], parts[1], False
    return line, "", False


def parse_related_words(text: str, source_word: str = "") -> Tuple[Tuple[RelatedWord, ...], bool]:
    """
    Parse a free-text related-words reply.

    One pair per line, split on the first ASCII comma, full-width comma or
    tab. Bullets, numbering, code fences and quotes are stripped; a leading
    header row, rows without Han characters, duplicates and the source word
    itself are dropped. Never raises.

    Args:
        text: Raw reply text
        source_word: The word the suggestions were generated for

    Returns:
        ``(pairs, well_formed)``; ``well_formed`` is False when any row needed
        guessing or nothing usable was found
    """
    words: List[RelatedWord] = []
    seen = {source_word}
    well_formed = True
    content_rows = 0

    for raw_line in (text or "").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("```"):
            continue
        content_rows += 1
        line = _BULLET_RE.sub("", line).strip()

        if not contains_han(line):
            # A header such as "Word,Translation" is expected on the first row only
            is_header = content_rows == 1 and _CSV_SEPARATOR_RE.search(line)
            if not is_header:
                well_formed = False
            continue

        word_column, translation, clean = _split_row(line)
        word_column = word_column.strip().strip(_QUOTES).strip()
        match = _LEADING_HAN_RE.match(word_column)
        if not match:
            well_formed = False
            continue
        word = match.group(0)
        if word != word_column or not clean:
            well_formed = False

        translation = translation.strip().strip(_QUOTES).strip()
        if word in seen:
            continue
        seen.add(word)
        words.append(RelatedWord(word=word, translation=translation))

    if not words:
        well_formed = False
    return tuple(words), well_formed


class OpenAIRelatedWordsService(RelatedWordsService):
    """Chat-completion client for related vocabulary."""

    def __init__(self, config: GeneratorConfig, client: Optional[OpenAI] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config
        # Retries are handled by tenacity so every service shares one policy
        self.client = client or OpenAI(
            api_key=config.openai.api_key,
            organization=config.openai.organisation,
            timeout=config.network.timeout_seconds,
            max_retries=0,
        )

    def build_prompt(self, word: str) -> str:
        return USER_PROMPT.format(count=Config.RELATED_WORD_COUNT, word=word,
                                  script=self.config.mandarin.script)

    def _complete(self, word: str) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.openai.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(word)},
                ],
            )
        except APIConnectionError as e:
            raise ServiceUnavailableError('related-words', f"Connection failed: {e}", retryable=True)
        except APIStatusError as e:
            raise ServiceUnavailableError(
                'related-words', f"HTTP {e.status_code}: {e.message}",
                retryable=is_retryable_status(e.status_code), status_code=e.status_code,
            )
        except OpenAIError as e:
            raise ServiceUnavailableError('related-words', str(e), retryable=False)

        choices = getattr(response, "choices", None) or []
        message = choices[0].message if choices else None
        text = getattr(message, "content", None)
        if not isinstance(text, str):
            # Parsed as an empty reply, so the entry gets a malformed-response warning
            self.logger.warning(f"[related-words] reply for '{word}' has no message content")
            text = ""
        self.logger.debug(f"[related-words] reply for '{word}': {text}")
        return text

    def related_words(self, word: str) -> RelatedWordsResult:
        if not word or not word.strip():
            return RelatedWordsResult(word=word, words=(), success=False,
                                      well_formed=False, error="Empty or whitespace-only input")
        try:
            text = call_with_retry(self.config.network, self._complete, word)
        except ServiceUnavailableError as e:
            self.logger.debug(f"Related words failed for '{word}': {e.processing_error.details}")
            return RelatedWordsResult(word=word, words=(), success=False, well_formed=False,
                                      error=e.processing_error.details)

        words, well_formed = parse_related_words(text, word)
        return RelatedWordsResult(word=word, words=words, success=True,
                                  well_formed=well_formed, raw_text=text)
