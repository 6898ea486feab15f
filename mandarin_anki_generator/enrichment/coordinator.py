"""
Enrichment coordinator.

For one tokenized entry, issues the independent service calls (translation,
transliteration, speech and, for single words, related vocabulary) in
parallel, joins them, and folds the results into an :class:`EnrichedEntry`.
A failed call degrades the entry and is recorded as an issue; it never
raises.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from ..config import GeneratorConfig
from ..dictionary.readings import han_count, split_service_reading
from ..dictionary.repository import MandarinDictionary
from ..dictionary.tokenizer import Tokenizer, apply_service_syllables
from ..errors import ErrorCategory, ErrorHandler, ErrorSeverity, ProcessingError
from ..models import (
    AudioClip,
    EnrichedEntry,
    RelatedWord,
    Segment,
    TokenizedEntry,
)
from ..services.base import (
    RelatedWordsService,
    SpeechService,
    TranslationService,
    TransliterationService,
)


logger = logging.getLogger(__name__)


class EnrichmentCoordinator:
    """Drives the external services for one entry at a time."""

    # Translation, transliteration, speech and related words
    SERVICE_WORKERS = 4

    def __init__(self, config: GeneratorConfig, tokenizer: Tokenizer,
                 translator: TranslationService, transliterator: TransliterationService,
                 speech: SpeechService, related_words: RelatedWordsService):
        self.config = config
        self.tokenizer = tokenizer
        self.translator = translator
        self.transliterator = transliterator
        self.speech = speech
        self.related_words_service = related_words
        # Only used to build issue records; the run keeps its own collector
        self._issues = ErrorHandler()

    @property
    def dictionary(self) -> MandarinDictionary:
        return self.tokenizer.dictionary

    def _dictionary_definition(self, tokenized: TokenizedEntry) -> Optional[str]:
        if not (tokenized.is_word and self.config.prefer_dictionary_definitions):
            return None
        return self.dictionary.definition_for(tokenized.entry.text)

    def enrich(self, tokenized: TokenizedEntry) -> EnrichedEntry:
        """
        Enrich one entry.

        Args:
            tokenized: Entry with its segments and fixed kind

        Returns:
            Enriched entry; ``issues`` lists every degraded service
        """
        entry = tokenized.entry
        text = entry.text
        context = {'line': entry.line_number, 'text': text}
        issues: List[ProcessingError] = []

        translation = entry.user_translation
        if translation is None:
            translation = self._dictionary_definition(tokenized)
            if translation is not None:
                logger.debug(f"Line {entry.line_number}: using dictionary definition for '{text}'")

        with ThreadPoolExecutor(max_workers=self.SERVICE_WORKERS,
                                thread_name_prefix=f"line-{entry.line_number}") as pool:
            futures: Dict[str, Future] = {}
            if translation is None:
                futures['translation'] = pool.submit(self.translator.translate, text)
            futures['transliteration'] = pool.submit(self.transliterator.transliterate, text)
            futures['speech'] = pool.submit(self.speech.synthesize, text)
            if tokenized.is_word:
                futures['related-words'] = pool.submit(self.related_words_service.related_words, text)
            results = {name: future.result() for name, future in futures.items()}

        succeeded = sum(1 for result in results.values() if result.success)

        if 'translation' in results:
            translated = results['translation']
            if translated.success:
                translation = translated.english
            else:
                translation = ""
                issues.append(self._issues.handle_service_error('translation', translated.error, context))

        segments = self._apply_transliteration(tokenized, results['transliteration'], issues, context)

        spoken = results['speech']
        audio = None
        if spoken.success and spoken.audio:
            audio = AudioClip(text=text, data=spoken.audio)
        else:
            issues.append(self._issues.handle_service_error(
                'speech', spoken.error or "No audio returned", context))

        related = None
        if tokenized.is_word:
            related = self._collect_related_words(results['related-words'], issues, context)

        for issue in issues:
            logger.debug(f"Line {entry.line_number}: [{issue.error_code}] {issue.message}: {issue.details}")

        return EnrichedEntry(
            entry=entry,
            kind=tokenized.kind,
            translation=translation or "",
            segments=segments,
            audio_ref=audio,
            related_words=related,
            issues=tuple(issues),
            services_attempted=len(results),
            services_succeeded=succeeded,
        )

    def _apply_transliteration(self, tokenized: TokenizedEntry, result,
                               issues: List[ProcessingError], context) -> Tuple[Segment, ...]:
        segments = tokenized.segments
        if result.success:
            syllables = split_service_reading(result.reading, self.tokenizer.reading_style,
                                              tokenized.entry.text)
            aligned = apply_service_syllables(segments, syllables)
            if aligned is not None:
                return aligned
            issues.append(ProcessingError(
                category=ErrorCategory.TRANSLITERATION,
                severity=ErrorSeverity.WARNING,
                message="Transliteration did not line up with the text; dictionary readings kept",
                details=f"{result.reading!r} for {tokenized.entry.text!r}",
                suggested_actions=["Check the reading on the generated card"],
                error_code="TRANSLIT_001",
                context=context,
            ))
            return segments

        logger.info(f"Line {tokenized.entry.line_number}: transliteration failed ({result.error})")
        if any(han_count(segment.hanzi) and not segment.reading for segment in segments):
            issues.append(self._issues.handle_service_error('transliteration', result.error, context))
        return segments

    def _collect_related_words(self, result, issues: List[ProcessingError],
                               context) -> Tuple[RelatedWord, ...]:
        if not result.success:
            issues.append(self._issues.handle_service_error('related-words', result.error, context))
            return ()
        if not result.well_formed:
            issues.append(self._issues.handle_malformed_response(result.word, result.raw_text, context))
        return tuple(
            RelatedWord(word=item.word, translation=item.translation,
                        reading=self._reading_for(item.word))
            for item in result.words
        )

    def _reading_for(self, word: str) -> str:
        return " ".join(segment.reading for segment in self.tokenizer.tokenize(word) if segment.reading)
