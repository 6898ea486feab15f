"""
Base service interfaces for entry enrichment.

Implementations never raise for a failed call: they retry transient
failures and then report the outcome through a result object.
"""

from abc import ABC, abstractmethod

from ..models import RelatedWordsResult, SpeechResult, TranslationResult, TransliterationResult


class TranslationService(ABC):
    """Base interface for translation services."""

    @abstractmethod
    def translate(self, mandarin_text: str) -> TranslationResult:
        """
        Translate Mandarin text to English.

        Args:
            mandarin_text: Chinese characters

        Returns:
            TranslationResult with English text or error
        """
        pass


class TransliterationService(ABC):
    """Base interface for phonetic transliteration services."""

    @abstractmethod
    def transliterate(self, mandarin_text: str) -> TransliterationResult:
        """
        Convert Mandarin text to tone-marked pinyin.

        Args:
            mandarin_text: Chinese characters

        Returns:
            TransliterationResult with the reading or error
        """
        pass


class SpeechService(ABC):
    """Base interface for speech synthesis services."""

    @abstractmethod
    def synthesize(self, mandarin_text: str) -> SpeechResult:
        """
        Synthesize spoken audio for Mandarin text.

        Args:
            mandarin_text: Chinese characters

        Returns:
            SpeechResult with MP3 bytes or error
        """
        pass


class RelatedWordsService(ABC):
    """Base interface for generative related-vocabulary services."""

    @abstractmethod
    def related_words(self, word: str) -> RelatedWordsResult:
        """
        Suggest vocabulary related to a single word.

        Args:
            word: Mandarin word

        Returns:
            RelatedWordsResult with best-effort parsed pairs
        """
        pass
