"""
External service clients: Azure Translator, Azure Speech and OpenAI.
"""

from .base import RelatedWordsService, SpeechService, TranslationService, TransliterationService
from .azure_translator import AzureTranslatorService
from .azure_speech import AzureSpeechService
from .related_words import OpenAIRelatedWordsService, parse_related_words

__all__ = [
    'TranslationService',
    'TransliterationService',
    'SpeechService',
    'RelatedWordsService',
    'AzureTranslatorService',
    'AzureSpeechService',
    'OpenAIRelatedWordsService',
    'parse_related_words',
]
