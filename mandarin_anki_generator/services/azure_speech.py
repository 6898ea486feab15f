"""
Speech synthesis through the Azure Speech text-to-speech REST API.
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

import requests

from ..config import Config, GeneratorConfig
from ..errors import ServiceUnavailableError
from ..models import SpeechResult
from .base import SpeechService
from .http import call_with_retry, create_session, post


def build_ssml(text: str, voice_name: str, locale: str) -> str:
    """Wrap text in the SSML document the synthesis endpoint expects."""
    lang = quoteattr(locale)
    return (
        f"<speak version='1.0' xml:lang={lang}>"
        f"<voice xml:lang={lang} name={quoteattr(voice_name)}>{escape(text)}</voice>"
        f"</speak>"
    )


class AzureSpeechService(SpeechService):
    """Azure text-to-speech client returning MP3 audio."""

    def __init__(self, config: GeneratorConfig, session: Optional[requests.Session] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.session = session or create_session(config.network)
        self.endpoint = Config.SPEECH_ENDPOINT_TEMPLATE.format(region=config.azure.region)

    def _request(self, text: str) -> bytes:
        azure = self.config.azure
        response = post(
            self.session, 'speech', self.endpoint,
            headers={
                'Ocp-Apim-Subscription-Key': azure.speech_key,
                'Content-Type': 'application/ssml+xml',
                'X-Microsoft-OutputFormat': Config.SPEECH_OUTPUT_FORMAT,
                'User-Agent': 'mandarin-anki-generator',
            },
            data=build_ssml(text, azure.voice_name, azure.locale).encode('utf-8'),
        )
        if not response.content:
            raise ServiceUnavailableError('speech', "Empty audio response", retryable=True)
        return response.content

    def synthesize(self, mandarin_text: str) -> SpeechResult:
        if not mandarin_text or not mandarin_text.strip():
            return SpeechResult(mandarin=mandarin_text, audio=None, success=False,
                                error="Empty or whitespace-only input")
        try:
            audio = call_with_retry(self.config.network, self._request, mandarin_text)
        except ServiceUnavailableError as e:
            self.logger.debug(f"Speech synthesis failed for '{mandarin_text}': {e.processing_error.details}")
            return SpeechResult(mandarin=mandarin_text, audio=None, success=False,
                                error=e.processing_error.details)

        self.logger.debug(f"Synthesized {len(audio)} bytes for '{mandarin_text}'")
        return SpeechResult(mandarin=mandarin_text, audio=audio, success=True)
