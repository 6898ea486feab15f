"""
Translation and transliteration through the Azure Translator REST API (v3).
"""

import logging
import uuid
from typing import Any, Dict, Optional

import requests

from ..config import Config, GeneratorConfig
from ..errors import ServiceUnavailableError
from ..models import TranslationResult, TransliterationResult
from .base import TranslationService, TransliterationService
from .http import call_with_retry, create_session, post


class AzureTranslatorService(TranslationService, TransliterationService):
    """
    Azure Translator client.

    ``translate`` renders Mandarin into English; ``transliterate`` returns the
    tone-marked Latin reading for the configured script.
    """

    API_VERSION = "3.0"

    def __init__(self, config: GeneratorConfig, session: Optional[requests.Session] = None,
                 endpoint: str = Config.TRANSLATOR_ENDPOINT):
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.session = session or create_session(config.network)
        self.endpoint = endpoint.rstrip('/')

    def _headers(self) -> Dict[str, str]:
        return {
            'Ocp-Apim-Subscription-Key': self.config.azure.translator_key,
            'Ocp-Apim-Subscription-Region': self.config.azure.region,
            'Content-Type': 'application/json',
            'X-ClientTraceId': str(uuid.uuid4()),
        }

    def _request(self, service: str, path: str, params: Dict[str, str], text: str) -> Any:
        response = post(
            self.session, service, f"{self.endpoint}/{path}",
            params=params, headers=self._headers(), json=[{'text': text}],
        )
        try:
            return response.json()
        except ValueError as e:
            raise ServiceUnavailableError(service, f"Response is not JSON: {e}", retryable=False)

    def translate(self, mandarin_text: str) -> TranslationResult:
        if not mandarin_text or not mandarin_text.strip():
            return TranslationResult(mandarin=mandarin_text, english="", success=False,
                                     error="Empty or whitespace-only input")
        params = {'api-version': self.API_VERSION, 'to': 'en'}
        try:
            body = call_with_retry(self.config.network, self._request,
                                   'translation', 'translate', params, mandarin_text)
            english = body[0]['translations'][0]['text']
        except ServiceUnavailableError as e:
            self.logger.debug(f"Translation failed for '{mandarin_text}': {e.processing_error.details}")
            return TranslationResult(mandarin=mandarin_text, english="", success=False,
                                     error=e.processing_error.details)
        except (KeyError, IndexError, TypeError) as e:
            self.logger.debug(f"Unexpected translation response for '{mandarin_text}': {e}")
            return TranslationResult(mandarin=mandarin_text, english="", success=False,
                                     error=f"Unexpected response shape: {e}")

        return TranslationResult(mandarin=mandarin_text, english=english.strip(), success=True)

    def transliterate(self, mandarin_text: str) -> TransliterationResult:
        if not mandarin_text or not mandarin_text.strip():
            return TransliterationResult(mandarin=mandarin_text, reading="", success=False,
                                         error="Empty or whitespace-only input")
        script = self.config.mandarin.script
        params = {
            'api-version': self.API_VERSION,
            'language': script.language,
            'fromScript': script.script_code,
            'toScript': 'Latn',
        }
        try:
            body = call_with_retry(self.config.network, self._request,
                                   'transliteration', 'transliterate', params, mandarin_text)
            reading = body[0]['text']
        except ServiceUnavailableError as e:
            self.logger.debug(f"Transliteration failed for '{mandarin_text}': {e.processing_error.details}")
            return TransliterationResult(mandarin=mandarin_text, reading="", success=False,
                                         error=e.processing_error.details)
        except (KeyError, IndexError, TypeError) as e:
            self.logger.debug(f"Unexpected transliteration response for '{mandarin_text}': {e}")
            return TransliterationResult(mandarin=mandarin_text, reading="", success=False,
                                         error=f"Unexpected response shape: {e}")

        return TransliterationResult(mandarin=mandarin_text, reading=reading, success=True)
