"""
Error handling system for the Mandarin Anki Generator.

Entry-level problems (a service that stays down, a malformed generative
response) are recovered where they happen and surface as warnings attached to
that entry. Run-level problems (bad configuration, no input, a dictionary that
cannot be loaded) abort the run before packaging.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors that can occur during processing."""
    INPUT_PARSING = "input_parsing"
    CONFIGURATION = "configuration"
    TOKENIZATION = "tokenization"
    TRANSLATION = "translation"
    TRANSLITERATION = "transliteration"
    SPEECH_SYNTHESIS = "speech_synthesis"
    RELATED_WORDS = "related_words"
    ENRICHMENT = "enrichment"
    ANKI_GENERATION = "anki_generation"
    NETWORK = "network"
    FILE_SYSTEM = "file_system"


@dataclass
class ProcessingError:
    """Represents a processing error with context and guidance."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    details: str
    suggested_actions: List[str]
    error_code: str
    context: Dict[str, Any] = None

    def __post_init__(self):
        if self.context is None:
            self.context = {}


class MandarinAnkiError(Exception):
    """Base exception for Mandarin Anki Generator errors."""

    def __init__(self, processing_error: ProcessingError):
        self.processing_error = processing_error
        super().__init__(processing_error.message)


class FatalConfigurationError(MandarinAnkiError):
    """Raised when required identifiers or credentials are missing or invalid."""
    pass


class NoInputError(MandarinAnkiError):
    """Raised when the input source is empty or unreadable."""
    pass


class TokenizationError(MandarinAnkiError):
    """Raised when the dictionary backing the tokenizer cannot be used at all."""
    pass


class AnkiGenerationError(MandarinAnkiError):
    """Raised when the package archive cannot be written."""
    pass


class ServiceUnavailableError(MandarinAnkiError):
    """
    Raised by the HTTP layer when an external call fails.

    ``retryable`` distinguishes transient failures (timeouts, connection
    errors, rate limits, server errors) from ones a retry cannot fix.
    """

    def __init__(self, service: str, details: str, retryable: bool = True,
                 status_code: Optional[int] = None):
        self.service = service
        self.retryable = retryable
        self.status_code = status_code
        super().__init__(ProcessingError(
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.WARNING,
            message=f"{service} service unavailable",
            details=details,
            suggested_actions=[
                "Check your internet connection",
                f"Verify the {service} credentials and endpoint in the configuration",
            ],
            error_code="SERVICE_001",
            context={'service': service, 'status_code': status_code, 'retryable': retryable},
        ))


_SERVICE_CATEGORIES = {
    'translation': ErrorCategory.TRANSLATION,
    'transliteration': ErrorCategory.TRANSLITERATION,
    'speech': ErrorCategory.SPEECH_SYNTHESIS,
    'related-words': ErrorCategory.RELATED_WORDS,
}


class ErrorHandler:
    """
    Per-run error collector.

    One instance is created for each run and passed to the components that
    report into it; there is no process-wide handler.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.errors: List[ProcessingError] = []
        self.warnings: List[ProcessingError] = []

    def add_error(self, error: ProcessingError) -> None:
        """Add an error to the collection."""
        if error.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            self.errors.append(error)
        elif error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)

        log_level = {
            ErrorSeverity.INFO: logging.INFO,
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL
        }[error.severity]

        line = error.context.get('line')
        where = f"Line {line}: " if line else ""
        self.logger.log(log_level, f"[{error.error_code}] {where}{error.message}")
        if error.details:
            self.logger.debug(f"Details: {error.details}")

    def has_errors(self) -> bool:
        """Check if any errors have been recorded."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been recorded."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> Dict[str, Any]:
        """Get a summary of all errors and warnings."""
        return {
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
            'errors': [self._format_error_for_summary(e) for e in self.errors],
            'warnings': [self._format_error_for_summary(e) for e in self.warnings]
        }

    def _format_error_for_summary(self, error: ProcessingError) -> Dict[str, Any]:
        return {
            'code': error.error_code,
            'category': error.category.value,
            'severity': error.severity.value,
            'message': error.message,
            'suggested_actions': error.suggested_actions
        }

    def clear_errors(self) -> None:
        """Clear all recorded errors and warnings."""
        self.errors.clear()
        self.warnings.clear()

    def handle_configuration_error(self, problem: str, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe a missing or invalid configuration value."""
        return ProcessingError(
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            message="Invalid configuration",
            details=problem,
            suggested_actions=[
                "Check config.json next to the input file",
                "Environment variables prefixed with GENANKI_ override the file",
                "Keep deck_id, word_model_id and sentence_model_id unchanged between runs",
            ],
            error_code="CONFIG_001",
            context=context
        )

    def handle_no_input(self, details: str, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe an empty or unreadable input source."""
        return ProcessingError(
            category=ErrorCategory.INPUT_PARSING,
            severity=ErrorSeverity.CRITICAL,
            message="No input entries found",
            details=details,
            suggested_actions=[
                "Put one Mandarin sentence or word per line in the input file",
                "Optionally add an English translation after a comma",
            ],
            error_code="INPUT_001",
            context=context
        )

    def handle_tokenization_error(self, error: Exception, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe a dictionary that could not be loaded."""
        return ProcessingError(
            category=ErrorCategory.TOKENIZATION,
            severity=ErrorSeverity.CRITICAL,
            message="Dictionary could not be loaded",
            details=str(error),
            suggested_actions=[
                "Check the cedict_path setting points at a CC-CEDICT .u8 file",
                "Remove cedict_path to fall back to the bundled pypinyin tables",
            ],
            error_code="TOKEN_001",
            context=context
        )

    def handle_service_error(self, service: str, error: Any, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe a degraded external call for one entry."""
        error_str = str(error)
        lowered = error_str.lower()
        if 'timeout' in lowered or 'timed out' in lowered:
            message = f"{service} request timed out"
            code = "SERVICE_002"
        elif '401' in lowered or '403' in lowered or 'auth' in lowered or 'key' in lowered:
            message = f"{service} authentication failed"
            code = "SERVICE_003"
        elif '429' in lowered or 'rate' in lowered or 'quota' in lowered:
            message = f"{service} rate limit exceeded"
            code = "SERVICE_004"
        else:
            message = f"{service} service unavailable"
            code = "SERVICE_001"
        return ProcessingError(
            category=_SERVICE_CATEGORIES.get(service, ErrorCategory.NETWORK),
            severity=ErrorSeverity.WARNING,
            message=message,
            details=error_str,
            suggested_actions=[
                "Check your internet connection",
                f"Verify the {service} credentials in the configuration",
                "Re-run the affected lines later",
            ],
            error_code=code,
            context=context
        )

    def handle_malformed_response(self, word: str, raw_text: str,
                                  context: Dict[str, Any] = None) -> ProcessingError:
        """Describe a related-words response that could only be partially parsed."""
        return ProcessingError(
            category=ErrorCategory.RELATED_WORDS,
            severity=ErrorSeverity.WARNING,
            message=f"Related words for {word} were not well formed",
            details=raw_text,
            suggested_actions=["Review the related words on the generated card"],
            error_code="RELATED_001",
            context=context
        )

    def handle_enrichment_error(self, error: Exception, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe an entry whose enrichment stopped on an unexpected error."""
        return ProcessingError(
            category=ErrorCategory.ENRICHMENT,
            severity=ErrorSeverity.WARNING,
            message="Enrichment failed; the card was made from the text alone",
            details=f"{type(error).__name__}: {error}",
            suggested_actions=[
                "Re-run the affected lines later",
                "Run with --verbose and check the log file for the full error",
            ],
            error_code="ENRICH_001",
            context=context
        )

    def handle_anki_generation_error(self, error: Exception, context: Dict[str, Any] = None) -> ProcessingError:
        """Describe a failure to write the package archive."""
        error_str = str(error).lower()
        if 'permission' in error_str or 'access' in error_str:
            return ProcessingError(
                category=ErrorCategory.FILE_SYSTEM,
                severity=ErrorSeverity.CRITICAL,
                message="Cannot write the Anki package",
                details=f"Permission denied when creating the package: {error}",
                suggested_actions=[
                    "Check write permissions for the output directory",
                    "Choose a different output path",
                ],
                error_code="ANKI_001",
                context=context
            )
        return ProcessingError(
            category=ErrorCategory.ANKI_GENERATION,
            severity=ErrorSeverity.CRITICAL,
            message="Anki package generation failed",
            details=str(error),
            suggested_actions=[
                "Check available disk space",
                "Run again with --verbose and inspect the log file",
            ],
            error_code="ANKI_002",
            context=context
        )
