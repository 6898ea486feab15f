"""
Run controller for the Mandarin Anki Generator.

Sequences one batch run: parse every line, tokenize it, enrich the entries
concurrently, then assemble and write the package in input order. A problem
with one line becomes a warning on that line; only conditions outside any
single entry end the run as ``FailedFatal``.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .anki.package_generator import PackageAssembler, PackageWriter
from .config import GeneratorConfig
from .dictionary.readings import contains_han
from .dictionary.repository import MandarinDictionary, load_dictionary
from .dictionary.tokenizer import Tokenizer
from .enrichment.coordinator import EnrichmentCoordinator
from .errors import (
    AnkiGenerationError,
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    MandarinAnkiError,
    ProcessingError,
    TokenizationError,
)
from .models import (
    DeckPackage,
    EnrichedEntry,
    InputRecord,
    LineOutcome,
    RunResult,
    RunStatus,
    TokenizedEntry,
)
from .processors.line_parser import parse, parse_input_line, read_input_file
from .progress import ProcessingStage, ProgressTracker
from .services.azure_speech import AzureSpeechService
from .services.azure_translator import AzureTranslatorService
from .services.base import (
    RelatedWordsService,
    SpeechService,
    TranslationService,
    TransliterationService,
)
from .services.related_words import OpenAIRelatedWordsService


logger = logging.getLogger(__name__)

InputLine = Union[InputRecord, str]


class RunController:
    """
    Runs the whole pipeline over a batch of input lines.

    Services and the dictionary can be injected; anything left out is built
    from the configuration. The dictionary is loaded at the start of
    :meth:`run` so a broken dictionary ends the run as ``FailedFatal``.
    """

    def __init__(self, config: GeneratorConfig,
                 translator: Optional[TranslationService] = None,
                 transliterator: Optional[TransliterationService] = None,
                 speech: Optional[SpeechService] = None,
                 related_words: Optional[RelatedWordsService] = None,
                 dictionary: Optional[MandarinDictionary] = None,
                 writer: Optional[PackageWriter] = None,
                 progress: Optional[ProgressTracker] = None):
        self.config = config
        if translator is None or transliterator is None:
            azure_translator = AzureTranslatorService(config)
            translator = translator or azure_translator
            transliterator = transliterator or azure_translator
        self.translator = translator
        self.transliterator = transliterator
        self.speech = speech or AzureSpeechService(config)
        self.related_words = related_words or OpenAIRelatedWordsService(config)
        self.dictionary = dictionary
        self.assembler = PackageAssembler.from_config(config)
        self.writer = writer or PackageWriter()
        self.progress = progress or ProgressTracker()
        self.error_handler = ErrorHandler()

    def _fail(self, error: ProcessingError, stage: ProcessingStage,
              outcomes: Sequence[LineOutcome] = ()) -> RunResult:
        self.error_handler.add_error(error)
        reason = f"{error.message}: {error.details}" if error.details else error.message
        self.progress.log_error(stage, reason, details=error.context)
        self.progress.complete_stage(stage, success=False)
        self.progress.complete_pipeline(success=False)
        return RunResult(status=RunStatus.failed(reason), outcomes=tuple(outcomes))

    def _build_tokenizer(self) -> Tokenizer:
        if self.dictionary is None:
            self.dictionary = load_dictionary(self.config.cedict_path)
        return Tokenizer(self.dictionary, self.config.mandarin.reading)

    @staticmethod
    def _to_records(lines: Iterable[InputLine]) -> List[InputRecord]:
        records = []
        for line_number, line in enumerate(lines, start=1):
            if isinstance(line, InputRecord):
                records.append(line)
                continue
            record = parse_input_line(line, line_number)
            if record is not None:
                records.append(record)
        return records

    def run(self, lines: Iterable[InputLine], output_path: Optional[Path] = None) -> RunResult:
        """
        Run the pipeline.

        Args:
            lines: Input records, or raw delimited lines
            output_path: Where to write the package; nothing is written when None

        Returns:
            Run status, per-line outcomes in input order and the package
        """
        self.error_handler.clear_errors()
        self.progress.start_pipeline()

        self.progress.start_stage(ProcessingStage.INITIALIZATION)
        try:
            tokenizer = self._build_tokenizer()
        except TokenizationError as e:
            return self._fail(e.processing_error, ProcessingStage.INITIALIZATION)
        coordinator = EnrichmentCoordinator(
            self.config, tokenizer, self.translator, self.transliterator,
            self.speech, self.related_words,
        )
        self.progress.complete_stage(ProcessingStage.INITIALIZATION)

        records = self._to_records(lines)
        self.progress.start_stage(ProcessingStage.PARSING, total_items=len(records))
        if not records:
            return self._fail(self.error_handler.handle_no_input("The input contains no entries"),
                              ProcessingStage.PARSING)

        # Each slot is either a finished outcome (skipped line) or an entry to enrich
        slots: List[Union[LineOutcome, TokenizedEntry]] = []
        for index, record in enumerate(records, start=1):
            entry = parse(record.text, record.translation, record.line_number)
            if not contains_han(entry.text):
                issue = self._skipped_line(record)
                self.error_handler.add_error(issue)
                slots.append(LineOutcome(record.line_number, record.text, (issue.message,)))
            else:
                slots.append(tokenizer.tokenize_entry(entry))
            self.progress.update_stage_progress(ProcessingStage.PARSING, completed_items=index)

        tokenized = [slot for slot in slots if isinstance(slot, TokenizedEntry)]
        if not tokenized:
            return self._fail(
                self.error_handler.handle_no_input("No line contains Mandarin text"),
                ProcessingStage.PARSING,
                outcomes=[slot for slot in slots if isinstance(slot, LineOutcome)],
            )
        self.progress.complete_stage(ProcessingStage.PARSING,
                                     details={'entries': len(tokenized)})

        enriched = self._enrich_all(coordinator, tokenized)

        attempted = sum(item.services_attempted for item in enriched)
        succeeded = sum(item.services_succeeded for item in enriched)
        outcomes = self._collect_outcomes(slots, enriched)
        if attempted and not succeeded:
            return self._fail(ProcessingError(
                category=ErrorCategory.NETWORK,
                severity=ErrorSeverity.CRITICAL,
                message="No external service could be reached",
                details=f"All {attempted} service calls failed",
                suggested_actions=[
                    "Check your internet connection",
                    "Verify the service keys and region in the configuration",
                ],
                error_code="SERVICE_005",
            ), ProcessingStage.ENRICHMENT, outcomes)
        self.progress.complete_stage(ProcessingStage.ENRICHMENT)

        self.progress.start_stage(ProcessingStage.PACKAGING, total_items=len(enriched))
        package = self.assembler.assemble(enriched)
        outcomes = self._mark_duplicates(outcomes, package)
        written = None
        if output_path is not None:
            try:
                written = self.writer.write(package, output_path)
            except AnkiGenerationError as e:
                return self._fail(e.processing_error, ProcessingStage.PACKAGING, outcomes)
        self.progress.complete_stage(ProcessingStage.PACKAGING,
                                     details={'notes': len(package.notes)})

        warning_count = sum(1 for outcome in outcomes if not outcome.ok)
        self.progress.update_summary_data(
            entries=len(enriched),
            notes_created=len(package.notes),
            audio_clips=len(package.media),
            warnings=warning_count,
        )
        self.progress.start_stage(ProcessingStage.FINALIZATION)
        self.progress.complete_stage(ProcessingStage.FINALIZATION)
        self.progress.complete_pipeline(success=True)

        return RunResult(
            status=RunStatus.completed(warning_count),
            outcomes=tuple(outcomes),
            package=package,
            output_path=str(written) if written else None,
        )

    def _enrich_all(self, coordinator: EnrichmentCoordinator,
                    tokenized: Sequence[TokenizedEntry]) -> List[EnrichedEntry]:
        """Enrich entries concurrently; results come back in input order."""
        self.progress.start_stage(ProcessingStage.ENRICHMENT, total_items=len(tokenized))
        with ThreadPoolExecutor(max_workers=self.config.max_concurrent_entries,
                                thread_name_prefix="enrich") as pool:
            futures = [pool.submit(coordinator.enrich, item) for item in tokenized]
            enriched = []
            for index, future in enumerate(futures, start=1):
                try:
                    enriched.append(future.result())
                except Exception as e:
                    enriched.append(self._unenriched(tokenized[index - 1], e))
                self.progress.update_stage_progress(
                    ProcessingStage.ENRICHMENT, completed_items=index,
                    current_item=tokenized[index - 1].entry.text,
                )
        return enriched

    def _unenriched(self, tokenized: TokenizedEntry, error: Exception) -> EnrichedEntry:
        """Card content for an entry whose enrichment raised: the text and its dictionary readings."""
        entry = tokenized.entry
        issue = self.error_handler.handle_enrichment_error(error, {'line': entry.line_number})
        self.progress.log_error(ProcessingStage.ENRICHMENT, f"Line {entry.line_number}: {issue.details}",
                                details={'text': entry.text})
        logger.debug(f"Line {entry.line_number}: enrichment traceback", exc_info=error)
        return EnrichedEntry(
            entry=entry,
            kind=tokenized.kind,
            translation=entry.user_translation or "",
            segments=tokenized.segments,
            issues=(issue,),
        )

    def _collect_outcomes(self, slots, enriched: Sequence[EnrichedEntry]) -> List[LineOutcome]:
        by_line = iter(enriched)
        outcomes = []
        for slot in slots:
            if isinstance(slot, LineOutcome):
                outcomes.append(slot)
                continue
            item = next(by_line)
            for issue in item.issues:
                self.error_handler.add_error(issue)
            outcomes.append(LineOutcome(
                line_number=item.entry.line_number,
                text=item.entry.raw_text,
                issues=tuple(issue.message for issue in item.issues),
            ))
        return outcomes

    def _mark_duplicates(self, outcomes: Sequence[LineOutcome],
                         package: DeckPackage) -> List[LineOutcome]:
        """Warn on every line whose note was left out as a repeat of an earlier line."""
        marked = []
        for outcome in outcomes:
            kept_line = package.duplicates.get(outcome.line_number)
            if kept_line is None:
                marked.append(outcome)
                continue
            issue = ProcessingError(
                category=ErrorCategory.INPUT_PARSING,
                severity=ErrorSeverity.WARNING,
                message=f"Line repeats line {kept_line} and was not added again",
                details=outcome.text,
                suggested_actions=["Remove the repeated line from the input"],
                error_code="INPUT_003",
                context={'line': outcome.line_number},
            )
            self.error_handler.add_error(issue)
            self.progress.log_warning(ProcessingStage.PACKAGING,
                                      f"Line {outcome.line_number}: repeats line {kept_line}, note skipped")
            marked.append(replace(outcome, issues=outcome.issues + (issue.message,)))
        return marked

    @staticmethod
    def _skipped_line(record: InputRecord) -> ProcessingError:
        return ProcessingError(
            category=ErrorCategory.INPUT_PARSING,
            severity=ErrorSeverity.WARNING,
            message="Line has no Mandarin text and was skipped",
            details=record.text,
            suggested_actions=["Put the Mandarin text in the first column"],
            error_code="INPUT_002",
            context={'line': record.line_number},
        )


def run_file(config: GeneratorConfig, input_path: Path, output_path: Path,
             controller: Optional[RunController] = None) -> RunResult:
    """
    Read ``input_path`` and run the pipeline into ``output_path``.

    An unreadable input file ends the run as ``FailedFatal``.
    """
    controller = controller or RunController(config)
    try:
        records = read_input_file(input_path)
    except MandarinAnkiError as e:
        controller.error_handler.add_error(e.processing_error)
        return RunResult(status=RunStatus.failed(f"{e.processing_error.message}: "
                                                 f"{e.processing_error.details}"))
    return controller.run(records, output_path)
