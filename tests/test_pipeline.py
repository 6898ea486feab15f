"""
End-to-end tests for the run controller with fake services.
"""

import dataclasses
from unittest.mock import Mock

from mandarin_anki_generator.anki.package_generator import PackageValidator, PackageWriter
from mandarin_anki_generator.dictionary.repository import load_dictionary
from mandarin_anki_generator.errors import AnkiGenerationError, ErrorHandler
from mandarin_anki_generator.models import EntryKind, InputRecord, RunState
from mandarin_anki_generator.pipeline import run_file
from mandarin_anki_generator.progress import ProcessingStage
from mandarin_anki_generator.services.related_words import OpenAIRelatedWordsService

from fakes import FakeRelatedWords, FakeSpeech, FakeTranslator, FakeTransliterator


class TestScenarios:
    """Representative runs over small inputs."""

    def test_highlighted_sentence_with_translation(self, make_controller, tmp_path):
        translator = FakeTranslator()
        controller = make_controller(translator=translator,
                                     transliterator=FakeTransliterator(reading="xué xí"))

        result = controller.run(["*學* 習, to study"], tmp_path / "deck.apkg")

        assert result.status.state is RunState.COMPLETED_WITHOUT_ISSUES
        assert str(result.status) == "CompletedWithoutIssues"
        note = result.package.notes[0]
        assert note.kind is EntryKind.SENTENCE
        assert note.field('Meaning') == "to study"
        assert note.field('Hanzi') == "<span class=starred>學</span> 習"
        assert note.field('Reading') == "<span class=starred>xué</span> xí"
        assert translator.calls == []

        info = PackageValidator.get_package_info(result.output_path)
        assert info['note_count'] == 1
        assert info['card_count'] == 2

    def test_single_word_with_related_words(self, make_controller):
        translator = FakeTranslator()
        reply = "Here are some words:\n1. 冤案, miscarriage of justice\n2. 昭雪 - to exonerate"
        controller = make_controller(translator=translator,
                                     related_words=FakeRelatedWords(reply=reply))

        result = controller.run(["平反"])

        note = result.package.notes[0]
        assert note.kind is EntryKind.SINGLE_WORD
        assert note.field('Definition') == "to redress (an injustice); to rehabilitate"
        assert note.field('Similar Words') == (
            "冤案, yuān àn, miscarriage of justice<br>昭雪, zhāo xuě, to exonerate")
        assert translator.calls == []
        assert str(result.status) == "CompletedWithWarnings(1)"
        assert result.output_path is None

    def test_translation_outage_degrades_one_line(self, make_controller):
        controller = make_controller(translator=FakeTranslator(fail=True))

        result = controller.run(["我今天很忙。"])

        assert str(result.status) == "CompletedWithWarnings(1)"
        assert result.package.notes[0].field('Meaning') == ""
        outcome = result.outcomes[0]
        assert not outcome.ok
        assert outcome.line_number == 1
        assert "translation" in outcome.issues[0]


class TestOrderingAndDegradation:
    """Concurrency must not change what ends up in the package."""

    def test_notes_keep_input_order(self, make_controller):
        speech = FakeSpeech(delays={"我今天很忙。": 0.2, "中國人": 0.1})
        controller = make_controller(speech=speech)
        lines = ["我今天很忙。", "中國人", "平反", "學習"]

        result = controller.run(lines)

        assert [note.line_number for note in result.package.notes] == [1, 2, 3, 4]
        assert [outcome.line_number for outcome in result.outcomes] == [1, 2, 3, 4]

    def test_missing_audio_keeps_the_note(self, make_controller, tmp_path):
        controller = make_controller(speech=FakeSpeech(fail=True))

        result = controller.run(["我今天很忙。, I am busy today"], tmp_path / "deck.apkg")

        assert result.status.state is RunState.COMPLETED_WITH_WARNINGS
        assert result.package.media == {}
        assert result.package.notes[0].field('Audio') == ""
        info = PackageValidator.get_package_info(result.output_path)
        assert info['card_count'] == 1

    def test_identifiers_are_constant_across_runs(self, make_controller, generator_config, tmp_path):
        first = make_controller().run(["平反", "我今天很忙。"], tmp_path / "first.apkg")
        second = make_controller().run(["我今天很忙。"], tmp_path / "second.apkg")

        model = generator_config.model
        for result in (first, second):
            info = PackageValidator.get_package_info(result.output_path)
            assert info['deck_ids'] == {model.deck_id}
            assert {model.word_model_id, model.sentence_model_id} <= info['model_ids']
        assert first.package.notes[1].guid == second.package.notes[0].guid

    def test_repeated_line_is_written_once_with_a_warning(self, make_controller):
        result = make_controller().run(["我今天很忙。", "我今天很忙。, I am busy"])

        assert len(result.package.notes) == 1
        assert result.outcomes[0].ok
        assert result.outcomes[1].issues == ("Line repeats line 1 and was not added again",)
        assert str(result.status) == "CompletedWithWarnings(1)"

    def test_lines_differing_in_highlight_get_their_own_notes(self, make_controller):
        lines = ["*我*今天很忙。", "我今天很*忙*。", "我今天很忙。, I am busy today"]

        result = make_controller().run(lines)

        notes = result.package.notes
        assert [note.line_number for note in notes] == [1, 2, 3]
        assert len({note.guid for note in notes}) == 3
        assert notes[0].field('Hanzi').startswith("<span class=starred>我</span>")
        assert notes[2].field('Meaning') == "I am busy today"
        assert str(result.status) == "CompletedWithoutIssues"

    def test_default_dictionary_recognises_common_words(self, make_controller):
        related_words = FakeRelatedWords()
        controller = make_controller(dictionary=load_dictionary(None), related_words=related_words)

        result = controller.run(["平反", "学习", "朋友", "今天"])

        assert [note.kind for note in result.package.notes] == [EntryKind.SINGLE_WORD] * 4
        assert sorted(related_words.calls) == sorted(["平反", "学习", "朋友", "今天"])

    def test_empty_chat_reply_is_a_warning(self, make_controller, generator_config):
        client = Mock()
        client.chat.completions.create.return_value = Mock(choices=[])
        related_words = OpenAIRelatedWordsService(generator_config, client=client)

        result = make_controller(related_words=related_words).run(["平反", "我今天很忙。"])

        assert str(result.status) == "CompletedWithWarnings(1)"
        assert result.outcomes[0].issues == ("Related words for 平反 were not well formed",)
        assert result.package.notes[0].field('Similar Words') == ""
        assert result.outcomes[1].ok

    def test_unexpected_error_degrades_only_its_line(self, make_controller):
        controller = make_controller(speech=FakeSpeech(crash_on=["平反"]))

        result = controller.run(["平反", "我今天很忙。"])

        assert str(result.status) == "CompletedWithWarnings(1)"
        assert [note.line_number for note in result.package.notes] == [1, 2]
        assert result.package.notes[0].field('Hanzi') == "平反"
        assert result.package.notes[0].field('Audio') == ""
        assert result.outcomes[0].issues == (
            "Enrichment failed; the card was made from the text alone",)
        assert result.outcomes[1].ok
        assert controller.error_handler.warnings[0].details == (
            "IndexError: list index out of range")

    def test_input_records_are_accepted(self, make_controller):
        records = [InputRecord(line_number=7, text="學習", translation="to learn")]
        result = make_controller().run(records)
        assert result.package.notes[0].line_number == 7
        assert result.package.notes[0].field('Definition') == "to learn"


class TestFatalRuns:
    """Conditions outside any single line end the run."""

    def test_no_input(self, make_controller):
        result = make_controller().run([])

        assert result.status.is_fatal
        assert "No input entries found" in result.status.reason
        assert result.package is None

    def test_blank_lines_only(self, make_controller):
        assert make_controller().run(["", "   "]).status.is_fatal

    def test_line_without_mandarin_is_skipped(self, make_controller):
        result = make_controller().run(["hello, world", "我今天很忙。"])

        assert str(result.status) == "CompletedWithWarnings(1)"
        assert len(result.package.notes) == 1
        assert result.outcomes[0].issues == ("Line has no Mandarin text and was skipped",)

    def test_only_lines_without_mandarin(self, make_controller):
        result = make_controller().run(["hello", "world"])
        assert result.status.is_fatal
        assert len(result.outcomes) == 2

    def test_every_service_down(self, make_controller, tmp_path):
        controller = make_controller(
            translator=FakeTranslator(fail=True),
            transliterator=FakeTransliterator(fail=True),
            speech=FakeSpeech(fail=True),
            related_words=FakeRelatedWords(fail=True),
        )
        output = tmp_path / "deck.apkg"

        result = controller.run(["我今天很忙。", "平反"], output)

        assert result.status.is_fatal
        assert "No external service could be reached" in result.status.reason
        assert not output.exists()
        assert controller.error_handler.has_errors()

    def test_missing_dictionary_file(self, make_controller, generator_config, tmp_path):
        config = dataclasses.replace(generator_config, cedict_path=tmp_path / "missing.u8")
        controller = make_controller(config=config, dictionary=None)

        result = controller.run(["平反"])

        assert result.status.is_fatal
        assert "Dictionary could not be loaded" in result.status.reason

    def test_package_write_failure(self, make_controller, tmp_path):
        writer = Mock(spec=PackageWriter)
        writer.write.side_effect = AnkiGenerationError(
            ErrorHandler().handle_anki_generation_error(OSError("disk full")))
        controller = make_controller(writer=writer)

        result = controller.run(["平反"], tmp_path / "deck.apkg")

        assert result.status.is_fatal
        assert "Anki package generation failed" in result.status.reason


class TestProgressAndErrors:
    """Test what a run reports along the way."""

    def test_stages_complete_in_order(self, make_controller):
        controller = make_controller()
        seen = []
        controller.progress.add_progress_callback(
            lambda progress: seen.append((progress.stage, progress.status)))

        controller.run(["平反"])

        completed = [stage for stage, status in seen if status == "completed"]
        assert completed == [
            ProcessingStage.INITIALIZATION,
            ProcessingStage.PARSING,
            ProcessingStage.ENRICHMENT,
            ProcessingStage.PACKAGING,
            ProcessingStage.FINALIZATION,
        ]

    def test_summary_counts(self, make_controller):
        controller = make_controller(speech=FakeSpeech(fail=True))
        controller.run(["平反", "我今天很忙。"])

        summary = controller.progress.generate_completion_summary()
        assert summary['entries'] == 2
        assert summary['notes_created'] == 2
        assert summary['audio_clips'] == 0
        assert summary['warnings'] == 2

    def test_warnings_are_collected_per_run(self, make_controller):
        controller = make_controller(translator=FakeTranslator(fail=True))

        controller.run(["我今天很忙。"])
        assert len(controller.error_handler.warnings) == 1

        controller.run(["我今天很忙。"])
        assert len(controller.error_handler.warnings) == 1


class TestRunFile:
    """Test running from an input file on disk."""

    def test_run_file(self, make_controller, generator_config, tmp_path):
        input_path = tmp_path / "input.csv"
        input_path.write_text("*學* 習, to study\n\n平反\n", encoding="utf-8")

        result = run_file(generator_config, input_path, tmp_path / "out.apkg", make_controller())

        assert result.status.state is not RunState.FAILED_FATAL
        assert [outcome.line_number for outcome in result.outcomes] == [1, 3]
        assert PackageValidator.validate_package(result.output_path)

    def test_unreadable_input(self, make_controller, generator_config, tmp_path):
        result = run_file(generator_config, tmp_path / "missing.csv",
                          tmp_path / "out.apkg", make_controller())

        assert result.status.is_fatal
        assert "No input entries found" in result.status.reason
