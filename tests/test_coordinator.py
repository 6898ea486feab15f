"""
Tests for per-entry enrichment.
"""

import dataclasses

import pytest

from mandarin_anki_generator.enrichment.coordinator import EnrichmentCoordinator
from mandarin_anki_generator.errors import ErrorCategory
from mandarin_anki_generator.models import EntryKind, RelatedWord
from mandarin_anki_generator.processors.line_parser import parse

from fakes import FakeRelatedWords, FakeSpeech, FakeTranslator, FakeTransliterator


@pytest.fixture
def services():
    return {
        'translator': FakeTranslator(),
        'transliterator': FakeTransliterator(),
        'speech': FakeSpeech(),
        'related_words': FakeRelatedWords(),
    }


@pytest.fixture
def make_coordinator(generator_config, tokenizer, services):
    def factory(config=None, **overrides):
        chosen = dict(services, **overrides)
        return EnrichmentCoordinator(config or generator_config, tokenizer, **chosen)
    return factory


def enrich(coordinator, tokenizer, raw, translation=None):
    return coordinator.enrich(tokenizer.tokenize_entry(parse(raw, translation, line_number=1)))


def codes(enriched):
    return [issue.error_code for issue in enriched.issues]


class TestTranslationChoice:
    """Test where the English side of a card comes from."""

    def test_user_translation_wins(self, make_coordinator, tokenizer, services):
        enriched = enrich(make_coordinator(), tokenizer, "我今天很忙。", "Busy today")

        assert enriched.translation == "Busy today"
        assert services['translator'].calls == []

    def test_word_uses_dictionary_definition(self, make_coordinator, tokenizer, services):
        enriched = enrich(make_coordinator(), tokenizer, "平反")

        assert enriched.kind is EntryKind.SINGLE_WORD
        assert enriched.translation == "to redress (an injustice); to rehabilitate"
        assert services['translator'].calls == []

    def test_dictionary_definitions_can_be_disabled(self, make_coordinator, tokenizer,
                                                    services, generator_config):
        config = dataclasses.replace(generator_config, prefer_dictionary_definitions=False)
        enriched = enrich(make_coordinator(config), tokenizer, "平反")

        assert enriched.translation == "EN(平反)"
        assert services['translator'].calls == ["平反"]

    def test_sentence_is_translated(self, make_coordinator, tokenizer, services):
        enriched = enrich(make_coordinator(), tokenizer, "我今天很忙。")

        assert enriched.translation == "EN(我今天很忙。)"
        assert enriched.issues == ()

    def test_failed_translation_leaves_meaning_empty(self, make_coordinator, tokenizer):
        enriched = enrich(make_coordinator(translator=FakeTranslator(fail=True)),
                          tokenizer, "我今天很忙。")

        assert enriched.translation == ""
        assert codes(enriched) == ["SERVICE_001"]
        assert enriched.issues[0].category is ErrorCategory.TRANSLATION
        assert enriched.issues[0].context['line'] == 1


class TestReadings:
    """Test how service readings replace dictionary readings."""

    def test_service_reading_is_applied(self, make_coordinator, tokenizer):
        coordinator = make_coordinator(transliterator=FakeTransliterator(reading="xué xi"))
        enriched = enrich(coordinator, tokenizer, "學習")

        assert enriched.segments[0].reading == "xué xi"
        assert enriched.issues == ()

    def test_misaligned_reading_keeps_dictionary(self, make_coordinator, tokenizer):
        coordinator = make_coordinator(transliterator=FakeTransliterator(reading="xuéxí"))
        enriched = enrich(coordinator, tokenizer, "學習")

        assert enriched.segments[0].reading == "xué xí"
        assert codes(enriched) == ["TRANSLIT_001"]

    def test_failed_transliteration_falls_back_silently(self, make_coordinator, tokenizer):
        coordinator = make_coordinator(transliterator=FakeTransliterator(fail=True))
        enriched = enrich(coordinator, tokenizer, "我今天很忙。")

        assert [segment.reading for segment in enriched.segments] == [
            "wǒ", "jīn tiān", "hěn", "máng", ""]
        assert "TRANSLIT_001" not in codes(enriched)
        assert enriched.services_succeeded == 2

    def test_latin_words_do_not_break_alignment(self, make_coordinator, tokenizer):
        coordinator = make_coordinator(transliterator=FakeTransliterator(reading="wǒ yòng iPhone"))
        enriched = enrich(coordinator, tokenizer, "我用iPhone。")

        assert [segment.reading for segment in enriched.segments[:2]] == ["wǒ", "yòng"]
        assert all(segment.reading == "" for segment in enriched.segments[2:])
        assert enriched.issues == ()


class TestAudio:
    """Test speech degradation."""

    def test_audio_attached(self, make_coordinator, tokenizer):
        enriched = enrich(make_coordinator(), tokenizer, "我今天很忙。")

        assert enriched.audio_ref.text == "我今天很忙。"
        assert enriched.audio_ref.data.startswith(b"ID3")

    def test_failed_speech_means_no_audio(self, make_coordinator, tokenizer):
        enriched = enrich(make_coordinator(speech=FakeSpeech(fail=True)), tokenizer, "我今天很忙。")

        assert enriched.audio_ref is None
        assert codes(enriched) == ["SERVICE_003"]
        assert enriched.issues[0].category is ErrorCategory.SPEECH_SYNTHESIS


class TestRelatedWords:
    """Test related vocabulary for single words."""

    def test_only_words_get_related_words(self, make_coordinator, tokenizer, services):
        enriched = enrich(make_coordinator(), tokenizer, "我今天很忙。")

        assert enriched.related_words is None
        assert services['related_words'].calls == []
        assert enriched.services_attempted == 3

    def test_related_words_get_readings(self, make_coordinator, tokenizer):
        enriched = enrich(make_coordinator(), tokenizer, "平反")

        assert enriched.related_words == (
            RelatedWord(word="冤案", translation="miscarriage of justice", reading="yuān àn"),
            RelatedWord(word="昭雪", translation="to exonerate", reading="zhāo xuě"),
        )
        assert enriched.services_attempted == 3
        assert enriched.services_succeeded == 3

    def test_malformed_reply_is_a_warning(self, make_coordinator, tokenizer):
        reply = "Sure!\n冤案 - miscarriage of justice"
        enriched = enrich(make_coordinator(related_words=FakeRelatedWords(reply=reply)),
                          tokenizer, "平反")

        assert [word.word for word in enriched.related_words] == ["冤案"]
        assert codes(enriched) == ["RELATED_001"]

    def test_failed_related_words(self, make_coordinator, tokenizer):
        enriched = enrich(make_coordinator(related_words=FakeRelatedWords(fail=True)),
                          tokenizer, "平反")

        assert enriched.related_words == ()
        assert codes(enriched) == ["SERVICE_001"]
        assert enriched.issues[0].category is ErrorCategory.RELATED_WORDS
