"""
Pytest configuration and fixtures for the Mandarin Anki Generator tests.

Provides a small CC-CEDICT dictionary, a configuration that never sleeps
between retries, and a controller factory wired to in-process fake services.
"""

import pytest
from hypothesis import HealthCheck, Verbosity, settings

from mandarin_anki_generator.config import (
    AzureConfig,
    GeneratorConfig,
    MandarinConfig,
    ModelConfig,
    NetworkConfig,
    OpenAIConfig,
    ReadingStyle,
)
from mandarin_anki_generator.dictionary.cedict import parse_cedict_lines
from mandarin_anki_generator.dictionary.repository import CedictDictionary
from mandarin_anki_generator.dictionary.tokenizer import Tokenizer
from mandarin_anki_generator.pipeline import RunController

from fakes import FakeRelatedWords, FakeSpeech, FakeTranslator, FakeTransliterator


settings.register_profile(
    "mandarin",
    max_examples=60,
    verbosity=Verbosity.normal,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)
settings.load_profile("mandarin")


def pytest_configure(config):
    config.addinivalue_line("markers", "property: property-based test using hypothesis")


SAMPLE_CEDICT = """\
# CC-CEDICT sample
#! version=1
學 学 [xue2] /to learn/to study/
習 习 [xi2] /to practice/to study/habit/
學習 学习 [xue2 xi2] /to learn/to study/
平 平 [ping2] /flat/level/
反 反 [fan3] /contrary/in reverse/
平反 平反 [ping2 fan3] /to redress (an injustice)/to rehabilitate/
我 我 [wo3] /I/me/my/
今 今 [jin1] /today/modern/
天 天 [tian1] /day/sky/
今天 今天 [jin1 tian1] /today/at the present/
很 很 [hen3] /very/quite/
忙 忙 [mang2] /busy/
中 中 [zhong1] /within/among/
國 国 [guo2] /country/nation/
中國 中国 [Zhong1 guo2] /China/
人 人 [ren2] /person/people/
中國人 中国人 [Zhong1 guo2 ren2] /Chinese person/
綠 绿 [lu:4] /green/
冤 冤 [yuan1] /injustice/
案 案 [an4] /case/
冤案 冤案 [yuan1 an4] /miscarriage of justice/
昭 昭 [zhao1] /bright/
雪 雪 [xue3] /snow/
昭雪 昭雪 [zhao1 xue3] /to exonerate/
"""


@pytest.fixture
def cedict_lines():
    return SAMPLE_CEDICT.splitlines()


@pytest.fixture
def dictionary(cedict_lines):
    return CedictDictionary(parse_cedict_lines(cedict_lines))


@pytest.fixture
def tokenizer(dictionary):
    return Tokenizer(dictionary, ReadingStyle.PINYIN)


@pytest.fixture
def generator_config():
    """Configuration with pinyin readings and no waiting between retries."""
    return GeneratorConfig(
        model=ModelConfig(deck_id=2059400110, word_model_id=1607392319, sentence_model_id=1607392320),
        azure=AzureConfig(region="eastasia", translator_key="translator-key", speech_key="speech-key"),
        openai=OpenAIConfig(api_key="openai-key"),
        mandarin=MandarinConfig(reading=ReadingStyle.PINYIN),
        network=NetworkConfig(timeout_seconds=1.0, retry_attempts=3,
                              retry_min_wait=0.0, retry_max_wait=0.0),
        max_concurrent_entries=4,
    )


@pytest.fixture
def make_controller(generator_config, dictionary):
    """Build a RunController around fake services; keyword arguments replace the fakes."""

    def factory(config=None, **services):
        fakes = {
            'translator': FakeTranslator(),
            'transliterator': FakeTransliterator(),
            'speech': FakeSpeech(),
            'related_words': FakeRelatedWords(),
            'dictionary': dictionary,
        }
        fakes.update(services)
        return RunController(config or generator_config, **fakes)

    return factory
