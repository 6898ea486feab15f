"""
Tests for input line parsing and highlight extraction.
"""

import pytest
from hypothesis import given, strategies as st

from mandarin_anki_generator.errors import NoInputError
from mandarin_anki_generator.models import HighlightSpan, InputRecord
from mandarin_anki_generator.processors.line_parser import (
    parse,
    parse_input_line,
    parse_input_lines,
    read_input_file,
)


class TestParse:
    """Test highlight extraction on single lines."""

    def test_plain_line(self):
        entry = parse("我今天很忙。")
        assert entry.text == "我今天很忙。"
        assert entry.raw_text == "我今天很忙。"
        assert entry.highlighted_span is None
        assert not entry.has_highlight

    def test_highlight_at_start(self):
        entry = parse("*學* 習")
        assert entry.text == "學 習"
        assert entry.raw_text == "*學* 習"
        assert entry.highlighted_span == HighlightSpan(text="學", start=0, end=1)

    def test_highlight_in_middle(self):
        entry = parse("我*今天*很忙")
        assert entry.text == "我今天很忙"
        span = entry.highlighted_span
        assert span.text == "今天"
        assert entry.text[span.start:span.end] == "今天"

    def test_unmatched_star_is_literal(self):
        entry = parse("a*b")
        assert entry.text == "a*b"
        assert entry.highlighted_span is None

    def test_empty_pair_is_literal(self):
        entry = parse("我**很忙")
        assert entry.text == "我**很忙"
        assert entry.highlighted_span is None

    def test_only_first_pair_is_used(self):
        entry = parse("*我*很*忙*")
        assert entry.highlighted_span.text == "我"
        assert entry.text == "我很*忙*"

    def test_blank_pair_skipped_for_later_pair(self):
        entry = parse("* *我*很*")
        assert entry.highlighted_span.text == "很"
        assert entry.text == "* *我很"

    def test_translation_is_trimmed(self):
        entry = parse(" 平反 ", "  to redress  ", line_number=3)
        assert entry.text == "平反"
        assert entry.user_translation == "to redress"
        assert entry.line_number == 3

    def test_blank_translation_becomes_none(self):
        assert parse("平反", "   ").user_translation is None

    def test_none_line(self):
        entry = parse(None)
        assert entry.text == ""
        assert entry.highlighted_span is None


class TestInputRows:
    """Test splitting delimited rows into records."""

    def test_text_only(self):
        assert parse_input_line("平反", 1) == InputRecord(line_number=1, text="平反")

    def test_text_and_translation(self):
        record = parse_input_line("*學* 習, to study", 2)
        assert record.text == "*學* 習"
        assert record.translation == "to study"

    def test_unquoted_commas_stay_in_translation(self):
        record = parse_input_line("我很忙。, I am busy, very busy", 1)
        assert record.translation == "I am busy, very busy"

    def test_quoted_translation(self):
        record = parse_input_line('平反,"to redress, to rehabilitate"', 1)
        assert record.translation == "to redress, to rehabilitate"

    def test_blank_rows(self):
        assert parse_input_line("", 1) is None
        assert parse_input_line("   \n", 1) is None
        assert parse_input_line(", only a translation", 1) is None

    def test_line_numbers_count_blank_rows(self):
        records = parse_input_lines(["我", "", "你, you\n"])
        assert [record.line_number for record in records] == [1, 3]
        assert records[1].translation == "you"


class TestReadInputFile:
    """Test reading the input file from disk."""

    def test_reads_utf8_with_bom(self, tmp_path):
        path = tmp_path / "input.csv"
        path.write_text("\ufeff*學* 習, to study\n\n平反\n", encoding="utf-8")

        records = read_input_file(path)

        assert [record.text for record in records] == ["*學* 習", "平反"]
        assert records[1].line_number == 3

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(NoInputError) as exc_info:
            read_input_file(tmp_path / "missing.csv")
        assert exc_info.value.processing_error.error_code == "INPUT_001"

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / "latin1.csv"
        path.write_bytes("café".encode("latin-1"))
        with pytest.raises(NoInputError):
            read_input_file(path)


@pytest.mark.property
class TestParseProperties:
    """Property-based checks on highlight extraction."""

    @given(st.text(alphabet="學習我很忙 *,.a", max_size=30))
    def test_parse_never_raises_and_span_points_into_text(self, raw):
        entry = parse(raw)

        assert entry.raw_text == raw.strip()
        span = entry.highlighted_span
        if span is None:
            assert entry.text == entry.raw_text
        else:
            assert span.text.strip()
            assert entry.text[span.start:span.end] == span.text
            assert len(entry.text) == len(entry.raw_text) - 2
