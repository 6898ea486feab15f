"""
Tests for core data models.
"""

import dataclasses

import pytest

from mandarin_anki_generator.models import (
    EntryKind,
    LineOutcome,
    PackageNote,
    RunState,
    RunStatus,
    Segment,
)


class TestRunStatus:
    """Test terminal run states."""

    def test_without_issues(self):
        status = RunStatus.completed(0)
        assert status.state is RunState.COMPLETED_WITHOUT_ISSUES
        assert str(status) == "CompletedWithoutIssues"
        assert not status.is_fatal

    def test_with_warnings(self):
        status = RunStatus.completed(3)
        assert status.state is RunState.COMPLETED_WITH_WARNINGS
        assert str(status) == "CompletedWithWarnings(3)"

    def test_failed(self):
        status = RunStatus.failed("No input entries found")
        assert status.is_fatal
        assert str(status) == "FailedFatal(No input entries found)"


class TestRecords:
    """Test small record helpers."""

    def test_line_outcome(self):
        assert LineOutcome(1, "平反").ok
        assert not LineOutcome(1, "平反", ("speech service unavailable",)).ok

    def test_package_note_fields(self):
        note = PackageNote(
            kind=EntryKind.SENTENCE,
            model_id=1,
            fields=(("Hanzi", "學"), ("Meaning", "to study")),
            guid="abc",
        )
        assert note.field("Meaning") == "to study"
        assert note.field_values == ["學", "to study"]

    def test_models_are_frozen(self):
        segment = Segment(hanzi="學", reading="xué")
        with pytest.raises(dataclasses.FrozenInstanceError):
            segment.reading = "xiáo"
