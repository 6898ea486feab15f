"""
Input line parsing.

Turns rows of the tabular input file into :class:`InputRecord` values and
records into :class:`Entry` values with the ``*...*`` highlight extracted.
"""

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import ErrorHandler, NoInputError
from ..models import Entry, HighlightSpan, InputRecord


logger = logging.getLogger(__name__)

HIGHLIGHT_MARKER = "*"


def _find_highlight(raw: str):
    """Return ``(start, end)`` marker indices of the first usable pair, or None."""
    start = raw.find(HIGHLIGHT_MARKER)
    while start != -1:
        end = raw.find(HIGHLIGHT_MARKER, start + 1)
        if end == -1:
            return None
        if raw[start + 1:end].strip():
            return start, end
        # "**" or "* *" carries nothing to highlight; both stars stay literal
        start = raw.find(HIGHLIGHT_MARKER, end + 1)
    return None


def parse(raw_line: str, user_translation: Optional[str] = None,
          line_number: int = 0) -> Entry:
    """
    Parse one raw Mandarin line into an Entry.

    The first pair of stars enclosing non-blank text marks the highlighted
    span; both markers are removed and the span offsets refer to the
    marker-free text. Any other star is kept as literal text. Never raises.

    Args:
        raw_line: Mandarin text, optionally containing ``*...*``
        user_translation: English translation supplied on the same line
        line_number: 1-based position in the input file

    Returns:
        Parsed entry

    Examples:
        >>> parse("*學* 習").highlighted_span
        HighlightSpan(text='學', start=0, end=1)

        >>> parse("a*b").text
        'a*b'
    """
    raw = (raw_line or "").strip()
    translation = (user_translation or "").strip() or None

    markers = _find_highlight(raw)
    if markers is None:
        if HIGHLIGHT_MARKER in raw:
            logger.debug(f"Line {line_number}: unmatched highlight markers kept as text: {raw!r}")
        return Entry(raw_text=raw, text=raw, user_translation=translation,
                     line_number=line_number)

    open_at, close_at = markers
    focus = raw[open_at + 1:close_at]
    text = raw[:open_at] + focus + raw[close_at + 1:]
    span = HighlightSpan(text=focus, start=open_at, end=open_at + len(focus))
    return Entry(raw_text=raw, text=text, highlighted_span=span,
                 user_translation=translation, line_number=line_number)


def parse_input_line(line: str, line_number: int = 0) -> Optional[InputRecord]:
    """
    Split one delimited input row into Mandarin text and optional translation.

    Columns after the first are rejoined with ", " so an unquoted English
    translation containing commas survives intact. Blank rows yield None.
    """
    if not line or not line.strip():
        return None

    try:
        row = next(csv.reader([line.strip()], skipinitialspace=True))
    except (csv.Error, StopIteration):
        row = [line.strip()]

    columns = [column.strip() for column in row]
    text = columns[0] if columns else ""
    translation = ", ".join(column for column in columns[1:] if column) or None
    if not text:
        return None
    return InputRecord(line_number=line_number, text=text, translation=translation)


def parse_input_lines(lines: Iterable[str]) -> List[InputRecord]:
    """Parse every non-blank row, keeping 1-based line numbers."""
    records = []
    for line_number, line in enumerate(lines, start=1):
        record = parse_input_line(line, line_number)
        if record is not None:
            records.append(record)
    return records


def read_input_file(path: Path) -> List[InputRecord]:
    """
    Read the input file.

    Args:
        path: UTF-8 delimited file, one record per line, no header

    Returns:
        Records for every non-blank line, in file order

    Raises:
        NoInputError: If the file cannot be read
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8-sig", newline="") as handle:
            records = parse_input_lines(handle)
    except (OSError, UnicodeDecodeError) as e:
        raise NoInputError(
            ErrorHandler().handle_no_input(f"Cannot read {path}: {e}", {'path': str(path)})
        )

    logger.info(f"Read {len(records)} records from {path}")
    return records
