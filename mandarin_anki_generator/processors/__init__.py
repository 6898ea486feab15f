"""
Processors module for parsing input lines.
"""

from .line_parser import parse, parse_input_line, parse_input_lines, read_input_file

__all__ = [
    'parse',
    'parse_input_line',
    'parse_input_lines',
    'read_input_file',
]
