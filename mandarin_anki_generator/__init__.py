"""
Mandarin Anki Generator.

Turns Mandarin sentences and words into Anki cards with translations,
readings, synthesized audio and related vocabulary.
"""

__version__ = "0.1.0"
