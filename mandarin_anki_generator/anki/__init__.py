"""
Anki package generation module for Mandarin word and sentence cards.

This module assembles notes from enriched entries and writes complete .apkg
files with embedded audio.
"""

from .templates import MandarinCardTemplate, CardFormatter
from .package_generator import PackageAssembler, PackageWriter, PackageValidator
from .naming import media_filename, note_guid

__all__ = [
    'MandarinCardTemplate',
    'CardFormatter',
    'PackageAssembler',
    'PackageWriter',
    'PackageValidator',
    'media_filename',
    'note_guid',
]
