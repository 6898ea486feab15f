"""
Dictionary lookup, reading conversion and tokenization for Mandarin text.
"""

from .cedict import DictionaryEntry, parse_cedict_lines
from .repository import CedictDictionary, MandarinDictionary, BundledDictionary, load_dictionary
from .tokenizer import Tokenizer, classify

__all__ = [
    'DictionaryEntry',
    'parse_cedict_lines',
    'MandarinDictionary',
    'CedictDictionary',
    'BundledDictionary',
    'load_dictionary',
    'Tokenizer',
    'classify',
]
