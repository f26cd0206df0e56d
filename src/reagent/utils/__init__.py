"""
Utility helpers.
"""

from .doc_string_parser import parse_google_docstring

__all__ = ["parse_google_docstring"]
