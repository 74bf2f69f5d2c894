#!/usr/bin/env python3
"""
Culture code helpers shared by the format backends.

Display names and plausibility checks come from Babel's CLDR locale data.
The 2-letter and language-region regex heuristics run first so that common
codes never depend on the locale database.
"""

import functools
import re
from pathlib import Path
from typing import Optional

from babel import Locale, UnknownLocaleError


DEFAULT_DISPLAY_NAME = "Default"

_TWO_LETTER = re.compile(r'^[A-Za-z]{2}$')
_LANGUAGE_REGION = re.compile(r'^[A-Za-z]{2}[-_](?:[A-Za-z]{2}|[0-9]{3})$')


def normalize_code(code: str) -> str:
    """Convert a culture code to Babel's POSIX form (pt-BR -> pt_BR)."""
    return code.replace("-", "_")


@functools.lru_cache(maxsize=256)
def _parse_locale(code: str) -> Optional[Locale]:
    try:
        return Locale.parse(normalize_code(code))
    except (UnknownLocaleError, ValueError, TypeError):
        return None


def is_valid_culture_code(code: str) -> bool:
    """Whether CLDR knows a locale for this code."""
    if not code:
        return False
    return _parse_locale(code) is not None


def is_language_code(code: str) -> bool:
    """
    Heuristic check used when guessing a language from a file name.

    Accepts 2-letter codes (en, fr), language-region codes (en-US, pt_BR,
    es-419) and anything else CLDR recognizes.
    """
    if not code:
        return False
    if _TWO_LETTER.match(code) or _LANGUAGE_REGION.match(code):
        return True
    return is_valid_culture_code(code)


def get_display_name(code: str) -> str:
    """
    Human-readable label for a culture code.

    Uses the locale's native name, e.g. "français (fr)". Unknown codes fall
    back to the upper-cased code.
    """
    if not code:
        return DEFAULT_DISPLAY_NAME
    locale = _parse_locale(code)
    if locale is None or not locale.display_name:
        return code.upper()
    return f"{locale.display_name} ({code})"


def language_from_file_name(file_path: str) -> Optional[str]:
    """
    Extract a language code from a file name.

    Supports patterns like: file.en.xliff, file_en.xliff, file-pt-BR.xliff,
    en.xliff
    """
    stem = Path(file_path).stem

    if '.' in stem:
        candidate = stem.rsplit('.', 1)[1]
        if is_language_code(candidate):
            return candidate

    if '_' in stem:
        candidate = stem.rsplit('_', 1)[1]
        if is_language_code(candidate):
            return candidate

    if '-' in stem:
        parts = stem.split('-')
        if len(parts) >= 2:
            regional = f"{parts[-2]}-{parts[-1]}"
            if is_language_code(regional):
                return regional
        if is_language_code(parts[-1]):
            return parts[-1]

    if is_language_code(stem):
        return stem

    return None


def strip_language_suffix(file_path: str, code: str, fallback: str = "resources") -> str:
    """
    Base name of a language file with its language suffix removed.

    A file named exactly after its language ("fr.xliff") gets fallback.
    """
    stem = Path(file_path).stem
    if not code:
        return stem

    lowered = stem.lower()
    suffix = code.lower()
    if lowered == suffix:
        return fallback
    for separator in ('.', '_', '-'):
        if lowered.endswith(f"{separator}{suffix}"):
            return stem[:-(len(code) + 1)]
    return stem
