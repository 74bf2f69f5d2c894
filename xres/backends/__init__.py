#!/usr/bin/env python3
"""
Format backends for localization resource files.

Supported formats:
- iOS: .lproj/Localizable.strings + Localizable.stringsdict
- XLIFF: 1.2 and 2.0 (.xliff, .xlf)
- JSON: standard nested JSON and i18next flat JSON
"""

from .base import (
    BackendRegistry,
    ResourceBackend,
    promote_default,
    sort_languages,
)
from .ios import IosBackend, code_to_lproj, is_base_lproj, is_valid_lproj_folder, lproj_to_code
from .json_handler import JsonBackend, JsonFormat, detect_json_format
from .xliff import XliffBackend, XliffDiscoveryResult, detect_version

# Register backends (order is the auto-detection order, most specific first)
BackendRegistry.register(IosBackend)
BackendRegistry.register(XliffBackend, aliases=("xlf",))
BackendRegistry.register(JsonBackend)

__all__ = [
    'BackendRegistry',
    'ResourceBackend',
    'promote_default',
    'sort_languages',
    'IosBackend',
    'code_to_lproj',
    'is_base_lproj',
    'is_valid_lproj_folder',
    'lproj_to_code',
    'JsonBackend',
    'JsonFormat',
    'detect_json_format',
    'XliffBackend',
    'XliffDiscoveryResult',
    'detect_version',
]
