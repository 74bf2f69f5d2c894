"""
xres - multi-format localization resource codecs

Discovers language files in a project tree, reads them into one in-memory
model and writes that model back without losing keys, values, comments or
plural forms. Supports XLIFF 1.2/2.0, iOS .strings/.stringsdict, and JSON
(standard and i18next).

Quick start:
    from xres import BackendRegistry

    backend = BackendRegistry.resolve_from_path("Resources/")
    for language in backend.discover_languages("Resources/"):
        resource_file = backend.read(language)
"""

import logging

__version__ = "1.0.0"

from .backends import (
    BackendRegistry,
    IosBackend,
    JsonBackend,
    ResourceBackend,
    XliffBackend,
)
from .config import (
    IosFormatConfiguration,
    JsonFormatConfiguration,
    ResourceConfiguration,
    XliffFormatConfiguration,
)
from .errors import (
    InvalidTargetError,
    MalformedInputError,
    ResourceError,
    ResourceNotFoundError,
    UnsupportedStructureError,
)
from .models import KeyComparison, LanguageInfo, ResourceEntry, ResourceFile
from .validator import ResourceValidator, ValidationResult

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BackendRegistry",
    "ResourceBackend",
    "IosBackend",
    "JsonBackend",
    "XliffBackend",
    "ResourceConfiguration",
    "IosFormatConfiguration",
    "JsonFormatConfiguration",
    "XliffFormatConfiguration",
    "ResourceError",
    "ResourceNotFoundError",
    "MalformedInputError",
    "InvalidTargetError",
    "UnsupportedStructureError",
    "KeyComparison",
    "LanguageInfo",
    "ResourceEntry",
    "ResourceFile",
    "ResourceValidator",
    "ValidationResult",
]
