#!/usr/bin/env python3
"""
Per-format configuration.

Loading configuration files is the caller's job; these dataclasses only hold
the values the backends consume.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


# Hidden directory the surrounding tool uses for backups and metadata.
# Never scanned for resource files.
METADATA_DIR = ".lrm"


@dataclass
class XliffFormatConfiguration:
    """
    XLIFF settings.

    Attributes:
        version: Version written by the serializer ("1.2" or "2.0")
        file_extension: Extension for new language files (".xliff" or ".xlf")
        bilingual: Write the value into <source> for every language
            (source-only export) instead of key-as-source plus <target>
        source_language: srcLang written when the default language has no code
    """
    version: str = "1.2"
    file_extension: str = ".xliff"
    bilingual: bool = False
    source_language: str = "en"


@dataclass
class IosFormatConfiguration:
    """
    iOS settings.

    Attributes:
        base_name: File stem shared by .strings and .stringsdict
        development_language: Language Base.lproj maps to; inferred when None
    """
    base_name: str = "Localizable"
    development_language: Optional[str] = None

    @property
    def strings_file_name(self) -> str:
        return f"{self.base_name}.strings"

    @property
    def stringsdict_file_name(self) -> str:
        return f"{self.base_name}.stringsdict"


@dataclass
class JsonFormatConfiguration:
    """
    JSON settings.

    Attributes:
        base_name: Resource family name (standard mode file prefix)
        use_nested_keys: Write dotted keys as nested objects
        preserve_comments: Keep comments (_value/_comment or sidecar keys)
        include_meta: Emit a _meta object
        i18next_compatible: Flat keys, suffix plurals, <code>.json naming
        default_language_code: Explicit default language for i18next discovery
    """
    base_name: str = "strings"
    use_nested_keys: bool = True
    preserve_comments: bool = True
    include_meta: bool = False
    i18next_compatible: bool = False
    default_language_code: Optional[str] = None

    @classmethod
    def i18next(cls, **overrides: Any) -> "JsonFormatConfiguration":
        """Preset for i18next-style projects."""
        values = {"i18next_compatible": True, "use_nested_keys": False}
        values.update(overrides)
        return cls(**values)


@dataclass
class ResourceConfiguration:
    """Settings for all backends, as handed over by the configuration layer."""
    default_language_code: Optional[str] = None
    xliff: XliffFormatConfiguration = field(default_factory=XliffFormatConfiguration)
    ios: IosFormatConfiguration = field(default_factory=IosFormatConfiguration)
    json: JsonFormatConfiguration = field(default_factory=JsonFormatConfiguration)

    @classmethod
    def from_dict(cls, data: dict) -> "ResourceConfiguration":
        """Create from an already-parsed configuration dictionary."""
        default_language = data.get("default_language_code")

        ios_data = dict(data.get("ios") or {})
        ios_data.setdefault("development_language", default_language)

        json_data = dict(data.get("json") or {})
        json_data.setdefault("default_language_code", default_language)

        return cls(
            default_language_code=default_language,
            xliff=XliffFormatConfiguration(**(data.get("xliff") or {})),
            ios=IosFormatConfiguration(**ios_data),
            json=JsonFormatConfiguration(**json_data),
        )
