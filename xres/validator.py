#!/usr/bin/env python3
"""
Format-agnostic validation across the languages of one resource family.

Works purely on parsed ResourceFile objects: for each non-default language it
reports keys missing relative to the default language, extra keys, empty
values and duplicate keys. Every backend's validate() delegates here.
"""

from dataclasses import dataclass, field

from .models import KeyComparison, ResourceFile


@dataclass
class ValidationResult:
    """
    Issues per language code.

    Attributes:
        missing_keys: code -> keys present in the default language only
        extra_keys: code -> keys absent from the default language
        duplicate_keys: code -> keys occurring more than once in one file
        empty_values: code -> keys whose value is blank
        read_errors: code or file path -> error message for unreadable files
    """
    missing_keys: dict[str, list[str]] = field(default_factory=dict)
    extra_keys: dict[str, list[str]] = field(default_factory=dict)
    duplicate_keys: dict[str, list[str]] = field(default_factory=dict)
    empty_values: dict[str, list[str]] = field(default_factory=dict)
    read_errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.total_issues == 0

    @property
    def total_issues(self) -> int:
        return (
            sum(len(v) for v in self.missing_keys.values())
            + sum(len(v) for v in self.extra_keys.values())
            + sum(len(v) for v in self.duplicate_keys.values())
            + sum(len(v) for v in self.empty_values.values())
            + len(self.read_errors)
        )


class ResourceValidator:
    """
    Cross-language key checks.

    Keys are compared case-insensitively by default; pass
    KeyComparison.CASE_SENSITIVE for consumers that need exact matches.
    """

    def __init__(self, key_comparison: KeyComparison = KeyComparison.CASE_INSENSITIVE):
        self.key_comparison = key_comparison

    def validate(self, resource_files: list[ResourceFile]) -> ValidationResult:
        result = ValidationResult()
        if not resource_files:
            return result

        default_file = next((rf for rf in resource_files if rf.language.is_default), None)
        if default_file is None:
            return result

        default_keys = self._key_map(default_file)

        for resource_file in resource_files:
            code = resource_file.language.code

            duplicates = resource_file.duplicate_keys(self.key_comparison)
            if duplicates:
                result.duplicate_keys[code] = duplicates

            empty = [entry.key for entry in resource_file.entries if entry.is_empty]
            if empty:
                result.empty_values[code] = empty

            if resource_file is default_file:
                continue

            language_keys = self._key_map(resource_file)

            missing = [key for norm, key in default_keys.items() if norm not in language_keys]
            if missing:
                result.missing_keys[code] = missing

            extra = [key for norm, key in language_keys.items() if norm not in default_keys]
            if extra:
                result.extra_keys[code] = extra

        return result

    def _key_map(self, resource_file: ResourceFile) -> dict[str, str]:
        """Normalized key -> first spelling, in file order."""
        keys: dict[str, str] = {}
        for entry in resource_file.entries:
            keys.setdefault(self.key_comparison.normalize(entry.key), entry.key)
        return keys
