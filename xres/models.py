#!/usr/bin/env python3
"""
Resource model shared by every format backend.

LanguageInfo identifies one language file of a resource family, ResourceEntry
is one key's content in one language, and ResourceFile ties them together.
Backends build fresh instances on every read; nothing here is cached.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


# CLDR plural categories, in canonical order
PLURAL_CATEGORIES = ("zero", "one", "two", "few", "many", "other")


class KeyComparison(Enum):
    """
    How resource keys are compared for lookups and duplicate detection.

    Code-scanning consumers treat keys as case-sensitive while the generic
    validator treats them as case-insensitive. Both are kept explicit here
    instead of picking one.
    """
    CASE_SENSITIVE = "case-sensitive"
    CASE_INSENSITIVE = "case-insensitive"

    def normalize(self, key: str) -> str:
        """Return the form of key used for comparisons."""
        if self is KeyComparison.CASE_INSENSITIVE:
            return key.casefold()
        return key

    def equals(self, a: str, b: str) -> bool:
        return self.normalize(a) == self.normalize(b)


@dataclass
class LanguageInfo:
    """
    Descriptor for one language variant of a resource family.

    Attributes:
        code: Culture code ("fr", "pt-BR"); "" denotes the default language
        base_name: Resource family name shared by all languages ("strings")
        name: Human-readable label derived from the code
        is_default: True for the source/development language
        file_path: Backing file (for iOS, the .strings path even when only
            the .stringsdict sibling exists)
    """
    code: str = ""
    base_name: str = ""
    name: str = ""
    is_default: bool = False
    file_path: str = ""

    def copy(self) -> "LanguageInfo":
        return LanguageInfo(
            code=self.code,
            base_name=self.base_name,
            name=self.name,
            is_default=self.is_default,
            file_path=self.file_path,
        )


@dataclass
class ResourceEntry:
    """
    One key's content in one language.

    Attributes:
        key: Unique identifier within a resource file
        value: Flat string form; for plurals the "other" form (or first form)
        comment: Optional annotation, None when absent (never "")
        is_plural: Whether plural_forms carries the real content
        plural_forms: CLDR category -> localized string
        metadata: Format-specific data that must survive a round trip of the
            same format (stringsdict variable name, JSON array marker, ...)
    """
    key: str
    value: str = ""
    comment: Optional[str] = None
    is_plural: bool = False
    plural_forms: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Normalize key to string and empty comments to None."""
        self.key = str(self.key)
        if self.value is None:
            self.value = ""
        if not self.comment:
            self.comment = None

    @classmethod
    def plural(
        cls,
        key: str,
        forms: dict[str, str],
        comment: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ResourceEntry":
        """Build a plural entry whose flat value is projected from its forms."""
        return cls(
            key=key,
            value=project_plural_value(forms),
            comment=comment,
            is_plural=True,
            plural_forms=dict(forms),
            metadata=dict(metadata or {}),
        )

    @property
    def is_empty(self) -> bool:
        """True when the entry carries no translatable text."""
        if self.is_plural and self.plural_forms:
            return all(not (v or "").strip() for v in self.plural_forms.values())
        return not (self.value or "").strip()

    def copy(self) -> "ResourceEntry":
        return ResourceEntry(
            key=self.key,
            value=self.value,
            comment=self.comment,
            is_plural=self.is_plural,
            plural_forms=dict(self.plural_forms),
            metadata=copy.deepcopy(self.metadata),
        )

    def blank(self) -> "ResourceEntry":
        """Copy of this entry with the value and every plural form emptied."""
        entry = self.copy()
        entry.value = ""
        entry.plural_forms = {category: "" for category in self.plural_forms}
        return entry


def project_plural_value(forms: dict[str, str]) -> str:
    """Flat value for a plural entry: the "other" form, else the first form."""
    if "other" in forms:
        return forms["other"] or ""
    for value in forms.values():
        return value or ""
    return ""


@dataclass
class ResourceFile:
    """A language descriptor plus its ordered entries."""
    language: LanguageInfo
    entries: list[ResourceEntry] = field(default_factory=list)

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def get(
        self,
        key: str,
        comparison: KeyComparison = KeyComparison.CASE_SENSITIVE,
    ) -> Optional[ResourceEntry]:
        """Find the first entry matching key under the given comparison."""
        wanted = comparison.normalize(key)
        for entry in self.entries:
            if comparison.normalize(entry.key) == wanted:
                return entry
        return None

    def duplicate_keys(
        self,
        comparison: KeyComparison = KeyComparison.CASE_SENSITIVE,
    ) -> list[str]:
        """Keys that occur more than once, reported by their first spelling."""
        seen: dict[str, str] = {}
        duplicates: dict[str, str] = {}
        for entry in self.entries:
            normalized = comparison.normalize(entry.key)
            if normalized in seen:
                duplicates.setdefault(normalized, seen[normalized])
            else:
                seen[normalized] = entry.key
        return list(duplicates.values())
