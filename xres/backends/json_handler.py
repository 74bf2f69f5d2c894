#!/usr/bin/env python3
"""
JSON backend for standard and i18next-style localization files.

Standard mode: strings.json (default) + strings.fr.json, dotted keys may be
nested, plurals are {"_plural": true, "one": ..., "other": ...} objects and
comments wrap the value as {"_value": ..., "_comment": ...}.

i18next mode: en.json + fr.json, flat keys, plurals expanded to suffixed
siblings (items_one, items_other) and comments in "_<key>_comment" siblings.
"""

import dataclasses
import json
import logging
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ..config import JsonFormatConfiguration, ResourceConfiguration
from ..culture import DEFAULT_DISPLAY_NAME, get_display_name, is_language_code
from ..errors import MalformedInputError, ResourceError, UnsupportedStructureError
from ..fileio import atomic_write, remove_file
from ..models import PLURAL_CATEGORIES, LanguageInfo, ResourceEntry, ResourceFile
from .base import ResourceBackend, promote_default, sort_languages

logger = logging.getLogger(__name__)

META_KEY = "_meta"
VALUE_KEY = "_value"
COMMENT_KEY = "_comment"
PLURAL_KEY = "_plural"
GENERATOR = "xres"
META_VERSION = "1.0"

# Files starting with this prefix hold tool configuration, not resources
RESERVED_FILE_PREFIX = "lrm"

ENGLISH_DEFAULTS = ("en", "en-US", "en-GB")

_SUFFIXED_PLURAL = re.compile(r'^(.+)_(' + '|'.join(PLURAL_CATEGORIES) + r')$')
_SIDECAR_COMMENT = re.compile(r'^_(.+)_comment$')

_I18NEXT_INTERPOLATION = re.compile(r'\{\{[^}]+\}\}')
_INDEXED_INTERPOLATION = re.compile(r'\{\d+\}')
_I18NEXT_NESTING = re.compile(r'\$t\([^)]+\)')


class JsonFormat(Enum):
    UNKNOWN = "unknown"
    STANDARD = "standard"
    I18NEXT = "i18next"


def _resource_files(path: Union[str, Path]) -> list[Path]:
    """Top-level *.json files, minus tool configuration files."""
    root = Path(path)
    if not root.is_dir():
        return []
    return sorted(
        f for f in root.glob("*.json")
        if f.is_file() and not f.name.lower().startswith(RESERVED_FILE_PREFIX)
    )


def _score_content(content: str) -> tuple[int, int]:
    """(i18next, standard) score contributions of one file's content."""
    i18next = 0
    standard = 0
    if _I18NEXT_INTERPOLATION.search(content):
        i18next += 2
    if _INDEXED_INTERPOLATION.search(content):
        standard += 2
    if _I18NEXT_NESTING.search(content):
        i18next += 2

    try:
        data = json.loads(content)
    except ValueError:
        return i18next, standard

    def walk(obj: Any) -> None:
        nonlocal i18next, standard
        if not isinstance(obj, dict):
            return
        for name, value in obj.items():
            if name.startswith('_'):
                continue
            if _SUFFIXED_PLURAL.match(name.lower()):
                i18next += 3
            if ':' in name:
                i18next += 1
            elif '.' in name:
                standard += 1
            walk(value)

    walk(data)
    return i18next, standard


def detect_json_format(path: Union[str, Path]) -> JsonFormat:
    """
    Guess whether a directory holds standard or i18next JSON files.

    File names and the content of the first three files are scored; a
    format needs a lead and at least 3 points. Ties and low scores fall
    back to STANDARD. UNKNOWN means there are no JSON files at all.
    """
    files = _resource_files(path)
    if not files:
        return JsonFormat.UNKNOWN

    i18next_score = 0
    standard_score = 0

    for file_path in files:
        stem = file_path.stem
        if is_language_code(stem):
            i18next_score += 2
        elif '.' in stem and is_language_code(stem.rsplit('.', 1)[1]):
            standard_score += 2

    for file_path in files[:3]:
        try:
            i18n, std = _score_content(file_path.read_text(encoding="utf-8-sig"))
        except (OSError, ValueError) as e:
            logger.debug("Skipping %s during format detection: %s", file_path, e)
            continue
        i18next_score += i18n
        standard_score += std

    logger.debug("JSON format scores for %s: i18next=%d standard=%d", path, i18next_score, standard_score)
    if i18next_score > standard_score and i18next_score >= 3:
        return JsonFormat.I18NEXT
    return JsonFormat.STANDARD


class _JsonObject(dict):
    """JSON object that keeps the values a repeated member name overwrote."""

    def __init__(self, pairs: list[tuple[str, Any]]):
        super().__init__(pairs)
        self.shadowed: list[tuple[str, Any]] = []
        seen: dict[str, Any] = {}
        for name, value in pairs:
            if name in seen:
                self.shadowed.append((name, seen[name]))
            seen[name] = value


class JsonBackend(ResourceBackend):
    """
    Backend for JSON localization files.

    Standard structure:
    ```json
    {
      "Errors": {
        "NotFound": {"_value": "Not found", "_comment": "404 page"}
      },
      "items": {"_plural": true, "one": "1 item", "other": "{0} items"}
    }
    ```

    i18next structure:
    ```json
    {
      "items_one": "1 item",
      "items_other": "{{count}} items",
      "_items_comment": "Cart badge"
    }
    ```
    """

    def __init__(self, config: Optional[JsonFormatConfiguration] = None):
        self.config = config or JsonFormatConfiguration()

    @classmethod
    def from_configuration(cls, config: Optional[ResourceConfiguration] = None) -> "JsonBackend":
        return cls(config.json if config else None)

    @classmethod
    def i18next(cls, config: Optional[ResourceConfiguration] = None) -> "JsonBackend":
        """Backend in i18next mode, keeping any other JSON settings from config."""
        if config is None:
            return cls(JsonFormatConfiguration.i18next())
        return cls(dataclasses.replace(config.json, i18next_compatible=True, use_nested_keys=False))

    def for_path(self, path: Union[str, Path]) -> "JsonBackend":
        """Backend tuned to the JSON flavor detected under path."""
        if detect_json_format(path) is JsonFormat.I18NEXT and not self.config.i18next_compatible:
            logger.info("Detected i18next JSON files in %s", path)
            return JsonBackend(dataclasses.replace(
                self.config, i18next_compatible=True, use_nested_keys=False,
            ))
        return self

    @property
    def name(self) -> str:
        return "json"

    @property
    def file_extensions(self) -> list[str]:
        return [".json"]

    @property
    def is_i18next(self) -> bool:
        return self.config.i18next_compatible

    def can_handle(self, path: Union[str, Path]) -> bool:
        return bool(_resource_files(path))

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_languages(self, path: Union[str, Path]) -> list[LanguageInfo]:
        files = _resource_files(path)
        if not files:
            return []

        if self.is_i18next:
            languages = self._discover_i18next(files)
        else:
            languages = self._discover_standard(files)

        logger.debug("Discovered %d JSON languages under %s", len(languages), path)
        return sort_languages(languages)

    @staticmethod
    def _split_standard_name(file_path: Path) -> tuple[str, str]:
        """(base name, culture code) for strings.json / strings.fr.json."""
        stem = file_path.stem
        if '.' in stem:
            base, candidate = stem.rsplit('.', 1)
            if base and is_language_code(candidate):
                return base, candidate
        return stem, ""

    def _discover_standard(self, files: list[Path]) -> list[LanguageInfo]:
        groups: dict[str, list[tuple[Path, str]]] = {}
        for file_path in files:
            base, code = self._split_standard_name(file_path)
            groups.setdefault(base, []).append((file_path, code))

        wanted = self.config.base_name.lower()
        chosen = next((base for base in groups if base.lower() == wanted), None)
        if chosen is None:
            # Largest family wins; ties go to the alphabetically first base name
            chosen = sorted(groups, key=lambda base: (-len(groups[base]), base))[0]
            logger.debug("No '%s' JSON files, using resource family '%s'", self.config.base_name, chosen)

        languages = []
        for file_path, code in groups[chosen]:
            is_default = not code
            languages.append(LanguageInfo(
                code=code,
                base_name=chosen,
                name=DEFAULT_DISPLAY_NAME if is_default else get_display_name(code),
                is_default=is_default,
                file_path=str(file_path),
            ))
        promote_default(languages, clear_code=True)
        return languages

    def _analyze(self, file_path: Path) -> tuple[int, bool]:
        """(entry count, _meta.isDefault) for default-language inference."""
        try:
            data = self._load(file_path.read_bytes(), str(file_path))
        except (ResourceError, OSError) as e:
            logger.warning("Could not analyze %s: %s", file_path, e)
            return 0, False
        meta = data.get(META_KEY)
        meta_default = isinstance(meta, dict) and meta.get("isDefault") is True
        return len(self._parse(data)), meta_default

    def _discover_i18next(self, files: list[Path]) -> list[LanguageInfo]:
        candidates = []
        for file_path in files:
            code = file_path.stem
            if not is_language_code(code):
                logger.debug("Ignoring %s: not named after a culture", file_path)
                continue
            count, meta_default = self._analyze(file_path)
            candidates.append((file_path, code, count, meta_default))

        if not candidates:
            return []

        default_code = self._infer_default_language(candidates)
        languages = []
        for file_path, code, _, _ in candidates:
            is_default = code.lower() == default_code.lower()
            languages.append(LanguageInfo(
                code="" if is_default else code,
                base_name=self.config.base_name,
                name=DEFAULT_DISPLAY_NAME if is_default else get_display_name(code),
                is_default=is_default,
                file_path=str(file_path),
            ))
        return languages

    def _infer_default_language(self, candidates: list[tuple[Path, str, int, bool]]) -> str:
        """
        Pick the default among i18next files.

        Priority: configured default, _meta.isDefault, strictly most entries,
        en / en-US / en-GB, first code alphabetically.
        """
        configured = self.config.default_language_code
        if configured:
            for _, code, _, _ in candidates:
                if code.lower() == configured.lower():
                    return code

        for _, code, _, meta_default in candidates:
            if meta_default:
                return code

        by_count = sorted(candidates, key=lambda c: c[2], reverse=True)
        if len(by_count) >= 2 and by_count[0][2] > by_count[1][2]:
            return by_count[0][1]

        for english in ENGLISH_DEFAULTS:
            for _, code, _, _ in candidates:
                if code.lower() == english.lower():
                    return code

        return sorted(code for _, code, _, _ in candidates)[0]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, language: LanguageInfo) -> ResourceFile:
        path = self._require_source(language)
        return self.read_text(path.read_bytes(), language)

    def read_text(self, content: Union[str, bytes], language: LanguageInfo) -> ResourceFile:
        """Parse JSON content that is already in memory."""
        data = self._load(content, language.file_path or None)
        entries = self._parse(data)
        logger.debug("Read %d entries from %s", len(entries), language.file_path)
        return ResourceFile(language=language.copy(), entries=entries)

    @staticmethod
    def _load(content: Union[str, bytes], path: Optional[str]) -> dict:
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise MalformedInputError(f"JSON file is not valid UTF-8: {e}", path) from e
        try:
            data = json.loads(content, object_pairs_hook=_JsonObject)
        except json.JSONDecodeError as e:
            raise MalformedInputError(f"Invalid JSON: {e.msg}", path, line=e.lineno) from e
        if not isinstance(data, dict):
            raise MalformedInputError("JSON root must be an object", path)
        return data

    def _parse(self, data: dict) -> list[ResourceEntry]:
        entries: list[ResourceEntry] = []
        self._walk(data, "", entries)
        if self.is_i18next:
            entries = self._merge_suffixed_plurals(entries)
            self._apply_sidecar_comments(data, entries)
        return entries

    def _walk(self, obj: dict, prefix: str, entries: list[ResourceEntry]) -> None:
        """
        Flatten obj into entries.

        A member name repeated in one object yields one entry per value: the
        last value first, so lookups see what json.loads keeps, then the
        overwritten ones so validation reports the duplicate.
        """
        shadowed = getattr(obj, "shadowed", [])
        for name, value in obj.items():
            # _meta, _comment and sidecar keys are never entries
            if name.startswith('_'):
                continue
            key = f"{prefix}.{name}" if prefix else name

            self._walk_value(key, value, entries)
            for earlier in [v for n, v in shadowed if n == name]:
                logger.warning("Duplicate JSON key '%s'; the last value wins", key)
                self._walk_value(key, earlier, entries)

    def _walk_value(self, key: str, value: Any, entries: list[ResourceEntry]) -> None:
        if isinstance(value, dict):
            try:
                self._parse_object(value, key, entries)
            except UnsupportedStructureError as e:
                logger.warning("Dropping JSON entry: %s", e)
        else:
            entries.append(self._scalar_entry(key, value))

    @staticmethod
    def _scalar_entry(key: str, value: Any) -> ResourceEntry:
        if value is None:
            return ResourceEntry(key=key, value="")
        if isinstance(value, str):
            return ResourceEntry(key=key, value=value)
        if isinstance(value, bool):
            return ResourceEntry(key=key, value="true" if value else "false", metadata={"type": "boolean"})
        if isinstance(value, (int, float)):
            return ResourceEntry(key=key, value=json.dumps(value), metadata={"type": "number"})
        return ResourceEntry(
            key=key,
            value=json.dumps(value, ensure_ascii=False),
            metadata={"type": "array"},
        )

    @staticmethod
    def _string_forms(obj: dict) -> dict[str, str]:
        return {
            category: obj[category]
            for category in PLURAL_CATEGORIES
            if isinstance(obj.get(category), str)
        }

    def _parse_object(self, obj: dict, key: str, entries: list[ResourceEntry]) -> None:
        comment = obj.get(COMMENT_KEY) if isinstance(obj.get(COMMENT_KEY), str) else None

        if VALUE_KEY in obj:
            value = obj[VALUE_KEY]
            entry = self._scalar_entry(key, value)
            entry.comment = comment or None
            entries.append(entry)
            return

        if PLURAL_KEY in obj:
            forms = {}
            if isinstance(obj[PLURAL_KEY], dict):
                forms.update(self._string_forms(obj[PLURAL_KEY]))
            forms.update(self._string_forms(obj))
            if not forms:
                raise UnsupportedStructureError(f"Plural '{key}' has no forms")
            entries.append(ResourceEntry.plural(key, self._ordered(forms), comment=comment))
            return

        if self.is_i18next:
            forms = self._string_forms(obj)
            if len(forms) >= 2:
                entries.append(ResourceEntry.plural(key, forms, comment=comment))
                return

        self._walk(obj, key, entries)

    @staticmethod
    def _ordered(forms: dict[str, str]) -> dict[str, str]:
        return {category: forms[category] for category in PLURAL_CATEGORIES if category in forms}

    def _merge_suffixed_plurals(self, entries: list[ResourceEntry]) -> list[ResourceEntry]:
        """Fold items_one / items_other siblings into one plural entry."""
        groups: dict[str, dict[str, ResourceEntry]] = {}
        for entry in entries:
            if entry.is_plural or entry.metadata:
                continue
            match = _SUFFIXED_PLURAL.match(entry.key)
            if match:
                groups.setdefault(match.group(1), {}).setdefault(match.group(2), entry)

        plural_bases = {base: forms for base, forms in groups.items() if len(forms) >= 2}
        if not plural_bases:
            return entries

        merged: list[ResourceEntry] = []
        emitted = set()
        for entry in entries:
            match = _SUFFIXED_PLURAL.match(entry.key)
            base = match.group(1) if match else None
            if base not in plural_bases or entry is not plural_bases[base].get(match.group(2)):
                merged.append(entry)
                continue
            if base in emitted:
                continue
            emitted.add(base)
            forms = {category: e.value for category, e in plural_bases[base].items()}
            merged.append(ResourceEntry.plural(base, self._ordered(forms)))
        return merged

    @staticmethod
    def _apply_sidecar_comments(data: dict, entries: list[ResourceEntry]) -> None:
        by_key = {entry.key: entry for entry in entries}
        for name, value in data.items():
            match = _SIDECAR_COMMENT.match(name)
            if match and isinstance(value, str) and match.group(1) in by_key:
                by_key[match.group(1)].comment = value or None

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, resource_file: ResourceFile) -> None:
        target = self._require_target(resource_file)
        atomic_write(target, self.serialize(resource_file))
        logger.debug("Wrote %d entries to %s", len(resource_file.entries), target)

    def serialize(self, resource_file: ResourceFile) -> str:
        """Render a resource file as indented JSON (UTF-8, no ASCII escaping)."""
        return json.dumps(self._build(resource_file), indent=2, ensure_ascii=False) + "\n"

    def _build(self, resource_file: ResourceFile) -> dict:
        root: dict[str, Any] = {}
        language = resource_file.language

        if self.config.include_meta:
            meta: dict[str, Any] = {
                "version": META_VERSION,
                "generator": GENERATOR,
                "updatedAt": datetime.now(timezone.utc).isoformat(),
            }
            if language.code:
                meta["culture"] = language.code
            if self.is_i18next and language.is_default:
                meta["isDefault"] = True
            root[META_KEY] = meta

        nestable = self._nestable_keys(resource_file.entries) if self.config.use_nested_keys else set()
        sidecar_comments = self.is_i18next and self.config.preserve_comments

        for entry in resource_file.entries:
            if entry.key.startswith('_'):
                logger.warning(
                    "Key '%s' starts with '_' and will be ignored when %s is read back",
                    entry.key,
                    language.file_path or "the file",
                )
            if self.is_i18next and entry.is_plural and entry.plural_forms:
                for category, form in entry.plural_forms.items():
                    root[f"{entry.key}_{category}"] = form or ""
            else:
                value = self._entry_value(entry)
                if entry.key in nestable:
                    self._set_nested(root, entry.key.split('.'), value)
                else:
                    root[entry.key] = value

            if sidecar_comments and entry.comment:
                root[f"_{entry.key}_comment"] = entry.comment

        return root

    def _entry_value(self, entry: ResourceEntry) -> Any:
        inline_comment = (
            self.config.preserve_comments and not self.is_i18next and bool(entry.comment)
        )

        if entry.is_plural and entry.plural_forms:
            value: dict[str, Any] = {PLURAL_KEY: True}
            value.update({category: form or "" for category, form in entry.plural_forms.items()})
            if inline_comment:
                value[COMMENT_KEY] = entry.comment
            return value

        native = self._native_value(entry)
        if inline_comment:
            return {VALUE_KEY: native, COMMENT_KEY: entry.comment}
        return native

    @staticmethod
    def _native_value(entry: ResourceEntry) -> Any:
        """Convert arrays, numbers and booleans read from JSON back to JSON types."""
        value_type = entry.metadata.get("type")
        if value_type not in ("array", "number", "boolean"):
            return entry.value or ""
        try:
            parsed = json.loads(entry.value)
        except ValueError:
            return entry.value or ""
        expected = {
            "array": list,
            "number": (int, float),
            "boolean": bool,
        }[value_type]
        if value_type == "number" and isinstance(parsed, bool):
            return entry.value
        if isinstance(parsed, expected):
            return parsed
        return entry.value or ""

    @staticmethod
    def _nestable_keys(entries: list[ResourceEntry]) -> set[str]:
        """
        Dotted keys that can be written as nested objects.

        A key stays flat when a segment is empty or starts with '_', or when
        one of its prefixes is itself a key, since nesting would overwrite it.
        """
        keys = {entry.key for entry in entries}
        nestable = set()
        for key in keys:
            if '.' not in key:
                continue
            parts = key.split('.')
            if any(not part or part.startswith('_') for part in parts):
                continue
            prefixes = ('.'.join(parts[:i]) for i in range(1, len(parts)))
            if any(prefix in keys for prefix in prefixes):
                continue
            nestable.add(key)
        return nestable

    @staticmethod
    def _set_nested(root: dict, parts: list[str], value: Any) -> None:
        current = root
        for part in parts[:-1]:
            child = current.get(part)
            if not isinstance(child, dict):
                child = {}
                current[part] = child
            current = child
        current[parts[-1]] = value

    # ------------------------------------------------------------------
    # Language files
    # ------------------------------------------------------------------

    def language_file_name(self, base_name: str, culture_code: str) -> str:
        if self.is_i18next:
            return f"{culture_code}.json"
        if not culture_code:
            return f"{base_name}.json"
        return f"{base_name}.{culture_code}.json"

    def create_language_file(
        self,
        base_name: str,
        culture_code: str,
        target_path: Union[str, Path],
        source_file: Optional[ResourceFile] = None,
        copy_entries: bool = True,
    ) -> LanguageInfo:
        is_default = not culture_code
        language = LanguageInfo(
            code=culture_code,
            base_name=base_name,
            name=DEFAULT_DISPLAY_NAME if is_default else get_display_name(culture_code),
            is_default=is_default,
            file_path=str(Path(target_path) / self.language_file_name(base_name, culture_code)),
        )
        entries = []
        if copy_entries and source_file is not None:
            entries = [entry.blank() for entry in source_file.entries]

        self.write(ResourceFile(language=language, entries=entries))
        logger.info("Created JSON language file %s", language.file_path)
        return language

    def delete_language_file(self, language: LanguageInfo) -> None:
        if language.file_path:
            remove_file(language.file_path)
