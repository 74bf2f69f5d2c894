#!/usr/bin/env python3
"""
XLIFF 1.2 / 2.0 backend.

Both versions share one discovery, read and write path keyed by the detected
version. A bilingual file yields two languages (its source language, which is
the default, and its target language); reading as the default language returns
<source> text, reading as any other language returns <target> text.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from lxml import etree

from ..config import ResourceConfiguration, XliffFormatConfiguration
from ..culture import get_display_name, language_from_file_name, strip_language_suffix
from ..errors import MalformedInputError, ResourceError, UnsupportedStructureError
from ..fileio import atomic_write, is_metadata_path, remove_file
from ..models import PLURAL_CATEGORIES, LanguageInfo, ResourceEntry, ResourceFile
from ..xmlsafe import child_elements, first_child, local_name, namespace_of, parse_xml, text_content
from .base import ResourceBackend, promote_default, sort_languages

logger = logging.getLogger(__name__)

XLIFF_12_NAMESPACE = "urn:oasis:names:tc:xliff:document:1.2"
XLIFF_20_NAMESPACE = "urn:oasis:names:tc:xliff:document:2.0"

PLURAL_GROUP_RESTYPE = "x-gettext-plurals"
TOOL_ID = "xres"


def detect_version(root: etree._Element) -> str:
    """
    Detect the XLIFF version of a parsed document.

    Checked in order, first match wins: namespace URI, version attribute,
    srcLang (2.0) vs source-language (1.2). Defaults to 1.2.
    """
    namespace = namespace_of(root)
    if "2.0" in namespace:
        return "2.0"
    if "1.2" in namespace:
        return "1.2"

    version = root.get("version") or ""
    if version.startswith("2"):
        return "2.0"
    if version.startswith("1"):
        return "1.2"

    if root.get("srcLang") is not None:
        return "2.0"
    if root.get("source-language") is not None:
        return "1.2"
    file_element = first_child(root, "file")
    if file_element is not None and file_element.get("source-language") is not None:
        return "1.2"

    return "1.2"


def detect_version_from_file(file_path: Union[str, Path]) -> str:
    """Detect the version of an XLIFF file on disk."""
    root = _parse_xliff(Path(file_path).read_bytes(), str(file_path))
    return detect_version(root)


def extract_plural_category(unit_id: str) -> Optional[str]:
    """
    Plural category encoded in a trans-unit id.

    Recognizes "key[one]" and the underscore forms "key_one" /
    "key_plural_one". Returns None when the id carries no CLDR category.
    """
    start = unit_id.rfind('[')
    end = unit_id.rfind(']')
    if start >= 0 and end > start:
        category = unit_id[start + 1:end].strip().lower()
        return category if category in PLURAL_CATEGORIES else None

    lowered = unit_id.lower()
    for category in PLURAL_CATEGORIES:
        if lowered.endswith(f"_{category}"):
            return category
    return None


def _parse_xliff(content: Union[str, bytes], path: Optional[str] = None) -> etree._Element:
    root = parse_xml(content, path)
    if local_name(root) != "xliff":
        raise MalformedInputError(
            f"Root element is <{local_name(root)}>, expected <xliff>", path
        )
    return root


def _notes(elements: list) -> Optional[str]:
    texts = [text_content(note) for note in elements]
    joined = "\n".join(t for t in texts if t)
    return joined or None


@dataclass
class XliffDiscoveryResult:
    """What a directory of XLIFF files looks like, for configuration setup."""
    version: str = "1.2"
    file_extension: str = ".xliff"
    source_language: Optional[str] = None
    bilingual: bool = False
    languages: list[str] = field(default_factory=list)


class XliffBackend(ResourceBackend):
    """
    Backend for XLIFF 1.2 and 2.0 files.

    XLIFF 1.2 structure:
    ```xml
    <xliff version="1.2" xmlns="urn:oasis:names:tc:xliff:document:1.2">
      <file original="strings" source-language="en" target-language="fr" datatype="plaintext">
        <body>
          <trans-unit id="greeting">
            <source>greeting</source>
            <target>Bonjour</target>
            <note>Shown on the home screen</note>
          </trans-unit>
          <group id="items" restype="x-gettext-plurals">
            <trans-unit id="items[one]"><source>items</source><target>1 article</target></trans-unit>
            <trans-unit id="items[other]"><source>items</source><target>{0} articles</target></trans-unit>
          </group>
        </body>
      </file>
    </xliff>
    ```

    XLIFF 2.0 uses <unit>/<segment>; a unit whose segment ids are all plural
    categories is a plural entry.
    """

    def __init__(self, config: Optional[XliffFormatConfiguration] = None):
        self.config = config or XliffFormatConfiguration()

    @classmethod
    def from_configuration(cls, config: Optional[ResourceConfiguration] = None) -> "XliffBackend":
        return cls(config.xliff if config else None)

    @property
    def name(self) -> str:
        return "xliff"

    @property
    def file_extensions(self) -> list[str]:
        return [".xliff", ".xlf"]

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _find_files(self, path: Union[str, Path]) -> list[Path]:
        root = Path(path)
        if not root.is_dir():
            return []
        found = set()
        for ext in self.file_extensions:
            for candidate in root.rglob(f"*{ext}"):
                if candidate.is_file() and not is_metadata_path(candidate.relative_to(root)):
                    found.add(candidate)
        return sorted(found)

    def can_handle(self, path: Union[str, Path]) -> bool:
        return bool(self._find_files(path))

    def _languages_in_file(self, file_path: Path) -> list[tuple[LanguageInfo, bool]]:
        """
        Descriptors for one file, each paired with whether the file is
        source-only (no target language).
        """
        path_text = str(file_path)
        try:
            root = _parse_xliff(file_path.read_bytes(), path_text)
        except (ResourceError, OSError) as e:
            logger.warning("Could not parse %s, using file name: %s", file_path, e)
            return self._languages_from_file_name(file_path)

        if detect_version(root) == "2.0":
            source_language = root.get("srcLang")
            target_language = root.get("trgLang")
        else:
            file_element = first_child(root, "file")
            source_language = file_element.get("source-language") if file_element is not None else None
            target_language = file_element.get("target-language") if file_element is not None else None

        base_name = strip_language_suffix(path_text, target_language or source_language or "")
        source_only = not target_language or target_language.lower() == (source_language or "").lower()

        result = []
        if source_language:
            result.append((LanguageInfo(
                code=source_language,
                base_name=base_name,
                name=get_display_name(source_language),
                is_default=True,
                file_path=path_text,
            ), source_only))
        if target_language and not source_only:
            result.append((LanguageInfo(
                code=target_language,
                base_name=base_name,
                name=get_display_name(target_language),
                is_default=False,
                file_path=path_text,
            ), False))

        if not result:
            return self._languages_from_file_name(file_path)
        return result

    def _languages_from_file_name(self, file_path: Path) -> list[tuple[LanguageInfo, bool]]:
        code = language_from_file_name(str(file_path))
        if not code:
            logger.debug("No language found for %s", file_path)
            return []
        return [(LanguageInfo(
            code=code,
            base_name=strip_language_suffix(str(file_path), code),
            name=get_display_name(code),
            is_default=False,
            file_path=str(file_path),
        ), False)]

    def discover_languages(self, path: Union[str, Path]) -> list[LanguageInfo]:
        """
        Find all languages in XLIFF files under path (recursively).

        Languages are deduplicated by code (case-insensitively); a default
        descriptor wins over a non-default one, and a source-only file wins
        over a bilingual file for the same default language.
        """
        by_code: dict[str, tuple[LanguageInfo, bool]] = {}

        for file_path in self._find_files(path):
            for language, source_only in self._languages_in_file(file_path):
                key = language.code.casefold()
                existing = by_code.get(key)
                if existing is None:
                    by_code[key] = (language, source_only)
                    continue
                current, current_source_only = existing
                if language.is_default and not current.is_default:
                    by_code[key] = (language, source_only)
                elif language.is_default and source_only and not current_source_only:
                    by_code[key] = (language, source_only)

        languages = [language for language, _ in by_code.values()]

        defaults = [lang for lang in languages if lang.is_default]
        if len(defaults) > 1:
            keep = next(
                (lang for lang in defaults if lang.code.lower() == self.config.source_language.lower()),
                defaults[0],
            )
            for lang in defaults:
                if lang is not keep:
                    lang.is_default = False
        promote_default(languages, clear_code=False)

        logger.debug("Discovered %d XLIFF languages under %s", len(languages), path)
        return sort_languages(languages)

    def discover_configuration(self, path: Union[str, Path]) -> XliffDiscoveryResult:
        """Infer version, extension, source language and bilingual mode from existing files."""
        result = XliffDiscoveryResult()
        files = self._find_files(path)
        if not files:
            return result

        xlf_count = sum(1 for f in files if f.suffix.lower() == ".xlf")
        result.file_extension = ".xlf" if xlf_count > len(files) - xlf_count else ".xliff"

        first = files[0]
        try:
            root = _parse_xliff(first.read_bytes(), str(first))
            result.version = detect_version(root)
            result.bilingual = self._has_targets(root)
        except (ResourceError, OSError) as e:
            logger.warning("Could not inspect %s: %s", first, e)

        languages = self.discover_languages(path)
        default = next((lang for lang in languages if lang.is_default), None)
        if default is not None and default.code:
            result.source_language = default.code
        result.languages = [lang.code for lang in languages]
        return result

    @staticmethod
    def _has_targets(root: etree._Element) -> bool:
        return any(local_name(el) == "target" for el in root.iter())

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read(self, language: LanguageInfo) -> ResourceFile:
        path = self._require_source(language)
        return self._read_content(path.read_bytes(), language, str(path))

    def read_text(self, content: Union[str, bytes], language: LanguageInfo) -> ResourceFile:
        """Parse XLIFF content that is already in memory."""
        return self._read_content(content, language, language.file_path or None)

    def _read_content(
        self,
        content: Union[str, bytes],
        language: LanguageInfo,
        path: Optional[str],
    ) -> ResourceFile:
        root = _parse_xliff(content, path)
        version = detect_version(root)

        entries: list[ResourceEntry] = []
        for file_element in child_elements(root, "file"):
            if version == "2.0":
                self._walk_20(file_element, language, entries)
            else:
                body = first_child(file_element, "body")
                if body is not None:
                    self._walk_12(body, language, entries)

        logger.debug("Read %d entries (XLIFF %s) from %s", len(entries), version, path)
        return ResourceFile(language=language.copy(), entries=entries)

    def _pick_value(
        self,
        key: str,
        source: Optional[str],
        target: Optional[str],
        language: LanguageInfo,
    ) -> str:
        """
        Value for one source/target pair.

        The default language reads <source>. Other languages read <target>,
        falling back to <source> when it is absent or empty, except that a
        source equal to the key only marks an untranslated unit.
        """
        if language.is_default:
            return source or ""
        if target:
            return target
        if target is not None and source == key:
            return ""
        return source or ""

    def _walk_12(self, container: etree._Element, language: LanguageInfo, entries: list) -> None:
        for element in child_elements(container):
            tag = local_name(element)
            if tag == "trans-unit":
                entry = self._parse_trans_unit(element, language)
                if entry is not None:
                    entries.append(entry)
            elif tag == "group":
                if element.get("restype") == PLURAL_GROUP_RESTYPE:
                    try:
                        entry = self._parse_plural_group(element, language)
                    except UnsupportedStructureError as e:
                        logger.warning("Dropping plural group: %s", e)
                        continue
                    if entry is not None:
                        entries.append(entry)
                else:
                    self._walk_12(element, language, entries)

    def _parse_trans_unit(self, unit: etree._Element, language: LanguageInfo) -> Optional[ResourceEntry]:
        key = unit.get("id") or unit.get("resname")
        if not key:
            return None

        source = text_content(first_child(unit, "source"))
        target = text_content(first_child(unit, "target"))
        return ResourceEntry(
            key=key,
            value=self._pick_value(key, source, target, language),
            comment=_notes(child_elements(unit, "note")),
        )

    def _parse_plural_group(self, group: etree._Element, language: LanguageInfo) -> Optional[ResourceEntry]:
        key = group.get("id") or group.get("resname")
        if not key:
            return None

        forms: dict[str, str] = {}
        for unit in child_elements(group, "trans-unit"):
            unit_id = unit.get("id") or unit.get("resname") or ""
            category = extract_plural_category(unit_id)
            if category is None:
                continue
            source = text_content(first_child(unit, "source"))
            target = text_content(first_child(unit, "target"))
            if source is None and target is None:
                continue
            forms[category] = self._pick_value(key, source, target, language)

        if not forms:
            raise UnsupportedStructureError(f"Plural group '{key}' has no parseable forms")

        return ResourceEntry.plural(key, forms, comment=_notes(child_elements(group, "note")))

    def _walk_20(self, container: etree._Element, language: LanguageInfo, entries: list) -> None:
        for element in child_elements(container):
            tag = local_name(element)
            if tag == "unit":
                entry = self._parse_unit(element, language)
                if entry is not None:
                    entries.append(entry)
            elif tag == "group":
                self._walk_20(element, language, entries)

    def _parse_unit(self, unit: etree._Element, language: LanguageInfo) -> Optional[ResourceEntry]:
        key = unit.get("id")
        if not key:
            return None

        notes_element = first_child(unit, "notes")
        comment = _notes(child_elements(notes_element, "note")) if notes_element is not None else None

        segments = child_elements(unit, "segment")
        if not segments:
            # Some producers put source/target directly in the unit
            source = text_content(first_child(unit, "source"))
            target = text_content(first_child(unit, "target"))
            if source is None and target is None:
                return None
            return ResourceEntry(key=key, value=self._pick_value(key, source, target, language), comment=comment)

        values = []
        for segment in segments:
            source = text_content(first_child(segment, "source"))
            target = text_content(first_child(segment, "target"))
            values.append((segment.get("id"), self._pick_value(key, source, target, language)))

        if all(segment_id in PLURAL_CATEGORIES for segment_id, _ in values):
            return ResourceEntry.plural(key, dict(values), comment=comment)

        return ResourceEntry(key=key, value="".join(value for _, value in values), comment=comment)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, resource_file: ResourceFile) -> None:
        target = self._require_target(resource_file)
        atomic_write(target, self.serialize(resource_file))
        logger.debug("Wrote %d entries to %s", len(resource_file.entries), target)

    def serialize(self, resource_file: ResourceFile) -> str:
        """Render a resource file as an XLIFF document in the configured version."""
        if self.config.version.startswith("2"):
            root = self._build_20(resource_file)
        else:
            root = self._build_12(resource_file)
        return etree.tostring(
            root,
            pretty_print=True,
            xml_declaration=True,
            encoding="utf-8",
        ).decode("utf-8")

    def _languages_for(self, language: LanguageInfo) -> tuple[str, Optional[str]]:
        if language.is_default:
            return language.code or self.config.source_language, None
        return self.config.source_language, language.code or None

    def _source_and_target(self, key: str, value: str, is_default: bool) -> tuple[str, Optional[str]]:
        if is_default or self.config.bilingual:
            return value, None
        return key, value

    def _build_12(self, resource_file: ResourceFile) -> etree._Element:
        ns = f"{{{XLIFF_12_NAMESPACE}}}"
        language = resource_file.language
        source_language, target_language = self._languages_for(language)

        root = etree.Element(f"{ns}xliff", nsmap={None: XLIFF_12_NAMESPACE})
        root.set("version", "1.2")

        file_element = etree.SubElement(root, f"{ns}file")
        file_element.set("original", language.base_name or "resources")
        file_element.set("source-language", source_language)
        if target_language:
            file_element.set("target-language", target_language)
        file_element.set("datatype", "plaintext")

        header = etree.SubElement(file_element, f"{ns}header")
        tool = etree.SubElement(header, f"{ns}tool")
        tool.set("tool-id", TOOL_ID)
        tool.set("tool-name", TOOL_ID)

        body = etree.SubElement(file_element, f"{ns}body")
        for entry in resource_file.entries:
            if entry.is_plural and entry.plural_forms:
                group = etree.SubElement(body, f"{ns}group")
                group.set("id", entry.key)
                group.set("restype", PLURAL_GROUP_RESTYPE)
                if entry.comment:
                    etree.SubElement(group, f"{ns}note").text = entry.comment
                for category, form in entry.plural_forms.items():
                    unit = etree.SubElement(group, f"{ns}trans-unit")
                    unit.set("id", f"{entry.key}[{category}]")
                    self._add_source_target(unit, ns, entry.key, form or "", language.is_default)
            else:
                unit = etree.SubElement(body, f"{ns}trans-unit")
                unit.set("id", entry.key)
                self._add_source_target(unit, ns, entry.key, entry.value or "", language.is_default)
                if entry.comment:
                    etree.SubElement(unit, f"{ns}note").text = entry.comment

        return root

    def _build_20(self, resource_file: ResourceFile) -> etree._Element:
        ns = f"{{{XLIFF_20_NAMESPACE}}}"
        language = resource_file.language
        source_language, target_language = self._languages_for(language)

        root = etree.Element(f"{ns}xliff", nsmap={None: XLIFF_20_NAMESPACE})
        root.set("version", "2.0")
        root.set("srcLang", source_language)
        root.set("trgLang", target_language or source_language)

        file_element = etree.SubElement(root, f"{ns}file")
        file_element.set("id", language.base_name or "resources")

        for entry in resource_file.entries:
            unit = etree.SubElement(file_element, f"{ns}unit")
            unit.set("id", entry.key)
            if entry.comment:
                notes = etree.SubElement(unit, f"{ns}notes")
                etree.SubElement(notes, f"{ns}note").text = entry.comment

            if entry.is_plural and entry.plural_forms:
                for category, form in entry.plural_forms.items():
                    segment = etree.SubElement(unit, f"{ns}segment")
                    segment.set("id", category)
                    self._add_source_target(segment, ns, entry.key, form or "", language.is_default)
            else:
                segment = etree.SubElement(unit, f"{ns}segment")
                self._add_source_target(segment, ns, entry.key, entry.value or "", language.is_default)

        return root

    def _add_source_target(
        self,
        parent: etree._Element,
        ns: str,
        key: str,
        value: str,
        is_default: bool,
    ) -> None:
        source, target = self._source_and_target(key, value, is_default)
        etree.SubElement(parent, f"{ns}source").text = source
        if target is not None:
            etree.SubElement(parent, f"{ns}target").text = target

    # ------------------------------------------------------------------
    # Language files
    # ------------------------------------------------------------------

    def create_language_file(
        self,
        base_name: str,
        culture_code: str,
        target_path: Union[str, Path],
        source_file: Optional[ResourceFile] = None,
        copy_entries: bool = True,
    ) -> LanguageInfo:
        extension = self.config.file_extension
        if not extension.startswith('.'):
            extension = f".{extension}"

        language = LanguageInfo(
            code=culture_code,
            base_name=base_name,
            name=get_display_name(culture_code),
            is_default=False,
            file_path=str(Path(target_path) / f"{base_name}.{culture_code}{extension}"),
        )
        entries = []
        if copy_entries and source_file is not None:
            entries = [entry.blank() for entry in source_file.entries]

        self.write(ResourceFile(language=language, entries=entries))
        logger.info("Created XLIFF language file %s", language.file_path)
        return language

    def delete_language_file(self, language: LanguageInfo) -> None:
        if language.file_path:
            remove_file(language.file_path)
