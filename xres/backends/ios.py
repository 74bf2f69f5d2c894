#!/usr/bin/env python3
"""
iOS backend: <code>.lproj/<BaseName>.strings plus the .stringsdict sibling.

Non-plural entries live in the .strings file and plural entries in the
.stringsdict file. Reading merges both; writing splits them again.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ..config import IosFormatConfiguration, ResourceConfiguration
from ..culture import DEFAULT_DISPLAY_NAME, get_display_name
from ..errors import ResourceNotFoundError
from ..fileio import atomic_write, is_metadata_path, remove_file
from ..models import LanguageInfo, ResourceEntry, ResourceFile
from .base import ResourceBackend, promote_default, sort_languages
from .ios_strings import decode_strings_bytes, parse_strings, serialize_strings
from .ios_stringsdict import parse_stringsdict, serialize_stringsdict

logger = logging.getLogger(__name__)

LPROJ_SUFFIX = ".lproj"
BASE_LPROJ = "Base.lproj"

# Subfolders searched for .lproj directories besides the search path itself
SEARCH_SUBFOLDERS = ("Resources", "Sources")


def is_base_lproj(folder_name: str) -> bool:
    return folder_name.lower() == BASE_LPROJ.lower()


def is_valid_lproj_folder(folder_name: str) -> bool:
    """Whether a folder name looks like <something>.lproj."""
    if not folder_name or not folder_name.lower().endswith(LPROJ_SUFFIX):
        return False
    return len(folder_name) > len(LPROJ_SUFFIX)


def lproj_to_code(folder_name: str, development_language: Optional[str] = None) -> str:
    """
    Culture code for an .lproj folder name.

    "en.lproj" -> "en", "zh-Hans.lproj" -> "zh-Hans". Base.lproj maps to the
    development language when one is known, else to "".
    """
    if is_base_lproj(folder_name):
        return development_language or ""
    if folder_name.lower().endswith(LPROJ_SUFFIX):
        return folder_name[:-len(LPROJ_SUFFIX)]
    return folder_name


def code_to_lproj(code: str, use_base: bool = False) -> str:
    """.lproj folder name for a culture code; "" maps to Base.lproj when use_base is set."""
    if not code:
        return BASE_LPROJ if use_base else f"en{LPROJ_SUFFIX}"
    return f"{code}{LPROJ_SUFFIX}"


class IosBackend(ResourceBackend):
    """
    Backend for iOS/macOS .strings + .stringsdict resources.

    Project layout:
    ```
    Base.lproj/Localizable.strings
    en.lproj/Localizable.strings
    en.lproj/Localizable.stringsdict
    fr.lproj/Localizable.strings
    ```

    The default language gets code "": either Base.lproj or the folder
    matching the development language.
    """

    def __init__(self, config: Optional[IosFormatConfiguration] = None):
        self.config = config or IosFormatConfiguration()

    @classmethod
    def from_configuration(cls, config: Optional[ResourceConfiguration] = None) -> "IosBackend":
        return cls(config.ios if config else None)

    @property
    def name(self) -> str:
        return "ios"

    @property
    def file_extensions(self) -> list[str]:
        return [".strings", ".stringsdict"]

    def _strings_path(self, language: LanguageInfo) -> Path:
        path = Path(language.file_path)
        if path.suffix.lower() == ".stringsdict":
            return path.with_suffix(".strings")
        return path

    @staticmethod
    def _stringsdict_path(strings_path: Path) -> Path:
        return strings_path.with_suffix(".stringsdict")

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def _find_lproj_folders(self, path: Union[str, Path]) -> list[Path]:
        root = Path(path)
        if not root.is_dir():
            return []

        folders = []
        for search in [root] + [root / sub for sub in SEARCH_SUBFOLDERS]:
            if not search.is_dir():
                continue
            for candidate in sorted(search.iterdir()):
                if (
                    candidate.is_dir()
                    and is_valid_lproj_folder(candidate.name)
                    and not is_metadata_path(candidate.relative_to(root))
                    and candidate not in folders
                ):
                    folders.append(candidate)
        return folders

    def _has_resources(self, folder: Path) -> bool:
        return (
            (folder / self.config.strings_file_name).is_file()
            or (folder / self.config.stringsdict_file_name).is_file()
        )

    def _detect_development_language(self, folders: list[Path]) -> Optional[str]:
        if self.config.development_language:
            return self.config.development_language
        if any(is_base_lproj(folder.name) for folder in folders):
            english = next((f for f in folders if f.name.lower().startswith("en")), None)
            if english is not None:
                return lproj_to_code(english.name)
        return None

    def can_handle(self, path: Union[str, Path]) -> bool:
        return any(self._has_resources(folder) for folder in self._find_lproj_folders(path))

    def discover_languages(self, path: Union[str, Path]) -> list[LanguageInfo]:
        """
        Find .lproj folders holding the configured strings or stringsdict file.

        Base.lproj is the default when present. Otherwise the folder matching
        the development language is the default, and failing that the first
        English folder (or first folder) is promoted.
        """
        folders = [f for f in self._find_lproj_folders(path) if self._has_resources(f)]
        development_language = self._detect_development_language(folders)
        has_base = any(is_base_lproj(folder.name) for folder in folders)

        languages = []
        for folder in folders:
            if is_base_lproj(folder.name):
                is_default = True
                code = ""
            else:
                code = lproj_to_code(folder.name, development_language)
                # Base.lproj wins over the development language folder
                is_default = (
                    not has_base
                    and bool(development_language)
                    and code.lower() == development_language.lower()
                )

            languages.append(LanguageInfo(
                code="" if is_default else code,
                base_name=self.config.base_name,
                name=DEFAULT_DISPLAY_NAME if is_default else get_display_name(code),
                is_default=is_default,
                file_path=str(folder / self.config.strings_file_name),
            ))

        promote_default(languages, clear_code=True)

        logger.debug("Discovered %d iOS languages under %s", len(languages), path)
        return sort_languages(languages)

    # ------------------------------------------------------------------
    # Reading / writing
    # ------------------------------------------------------------------

    def read(self, language: LanguageInfo) -> ResourceFile:
        """
        Read the .strings file and merge in the .stringsdict plurals.

        A plural whose key also appears in the .strings file replaces that
        entry in place and keeps its comment.

        Raises:
            ResourceNotFoundError: If neither file exists
        """
        if not language.file_path:
            raise ResourceNotFoundError("No file path set for iOS language", None)

        strings_path = self._strings_path(language)
        stringsdict_path = self._stringsdict_path(strings_path)
        if not strings_path.is_file() and not stringsdict_path.is_file():
            raise ResourceNotFoundError(
                f"iOS resource file not found: {strings_path}", str(strings_path)
            )

        entries: list[ResourceEntry] = []
        if strings_path.is_file():
            content = decode_strings_bytes(strings_path.read_bytes(), str(strings_path))
            entries = parse_strings(content, str(strings_path))

        if stringsdict_path.is_file():
            plurals = parse_stringsdict(stringsdict_path.read_bytes(), str(stringsdict_path))
            positions = {entry.key: i for i, entry in enumerate(entries)}
            for plural in plurals:
                index = positions.get(plural.key)
                if index is None:
                    positions[plural.key] = len(entries)
                    entries.append(plural)
                else:
                    if plural.comment is None:
                        plural.comment = entries[index].comment
                    entries[index] = plural

        logger.debug("Read %d entries from %s", len(entries), strings_path)
        return ResourceFile(language=language.copy(), entries=entries)

    def serialize(self, resource_file: ResourceFile) -> str:
        """Render the non-plural entries as .strings content."""
        return serialize_strings([e for e in resource_file.entries if not e.is_plural])

    def serialize_stringsdict(self, resource_file: ResourceFile, path: Optional[str] = None) -> str:
        """Render the plural entries as .stringsdict content."""
        return serialize_stringsdict([e for e in resource_file.entries if e.is_plural and e.plural_forms], path)

    def write(self, resource_file: ResourceFile) -> None:
        """
        Write the .strings file and, when there are plurals, the .stringsdict.

        The .strings file is always written, even when empty. A stale
        .stringsdict is removed when the language has no plurals left.
        Both files are rendered before either is written.
        """
        self._require_target(resource_file)
        strings_path = self._strings_path(resource_file.language)
        stringsdict_path = self._stringsdict_path(strings_path)

        strings_content = self.serialize(resource_file)
        stringsdict_content = None
        if any(e.is_plural and e.plural_forms for e in resource_file.entries):
            stringsdict_content = self.serialize_stringsdict(resource_file, str(stringsdict_path))

        atomic_write(strings_path, strings_content)

        if stringsdict_content is not None:
            atomic_write(stringsdict_path, stringsdict_content)
        elif remove_file(stringsdict_path):
            logger.info("Removed %s (no plural entries)", stringsdict_path)

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
        folder = Path(target_path) / code_to_lproj(culture_code)
        language = LanguageInfo(
            code=culture_code,
            base_name=base_name,
            name=get_display_name(culture_code),
            is_default=False,
            file_path=str(folder / f"{base_name}.strings"),
        )
        entries = []
        if copy_entries and source_file is not None:
            entries = [entry.blank() for entry in source_file.entries]

        self.write(ResourceFile(language=language, entries=entries))
        logger.info("Created iOS language folder %s", folder)
        return language

    def delete_language_file(self, language: LanguageInfo) -> None:
        """Remove both files and the .lproj folder if nothing else is left in it."""
        if not language.file_path:
            return
        strings_path = self._strings_path(language)
        remove_file(strings_path)
        remove_file(self._stringsdict_path(strings_path))

        folder = strings_path.parent
        if folder.is_dir() and not any(folder.iterdir()):
            folder.rmdir()
            logger.debug("Removed empty folder %s", folder)
