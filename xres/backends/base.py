#!/usr/bin/env python3
"""
Base classes for format backends.

ResourceBackend is the abstract base class every format implements: discover
the languages of a resource family, read one language into the shared model,
write it back, scaffold or remove language files, and validate. Callers pick
a backend through BackendRegistry, by name or by probing a directory, and
never look at format internals.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from ..config import ResourceConfiguration
from ..culture import DEFAULT_DISPLAY_NAME
from ..errors import InvalidTargetError, ResourceError, ResourceNotFoundError
from ..models import KeyComparison, LanguageInfo, ResourceFile
from ..validator import ResourceValidator, ValidationResult

logger = logging.getLogger(__name__)


def sort_languages(languages: list[LanguageInfo]) -> list[LanguageInfo]:
    """Default language first, then by code."""
    return sorted(languages, key=lambda lang: (0 if lang.is_default else 1, lang.code))


def promote_default(
    languages: list[LanguageInfo],
    clear_code: bool,
    prefer_prefix: str = "en",
) -> Optional[LanguageInfo]:
    """
    Make sure the list has a default language.

    When none is marked, the first language whose code starts with
    prefer_prefix (or the first language overall) becomes the default.
    Operates on the list's current order and mutates at most one descriptor.

    Returns the promoted descriptor, or None when nothing changed.
    """
    if not languages or any(lang.is_default for lang in languages):
        return None

    chosen = next(
        (lang for lang in languages if lang.code.lower().startswith(prefer_prefix)),
        languages[0],
    )
    chosen.is_default = True
    if clear_code:
        chosen.code = ""
        chosen.name = DEFAULT_DISPLAY_NAME
    logger.debug("Promoted %s to default language", chosen.file_path)
    return chosen


class ResourceBackend(ABC):
    """
    Abstract base class for format-specific backends.

    Each backend owns discovery, reading and writing for one on-disk format
    and converts between that format and the shared ResourceFile model.
    All operations are synchronous and keep no state between calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name used for explicit selection."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> list[str]:
        """File extensions this backend handles (with leading dot)."""
        pass

    @classmethod
    def from_configuration(cls, config: Optional[ResourceConfiguration] = None) -> "ResourceBackend":
        """Create the backend from the tool-wide configuration."""
        return cls()

    @abstractmethod
    def discover_languages(self, path: Union[str, Path]) -> list[LanguageInfo]:
        """
        Find every language variant under path.

        Returns:
            Descriptors sorted default-first, then by code
        """
        pass

    @abstractmethod
    def read(self, language: LanguageInfo) -> ResourceFile:
        """
        Parse one language file.

        Raises:
            ResourceNotFoundError: If the backing file is absent
            MalformedInputError: If the content cannot be parsed
        """
        pass

    @abstractmethod
    def write(self, resource_file: ResourceFile) -> None:
        """
        Serialize a resource file to disk atomically.

        Raises:
            InvalidTargetError: If the descriptor has no file path
        """
        pass

    @abstractmethod
    def create_language_file(
        self,
        base_name: str,
        culture_code: str,
        target_path: Union[str, Path],
        source_file: Optional[ResourceFile] = None,
        copy_entries: bool = True,
    ) -> LanguageInfo:
        """
        Scaffold a new language variant.

        When copy_entries is set and a source file is given, its keys,
        comments and plural categories are copied with blank values.
        """
        pass

    @abstractmethod
    def delete_language_file(self, language: LanguageInfo) -> None:
        """Remove the files backing one language variant."""
        pass

    @abstractmethod
    def can_handle(self, path: Union[str, Path]) -> bool:
        """Whether the directory looks like it holds files of this format."""
        pass

    def validate(
        self,
        target: Union[str, Path, ResourceFile, list[ResourceFile]],
        key_comparison: KeyComparison = KeyComparison.CASE_INSENSITIVE,
    ) -> ValidationResult:
        """
        Run the generic cross-language checks.

        Args:
            target: A directory (all discovered languages are read), a single
                ResourceFile, or already-read files
            key_comparison: How keys are matched across languages
        """
        validator = ResourceValidator(key_comparison)

        if isinstance(target, ResourceFile):
            return validator.validate([target])
        if isinstance(target, list):
            return validator.validate(target)

        files: list[ResourceFile] = []
        read_errors: dict[str, str] = {}
        for language in self.discover_languages(target):
            try:
                files.append(self.read(language))
            except ResourceError as e:
                logger.warning("Skipping unreadable %s: %s", language.file_path, e)
                read_errors[language.code or language.file_path] = str(e)

        result = validator.validate(files)
        result.read_errors.update(read_errors)
        return result

    def _require_target(self, resource_file: ResourceFile) -> Path:
        if not resource_file.language.file_path:
            raise InvalidTargetError(
                f"No file path set for language '{resource_file.language.code}'"
            )
        return Path(resource_file.language.file_path)

    def _require_source(self, language: LanguageInfo) -> Path:
        if not language.file_path or not Path(language.file_path).is_file():
            raise ResourceNotFoundError(
                f"{self.name} resource file not found: {language.file_path}",
                language.file_path,
            )
        return Path(language.file_path)


class BackendRegistry:
    """Registry of available format backends."""

    _backends: dict[str, type[ResourceBackend]] = {}
    _aliases: dict[str, str] = {}
    _extension_map: dict[str, str] = {}  # extension -> backend name
    _detection_order: list[str] = []

    @classmethod
    def register(
        cls,
        backend_class: type[ResourceBackend],
        aliases: tuple[str, ...] = (),
    ) -> None:
        """Register a backend class. Registration order is the detection order."""
        backend = backend_class()
        name = backend.name.lower()
        cls._backends[name] = backend_class
        if name not in cls._detection_order:
            cls._detection_order.append(name)
        for alias in aliases:
            cls._aliases[alias.lower()] = name
        for ext in backend.file_extensions:
            cls._extension_map.setdefault(ext.lower().lstrip('.'), name)

    @classmethod
    def get_backend(
        cls,
        name: str,
        config: Optional[ResourceConfiguration] = None,
    ) -> ResourceBackend:
        """Get backend instance by name or alias."""
        name_lower = name.lower()
        if name_lower == "i18next":
            from .json_handler import JsonBackend
            return JsonBackend.i18next(config)

        name_lower = cls._aliases.get(name_lower, name_lower)
        if name_lower not in cls._backends:
            available = ', '.join(cls._backends.keys())
            raise ValueError(f"Unknown backend: {name}. Available: {available}")
        return cls._backends[name_lower].from_configuration(config)

    @classmethod
    def get_backend_for_extension(
        cls,
        extension: str,
        config: Optional[ResourceConfiguration] = None,
    ) -> ResourceBackend:
        """Get backend instance by file extension."""
        ext = extension.lower().lstrip('.')
        if ext not in cls._extension_map:
            available = ', '.join(cls._extension_map.keys())
            raise ValueError(f"Unknown extension: .{ext}. Supported: {available}")
        return cls.get_backend(cls._extension_map[ext], config)

    @classmethod
    def resolve_from_path(
        cls,
        path: Union[str, Path],
        config: Optional[ResourceConfiguration] = None,
    ) -> ResourceBackend:
        """
        Pick the backend for a directory by probing can_handle().

        Backends are tried in registration order, most specific first.
        Backends that tune themselves to the directory contents (JSON mode
        detection) are created through for_path() when no config is given.
        """
        for name in cls._detection_order:
            backend = cls._backends[name].from_configuration(config)
            if backend.can_handle(path):
                for_path = getattr(backend, "for_path", None)
                if config is None and callable(for_path):
                    return for_path(path)
                return backend
        raise ValueError(f"No backend can handle: {path}")

    @classmethod
    def list_backends(cls) -> list[dict[str, Any]]:
        """List all registered backends with their extensions."""
        result = []
        for name, backend_class in cls._backends.items():
            backend = backend_class()
            result.append({
                'name': backend.name,
                'extensions': backend.file_extensions,
                'aliases': sorted(a for a, target in cls._aliases.items() if target == name),
            })
        return result
