#!/usr/bin/env python3
"""
Error types raised by the resource backends.

NotFound and MalformedInput are recoverable per file, InvalidTarget is a
programming error, and UnsupportedStructure is entry-scoped: the entry is
dropped and parsing continues.
"""

from typing import Optional


class ResourceError(Exception):
    """Base class for all resource backend errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ResourceNotFoundError(ResourceError):
    """The requested language file does not exist."""


class MalformedInputError(ResourceError):
    """File content does not satisfy the format's minimal grammar."""

    def __init__(self, message: str, path: Optional[str] = None, line: Optional[int] = None):
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message, path)
        self.line = line


class InvalidTargetError(ResourceError):
    """A write was attempted without a resolvable file path."""


class UnsupportedStructureError(ResourceError):
    """A recognized but unhandled construct; the affected entry is dropped."""
