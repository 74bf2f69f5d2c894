#!/usr/bin/env python3
"""
iOS .strings codec.

Handles parsing and serialization of Apple .strings localization files
used in iOS, macOS, watchOS, and tvOS applications.
"""

from typing import Optional

from ..errors import MalformedInputError
from ..models import ResourceEntry


_SIMPLE_ESCAPES = {
    'n': '\n',
    'r': '\r',
    't': '\t',
    '"': '"',
    '\\': '\\',
}

_HEX_DIGITS = set("0123456789abcdefABCDEF")

# Characters that end an unquoted key or value token
_BARE_TOKEN_STOP = set(' \t\r\n=;"')


def decode_strings_bytes(data: bytes, path: Optional[str] = None) -> str:
    """
    Decode a .strings file, honoring a UTF-16 or UTF-8 byte order mark.

    Raises:
        MalformedInputError: If the bytes are not valid in the detected encoding
    """
    encoding = "utf-16" if data.startswith((b"\xff\xfe", b"\xfe\xff")) else "utf-8-sig"
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as e:
        raise MalformedInputError(f"Strings file is not valid {encoding}: {e}", path) from e


def escape_string(s: str) -> str:
    """Escape string for .strings format."""
    return (
        s.replace('\\', '\\\\')
        .replace('"', '\\"')
        .replace('\n', '\\n')
        .replace('\r', '\\r')
        .replace('\t', '\\t')
    )


class StringsParser:
    """
    Tokenizer for .strings content.

    .strings format structure:
    ```
    /* Comment about the string */
    "key.name" = "Value text";

    // Another style of comment
    "greeting" = "Hello, %@!";
    ```

    Comments attach to the next key-value pair; several consecutive comments
    are joined with newlines. Unknown escape sequences are kept literally.
    """

    def __init__(self, content: str, path: Optional[str] = None):
        self.content = content.lstrip('\ufeff')
        self.path = path
        self.pos = 0

    def _line(self, pos: Optional[int] = None) -> int:
        if pos is None:
            pos = self.pos
        return self.content.count('\n', 0, pos) + 1

    def _error(self, message: str, pos: Optional[int] = None) -> MalformedInputError:
        return MalformedInputError(message, self.path, line=self._line(pos))

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.content) and self.content[self.pos].isspace():
            self.pos += 1

    def _read_comment(self) -> str:
        start = self.pos
        if self.content.startswith('//', self.pos):
            end = self.content.find('\n', self.pos)
            if end < 0:
                end = len(self.content)
            text = self.content[self.pos + 2:end]
            self.pos = end
        else:
            end = self.content.find('*/', self.pos + 2)
            if end < 0:
                raise self._error("Unterminated comment", start)
            text = self.content[self.pos + 2:end]
            self.pos = end + 2
        return text.strip()

    def _read_quoted(self) -> str:
        start = self.pos
        self.pos += 1  # opening quote
        chars = []
        while self.pos < len(self.content):
            ch = self.content[self.pos]
            if ch == '"':
                self.pos += 1
                return ''.join(chars)
            if ch == '\\' and self.pos + 1 < len(self.content):
                chars.append(self._read_escape())
                continue
            chars.append(ch)
            self.pos += 1
        raise self._error("Unterminated string", start)

    def _read_escape(self) -> str:
        marker = self.content[self.pos + 1]
        if marker in _SIMPLE_ESCAPES:
            self.pos += 2
            return _SIMPLE_ESCAPES[marker]

        if marker in ('U', 'u'):
            digits = self.content[self.pos + 2:self.pos + 6]
            if len(digits) == 4 and all(d in _HEX_DIGITS for d in digits):
                self.pos += 6
                code_point = int(digits, 16)
                # Surrogate pair written as two escapes
                if 0xD800 <= code_point <= 0xDBFF and self.content[self.pos:self.pos + 2] in ('\\U', '\\u'):
                    low_digits = self.content[self.pos + 2:self.pos + 6]
                    if len(low_digits) == 4 and all(d in _HEX_DIGITS for d in low_digits):
                        low = int(low_digits, 16)
                        if 0xDC00 <= low <= 0xDFFF:
                            self.pos += 6
                            return chr(0x10000 + ((code_point - 0xD800) << 10) + (low - 0xDC00))
                return chr(code_point)

        # Unknown escape, keep as written
        self.pos += 2
        return '\\' + marker

    def _read_bare(self) -> str:
        start = self.pos
        while self.pos < len(self.content) and self.content[self.pos] not in _BARE_TOKEN_STOP:
            if self.content.startswith(('//', '/*'), self.pos):
                break
            self.pos += 1
        return self.content[start:self.pos]

    def _read_token(self, what: str) -> str:
        if self.pos >= len(self.content):
            raise self._error(f"Expected {what}, found end of file")
        if self.content[self.pos] == '"':
            return self._read_quoted()
        token = self._read_bare()
        if not token:
            raise self._error(f"Expected {what}, found {self.content[self.pos]!r}")
        return token

    def parse(self) -> list[ResourceEntry]:
        """
        Parse the whole document.

        Returns:
            Entries in file order

        Raises:
            MalformedInputError: On unterminated strings or comments and on
                pairs missing their '=' or value
        """
        entries = []
        pending_comments: list[str] = []

        while True:
            self._skip_whitespace()
            if self.pos >= len(self.content):
                break

            if self.content.startswith(('//', '/*'), self.pos):
                comment = self._read_comment()
                if comment:
                    pending_comments.append(comment)
                continue

            if self.content[self.pos] == ';':
                self.pos += 1
                continue

            key_pos = self.pos
            key = self._read_token("key")
            self._skip_whitespace()
            if not self.content.startswith('=', self.pos):
                raise self._error(f"Expected '=' after key '{key}'", key_pos)
            self.pos += 1
            self._skip_whitespace()
            value = self._read_token("value")

            self._skip_whitespace()
            if self.content.startswith(';', self.pos):
                self.pos += 1

            entries.append(ResourceEntry(
                key=key,
                value=value,
                comment='\n'.join(pending_comments) if pending_comments else None,
            ))
            pending_comments = []

        return entries


def parse_strings(content: str, path: Optional[str] = None) -> list[ResourceEntry]:
    """Parse .strings content into resource entries."""
    return StringsParser(content, path).parse()


def serialize_strings(entries: list[ResourceEntry]) -> str:
    """
    Render entries as .strings content.

    Each entry becomes an optional /* comment */ line, the escaped
    "key" = "value"; line and a blank separator line. A comment that
    contains "*/" is written as // lines instead so it reads back intact.
    """
    lines = []
    for entry in entries:
        if entry.comment and '*/' in entry.comment:
            lines.extend(f"// {line}" for line in entry.comment.split('\n'))
        elif entry.comment:
            lines.append(f"/* {entry.comment} */")
        lines.append(f'"{escape_string(entry.key)}" = "{escape_string(entry.value or "")}";')
        lines.append('')
    return '\n'.join(lines)
