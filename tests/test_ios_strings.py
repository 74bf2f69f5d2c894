#!/usr/bin/env python3
"""
Tests for the .strings and .stringsdict codecs.

Tests verify:
1. Comment attachment, escapes and bare tokens in .strings content
2. Line-numbered errors for unterminated strings and comments
3. Plural variable extraction and value type inference in .stringsdict
4. Malformed stringsdict entries are skipped, not fatal
"""

import pytest

from xres.backends.ios_strings import decode_strings_bytes, escape_string, parse_strings, serialize_strings
from xres.backends.ios_stringsdict import (
    create_format_key,
    extract_variable_name,
    infer_value_type,
    parse_stringsdict,
    serialize_stringsdict,
)
from xres.errors import MalformedInputError, UnsupportedStructureError
from xres.models import ResourceEntry


# ----------------------------------------------------------------------
# .strings
# ----------------------------------------------------------------------

def test_parse_comments_attach_to_next_pair():
    """Test 1: Block and line comments attach to the following pair."""
    content = '''/* Title of the main window */
"title" = "Main";

// First line
// Second line
"save" = "Save";
"cancel" = "Cancel";
'''
    entries = parse_strings(content)

    assert [e.key for e in entries] == ["title", "save", "cancel"]
    assert entries[0].comment == "Title of the main window"
    assert entries[1].comment == "First line\nSecond line"
    assert entries[2].comment is None


def test_parse_escapes():
    """Test 2: Standard escapes are decoded."""
    content = r'"msg" = "Line 1\nLine 2\t\"quoted\" back\\slash";'
    entries = parse_strings(content)

    assert entries[0].value == 'Line 1\nLine 2\t"quoted" back\\slash'


def test_parse_unicode_escapes():
    """Test 3: \\U escapes, including surrogate pairs."""
    content = r'"cafe" = "caf\U00E9"; "smile" = "\UD83D\UDE00"; "odd" = "a\qb";'
    entries = parse_strings(content)

    assert entries[0].value == "café"
    assert entries[1].value == "\U0001F600"
    assert entries[2].value == "a\\qb"


def test_parse_bare_tokens_and_optional_semicolon():
    """Test 4: Unquoted tokens and a missing final semicolon are accepted."""
    entries = parse_strings('app_name = MyApp;\n"last" = "x"')

    assert [(e.key, e.value) for e in entries] == [("app_name", "MyApp"), ("last", "x")]


def test_parse_bom_and_empty_input():
    """Test 5: A leading BOM is ignored; empty content has no entries."""
    assert parse_strings('\ufeff"a" = "b";')[0].key == "a"
    assert parse_strings("") == []
    assert parse_strings("/* only a comment */\n") == []


@pytest.mark.parametrize("content,message,line", [
    ('"a" = "b";\n"c" = "unterminated;\n', "Unterminated string", 2),
    ('"a" = "b";\n\n/* never closed\n"c" = "d";', "Unterminated comment", 3),
    ('"a" "b";', "Expected '='", 1),
    ('"a" = ;', "Expected value", 1),
])
def test_parse_errors_report_line(content, message, line):
    """Test 6: Syntax errors carry a message and line number."""
    with pytest.raises(MalformedInputError) as exc_info:
        parse_strings(content, "Localizable.strings")

    assert message in str(exc_info.value)
    assert exc_info.value.line == line


def test_decode_utf16():
    """Test 7: UTF-16 files with a BOM decode correctly."""
    data = '"a" = "é";'.encode("utf-16")
    assert decode_strings_bytes(data) == '"a" = "é";'
    assert decode_strings_bytes(b'\xef\xbb\xbf"a" = "b";') == '"a" = "b";'


def test_serialize_strings():
    """Test 8: Comment line, escaped pair line and blank separator."""
    entries = [
        ResourceEntry(key="title", value='Say "hi"\n', comment="Greeting */ shown"),
        ResourceEntry(key="empty", value=""),
    ]

    assert serialize_strings(entries) == (
        '// Greeting */ shown\n'
        '"title" = "Say \\"hi\\"\\n";\n'
        '\n'
        '"empty" = "";\n'
    )


def test_strings_round_trip():
    """Test 9: Serialized content parses back to the same entries."""
    entries = [
        ResourceEntry(key="a.b", value="tab\there", comment="Note"),
        ResourceEntry(key="uni", value="日本語 \U0001F600"),
    ]
    parsed = parse_strings(serialize_strings(entries))

    assert [(e.key, e.value, e.comment) for e in parsed] == [
        ("a.b", "tab\there", "Note"),
        ("uni", "日本語 \U0001F600", None),
    ]


def test_escape_string():
    """Test 10: Backslash is escaped before quotes."""
    assert escape_string('\\"') == '\\\\\\"'


# ----------------------------------------------------------------------
# .stringsdict
# ----------------------------------------------------------------------

STRINGSDICT = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>items_count</key>
    <dict>
        <key>NSStringLocalizedFormatKey</key>
        <string>%#@items@</string>
        <key>items</key>
        <dict>
            <key>NSStringFormatSpecTypeKey</key>
            <string>NSStringPluralRuleType</string>
            <key>NSStringFormatValueTypeKey</key>
            <string>d</string>
            <key>other</key>
            <string>%d items</string>
            <key>one</key>
            <string>%d item</string>
        </dict>
    </dict>
    <key>broken</key>
    <dict>
        <key>NSStringLocalizedFormatKey</key>
        <string>no variable here</string>
    </dict>
    <key>files</key>
    <dict>
        <key>NSStringLocalizedFormatKey</key>
        <string>%#@count@</string>
        <key>count</key>
        <dict>
            <key>one</key>
            <string>%@ file</string>
            <key>other</key>
            <string>%@ files</string>
        </dict>
    </dict>
</dict>
</plist>
"""


@pytest.mark.parametrize("format_key,expected", [
    ("%#@count@", "count"),
    ("%#@items@", "items"),
    ("You have %#@files@ left", "files"),
    ("%d items", None),
    ("@@", None),
    ("", None),
])
def test_extract_variable_name(format_key, expected):
    """Test 11: Variable name between the first and last '@'."""
    assert extract_variable_name(format_key) == expected


def test_create_format_key():
    """Test 12: Format keys wrap the variable in %#@...@."""
    assert create_format_key() == "%#@count@"
    assert create_format_key("items") == "%#@items@"


@pytest.mark.parametrize("forms,expected", [
    ({"one": "%d item", "other": "%d items"}, "d"),
    ({"other": "%@ files"}, "@"),
    ({"other": "%1$@ and %2$d"}, "@"),
    ({"other": "%.1f km"}, "f"),
    ({"other": "%s left"}, "s"),
    ({"other": "no specifier"}, "d"),
])
def test_infer_value_type(forms, expected):
    """Test 13: Value type follows the printf specifiers in the forms."""
    assert infer_value_type(forms) == expected


def test_parse_stringsdict():
    """Test 14: Plural entries with variable metadata; broken entries skipped."""
    entries = parse_stringsdict(STRINGSDICT)

    assert [e.key for e in entries] == ["items_count", "files"]

    items = entries[0]
    assert items.is_plural
    assert list(items.plural_forms) == ["one", "other"]
    assert items.plural_forms["one"] == "%d item"
    assert items.value == "%d items"
    assert items.metadata["format_variable"] == "items"
    assert items.metadata["format_key"] == "%#@items@"

    assert entries[1].metadata["format_variable"] == "count"


def test_parse_stringsdict_requires_plist():
    """Test 15: A non-plist document is malformed."""
    with pytest.raises(MalformedInputError):
        parse_stringsdict("<dict/>")
    with pytest.raises(MalformedInputError):
        parse_stringsdict('<plist version="1.0"></plist>')


def test_serialize_stringsdict_keeps_variable():
    """Test 16: The original variable name survives a round trip."""
    entries = parse_stringsdict(STRINGSDICT)
    output = serialize_stringsdict(entries)

    assert output.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE plist')
    assert "<string>%#@items@</string>" in output
    assert "\t\t<key>items</key>" in output
    assert "<string>@</string>" in output

    reparsed = parse_stringsdict(output)
    assert [(e.key, e.plural_forms, e.metadata) for e in reparsed] == [
        (e.key, e.plural_forms, e.metadata) for e in entries
    ]


def test_serialize_stringsdict_defaults():
    """Test 17: Entries without metadata use the count variable and escape XML."""
    entry = ResourceEntry.plural("apples", {"other": "%d <apples> & more", "one": "%d apple"})
    output = serialize_stringsdict([entry])

    assert "<string>%#@count@</string>" in output
    assert "&lt;apples&gt; &amp; more" in output
    assert output.index("<key>one</key>") < output.index("<key>other</key>")


def test_decode_invalid_utf8():
    """Test 18: Undecodable bytes raise MalformedInputError with the path."""
    with pytest.raises(MalformedInputError) as exc_info:
        decode_strings_bytes(b'"k" = "caf\xe9";', "fr.lproj/Localizable.strings")

    assert exc_info.value.path == "fr.lproj/Localizable.strings"


def test_serialize_stringsdict_layout():
    """Test 19: Root dict at column zero, entries indented with tabs."""
    entry = ResourceEntry.plural("items", {"one": "%d item", "other": "%d items"})
    output = serialize_stringsdict([entry])

    assert '<plist version="1.0">\n<dict>\n\t<key>items</key>\n\t<dict>\n\t\t<key>NSStringLocalizedFormatKey</key>' in output
    assert output.endswith("\t</dict>\n</dict>\n</plist>\n")


def test_serialize_stringsdict_rejects_control_characters():
    """Test 20: Forms XML cannot carry raise instead of producing a broken plist."""
    entry = ResourceEntry.plural("items", {"one": "a\x01b", "other": "%d items"})

    with pytest.raises(UnsupportedStructureError) as exc_info:
        serialize_stringsdict([entry], "en.lproj/Localizable.stringsdict")

    assert "'items'" in str(exc_info.value)
    assert exc_info.value.path == "en.lproj/Localizable.stringsdict"


def test_comment_with_block_terminator_round_trips():
    """Test 21: Comments containing */ come back unchanged."""
    entries = [
        ResourceEntry(key="path", value="a/b", comment="Matches */ and /*\nsecond line"),
        ResourceEntry(key="plain", value="x", comment="Just text"),
    ]
    output = serialize_strings(entries)

    assert output.startswith("// Matches */ and /*\n// second line\n")
    assert "/* Just text */" in output
    assert [e.comment for e in parse_strings(output)] == ["Matches */ and /*\nsecond line", "Just text"]
