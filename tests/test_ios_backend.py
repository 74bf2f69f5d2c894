#!/usr/bin/env python3
"""
Tests for the iOS backend (.lproj folders with .strings and .stringsdict).
"""

import pytest

from xres.backends.ios import (
    IosBackend,
    code_to_lproj,
    is_base_lproj,
    is_valid_lproj_folder,
    lproj_to_code,
)
from xres.config import IosFormatConfiguration
from xres.errors import (
    InvalidTargetError,
    MalformedInputError,
    ResourceNotFoundError,
    UnsupportedStructureError,
)
from xres.models import LanguageInfo, ResourceEntry, ResourceFile


PLURAL_STRINGSDICT = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>items</key>
    <dict>
        <key>NSStringLocalizedFormatKey</key>
        <string>%#@count@</string>
        <key>count</key>
        <dict>
            <key>one</key>
            <string>%d item</string>
            <key>other</key>
            <string>%d items</string>
        </dict>
    </dict>
    <key>files</key>
    <dict>
        <key>NSStringLocalizedFormatKey</key>
        <string>%#@count@</string>
        <key>count</key>
        <dict>
            <key>other</key>
            <string>%d files</string>
        </dict>
    </dict>
</dict>
</plist>
"""


@pytest.fixture
def backend():
    return IosBackend()


def make_lproj(root, folder, strings=None, stringsdict=None):
    path = root / folder
    path.mkdir(parents=True, exist_ok=True)
    if strings is not None:
        (path / "Localizable.strings").write_text(strings, encoding="utf-8")
    if stringsdict is not None:
        (path / "Localizable.stringsdict").write_text(stringsdict, encoding="utf-8")
    return path


# ----------------------------------------------------------------------
# Folder name mapping
# ----------------------------------------------------------------------

@pytest.mark.parametrize("folder,expected", [
    ("en.lproj", "en"),
    ("zh-Hans.lproj", "zh-Hans"),
    ("pt-BR.lproj", "pt-BR"),
    ("Base.lproj", ""),
    ("base.lproj", ""),
])
def test_lproj_to_code(folder, expected):
    """Test 1: Folder names map to culture codes."""
    assert lproj_to_code(folder) == expected


def test_base_maps_to_development_language():
    """Test 2: Base.lproj takes the development language when known."""
    assert lproj_to_code("Base.lproj", "en") == "en"
    assert is_base_lproj("BASE.LPROJ")
    assert not is_base_lproj("en.lproj")


@pytest.mark.parametrize("code,use_base,expected", [
    ("fr", False, "fr.lproj"),
    ("zh-Hant", False, "zh-Hant.lproj"),
    ("", True, "Base.lproj"),
    ("", False, "en.lproj"),
])
def test_code_to_lproj(code, use_base, expected):
    """Test 3: Culture codes map back to folder names."""
    assert code_to_lproj(code, use_base) == expected


@pytest.mark.parametrize("folder,expected", [
    ("en.lproj", True),
    ("Base.lproj", True),
    (".lproj", False),
    ("Resources", False),
    ("", False),
])
def test_is_valid_lproj_folder(folder, expected):
    """Test 4: Only <name>.lproj folders count."""
    assert is_valid_lproj_folder(folder) is expected


# ----------------------------------------------------------------------
# Discovery
# ----------------------------------------------------------------------

def test_discover_base_is_default(backend, tmp_path):
    """Test 5: Base.lproj is the default language with code ""."""
    make_lproj(tmp_path, "Base.lproj", '"a" = "A";')
    make_lproj(tmp_path, "en.lproj", '"a" = "A";')
    make_lproj(tmp_path, "fr.lproj", '"a" = "Un";')

    languages = backend.discover_languages(tmp_path)

    assert [(l.code, l.is_default) for l in languages] == [("", True), ("en", False), ("fr", False)]
    assert languages[0].name == "Default"
    assert languages[0].file_path == str(tmp_path / "Base.lproj" / "Localizable.strings")
    assert all(l.base_name == "Localizable" for l in languages)


def test_discover_promotes_first_folder_without_english(backend, tmp_path):
    """Test 6: Without Base or English the first folder becomes the default."""
    make_lproj(tmp_path, "fr.lproj", '"a" = "Un";')
    make_lproj(tmp_path, "de.lproj", '"a" = "Ein";')

    languages = backend.discover_languages(tmp_path)

    assert [(l.code, l.is_default) for l in languages] == [("", True), ("fr", False)]
    assert languages[0].file_path.endswith("de.lproj/Localizable.strings")


def test_discover_promotes_english(backend, tmp_path):
    """Test 7: English is preferred when promoting a default."""
    make_lproj(tmp_path, "de.lproj", '"a" = "Ein";')
    make_lproj(tmp_path, "en.lproj", '"a" = "One";')

    languages = backend.discover_languages(tmp_path)

    assert [(l.code, l.is_default) for l in languages] == [("", True), ("de", False)]
    assert "en.lproj" in languages[0].file_path


def test_discover_configured_development_language(tmp_path):
    """Test 8: A configured development language picks the default folder."""
    backend = IosBackend(IosFormatConfiguration(development_language="fr"))
    make_lproj(tmp_path, "en.lproj", '"a" = "One";')
    make_lproj(tmp_path, "fr.lproj", '"a" = "Un";')

    languages = backend.discover_languages(tmp_path)

    assert [(l.code, l.is_default) for l in languages] == [("", True), ("en", False)]
    assert "fr.lproj" in languages[0].file_path


def test_discover_search_subfolders_and_stringsdict_only(backend, tmp_path):
    """Test 9: Resources/ is searched; a .stringsdict alone is enough."""
    make_lproj(tmp_path / "Resources", "en.lproj", '"a" = "A";')
    make_lproj(tmp_path / "Resources", "ja.lproj", stringsdict=PLURAL_STRINGSDICT)
    make_lproj(tmp_path, "it.lproj")  # no resource files
    (tmp_path / ".lrm" / "es.lproj").mkdir(parents=True)

    languages = backend.discover_languages(tmp_path)

    assert [l.code for l in languages] == ["", "ja"]
    assert languages[1].file_path.endswith("ja.lproj/Localizable.strings")


def test_can_handle(backend, tmp_path):
    """Test 10: Only folders with the configured files are recognized."""
    make_lproj(tmp_path, "en.lproj")
    assert not backend.can_handle(tmp_path)

    make_lproj(tmp_path, "en.lproj", '"a" = "A";')
    assert backend.can_handle(tmp_path)


# ----------------------------------------------------------------------
# Reading / writing
# ----------------------------------------------------------------------

def test_read_merges_stringsdict(backend, tmp_path):
    """Test 11: Plurals replace same-key .strings entries in place or are appended."""
    folder = make_lproj(
        tmp_path, "en.lproj",
        '/* Cart count */\n"items" = "%d items";\n"title" = "Shop";\n',
        PLURAL_STRINGSDICT,
    )
    language = LanguageInfo(code="", is_default=True, file_path=str(folder / "Localizable.strings"))

    rf = backend.read(language)

    assert rf.keys() == ["items", "title", "files"]
    items = rf.get("items")
    assert items.is_plural
    assert items.plural_forms == {"one": "%d item", "other": "%d items"}
    assert items.comment == "Cart count"
    assert rf.get("files").plural_forms == {"other": "%d files"}


def test_read_missing(backend, tmp_path):
    """Test 12: Neither file present raises ResourceNotFoundError."""
    language = LanguageInfo(code="fr", file_path=str(tmp_path / "fr.lproj" / "Localizable.strings"))
    with pytest.raises(ResourceNotFoundError):
        backend.read(language)


def test_write_splits_plurals(backend, tmp_path):
    """Test 13: Plurals go to .stringsdict, everything else to .strings."""
    strings_path = tmp_path / "fr.lproj" / "Localizable.strings"
    language = LanguageInfo(code="fr", file_path=str(strings_path))
    rf = ResourceFile(language, [
        ResourceEntry(key="title", value="Boutique", comment="Header"),
        ResourceEntry.plural("items", {"one": "%d article", "other": "%d articles"}),
    ])

    backend.write(rf)

    strings = strings_path.read_text(encoding="utf-8")
    assert strings == '/* Header */\n"title" = "Boutique";\n'
    stringsdict = strings_path.with_suffix(".stringsdict").read_text(encoding="utf-8")
    assert "<key>items</key>" in stringsdict
    assert "title" not in stringsdict


def test_write_plurals_only_creates_empty_strings(backend, tmp_path):
    """Test 14: The .strings file is written even when it has no entries."""
    strings_path = tmp_path / "de.lproj" / "Localizable.strings"
    language = LanguageInfo(code="de", file_path=str(strings_path))

    backend.write(ResourceFile(language, [ResourceEntry.plural("items", {"other": "%d Artikel"})]))

    assert strings_path.read_text(encoding="utf-8") == ""
    assert strings_path.with_suffix(".stringsdict").is_file()


def test_write_removes_stale_stringsdict(backend, tmp_path):
    """Test 15: A .stringsdict without remaining plurals is deleted."""
    folder = make_lproj(tmp_path, "fr.lproj", '"a" = "b";', PLURAL_STRINGSDICT)
    language = LanguageInfo(code="fr", file_path=str(folder / "Localizable.strings"))

    backend.write(ResourceFile(language, [ResourceEntry(key="a", value="c")]))

    assert not (folder / "Localizable.stringsdict").exists()
    assert (folder / "Localizable.strings").read_text(encoding="utf-8") == '"a" = "c";\n'


def test_write_without_path(backend):
    """Test 16: Writing without a file path raises InvalidTargetError."""
    with pytest.raises(InvalidTargetError):
        backend.write(ResourceFile(LanguageInfo(code="fr"), []))


def test_round_trip(backend, tmp_path):
    """Test 17: Writing what was read reproduces both files."""
    folder = make_lproj(tmp_path, "en.lproj")
    language = LanguageInfo(code="", is_default=True, file_path=str(folder / "Localizable.strings"))
    entries = [
        ResourceEntry(key="greeting", value='Hello, "%@"!\n', comment="Home"),
        ResourceEntry.plural("files", {"one": "%@ file", "other": "%@ files"}, comment="Counter"),
    ]

    backend.write(ResourceFile(language, entries))
    first_strings = (folder / "Localizable.strings").read_text(encoding="utf-8")
    first_dict = (folder / "Localizable.stringsdict").read_text(encoding="utf-8")

    rf = backend.read(language)
    assert rf.get("greeting").value == 'Hello, "%@"!\n'
    assert rf.get("files").plural_forms == {"one": "%@ file", "other": "%@ files"}

    backend.write(rf)
    assert (folder / "Localizable.strings").read_text(encoding="utf-8") == first_strings
    assert (folder / "Localizable.stringsdict").read_text(encoding="utf-8") == first_dict


# ----------------------------------------------------------------------
# Language files
# ----------------------------------------------------------------------

def test_create_and_delete_language_folder(backend, tmp_path):
    """Test 18: A new .lproj gets blank copies; deleting removes the folder."""
    source = ResourceFile(LanguageInfo(code="", is_default=True), [
        ResourceEntry(key="title", value="Shop", comment="Header"),
        ResourceEntry.plural("items", {"one": "%d item", "other": "%d items"}),
    ])

    created = backend.create_language_file("Localizable", "es", tmp_path, source)

    folder = tmp_path / "es.lproj"
    assert created.file_path == str(folder / "Localizable.strings")
    assert (folder / "Localizable.stringsdict").is_file()

    rf = backend.read(created)
    assert rf.keys() == ["title", "items"]
    assert rf.get("title").value == ""
    assert rf.get("title").comment == "Header"
    assert rf.get("items").plural_forms == {"one": "", "other": ""}

    backend.delete_language_file(created)
    assert not folder.exists()


def test_delete_keeps_folder_with_other_files(backend, tmp_path):
    """Test 19: Unrelated files keep the .lproj folder alive."""
    folder = make_lproj(tmp_path, "fr.lproj", '"a" = "b";')
    (folder / "InfoPlist.strings").write_text('"x" = "y";', encoding="utf-8")

    backend.delete_language_file(LanguageInfo(code="fr", file_path=str(folder / "Localizable.strings")))

    assert folder.is_dir()
    assert not (folder / "Localizable.strings").exists()


def test_read_latin1_strings_is_malformed(backend, tmp_path):
    """Test 20: A .strings file that is not UTF-8 raises MalformedInputError."""
    folder = tmp_path / "fr.lproj"
    folder.mkdir()
    (folder / "Localizable.strings").write_bytes(b'"k" = "caf\xe9";')

    with pytest.raises(MalformedInputError):
        backend.read(LanguageInfo(code="fr", file_path=str(folder / "Localizable.strings")))


def test_validate_reports_undecodable_file(backend, tmp_path):
    """Test 21: One undecodable language does not stop validation of the rest."""
    make_lproj(tmp_path, "en.lproj", '"k" = "coffee";')
    (make_lproj(tmp_path, "fr.lproj") / "Localizable.strings").write_bytes(b'"k" = "caf\xe9";')
    make_lproj(tmp_path, "de.lproj", '"other" = "Kaffee";')

    result = backend.validate(tmp_path)

    assert list(result.read_errors) == ["fr"]
    assert result.missing_keys == {"de": ["k"]}
    assert result.extra_keys == {"de": ["other"]}


def test_write_rejects_unwritable_plural(backend, tmp_path):
    """Test 22: A plural form with a control character fails before any file is written."""
    folder = make_lproj(tmp_path, "en.lproj")
    language = LanguageInfo(code="", is_default=True, file_path=str(folder / "Localizable.strings"))
    entries = [
        ResourceEntry(key="title", value="Shop"),
        ResourceEntry.plural("items", {"one": "a\x01b", "other": "%d items"}),
    ]

    with pytest.raises(UnsupportedStructureError):
        backend.write(ResourceFile(language, entries))

    assert not (folder / "Localizable.strings").exists()
    assert not (folder / "Localizable.stringsdict").exists()
