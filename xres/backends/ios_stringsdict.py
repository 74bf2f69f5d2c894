#!/usr/bin/env python3
"""
iOS .stringsdict codec.

Only the narrow plist subset used for plural rules is understood: a root
<dict> of key/<dict> pairs, each carrying NSStringLocalizedFormatKey and one
variable dict with per-category strings. Malformed entries are skipped, the
rest of the file still loads.
"""

import logging
import re
from typing import Optional, Union

from lxml import etree

from ..errors import MalformedInputError, UnsupportedStructureError
from ..models import PLURAL_CATEGORIES, ResourceEntry
from ..xmlsafe import child_elements, first_child, local_name, parse_xml, text_content

logger = logging.getLogger(__name__)

FORMAT_KEY = "NSStringLocalizedFormatKey"
SPEC_TYPE_KEY = "NSStringFormatSpecTypeKey"
VALUE_TYPE_KEY = "NSStringFormatValueTypeKey"
PLURAL_RULE_TYPE = "NSStringPluralRuleType"
DEFAULT_VARIABLE = "count"

PLIST_DOCTYPE = (
    '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
    '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">'
)

# printf conversions that decide the value type, most specific first
_VALUE_TYPE_PATTERNS = [
    ('@', re.compile(r'%(?:\d+\$)?@')),
    ('f', re.compile(r'%(?:\d+\$)?(?:\.\d+)?[fF]')),
    ('s', re.compile(r'%(?:\d+\$)?s')),
]


def extract_variable_name(format_key: str) -> Optional[str]:
    """
    Variable name between the first and last '@' of a format key.

    "%#@count@" -> "count". Returns None without two '@' delimiters or
    with nothing between them.
    """
    if not format_key:
        return None
    start = format_key.find('@')
    end = format_key.rfind('@')
    if start < 0 or end <= start + 1:
        return None
    return format_key[start + 1:end]


def create_format_key(variable: str = DEFAULT_VARIABLE) -> str:
    return f"%#@{variable}@"


def infer_value_type(forms: dict[str, str]) -> str:
    """Value type for the plural variable from the printf specifiers in its forms."""
    for value_type, pattern in _VALUE_TYPE_PATTERNS:
        if any(pattern.search(form or "") for form in forms.values()):
            return value_type
    return 'd'


def _pairs(dict_element: etree._Element):
    """Yield (key text, value element) pairs of a plist <dict>."""
    elements = child_elements(dict_element)
    i = 0
    while i < len(elements) - 1:
        if local_name(elements[i]) != "key":
            i += 1
            continue
        yield text_content(elements[i]) or "", elements[i + 1]
        i += 2


def _parse_variable_dict(dict_element: etree._Element) -> dict[str, str]:
    forms: dict[str, str] = {}
    for name, value in _pairs(dict_element):
        if name in PLURAL_CATEGORIES and local_name(value) == "string":
            forms[name] = text_content(value) or ""
    return forms


def _parse_entry(key: str, entry_dict: etree._Element) -> ResourceEntry:
    """
    Build one plural entry.

    Raises:
        UnsupportedStructureError: Missing format key, unusable variable
            name, or no plural categories
    """
    format_key = None
    nested: dict[str, etree._Element] = {}
    for name, value in _pairs(entry_dict):
        if name == FORMAT_KEY:
            format_key = text_content(value) or ""
        elif local_name(value) == "dict":
            nested[name] = value

    if format_key is None:
        raise UnsupportedStructureError(f"'{key}' has no {FORMAT_KEY}")

    variable = extract_variable_name(format_key)
    if variable is None:
        raise UnsupportedStructureError(f"'{key}' has no variable in format key '{format_key}'")

    forms: dict[str, str] = {}
    if variable in nested:
        forms = _parse_variable_dict(nested[variable])
    if not forms:
        for name, candidate in nested.items():
            forms = _parse_variable_dict(candidate)
            if forms:
                variable = name
                break

    if not forms:
        raise UnsupportedStructureError(f"'{key}' has no plural categories")

    ordered = {category: forms[category] for category in PLURAL_CATEGORIES if category in forms}
    return ResourceEntry.plural(
        key,
        ordered,
        metadata={"format_variable": variable, "format_key": format_key},
    )


def parse_stringsdict(content: Union[str, bytes], path: Optional[str] = None) -> list[ResourceEntry]:
    """
    Parse .stringsdict content into plural entries.

    Raises:
        MalformedInputError: If the document is not XML or has no root
            plist <dict>
    """
    root = parse_xml(content, path, allow_doctype=True)
    if local_name(root) != "plist":
        raise MalformedInputError(f"Root element is <{local_name(root)}>, expected <plist>", path)
    root_dict = first_child(root, "dict")
    if root_dict is None:
        raise MalformedInputError("plist has no root <dict>", path)

    entries = []
    for key, value in _pairs(root_dict):
        if local_name(value) != "dict":
            logger.debug("Skipping non-dict value for '%s' in %s", key, path)
            continue
        try:
            entries.append(_parse_entry(key, value))
        except UnsupportedStructureError as e:
            logger.warning("Skipping stringsdict entry in %s: %s", path, e)
    return entries


def _add_pair(parent: etree._Element, key: str, tag: str = "string", text: Optional[str] = None) -> etree._Element:
    etree.SubElement(parent, "key").text = key
    value = etree.SubElement(parent, tag)
    if text is not None:
        value.text = text
    return value


def _build_entry(root_dict: etree._Element, entry: ResourceEntry) -> None:
    variable = entry.metadata.get("format_variable") or DEFAULT_VARIABLE
    format_key = entry.metadata.get("format_key")
    if extract_variable_name(format_key or "") != variable:
        format_key = create_format_key(variable)

    entry_dict = _add_pair(root_dict, entry.key, "dict")
    _add_pair(entry_dict, FORMAT_KEY, text=format_key)
    variable_dict = _add_pair(entry_dict, variable, "dict")
    _add_pair(variable_dict, SPEC_TYPE_KEY, text=PLURAL_RULE_TYPE)
    _add_pair(variable_dict, VALUE_TYPE_KEY, text=infer_value_type(entry.plural_forms))
    for category in PLURAL_CATEGORIES:
        if category in entry.plural_forms:
            _add_pair(variable_dict, category, text=entry.plural_forms[category] or "")


def serialize_stringsdict(entries: list[ResourceEntry], path: Optional[str] = None) -> str:
    """
    Render plural entries as a tab-indented .stringsdict plist.

    Raises:
        UnsupportedStructureError: If a key or form holds characters XML
            cannot carry, such as control characters
    """
    root = etree.Element("plist", version="1.0")
    root_dict = etree.SubElement(root, "dict")

    for entry in entries:
        try:
            _build_entry(root_dict, entry)
        except ValueError as e:
            raise UnsupportedStructureError(f"'{entry.key}' cannot be written to a plist: {e}", path) from e

    etree.indent(root_dict, space="\t")
    root.text = "\n"
    root_dict.tail = "\n"
    body = etree.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{PLIST_DOCTYPE}\n{body}\n'
