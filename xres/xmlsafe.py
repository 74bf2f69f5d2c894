#!/usr/bin/env python3
"""
Hardened XML parsing for user-supplied resource files.

DTD loading, entity resolution and network access are all disabled. Documents
whose internal DTD subset declares entities or elements are rejected outright,
so an XXE payload fails to parse instead of being resolved.
"""

from typing import Optional, Union

from lxml import etree

from .errors import MalformedInputError


def create_secure_parser() -> etree.XMLParser:
    """Return an XML parser configured to avoid external entity resolution."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        dtd_validation=False,
        load_dtd=False,
        huge_tree=False,
        remove_blank_text=False,
        recover=False,
    )


def parse_xml(
    content: Union[str, bytes],
    path: Optional[str] = None,
    allow_doctype: bool = False,
) -> etree._Element:
    """
    Parse an XML document and return its root element.

    Args:
        content: Document text or raw bytes
        path: Source path, used in error messages
        allow_doctype: Accept a DOCTYPE with only an external identifier
            (plist files carry one). Internal subsets are always rejected.

    Raises:
        MalformedInputError: On syntax errors, forbidden DTDs or empty input
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not content.strip():
        raise MalformedInputError("Empty XML document", path)

    try:
        root = etree.fromstring(content, parser=create_secure_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedInputError(f"Invalid XML: {e}", path, line=e.lineno) from e
    except ValueError as e:
        raise MalformedInputError(f"Invalid XML: {e}", path) from e

    docinfo = root.getroottree().docinfo
    dtd = docinfo.internalDTD
    if dtd is not None and (any(True for _ in dtd.entities()) or any(True for _ in dtd.elements())):
        raise MalformedInputError("DTD declarations are not allowed", path)
    if docinfo.doctype and not allow_doctype:
        raise MalformedInputError("DOCTYPE declarations are not allowed", path)

    return root


def local_name(element: etree._Element) -> str:
    """Tag name without namespace; "" for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def namespace_of(element: etree._Element) -> str:
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).namespace or ""


def child_elements(element: etree._Element, name: Optional[str] = None) -> list:
    """Element children (skipping comments), optionally filtered by local name."""
    return [
        child for child in element
        if isinstance(child.tag, str) and (name is None or local_name(child) == name)
    ]


def first_child(element: etree._Element, name: str) -> Optional[etree._Element]:
    for child in child_elements(element, name):
        return child
    return None


def text_content(element: Optional[etree._Element]) -> Optional[str]:
    """
    Concatenated text of an element and its inline descendants.

    Comments, processing instructions and unresolved entity references
    contribute nothing but their tails. Returns None for a missing element.
    """
    if element is None:
        return None
    parts = [element.text or ""]
    for child in element:
        if isinstance(child.tag, str):
            parts.append(text_content(child) or "")
        parts.append(child.tail or "")
    return "".join(parts)
