"""
Uniform access to XML-shaped trees.

Sources hand us either lxml elements or dict trees produced by XML-to-dict
converters. Converters disagree on how attributes are keyed ('@_id', '@id' or
plain 'id') and where element text lives ('#text', '_text', ...), so every
lookup here tries all known conventions.
"""
from collections.abc import Mapping
from typing import Any

from lxml import etree  # type: ignore


ATTRIBUTE_PREFIXES = ("@_", "@", "_", "")
TEXT_KEYS = ("#text", "_text", "#cdata", "text", "value", "Value")
LANG_ATTRIBUTES = ("lang", "language", "Language")


def is_element(node: Any) -> bool:
    return isinstance(node, etree._Element)


def get_attribute(node: Any, name: str) -> str | None:
    """Return a stripped attribute value regardless of prefix convention"""
    value: Any = None
    if is_element(node):
        value = node.get(name)
    elif isinstance(node, Mapping):
        for prefix in ATTRIBUTE_PREFIXES:
            key = f"{prefix}{name}"
            if key in node and not isinstance(node[key], (Mapping, list)):
                value = node[key]
                break

    if value is None:
        return None
    value = str(value).strip()
    return value or None


def get_children(node: Any, tag: str) -> list[Any]:
    """Return child nodes named ``tag`` in document order"""
    if is_element(node):
        return node.findall(tag)
    if isinstance(node, Mapping):
        value = node.get(tag)
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]
    return []


def get_child(node: Any, tag: str) -> Any:
    children = get_children(node, tag)
    return children[0] if children else None


def node_text(node: Any) -> str | None:
    """Extract the text carried by a node, or None when it has none"""
    if node is None:
        return None

    if is_element(node):
        text = node.text
    elif isinstance(node, str):
        text = node
    elif isinstance(node, (int, float)) and not isinstance(node, bool):
        text = str(node)
    elif isinstance(node, Mapping):
        text = None
        for key in TEXT_KEYS:
            candidate = node.get(key)
            if isinstance(candidate, (str, int, float)) and not isinstance(candidate, bool):
                text = str(candidate)
                break
    else:
        text = None

    if text is None:
        return None
    text = text.strip()
    return text or None


def node_language(node: Any) -> str | None:
    """Return the language tag of a node, if it carries one"""
    if isinstance(node, str):
        return None
    if is_element(node):
        # xml:lang is common in XMLTV feeds produced by some grabbers
        return node.get("lang") or node.get("{http://www.w3.org/XML/1998/namespace}lang")
    for name in LANG_ATTRIBUTES:
        value = get_attribute(node, name)
        if value:
            return value
    return None


def local_tag(node: Any) -> str | None:
    """Return an element's tag without namespace"""
    if not is_element(node) or not isinstance(node.tag, str):
        return None
    return etree.QName(node).localname
