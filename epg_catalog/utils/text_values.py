"""
Multi-shape text fields

A logical text field (a display name, a title) may arrive as plain text, as a
language-tagged node, or as a list of language variants. Adapters convert the
raw shape into a TextValue and resolve it with a single rule: prefer the
configured language, otherwise take the first variant that has text.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from epg_catalog.utils.xml_nodes import node_language, node_text


@dataclass(frozen=True, slots=True)
class Plain:
    text: str


@dataclass(frozen=True, slots=True)
class Tagged:
    lang: str
    text: str


@dataclass(frozen=True, slots=True)
class Alternatives:
    options: tuple[TextValue, ...]


TextValue = Plain | Tagged | Alternatives


def to_text_value(raw: Any) -> TextValue | None:
    """Convert a raw node (element, dict, string or list of those) into a TextValue"""
    if raw is None:
        return None

    if isinstance(raw, (list, tuple)):
        options = tuple(
            value for value in (to_text_value(item) for item in raw) if value is not None
        )
        return Alternatives(options) if options else None

    text = node_text(raw)
    if text is None:
        return None

    lang = node_language(raw)
    if lang:
        return Tagged(lang=lang, text=text)
    return Plain(text)


def _leaves(value: TextValue) -> Iterator[Plain | Tagged]:
    if isinstance(value, Alternatives):
        for option in value.options:
            yield from _leaves(option)
    else:
        yield value


def resolve_text(value: TextValue | None, preferred_lang: str | None = None) -> str | None:
    """Resolve a TextValue to a single string using language preference"""
    if value is None:
        return None

    leaves = [leaf for leaf in _leaves(value) if leaf.text]
    if not leaves:
        return None

    if preferred_lang:
        wanted = preferred_lang.lower()
        for leaf in leaves:
            if isinstance(leaf, Tagged) and leaf.lang.lower() == wanted:
                return leaf.text

    return leaves[0].text


def extract_text(raw: Any, preferred_lang: str | None = None) -> str | None:
    """Shortcut for resolve_text(to_text_value(raw))"""
    return resolve_text(to_text_value(raw), preferred_lang)
