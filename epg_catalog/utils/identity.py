"""
Channel identity resolution

Decides whether an incoming channel denotes the same real-world channel as an
entry already in the catalog.
"""
import re
from collections.abc import Mapping, Sequence

from epg_catalog.models import Channel


_NAME_STRIP_RE = re.compile(r"[\s\-]+")


def normalize_name(name: str | None) -> str:
    """Lowercase and drop all whitespace and hyphens: 'Rai-Sport 2' -> 'raisport2'"""
    return _NAME_STRIP_RE.sub("", (name or "").lower())


def resolve_alias(name: str | None, aliases: Mapping[str, str]) -> str | None:
    """
    Return the matching alias configured for ``name``, or None

    ``aliases`` maps an alias to a normalized channel name. A name matches an
    entry when it normalizes to either side of it.
    """
    key = normalize_name(name)
    if not key:
        return None
    for alias, target in aliases.items():
        if key in (normalize_name(alias), normalize_name(target)):
            return alias
    return None


def identity_key(channel: Channel) -> str:
    """Key under which a channel is unique in the catalog"""
    if channel.identifier:
        return f"id:{channel.identifier}"
    return f"name:{normalize_name(channel.canonical_name)}"


def find_matching_channel(catalog: Sequence[Channel], incoming: Channel) -> int | None:
    """
    Return the index of the catalog entry matching ``incoming``, or None

    An identifier match anywhere in the catalog beats a name match. Within one
    rule the first entry in catalog order wins.
    """
    if incoming.identifier:
        for index, existing in enumerate(catalog):
            if existing.identifier == incoming.identifier:
                return index

    wanted = normalize_name(incoming.canonical_name)
    if not wanted:
        return None

    for index, existing in enumerate(catalog):
        if normalize_name(existing.canonical_name) == wanted:
            return index

    return None
