from collections.abc import Collection, Mapping
from typing import Any, Optional
import logging

from lxml import etree # type: ignore

from epg_catalog.errors import RecordMalformed, SourceMalformed
from epg_catalog.models import Channel, ChannelListEntry, Program
from epg_catalog.utils.field_mapping import (
    CHANNEL_LIST_ATTRIBUTES,
    XMLTV_CHANNEL_ATTRIBUTES,
    XMLTV_PROGRAMME_ATTRIBUTES,
    map_fields,
)
from epg_catalog.utils.text_values import extract_text
from epg_catalog.utils.timezone import parse_timestamp
from epg_catalog.utils.xml_nodes import (
    get_attribute,
    get_child,
    get_children,
    is_element,
    local_tag,
    node_text,
)

logger = logging.getLogger(__name__)


def load_xml_root(content: bytes | str) -> etree._Element:
    """
    Parse raw XML content into an lxml root element

    Raises:
        SourceMalformed: If the content is not well-formed XML
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise SourceMalformed(f"Document is not well-formed XML: {e}") from e

    if root is None:
        raise SourceMalformed("Document is empty")
    logger.debug(f"  XML document loaded (root tag: {root.tag})")
    return root


def _locate_collection(tree: Any, root_tag: str) -> Any:
    """Return the root collection node of an lxml or dict tree"""
    if is_element(tree):
        if local_tag(tree) == root_tag:
            return tree
    elif isinstance(tree, Mapping):
        node = tree.get(root_tag)
        if isinstance(node, Mapping):
            return node
        # Empty root elements convert to '' or None in most XML-to-dict tools
        if root_tag in tree and not node:
            return {}

    raise SourceMalformed(f"Expected root collection <{root_tag}> not found")


def parse_xmltv_document(
    content: bytes | str,
    *,
    preferred_language: Optional[str] = None,
    allowed_ids: Optional[Collection[str]] = None
) -> list[Channel]:
    """
    Parse a raw XMLTV document into canonical channels

    Args:
        content: Raw XMLTV document
        preferred_language: Language tag preferred for multi-language text
        allowed_ids: Optional allow-list of channel identifiers to retain

    Returns:
        Channels in document order, each carrying its program candidates

    Raises:
        SourceMalformed: If the document is not XML or has no <tv> root
    """
    logger.debug("Parsing XMLTV document (%s bytes)", len(content))
    root = load_xml_root(content)
    return parse_xmltv_tree(root, preferred_language=preferred_language, allowed_ids=allowed_ids)


def parse_xmltv_tree(
    tree: Any,
    *,
    preferred_language: Optional[str] = None,
    allowed_ids: Optional[Collection[str]] = None
) -> list[Channel]:
    """
    Translate an XMLTV tree into canonical channels

    ``tree`` is either an lxml <tv> element or a dict tree as produced by
    XML-to-dict converters (with any attribute prefix convention).
    """
    root = _locate_collection(tree, "tv")
    allowed = set(allowed_ids) if allowed_ids is not None else None

    logger.debug("  Extracting programmes...")
    programs_by_channel = _parse_programmes(root, preferred_language, allowed)

    logger.debug("  Extracting channels...")
    channels = []
    for node in get_children(root, "channel"):
        try:
            channel = _parse_channel(node, preferred_language)
        except RecordMalformed as e:
            logger.warning(f"Skipping channel entry: {e}")
            continue

        if allowed is not None and channel.identifier not in allowed:
            continue

        channels.append(Channel(
            identifier=channel.identifier,
            display_name=channel.display_name,
            logo_url=channel.logo_url,
            programs=tuple(programs_by_channel.get(channel.identifier, ())),
        ))

    logger.info(
        f"XMLTV parsing complete: {len(channels)} channels, "
        f"{sum(len(ch.programs) for ch in channels)} programs"
    )
    return channels


def _parse_channel(node: Any, preferred_language: Optional[str]) -> Channel:
    """Parse a single <channel> node (programs are attached by the caller)"""
    fields = map_fields(node, XMLTV_CHANNEL_ATTRIBUTES, get_attribute)
    identifier = fields["identifier"]
    if not identifier:
        raise RecordMalformed("channel is missing its id attribute")

    display_name = extract_text(get_children(node, "display-name"), preferred_language)

    icon = get_child(node, "icon")
    logo_url = get_attribute(icon, "src") if icon is not None else None

    return Channel(
        identifier=identifier,
        display_name=display_name or identifier,
        logo_url=logo_url,
    )


def _parse_programmes(
    root: Any,
    preferred_language: Optional[str],
    allowed: Optional[set[str]]
) -> dict[str, list[Program]]:
    """Extract programme candidates grouped by channel reference"""
    programs: dict[str, list[Program]] = {}
    skipped = 0

    for node in get_children(root, "programme"):
        try:
            channel_id, program = _parse_single_programme(node, preferred_language)
        except RecordMalformed as e:
            skipped += 1
            logger.warning(f"Skipping programme entry: {e}")
            continue

        if allowed is not None and channel_id not in allowed:
            continue
        programs.setdefault(channel_id, []).append(program)

    if skipped:
        logger.warning(f"Skipped {skipped} malformed programme entries")
    return programs


def _parse_single_programme(node: Any, preferred_language: Optional[str]) -> tuple[str, Program]:
    """Parse single programme node"""
    fields = map_fields(node, XMLTV_PROGRAMME_ATTRIBUTES, get_attribute)
    channel_id = fields["channel"]
    if not channel_id:
        raise RecordMalformed("programme is missing its channel attribute")

    icon = get_child(node, "icon")

    return channel_id, Program(
        title=extract_text(get_children(node, "title"), preferred_language) or "",
        description=extract_text(get_children(node, "desc"), preferred_language),
        start=parse_timestamp(fields["start"]),
        end=parse_timestamp(fields["end"]),
        poster_url=get_attribute(icon, "src") if icon is not None else None,
    )


def parse_channel_list(content: bytes | str | Mapping) -> list[ChannelListEntry]:
    """
    Parse a provider channel list (<channels><channel site_id=...>Name</channel>)

    Raises:
        SourceMalformed: If the <channels> root collection is missing
    """
    tree = content if isinstance(content, Mapping) else load_xml_root(content)
    root = _locate_collection(tree, "channels")

    entries = []
    for node in get_children(root, "channel"):
        fields = map_fields(node, CHANNEL_LIST_ATTRIBUTES, get_attribute)
        site_id = fields["site_id"]
        if not site_id:
            logger.warning("Skipping channel list entry without site_id")
            continue

        entries.append(ChannelListEntry(
            site_id=site_id,
            name=node_text(node) or fields["xmltv_id"] or site_id,
            xmltv_id=fields["xmltv_id"],
            lang=fields["lang"],
        ))

    logger.info(f"Channel list parsed: {len(entries)} entries")
    return entries
