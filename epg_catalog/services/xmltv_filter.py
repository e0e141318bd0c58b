"""
XMLTV allow-list filter

Subsets an XMLTV document to the channels named in an allow-list. The output
keeps the input's format, root attributes and doctype; only <channel> and
<programme> elements outside the allow-list are removed.
"""
import logging
from collections.abc import Collection, Iterable
from pathlib import Path

from lxml import etree # type: ignore

from epg_catalog.errors import SourceMalformed
from epg_catalog.services.xmltv_adapter import load_xml_root
from epg_catalog.utils.xml_nodes import get_attribute, local_tag


logger = logging.getLogger(__name__)


def parse_allow_list(lines: Iterable[str]) -> list[str]:
    """Channel identifiers, one per line; blank lines ignored, order and first occurrence kept"""
    seen: dict[str, None] = {}
    for line in lines:
        identifier = line.strip()
        if identifier:
            seen.setdefault(identifier, None)
    return list(seen)


def load_allow_list(file_path: Path | str) -> list[str]:
    """Read an allow-list file (one channel identifier per line)"""
    file_path = Path(file_path)
    identifiers = parse_allow_list(file_path.read_text(encoding="utf-8").splitlines())
    logger.info(f"Loaded {len(identifiers)} channel ids from {file_path}")
    return identifiers


def filter_xmltv_document(content: bytes | str, allow_list: Collection[str]) -> bytes:
    """
    Keep only channels and programmes whose identifier is allow-listed

    Args:
        content: Raw XMLTV document
        allow_list: Channel identifiers to keep

    Returns:
        The filtered document, UTF-8 encoded with an XML declaration

    Raises:
        SourceMalformed: If the document is not XML or has no <tv> root
    """
    root = load_xml_root(content)
    if local_tag(root) != "tv":
        raise SourceMalformed("Expected root collection <tv> not found")

    allowed = set(allow_list)
    total_channels = total_programmes = kept_channels = kept_programmes = 0

    for element in list(root):
        tag = local_tag(element)
        if tag == "channel":
            total_channels += 1
            if get_attribute(element, "id") in allowed:
                kept_channels += 1
                continue
        elif tag == "programme":
            total_programmes += 1
            if get_attribute(element, "channel") in allowed:
                kept_programmes += 1
                continue
        else:
            continue
        root.remove(element)

    logger.info(f"Channels in source: {total_channels}, programmes in source: {total_programmes}")
    logger.info(f"Channels kept: {kept_channels}, programmes kept: {kept_programmes}")

    return etree.tostring(root.getroottree(), xml_declaration=True, encoding="UTF-8")
