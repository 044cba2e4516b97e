"""Maven repository metadata (``maven-metadata.xml``) reader."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from constants import Constants
from common.http_client import Transport
from common.logging_utils import extra_context, is_debug_enabled, safe_url

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def parse_versions(text: str) -> List[str]:
    """Return versions listed in a metadata document, in source order.

    Falls back to ``latest``/``release`` when no ``versions`` block exists.
    Unparseable documents yield an empty list.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        logger.warning("Unparseable maven metadata document")
        return []
    versioning = _child(root, "versioning")
    if versioning is None:
        return []
    versions: List[str] = []
    versions_elem = _child(versioning, "versions")
    if versions_elem is not None:
        for item in versions_elem:
            if _local_name(item.tag) == "version" and item.text and item.text.strip():
                versions.append(item.text.strip())
    if versions:
        return versions
    for fallback in ("latest", "release"):
        elem = _child(versioning, fallback)
        if elem is not None and elem.text and elem.text.strip():
            return [elem.text.strip()]
    return []


def fetch_versions(transport: Transport, base_uri: str) -> List[str]:
    """Fetch and parse the metadata file under ``base_uri``.

    Tries ``maven-metadata.xml`` then ``metadata.xml``; an absent file is
    not an error and yields an empty list.
    """
    for file_name in Constants.MAVEN_METADATA_FILES:
        url = f"{base_uri.rstrip('/')}/{file_name}"
        text = transport.fetch_text(url)
        if text is None:
            continue
        versions = parse_versions(text)
        if is_debug_enabled(logger):
            logger.debug(
                "Maven metadata parsed",
                extra=extra_context(
                    event="parse", component="metadata", action="fetch_versions",
                    target=safe_url(url), count=len(versions),
                ),
            )
        if versions:
            return versions
    return []
