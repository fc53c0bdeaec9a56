"""
XML helpers for template part trees.

Thin wrappers around lxml for the operations the engine repeats on every
format: qualified names, bounded pre-order walks, tail-safe removal and
mixed-content text insertion.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from lxml import etree as lxml_etree

from ..exceptions import TemplateFormatInvalid

logger = logging.getLogger(__name__)

_PARSER = lxml_etree.XMLParser(remove_blank_text=False, resolve_entities=False, huge_tree=True)


def qname(namespaces: Dict[str, str], prefixed: str) -> str:
    """
    Convert ``prefix:local`` into Clark notation ``{uri}local``.

    Args:
        namespaces: Prefix to URI mapping
        prefixed: Name in ``prefix:local`` form

    Returns:
        Clark notation name
    """
    prefix, _, local = prefixed.partition(":")
    if not local:
        return prefixed
    return f"{{{namespaces[prefix]}}}{local}"


def local_name(element) -> str:
    """Return the tag name of an element without its namespace."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def parse_xml(data: bytes, part_name: str = "<memory>"):
    """
    Parse XML bytes into an lxml root element.

    Args:
        data: Raw XML bytes
        part_name: Part name used in error messages

    Returns:
        Root element
    """
    try:
        return lxml_etree.fromstring(data, _PARSER)
    except lxml_etree.XMLSyntaxError as e:
        raise TemplateFormatInvalid(f"Part {part_name} is not well-formed XML", str(e)) from e


def serialize_xml(root) -> bytes:
    """Serialize an element tree the way office applications write their parts."""
    return lxml_etree.tostring(
        root.getroottree(),
        xml_declaration=True,
        encoding="UTF-8",
        standalone=True,
    )


def iter_elements(root, tags: Iterable[str], stop_tags: Iterable[str] = (),
                  include_root: bool = False) -> List:
    """
    Collect elements with the given tags in document order.

    The walk does not descend into elements whose tag is in ``stop_tags``;
    the root itself is never treated as a stop element. The result is a
    snapshot list so callers may mutate the tree while iterating.

    Args:
        root: Element to start from
        tags: Clark notation tags to collect
        stop_tags: Clark notation tags whose subtrees are skipped
        include_root: Whether the root itself may be collected

    Returns:
        List of matching elements
    """
    wanted = frozenset(tags)
    stops = frozenset(stop_tags)
    found = []

    if include_root and root.tag in wanted:
        found.append(root)

    stack = list(reversed([child for child in root if isinstance(child.tag, str)]))
    while stack:
        element = stack.pop()
        if element.tag in wanted:
            found.append(element)
        if element.tag in stops:
            continue
        stack.extend(reversed([child for child in element if isinstance(child.tag, str)]))
    return found


def find_first(root, tag: str):
    """Return the first descendant with ``tag`` or None."""
    return next(root.iter(tag), None)


def find_ancestor(element, tags: Iterable[str], boundary_tags: Iterable[str] = ()):
    """
    Walk upward to the nearest ancestor with one of ``tags``.

    Args:
        element: Element to start from (excluded)
        tags: Tags that end the walk successfully
        boundary_tags: Tags that end the walk unsuccessfully

    Returns:
        The ancestor or None
    """
    wanted = frozenset(tags)
    boundary = frozenset(boundary_tags)
    current = element.getparent()
    while current is not None:
        if current.tag in wanted:
            return current
        if current.tag in boundary:
            return None
        current = current.getparent()
    return None


def remove_element(element) -> None:
    """Detach an element and keep its tail text in the document."""
    parent = element.getparent()
    if parent is None:
        return
    tail = element.tail
    if tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + tail
        else:
            parent.text = (parent.text or "") + tail
    parent.remove(element)


def insert_text_before(element, text: str) -> None:
    """Insert a text node directly before ``element`` in mixed content."""
    if not text:
        return
    previous = element.getprevious()
    if previous is not None:
        previous.tail = (previous.tail or "") + text
    else:
        parent = element.getparent()
        parent.text = (parent.text or "") + text


def replace_element(old, new) -> None:
    """Put ``new`` where ``old`` is, carrying over the tail text."""
    new.tail = old.tail
    old.tail = None
    parent = old.getparent()
    parent.replace(old, new)


def child_index(parent, child) -> int:
    """Return the position of ``child`` among the element children of ``parent``."""
    return parent.index(child)


def text_content(element) -> str:
    """Return the concatenated text of an element and its descendants."""
    return "".join(element.itertext())


def make_element(namespaces: Dict[str, str], prefixed: str, attrib: Optional[Dict[str, str]] = None,
                 nsmap: Optional[Dict[str, str]] = None):
    """
    Create a detached element from prefixed tag and attribute names.

    Args:
        namespaces: Prefix to URI mapping used to resolve names
        prefixed: Tag in ``prefix:local`` form
        attrib: Attributes with ``prefix:local`` or plain names
        nsmap: Namespace declarations to put on the element

    Returns:
        New element
    """
    element = lxml_etree.Element(qname(namespaces, prefixed), nsmap=nsmap)
    for name, value in (attrib or {}).items():
        element.set(qname(namespaces, name), value)
    return element


def sub_element(parent, namespaces: Dict[str, str], prefixed: str,
                attrib: Optional[Dict[str, str]] = None):
    """Append a new child element built like :func:`make_element`."""
    element = lxml_etree.SubElement(parent, qname(namespaces, prefixed))
    for name, value in (attrib or {}).items():
        element.set(qname(namespaces, name), value)
    return element
