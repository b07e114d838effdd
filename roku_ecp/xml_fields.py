# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Defensive extraction of fields from ECP XML responses.

Devices are not always well-behaved: elements may be missing, empty, or longer than
the documented limits. Extraction is driven by an ordered table of FieldSpec
descriptors and never fails; a field that cannot be found is returned as "" and
does not affect any other field. Only structural problems (a body that is not XML
at all, or a missing root element) are errors, raised by parse_xml_root().
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from enum import Enum

from .internal_types import *
from .pkg_logging import logger
from .exceptions import EcpMalformedResponseError, EcpEmptyResponseError
from .util import truncate

class FieldKind(Enum):
    """Where the value of a field comes from"""
    ELEMENT_TEXT = "element-text"
    """The full text content of a direct child element of the node"""
    ATTRIBUTE = "attribute"
    """An attribute of the node itself"""

class FieldSpec(NamedTuple):
    """Describes one field to extract from an XML node."""
    source: str
    """The child element name or attribute name"""
    dest: str
    """The name of the destination field"""
    max_length: Optional[int] = None
    """Values longer than this are truncated. None for no limit."""
    kind: FieldKind = FieldKind.ELEMENT_TEXT

def element_text(element: Optional[ET.Element]) -> str:
    """Returns the full text content of an element, including the text of descendants,
       or "" if the element is None."""
    if element is None:
        return ""
    return "".join(element.itertext())

def find_child_element(node: Optional[ET.Element], tag: str) -> Optional[ET.Element]:
    """Returns the first direct child element of node with the given tag, or None."""
    if node is None:
        return None
    for child in node:
        if child.tag == tag:
            return child
    return None

def child_elements(node: ET.Element) -> Iterator[ET.Element]:
    """Iterates the direct child elements of node, skipping comments and processing instructions."""
    for child in node:
        if isinstance(child.tag, str):
            yield child

def first_child_element(node: ET.Element) -> Optional[ET.Element]:
    """Returns the first direct child element of node, or None if it has none."""
    return next(child_elements(node), None)

def extract_field(node: Optional[ET.Element], spec: FieldSpec) -> str:
    """Extracts a single field from node. Returns "" if the node, element or attribute is missing."""
    if node is None:
        return ""
    if spec.kind == FieldKind.ATTRIBUTE:
        value = node.get(spec.source)
        if value is None:
            return ""
    else:
        child = find_child_element(node, spec.source)
        if child is None:
            return ""
        value = element_text(child)
    return truncate(value, spec.max_length)

def extract_fields(node: Optional[ET.Element], specs: Iterable[FieldSpec]) -> Dict[str, str]:
    """Extracts every field described by specs from node.

       Every spec's dest is present in the result, in the order given. A missing source
       yields "" for that field only.
    """
    result: Dict[str, str] = {}
    for spec in specs:
        result[spec.dest] = extract_field(node, spec)
    return result

_leading_int_re = re.compile(r'^\s*([+-]?[0-9]+)')

def parse_int(text: Optional[str]) -> int:
    """Parses the leading decimal integer of text. Returns 0 if text is None, empty, or not numeric."""
    if not text:
        return 0
    m = _leading_int_re.match(text)
    if m is None:
        return 0
    return int(m.group(1))

def parse_bool(text: Optional[str], true_value: str="true") -> bool:
    """Returns True if text is exactly true_value."""
    return text == true_value

def parse_xml_root(payload: bytes, expected_tag: Optional[str]=None, source: str="response") -> ET.Element:
    """Parses an XML response body and returns its root element.

    Raises:
        EcpMalformedResponseError: The payload is not well-formed XML.
        EcpEmptyResponseError:     The payload has no root element, or the root element is not expected_tag.
    """
    if payload is None or len(payload.strip()) == 0:
        raise EcpEmptyResponseError(f"Empty {source}")
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        logger.debug(f"Unparsable {source}: {payload[:200]!r}")
        raise EcpMalformedResponseError(f"Failed to parse {source} XML: {e}") from e
    if expected_tag is not None and root.tag != expected_tag:
        raise EcpEmptyResponseError(f"Expected <{expected_tag}> in {source}, got <{root.tag}>")
    return root
