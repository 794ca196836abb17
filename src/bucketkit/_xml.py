"""
S3 XML helpers for bucketkit
"""

import xml.etree.ElementTree as ET
from typing import Iterator, Optional, Union

S3_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"

XmlShape = Union[str, dict, list, None]


def local_name(tag: str) -> str:
    return tag.split("}")[-1]


def parse(body: Union[bytes, str]) -> Optional[ET.Element]:
    """Parse a response body, returning None for an empty or malformed document."""
    if not body or not body.strip():
        return None
    try:
        return ET.fromstring(body)
    except ET.ParseError:
        return None


def children(node: Optional[ET.Element], name: str) -> Iterator[ET.Element]:
    """Direct children of ``node`` with the given local name."""
    if node is None:
        return
    for child in node:
        if local_name(child.tag) == name:
            yield child


def child(node: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    return next(children(node, name), None)


def child_text(node: Optional[ET.Element], name: str) -> Optional[str]:
    found = child(node, name)
    if found is None or found.text is None:
        return None
    return found.text.strip()


def build(root: str, shape: XmlShape) -> bytes:
    """
    Serialize a request document.

    ``shape`` maps element names to text, to nested dicts, or to lists of
    nested dicts for repeated elements, e.g.
    ``build("VersioningConfiguration", {"Status": "Enabled"})``.
    """
    element = ET.Element(root, xmlns=S3_NAMESPACE)
    _fill(element, shape)
    return ET.tostring(element, encoding="utf-8", xml_declaration=False)


def _fill(element: ET.Element, shape: XmlShape) -> None:
    if shape is None:
        return
    if isinstance(shape, dict):
        for name, value in shape.items():
            if value is None:
                continue
            if isinstance(value, list):
                for item in value:
                    _fill(ET.SubElement(element, name), item)
            else:
                _fill(ET.SubElement(element, name), value)
    elif isinstance(shape, bool):
        element.text = "true" if shape else "false"
    else:
        element.text = str(shape)
