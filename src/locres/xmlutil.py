from copy import deepcopy
import html
import logging
import pathlib
from typing import Callable

from lxml import etree

from locres.errors import ResourceNotFoundError, ResourceParseError

logger = logging.getLogger(__name__)

XML_DECLARATION = b'<?xml version="1.0" encoding="utf-8"?>\n'
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def secure_parser(**kwargs) -> etree.XMLParser:
    """Return an XML parser configured to avoid external entity resolution."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        dtd_validation=False,
        load_dtd=False,
        **kwargs,
    )


def parse_xml_file(path: str | pathlib.Path) -> etree._ElementTree:
    file = pathlib.Path(path)
    if not file.is_file():
        raise ResourceNotFoundError(f"Resource file not found: {file}", str(file))

    logger.debug(f"Parsing {file}")
    try:
        return etree.parse(str(file), secure_parser(remove_blank_text=False))
    except etree.XMLSyntaxError as ex:
        line, column = ex.position if ex.position else (None, None)
        raise ResourceParseError(
            f"Failed to parse XML file {file}: {ex.msg}", str(file), line, column
        ) from ex


def to_bytes(tree: etree._ElementTree) -> bytes:
    body = etree.tostring(tree, encoding="utf-8", xml_declaration=False)
    return XML_DECLARATION + body + b"\n"


def inner_xml(element: etree._Element, unescape: Callable[[str], str] = str) -> str:
    """Serialize the content of ``element`` as an XML fragment.

    Text parts pass through ``unescape`` and are then entity-escaped again, so
    the result always parses back into the same text and elements.
    """
    content = deepcopy(element)
    for node in content.iterdescendants():
        if isinstance(node.tag, str) and node.text:
            node.text = unescape(node.text)
        if node.tail:
            node.tail = unescape(node.tail)

    segments = [html.escape(unescape(content.text or ""), quote=False)]
    for child in content:
        segments.append(etree.tostring(child, encoding="unicode", with_tail=False))
        segments.append(html.escape(child.tail or "", quote=False))
    return "".join(segments)


def set_inner_xml(
    element: etree._Element,
    content: str,
    escape: Callable[[str], str] = str,
    markup: bool = False,
) -> None:
    """Replace an element's content.

    With ``markup`` the content is an XML fragment as produced by ``inner_xml``
    and its elements are kept. Otherwise the content is plain text.
    """
    for child in list(element):
        element.remove(child)

    if markup:
        try:
            wrapper = etree.fromstring(
                f"<wrapper>{content}</wrapper>", parser=secure_parser()
            )
        except etree.XMLSyntaxError as ex:
            logger.warning(f"Malformed markup in <{element.tag}>, writing it as text: {ex.msg}")
        else:
            element.text = escape(wrapper.text) if wrapper.text else wrapper.text
            for child in list(wrapper):
                for node in child.iter():
                    if node is not child and node.tail:
                        node.tail = escape(node.tail)
                    if isinstance(node.tag, str) and node.text:
                        node.text = escape(node.text)
                if child.tail:
                    child.tail = escape(child.tail)
                element.append(child)
            return

    element.text = escape(content)


def remove_element(element: etree._Element) -> None:
    """Remove ``element`` without disturbing the indentation of its siblings."""
    parent = element.getparent()
    if element.getnext() is None:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = element.tail
        else:
            parent.text = element.tail
    parent.remove(element)


def append_indented(
    parent: etree._Element, element: etree._Element, space: str = "  "
) -> None:
    """Append ``element`` to ``parent`` using the indentation already in place."""
    depth = sum(1 for _ in parent.iterancestors())
    closing = "\n" + space * depth
    child_indent = closing + space

    if len(parent):
        last = parent[-1]
        if last.tail is not None and not last.tail.strip() and "\n" in last.tail:
            closing = last.tail
        if parent.text is not None and not parent.text.strip() and "\n" in parent.text:
            child_indent = parent.text
        last.tail = child_indent
    else:
        parent.text = child_indent

    unit = child_indent[len(closing) :] if child_indent.startswith(closing) else space
    _indent_children(element, child_indent, unit or space)
    element.tail = closing
    parent.append(element)


def _indent_children(element: etree._Element, indent: str, unit: str) -> None:
    if not len(element):
        return
    if element.text is None or not element.text.strip():
        element.text = indent + unit
    children = list(element)
    for index, child in enumerate(children):
        _indent_children(child, indent + unit, unit)
        child.tail = indent + unit if index < len(children) - 1 else indent
