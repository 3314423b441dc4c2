# Copyright Red Hat
#
# xdiff/treediff/parser.py - Unordered tree diff XML parser adapter
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Build ``Tree`` objects from XML text using lxml.

Element tags and attribute names keep lxml's Clark notation
(``{namespace}name``). Text of childless elements becomes the node text;
text interleaved with child elements becomes ``#text`` child nodes.
"""
from typing import Any, List, Optional, Tuple, Union
import logging

from lxml import etree

from xdiff import XDIFF_SUBSYSTEM_PARSER, XDiffParseError

from .options import ParseOptions
from .tree import TEXT_LABEL, Tree, TreeBuilder

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Label used for comment nodes when comments are kept
COMMENT_LABEL = "#comment"

#: Label used for unresolved entity references
ENTITY_LABEL = "#entity"

#: Label prefix used for processing instruction nodes when they are kept
PI_LABEL_PREFIX = "?"


def _log_debug_parser(msg, *args, **kwargs):
    """A wrapper for parser subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": XDIFF_SUBSYSTEM_PARSER}, **kwargs)


def _make_parser(options: ParseOptions) -> etree.XMLParser:
    """
    Return an ``lxml`` parser configured from ``options``.
    """
    return etree.XMLParser(
        remove_comments=options.ignore_comments,
        remove_pis=options.ignore_processing_instructions,
        resolve_entities=options.resolve_entities,
        no_network=True,
    )


def _clean_text(text: Optional[str], options: ParseOptions) -> Optional[str]:
    """
    Normalise a text segment, returning ``None`` for ignorable text.
    """
    if text is None:
        return None
    if options.strip_whitespace:
        text = text.strip()
    return text or None


def _label(elem) -> str:
    """
    Return the node label for an lxml element, comment or PI.
    """
    if elem.tag is etree.Comment:
        return COMMENT_LABEL
    if elem.tag is etree.PI:
        return f"{PI_LABEL_PREFIX}{elem.target}"
    if elem.tag is etree.Entity:
        return ENTITY_LABEL
    return elem.tag


def tree_from_element(root, options: Optional[ParseOptions] = None) -> Tree:
    """
    Build a ``Tree`` from an lxml element.

    Node ids are assigned in document order from a counter local to this
    call.

    :param root: The lxml root element.
    :type root: ``lxml.etree._Element``
    :param options: Parsing options.
    :type options: ``Optional[ParseOptions]``
    :returns: A new ``Tree``.
    :rtype: ``Tree``
    """
    options = options or ParseOptions()
    builder = TreeBuilder()

    stack: List[Tuple[Any, Optional[int]]] = [(root, None)]
    while stack:
        item, parent = stack.pop()
        if isinstance(item, str):
            builder.add_node(TEXT_LABEL, text=item, parent=parent)
            continue

        is_element = item.tag not in (etree.Comment, etree.PI, etree.Entity)
        children = list(item) if is_element else []
        text = _clean_text(item.text, options)

        node_id = builder.add_node(
            _label(item),
            attributes=dict(item.attrib) if is_element else None,
            text=text if not children else None,
            parent=parent,
            sourceline=item.sourceline,
        )
        if not children:
            continue

        # Interleave mixed content text segments with the child elements.
        items: List[Tuple[Any, Optional[int]]] = []
        if text is not None:
            items.append((text, node_id))
        for child in children:
            items.append((child, node_id))
            tail = _clean_text(child.tail, options)
            if tail is not None:
                items.append((tail, node_id))
        stack.extend(reversed(items))

    tree = builder.build()
    _log_debug_parser("Converted %s element into %d tree nodes", root.tag, len(tree))
    return tree


def parse(text: Union[str, bytes], options: Optional[ParseOptions] = None) -> Tree:
    """
    Parse XML text into a ``Tree``.

    ``str`` input is encoded as UTF-8 before parsing.

    :param text: The XML document.
    :type text: ``Union[str, bytes]``
    :param options: Parsing options.
    :type options: ``Optional[ParseOptions]``
    :returns: A new ``Tree``.
    :rtype: ``Tree``
    :raises XDiffParseError: if the document is not well-formed.
    """
    options = options or ParseOptions()
    data = text.encode("utf-8") if isinstance(text, str) else text
    try:
        root = etree.fromstring(data, _make_parser(options))
    except etree.XMLSyntaxError as err:
        raise XDiffParseError(
            f"Malformed document: {err.msg}", line=err.lineno
        ) from err
    if root is None:
        raise XDiffParseError("Document has no root element")
    return tree_from_element(root, options)


def parse_file(path: str, options: Optional[ParseOptions] = None) -> Tree:
    """
    Parse the XML file at ``path`` into a ``Tree``.

    :param path: The path of the document to parse.
    :type path: ``str``
    :param options: Parsing options.
    :type options: ``Optional[ParseOptions]``
    :returns: A new ``Tree``.
    :rtype: ``Tree``
    :raises XDiffParseError: if the file cannot be read or is not
                             well-formed.
    """
    _log_debug_parser("Parsing %s", path)
    try:
        with open(path, "rb") as fp:
            data = fp.read()
    except OSError as err:
        raise XDiffParseError(f"Failed to read {path}: {err}") from err
    return parse(data, options)


__all__ = [
    "COMMENT_LABEL",
    "ENTITY_LABEL",
    "PI_LABEL_PREFIX",
    "parse",
    "parse_file",
    "tree_from_element",
]
