# Copyright Red Hat
#
# tests/treediff/test_parser.py - XML parser adapter tests.
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import os
import tempfile
import unittest

from lxml import etree

from xdiff import XDiffParseError
from xdiff.treediff.options import ParseOptions
from xdiff.treediff.parser import (
    COMMENT_LABEL,
    PI_LABEL_PREFIX,
    parse,
    parse_file,
    tree_from_element,
)
from xdiff.treediff.tree import TEXT_LABEL

from tests import data_path


class TestParse(unittest.TestCase):
    def test_simple_document(self):
        tree = parse('<a x="1"><b>hello</b><c/></a>')
        self.assertEqual([n.label for n in tree], ["a", "b", "c"])
        self.assertEqual(tree.root_node.attributes["x"], "1")
        self.assertEqual(tree.node(1).text, "hello")
        self.assertIsNone(tree.node(2).text)
        self.assertIsNone(tree.root_node.text)

    def test_bytes_input(self):
        tree = parse(b'<?xml version="1.0" encoding="UTF-8"?><a>\xc3\xa9</a>')
        self.assertEqual(tree.root_node.text, "é")

    def test_whitespace_stripped(self):
        tree = parse("<a>\n  <b>  padded  </b>\n  <c>   </c>\n</a>")
        self.assertEqual(len(tree), 3)
        self.assertEqual(tree.node(1).text, "padded")
        self.assertIsNone(tree.node(2).text)

    def test_whitespace_kept(self):
        tree = parse("<a><b>  padded  </b></a>", ParseOptions(strip_whitespace=False))
        self.assertEqual(tree.node(1).text, "  padded  ")

    def test_mixed_content(self):
        tree = parse("<p>Hello <b>big</b> world</p>")
        self.assertEqual([n.label for n in tree], ["p", TEXT_LABEL, "b", TEXT_LABEL])
        self.assertIsNone(tree.root_node.text)
        self.assertEqual(tree.node(1).text, "Hello")
        self.assertEqual(tree.node(2).text, "big")
        self.assertEqual(tree.node(3).text, "world")
        self.assertTrue(tree.node(3).is_text)

    def test_namespaces(self):
        tree = parse('<r xmlns="urn:a" xmlns:q="urn:q"><q:item q:k="v"/></r>')
        self.assertEqual(tree.root_node.label, "{urn:a}r")
        item = tree.node(1)
        self.assertEqual(item.label, "{urn:q}item")
        self.assertEqual(dict(item.attributes), {"{urn:q}k": "v"})

    def test_comments_ignored_by_default(self):
        tree = parse("<a><!-- note --><b/><?pi data?></a>")
        self.assertEqual([n.label for n in tree], ["a", "b"])

    def test_comments_kept(self):
        options = ParseOptions(ignore_comments=False, ignore_processing_instructions=False)
        tree = parse("<a><!-- note --><b/><?pi data?></a>", options)
        self.assertEqual(
            [n.label for n in tree], ["a", COMMENT_LABEL, "b", f"{PI_LABEL_PREFIX}pi"]
        )
        self.assertEqual(tree.node(1).text, "note")
        self.assertEqual(tree.node(3).text, "data")

    def test_sourceline(self):
        tree = parse("<a>\n<b/>\n</a>")
        self.assertEqual(tree.root_node.sourceline, 1)
        self.assertEqual(tree.node(1).sourceline, 2)

    def test_malformed(self):
        with self.assertRaises(XDiffParseError) as ctx:
            parse("<a><b></a>")
        self.assertIsNotNone(ctx.exception.line)
        self.assertIn("Malformed document", str(ctx.exception))

    def test_empty_input(self):
        with self.assertRaises(XDiffParseError):
            parse("")

    def test_external_entities_not_resolved(self):
        doc = (
            '<!DOCTYPE a [<!ENTITY ext SYSTEM "file:///etc/passwd">]>'
            "<a>&ext;</a>"
        )
        tree = parse(doc)
        self.assertNotIn("root:", "".join(n.text or "" for n in tree))

    def test_tree_from_element(self):
        root = etree.fromstring("<a><b>1</b><b>2</b></a>")
        tree = tree_from_element(root)
        self.assertEqual(len(tree), 3)
        self.assertEqual([n.text for n in tree.children(tree.root)], ["1", "2"])


class TestParseFile(unittest.TestCase):
    def test_parse_profile(self):
        tree = parse_file(data_path("profile1.xml"))
        self.assertEqual(tree.root_node.label, "Profile")
        self.assertEqual(len(tree), 22)
        self.assertEqual(
            [n.label for n in tree.children(1)],
            ["PersonName", "TelephoneInfo", "PaymentForm", "Address", "Address"],
        )

    def test_missing_file(self):
        with self.assertRaises(XDiffParseError):
            parse_file("/nonexistent/path/to/doc.xml")

    def test_malformed_file(self):
        with tempfile.NamedTemporaryFile("w", suffix=".xml", delete=False) as fp:
            fp.write("<a>\n<b>\n</a>\n")
            path = fp.name
        try:
            with self.assertRaises(XDiffParseError) as ctx:
                parse_file(path)
            self.assertIsNotNone(ctx.exception.line)
        finally:
            os.unlink(path)
