# Copyright Red Hat
#
# tests/test_xdiff.py - xdiff package unit tests
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import logging

import xdiff


log = logging.getLogger()


class XDiffTestsSimple(unittest.TestCase):
    """Test xdiff module"""

    def setUp(self):
        log.debug("Preparing %s", self._testMethodName)

    def tearDown(self):
        log.debug("Tearing down (%s)", self._testMethodName)
        xdiff.set_debug_mask(0)
        logging.getLogger("xdiff").handlers.clear()
        logging.getLogger("xdiff").setLevel(logging.NOTSET)

    def test_set_debug_mask(self):
        xdiff.set_debug_mask(xdiff.XDIFF_DEBUG_ALL)
        self.assertEqual(xdiff.get_debug_mask(), xdiff.XDIFF_DEBUG_ALL)

    def test_set_debug_mask_bad_mask(self):
        with self.assertRaises(ValueError):
            xdiff.set_debug_mask(xdiff.XDIFF_DEBUG_ALL + 1)
        with self.assertRaises(ValueError):
            xdiff.set_debug_mask(-1)

    def test_set_debug_names(self):
        xdiff.set_debug("matcher,engine")
        self.assertEqual(
            xdiff.get_debug_mask(), xdiff.XDIFF_DEBUG_MATCHER | xdiff.XDIFF_DEBUG_ENGINE
        )
        xdiff.set_debug("all")
        self.assertEqual(xdiff.get_debug_mask(), xdiff.XDIFF_DEBUG_ALL)

    def test_set_debug_unknown_name(self):
        with self.assertRaises(ValueError):
            xdiff.set_debug("tree,bogus")

    def test_set_debug_empty(self):
        xdiff.set_debug_mask(xdiff.XDIFF_DEBUG_TREE)
        xdiff.set_debug(None)
        self.assertEqual(xdiff.get_debug_mask(), xdiff.XDIFF_DEBUG_TREE)

    def test_setup_logging(self):
        xdiff.setup_logging(verbose=2, debug="parser")
        xdiff_log = logging.getLogger("xdiff")
        self.assertEqual(xdiff_log.level, logging.DEBUG)
        self.assertEqual(len(xdiff_log.handlers), 1)
        filters = [
            f for f in xdiff_log.handlers[0].filters
            if isinstance(f, xdiff.SubsystemFilter)
        ]
        self.assertEqual(len(filters), 1)
        self.assertEqual(filters[0].enabled_subsystems, {xdiff.XDIFF_SUBSYSTEM_PARSER})
        self.assertEqual(xdiff.get_debug_mask(), xdiff.XDIFF_DEBUG_PARSER)

    def test_setup_logging_levels(self):
        xdiff.setup_logging()
        self.assertEqual(logging.getLogger("xdiff").level, logging.WARNING)
        xdiff.setup_logging(verbose=1)
        self.assertEqual(logging.getLogger("xdiff").level, logging.INFO)

    def test_subsystem_filter(self):
        subsystem_filter = xdiff.SubsystemFilter("xdiff")
        subsystem_filter.set_debug_subsystems([xdiff.XDIFF_SUBSYSTEM_ENGINE])

        def _record(level, subsystem=None):
            record = logging.LogRecord("xdiff.x", level, __file__, 1, "msg", None, None)
            if subsystem:
                record.subsystem = subsystem
            return record

        self.assertTrue(subsystem_filter.filter(_record(logging.INFO)))
        self.assertTrue(subsystem_filter.filter(_record(logging.DEBUG)))
        self.assertTrue(
            subsystem_filter.filter(_record(logging.DEBUG, xdiff.XDIFF_SUBSYSTEM_ENGINE))
        )
        self.assertFalse(
            subsystem_filter.filter(_record(logging.DEBUG, xdiff.XDIFF_SUBSYSTEM_MATCHER))
        )

    def test_parse_error_line(self):
        err = xdiff.XDiffParseError("Malformed document", line=3)
        self.assertEqual(err.line, 3)
        self.assertEqual(str(err), "Malformed document (line 3)")
        self.assertIsNone(xdiff.XDiffParseError("oops").line)
        self.assertIsInstance(err, xdiff.XDiffError)

    def test_exception_hierarchy(self):
        for exc in (
            xdiff.XDiffInvariantError,
            xdiff.XDiffArgumentError,
            xdiff.XDiffNotFoundError,
        ):
            self.assertTrue(issubclass(exc, xdiff.XDiffError))
        self.assertEqual(xdiff.__version__, "0.1.0")
