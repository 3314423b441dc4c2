# Copyright Red Hat
#
# xdiff/_xdiff.py - Unordered tree diff global definitions
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Global definitions for the top-level xdiff package.
"""
from typing import Iterable, Optional
import logging

_log = logging.getLogger("xdiff")

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

# xdiff debugging subsystem mask
XDIFF_DEBUG_TREE = 1
XDIFF_DEBUG_SIGNATURE = 2
XDIFF_DEBUG_MATCHER = 4
XDIFF_DEBUG_ENGINE = 8
XDIFF_DEBUG_PARSER = 16
XDIFF_DEBUG_ALL = (
    XDIFF_DEBUG_TREE
    | XDIFF_DEBUG_SIGNATURE
    | XDIFF_DEBUG_MATCHER
    | XDIFF_DEBUG_ENGINE
    | XDIFF_DEBUG_PARSER
)

# xdiff debugging subsystem names
XDIFF_SUBSYSTEM_TREE = "xdiff.tree"
XDIFF_SUBSYSTEM_SIGNATURE = "xdiff.signature"
XDIFF_SUBSYSTEM_MATCHER = "xdiff.matcher"
XDIFF_SUBSYSTEM_ENGINE = "xdiff.engine"
XDIFF_SUBSYSTEM_PARSER = "xdiff.parser"

_DEBUG_MASK_TO_SUBSYSTEM = {
    XDIFF_DEBUG_TREE: XDIFF_SUBSYSTEM_TREE,
    XDIFF_DEBUG_SIGNATURE: XDIFF_SUBSYSTEM_SIGNATURE,
    XDIFF_DEBUG_MATCHER: XDIFF_SUBSYSTEM_MATCHER,
    XDIFF_DEBUG_ENGINE: XDIFF_SUBSYSTEM_ENGINE,
    XDIFF_DEBUG_PARSER: XDIFF_SUBSYSTEM_PARSER,
}

#: Names accepted by ``set_debug()``
_DEBUG_NAME_TO_MASK = {
    "tree": XDIFF_DEBUG_TREE,
    "signature": XDIFF_DEBUG_SIGNATURE,
    "matcher": XDIFF_DEBUG_MATCHER,
    "engine": XDIFF_DEBUG_ENGINE,
    "parser": XDIFF_DEBUG_PARSER,
    "all": XDIFF_DEBUG_ALL,
}

_DEFAULT_LOG_LEVEL = logging.WARNING

_debug_subsystems = set()

_CONSOLE_HANDLER: Optional[logging.Handler] = None


class SubsystemFilter(logging.Filter):
    """
    Filters DEBUG records based on a set of enabled subsystem names.
    Non-DEBUG records or DEBUG records without a 'subsystem' attribute
    are always passed through.
    """

    def __init__(self, name=""):
        super().__init__(name)
        self.enabled_subsystems = set(_debug_subsystems)

    def filter(self, record):
        # Always pass non-DEBUG messages.
        if record.levelno != logging.DEBUG:
            return True

        # Always pass DEBUG messages that aren't for a specific subsystem.
        if not hasattr(record, "subsystem"):
            return True

        # For subsystem-specific DEBUG messages, check if the subsystem is enabled.
        return record.subsystem in self.enabled_subsystems

    def set_debug_subsystems(self, subsystems: Iterable[str]):
        """Sets the collection of subsystems to allow."""
        self.enabled_subsystems = set(subsystems)


def get_debug_mask() -> int:
    """
    Return the current debug mask for the ``xdiff`` package.

    :returns: The current debug mask value
    :rtype: int
    """
    enabled_subsystems = set(_debug_subsystems)
    xdiff_log = logging.getLogger("xdiff")

    for handler in xdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                enabled_subsystems.update(f.enabled_subsystems)

    mask_map = {v: k for k, v in _DEBUG_MASK_TO_SUBSYSTEM.items()}
    mask = 0
    for subsystem_name in enabled_subsystems:
        mask |= mask_map.get(subsystem_name, 0)
    return mask


def set_debug_mask(mask: int):
    """
    Set the debug mask for the ``xdiff`` package.

    :param mask: the logical OR of the ``XDIFF_DEBUG_*``
                 values to log.
    :rtype: None
    """
    # pylint: disable=global-statement
    global _debug_subsystems

    if mask < 0 or mask > XDIFF_DEBUG_ALL:
        raise ValueError(f"Invalid xdiff debug mask: {mask}")

    enabled_subsystems = []
    for flag, subsystem_name in _DEBUG_MASK_TO_SUBSYSTEM.items():
        if mask & flag:
            enabled_subsystems.append(subsystem_name)

    xdiff_log = logging.getLogger("xdiff")
    for handler in xdiff_log.handlers:
        for f in handler.filters:
            if isinstance(f, SubsystemFilter):
                f.set_debug_subsystems(enabled_subsystems)

    _debug_subsystems = set(enabled_subsystems)


def set_debug(debug_arg: Optional[str]):
    """
    Set the debugging mask from a comma separated list of subsystem names.

    :param debug_arg: A string such as ``"matcher,engine"`` or ``"all"``.
    :type debug_arg: ``Optional[str]``
    """
    if not debug_arg:
        return

    mask = 0
    for name in debug_arg.split(","):
        name = name.strip()
        if name not in _DEBUG_NAME_TO_MASK:
            raise ValueError(f"Unknown debug option: {name}")
        mask |= _DEBUG_NAME_TO_MASK[name]
    set_debug_mask(mask)


def setup_logging(verbose: int = 0, debug: Optional[str] = None):
    """
    Set up xdiff logging.

    Attach a console handler carrying a ``SubsystemFilter`` to the
    ``xdiff`` logger, replacing any handlers already present.

    :param verbose: Verbosity level: 1 for INFO, 2 or more for DEBUG.
    :type verbose: ``int``
    :param debug: Optional comma separated list of debug subsystems.
    :type debug: ``Optional[str]``
    """
    # pylint: disable=global-statement
    global _CONSOLE_HANDLER
    level = _DEFAULT_LOG_LEVEL
    if verbose and verbose > 1:
        level = logging.DEBUG
    elif verbose and verbose > 0:
        level = logging.INFO

    xdiff_log = logging.getLogger("xdiff")
    formatter = logging.Formatter("%(levelname)s - %(message)s")
    xdiff_log.setLevel(level)
    if xdiff_log.hasHandlers():
        xdiff_log.handlers.clear()

    _CONSOLE_HANDLER = logging.StreamHandler()
    _CONSOLE_HANDLER.setLevel(level)
    _CONSOLE_HANDLER.setFormatter(formatter)
    _CONSOLE_HANDLER.addFilter(SubsystemFilter("xdiff"))

    xdiff_log.addHandler(_CONSOLE_HANDLER)
    set_debug(debug)


def shutdown_logging():
    """
    Shut down xdiff logging.
    """
    logging.shutdown()


#
# xdiff exception types
#


class XDiffError(Exception):
    """
    Base class for xdiff errors.
    """


class XDiffParseError(XDiffError):
    """
    An error parsing a document into a tree.
    """

    def __init__(self, msg: str, line: Optional[int] = None):
        """
        Initialise a new ``XDiffParseError`` exception.

        :param msg: A description of the parse failure.
        :param line: The input line number, if known.
        """
        self.line = line
        if line is not None:
            msg = f"{msg} (line {line})"
        super().__init__(msg)


class XDiffInvariantError(XDiffError):
    """
    A structural invariant of a tree or an edit script does not hold.
    """


class XDiffArgumentError(XDiffError):
    """
    An invalid argument was passed to an xdiff API call.
    """


class XDiffNotFoundError(XDiffError):
    """
    The requested node does not exist.
    """


__all__ = [
    "XDIFF_DEBUG_TREE",
    "XDIFF_DEBUG_SIGNATURE",
    "XDIFF_DEBUG_MATCHER",
    "XDIFF_DEBUG_ENGINE",
    "XDIFF_DEBUG_PARSER",
    "XDIFF_DEBUG_ALL",
    "XDIFF_SUBSYSTEM_TREE",
    "XDIFF_SUBSYSTEM_SIGNATURE",
    "XDIFF_SUBSYSTEM_MATCHER",
    "XDIFF_SUBSYSTEM_ENGINE",
    "XDIFF_SUBSYSTEM_PARSER",
    "SubsystemFilter",
    "get_debug_mask",
    "set_debug_mask",
    "set_debug",
    "setup_logging",
    "shutdown_logging",
    "XDiffError",
    "XDiffParseError",
    "XDiffInvariantError",
    "XDiffArgumentError",
    "XDiffNotFoundError",
]
