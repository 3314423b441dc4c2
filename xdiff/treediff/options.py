# Copyright Red Hat
#
# xdiff/treediff/options.py - Unordered tree diff options
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree diff and parser options.
"""
from dataclasses import dataclass, fields
from typing import Any, Mapping
import logging

from xdiff import XDiffArgumentError

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Text distance measures accepted by ``DiffOptions.text_distance``
TEXT_DISTANCE_LEVENSHTEIN = "levenshtein"
TEXT_DISTANCE_EXACT = "exact"

_TEXT_DISTANCES = (TEXT_DISTANCE_LEVENSHTEIN, TEXT_DISTANCE_EXACT)


def _options_str(options) -> str:
    """
    Render a dataclass options instance as ``key=value`` lines.
    """
    return "\n".join(f"{f.name}={getattr(options, f.name)}" for f in fields(options))


@dataclass(frozen=True)
class DiffOptions:
    """
    Tree comparison options.
    """

    #: Weight of the attribute difference in the node distance
    attribute_weight: float = 0.5
    #: Weight of the text difference in the node distance
    text_weight: float = 0.5
    #: Text distance measure: "levenshtein" or "exact"
    text_distance: str = TEXT_DISTANCE_LEVENSHTEIN
    #: Replace Delete+Insert of identical subtrees with Move
    detect_moves: bool = True
    #: Verify that every node is accounted for in the edit script
    check_invariants: bool = False

    def __post_init__(self):
        if self.attribute_weight < 0 or self.text_weight < 0:
            raise XDiffArgumentError(
                "Distance weights must be non-negative: "
                f"attribute_weight={self.attribute_weight}, "
                f"text_weight={self.text_weight}"
            )
        if not self.attribute_weight + self.text_weight:
            raise XDiffArgumentError("Distance weights must not both be zero")
        if self.attribute_weight + self.text_weight > 1.0:
            raise XDiffArgumentError(
                "Distance weights must not sum to more than 1.0: "
                f"{self.attribute_weight} + {self.text_weight}"
            )
        if self.text_distance not in _TEXT_DISTANCES:
            raise XDiffArgumentError(
                f"Unknown text distance measure: {self.text_distance}"
            )

    def __str__(self):
        """
        Return a human readable string representation of this
        ``DiffOptions`` instance.

        :returns: A human readable string.
        :rtype: ``str``
        """
        return _options_str(self)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "DiffOptions":
        """
        Initialise DiffOptions from a mapping.

        Keys that do not name a ``DiffOptions`` field are ignored.

        :param values: A mapping of option names to values.
        :type values: ``Mapping[str, Any]``
        :returns: A new ``DiffOptions`` instance
        :rtype: ``DiffOptions``
        """
        field_names = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - field_names)
        if unknown:
            _log_debug("Ignoring unknown DiffOptions keys: %s", ", ".join(unknown))
        kwargs = {name: values[name] for name in field_names if name in values}
        options = cls(**kwargs)
        _log_debug("Initialised DiffOptions from mapping: %s", repr(options))
        return options


@dataclass(frozen=True)
class ParseOptions:
    """
    Document parsing options.
    """

    #: Drop whitespace-only text and trim surrounding whitespace
    strip_whitespace: bool = True
    #: Drop comment nodes
    ignore_comments: bool = True
    #: Drop processing instruction nodes
    ignore_processing_instructions: bool = True
    #: Expand external entities (disabled for untrusted input)
    resolve_entities: bool = False

    def __str__(self):
        """
        Return a human readable string representation of this
        ``ParseOptions`` instance.

        :returns: A human readable string.
        :rtype: ``str``
        """
        return _options_str(self)


__all__ = [
    "DiffOptions",
    "ParseOptions",
    "TEXT_DISTANCE_EXACT",
    "TEXT_DISTANCE_LEVENSHTEIN",
]
