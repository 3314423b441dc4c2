# Copyright Red Hat
#
# xdiff/treediff/__init__.py - Unordered tree diff package
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Unordered tree diff package.

Provides comparison of hierarchical documents whose sibling order carries no
meaning: an immutable tree model, order-independent subtree signatures,
minimum-cost sibling group matching and a diff engine producing a
deterministic edit script. The main entry points are ``parse`` and ``diff``.
"""
from .difftypes import EditType, FieldType
from .edits import Delete, DiffResult, EditOperation, Insert, Move, Update
from .engine import DiffEngine, diff
from .matcher import Match, NodeMatcher
from .options import DiffOptions, ParseOptions
from .parser import parse, parse_file
from .tree import Node, Tree, TreeBuilder, TreeElement, element

__all__ = [
    "Delete",
    "DiffEngine",
    "DiffOptions",
    "DiffResult",
    "EditOperation",
    "EditType",
    "FieldType",
    "Insert",
    "Match",
    "Move",
    "Node",
    "NodeMatcher",
    "ParseOptions",
    "Tree",
    "TreeBuilder",
    "TreeElement",
    "Update",
    "diff",
    "element",
    "parse",
    "parse_file",
]
