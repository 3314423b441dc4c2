# Copyright Red Hat
#
# xdiff/treediff/difftypes.py - Unordered tree diff edit types
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Tree diff edit types
"""
from enum import Enum


class EditType(Enum):
    """
    Enum for different edit operation types.
    """

    INSERT = "insert"
    DELETE = "delete"
    UPDATE = "update"
    MOVE = "move"


class FieldType(Enum):
    """
    Enum for the node fields an ``Update`` can change.
    """

    TEXT = "text"
    ATTRIBUTE = "attribute"
