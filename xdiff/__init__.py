# Copyright Red Hat
#
# xdiff/__init__.py - Unordered tree diff package initialisation
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
xdiff top-level package.
"""
from ._xdiff import *  # noqa: F401, F403
from ._xdiff import __all__  # noqa: F401

__version__ = "0.1.0"
