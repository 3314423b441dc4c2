# Copyright Red Hat
#
# tests/__init__.py - xdiff test package
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import logging
from os.path import abspath, dirname, join

log = logging.getLogger()
log.setLevel(logging.DEBUG)
formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
file_handler = logging.FileHandler("test.log")
file_handler.setFormatter(formatter)
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)
console_handler.setLevel(logging.WARNING)
log.addHandler(file_handler)
log.addHandler(console_handler)

TESTS_ROOT = dirname(abspath(__file__))

DATA_ROOT = join(TESTS_ROOT, "treediff", "data")


def data_path(name):
    """Return the absolute path of the test data file ``name``."""
    return join(DATA_ROOT, name)
