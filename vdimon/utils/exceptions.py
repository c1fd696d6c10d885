#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""User-defined exceptions"""

__all__ = [
    "BailOut",
    "InventoryError",
    "InventoryTimeout",
    "VDIException",
]


# never used directly in the code. Just some wrapper to make all of our
# exceptions handleable with one call
class VDIException(Exception):
    pass


class InventoryError(VDIException):
    """The inventory service could not answer a query.

    Raised for connection problems, HTTP errors, failed logins and
    payloads that do not look like what the service should send.
    """


class InventoryTimeout(InventoryError):
    """An inventory query did not finish within the configured timeout"""


# This is raised to print an error message and then end the program.
# The program should catch this at top level and end exit the program
# with exit code 3, in order to be compatible with monitoring plug-in API.
class BailOut(VDIException):
    pass
