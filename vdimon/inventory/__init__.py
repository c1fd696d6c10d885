#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Access to the inventory of a virtual desktop environment

The checks only talk to the :class:`DesktopPoolInventory` protocol. Each
virtualization platform gets its own implementation in a submodule.
"""

from dataclasses import dataclass
from typing import Protocol

from vdimon.utils.exceptions import InventoryError, InventoryTimeout

__all__ = [
    "DesktopPoolInventory",
    "InventoryError",
    "InventoryTimeout",
    "PoolHandle",
]


@dataclass(frozen=True)
class PoolHandle:
    id: str
    name: str


class DesktopPoolInventory(Protocol):
    """Queries a check needs to answer about a desktop pool.

    Implementations return None if the service has no answer and raise
    InventoryError (or InventoryTimeout) if the query itself failed.
    """

    def resolve_pool(self, pool_id: str) -> PoolHandle | None:
        ...

    def count_active_sessions(self, pool: PoolHandle) -> int | None:
        ...

    def count_provisioned_desktops(self, pool_id: str) -> int | None:
        ...
