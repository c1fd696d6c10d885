#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

from collections.abc import Callable, Iterator, Mapping

import pytest

from vdimon.inventory import PoolHandle
from vdimon.utils import log
from vdimon.utils.exceptions import InventoryError


class FakeInventory:
    """In-memory DesktopPoolInventory

    Values may be None (no answer) or an exception instance, which is
    raised when the corresponding query is made.
    """

    def __init__(
        self,
        sessions: Mapping[str, int | None | Exception] | None = None,
        provisioned: Mapping[str, int | None | Exception] | None = None,
        lookup_error: Exception | None = None,
    ) -> None:
        self.sessions = dict(sessions or {})
        self.provisioned = dict(provisioned or {})
        self.lookup_error = lookup_error
        self.queries: list[str] = []

    def resolve_pool(self, pool_id: str) -> PoolHandle | None:
        self.queries.append(f"resolve_pool {pool_id}")
        if self.lookup_error is not None:
            raise self.lookup_error
        if pool_id not in self.sessions:
            return None
        return PoolHandle(id=f"id-{pool_id}", name=pool_id)

    def count_active_sessions(self, pool: PoolHandle) -> int | None:
        self.queries.append(f"count_active_sessions {pool.name}")
        return self._answer(self.sessions[pool.name])

    def count_provisioned_desktops(self, pool_id: str) -> int | None:
        self.queries.append(f"count_provisioned_desktops {pool_id}")
        return self._answer(self.provisioned.get(pool_id))

    @staticmethod
    def _answer(value: int | None | Exception) -> int | None:
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture(name="fake_inventory")
def fixture_fake_inventory() -> Callable[..., FakeInventory]:
    return FakeInventory


@pytest.fixture(autouse=True)
def reset_console_logging() -> Iterator[None]:
    yield
    log.clear_console_logging()


@pytest.fixture(name="broken_lookup")
def fixture_broken_lookup() -> InventoryError:
    return InventoryError("connection refused")
