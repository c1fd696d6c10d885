#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.
"""Desktop pool inventory of a VMware Horizon Connection Server

Talks to the REST API of the connection server (``/rest/...``). Authentication
is done once via ``/rest/login``, the returned access token is sent as bearer
token with every inventory request.
"""

from __future__ import annotations

import contextlib
import json
import logging
import time
from collections.abc import Iterator, Mapping, Sequence
from types import TracebackType
from typing import Any, Final, TypeVar

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from vdimon.inventory import PoolHandle
from vdimon.utils.exceptions import InventoryError, InventoryTimeout

LOGGER = logging.getLogger("vdimon.inventory.horizon")

_INVENTORY_PATH: Final = "/rest/inventory/v1"
_PAGE_SIZE: Final = 1000

_ModelT = TypeVar("_ModelT", bound=BaseModel)


class DesktopPool(BaseModel):
    id: str
    name: str
    display_name: str | None = None
    enabled: bool | None = None


class Session(BaseModel):
    id: str
    desktop_pool_id: str | None = None
    session_state: str | None = None
    session_type: str | None = None


class Machine(BaseModel):
    id: str
    name: str | None = None
    desktop_pool_id: str | None = None
    state: str | None = None


class _Tokens(BaseModel):
    access_token: str
    refresh_token: str | None = None


def _equals(name: str, value: str) -> dict[str, Any]:
    return {"type": "Equals", "name": name, "value": value}


def _encode_filter(filter_: Mapping[str, Any]) -> str:
    """
    >>> _encode_filter(_equals("desktop_pool_id", "a1"))
    '{"type":"Equals","name":"desktop_pool_id","value":"a1"}'
    """
    return json.dumps(filter_, separators=(",", ":"))


class HorizonSession:
    """Authenticated HTTP session against the connection server"""

    def __init__(
        self,
        *,
        server: str,
        port: int,
        username: str,
        password: str,
        domain: str,
        timeout: float,
        cert_check: bool,
    ) -> None:
        self._base_url = f"https://{server}:{port}"
        self._credentials = {"domain": domain, "username": username, "password": password}
        self._timeout = timeout
        self._session = requests.Session()
        self._session.verify = cert_check
        self._session.headers.update({"Accept": "application/json"})
        self._tokens: _Tokens | None = None
        self._deadline: float | None = None

    @contextlib.contextmanager
    def bounded(self) -> Iterator[None]:
        """All requests made inside share one timeout budget

        Nested calls keep the budget of the outermost one.
        """
        if self._deadline is not None:
            yield
            return
        self._deadline = time.monotonic() + self._timeout
        try:
            yield
        finally:
            self._deadline = None

    def _remaining_time(self, method: str, path: str) -> float:
        if self._deadline is None:
            return self._timeout
        if (remaining := self._deadline - time.monotonic()) <= 0:
            LOGGER.info("No time left for %s %s", method, path)
            raise InventoryTimeout(f"Query exceeded {self._timeout}s before {method} {path}")
        return remaining

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self._base_url}{path}"
        timeout = self._remaining_time(method, path)
        LOGGER.debug("%s %s (timeout %.1fs)", method, url, timeout)
        try:
            response = self._session.request(method, url, timeout=timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            LOGGER.info("Timeout after %.1fs: %s", timeout, e)
            raise InventoryTimeout(f"{method} {path} timed out") from e
        except requests.exceptions.RequestException as e:
            LOGGER.info("Connection failed: %s", e)
            raise InventoryError(f"{method} {path} failed: {e}") from e

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            LOGGER.info("HTTP error: %s", e)
            LOGGER.debug("response text: %s", response.text)
            raise InventoryError(f"{method} {path} failed: {e}") from e

        return response

    def login(self) -> None:
        response = self._request("POST", "/rest/login", json=self._credentials)
        try:
            self._tokens = _Tokens.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InventoryError("Login response did not contain an access token") from e
        self._session.headers.update({"Authorization": f"Bearer {self._tokens.access_token}"})
        LOGGER.info("Logged in to %s", self._base_url)

    def logout(self) -> None:
        tokens, self._tokens = self._tokens, None
        try:
            if tokens is not None and tokens.refresh_token is not None:
                self._request("POST", "/rest/logout", json={"refresh_token": tokens.refresh_token})
        except InventoryError as e:
            LOGGER.info("Logout failed: %s", e)
        finally:
            self._session.headers.pop("Authorization", None)
            self._session.close()

    def get_all(self, path: str, model: type[_ModelT], filter_: Mapping[str, Any]) -> Iterator[_ModelT]:
        """Yield all items of a paged inventory list"""
        if self._tokens is None:
            self.login()

        adapter = TypeAdapter(list[model])  # type: ignore[valid-type]
        page = 1
        while True:
            response = self._request(
                "GET",
                f"{_INVENTORY_PATH}{path}",
                params={"filter": _encode_filter(filter_), "page": page, "size": _PAGE_SIZE},
            )
            try:
                items: Sequence[_ModelT] = adapter.validate_python(response.json())
            except (ValueError, ValidationError) as e:
                raise InventoryError(f"Unexpected answer from {path}: {e}") from e

            yield from items
            if len(items) < _PAGE_SIZE:
                return
            page += 1


class HorizonInventory:
    """Implements DesktopPoolInventory for VMware Horizon"""

    def __init__(self, session: HorizonSession) -> None:
        self._session = session

    def __enter__(self) -> HorizonInventory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._session.logout()

    def resolve_pool(self, pool_id: str) -> PoolHandle | None:
        with self._session.bounded():
            pools = list(
                self._session.get_all(
                    "/desktop-pools",
                    DesktopPool,
                    {"type": "Or", "filters": [_equals("name", pool_id), _equals("id", pool_id)]},
                )
            )
        if not pools:
            return None
        if len(pools) > 1:
            LOGGER.info("%d pools match %r, using the first one", len(pools), pool_id)
        return PoolHandle(id=pools[0].id, name=pools[0].name)

    def count_active_sessions(self, pool: PoolHandle) -> int | None:
        with self._session.bounded():
            return sum(
                1
                for session in self._session.get_all(
                    "/sessions", Session, _equals("desktop_pool_id", pool.id)
                )
                if session.session_state == "CONNECTED"
            )

    def count_provisioned_desktops(self, pool_id: str) -> int | None:
        with self._session.bounded():
            if (pool := self.resolve_pool(pool_id)) is None:
                return None
            return sum(
                1
                for _machine in self._session.get_all(
                    "/machines", Machine, _equals("desktop_pool_id", pool.id)
                )
            )
