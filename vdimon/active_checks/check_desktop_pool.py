#!/usr/bin/env python3
# Copyright (C) 2026 vdimon authors - License: GNU General Public License v2
# This file is part of vdimon. It is subject to the terms and
# conditions defined in the file COPYING, which is part of this source code package.

# This check reports how many of the provisioned desktops of a virtual
# desktop pool are in use by a remote session.
#
# Example output:
# OK: 70% desktops utilized in POOL1 | percent_utilized=70;;;;
# CRITICAL: 80% desktops utilized in POOL1 | percent_utilized=80;;;;
# Unknown: Pool GHOST is unknown | percent_utilized=0;;;;

from __future__ import annotations

import argparse
import enum
import logging
import os
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from pydantic import BaseModel

from vdimon.inventory import DesktopPoolInventory
from vdimon.inventory.horizon import HorizonInventory, HorizonSession
from vdimon.utils.exceptions import BailOut, InventoryError, InventoryTimeout
from vdimon.utils.log import setup_console_logging, VERBOSE

LOGGER = logging.getLogger("vdimon.active_checks.check_desktop_pool")

_PASSWORD_ENV = "VDIMON_PASSWORD"


def main(
    argv: Sequence[str] | None = None,
    inventory: DesktopPoolInventory | None = None,
) -> int:
    args = parse_arguments(sys.argv[1:] if argv is None else argv)
    setup_console_logging(args.verbose)

    try:
        result = _check_desktop_pool_main(args, inventory)
    except BailOut as e:
        result = CheckResult(State.UNKNOWN, str(e))

    _output_check_result(
        f"{result.state.label}: {result.summary}",
        [("percent_utilized", result.utilization, "", "", "", "")],
    )
    return int(result.state)


class State(enum.IntEnum):
    OK = 0
    WARN = 1
    CRIT = 2
    UNKNOWN = 3

    @property
    def label(self) -> str:
        return _STATE_LABELS[self]


_STATE_LABELS = {
    State.OK: "OK",
    State.WARN: "WARNING",
    State.CRIT: "CRITICAL",
    State.UNKNOWN: "Unknown",
}


@dataclass(frozen=True)
class CheckResult:
    state: State
    summary: str
    utilization: int = 0


class Args(BaseModel):
    pool: str
    levels: tuple[int, int]
    verbose: int
    debug: bool
    server: None | str
    port: int
    username: None | str
    password: None | str
    domain: str
    timeout: float
    no_cert_check: bool

    def resolve_password(self) -> None | str:
        if self.password is not None:
            return self.password
        return os.environ.get(_PASSWORD_ENV)


class _ArgumentParser(argparse.ArgumentParser):
    # Usage errors have to end up as UNKNOWN, argparse would exit with 2 (CRIT)
    def error(self, message: str):  # type: ignore[no-untyped-def]
        self.print_usage(sys.stderr)
        self.exit(int(State.UNKNOWN), f"{self.prog}: error: {message}\n")


def parse_arguments(argv: Sequence[str]) -> Args:
    parser = _ArgumentParser(
        prog="check_desktop_pool",
        description="Check the utilization of a virtual desktop pool.",
    )
    parser.add_argument(
        "pool",
        type=str,
        metavar="POOL",
        help="Name or ID of the desktop pool",
    )
    parser.add_argument(
        "--levels",
        type=int,
        nargs=2,
        default=[75, 80],
        metavar=("WARNING", "CRITICAL"),
        help="""Percent of utilized desktops at which a warning and critical will be generated
            (Defaults: 75 and 80). Warning percentage must be lower than critical.""",
    )
    parser.add_argument(
        "-w",
        "--warning",
        type=int,
        metavar="PERCENT",
        help="Overrides the warning level of --levels",
    )
    parser.add_argument(
        "-c",
        "--critical",
        type=int,
        metavar="PERCENT",
        help="Overrides the critical level of --levels",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Verbose mode, written to stderr (use -vv for debug output)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Debug mode: let Python exceptions come through.",
    )
    parser.add_argument(
        "-H",
        "--server",
        type=str,
        metavar="ADDRESS",
        help="Connection server to query",
    )
    parser.add_argument("-P", "--port", type=int, metavar="PORT", default=443)
    parser.add_argument(
        "-u",
        "--username",
        type=str,
        metavar="USER",
        help="User account on the connection server",
    )
    parser.add_argument(
        "-p",
        "--password",
        type=str,
        metavar="PASSWORD",
        help=f"Password for that account (Defaults to the environment variable {_PASSWORD_ENV})",
    )
    parser.add_argument(
        "-d",
        "--domain",
        type=str,
        default="",
        metavar="DOMAIN",
        help="Domain of the user account",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        metavar="TIMEOUT",
        default=10.0,
        help="Seconds before each inventory query times out (Default: 10)",
    )
    parser.add_argument(
        "--no-cert-check",
        action="store_true",
        help="Do not verify the TLS certificate of the connection server",
    )

    args = vars(parser.parse_args(argv))
    warn, crit = args.pop("levels")
    warning, critical = args.pop("warning"), args.pop("critical")
    args["levels"] = (
        warn if warning is None else warning,
        crit if critical is None else critical,
    )
    return Args.model_validate(args)


def _output_check_result(s: str, perfdata: Iterable[tuple[str, int, str, str, str, str]]) -> None:
    """
    >>> _output_check_result("OK: fine", [("percent_utilized", 12, "", "", "", "")])
    OK: fine | percent_utilized=12;;;;
    """
    perfdata_output_entries = ["{}={}".format(p[0], ";".join(map(str, p[1:]))) for p in perfdata]
    if perfdata_output_entries:
        s += " | %s" % " ".join(perfdata_output_entries)
    sys.stdout.write("%s\n" % s)


def _check_desktop_pool_main(
    args: Args,
    inventory: DesktopPoolInventory | None,
) -> CheckResult:
    warn, crit = args.levels
    try:
        if inventory is not None:
            return check_desktop_pool(inventory, args.pool, warn, crit)
        with _horizon_inventory(args) as horizon:
            return check_desktop_pool(horizon, args.pool, warn, crit)

    except InventoryTimeout as e:
        if args.debug:
            raise
        LOGGER.info("%s", e)
        return CheckResult(State.UNKNOWN, "Timeout while querying the inventory service")

    except BailOut:
        raise

    except Exception as e:
        if args.debug:
            raise
        return CheckResult(State.UNKNOWN, f"Unhandled exception: {e}")


def _horizon_inventory(args: Args) -> HorizonInventory:
    if not args.server:
        raise BailOut("No connection server given (use --server)")
    if not args.username:
        raise BailOut("No user name given (use --username)")
    if (password := args.resolve_password()) is None:
        raise BailOut(f"No password given (use --password or set {_PASSWORD_ENV})")

    return HorizonInventory(
        HorizonSession(
            server=args.server,
            port=args.port,
            username=args.username,
            password=password,
            domain=args.domain,
            timeout=args.timeout,
            cert_check=not args.no_cert_check,
        )
    )


def check_desktop_pool(
    inventory: DesktopPoolInventory,
    pool_id: str,
    warn: int,
    crit: int,
) -> CheckResult:
    LOGGER.debug("Pool: %s, levels (warn/crit): %d%%/%d%%", pool_id, warn, crit)

    if warn >= crit:
        return CheckResult(State.UNKNOWN, "Warning threshold must be lower than critical threshold")

    try:
        pool = inventory.resolve_pool(pool_id)
    except InventoryTimeout:
        raise
    except InventoryError as e:
        LOGGER.info("Pool lookup failed: %s", e)
        pool = None
    if pool is None:
        return CheckResult(State.UNKNOWN, f"Pool {pool_id} is unknown")
    LOGGER.debug("Resolved pool: %s", pool)

    sessions = _count_or_zero("active sessions", inventory.count_active_sessions, pool)
    LOGGER.log(VERBOSE, "Active sessions: %d", sessions)
    provisioned = _count_or_zero("provisioned desktops", inventory.count_provisioned_desktops, pool_id)
    LOGGER.log(VERBOSE, "Provisioned desktops: %d", provisioned)

    if provisioned == 0:
        return CheckResult(State.UNKNOWN, f"No desktops provisioned in {pool_id}")

    utilization = utilization_percent(sessions, provisioned)
    LOGGER.log(VERBOSE, "Utilization: %d%%", utilization)

    if not 0 <= utilization <= 100:
        return CheckResult(
            State.UNKNOWN,
            f"Utilization of {utilization}% is out of range",
            utilization,
        )

    return CheckResult(
        _classify(utilization, warn, crit),
        f"{utilization}% desktops utilized in {pool_id}",
        utilization,
    )


def _count_or_zero(what, query, *query_args):
    try:
        count = query(*query_args)
    except InventoryTimeout:
        raise
    except InventoryError as e:
        LOGGER.info("Counting %s failed, assuming 0: %s", what, e)
        return 0
    return 0 if count is None else count


def utilization_percent(sessions: int, provisioned: int) -> int:
    """Percentage of provisioned desktops in use, rounded half away from zero

    >>> utilization_percent(40, 50)
    80
    >>> utilization_percent(1, 8)
    13
    >>> utilization_percent(1, 200)
    1
    """
    return int(
        (Decimal(sessions) * 100 / Decimal(provisioned)).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
    )


def _classify(utilization: int, warn: int, crit: int) -> State:
    if utilization >= crit:
        return State.CRIT
    if utilization >= warn:
        return State.WARN
    if utilization < warn:
        return State.OK
    return State.UNKNOWN


if __name__ == "__main__":
    sys.exit(main())
