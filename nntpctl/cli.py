# =============================================================================
# nntpctl – Command line front end
# -----------------------------------------------------------------------------
# Copyright (c) Alejandro Fernández Rodríguez
#
# This source code is released under the GEL 3.0 License.
#
# DISCLAIMER:
# This software is provided "AS IS", without warranty of any kind, express or
# implied, including but not limited to the warranties of merchantability,
# fitness for a particular purpose and noninfringement. In no event shall the
# authors or copyright holders be liable for any claim, damages or other
# liability, whether in an action of contract, tort or otherwise, arising from,
# out of or in connection with the software or the use or other dealings in the
# software.
#
# LICENSE – GEL 3.0:
# You may use, copy, modify, and distribute this code according to the terms of
# the GEL 3.0 License. A full copy of the license should accompany any
# redistribution. If the license text is missing, see: https://gel-license.org
# @author
#    Alejandro Fernández Rodríguez — github.com/afernandezLuc
#  @version 1.0.0
#  @date 2026-01-07
# =============================================================================

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from typing import List, Optional

from .client import NNTPClient, with_article_number
from .config import DEFAULT_SECURE_PORT, ClientOptions
from .exceptions import NNTPError

logger = logging.getLogger("nntpctl.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nntpctl", description="Query an NNTP server")
    parser.add_argument("--host", help="server host (default: $NNTP_HOST or localhost)")
    parser.add_argument("--port", type=int, help="server port (default: 119, 563 with --secure)")
    parser.add_argument("--secure", action="store_true", help="connect over TLS")
    parser.add_argument("--user", help="AUTHINFO username")
    parser.add_argument("--password", help="AUTHINFO password")
    parser.add_argument("--timeout", type=float, help="socket timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="log protocol traffic")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("group", help="select a group and print its range")
    p.add_argument("name")

    for name in ("article", "head", "stat"):
        p = sub.add_parser(name, help=f"{name.upper()} by message-id or number")
        p.add_argument("message_id")

    sub.add_parser("overview-format", help="print LIST OVERVIEW.FMT")

    p = sub.add_parser("xover", help="print overview lines of a group range")
    p.add_argument("group")
    p.add_argument("range")
    p.add_argument("--compressed", action="store_true", help="use XZVER")

    return parser


def options_from_args(args: argparse.Namespace) -> ClientOptions:
    options = ClientOptions.from_env()
    changes = {}
    if args.host:
        changes["host"] = args.host
    if args.secure:
        changes["secure"] = True
        if not os.environ.get("NNTP_PORT"):
            changes["port"] = DEFAULT_SECURE_PORT
    if args.port:
        changes["port"] = args.port
    if args.user:
        changes["username"] = args.user
    if args.password:
        changes["password"] = args.password
    if args.timeout:
        changes["timeout_s"] = args.timeout
    return dataclasses.replace(options, **changes)


def run(client: NNTPClient, args: argparse.Namespace) -> None:
    if args.command == "group":
        g = client.group(args.name)
        print(f"{g.name}: {g.count} articles ({g.first}-{g.last})")

    elif args.command == "article":
        article = client.article(args.message_id)
        print("\n".join(article.headers))
        print()
        print("\n".join(article.body))

    elif args.command in ("head", "stat"):
        response = getattr(client, args.command)(args.message_id)
        print(f"{response.status} {response.message}")

    elif args.command == "overview-format":
        for field, full in client.overview_format().items():
            print(f"{field}\t{'full' if full else 'short'}")

    elif args.command == "xover":
        fmt = with_article_number(client.overview_format())
        client.group(args.group)
        fetch = client.overview_compressed if args.compressed else client.overview
        for row in fetch(args.range, fmt):
            print("\t".join(row.values()))


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        client = NNTPClient(options_from_args(args))
    except ValueError as exc:
        print(f"nntpctl: {exc}", file=sys.stderr)
        sys.exit(2)

    try:
        client.connect_and_authenticate()
        run(client, args)
    except NNTPError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"nntpctl: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        client.disconnect()
