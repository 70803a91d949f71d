"""
clash-console CLI
=================

Terminal front-end for the daemon's control API.

Usage:
    clash-console logs                      # follow the log feed
    clash-console connections --count 5     # print five snapshots
    clash-console --host 10.0.0.2 --secret s3cret version
    clash-console --http logs               # HTTP streaming instead of WebSocket

Stream commands print one JSON object per line, tagged with the
record's sequence number, until --count records or Ctrl-C.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable, List, Optional

from clash_console import __version__
from clash_console.client import ControlAPIError, dispose_control_client, get_control_client
from clash_console.config import Settings, load_config, settings, setup_logging
from clash_console.endpoint import EndpointResolutionError
from clash_console.feeds import dispose_streams, get_connections_stream, get_logs_stream
from clash_console.stream import Record, StreamReader


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clash-console",
        description="Control client for the proxy daemon's HTTP API",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to clash-console.yaml")
    parser.add_argument("--host", help="Controller hostname")
    parser.add_argument("--port", type=int, help="Controller port")
    parser.add_argument("--secret", help="Controller secret")
    parser.add_argument("--protocol", help="Controller protocol (http: or https:)")
    parser.add_argument(
        "--http",
        action="store_true",
        help="Read feeds over HTTP streaming instead of WebSocket",
    )
    parser.add_argument("--log-level", help="Log level for this tool")

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("logs", "Follow the daemon log feed"),
        ("connections", "Follow live connection snapshots"),
    ):
        feed = sub.add_parser(name, help=help_text)
        feed.add_argument(
            "--count",
            type=int,
            default=0,
            help="Stop after this many records (0 = run until interrupted)",
        )

    sub.add_parser("version", help="Print the daemon version")
    sub.add_parser("config", help="Print the daemon configuration")

    return parser


def apply_arguments(target: Settings, args: argparse.Namespace) -> None:
    """Fold config file and command-line overrides into the global settings."""
    if args.config:
        loaded = load_config(args.config)
        for field in Settings.model_fields:
            setattr(target, field, getattr(loaded, field))

    if args.host:
        target.controller.hostname = args.host
    if args.port:
        target.controller.port = args.port
    if args.secret is not None:
        target.controller.secret = args.secret
    if args.protocol:
        target.controller.protocol = args.protocol
    if args.http:
        target.stream.prefer_websocket = False
    if args.log_level:
        target.logging.level = args.log_level


def render_record(record: Record) -> str:
    data = record.data
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json", by_alias=True)
    return json.dumps({"seq": record.seq, "data": data}, ensure_ascii=False)


async def follow(
    get_stream: Callable[[], Awaitable[StreamReader]],
    count: int = 0,
    out=None,
) -> int:
    """
    Print records from a feed.

    Args:
        get_stream: Feed singleton accessor
        count: Stop after this many records (0 = until the stream closes)
        out: Output file (default stdout)

    Returns:
        Number of records printed
    """
    out = out or sys.stdout
    reader = await get_stream()
    subscription = reader.subscribe()
    printed = 0
    missed = 0

    async for record in subscription:
        if subscription.missed != missed:
            logger.warning(f"Output fell behind, skipped {subscription.missed - missed} records")
            missed = subscription.missed
        print(render_record(record), file=out, flush=True)
        printed += 1
        if count and printed >= count:
            break

    reader.unsubscribe(subscription)
    return printed


async def run(args: argparse.Namespace) -> int:
    try:
        if args.command == "logs":
            await follow(get_logs_stream, args.count)
        elif args.command == "connections":
            await follow(get_connections_stream, args.count)
        elif args.command == "version":
            client = await get_control_client()
            version = await client.get_version()
            suffix = " (premium)" if version.premium else ""
            print(f"{version.version}{suffix}")
        elif args.command == "config":
            client = await get_control_client()
            config = await client.get_config()
            print(json.dumps(config.model_dump(by_alias=True), indent=2))
    except (EndpointResolutionError, ControlAPIError) as e:
        logger.error(str(e))
        return 1
    finally:
        await dispose_streams()
        await dispose_control_client()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    apply_arguments(settings, args)
    setup_logging(settings)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
