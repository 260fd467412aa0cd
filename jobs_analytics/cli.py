"""Command line entry points for running synchronization by hand."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from jobs_analytics.core.config import get_settings
from jobs_analytics.core.telemetry import configure_logging, setup_telemetry, shutdown_telemetry
from jobs_analytics.services.sync import SyncService, get_sync_service
from jobs_analytics.worker import run_worker


async def _sync(service: SyncService) -> tuple[bool, dict[str, Any]]:
    result = await service.full_sync()
    return result.success, asdict(result)


async def _push(service: SyncService) -> tuple[bool, dict[str, Any]]:
    await service.publisher.ensure_schema()
    result = await service.sync_to_downstream()
    return result.success, asdict(result)


async def _bidirectional(service: SyncService) -> tuple[bool, dict[str, Any]]:
    result = await service.full_bidirectional_sync()
    return result.success, {
        "sync": asdict(result.sync),
        "publish": asdict(result.publish) if result.publish is not None else None,
    }


async def _status(service: SyncService) -> tuple[bool, dict[str, Any]]:
    return True, await service.get_sync_status()


COMMANDS = {
    "sync": _sync,
    "push": _push,
    "bidirectional": _bidirectional,
    "status": _status,
}


async def run_command(command: str, service: SyncService) -> tuple[bool, dict[str, Any]]:
    try:
        return await COMMANDS[command](service)
    finally:
        await service.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synchronize UN job postings between source, local cache and downstream.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("sync", help="Reload the local store from the source database")
    subparsers.add_parser("push", help="Publish the local store to the downstream database")
    subparsers.add_parser("bidirectional", help="Run sync then push; push is skipped when sync fails")
    subparsers.add_parser("status", help="Print the local sync metadata")
    worker = subparsers.add_parser("worker", help="Run the bidirectional sync on a fixed interval")
    worker.add_argument("--max-cycles", type=int, default=None, help="Stop after this many cycles")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    if args.command == "worker":
        asyncio.run(run_worker(max_cycles=args.max_cycles))
        return 0

    runtime = setup_telemetry(get_settings(), component="cli")
    try:
        success, payload = asyncio.run(run_command(args.command, get_sync_service()))
    finally:
        shutdown_telemetry(runtime)
    print(json.dumps(payload, indent=2, default=str))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
