#!/usr/bin/env python3
"""Dump what the machine status feed currently reports.

Prints every parsed machine snapshot **and** the raw feed record so you
can spot fields or status ids that aren't handled yet.

Usage
-----
Set environment variables and run::

    export LAUNDRY_API_URL="https://.../machines"
    python scripts/dump_feed.py

Options::

    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --verbose, -v        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pylaundry import LaundryConfig, LaundryFeed  # noqa: E402
from pylaundry.ingestion.feed import parse_machine  # noqa: E402
from pylaundry.exceptions import MalformedMachineError  # noqa: E402
from pylaundry.notify import format_time_remaining  # noqa: E402


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


async def main() -> None:
    parser = argparse.ArgumentParser(description="Dump the laundry status feed for debugging.")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = LaundryConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "machines": [],
    }
    out: list[str] = [_section("pylaundry dump_feed"), f"  time      : {result['timestamp']}"]

    async with LaundryFeed(config) as feed:
        items = await feed.fetch_raw()

    for item in items:
        entry: dict[str, Any] = {"raw": item}
        try:
            machine = parse_machine(item)
        except MalformedMachineError as exc:
            entry["error"] = str(exc)
            out.append(_section(f"MACHINE  id={exc.machine_id or '?'}  (malformed)"))
            out.append(f"  !! {exc}")
        else:
            entry["parsed"] = machine.model_dump(mode="json", exclude={"raw"})
            out.append(_section(f"MACHINE  {machine.display_name}  id={machine.id}"))
            for key, value in entry["parsed"].items():
                out.append(f"  {key:<18}: {value}")
            out.append(f"  {'time_left':<18}: {format_time_remaining(machine.remaining_seconds)}")
        out.append("  -- raw --")
        out.append("  " + json.dumps(item, indent=2, default=str).replace("\n", "\n  "))
        result["machines"].append(entry)

    text = json.dumps(result, indent=2, default=str) if args.json_mode else "\n".join(out)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)


if __name__ == "__main__":
    asyncio.run(main())
