#!/usr/bin/env python3
"""Dump every collection fleetops loads from the entity store.

This script opens a client session, loads all collections, and prints
both the parsed record fields **and** the raw store rows so you can spot
columns that aren't parsed yet.  It finishes with the pairing check and
the inspection and service alerts for today.

Usage
-----
Set environment variables and run::

    export FLEET_STORE_URL="https://project.example.co"
    export FLEET_API_KEY="anon-key"
    python scripts/dump_all.py

Options::

    --collection NAME    Only dump this collection (repeatable)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --raw                Also print the raw store rows
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

from fleetops import Collection, FleetClient, FleetConfig, FleetError  # noqa: E402
from fleetops.models._base import FleetBaseModel  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_field(key: str, value: Any, indent: int = 2) -> str:
    prefix = " " * indent
    if isinstance(value, list):
        if not value:
            return f"{prefix}{key}: []"
        lines = [f"{prefix}{key}:"]
        for item in value:
            if isinstance(item, FleetBaseModel):
                for name, field_value in item.model_dump().items():
                    lines.append(_format_field(name, field_value, indent + 4))
                lines.append("")
            else:
                lines.append(f"{prefix}    - {item}")
        return "\n".join(lines)
    if isinstance(value, dict):
        return f"{prefix}{key}: <dict with {len(value)} keys>"
    if hasattr(value, "name") and hasattr(value, "value"):
        return f"{prefix}{key}: {value.name} ({value.value})"
    return f"{prefix}{key}: {value}"


def _print_record(record: FleetBaseModel, out: list[str], *, raw: bool) -> dict[str, Any]:
    """Pretty-print a record and return its JSON form."""
    out.append(f"\n  ── {type(record).__name__} id={record.id} ──")
    for key in type(record).model_fields:
        if key == "raw":
            continue
        out.append(_format_field(key, getattr(record, key), indent=4))
    if raw:
        out.append(json.dumps(record.raw, indent=2, default=str, ensure_ascii=False))
    return record.model_dump(mode="json")


# ── main ─────────────────────────────────────────────────────


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump all data fleetops loads for debugging / development.",
    )
    parser.add_argument(
        "--collection",
        action="append",
        choices=[c.value for c in Collection],
        help="Only dump this collection (default: all)",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--raw", action="store_true", help="Also print the raw store rows")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = FleetConfig.from_env()
    collections = [Collection(c) for c in args.collection] if args.collection else list(Collection)
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "store_url": config.store_url,
        "collections": {},
    }

    out: list[str] = []
    out.append(_section("fleetops dump_all"))
    out.append(f"  time      : {result['timestamp']}")
    out.append(f"  store     : {config.store_url} (schema {config.schema})")

    try:
        async with FleetClient(config) as fleet:
            for collection in collections:
                records = fleet.state.all(collection)
                out.append(_section(f"{collection.value.upper()}  ({len(records)})"))
                result["collections"][collection.value] = [
                    _print_record(record, out, raw=args.raw) for record in records
                ]

            violations = fleet.registry.check()
            out.append(_section("PAIRING CHECK"))
            out.extend(f"  !! {v}" for v in violations)
            if not violations:
                out.append("  ok")
            result["pairing_violations"] = violations

            inspections = fleet.vehicles.inspection_alerts()
            services = fleet.vehicles.service_alerts()
            out.append(_section("ALERTS"))
            for alert in inspections:
                out.append(f"  inspection {alert.plate}: {alert.urgency.name} ({alert.expires_on})")
            for service in services:
                out.append(f"  service {service.plate}: ends {service.ends_on} urgent={service.urgent}")
            result["inspection_alerts"] = [a.model_dump(mode="json") for a in inspections]
            result["service_alerts"] = [s.model_dump(mode="json") for s in services]
    except FleetError as exc:
        print(f"fleetops: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    # ── Output ──
    if args.json_mode:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
    elif args.output:
        Path(args.output).write_text("\n".join(out), encoding="utf-8")
        print(f"Dump written to {args.output}")
    else:
        print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
