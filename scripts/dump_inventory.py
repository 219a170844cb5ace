#!/usr/bin/env python3
"""Dump everything pycertplus can read from the inventory service.

Prints each asset and intervention as parsed, next to the raw API JSON,
so unmapped fields and unattributed interventions are easy to spot.

Usage
-----
Set environment variables and run::

    export CERTPLUS_API_KEY="..."
    export CERTPLUS_BASE_URL="https://inventory.example"
    python scripts/dump_inventory.py

Options::

    --tag TAG            Only show the asset matching this scan payload
    --json               Output as machine-readable JSON
    --output FILE        Write JSON output to FILE instead of stdout
    --skip-interventions Skip the intervention listing
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

from pycertplus import CertClient, CertConfig, CertError  # noqa: E402
from pycertplus.models import Asset, InterventionRecord  # noqa: E402
from pycertplus.reconcile import installation_status  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_field(key: str, value: Any, indent: int = 2) -> str:
    prefix = " " * indent
    if isinstance(value, (list, tuple)):
        return f"{prefix}{key}: <{len(value)} items>"
    if isinstance(value, dict):
        return f"{prefix}{key}: <dict with {len(value)} keys>"
    return f"{prefix}{key}: {value}"


def _print_model(name: str, model: Asset | InterventionRecord, out: list[str]) -> dict[str, Any]:
    out.append(_section(name))
    parsed = model.model_dump(exclude={"raw"})
    for key, value in parsed.items():
        out.append(_format_field(key, value))
    return parsed


def _print_raw(name: str, raw: dict[str, Any], out: list[str]) -> None:
    out.append(f"\n  ── {name} (raw JSON) ──")
    out.append(json.dumps(raw, indent=2, default=str, ensure_ascii=False))


# ── main ─────────────────────────────────────────────────────


async def dump_asset(client: CertClient, asset: Asset, out: list[str]) -> dict[str, Any]:
    parsed = _print_model(f"Asset tag={asset.tag}", asset, out)
    history = await client.get_interventions_by_asset(asset.uuid)
    status = installation_status(history)
    out.append(f"  location  : {asset.location}")
    out.append(f"  status    : {status}")
    _print_raw(f"Asset tag={asset.tag}", asset.raw, out)
    return {"parsed": parsed, "raw": asset.raw, "status": str(status), "history": [r.uuid for r in history]}


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump all data pycertplus can fetch for debugging / development.",
    )
    parser.add_argument("--tag", help="Only show the asset matching this scan payload")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON output to FILE instead of stdout")
    parser.add_argument("--skip-interventions", action="store_true", help="Skip the intervention listing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = CertConfig.from_env()
    result: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "base_url": config.base_url,
        "assets": [],
        "interventions": [],
    }

    out: list[str] = [_section("pycertplus dump_inventory")]
    out.append(f"  time      : {result['timestamp']}")
    out.append(f"  base_url  : {config.base_url}")

    async with CertClient(config) as client:
        if args.tag:
            asset = await client.find_asset_by_tag(args.tag, force_refresh=True)
            if asset is None:
                print(f"No asset matches {args.tag!r}", file=sys.stderr)
                raise SystemExit(1)
            assets: tuple[Asset, ...] = (asset,)
        else:
            assets = await client.get_assets()

        for asset in assets:
            result["assets"].append(await dump_asset(client, asset, out))

        if not args.skip_interventions and not args.tag:
            records = await client.get_interventions()
            out.append(_section(f"INTERVENTIONS ({len(records)})"))
            for record in records:
                _print_model(f"Intervention uuid={record.uuid}", record, out)
                out.append(f"  asset_id  : {record.asset_id}")
                result["interventions"].append({"asset_id": record.asset_id, "raw": record.raw})

        result["cache"] = {name: vars(status) for name, status in client.cache_status().items()}

    payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"JSON written to {args.output}", file=sys.stderr)
    elif args.json_mode:
        print(payload)
    else:
        print("\n".join(out))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except CertError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
