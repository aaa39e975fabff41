from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace

import requests

from bsr.api_models import load_desired_state
from bsr.cluster_ops import ClusterError
from bsr.errors import SchemaError
from bsr.schema_manager import SchemaManager
from bsr.settings import settings


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def apply(tables_path: str, mode: str | None = None) -> int:
    """Run one initialize -> reconcile -> teardown cycle in-process."""
    cfg = replace(settings, operation_mode=mode) if mode else settings
    try:
        manager = SchemaManager(cfg)
        desired = load_desired_state(tables_path)
        manager.initialize()
        try:
            manager.reconcile(desired.tables)
        finally:
            manager.teardown()
    except (SchemaError, ClusterError) as e:
        bucket = e.bucket if isinstance(e, SchemaError) else None
        _print({"ok": False, "error": type(e).__name__, "bucket": bucket, "message": str(e)})
        return 1
    _print({"ok": True, "mode": manager.mode.value, "tables": [t.name for t in desired.tables]})
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Bucket Schema Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("buckets", help="Show desired buckets and whether they exist")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--bucket", default=None)

    s_runs = sub.add_parser("runs", help="Show reconciliation runs")
    s_runs.add_argument("--limit", type=int, default=10)

    s_rec = sub.add_parser("reconcile", help="Run a reconciliation pass on the API server")
    s_rec.add_argument("--user", default=settings.api_user)
    s_rec.add_argument("--password", default=settings.api_password)

    s_apply = sub.add_parser("apply", help="Reconcile directly against the cluster, without the API")
    s_apply.add_argument("--tables", default=settings.tables_path, help="Desired-state JSON file")
    s_apply.add_argument("--mode", default=None, help="validate|update|create|create-drop|drop")

    args = p.parse_args(argv)

    if args.cmd == "apply":
        return apply(args.tables, args.mode)

    base = args.api.rstrip("/")

    if args.cmd == "buckets":
        _print(requests.get(f"{base}/buckets", timeout=30).json())
        return 0

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.bucket:
            params["bucket"] = args.bucket
        _print(requests.get(f"{base}/events", params=params, timeout=10).json())
        return 0

    if args.cmd == "runs":
        _print(requests.get(f"{base}/runs", params={"limit": args.limit}, timeout=10).json())
        return 0

    if args.cmd == "reconcile":
        r = requests.post(f"{base}/reconcile", auth=(args.user, args.password or ""), timeout=300)
        _print(r.json())
        return 0 if r.ok else 1

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
