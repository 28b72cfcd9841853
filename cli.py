from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Tag Cluster Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("topologies", help="List topologies and their members")

    s_mem = sub.add_parser("members", help="Show one topology")
    s_mem.add_argument("name")

    s_poll = sub.add_parser("poll", help="Run a cycle now")
    s_poll.add_argument("name")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)
    s_ev.add_argument("--topology", default=None)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "topologies":
        _print(requests.get(f"{base}/topologies", timeout=10).json())
        return 0

    if args.cmd == "members":
        r = requests.get(f"{base}/topologies/{args.name}", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "poll":
        r = requests.post(f"{base}/topologies/{args.name}/poll", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.topology:
            params["topology"] = args.topology
        _print(requests.get(f"{base}/events", params=params, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
