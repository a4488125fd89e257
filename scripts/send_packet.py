#!/usr/bin/env python3
"""
Send packets across a topology preset and print each verdict.

Usage: python3 scripts/send_packet.py [topology.yml] [source destination]

With no source/destination, every device sends a packet to every other
device and the script exits non-zero if any expected pair fails.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from simulation import Verdict
from topology import TopologyStore
from topology_loader import load_topology

TOPOLOGY_PATH = Path(__file__).parent.parent / "data" / "topologies" / "home-office.yml"

# Pairs the bundled preset must deliver
EXPECTED_DELIVERIES = [
    ("pc-1", "pc-2"),
    ("pc-1", "server-1"),
    ("pc-1", "laptop"),
    ("internet", "pc-1"),
    ("internet", "proxy-1"),
]


def print_verdict(source: str, destination: str, verdict: Verdict):
    mark = "✓" if verdict.success else "✗"
    line = f"  {mark} {source} → {destination}"
    if verdict.path:
        line += f"  [{' → '.join(verdict.path)}]"
    if verdict.reason:
        line += f"  ({verdict.reason})"
    print(line)


def main() -> int:
    topology_path = Path(sys.argv[1]) if len(sys.argv) > 1 else TOPOLOGY_PATH

    print(f"Loading topology from {topology_path}")
    store = TopologyStore(load_topology(topology_path))
    print(f"Loaded {len(store.devices)} devices, {len(store.cables)} cables")

    if len(sys.argv) > 3:
        verdict, _ = store.send_packet(sys.argv[2], sys.argv[3])
        print_verdict(sys.argv[2], sys.argv[3], verdict)
        return 0 if verdict.success else 1

    failures = []
    for source in store.devices:
        for dest in store.devices:
            if source.id == dest.id:
                continue
            verdict, _ = store.send_packet(source.id, dest.id)
            print_verdict(source.id, dest.id, verdict)
            if not verdict.success and (source.id, dest.id) in EXPECTED_DELIVERIES:
                failures.append(f"{source.id} → {dest.id}: {verdict.reason}")

    stats = store.stats
    print(f"\n{'='*60}")
    print(f"  Delivered: {stats.packets_delivered}  Dropped: {stats.packets_dropped}  Attempts: {stats.port_attempts}")
    if failures and topology_path == TOPOLOGY_PATH:
        print("⚠ EXPECTED DELIVERIES FAILED:")
        for f in failures:
            print(f"  - {f}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
