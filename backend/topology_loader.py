"""
Topology Loader: parse a YAML topology preset into a NetworkState.

Format:

  devices:
    router-1:
      type: router
      name: EDGE          # optional, defaults to TYPE-n
      status: connected   # optional
      config: {internalIp: 192.168.1.1}
  cables:
    - {from: router-1, to: pc-1, type: lan, connected: true}

Device ids are the mapping keys. Cables pointing at unknown devices and
repeated device pairs are skipped with a warning.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from models import Cable, Device, DeviceType, NetworkState
from telemetry import recount_devices

logger = logging.getLogger(__name__)


def load_topology(path: str | Path) -> NetworkState:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Topology not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return parse_topology(raw)


def parse_topology(raw: dict) -> NetworkState:
    state = NetworkState()
    type_counts: dict[DeviceType, int] = {}

    for device_id, dconf in (raw.get("devices") or {}).items():
        dconf = dconf or {}
        device_type = DeviceType(dconf["type"])
        type_counts[device_type] = type_counts.get(device_type, 0) + 1
        state.devices.append(Device.model_validate({
            "id": str(device_id),
            "type": device_type,
            "name": dconf.get("name") or f"{device_type.value.upper()}-{type_counts[device_type]}",
            "status": dconf.get("status", "connected"),
            "position": dconf.get("position") or {},
            "config": dconf.get("config"),
        }))

    known = {d.id for d in state.devices}
    for idx, cconf in enumerate(raw.get("cables") or []):
        a, b = str(cconf["from"]), str(cconf["to"])
        if a not in known or b not in known:
            logger.warning("Skipping cable %s <-> %s: unknown device", a, b)
            continue
        if a == b or any(c.joins(a, b) for c in state.cables):
            logger.warning("Skipping duplicate cable %s <-> %s", a, b)
            continue
        state.cables.append(Cable.model_validate({
            "id": str(cconf.get("id") or f"cable-{idx + 1}"),
            "from": a,
            "to": b,
            "fromPort": cconf.get("from_port", cconf.get("fromPort", "right")),
            "toPort": cconf.get("to_port", cconf.get("toPort", "left")),
            "type": cconf.get("type", "lan"),
            "connected": cconf.get("connected", True),
        }))

    state.stats = recount_devices(state.stats, state.devices)
    return state
