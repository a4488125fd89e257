"""
Topology Store: owns the devices, cables, logs and stats of one session.

Editing rules live here, not in the simulation engine:
- at most one internet and one isp device
- no second cable between the same pair of devices
- deleting a device deletes its cables
- proxy ns1/ns2 records must differ

Mutations and send_packet share one lock, so a simulation always sees a
stable snapshot.
"""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Optional

from pydantic import BaseModel

from models import (
    Cable, CableType, Device, DeviceStatus, DeviceType,
    NetworkState, PacketLog, PortSide, Position, Stats,
    merge_config,
)
from path_finder import find_path
from simulation import Verdict, simulate
from telemetry import make_log, record_packet, recount_devices

logger = logging.getLogger(__name__)

SINGLETON_TYPES = (DeviceType.INTERNET, DeviceType.ISP)


class TopologyError(ValueError):
    """An edit that would break a topology invariant."""

class DeviceNotFound(TopologyError):
    pass

class CableNotFound(TopologyError):
    pass


def _check_proxy_dns(device: Device):
    if device.type != DeviceType.PROXY:
        return
    ns1, ns2 = device.config.ns1, device.config.ns2
    if ns1 and ns2 and ns1 == ns2:
        raise TopologyError("Proxy ns1 and ns2 records must be different")


class TopologyStore:
    def __init__(self, state: Optional[NetworkState] = None, log_retention: Optional[int] = None):
        self._lock = threading.Lock()
        self._state = state.model_copy(deep=True) if state else NetworkState()
        self.log_retention = log_retention
        self._recount()

    # --- read access ---

    @property
    def devices(self) -> list[Device]:
        return list(self._state.devices)

    @property
    def cables(self) -> list[Cable]:
        return list(self._state.cables)

    @property
    def logs(self) -> list[PacketLog]:
        return list(self._state.logs)

    @property
    def stats(self) -> Stats:
        return self._state.stats

    def get_device(self, device_id: str) -> Device:
        return self._state.devices[self._device_index(device_id)]

    def connected_devices(self, device_id: str) -> list[str]:
        """Devices on the other end of any cable, cut or not."""
        self._device_index(device_id)
        return [c.other_end(device_id) for c in self._state.cables if c.touches(device_id)]

    def snapshot(self) -> NetworkState:
        with self._lock:
            return self._state.model_copy(deep=True)

    # --- devices ---

    def add_device(
        self,
        device_type: DeviceType | str,
        name: Optional[str] = None,
        position: Optional[Position | dict] = None,
        config: Optional[BaseModel | dict] = None,
    ) -> Device:
        device_type = DeviceType(device_type)
        with self._lock:
            same_type = [d for d in self._state.devices if d.type == device_type]
            if device_type in SINGLETON_TYPES and same_type:
                raise TopologyError(f"Only one {device_type.value} device is allowed")

            device = Device.model_validate({
                "id": f"{device_type.value}-{uuid.uuid4().hex[:8]}",
                "type": device_type,
                "name": name or f"{device_type.value.upper()}-{len(same_type) + 1}",
                "position": position or Position(),
                "config": config,
            })
            _check_proxy_dns(device)
            self._state.devices.append(device)
            self._recount()
        logger.debug("Added %s device %s", device_type.value, device.id)
        return device

    def update_device(
        self,
        device_id: str,
        name: Optional[str] = None,
        position: Optional[Position | dict] = None,
        config: Optional[BaseModel | dict] = None,
        status: Optional[DeviceStatus | str] = None,
    ) -> Device:
        """Edit everything but the device type. Dict configs are merged over the current one."""
        with self._lock:
            idx = self._device_index(device_id)
            current = self._state.devices[idx]
            data = current.model_dump(by_alias=True)
            if name is not None:
                data["name"] = name
            if position is not None:
                data["position"] = position
            if status is not None:
                data["status"] = DeviceStatus(status)
            if isinstance(config, dict):
                data["config"] = merge_config(current.config, config)
            elif config is not None:
                data["config"] = config

            updated = Device.model_validate(data)
            _check_proxy_dns(updated)
            self._state.devices[idx] = updated
            self._recount()
        logger.debug("Updated device %s", device_id)
        return updated

    def set_status(self, device_id: str, status: DeviceStatus | str) -> Device:
        return self.update_device(device_id, status=status)

    def move_device(self, device_id: str, x: float, y: float) -> Device:
        return self.update_device(device_id, position=Position(x=x, y=y))

    def delete_device(self, device_id: str):
        with self._lock:
            idx = self._device_index(device_id)
            del self._state.devices[idx]
            before = len(self._state.cables)
            self._state.cables = [c for c in self._state.cables if not c.touches(device_id)]
            removed = before - len(self._state.cables)
            self._recount()
        logger.debug("Deleted device %s and %d cable(s)", device_id, removed)

    # --- cables ---

    def add_cable(
        self,
        from_id: str,
        to_id: str,
        cable_type: CableType | str = CableType.LAN,
        from_port: PortSide | str = PortSide.RIGHT,
        to_port: PortSide | str = PortSide.LEFT,
    ) -> Optional[Cable]:
        """Cable two devices. Returns None if the pair is already cabled."""
        with self._lock:
            self._device_index(from_id)
            self._device_index(to_id)
            if from_id == to_id:
                raise TopologyError("Cannot cable a device to itself")
            if any(c.joins(from_id, to_id) for c in self._state.cables):
                logger.debug("Cable %s <-> %s already exists", from_id, to_id)
                return None

            cable = Cable(
                id=f"cable-{uuid.uuid4().hex[:8]}",
                from_id=from_id,
                to_id=to_id,
                from_port=PortSide(from_port),
                to_port=PortSide(to_port),
                type=CableType(cable_type),
            )
            self._state.cables.append(cable)
        logger.debug("Added %s cable %s: %s <-> %s", cable.type.value, cable.id, from_id, to_id)
        return cable

    def remove_cable(self, a: str, b: str) -> int:
        """Remove every cable between a and b, either direction."""
        with self._lock:
            before = len(self._state.cables)
            self._state.cables = [c for c in self._state.cables if not c.joins(a, b)]
            removed = before - len(self._state.cables)
        logger.debug("Removed %d cable(s) between %s and %s", removed, a, b)
        return removed

    def set_cable_connected(self, cable_id: str, connected: bool) -> Cable:
        """Cut or restore a link without deleting the cable."""
        with self._lock:
            for idx, cable in enumerate(self._state.cables):
                if cable.id == cable_id:
                    updated = cable.model_copy(update={"connected": connected})
                    self._state.cables[idx] = updated
                    return updated
        raise CableNotFound(f"Cable '{cable_id}' not found")

    # --- simulation ---

    def find_path(self, source_id: str, dest_id: str) -> Optional[list[str]]:
        with self._lock:
            devices, cables = list(self._state.devices), list(self._state.cables)
        return find_path(source_id, dest_id, devices, cables)

    def send_packet(self, source_id: str, dest_id: str) -> tuple[Verdict, PacketLog]:
        """Simulate one packet, then append its log and bump the counters."""
        with self._lock:
            verdict = simulate(source_id, dest_id, list(self._state.devices), list(self._state.cables))
            log = make_log(source_id, dest_id, verdict.success, verdict.reason)
            self._state.logs.append(log)
            if self.log_retention is not None and len(self._state.logs) > self.log_retention:
                self._state.logs = self._state.logs[-self.log_retention:]
            self._state.stats = record_packet(self._state.stats, verdict)

        if verdict.success:
            logger.info("Packet %s -> %s delivered via %s", source_id, dest_id, " -> ".join(verdict.path))
        else:
            logger.info("Packet %s -> %s dropped: %s", source_id, dest_id, verdict.reason)
        return verdict, log

    # --- whole-state operations ---

    def replace(self, state: NetworkState):
        """Restore an imported or persisted state as-is, re-deriving device counters."""
        with self._lock:
            self._state = state.model_copy(deep=True)
            self._recount()
        logger.info(
            "Loaded topology: %d device(s), %d cable(s), %d log(s)",
            len(state.devices), len(state.cables), len(state.logs),
        )

    def clear(self):
        with self._lock:
            self._state = NetworkState()
        logger.info("Cleared topology")

    # --- internals ---

    def _device_index(self, device_id: str) -> int:
        for idx, device in enumerate(self._state.devices):
            if device.id == device_id:
                return idx
        raise DeviceNotFound(f"Device '{device_id}' not found")

    def _recount(self):
        self._state.stats = recount_devices(self._state.stats, self._state.devices)
