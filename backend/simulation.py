"""
Packet simulation: decides whether a packet from one device reaches another.

Rules run in a fixed order and the first failure wins:
  1. both devices exist
  2. both devices are connected
  3. a live cable path exists
  4. both endpoints resolve an address
  5. internet-origin packets: proxy DNS checks, then deliver
  6. server destination with every port closed
  7. different subnet needs a router on the path
  8. ISP on the path must be up

Later rules rely on earlier ones having passed. Nothing here logs or
mutates its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from models import Cable, Device, DeviceStatus, DeviceType
from path_finder import find_path

INTERNET_ADDRESS = "0.0.0.0"


class FailureReason(str, Enum):
    DEVICE_NOT_FOUND = "Device not found"
    DEVICE_OFFLINE = "Device offline"
    NO_ROUTE = "No route to host"
    IP_NOT_CONFIGURED = "IP not configured"
    PROXY_NO_IP = "Proxy has no IP address"
    PROXY_NO_DNS = "Proxy has no DNS Record"
    DESTINATION_NO_IP = "Destination has no IP address"
    PORTS_CLOSED = "All ports closed"
    ROUTER_REQUIRED = "Router required for different subnets"
    ISP_DOWN = "ISP down"


@dataclass
class Verdict:
    """Outcome of one simulated packet."""
    success: bool
    reason: Optional[str] = None   # a FailureReason value when success is False
    path: list[str] = field(default_factory=list)


def _fail(reason: FailureReason, path: Optional[list[str]] = None) -> Verdict:
    return Verdict(success=False, reason=reason.value, path=list(path or []))


def _first_device(devices: list[Device], device_id: str) -> Optional[Device]:
    return next((d for d in devices if d.id == device_id), None)


def _first_of_type(devices: list[Device], device_type: DeviceType) -> Optional[Device]:
    return next((d for d in devices if d.type == device_type), None)


def resolve_address(device: Device) -> str:
    """Address a device answers on, or "" when it has none configured."""
    config = device.config
    if device.type in (DeviceType.PC, DeviceType.SERVER, DeviceType.ROUTER):
        return config.internal_ip or config.wan_ip or ""
    if device.type == DeviceType.PROXY:
        return config.ip_address or ""
    if device.type == DeviceType.ISP:
        return config.wan_ip or ""
    if device.type == DeviceType.INTERNET:
        return INTERNET_ADDRESS
    return ""


def same_subnet(a: str, b: str) -> bool:
    """Textual match on the first three dot-separated segments. Not CIDR math."""
    return a.split(".")[:3] == b.split(".")[:3]


def simulate(
    source_id: str,
    dest_id: str,
    devices: list[Device],
    cables: list[Cable],
) -> Verdict:
    source = _first_device(devices, source_id)
    dest = _first_device(devices, dest_id)
    if source is None or dest is None:
        return _fail(FailureReason.DEVICE_NOT_FOUND)

    if source.status == DeviceStatus.DISCONNECTED or dest.status == DeviceStatus.DISCONNECTED:
        return _fail(FailureReason.DEVICE_OFFLINE)

    path = find_path(source_id, dest_id, devices, cables)
    if path is None:
        return _fail(FailureReason.NO_ROUTE)

    source_ip = resolve_address(source)
    dest_ip = resolve_address(dest)
    if not source_ip or not dest_ip:
        return _fail(FailureReason.IP_NOT_CONFIGURED, path)

    # Traffic from the internet skips port, subnet and ISP checks
    if source.type == DeviceType.INTERNET:
        if dest.type == DeviceType.PROXY:
            if not dest.config.ip_address:
                return _fail(FailureReason.PROXY_NO_IP, path)
            if not (dest.config.ns1 and dest.config.ns2):
                return _fail(FailureReason.PROXY_NO_DNS, path)
            return Verdict(success=True, path=path)
        if not dest_ip:
            return _fail(FailureReason.DESTINATION_NO_IP, path)
        return Verdict(success=True, path=path)

    if dest.type == DeviceType.SERVER and dest.config.ports is not None:
        if len(dest.config.ports) == 0:
            return _fail(FailureReason.PORTS_CLOSED, path)

    if not same_subnet(source_ip, dest_ip):
        hops = (_first_device(devices, hop) for hop in path)
        if not any(hop is not None and hop.type == DeviceType.ROUTER for hop in hops):
            return _fail(FailureReason.ROUTER_REQUIRED, path)

    isp = _first_of_type(devices, DeviceType.ISP)
    if isp is not None and isp.id in path and isp.status == DeviceStatus.DISCONNECTED:
        return _fail(FailureReason.ISP_DOWN, path)

    return Verdict(success=True, path=path)
