"""Packet logs and dashboard counters derived from simulation verdicts."""

from __future__ import annotations

import time
import uuid
from typing import Optional

from models import Device, DeviceStatus, PacketLog, PacketStatus, Stats
from simulation import Verdict

DEFAULT_RECENT_LOGS = 10


def make_log(from_id: str, to_id: str, success: bool, reason: Optional[str] = None) -> PacketLog:
    return PacketLog(
        id=f"log-{uuid.uuid4().hex}",
        timestamp=int(time.time() * 1000),
        from_id=from_id,
        to_id=to_id,
        status=PacketStatus.SUCCESS if success else PacketStatus.FAILED,
        reason=None if success else reason,
    )


def record_packet(stats: Stats, verdict: Verdict) -> Stats:
    """One attempt, and exactly one of delivered/dropped."""
    return stats.model_copy(update={
        "port_attempts": stats.port_attempts + 1,
        "packets_delivered": stats.packets_delivered + (1 if verdict.success else 0),
        "packets_dropped": stats.packets_dropped + (0 if verdict.success else 1),
    })


def recount_devices(stats: Stats, devices: list[Device]) -> Stats:
    online = sum(1 for d in devices if d.status == DeviceStatus.CONNECTED)
    return stats.model_copy(update={
        "device_online": online,
        "device_offline": len(devices) - online,
    })


def recent_logs(logs: list[PacketLog], limit: int = DEFAULT_RECENT_LOGS) -> list[PacketLog]:
    """Newest first, at most `limit` entries."""
    if limit <= 0:
        return []
    return list(reversed(logs[-limit:]))
