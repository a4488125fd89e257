"""Network Packet Simulator API."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import ConfigDict, Field, ValidationError

from models import (
    CableType, CamelModel, DeviceStatus, DeviceType,
    NetworkState, PacketLog, PortSide, Position,
)
from settings import load_settings
from simulation import Verdict
from storage import StateStore
from telemetry import recent_logs
from topology import CableNotFound, DeviceNotFound, TopologyError, TopologyStore
from topology_loader import load_topology

settings = load_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Network Packet Simulator", description="Topology editor and packet simulation", version="1.0.0")

state_store = StateStore(settings.resolve(settings.db_path), key=settings.storage_key)
store = TopologyStore(log_retention=settings.log_retention)

saved = state_store.load()
if saved is not None:
    store.replace(saved)
elif settings.preset_path:
    try:
        store.replace(load_topology(settings.resolve(settings.preset_path)))
    except Exception as e:
        logger.warning("Could not load topology preset: %s", e)


class DeviceCreate(CamelModel):
    type: DeviceType
    name: Optional[str] = None
    position: Optional[Position] = None
    config: Optional[dict] = None


class DeviceUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")  # type can't be changed

    name: Optional[str] = None
    position: Optional[Position] = None
    status: Optional[DeviceStatus] = None
    config: Optional[dict] = None


class CableCreate(CamelModel):
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    type: CableType = CableType.LAN
    from_port: PortSide = PortSide.RIGHT
    to_port: PortSide = PortSide.LEFT


class CableUpdate(CamelModel):
    connected: bool


class PacketQuery(CamelModel):
    source: str
    destination: str


def _persist():
    state_store.save(store.snapshot())


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (DeviceNotFound, CableNotFound)):
        return HTTPException(404, str(exc))
    if isinstance(exc, TopologyError):
        return HTTPException(400, str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(422, exc.errors(include_url=False, include_context=False))
    return HTTPException(400, str(exc))


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "1.0.0", "devices": len(store.devices), "cables": len(store.cables)}


# --- devices ---

@app.get("/api/devices")
async def list_devices():
    return {"devices": [d.model_dump(by_alias=True, mode="json") for d in store.devices]}


@app.post("/api/devices", status_code=201)
async def create_device(body: DeviceCreate):
    try:
        device = store.add_device(body.type, name=body.name, position=body.position, config=body.config)
    except ValueError as e:
        raise _http_error(e)
    _persist()
    return device.model_dump(by_alias=True, mode="json")


@app.get("/api/devices/{device_id}")
async def get_device(device_id: str):
    try:
        device = store.get_device(device_id)
    except TopologyError as e:
        raise _http_error(e)
    return device.model_dump(by_alias=True, mode="json")


@app.patch("/api/devices/{device_id}")
async def update_device(device_id: str, body: DeviceUpdate):
    try:
        device = store.update_device(
            device_id, name=body.name, position=body.position, config=body.config, status=body.status,
        )
    except ValueError as e:
        raise _http_error(e)
    _persist()
    return device.model_dump(by_alias=True, mode="json")


@app.delete("/api/devices/{device_id}")
async def delete_device(device_id: str):
    try:
        store.delete_device(device_id)
    except TopologyError as e:
        raise _http_error(e)
    _persist()
    return {"deleted": device_id}


@app.get("/api/devices/{device_id}/neighbors")
async def device_neighbors(device_id: str):
    try:
        return {"device": device_id, "neighbors": store.connected_devices(device_id)}
    except TopologyError as e:
        raise _http_error(e)


# --- cables ---

@app.get("/api/cables")
async def list_cables():
    return {"cables": [c.model_dump(by_alias=True, mode="json") for c in store.cables]}


@app.post("/api/cables", status_code=201)
async def create_cable(body: CableCreate):
    try:
        cable = store.add_cable(
            body.from_id, body.to_id, cable_type=body.type, from_port=body.from_port, to_port=body.to_port,
        )
    except TopologyError as e:
        raise _http_error(e)
    if cable is None:
        raise HTTPException(409, f"Devices '{body.from_id}' and '{body.to_id}' are already cabled")
    _persist()
    return cable.model_dump(by_alias=True, mode="json")


@app.delete("/api/cables")
async def delete_cables(a: str, b: str):
    removed = store.remove_cable(a, b)
    _persist()
    return {"removed": removed}


@app.patch("/api/cables/{cable_id}")
async def update_cable(cable_id: str, body: CableUpdate):
    try:
        cable = store.set_cable_connected(cable_id, body.connected)
    except TopologyError as e:
        raise _http_error(e)
    _persist()
    return cable.model_dump(by_alias=True, mode="json")


# --- simulation ---

@app.post("/api/path")
async def find_path(query: PacketQuery):
    return {"path": store.find_path(query.source.strip(), query.destination.strip())}


@app.post("/api/packets")
async def send_packet(query: PacketQuery):
    verdict, log = store.send_packet(query.source.strip(), query.destination.strip())
    _persist()
    return _serialize_packet(verdict, log)


@app.get("/api/logs")
async def list_logs(limit: Optional[int] = None):
    limit = settings.recent_log_limit if limit is None else limit
    return {"logs": [l.model_dump(by_alias=True, mode="json") for l in recent_logs(store.logs, limit)]}


@app.get("/api/stats")
async def get_stats():
    return store.stats.model_dump(by_alias=True, mode="json")


# --- import / export ---

@app.get("/api/state")
async def export_state():
    return store.snapshot().model_dump(by_alias=True, mode="json")


@app.put("/api/state")
async def import_state(state: NetworkState):
    store.replace(state)
    _persist()
    return {"devices": len(store.devices), "cables": len(store.cables), "logs": len(store.logs)}


@app.delete("/api/state")
async def clear_state():
    store.clear()
    state_store.clear()
    return {"status": "cleared"}


def _serialize_packet(verdict: Verdict, log: PacketLog) -> dict:
    return {
        "success": verdict.success,
        "reason": verdict.reason,
        "path": verdict.path,
        "log": log.model_dump(by_alias=True, mode="json"),
    }
