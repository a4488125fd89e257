"""
Data models for the Network Packet Simulator.

The topology is a set of devices joined by cables:
- 7 device types: internet, proxy, isp, router, switch, server, pc
- Per-type config variants (a pc can't carry proxy DNS records, etc.)
- Cables are undirected; port sides and cable type are cosmetic
- Packet logs are immutable and append-only

JSON field names are camelCase so a saved topology round-trips with the
browser editor's export format.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Enums ---

class DeviceType(str, Enum):
    INTERNET = "internet"
    PROXY = "proxy"
    ISP = "isp"
    ROUTER = "router"
    SWITCH = "switch"
    SERVER = "server"
    PC = "pc"

class DeviceStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"

class CableType(str, Enum):
    LAN = "lan"
    WAN = "wan"
    WIRELESS = "wireless"   # counts for reachability, not drawn

class PortSide(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"

class PacketStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


# --- Device config variants ---

class DeviceConfigBase(CamelModel):
    model_config = ConfigDict(extra="forbid")

class DhcpRange(CamelModel):
    start: str = ""
    end: str = ""

class HostConfig(DeviceConfigBase):
    """Router and PC addressing."""
    internal_ip: Optional[str] = None
    wan_ip: Optional[str] = None
    gateway: Optional[str] = None
    dhcp_enabled: bool = False
    dhcp_range: Optional[DhcpRange] = None
    nat_enabled: bool = False

class ServerConfig(HostConfig):
    # [] = all ports closed, None = no port policy
    ports: Optional[list[int]] = None

class SwitchConfig(DeviceConfigBase):
    port_list: list[str] = Field(default_factory=list)

class ProxyConfig(DeviceConfigBase):
    ip_address: Optional[str] = None
    proxied: bool = True
    ns1: Optional[str] = None
    ns2: Optional[str] = None

class IspConfig(DeviceConfigBase):
    wan_ip: Optional[str] = None

class InternetConfig(DeviceConfigBase):
    pass


CONFIG_MODELS: dict[DeviceType, type[DeviceConfigBase]] = {
    DeviceType.INTERNET: InternetConfig,
    DeviceType.PROXY: ProxyConfig,
    DeviceType.ISP: IspConfig,
    DeviceType.ROUTER: HostConfig,
    DeviceType.SWITCH: SwitchConfig,
    DeviceType.SERVER: ServerConfig,
    DeviceType.PC: HostConfig,
}


def merge_config(config: DeviceConfigBase, patch: dict) -> dict:
    """Overlay a partial config (field names or camelCase keys) onto an existing one."""
    fields = type(config).model_fields
    merged = config.model_dump(by_alias=True)
    for key, value in patch.items():
        field = fields.get(key)
        merged[field.alias if field and field.alias else key] = value
    return merged


# --- Topology Models ---

class Position(CamelModel):
    x: float = 0
    y: float = 0

class Device(CamelModel):
    id: str
    type: DeviceType
    name: str = ""
    position: Position = Field(default_factory=Position)
    status: DeviceStatus = DeviceStatus.CONNECTED
    config: SerializeAsAny[DeviceConfigBase]

    @model_validator(mode="before")
    @classmethod
    def _build_config(cls, data):
        if not isinstance(data, dict):
            return data
        try:
            device_type = DeviceType(data.get("type"))
        except ValueError:
            return data  # reported by field validation
        config = data.get("config")
        if config is None or isinstance(config, dict):
            data = {**data, "config": CONFIG_MODELS[device_type].model_validate(config or {})}
        return data

    @model_validator(mode="after")
    def _check_config_variant(self):
        expected = CONFIG_MODELS[self.type]
        if type(self.config) is not expected:
            raise ValueError(
                f"{self.type.value} device needs {expected.__name__}, got {type(self.config).__name__}"
            )
        return self

class Cable(CamelModel):
    id: str
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    from_port: PortSide = PortSide.RIGHT
    to_port: PortSide = PortSide.LEFT
    type: CableType = CableType.LAN
    connected: bool = True

    def joins(self, a: str, b: str) -> bool:
        return {self.from_id, self.to_id} == {a, b}

    def touches(self, device_id: str) -> bool:
        return device_id in (self.from_id, self.to_id)

    def other_end(self, device_id: str) -> str:
        return self.to_id if self.from_id == device_id else self.from_id


# --- Telemetry Models ---

class PacketLog(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: int           # epoch milliseconds
    from_id: str = Field(alias="from")
    to_id: str = Field(alias="to")
    status: PacketStatus
    reason: Optional[str] = None  # only set when status is failed

class Stats(CamelModel):
    packets_delivered: int = 0
    packets_dropped: int = 0
    device_online: int = 0   # derived from device statuses
    device_offline: int = 0  # derived from device statuses
    port_attempts: int = 0


# --- Persisted aggregate ---

class NetworkState(CamelModel):
    devices: list[Device] = Field(default_factory=list)
    cables: list[Cable] = Field(default_factory=list)
    logs: list[PacketLog] = Field(default_factory=list)
    stats: Stats = Field(default_factory=Stats)
