from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

class ConnState(Enum):
    LISTEN = "LISTEN"
    ESTABLISHED = "ESTABLISHED"
    SYN_SENT = "SYN_SENT"
    SYN_RECV = "SYN_RECV"
    FIN_WAIT1 = "FIN_WAIT1"
    FIN_WAIT2 = "FIN_WAIT2"
    TIME_WAIT = "TIME_WAIT"
    CLOSE = "CLOSE"
    CLOSE_WAIT = "CLOSE_WAIT"
    LAST_ACK = "LAST_ACK"
    CLOSING = "CLOSING"
    UNCONN = "UNCONN"
    OTHER = "OTHER"

    @classmethod
    def from_ss(cls, token: str) -> "ConnState":
        t = token.strip().upper().replace("-", "_")
        t = _SS_ALIASES.get(t, t)
        try:
            return cls(t)
        except ValueError:
            return cls.OTHER

# ss abbreviates a few states
_SS_ALIASES = {
    "ESTAB": "ESTABLISHED",
    "FIN_WAIT_1": "FIN_WAIT1",
    "FIN_WAIT_2": "FIN_WAIT2",
    "SYN_RECEIVED": "SYN_RECV",
    "CLOSED": "CLOSE",
}

@dataclass(frozen=True)
class ConnRecord:
    local_address: str
    local_port: int
    foreign_address: str
    foreign_port: int
    state: ConnState
    pid: int = 0  # 0 = unknown
    process_name: str = "unknown"

@dataclass
class ConnSummary:
    address: str  # IP, or ':PORT' for a local listener
    is_outgoing: bool

    @property
    def is_listening(self) -> bool:
        return self.address.startswith(":")

@dataclass
class ProcInfo:
    pid: int
    name: str
    args: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class GeoLocation:
    country: str = ""
    city: str = ""

    @property
    def label(self) -> str:
        if self.country and self.city:
            return f"{self.country} ({self.city})"
        return self.country

AddressProcessMap = Dict[str, List[ProcInfo]]
