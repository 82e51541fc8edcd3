from __future__ import annotations
import enum
import re
from dataclasses import dataclass, field
from typing import Optional, Pattern

@dataclass(frozen=True)
class MethodIdentity:
    namespace: str
    type: str
    method: str

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.type}.{self.method}"

class AttachState(enum.Enum):
    DETACHED = "detached"
    ATTACHING = "attaching"
    ATTACHED = "attached"
    LOST = "lost"

@dataclass
class ProcessHandle:
    pid: int
    state: AttachState = AttachState.DETACHED

@dataclass(frozen=True)
class ConnectionState:
    active_process_id: Optional[int] = None
    connected: bool = False

@dataclass(frozen=True)
class FilterConfig:
    """White/black list pair. Instances are replaced, never mutated."""
    white_list: str = ""
    black_list: str = ""
    white_re: Optional[Pattern[str]] = field(default=None, compare=False, repr=False)
    black_re: Optional[Pattern[str]] = field(default=None, compare=False, repr=False)

    @classmethod
    def build(cls, white_list: str = "", black_list: str = "") -> "FilterConfig":
        # re.error propagates; callers translate it
        return cls(
            white_list=white_list,
            black_list=black_list,
            white_re=re.compile(white_list) if white_list else None,
            black_re=re.compile(black_list) if black_list else None,
        )

    def keeps(self, qualified_name: str) -> bool:
        if self.white_re is not None and not self.white_re.search(qualified_name):
            return False
        if self.black_re is not None and self.black_re.search(qualified_name):
            return False
        return True

# --- wire views (attribute names are what the monitor page reads) ---

@dataclass(frozen=True)
class NodeView:
    id: int
    identity: MethodIdentity
    count: int
    is_new: bool

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "packageName": self.identity.namespace,
            "className": self.identity.type,
            "methodName": self.identity.method,
            "count": self.count,
            "isNewNode": self.is_new,
        }

@dataclass(frozen=True)
class EdgeView:
    source: int
    target: int
    count: int
    is_new: bool

    def to_wire(self) -> dict:
        return {"source": self.source, "target": self.target, "count": self.count, "isNewLink": self.is_new}

@dataclass(frozen=True)
class ProcessList:
    available: tuple[int, ...]
    active: Optional[int]
    connected: bool

    def to_wire(self) -> dict:
        return {
            "process_id_available": list(self.available),
            "process_id_active": self.active,
            "connected": self.connected,
        }
