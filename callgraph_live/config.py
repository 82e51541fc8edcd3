from __future__ import annotations
from dataclasses import dataclass

VERSION = "1.0.0"
SERVER_NAME = f"callgraph-live/{VERSION}"
DEFAULT_PORT = 8083

@dataclass
class CFG:
    port: int = DEFAULT_PORT
    sample_interval: float = 0.02   # seconds between dumps
    read_timeout: float = 1.0       # per-connection socket timeout
    jcmd: str = "jcmd"
    jcmd_timeout: float = 10.0
    max_request_bytes: int = 64 * 1024

# asset name suffix -> Content-Type
MIME_TYPES = {
    ".ico": "image/x-icon",
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
}

# scripts the 3D client loads from /monitor/external/
CLIENT_SCRIPTS = (
    "dat.gui.min.js",
    "detector.js",
    "three.js",
    "trackballcontrols.js",
    "projector.js",
    "helvetiker_regular.typeface.js",
    "stats.min.js",
    "traceur.js",
    "bootstrap.js",
    "geometryutils.js",
)

# frame lines look like "\tat pkg.Type.method(File.java:42)"
FRAME_PREFIX = "\tat "
FRAME_MIN_LENGTH = 10
THREAD_HEADER_PREFIX = '"'

def init_cfg_from_args(args) -> CFG:
    cfg = CFG()
    port = getattr(args, "port", None)
    if port is not None:
        if not 0 <= int(port) <= 65535:
            raise ValueError(f"port out of range: {port}")
        cfg.port = int(port)
    return cfg
