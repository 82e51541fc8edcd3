from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..config import CLIENT_SCRIPTS, MIME_TYPES, SERVER_NAME
from .ui import MAIN_CSS, render_html

log = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

class AssetStore:
    """Read-only lookup of the files the monitor page needs."""

    def __init__(self, base: Optional[Path] = None):
        self.base = (base or STATIC_DIR).resolve()
        self._builtin: Dict[str, bytes] = {
            "index.html": render_html(SERVER_NAME).encode("utf-8"),
            "styles/main.css": MAIN_CSS.encode("utf-8"),
        }

    def get(self, name: str) -> Optional[bytes]:
        if name in self._builtin:
            return self._builtin[name]
        path = (self.base / name).resolve()
        if self.base not in path.parents or not path.is_file():
            return None
        return path.read_bytes()

    def lookup(self, name: str) -> Optional[Tuple[bytes, str]]:
        """Asset bytes with their Content-Type, or None."""
        if name.startswith("external/") and name[len("external/"):] not in CLIENT_SCRIPTS:
            log.debug("not a client script: %s", name)
            return None
        mime = MIME_TYPES.get(Path(name).suffix)
        if mime is None:
            return None
        data = self.get(name)
        if data is None:
            log.warning("asset missing: %s (run scripts/prepare_portable.py?)", name)
            return None
        return data, mime
