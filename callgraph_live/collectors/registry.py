from __future__ import annotations
import logging
import os
import threading
from typing import Optional, Tuple

from ..errors import AttachmentError
from .jcmd import AttachProvider, Handle

log = logging.getLogger(__name__)

class ProcessRegistry:
    """Attachable candidates plus the pending selection.

    The candidate tuple is replaced wholesale (copy-on-write) so the server's
    id listing and the sampler can read it without holding the lock.
    """

    def __init__(self, provider: AttachProvider, own_pid: Optional[int] = None):
        self.provider = provider
        self.own_pid = os.getpid() if own_pid is None else own_pid
        self._lock = threading.Lock()
        self._candidates: Tuple[int, ...] = ()
        self._pending: Optional[int] = None

    @property
    def candidates(self) -> Tuple[int, ...]:
        return self._candidates

    @property
    def pending(self) -> Optional[int]:
        return self._pending

    def discover(self) -> Tuple[int, ...]:
        try:
            found = self.provider.list()
        except Exception as exc:  # any provider failure only means "nothing found"
            log.error("process discovery failed: %s", exc)
            found = []
        ids = tuple(pid for pid in sorted({int(p) for p in found if int(p) != self.own_pid}, reverse=True)
                    if self._attachable(pid))
        with self._lock:
            self._candidates = ids
        log.debug("attachable processes=%s", list(ids))
        return ids

    def _attachable(self, pid: int) -> bool:
        try:
            handle = self.provider.attach(pid)
        except AttachmentError as exc:
            log.warning("pid=%d not attachable: %s", pid, exc)
            return False
        handle.detach()
        return True

    def forget(self) -> None:
        """Drop the candidates so the next sampler pass rediscovers."""
        with self._lock:
            self._candidates = ()

    def select(self, value) -> bool:
        """Queue a new target; the sampler applies it on its next pass."""
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            log.error("Invalid id=%r", text)
            return False
        with self._lock:
            self._pending = int(text)
        log.info("Set new process id=%s", text)
        return True

    def attach(self, pid: int) -> Handle:
        return self.provider.attach(pid)
