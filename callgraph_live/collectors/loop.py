from __future__ import annotations
import enum
import logging
import time
from typing import Optional

from ..config import CFG
from ..errors import AttachmentError, StreamReadError
from ..models import AttachState, ProcessHandle
from ..topology import CallGraph
from .frames import parse_dump
from .jcmd import Handle
from .registry import ProcessRegistry

log = logging.getLogger(__name__)

class SamplerState(enum.Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    ATTACHED = "attached"
    SAMPLING = "sampling"
    DISCONNECTED = "disconnected"

class Sampler:
    """Sole writer of the connection state and of graph samples."""

    def __init__(self, cfg: CFG, graph: CallGraph, registry: ProcessRegistry):
        self.cfg = cfg
        self.graph = graph
        self.registry = registry
        self.state = SamplerState.IDLE
        self.process: Optional[ProcessHandle] = None
        self._handle: Optional[Handle] = None

    @property
    def handle(self) -> Optional[Handle]:
        return self._handle

    def step(self) -> SamplerState:
        """One loop iteration without the trailing sleep."""
        if not self.registry.candidates:
            self.state = SamplerState.DISCOVERING
            ids = self.registry.discover()
            if not ids:
                self.state = SamplerState.IDLE
                return self.state

        # candidates may also have been refilled by the server's id listing
        candidates = self.registry.candidates
        if candidates and self.registry.pending not in candidates:
            self.registry.select(candidates[0])

        pending = self.registry.pending
        if pending is not None and (self.process is None or self.process.pid != pending):
            try:
                self._switch_to(pending)
            except AttachmentError as exc:
                log.error("attach to pid=%s failed: %s", pending, exc)
                self.graph.reset()
                self.registry.forget()
                self.state = SamplerState.IDLE
                return self.state

        if self._handle is not None and self.graph.connection.connected:
            self._sample()
        return self.state

    def _switch_to(self, pid: int) -> None:
        log.info("Request change to pid=%d candidates=%s", pid, list(self.registry.candidates))
        self._detach()
        self.process = ProcessHandle(pid, AttachState.ATTACHING)
        try:
            self._handle = self.registry.attach(pid)
        except AttachmentError:
            self.process = None
            raise
        self.process.state = AttachState.ATTACHED
        self.graph.reset()
        self.graph.set_connection(pid, True)
        self.state = SamplerState.ATTACHED

    def _detach(self) -> None:
        if self._handle is not None:
            self._handle.detach()
        self._handle = None
        if self.process is not None:
            self.process.state = AttachState.DETACHED
        self.process = None
        self.graph.set_connection(None, False)

    def _sample(self) -> None:
        self.state = SamplerState.SAMPLING
        filters = self.graph.filters
        try:
            samples = parse_dump(self._handle.remote_dump(), filters)
        except StreamReadError as exc:
            log.warning("lost pid=%s: %s", self.process.pid if self.process else None, exc)
            self._disconnect()
            return
        for frames in samples:
            if not self.graph.append(frames, filters):
                log.debug("filters changed during sampling, dropped dump")
                break
        self.state = SamplerState.ATTACHED

    def _disconnect(self) -> None:
        pid = self.process.pid if self.process else None
        if self.process is not None:
            self.process.state = AttachState.LOST
        if self._handle is not None:
            self._handle.detach()
        self._handle = None
        self.process = None
        self.graph.set_connection(pid, False)
        self.registry.forget()
        self.state = SamplerState.DISCONNECTED

    def run_forever(self) -> None:
        log.info("Sampler started")
        while True:
            try:
                self.step()
            except Exception:  # keep sampling whatever a single pass hits
                log.exception("sampler pass failed")
                self._disconnect()
            time.sleep(self.cfg.sample_interval)

def collector_loop(cfg: CFG, graph: CallGraph, registry: ProcessRegistry) -> None:
    Sampler(cfg, graph, registry).run_forever()
