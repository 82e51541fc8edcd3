from __future__ import annotations
import logging
import re
import subprocess
from typing import Iterator, List, Protocol

import psutil

from ..config import CFG
from ..errors import AttachmentError, StreamReadError

log = logging.getLogger(__name__)

# "12345 org.example.Main --flag"
JCMD_LIST_RE = re.compile(r"^(?P<pid>\d+)\s*(?P<main>\S*)")

class Handle(Protocol):
    pid: int

    def remote_dump(self) -> Iterator[str]: ...

    def detach(self) -> None: ...

class AttachProvider(Protocol):
    def list(self) -> List[int]: ...

    def attach(self, pid: int) -> Handle: ...

def describe_process(pid: int) -> str:
    try:
        p = psutil.Process(pid)
        return f"pid={pid} name={p.name()} user={p.username()} cmd={' '.join(p.cmdline())}"
    except (psutil.Error, OSError):
        return f"pid={pid}"

class JcmdHandle:
    """Thread dumps of one JVM via `jcmd <pid> Thread.print`."""

    def __init__(self, pid: int, cfg: CFG):
        self.pid = pid
        self.cfg = cfg

    def remote_dump(self) -> Iterator[str]:
        cmd = [self.cfg.jcmd, str(self.pid), "Thread.print"]
        try:
            out = subprocess.run(cmd, capture_output=True, text=True, timeout=self.cfg.jcmd_timeout)
        except (OSError, subprocess.SubprocessError) as exc:
            raise StreamReadError(f"dump of pid {self.pid} failed: {exc}") from exc
        if out.returncode != 0:
            raise StreamReadError(f"dump of pid {self.pid} exited {out.returncode}: {out.stderr.strip()}")
        return iter(out.stdout.splitlines())

    def detach(self) -> None:
        # jcmd keeps no connection open between calls
        log.debug("detached pid=%d", self.pid)

class JcmdAttachProvider:
    def __init__(self, cfg: CFG):
        self.cfg = cfg

    def list(self) -> List[int]:
        out = subprocess.check_output([self.cfg.jcmd, "-l"], text=True,
                                      stderr=subprocess.DEVNULL, timeout=self.cfg.jcmd_timeout)
        pids: List[int] = []
        for line in out.splitlines():
            m = JCMD_LIST_RE.match(line.strip())
            if not m or m.group("main").endswith("JCmd"):
                continue
            pid = int(m.group("pid"))
            log.debug("found %s", describe_process(pid))
            pids.append(pid)
        return pids

    def attach(self, pid: int) -> JcmdHandle:
        if not psutil.pid_exists(pid):
            raise AttachmentError(f"no process {pid}")
        cmd = [self.cfg.jcmd, str(pid), "VM.version"]
        try:
            out = subprocess.run(cmd, capture_output=True, text=True, timeout=self.cfg.jcmd_timeout)
        except (OSError, subprocess.SubprocessError) as exc:
            raise AttachmentError(f"attach to {pid} failed: {exc}") from exc
        if out.returncode != 0:
            raise AttachmentError(f"attach to {pid} failed: {out.stderr.strip() or out.stdout.strip()}")
        log.debug("attached %s", describe_process(pid))
        return JcmdHandle(pid, self.cfg)
