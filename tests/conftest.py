from __future__ import annotations

from typing import Dict, Iterator, List

import pytest

from callgraph_live.collectors import ProcessRegistry
from callgraph_live.config import CFG
from callgraph_live.errors import AttachmentError, StreamReadError
from callgraph_live.topology import CallGraph

DUMP = """2024-01-01 10:00:00
Full thread dump OpenJDK 64-Bit Server VM (17.0.2+8 mixed mode):

"main" #1 prio=5 os_prio=0 cpu=10ms elapsed=1s tid=0x1 nid=0x2 waiting on condition
   java.lang.Thread.State: TIMED_WAITING (sleeping)
\tat app.core.Worker.sleep(Native Method)
\tat app.core.Worker.run(Worker.java:12)
\tat app.Main.main(Main.java:5)

"pool-1" #12 prio=5 os_prio=0 tid=0x3 nid=0x4 runnable
\tat other.pkg.Foo.bar(Foo.java:1)
\tat app.core.Worker.run(Worker.java:12)
\t- locked <0x0000> (a java.lang.Object)
"""

class FakeHandle:
    def __init__(self, pid: int, dumps: List[str]):
        self.pid = pid
        self.dumps = dumps
        self.detached = False

    def remote_dump(self) -> Iterator[str]:
        if not self.dumps:
            raise StreamReadError("closed")
        return iter(self.dumps.pop(0).splitlines())

    def detach(self) -> None:
        self.detached = True

class FakeProvider:
    def __init__(self, pids: List[int], dumps: Dict[int, List[str]] = None, unreachable=()):
        self.pids = list(pids)
        self.dumps = dumps or {}
        self.unreachable = set(unreachable)
        self.attached: List[FakeHandle] = []
        self.list_calls = 0

    def list(self) -> List[int]:
        self.list_calls += 1
        return list(self.pids)

    def attach(self, pid: int) -> FakeHandle:
        if pid in self.unreachable or pid not in self.pids:
            raise AttachmentError(f"no process {pid}")
        handle = FakeHandle(pid, self.dumps.setdefault(pid, []))
        self.attached.append(handle)
        return handle

@pytest.fixture
def cfg() -> CFG:
    return CFG(port=0, sample_interval=0.0, read_timeout=0.5)

@pytest.fixture
def graph() -> CallGraph:
    return CallGraph()

@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider([100, 300, 200])

@pytest.fixture
def registry(provider) -> ProcessRegistry:
    return ProcessRegistry(provider, own_pid=1)
