from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from ..config import FRAME_MIN_LENGTH, FRAME_PREFIX, THREAD_HEADER_PREFIX
from ..errors import ParseSkip
from ..models import FilterConfig, MethodIdentity

log = logging.getLogger(__name__)

def qualified_name(line: str) -> Optional[str]:
    """Return the dotted name of a frame line, or None if it is no frame."""
    if not line.startswith(FRAME_PREFIX) or len(line) <= FRAME_MIN_LENGTH:
        return None
    end = line.rfind("(")
    if end < len(FRAME_PREFIX):
        return None
    return line[len(FRAME_PREFIX):end].strip()

def split_identity(name: str) -> MethodIdentity:
    parts = name.split(".")
    if len(parts) < 3:
        raise ParseSkip(f"need namespace.type.method, got {name!r}")
    return MethodIdentity(namespace=".".join(parts[:-2]), type=parts[-2], method=parts[-1])

def parse_frame(line: str, filters: FilterConfig) -> Optional[MethodIdentity]:
    """Parse one dump line.

    Returns None for non-frame lines and for frames the filters drop.
    Raises ParseSkip for frames whose name has fewer than three parts.
    """
    name = qualified_name(line)
    if name is None or not filters.keeps(name):
        return None
    return split_identity(name)

def parse_dump(lines: Iterable[str], filters: FilterConfig) -> List[List[MethodIdentity]]:
    """Split a thread dump into per-thread frame sequences, innermost frame first."""
    samples: List[List[MethodIdentity]] = []
    current: List[MethodIdentity] = []
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line.strip() or line.startswith(THREAD_HEADER_PREFIX):
            if current:
                samples.append(current)
                current = []
            continue
        try:
            frame = parse_frame(line, filters)
        except ParseSkip:
            log.warning("Can't process line %r", line)
            continue
        if frame is not None:
            current.append(frame)
    if current:
        samples.append(current)
    return samples
