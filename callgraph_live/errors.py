from __future__ import annotations

class CallgraphError(Exception):
    """Base for everything the sampler/server raise on purpose."""

class AttachmentError(CallgraphError):
    """Target process unreachable; the sampler rediscovers."""

class StreamReadError(CallgraphError):
    """Dump channel closed or failed mid-read."""

class ParseSkip(CallgraphError):
    """A frame line could not be turned into a method identity."""

class FilterConfigError(CallgraphError, ValueError):
    """Invalid white/black list pattern; the previous one stays active."""

class ProtocolError(CallgraphError):
    """Request could not be read or parsed; the connection is dropped."""
