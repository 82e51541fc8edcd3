from __future__ import annotations
import logging
import socket
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Dict, Optional
from urllib.parse import unquote, urlsplit

import orjson
from werkzeug.datastructures import Headers
from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule

from ..collectors import ProcessRegistry
from ..config import CFG, SERVER_NAME
from ..errors import FilterConfigError, ProtocolError
from ..models import ProcessList
from ..topology import CallGraph
from .assets import AssetStore

log = logging.getLogger(__name__)

HEADER_END = b"\r\n\r\n"

url_map = Map([
    Rule("/favicon.ico", methods=["GET"], endpoint="favicon"),
    Rule("/monitor", methods=["GET"], endpoint="index"),
    Rule("/monitor/<path:name>", methods=["GET"], endpoint="index"),
    Rule("/monitor/styles/<path:name>", methods=["GET"], endpoint="style"),
    Rule("/monitor/external/<path:name>", methods=["GET"], endpoint="external"),
    Rule("/tasks", methods=["DELETE"], endpoint="reset"),
    Rule("/filterWhite", methods=["PUT", "DELETE"], endpoint="filter_white"),
    Rule("/filterBlack", methods=["PUT", "DELETE"], endpoint="filter_black"),
    Rule("/process/ids", methods=["GET"], endpoint="process_ids"),
    Rule("/process/id", methods=["PUT"], endpoint="process_id"),
    Rule("/process", methods=["GET"], endpoint="process"),
], strict_slashes=False, merge_slashes=False)

@dataclass
class Request:
    method: str
    target: str
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    @property
    def path(self) -> str:
        return unquote(urlsplit(self.target).path) or "/"

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    @property
    def first_line(self) -> str:
        return f"{self.method} {self.target}"

@dataclass
class Response:
    body: bytes
    content_type: str = "application/json"

    def encode(self, server_name: str = SERVER_NAME) -> bytes:
        head = (
            "HTTP/1.1 200 OK\r\n"
            f"Server: {server_name}\r\n"
            f"Content-Type: {self.content_type}\r\n"
            f"Content-Length: {len(self.body)}\r\n"
            "\r\n"
        )
        return head.encode("ascii") + self.body

OK = b"OK"
INVALID = b"INVALID"

def parse_request(data: bytes) -> tuple[Request, int]:
    """Parse the head of ``data``; returns the request and the expected body length."""
    head, sep, rest = data.partition(HEADER_END)
    if not sep:
        raise ProtocolError("incomplete request head")
    try:
        lines = head.decode("iso-8859-1").split("\r\n")
        method, target, _version = lines[0].split(" ", 2)
    except ValueError as exc:
        raise ProtocolError(f"bad request line: {head[:80]!r}") from exc
    headers = Headers()
    for line in lines[1:]:
        name, colon, value = line.partition(":")
        if not colon:
            raise ProtocolError(f"bad header line: {line!r}")
        headers.add(name.strip(), value.strip())
    try:
        length = int(headers.get("Content-Length", "0"))
    except ValueError as exc:
        raise ProtocolError("bad Content-Length") from exc
    if length < 0:
        raise ProtocolError("negative Content-Length")
    return Request(method.upper(), target, headers, rest[:length]), length

def read_request(conn: socket.socket, max_bytes: int) -> Request:
    data = b""
    try:
        while HEADER_END not in data:
            chunk = conn.recv(4096)
            if not chunk:
                raise ProtocolError("connection closed before request head")
            data += chunk
            if len(data) > max_bytes:
                raise ProtocolError("request head too large")
        request, length = parse_request(data)
        if length > max_bytes:
            raise ProtocolError("request body too large")
        body = data.partition(HEADER_END)[2]
        while len(body) < length:
            chunk = conn.recv(4096)
            if not chunk:
                raise ProtocolError("connection closed inside body")
            body += chunk
    except OSError as exc:
        # includes socket.timeout
        raise ProtocolError(f"read failed: {exc}") from exc
    request.body = body[:length]
    return request

class ExpositionServer:
    """Single-threaded request loop serving the graph to the monitor page."""

    def __init__(self, cfg: CFG, graph: CallGraph, registry: ProcessRegistry,
                 assets: Optional[AssetStore] = None):
        self.cfg = cfg
        self.graph = graph
        self.registry = registry
        self.assets = assets or AssetStore()
        self.sock: Optional[socket.socket] = None
        self.handlers: Dict[str, Callable[[Request, dict], Optional[Response]]] = {
            "favicon": lambda req, args: self._asset("favicon.ico"),
            "index": lambda req, args: self._asset("index.html"),
            "style": lambda req, args: self._asset(f"styles/{args['name']}"),
            "external": lambda req, args: self._asset(f"external/{PurePosixPath(args['name']).name}"),
            "reset": self.reset,
            "filter_white": self.filter_white,
            "filter_black": self.filter_black,
            "process_ids": self.process_ids,
            "process_id": self.process_id,
            "process": self.process,
        }

    # --- socket ---

    def bind(self) -> socket.socket:
        """Open the listening socket; OSError here is fatal for the caller."""
        self.sock = socket.create_server(("0.0.0.0", self.cfg.port))
        log.info("Serving on http://localhost:%d/monitor", self.sock.getsockname()[1])
        return self.sock

    def serve_forever(self) -> None:
        if self.sock is None:
            self.bind()
        while True:
            try:
                conn, _addr = self.sock.accept()
            except OSError as exc:
                log.warning("accept failed: %s", exc)
                continue
            try:
                self.handle_connection(conn)
            except Exception as exc:  # one bad client must not stop the loop
                log.warning("Could not handle request: %s", exc)

    def handle_connection(self, conn: socket.socket) -> None:
        with conn:
            conn.settimeout(self.cfg.read_timeout)
            try:
                request = read_request(conn, self.cfg.max_request_bytes)
            except ProtocolError as exc:
                log.warning("dropped connection: %s", exc)
                return
            response = self.dispatch(request)
            if response is None:
                return
            try:
                conn.sendall(response.encode())
            except OSError as exc:
                log.warning("Could not send response for %s: %s", request.first_line, exc)
                return
            log.debug("sent response for request=%s", request.first_line)

    # --- routing ---

    def dispatch(self, request: Request) -> Optional[Response]:
        """Response for ``request`` or None when nothing should be sent."""
        try:
            endpoint, args = url_map.bind("localhost").match(request.path, method=request.method)
        except HTTPException:
            log.warning("Not expected request=%s", request.first_line)
            return None
        response = self.handlers[endpoint](request, args)
        if response is None:
            log.warning("Not expected request=%s", request.first_line)
        return response

    def _asset(self, name: str) -> Optional[Response]:
        found = self.assets.lookup(name)
        if found is None:
            return None
        data, mime = found
        return Response(data, mime)

    # --- commands ---

    def reset(self, request: Request, args: dict) -> Response:
        self.graph.reset()
        return Response(OK)

    def filter_white(self, request: Request, args: dict) -> Response:
        return self._set_filter(self.graph.set_white_list, request)

    def filter_black(self, request: Request, args: dict) -> Response:
        return self._set_filter(self.graph.set_black_list, request)

    def _set_filter(self, setter: Callable[[str], None], request: Request) -> Response:
        pattern = request.text if request.method == "PUT" else ""
        try:
            setter(pattern)
        except FilterConfigError as exc:
            log.error("rejected filter %r: %s", pattern, exc)
            return Response(INVALID)
        self.graph.reset()
        return Response(OK)

    def process_ids(self, request: Request, args: dict) -> Response:
        ids = self.registry.discover()
        conn = self.graph.connection
        log.info("attachable processes=%s", list(ids))
        listing = ProcessList(ids, conn.active_process_id, conn.connected)
        return Response(orjson.dumps(listing.to_wire()))

    def process_id(self, request: Request, args: dict) -> Response:
        # a non-numeric id is only logged by the registry
        self.registry.select(request.text)
        return Response(OK)

    def process(self, request: Request, args: dict) -> Response:
        return Response(self.graph.snapshot().dumps())
