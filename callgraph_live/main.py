from __future__ import annotations
import argparse
import logging
import sys
import threading

from .collectors import JcmdAttachProvider, ProcessRegistry, collector_loop
from .config import DEFAULT_PORT, init_cfg_from_args
from .topology import CallGraph
from .web import ExpositionServer

log = logging.getLogger("callgraph_live")

def parse_args(argv=None):
    ap = argparse.ArgumentParser(description='Live call graph of a running JVM, sampled from thread dumps')
    ap.add_argument('--port', type=int, default=DEFAULT_PORT)
    return ap.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    cfg = init_cfg_from_args(args)

    graph = CallGraph()
    registry = ProcessRegistry(JcmdAttachProvider(cfg))
    server = ExpositionServer(cfg, graph, registry)
    try:
        server.bind()
    except OSError as exc:
        log.critical("cannot listen on port %d: %s", cfg.port, exc)
        sys.exit(1)

    t = threading.Thread(target=collector_loop, args=(cfg, graph, registry), name="sampler", daemon=True)
    t.start()

    server.serve_forever()

if __name__ == '__main__':
    main()
