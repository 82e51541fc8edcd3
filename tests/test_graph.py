from __future__ import annotations

import threading
from collections import Counter

import orjson
import pytest

from callgraph_live.errors import FilterConfigError
from callgraph_live.models import MethodIdentity
from callgraph_live.topology import CallGraph

C = MethodIdentity("A", "B", "c")
D = MethodIdentity("A", "B", "d")
E = MethodIdentity("A", "B", "e")

def _edges(snap):
    names = {n.id: n.identity.method for n in snap.nodes}
    return {(names[e.source], names[e.target]): e for e in snap.edges}

def test_append_creates_nodes_and_edges_marked_new(graph):
    graph.append([C, D, E])
    snap = graph.snapshot()
    assert {n.identity.method for n in snap.nodes} == {"c", "d", "e"}
    assert all(n.is_new for n in snap.nodes)
    edges = _edges(snap)
    assert set(edges) == {("c", "d"), ("d", "e")}
    assert all(e.count == 1 and e.is_new for e in edges.values())

def test_repeat_append_raises_weight_and_freshness_is_consumed(graph):
    graph.append([C, D, E])
    graph.snapshot()
    graph.append([C, D, E])
    snap = graph.snapshot()
    edges = _edges(snap)
    assert edges[("c", "d")].count == 2
    assert edges[("d", "e")].count == 2
    assert not any(e.is_new for e in edges.values())
    assert not any(n.is_new for n in snap.nodes)

def test_freshness_only_on_first_snapshot(graph):
    graph.append([C, D])
    graph.snapshot()
    graph.append([D, E])
    snap = graph.snapshot()
    fresh = {n.identity.method for n in snap.nodes if n.is_new}
    assert fresh == {"e"}
    assert {k for k, e in _edges(snap).items() if e.is_new} == {("d", "e")}
    later = graph.snapshot()
    assert not any(n.is_new for n in later.nodes)
    assert not any(e.is_new for e in later.edges)

def test_visit_count_counts_every_appearance(graph):
    graph.append([C, D])
    graph.append([D])
    counts = {n.identity.method: n.count for n in graph.snapshot().nodes}
    assert counts == {"c": 1, "d": 2}

def test_one_node_per_identity(graph):
    graph.append([C, MethodIdentity("A", "B", "c"), C])
    snap = graph.snapshot()
    assert len(snap.nodes) == 1
    # self edge from recursion
    assert [(e.source, e.target, e.count) for e in snap.edges] == [(0, 0, 2)]

def test_weight_conservation(graph):
    samples = [[C, D, E], [D, E], [C, E], [E, C, D], [C]]
    for s in samples:
        graph.append(s)
    expected = Counter(f for s in samples for f in s[:-1])
    snap = graph.snapshot()
    out = Counter()
    for e in snap.edges:
        out[e.source] += e.count
    by_id = {n.id: n.identity for n in snap.nodes}
    assert {by_id[k]: v for k, v in out.items()} == dict(expected)

def test_reset_empties_graph_but_keeps_config(graph):
    graph.set_white_list("A")
    graph.set_connection(42, True)
    graph.append([C, D])
    graph.reset()
    assert graph.snapshot().is_empty()
    assert graph.filters.white_list == "A"
    assert graph.connection.active_process_id == 42
    assert graph.connection.connected

def test_reset_restarts_node_ids(graph):
    graph.append([C, D])
    graph.reset()
    graph.append([E])
    assert [n.id for n in graph.snapshot().nodes] == [0]

def test_invalid_pattern_keeps_previous_filter(graph):
    graph.set_white_list(r"app\..*")
    with pytest.raises(FilterConfigError):
        graph.set_white_list("(unclosed")
    assert graph.filters.white_list == r"app\..*"

def test_filter_change_drops_samples_parsed_under_old_filters(graph):
    old = graph.filters
    graph.set_black_list("B")
    graph.reset()
    assert graph.append([C, D], old) is False
    assert graph.snapshot().is_empty()
    assert graph.append([MethodIdentity("X", "Y", "z")], graph.filters) is True
    assert len(graph) == 1

def test_filter_change_clears_graph(graph):
    graph.append([C, D])
    graph.set_white_list("nothing")
    assert graph.snapshot().is_empty()

def test_snapshot_wire_format(graph):
    graph.append([C, D])
    wire = orjson.loads(graph.snapshot().dumps())
    assert wire["nodes"][0] == {
        "id": 0, "packageName": "A", "className": "B", "methodName": "c", "count": 1, "isNewNode": True,
    }
    assert wire["links"] == [{"source": 0, "target": 1, "count": 1, "isNewLink": True}]

def test_concurrent_appends_and_snapshots_are_consistent():
    graph = CallGraph()
    rounds = 2000
    errors = []

    def writer():
        for _ in range(rounds):
            graph.append([C, D, E])

    def reader():
        for _ in range(200):
            snap = graph.snapshot()
            counts = {n.identity.method: n.count for n in snap.nodes}
            weights = _edges(snap)
            # a half-applied append would leave these out of step
            if counts and counts.get("e", 0) != counts.get("c", 0):
                errors.append(counts)
            if weights and weights[("c", "d")].count != weights[("d", "e")].count:
                errors.append(weights)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []
    assert _edges(graph.snapshot())[("c", "d")].count == rounds
