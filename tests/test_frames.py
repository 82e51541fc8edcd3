from __future__ import annotations

import pytest

from callgraph_live.collectors.frames import parse_dump, parse_frame, qualified_name, split_identity
from callgraph_live.errors import ParseSkip
from callgraph_live.models import FilterConfig, MethodIdentity

from .conftest import DUMP

def test_qualified_name_strips_prefix_and_arguments():
    assert qualified_name("\tat app.core.Worker.run(Worker.java:12)") == "app.core.Worker.run"
    assert qualified_name("\tat java.lang.Object.wait(java.base@17/Native Method)") == "java.lang.Object.wait"

def test_qualified_name_rejects_non_frames():
    assert qualified_name("   java.lang.Thread.State: RUNNABLE") is None
    assert qualified_name("\t- locked <0x0000> (a java.lang.Object)") is None
    assert qualified_name("\tat a.b(") is None  # too short
    assert qualified_name("\tat app.core.Worker.run") is None

def test_split_identity():
    assert split_identity("a.b.c.Type.method") == MethodIdentity("a.b.c", "Type", "method")
    with pytest.raises(ParseSkip):
        split_identity("Type.method")

def test_white_list_drops_other_packages():
    filters = FilterConfig.build(white_list=r"app\..*")
    assert parse_frame("\tat other.pkg.Foo.bar(Foo.java:1)", filters) is None
    assert parse_frame("\tat app.core.Worker.run(Worker.java:12)", filters) == MethodIdentity("app.core", "Worker", "run")

def test_black_list_wins_over_white_list():
    filters = FilterConfig.build(white_list="app", black_list="Worker")
    assert parse_frame("\tat app.core.Worker.run(Worker.java:12)", filters) is None
    assert parse_frame("\tat app.Main.main(Main.java:5)", filters) is not None

def test_parse_dump_splits_threads():
    samples = parse_dump(DUMP.splitlines(), FilterConfig())
    assert samples == [
        [MethodIdentity("app.core", "Worker", "sleep"),
         MethodIdentity("app.core", "Worker", "run"),
         MethodIdentity("app", "Main", "main")],
        [MethodIdentity("other.pkg", "Foo", "bar"),
         MethodIdentity("app.core", "Worker", "run")],
    ]

def test_parse_dump_skips_short_names(caplog):
    lines = ['"t" #1', "\tat Foo.bar(Foo.java:1)", "\tat a.Foo.bar(Foo.java:1)"]
    assert parse_dump(lines, FilterConfig()) == [[MethodIdentity("a", "Foo", "bar")]]
    assert "Can't process line" in caplog.text

def test_parse_dump_applies_filters_before_building_samples():
    samples = parse_dump(DUMP.splitlines(), FilterConfig.build(white_list=r"app\..*"))
    names = {f.qualified_name for s in samples for f in s}
    assert "other.pkg.Foo.bar" not in names
    assert "app.core.Worker.run" in names
