"""Tests for DependencyGraph and MutableGraph."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from ocabuild.core.errors import DuplicateIdentifier, MissingHeader, UnknownIdentifier
from ocabuild.core.models import Node
from ocabuild.graph.store import DependencyGraph, MutableGraph
from tests.helpers.ocafiles import write_ocafiles


def _graph(*nodes: Node) -> DependencyGraph:
    graph = DependencyGraph()
    for node in nodes:
        graph.insert(node)
    return graph


class TestFromPaths:
    def test_builds_all_nodes(self, sample_paths):
        graph, failures = DependencyGraph.from_paths(sample_paths.values())
        assert failures == []
        assert graph.identifiers() == ["fifth", "first", "fourth", "second", "third"]
        assert graph.node("third").dependencies == ("first", "second")

    def test_parse_failures_reported_not_fatal(self, sample_dir, sample_paths):
        broken = sample_dir / "broken.ocafile"
        broken.write_text("ADD ATTRIBUTE x=Text\n")
        graph, failures = DependencyGraph.from_paths([*sample_paths.values(), broken])

        assert len(graph) == 5
        assert len(failures) == 1
        assert failures[0].path == broken
        assert isinstance(failures[0].error, MissingHeader)

    def test_unreadable_file_reported(self, tmp_path, sample_paths):
        missing = tmp_path / "gone.ocafile"
        graph, failures = DependencyGraph.from_paths([*sample_paths.values(), missing])
        assert len(graph) == 5
        assert [f.path for f in failures] == [missing]

    def test_duplicate_identifier_is_fatal(self, tmp_path):
        paths = write_ocafiles(tmp_path, {
            "one.ocafile": "-- name=same\nADD ATTRIBUTE a=Text",
            "two.ocafile": "-- name=same\nADD ATTRIBUTE b=Text",
        })
        with pytest.raises(DuplicateIdentifier) as exc_info:
            DependencyGraph.from_paths([paths["one.ocafile"], paths["two.ocafile"]])
        err = exc_info.value
        assert err.identifier == "same"
        assert err.first_path == paths["one.ocafile"]
        assert err.second_path == paths["two.ocafile"]

    def test_unresolved_dependency_allowed_at_construction(self, tmp_path):
        paths = write_ocafiles(tmp_path, {"x.ocafile": "-- name=x\nADD ATTRIBUTE a=refn:nowhere"})
        graph, failures = DependencyGraph.from_paths(paths.values())
        assert failures == []
        assert graph.node("x").dependencies == ("nowhere",)


class TestLookups:
    def test_lookup_path(self):
        graph = _graph(Node("a", Path("a.ocafile")))
        assert graph.lookup_path("a") == Path("a.ocafile")

    def test_lookup_unknown(self):
        with pytest.raises(UnknownIdentifier):
            _graph().lookup_path("nope")

    def test_identifier_for_path(self):
        graph = _graph(Node("a", Path("a.ocafile")), Node("b", Path("b.ocafile")))
        assert graph.identifier_for_path(Path("b.ocafile")) == "b"
        assert graph.identifier_for_path(Path("c.ocafile")) is None

    def test_identifiers_sorted(self):
        graph = _graph(Node("zeta", Path("z")), Node("alpha", Path("a")), Node("mid", Path("m")))
        assert graph.identifiers() == ["alpha", "mid", "zeta"]


class TestRename:
    def test_rename_rewrites_every_dependent(self):
        graph = _graph(
            Node("base", Path("base.ocafile")),
            Node("one", Path("one.ocafile"), ("base",)),
            Node("two", Path("two.ocafile"), ("base", "one", "base")),
        )
        graph.rename("base", "root")

        assert "base" not in graph
        assert graph.lookup_path("root") == Path("base.ocafile")
        assert graph.node("one").dependencies == ("root",)
        assert graph.node("two").dependencies == ("root", "one", "root")
        for identifier in graph.identifiers():
            assert "base" not in graph.node(identifier).dependencies

    def test_rename_unknown(self):
        with pytest.raises(UnknownIdentifier):
            _graph(Node("a", Path("a"))).rename("missing", "b")

    def test_rename_onto_existing_name(self):
        graph = _graph(Node("a", Path("a")), Node("b", Path("b")))
        with pytest.raises(DuplicateIdentifier):
            graph.rename("a", "b")
        # State left intact
        assert graph.identifiers() == ["a", "b"]

    def test_rename_to_same_name_is_noop(self):
        graph = _graph(Node("a", Path("a")))
        graph.rename("a", "a")
        assert graph.identifiers() == ["a"]

    def test_snapshot_taken_before_rename_is_unchanged(self):
        graph = _graph(Node("a", Path("a")), Node("b", Path("b"), ("a",)))
        before = graph.snapshot()
        graph.rename("a", "z")
        assert before["b"].dependencies == ("a",)
        assert graph.snapshot()["b"].dependencies == ("z",)


class TestSnapshot:
    def test_dependents_view(self):
        graph = _graph(
            Node("a", Path("a")),
            Node("b", Path("b"), ("a",)),
            Node("c", Path("c"), ("a", "b", "ghost")),
        )
        reverse = graph.snapshot().dependents()
        assert reverse == {"a": {"b", "c"}, "b": {"c"}, "c": set()}

    def test_snapshot_is_read_only(self):
        snapshot = _graph(Node("a", Path("a"))).snapshot()
        with pytest.raises(TypeError):
            snapshot["b"] = Node("b", Path("b"))  # type: ignore[index]

    def test_missing_references(self):
        graph = _graph(Node("a", Path("a"), ("ghost", "ghost")), Node("b", Path("b"), ("a",)))
        assert graph.snapshot().missing_references() == [("a", "ghost")]


class TestMutableGraph:
    def test_build_and_query(self, sample_paths):
        handle = MutableGraph.build(sample_paths.values())
        assert len(handle) == 5
        assert handle.parse_failures == []
        assert handle.lookup_path("fifth") == sample_paths["fifth.ocafile"]
        assert [n.identifier for n in handle.ancestors(["first"], include_starting_nodes=False)] == [
            "third",
            "fifth",
        ]

    def test_rename_then_query(self, sample_paths):
        handle = MutableGraph.build(sample_paths.values())
        handle.rename("first", "premier")

        assert "first" not in handle
        assert handle.node("third").dependencies == ("premier", "second")
        ancestors = handle.ancestors(["premier"], include_starting_nodes=True)
        assert [n.identifier for n in ancestors] == ["premier", "third", "fifth"]
        with pytest.raises(UnknownIdentifier):
            handle.ancestors(["first"])

    def test_reload_replaces_graph(self, sample_dir, sample_paths):
        handle = MutableGraph.build([sample_paths["first.ocafile"]])
        failures = handle.reload(sample_paths.values())
        assert failures == []
        assert len(handle) == 5

    def test_concurrent_renames_and_sorts(self, sample_paths):
        handle = MutableGraph.build(sample_paths.values())
        errors: list[Exception] = []

        def renamer():
            try:
                for i in range(50):
                    old = "fourth" if i == 0 else f"fourth{i - 1}"
                    handle.rename(old, f"fourth{i}")
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        def sorter():
            try:
                for _ in range(50):
                    result = handle.sort()
                    assert len(result.order) == 5
                    assert not result.missing
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=renamer), threading.Thread(target=sorter)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert handle.node("fifth").dependencies == ("third", "fourth49")
