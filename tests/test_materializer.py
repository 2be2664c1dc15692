"""Tests for override resolution and staging."""

import pathlib

import pathspec
import pytest

from srcpack.builder import ROOT_ORIGIN, FileGraph, build_graph
from srcpack.errors import IssueKind, PathEscapeError
from srcpack.materializer import (
    EscapePolicy,
    Materializer,
    materialize,
    plan,
    resolve_destination,
    target_path,
)


def _graph(entry: str, edges: dict[str, dict[str, str]]) -> FileGraph:
    return FileGraph(entry=entry, edges={ROOT_ORIGIN: {entry: entry}, **edges})


def _files(root: pathlib.Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


class TestResolveDestination:
    """Tests for the override chain."""

    def test_plain_edge(self) -> None:
        graph = _graph("main.src", {"main.src": {"a.txt": "a.txt"}})
        assert resolve_destination(graph, "a.txt", "a.txt") == "a.txt"

    def test_self_exclusion_beats_reference(self) -> None:
        graph = _graph(
            "y.src",
            {"y.src": {"x.src": "keep.txt"}, "x.src": {"x.src": ""}},
        )
        assert resolve_destination(graph, "x.src", "keep.txt") == ""

    def test_self_rename_beats_reference(self) -> None:
        graph = _graph(
            "y.src",
            {"y.src": {"x.src": "x.src"}, "x.src": {"x.src": "renamed.src"}},
        )
        assert resolve_destination(graph, "x.src", "x.src") == "renamed.src"

    def test_plain_self_listing_keeps_rename(self) -> None:
        graph = _graph(
            "main.sh",
            {"main.sh": {"util.sh": "bin/util"}, "util.sh": {"util.sh": "util.sh", "helper.sh": "helper.sh"}},
        )
        assert resolve_destination(graph, "util.sh", "bin/util") == "bin/util"
        assert resolve_destination(graph, "util.sh", "util.sh") == "util.sh"

    def test_destination_file_remap(self) -> None:
        graph = _graph(
            "main.src",
            {"main.src": {"a.txt": "b.txt"}, "b.txt": {"b.txt": "final.txt"}},
        )
        assert resolve_destination(graph, "a.txt", "b.txt") == "final.txt"

    def test_chain_is_followed(self) -> None:
        graph = _graph(
            "main.src",
            {
                "main.src": {"a": "a"},
                "a": {"a": "b"},
                "b": {"b": "c"},
            },
        )
        assert resolve_destination(graph, "a", "a") == "c"

    def test_cyclic_chain_stops(self) -> None:
        graph = _graph(
            "main.src",
            {"a": {"a": "b"}, "b": {"b": "a"}},
        )
        assert resolve_destination(graph, "a", "a") == "b"


class TestPlan:
    def test_duplicates_and_exclusions_dropped(self) -> None:
        graph = _graph(
            "main.src",
            {
                "main.src": {"util.src": "util.src", "skip.txt": ""},
                "other.src": {"util.src": "util.src"},
            },
        )
        planned = [(s.source, s.dest) for s in plan(graph)]
        assert planned == [("main.src", "main.src"), ("util.src", "util.src")]

    def test_target_path_completes_directory(self) -> None:
        assert target_path("sub/a.png", "images/") == "images/a.png"
        assert target_path("sub/a.png", "a.png") == "a.png"


class TestMaterialize:
    """Tests for copying into the staging tree."""

    def test_scenario_stages_all_files(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: util.src, README=README.txt\n")
        tree.write("util.src", "# pack: helper.src\n")
        tree.write("helper.src", "helper\n")
        tree.write("README", "readme\n")
        staging = tmp_path / "staging"

        graph = build_graph("main.src", tree.root)
        result = materialize(graph, staging, "usr/share/app", source_root=tree.root)

        assert result.copied == 4
        assert result.issues == []
        assert _files(staging) == {
            "usr/share/app/main.src",
            "usr/share/app/util.src",
            "usr/share/app/README.txt",
            "usr/share/app/helper.src",
        }
        assert (staging / "usr/share/app/README.txt").read_text() == "readme\n"

    def test_self_exclusion_precedence(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("y.src", "# pack: x.src=keep.txt\n")
        tree.write("x.src", "# pack: x.src=\n")
        staging = tmp_path / "staging"

        result = materialize(build_graph("y.src", tree.root), staging, source_root=tree.root)

        assert _files(staging) == {"y.src"}
        assert result.copied == 1

    def test_self_listing_does_not_cancel_rename(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.sh", "# pack: util.sh=bin/util\n")
        tree.write("util.sh", "# pack: util.sh, helper.sh\n")
        tree.write("helper.sh")
        staging = tmp_path / "staging"

        materialize(build_graph("main.sh", tree.root), staging, source_root=tree.root)
        assert _files(staging) == {"main.sh", "bin/util", "util.sh", "helper.sh"}

    def test_self_exclusion_of_entry(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("empty.src", "# pack: empty.src=, data.txt\n")
        tree.write("data.txt", "data\n")
        staging = tmp_path / "staging"

        materialize(build_graph("empty.src", tree.root), staging, source_root=tree.root)
        assert _files(staging) == {"data.txt"}

    def test_self_exclusion_regardless_of_order(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: empty.src, other.src\n")
        tree.write("other.src", "# pack: empty.src\n")
        tree.write("empty.src", "# pack: empty.src=\n")
        staging = tmp_path / "staging"

        materialize(build_graph("main.src", tree.root), staging, source_root=tree.root)
        assert _files(staging) == {"main.src", "other.src"}

    def test_rename(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("dir/main.src", "# pack: a.txt=b.txt\n")
        tree.write("dir/a.txt", "a\n")
        staging = tmp_path / "staging"

        materialize(build_graph("dir/main.src", tree.root), staging, source_root=tree.root)
        assert _files(staging) == {"dir/main.src", "dir/b.txt"}

    def test_glob_into_directory_target(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: sub/*.png=images/\n")
        tree.write("sub/a.png", "A")
        tree.write("sub/b.png", "B")
        staging = tmp_path / "staging"

        materialize(build_graph("main.src", tree.root), staging, source_root=tree.root)
        assert _files(staging) == {"main.src", "images/a.png", "images/b.png"}
        assert (staging / "images/b.png").read_text() == "B"

    def test_each_pair_copied_once(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: a.src, b.src, shared.txt\n")
        tree.write("a.src", "# pack: shared.txt\n")
        tree.write("b.src", "# pack: shared.txt\n")
        tree.write("shared.txt", "s\n")

        result = materialize(build_graph("main.src", tree.root), tmp_path / "out", source_root=tree.root)
        sources = [s.source for s in result.staged]
        assert sources.count("shared.txt") == 1
        assert result.copied == 4

    def test_directory_copied_recursively(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: assets=share/assets\n")
        tree.write("assets/a.txt", "a")
        tree.write("assets/deep/b.txt", "b")
        tree.write("assets/__pycache__/c.pyc", "c")
        staging = tmp_path / "staging"

        exclude = pathspec.PathSpec.from_lines("gitwildmatch", ["__pycache__/"])
        materialize(
            build_graph("main.src", tree.root),
            staging,
            source_root=tree.root,
            exclude=exclude,
        )
        assert _files(staging) == {"main.src", "share/assets/a.txt", "share/assets/deep/b.txt"}

    def test_missing_source_is_not_fatal(self, tree, tmp_path: pathlib.Path) -> None:
        tree.write("main.src", "# pack: optional.txt\n")

        result = materialize(build_graph("main.src", tree.root), tmp_path / "out", source_root=tree.root)
        assert result.copied == 1
        assert [issue.kind for issue in result.issues] == [IssueKind.MISSING_FILE]

    def test_executable_bit_kept(self, tree, tmp_path: pathlib.Path) -> None:
        script = tree.write("run.sh", "#!/bin/sh\n# pack: lib.sh\n")
        tree.write("lib.sh")
        script.chmod(0o755)

        staging = tmp_path / "out"
        materialize(build_graph("run.sh", tree.root), staging, source_root=tree.root)
        assert (staging / "run.sh").stat().st_mode & 0o111


class TestEscapePolicy:
    """Tests for destinations above the prefix root."""

    def _setup(self, tree) -> FileGraph:
        tree.write("main.src", "# pack: a.txt=../up.txt\n")
        tree.write("a.txt", "a\n")
        return build_graph("main.src", tree.root)

    def test_warn_writes_outside(self, tree, tmp_path: pathlib.Path) -> None:
        graph = self._setup(tree)
        staging = tmp_path / "staging"

        result = materialize(graph, staging, "opt", source_root=tree.root)
        assert (staging / "up.txt").read_text() == "a\n"
        assert result.copied == 2

    def test_skip_does_not_write(self, tree, tmp_path: pathlib.Path) -> None:
        graph = self._setup(tree)
        staging = tmp_path / "staging"

        result = materialize(graph, staging, "opt", source_root=tree.root, escape=EscapePolicy.SKIP)
        assert not (staging / "up.txt").exists()
        assert result.copied == 1

    def test_error_raises(self, tree, tmp_path: pathlib.Path) -> None:
        graph = self._setup(tree)

        materializer = Materializer(tmp_path / "staging", "opt", source_root=tree.root, escape="error")
        with pytest.raises(PathEscapeError):
            materializer.materialize(graph)
