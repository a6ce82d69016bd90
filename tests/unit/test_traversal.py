"""
Unit tests for the dependency tree walk.
"""

from typing import Callable

import pytest

from crate_safety_audit.models.graph import DependencyGraph, DependencyKind, EdgeDirection
from crate_safety_audit.models.package import Package, PackageId
from crate_safety_audit.models.tree import (
    Charset,
    ExtraDepsGroupLine,
    PackageLine,
    Prefix,
    SymbolKind,
)
from crate_safety_audit.models.verdict import PackageSafetyVerdict
from crate_safety_audit.tree.options import TreeOptions
from crate_safety_audit.tree.symbols import EmojiSymbols, get_tree_symbols
from crate_safety_audit.tree.traversal import construct_tree_vines_string, walk_dependency_tree

ASCII_INDENT = TreeOptions(prefix=Prefix.INDENT, charset=Charset.ASCII)


def _names(lines) -> list[str]:
    return [
        line.package_id.name if isinstance(line, PackageLine) else f"[{line.label}]"
        for line in lines
    ]


@pytest.fixture
def make_graph(package_factory: Callable[..., Package]) -> Callable[..., tuple]:
    """Build a graph from (source, target, kind) edges over named packages."""

    def _make(
        names: list[str],
        edges: list[tuple[str, str, DependencyKind]],
    ) -> tuple[DependencyGraph, dict[str, PackageId]]:
        graph = DependencyGraph()
        packages = {name: package_factory(name) for name in names}
        for package in packages.values():
            graph.add_package(package)
        for source, target, kind in edges:
            graph.add_edge(packages[source].id, packages[target].id, kind)
        return graph, {name: p.id for name, p in packages.items()}

    return _make


class TestVines:
    """Tests for line prefixes."""

    def test_root_has_no_vines(self) -> None:
        """Test that the root line is not indented."""
        assert construct_tree_vines_string([], ASCII_INDENT) == ""

    def test_ascii_vines(self) -> None:
        """Test vines for nested levels."""
        assert construct_tree_vines_string([False], ASCII_INDENT) == "`-- "
        assert construct_tree_vines_string([True], ASCII_INDENT) == "|-- "
        assert construct_tree_vines_string([True, False], ASCII_INDENT) == "|   `-- "
        assert construct_tree_vines_string([False, True], ASCII_INDENT) == "    |-- "

    def test_utf8_vines(self) -> None:
        """Test vines with the UTF-8 charset."""
        options = TreeOptions(prefix=Prefix.INDENT, charset=Charset.UTF8)

        assert construct_tree_vines_string([True, False], options) == "│   └── "

    def test_depth_prefix(self) -> None:
        """Test the numeric depth prefix."""
        options = TreeOptions(prefix=Prefix.DEPTH)

        assert construct_tree_vines_string([], options) == "0 "
        assert construct_tree_vines_string([True, False], options) == "2 "

    def test_no_prefix(self) -> None:
        """Test that no prefix means no indentation."""
        options = TreeOptions(prefix=Prefix.NONE)

        assert construct_tree_vines_string([True, False], options) == ""


class TestSymbols:
    """Tests for tree and safety glyphs."""

    def test_tree_symbols(self) -> None:
        """Test glyph selection per charset."""
        assert get_tree_symbols(Charset.ASCII).ell == "`"
        assert get_tree_symbols(Charset.UTF8).ell == "└"

    def test_emoji(self) -> None:
        """Test safety symbols per charset."""
        assert EmojiSymbols(Charset.UTF8).emoji(SymbolKind.LOCK) == "🔒"
        assert EmojiSymbols(Charset.ASCII).emoji(SymbolKind.LOCK) == ":)"
        assert EmojiSymbols(Charset.ASCII).emoji(SymbolKind.QUESTION_MARK) == "?"
        assert EmojiSymbols(Charset.ASCII).emoji(SymbolKind.RADS) == "!"

    def test_symbol_for_verdict(self) -> None:
        """Test the symbol chosen for each verdict."""
        assert SymbolKind.for_verdict(PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE) == SymbolKind.LOCK
        assert SymbolKind.for_verdict(PackageSafetyVerdict.UNSAFE_DETECTED) == SymbolKind.RADS
        assert (
            SymbolKind.for_verdict(PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN)
            == SymbolKind.QUESTION_MARK
        )


class TestWalkDependencyTree:
    """Tests for walk_dependency_tree."""

    def test_normal_and_build_groups(self, sample_graph: DependencyGraph) -> None:
        """Test a root with a normal and a build-only dependency."""
        ids = {p.id.name: p.id for p in sample_graph.packages}
        verdicts = {
            ids["safe_dep"]: PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE,
            ids["unsafe_dep"]: PackageSafetyVerdict.UNSAFE_DETECTED,
        }

        lines = walk_dependency_tree(ids["app"], sample_graph, ASCII_INDENT, verdicts)

        assert len(lines) == 4
        root, safe, group, unsafe = lines
        assert isinstance(root, PackageLine)
        assert root.package_id == ids["app"]
        assert root.tree_vines == ""
        assert root.symbol == SymbolKind.QUESTION_MARK
        assert isinstance(safe, PackageLine)
        assert safe.package_id == ids["safe_dep"]
        assert safe.tree_vines == "`-- "
        assert safe.symbol == SymbolKind.LOCK
        assert isinstance(group, ExtraDepsGroupLine)
        assert group.label == "build-dependencies"
        assert group.tree_vines == ""
        assert isinstance(unsafe, PackageLine)
        assert unsafe.package_id == ids["unsafe_dep"]
        assert unsafe.tree_vines == "`-- "
        assert unsafe.symbol == SymbolKind.RADS
        assert unsafe.depth == 1

    def test_idempotent(self, sample_graph: DependencyGraph) -> None:
        """Test that walking twice gives the same lines."""
        root = sample_graph.packages[0].id

        first = walk_dependency_tree(root, sample_graph, ASCII_INDENT)
        second = walk_dependency_tree(root, sample_graph, ASCII_INDENT)

        assert first == second

    def test_children_keep_graph_order(self, make_graph: Callable[..., tuple]) -> None:
        """Test that children are not re-sorted."""
        graph, ids = make_graph(
            ["r", "zeta", "alpha", "mid"],
            [
                ("r", "zeta", DependencyKind.NORMAL),
                ("r", "alpha", DependencyKind.NORMAL),
                ("r", "mid", DependencyKind.NORMAL),
            ],
        )

        lines = walk_dependency_tree(ids["r"], graph, ASCII_INDENT)

        assert _names(lines) == ["r", "zeta", "alpha", "mid"]
        assert [line.tree_vines for line in lines] == ["", "|-- ", "|-- ", "`-- "]

    def test_shared_dependency_expanded_once(self, make_graph: Callable[..., tuple]) -> None:
        """Test that a diamond is truncated the second time unless ``all`` is set."""
        graph, ids = make_graph(
            ["r", "a", "b", "shared", "leaf"],
            [
                ("r", "a", DependencyKind.NORMAL),
                ("r", "b", DependencyKind.NORMAL),
                ("a", "shared", DependencyKind.NORMAL),
                ("b", "shared", DependencyKind.NORMAL),
                ("shared", "leaf", DependencyKind.NORMAL),
            ],
        )

        truncated = walk_dependency_tree(ids["r"], graph, ASCII_INDENT)
        full = walk_dependency_tree(
            ids["r"],
            graph,
            TreeOptions(all=True, charset=Charset.ASCII),
        )

        assert _names(truncated) == ["r", "a", "shared", "leaf", "b", "shared"]
        assert _names(full) == ["r", "a", "shared", "leaf", "b", "shared", "leaf"]

    def test_cycle_terminates(self, make_graph: Callable[..., tuple]) -> None:
        """Test that a cycle is cut where it closes, even with ``all``."""
        graph, ids = make_graph(
            ["r", "a"],
            [
                ("r", "a", DependencyKind.NORMAL),
                ("a", "r", DependencyKind.DEVELOPMENT),
            ],
        )

        lines = walk_dependency_tree(ids["r"], graph, TreeOptions(all=True))

        assert _names(lines) == ["r", "a", "[dev-dependencies]", "r"]

    def test_group_order_and_vines(self, make_graph: Callable[..., tuple]) -> None:
        """Test kind order under a nested package and the group vines."""
        graph, ids = make_graph(
            ["r", "a", "n", "b", "d", "t", "x"],
            [
                ("r", "a", DependencyKind.NORMAL),
                ("r", "x", DependencyKind.NORMAL),
                ("a", "t", DependencyKind.TARGET_SPECIFIC),
                ("a", "d", DependencyKind.DEVELOPMENT),
                ("a", "b", DependencyKind.BUILD),
                ("a", "n", DependencyKind.NORMAL),
            ],
        )

        lines = walk_dependency_tree(ids["r"], graph, ASCII_INDENT)

        assert _names(lines) == [
            "r", "a", "n",
            "[build-dependencies]", "b",
            "[dev-dependencies]", "d",
            "[target-dependencies]", "t",
            "x",
        ]
        groups = [line for line in lines if isinstance(line, ExtraDepsGroupLine)]
        assert {g.tree_vines for g in groups} == {"|   "}

    def test_other_kind_skipped(self, make_graph: Callable[..., tuple]) -> None:
        """Test that unlabeled kinds produce no line and no descent."""
        graph, ids = make_graph(
            ["r", "o", "deep"],
            [
                ("r", "o", DependencyKind.OTHER),
                ("o", "deep", DependencyKind.NORMAL),
            ],
        )

        lines = walk_dependency_tree(ids["r"], graph, ASCII_INDENT)

        assert _names(lines) == ["r"]

    def test_groups_without_indent(self, make_graph: Callable[..., tuple]) -> None:
        """Test that group lines are still emitted without vines."""
        graph, ids = make_graph(["r", "b"], [("r", "b", DependencyKind.BUILD)])

        lines = walk_dependency_tree(ids["r"], graph, TreeOptions(prefix=Prefix.DEPTH))

        assert _names(lines) == ["r", "[build-dependencies]", "b"]
        assert [line.tree_vines for line in lines] == ["0 ", "", "1 "]

    def test_incoming_direction(self, make_graph: Callable[..., tuple]) -> None:
        """Test that an inverted walk lists dependents."""
        graph, ids = make_graph(
            ["r", "a", "leaf"],
            [
                ("r", "a", DependencyKind.NORMAL),
                ("a", "leaf", DependencyKind.NORMAL),
            ],
        )
        options = TreeOptions(direction=EdgeDirection.INCOMING, charset=Charset.ASCII)

        lines = walk_dependency_tree(ids["leaf"], graph, options)

        assert _names(lines) == ["leaf", "a", "r"]
        assert [line.depth for line in lines] == [0, 1, 2]
