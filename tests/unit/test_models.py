"""
Unit tests for data models.
"""

from pathlib import Path
from typing import Callable

import pytest

from crate_safety_audit.models.graph import (
    DependencyGraph,
    DependencyGraphError,
    DependencyKind,
    EdgeDirection,
    get_kind_group_name,
)
from crate_safety_audit.models.package import CRATES_IO_SOURCE, Package, PackageId
from crate_safety_audit.models.report import AuditReport, PackageSummary
from crate_safety_audit.models.source import UnsafeCounts
from crate_safety_audit.models.verdict import PackageSafetyVerdict


class TestPackageId:
    """Tests for PackageId."""

    def test_str(self) -> None:
        """Test the display form."""
        assert str(PackageId(name="serde", version="1.0.0")) == "serde 1.0.0"

    def test_sources(self) -> None:
        """Test local and crates.io detection."""
        local = PackageId(name="a", version="0.1.0")
        registry = PackageId(name="b", version="1.0.0", source=CRATES_IO_SOURCE)

        assert local.is_local and not local.is_crates_io
        assert registry.is_crates_io and not registry.is_local

    def test_hashable(self) -> None:
        """Test that ids work as dict keys."""
        first = PackageId(name="a", version="1.0.0", repr_id="a 1.0.0")
        second = PackageId(name="a", version="1.0.0", repr_id="a 1.0.0")

        assert {first: 1}[second] == 1


class TestUnsafeCounts:
    """Tests for UnsafeCounts."""

    def test_add_and_total(self) -> None:
        """Test summing counts."""
        total = UnsafeCounts(functions=1, exprs=2) + UnsafeCounts(methods=3, item_impls=1)

        assert total.total == 7
        assert total.has_unsafe
        assert not UnsafeCounts().has_unsafe


class TestDependencyGraph:
    """Tests for DependencyGraph."""

    def test_edges_and_neighbors(self, package_factory: Callable[..., Package]) -> None:
        """Test adjacency in both directions."""
        graph = DependencyGraph()
        a, b, c = (package_factory(n) for n in ("a", "b", "c"))
        for package in (a, b, c):
            graph.add_package(package)
        graph.add_edge(a.id, b.id)
        graph.add_edge(a.id, c.id, DependencyKind.BUILD)
        graph.add_edge(a.id, b.id)

        assert len(graph.edges(a.id, EdgeDirection.OUTGOING)) == 2
        assert graph.neighbors(a.id, EdgeDirection.OUTGOING, DependencyKind.NORMAL) == [b.id]
        assert graph.neighbors(a.id, EdgeDirection.OUTGOING, DependencyKind.BUILD) == [c.id]
        assert graph.neighbors(c.id, EdgeDirection.INCOMING, DependencyKind.BUILD) == [a.id]
        assert a.id in graph
        assert len(graph) == 3
        assert [p.id for p in graph] == [a.id, b.id, c.id]

    def test_unknown_endpoint(self, package_factory: Callable[..., Package]) -> None:
        """Test that edges need known packages."""
        graph = DependencyGraph()
        a = package_factory("a")
        graph.add_package(a)

        with pytest.raises(DependencyGraphError):
            graph.add_edge(a.id, PackageId(name="ghost", version="0.0.0"))
        with pytest.raises(DependencyGraphError):
            graph.get_package(PackageId(name="ghost", version="0.0.0"))

    def test_group_names(self) -> None:
        """Test labels of the dependency kinds."""
        assert get_kind_group_name(DependencyKind.NORMAL) is None
        assert get_kind_group_name(DependencyKind.BUILD) == "build-dependencies"
        assert get_kind_group_name(DependencyKind.DEVELOPMENT) == "dev-dependencies"
        assert get_kind_group_name(DependencyKind.TARGET_SPECIFIC) == "target-dependencies"
        assert get_kind_group_name(DependencyKind.OTHER) is None


class TestAuditReport:
    """Tests for AuditReport."""

    def test_verdict_counts(self) -> None:
        """Test summary properties."""
        root = PackageId(name="r", version="0.1.0")
        report = AuditReport(
            manifest_path="/r/Cargo.toml",
            root=root,
            packages=[
                PackageSummary(package_id=root, verdict=PackageSafetyVerdict.UNSAFE_DETECTED),
                PackageSummary(
                    package_id=PackageId(name="a", version="1.0.0"),
                    verdict=PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE,
                ),
                PackageSummary(
                    package_id=PackageId(name="b", version="1.0.0"),
                    verdict=PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE,
                ),
            ],
        )

        assert report.package_count == 3
        assert report.unsafe_count == 1
        assert report.forbids_count == 2
        assert not report.has_errors
        assert [p.package_id.name for p in report.get_packages_by_verdict(
            PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE
        )] == ["a", "b"]
        assert report.manifest_path == str(Path("/r/Cargo.toml"))
