"""
Dependency graph model.

A directed graph over packages whose edges are tagged with the kind of
dependency. Edges keep the order in which they were added so that every
traversal is stable.
"""

from enum import Enum
from typing import Iterator, Optional

from pydantic import BaseModel, Field

from crate_safety_audit.models.package import Package, PackageId


class DependencyKind(str, Enum):
    """Kinds of dependency edges."""

    NORMAL = "normal"
    BUILD = "build"
    DEVELOPMENT = "dev"
    TARGET_SPECIFIC = "target"
    OTHER = "other"


# Order in which dependency groups are visited under each node
DEPENDENCY_KIND_ORDER = (
    DependencyKind.NORMAL,
    DependencyKind.BUILD,
    DependencyKind.DEVELOPMENT,
    DependencyKind.TARGET_SPECIFIC,
    DependencyKind.OTHER,
)

_KIND_GROUP_NAMES = {
    DependencyKind.BUILD: "build-dependencies",
    DependencyKind.DEVELOPMENT: "dev-dependencies",
    DependencyKind.TARGET_SPECIFIC: "target-dependencies",
}


def get_kind_group_name(kind: DependencyKind) -> Optional[str]:
    """
    Get the group label for a dependency kind.

    Normal dependencies are never grouped, and kinds without a label are
    not rendered at all.
    """
    return _KIND_GROUP_NAMES.get(kind)


class EdgeDirection(str, Enum):
    """Direction in which to follow dependency edges."""

    OUTGOING = "outgoing"  # depends on
    INCOMING = "incoming"  # depended on by


class DependencyEdge(BaseModel):
    """A dependency from one package to another."""

    source: PackageId = Field(description="The depending package")
    target: PackageId = Field(description="The package depended upon")
    kind: DependencyKind = Field(default=DependencyKind.NORMAL, description="Edge kind")

    class Config:
        frozen = True


class DependencyGraphError(Exception):
    """Error during dependency graph operations."""
    pass


class DependencyGraph:
    """
    Resolved package graph.

    Packages are stored by id. Outgoing and incoming adjacency lists are
    kept in insertion order, and duplicate edges are ignored.
    """

    def __init__(self) -> None:
        self._packages: dict[PackageId, Package] = {}
        self._outgoing: dict[PackageId, list[DependencyEdge]] = {}
        self._incoming: dict[PackageId, list[DependencyEdge]] = {}

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._packages

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages.values())

    def add_package(self, package: Package) -> None:
        """Add a package node. Re-adding an id replaces the package data."""
        self._packages[package.id] = package
        self._outgoing.setdefault(package.id, [])
        self._incoming.setdefault(package.id, [])

    def add_edge(
        self,
        source: PackageId,
        target: PackageId,
        kind: DependencyKind = DependencyKind.NORMAL,
    ) -> None:
        """
        Add a dependency edge between two known packages.

        Raises:
            DependencyGraphError: If either endpoint is not in the graph.
        """
        for package_id in (source, target):
            if package_id not in self._packages:
                raise DependencyGraphError(f"Unknown package: {package_id}")

        edge = DependencyEdge(source=source, target=target, kind=kind)
        if edge in self._outgoing[source]:
            return
        self._outgoing[source].append(edge)
        self._incoming[target].append(edge)

    def get_package(self, package_id: PackageId) -> Package:
        """
        Get a package by id.

        Raises:
            DependencyGraphError: If the package is not in the graph.
        """
        try:
            return self._packages[package_id]
        except KeyError:
            raise DependencyGraphError(f"Unknown package: {package_id}") from None

    @property
    def packages(self) -> list[Package]:
        """All packages in insertion order."""
        return list(self._packages.values())

    def edges(self, package_id: PackageId, direction: EdgeDirection) -> list[DependencyEdge]:
        """
        Get the edges of a package in the given direction, in graph order.

        Args:
            package_id: The package whose edges to return.
            direction: OUTGOING for its dependencies, INCOMING for its dependents.

        Returns:
            List of edges (empty for unknown packages).
        """
        if direction == EdgeDirection.OUTGOING:
            return list(self._outgoing.get(package_id, []))
        return list(self._incoming.get(package_id, []))

    def neighbors(
        self,
        package_id: PackageId,
        direction: EdgeDirection,
        kind: DependencyKind,
    ) -> list[PackageId]:
        """
        Get neighboring packages connected by edges of one kind.

        For OUTGOING the neighbors are dependencies, for INCOMING the
        dependents.
        """
        neighbors: list[PackageId] = []
        for edge in self.edges(package_id, direction):
            if edge.kind != kind:
                continue
            other = edge.target if direction == EdgeDirection.OUTGOING else edge.source
            if other not in neighbors:
                neighbors.append(other)
        return neighbors
