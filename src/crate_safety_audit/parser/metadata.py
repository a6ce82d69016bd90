"""
Package graph loading from ``cargo metadata``.

This module runs (or reads the saved output of)
``cargo metadata --format-version 1`` and turns the resolve into a
DependencyGraph rooted at one package.
"""

import json
import logging
import subprocess
from collections import deque
from pathlib import Path
from typing import Any, Optional

from crate_safety_audit.config import BuildConfig, GraphConfig
from crate_safety_audit.errors import MetadataError
from crate_safety_audit.models.graph import DependencyGraph, DependencyKind
from crate_safety_audit.models.package import Package, PackageId, Target, TargetKind

logger = logging.getLogger(__name__)


def dependency_kind(kind: Optional[str], target: Optional[str] = None) -> DependencyKind:
    """
    Map a ``dep_kinds`` entry of the resolve to a DependencyKind.

    Args:
        kind: ``null``, ``"build"`` or ``"dev"``.
        target: Platform cfg the dependency is restricted to, if any.
    """
    if kind is None:
        return DependencyKind.TARGET_SPECIFIC if target else DependencyKind.NORMAL
    if kind == "build":
        return DependencyKind.BUILD
    if kind == "dev":
        return DependencyKind.DEVELOPMENT
    return DependencyKind.OTHER


class CargoMetadata:
    """
    Parsed ``cargo metadata`` output.

    Use run() to invoke cargo, or from_file()/from_json() for saved output.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        """
        Initialize from decoded metadata JSON.

        Raises:
            MetadataError: If the metadata has no resolve section.
        """
        if not isinstance(data.get("resolve"), dict):
            raise MetadataError(
                "cargo metadata output has no resolve section (was --no-deps used?)"
            )
        self.data = data
        self.workspace_root = Path(data.get("workspace_root", "."))
        self.target_directory = Path(
            data.get("target_directory") or self.workspace_root / "target"
        )
        self._package_ids: dict[str, PackageId] = {}
        self._packages: dict[str, dict[str, Any]] = {}
        for raw in data.get("packages", []):
            self._packages[raw["id"]] = raw
            self._package_ids[raw["id"]] = PackageId(
                name=raw["name"],
                version=raw["version"],
                source=raw.get("source"),
                repr_id=raw["id"],
            )
        self._nodes: dict[str, dict[str, Any]] = {
            node["id"]: node for node in data["resolve"].get("nodes", [])
        }

    @classmethod
    def from_json(cls, text: str) -> "CargoMetadata":
        """Parse metadata from a JSON string."""
        try:
            return cls(json.loads(text))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise MetadataError(f"Invalid cargo metadata JSON: {e}") from e

    @classmethod
    def from_file(cls, path: Path) -> "CargoMetadata":
        """Load metadata saved from ``cargo metadata --format-version 1``."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise MetadataError(f"Cannot read metadata file {path}: {e}") from e
        return cls.from_json(text)

    @classmethod
    def run(
        cls,
        manifest_path: Path,
        config: Optional[BuildConfig] = None,
    ) -> "CargoMetadata":
        """
        Run ``cargo metadata`` for a manifest.

        Raises:
            MetadataError: If cargo fails or its output is not valid metadata.
        """
        config = config or BuildConfig()
        args = [
            config.cargo, "metadata",
            "--format-version", "1",
            "--manifest-path", str(manifest_path),
        ]
        if config.features:
            args += ["--features", ",".join(config.features)]
        if config.all_features:
            args.append("--all-features")
        if config.no_default_features:
            args.append("--no-default-features")
        if config.target:
            args += ["--filter-platform", config.target]
        for flag, enabled in (
            ("--offline", config.offline),
            ("--locked", config.locked),
            ("--frozen", config.frozen),
        ):
            if enabled:
                args.append(flag)

        logger.debug("Running %s", " ".join(args))
        try:
            result = subprocess.run(args, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise MetadataError(f"cargo metadata failed:\n{e.stderr}") from e
        except FileNotFoundError as e:
            raise MetadataError(f"Cargo executable not found: {config.cargo}") from e
        return cls.from_json(result.stdout)

    def package_id(self, raw_id: str) -> PackageId:
        """
        Look up a PackageId by its cargo id string.

        Raises:
            MetadataError: If the id is not in the metadata.
        """
        try:
            return self._package_ids[raw_id]
        except KeyError:
            raise MetadataError(f"Unknown package id in resolve: {raw_id}") from None

    def find_root(self, spec: Optional[str] = None) -> PackageId:
        """
        Pick the root package.

        Args:
            spec: ``name`` or ``name@version`` of a package, or None for the
                resolve root.

        Raises:
            MetadataError: If the spec matches no package or several, or
                the manifest is virtual and no spec was given.
        """
        if spec is None:
            root = self.data["resolve"].get("root")
            if root is None:
                raise MetadataError(
                    "Manifest is a virtual workspace; select a package with --package"
                )
            return self.package_id(root)

        name, _, version = spec.partition("@")
        matches = [
            pid for pid in self._package_ids.values()
            if pid.name == name and (not version or pid.version == version)
        ]
        if not matches:
            raise MetadataError(f"Package not found: {spec}")
        if len(matches) > 1:
            candidates = ", ".join(f"{m.name}@{m.version}" for m in matches)
            raise MetadataError(f"Package spec {spec} is ambiguous: {candidates}")
        return matches[0]

    def _build_package(self, raw_id: str) -> Package:
        raw = self._packages[raw_id]
        targets = []
        for raw_target in raw.get("targets", []):
            try:
                kind = TargetKind.from_metadata(
                    raw_target.get("kind", []),
                    raw_target.get("crate_types", []),
                )
            except ValueError:
                logger.warning(
                    "Skipping target %s of %s: unknown kind %s",
                    raw_target.get("name"),
                    raw["name"],
                    raw_target.get("kind"),
                )
                continue
            targets.append(
                Target(
                    name=raw_target["name"],
                    kind=kind,
                    src_path=Path(raw_target["src_path"]),
                )
            )
        node = self._nodes.get(raw_id, {})
        return Package(
            id=self._package_ids[raw_id],
            manifest_path=Path(raw["manifest_path"]),
            license=raw.get("license"),
            repository=raw.get("repository"),
            features=list(node.get("features", [])),
            targets=targets,
        )

    def _dependencies(
        self,
        raw_id: str,
        include: dict[DependencyKind, bool],
    ) -> list[tuple[str, list[DependencyKind]]]:
        """The deps of a resolve node as (dep id, kinds), without excluded kinds."""
        deps = []
        for dep in self._nodes.get(raw_id, {}).get("deps", []):
            dep_kinds = dep.get("dep_kinds") or [{"kind": None, "target": None}]
            kinds: list[DependencyKind] = []
            for entry in dep_kinds:
                kind = dependency_kind(entry.get("kind"), entry.get("target"))
                if include[kind] and kind not in kinds:
                    kinds.append(kind)
            if kinds:
                deps.append((dep["pkg"], kinds))
        return deps

    def _dependents(
        self,
        root_id: str,
        include: dict[DependencyKind, bool],
    ) -> list[str]:
        """``root_id`` followed by every package depending on it, breadth-first."""
        reverse: dict[str, list[str]] = {}
        for raw_id in self._nodes:
            for dep_id, _ in self._dependencies(raw_id, include):
                reverse.setdefault(dep_id, []).append(raw_id)

        order = [root_id]
        seen = {root_id}
        pending: deque[str] = deque([root_id])
        while pending:
            for parent in reverse.get(pending.popleft(), []):
                if parent not in seen:
                    seen.add(parent)
                    order.append(parent)
                    pending.append(parent)
        return order

    def build_graph(
        self,
        root: PackageId,
        config: Optional[GraphConfig] = None,
    ) -> DependencyGraph:
        """
        Build the dependency graph around ``root``.

        The graph holds everything reachable from ``root``. With
        ``config.invert`` it holds ``root`` and every package that depends
        on it instead, so that its incoming edges lead to the dependents.
        Build and dev edges are only followed when the graph config asks
        for them.

        Args:
            root: The root package.
            config: Which dependency kinds to include, and the direction.

        Returns:
            The DependencyGraph, with packages in breadth-first order.
        """
        config = config or GraphConfig()
        include = {
            DependencyKind.NORMAL: True,
            DependencyKind.TARGET_SPECIFIC: True,
            DependencyKind.BUILD: config.build_deps or config.all_deps,
            DependencyKind.DEVELOPMENT: config.dev_deps or config.all_deps,
            DependencyKind.OTHER: config.all_deps,
        }
        graph = DependencyGraph()

        if config.invert:
            members = self._dependents(root.repr_id, include)
            for raw_id in members:
                graph.add_package(self._build_package(raw_id))
            for raw_id in members:
                source = self._package_ids[raw_id]
                for dep_id, kinds in self._dependencies(raw_id, include):
                    target = self.package_id(dep_id)
                    if target not in graph:
                        continue
                    for kind in kinds:
                        graph.add_edge(source, target, kind)
            logger.debug("Inverted dependency graph has %d package(s)", len(graph))
            return graph

        graph.add_package(self._build_package(root.repr_id))
        pending: deque[str] = deque([root.repr_id])
        seen = {root.repr_id}

        while pending:
            raw_id = pending.popleft()
            source = self._package_ids[raw_id]
            for dep_id, kinds in self._dependencies(raw_id, include):
                target = self.package_id(dep_id)
                if dep_id not in seen:
                    seen.add(dep_id)
                    graph.add_package(self._build_package(dep_id))
                    pending.append(dep_id)
                for kind in kinds:
                    graph.add_edge(source, target, kind)

        logger.debug("Dependency graph has %d package(s)", len(graph))
        return graph
