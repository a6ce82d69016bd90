"""
Safety auditor - runs the whole audit pipeline.

This module combines package graph loading, the intercepted build, file
resolution, unsafe scanning and the tree walk into a single AuditReport.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from crate_safety_audit.analyzer.aggregator import UnsafeUsageAggregator
from crate_safety_audit.analyzer.scanner import FileScanner, TreeSitterUnsafeScanner
from crate_safety_audit.build.cargo import BuildDriver, CargoBuildDriver
from crate_safety_audit.build.resolver import resolve_rs_file_deps
from crate_safety_audit.config import Config
from crate_safety_audit.models.graph import DependencyGraph
from crate_safety_audit.models.package import Package, PackageId
from crate_safety_audit.models.report import (
    AuditReport,
    CompiledFile,
    PackageSummary,
    ScanMode,
)
from crate_safety_audit.models.source import FileRole
from crate_safety_audit.models.verdict import PackageMetrics, PackageSafetyVerdict
from crate_safety_audit.parser.metadata import CargoMetadata
from crate_safety_audit.tree.options import TreeOptions
from crate_safety_audit.tree.traversal import walk_dependency_tree

logger = logging.getLogger(__name__)

# Progress callback type: (current, total, description) -> None
ProgressCallback = Callable[[int, int, str], None]


class SafetyAuditor:
    """
    Audit a Cargo project for unsafe code.

    This is the main orchestration class that:
    1. Loads the package graph from cargo metadata
    2. Builds the project while intercepting rustc (skipped in forbid-only mode)
    3. Scans and classifies the compiled files
    4. Computes per-package verdicts and walks the dependency tree

    Collaborators are created lazily and can be injected for testing.
    """

    def __init__(
        self,
        manifest_path: Path,
        config: Optional[Config] = None,
        package: Optional[str] = None,
        metadata: Optional[CargoMetadata] = None,
        build_driver: Optional[BuildDriver] = None,
        scanner: Optional[FileScanner] = None,
    ) -> None:
        """
        Initialize the auditor.

        Args:
            manifest_path: Path to the Cargo.toml to audit.
            config: Optional configuration object.
            package: ``name`` or ``name@version`` of the root package.
            metadata: Pre-loaded cargo metadata (skips running cargo metadata).
            build_driver: Build driver to use instead of cargo.
            scanner: File scanner to use instead of the tree-sitter scanner.
        """
        self.manifest_path = manifest_path.resolve()
        self.config = config or Config()
        self.package = package

        self._metadata = metadata
        self._build_driver = build_driver
        self._scanner = scanner
        self._root: Optional[PackageId] = None
        self._graph: Optional[DependencyGraph] = None

    @property
    def metadata(self) -> CargoMetadata:
        """Get the cargo metadata, running cargo if needed."""
        if self._metadata is None:
            self._metadata = CargoMetadata.run(self.manifest_path, self.config.build)
        return self._metadata

    @property
    def root(self) -> PackageId:
        """Get the root package of the audit."""
        if self._root is None:
            self._root = self.metadata.find_root(self.package)
        return self._root

    @property
    def graph(self) -> DependencyGraph:
        """Get the dependency graph, building it if needed."""
        if self._graph is None:
            self._graph = self.metadata.build_graph(self.root, self.config.graph)
        return self._graph

    @property
    def build_driver(self) -> BuildDriver:
        """Get the build driver."""
        if self._build_driver is None:
            self._build_driver = CargoBuildDriver(self.manifest_path, self.config.build)
        return self._build_driver

    @property
    def scanner(self) -> FileScanner:
        """Get the file scanner."""
        if self._scanner is None:
            self._scanner = TreeSitterUnsafeScanner(include_tests=self.config.scan.include_tests)
        return self._scanner

    @property
    def workspace_root(self) -> Path:
        """Root of the Cargo workspace."""
        return self.metadata.workspace_root

    @property
    def target_directory(self) -> Path:
        """Cargo target directory, where build outputs and generated files live."""
        return self.metadata.target_directory

    def resolve_files(self) -> set[Path]:
        """Run the intercepted build and return every compiled file."""
        return resolve_rs_file_deps(self.build_driver, self.workspace_root)

    def list_compiled_files(self) -> list[CompiledFile]:
        """
        Resolve the compiled files and attach owner and role to each.

        Returns:
            Compiled files sorted by path.
        """
        resolved = self.resolve_files()
        roles: dict[Path, FileRole] = {}
        for package in self.graph.packages:
            for source_file in UnsafeUsageAggregator.target_files(package, resolved):
                roles[source_file.path] = source_file.role
        owners = UnsafeUsageAggregator.assign_owners(
            self.graph.packages,
            resolved,
            self.target_directory,
        )
        owner_by_path = {
            path: package_id
            for package_id, paths in owners.items()
            for path in paths
        }
        return [
            CompiledFile(
                path=path,
                role=roles.get(path, FileRole.OTHER),
                package_id=owner_by_path.get(path),
            )
            for path in sorted(resolved)
        ]

    def audit(self, progress_callback: Optional[ProgressCallback] = None) -> AuditReport:
        """
        Run the audit.

        Args:
            progress_callback: Optional callback for progress updates.

        Returns:
            AuditReport with the tree lines and per-package results.
        """
        start_time = time.time()
        forbid_only = self.config.scan.forbid_only
        total_steps = 4

        def report_progress(step: int, description: str) -> None:
            if progress_callback:
                progress_callback(step, total_steps, description)

        report_progress(0, "Loading package graph...")
        graph = self.graph
        root = self.root

        resolved: Optional[set[Path]] = None
        if forbid_only:
            logger.info("Forbid-only mode: skipping the build")
        else:
            report_progress(1, "Building with rustc interception...")
            resolved = self.resolve_files()

        report_progress(2, "Scanning for unsafe code...")
        aggregator = UnsafeUsageAggregator(
            self.scanner,
            allow_partial_results=self.config.scan.allow_partial_results,
            target_directory=self.target_directory,
        )
        metrics = aggregator.aggregate(graph, resolved)
        verdicts = aggregator.verdicts(graph, metrics)

        report_progress(3, "Rendering dependency tree...")
        lines = walk_dependency_tree(root, graph, TreeOptions.from_config(self.config), verdicts)

        packages = [
            self._summarize(package, metrics.get(package.id), verdicts[package.id])
            for package in graph.packages
        ]
        report_progress(4, "Done")

        return AuditReport(
            manifest_path=str(self.manifest_path),
            root=root,
            scan_mode=ScanMode.FORBID_ONLY if forbid_only else ScanMode.FULL,
            lines=lines,
            packages=packages,
            resolved_file_count=len(resolved) if resolved is not None else 0,
            analysis_duration_ms=(time.time() - start_time) * 1000,
            warnings=list(aggregator.warnings),
        )

    @staticmethod
    def _summarize(
        package: Package,
        metrics: Optional[PackageMetrics],
        verdict: PackageSafetyVerdict,
    ) -> PackageSummary:
        details = {
            "package_id": package.id,
            "verdict": verdict,
            "manifest_path": package.manifest_path,
            "license": package.license,
            "repository": package.repository,
            "features": package.features,
        }
        if metrics is None:
            return PackageSummary(metrics_available=False, **details)
        return PackageSummary(
            scanned_files=len(metrics.files),
            entry_points=len(metrics.entry_points),
            counts=metrics.counts,
            **details,
        )
