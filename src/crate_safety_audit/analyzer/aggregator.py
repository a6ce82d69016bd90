"""
Aggregation of per-file unsafe metrics into per-package verdicts.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from crate_safety_audit.analyzer.classifier import into_source_file
from crate_safety_audit.analyzer.scanner import FileScanner
from crate_safety_audit.errors import ScanError
from crate_safety_audit.models.graph import DependencyGraph
from crate_safety_audit.models.package import Package, PackageId
from crate_safety_audit.models.source import (
    FileMetricsEntry,
    FileRole,
    ResolvedSourceFile,
)
from crate_safety_audit.models.verdict import PackageMetrics, PackageSafetyVerdict

logger = logging.getLogger(__name__)

RUST_SOURCE_SUFFIX = ".rs"


def compute_verdict(metrics: Optional[PackageMetrics]) -> PackageSafetyVerdict:
    """
    Compute the safety verdict of a package.

    The rules apply in this order:

    1. No metrics, or no entry point among them: nothing is known for
       certain, so NONE_DETECTED_BUT_NOT_FORBIDDEN.
    2. Every entry point declares ``#![forbid(unsafe_code)]``:
       FORBIDS_UNSAFE_EVERYWHERE, whatever the counts of other files.
    3. Any scanned file has a nonzero unsafe count: UNSAFE_DETECTED.
    4. Otherwise NONE_DETECTED_BUT_NOT_FORBIDDEN.
    """
    if metrics is None or not metrics.files:
        return PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    entry_points = metrics.entry_points
    if not entry_points:
        return PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    if all(entry.metrics.forbids_unsafe for entry in entry_points):
        return PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE

    if any(entry.metrics.counts.has_unsafe for entry in metrics.files.values()):
        return PackageSafetyVerdict.UNSAFE_DETECTED

    return PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN


def _canonical(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError):
        return path.resolve()


def _is_relative_to(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


class UnsafeUsageAggregator:
    """
    Collect the files of every package and scan them.

    Entry points come from the package's targets. Other files come from
    the resolved build files and are assigned to the package whose root
    directory is their longest prefix. Files under the cargo target
    directory are generated by build scripts and belong to no package.
    """

    def __init__(
        self,
        scanner: FileScanner,
        allow_partial_results: bool = True,
        target_directory: Optional[Path] = None,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            scanner: Produces metrics for a single file.
            allow_partial_results: Drop the metrics of a package that fails
                to scan instead of aborting.
            target_directory: Cargo target directory whose files are skipped.
        """
        self.scanner = scanner
        self.allow_partial_results = allow_partial_results
        self.target_directory = target_directory
        self.warnings: list[str] = []

    @staticmethod
    def target_files(
        package: Package,
        resolved: Optional[set[Path]] = None,
    ) -> list[ResolvedSourceFile]:
        """
        Classify the root files of a package's targets.

        Args:
            package: The package.
            resolved: If given, only keep roots that the build compiled.

        Returns:
            One ResolvedSourceFile per distinct target root, entry points
            taking precedence over other roles for shared files.
        """
        by_path: dict[Path, ResolvedSourceFile] = {}
        for target in package.targets:
            path = _canonical(target.src_path)
            if resolved is not None and path not in resolved:
                continue
            source_file = into_source_file(target.kind, path)
            existing = by_path.get(path)
            if existing is None or (
                existing.role == FileRole.OTHER and source_file.role != FileRole.OTHER
            ):
                by_path[path] = source_file
        return list(by_path.values())

    @staticmethod
    def assign_owners(
        packages: Iterable[Package],
        files: Iterable[Path],
        target_directory: Optional[Path] = None,
    ) -> dict[PackageId, list[Path]]:
        """
        Assign each file to the package with the longest matching root.

        Files outside every package root, and files under
        ``target_directory``, are dropped.
        """
        excluded = _canonical(target_directory) if target_directory else None
        roots = sorted(
            ((_canonical(p.root), p.id) for p in packages),
            key=lambda item: len(item[0].parts),
            reverse=True,
        )
        owned: dict[PackageId, list[Path]] = {}
        for path in sorted(files):
            if excluded is not None and _is_relative_to(path, excluded):
                logger.debug("Skipping generated file %s", path)
                continue
            for root, package_id in roots:
                if _is_relative_to(path, root):
                    owned.setdefault(package_id, []).append(path)
                    break
            else:
                logger.debug("No package owns %s", path)
        return owned

    def _scan_package(
        self,
        package: Package,
        files: list[ResolvedSourceFile],
    ) -> Optional[PackageMetrics]:
        metrics = PackageMetrics(package_id=package.id)
        for source_file in files:
            try:
                file_metrics = self.scanner.scan(source_file.path)
            except ScanError as e:
                if not self.allow_partial_results:
                    raise
                message = f"{package.id}: {e}"
                logger.warning("Skipping package %s", message)
                self.warnings.append(message)
                return None
            metrics.files[source_file.path] = FileMetricsEntry(
                file=source_file,
                metrics=file_metrics,
            )
        return metrics

    def aggregate(
        self,
        graph: DependencyGraph,
        resolved_files: Optional[set[Path]] = None,
    ) -> dict[PackageId, PackageMetrics]:
        """
        Scan every package in the graph.

        Args:
            graph: The dependency graph.
            resolved_files: Files compiled by the build. When None, only
                the lib/bin/build-script roots of each package are scanned
                (forbid-only mode).

        Returns:
            Metrics by package id. Packages that could not be scanned are
            missing from the result.

        Raises:
            ScanError: If a file fails to scan and partial results are not allowed.
        """
        owned: dict[PackageId, list[Path]] = {}
        if resolved_files is not None:
            rust_files = [p for p in resolved_files if p.suffix == RUST_SOURCE_SUFFIX]
            owned = self.assign_owners(graph.packages, rust_files, self.target_directory)

        result: dict[PackageId, PackageMetrics] = {}
        for package in graph.packages:
            if resolved_files is None:
                files = [
                    f for f in self.target_files(package)
                    if f.role.is_entry_point
                ]
            else:
                files = self.target_files(package, resolved_files)
                known = {f.path for f in files}
                files += [
                    ResolvedSourceFile(path=path, role=FileRole.OTHER)
                    for path in owned.get(package.id, [])
                    if path not in known
                ]
            metrics = self._scan_package(package, files)
            if metrics is not None:
                result[package.id] = metrics
        return result

    @staticmethod
    def verdicts(
        graph: DependencyGraph,
        metrics: dict[PackageId, PackageMetrics],
    ) -> dict[PackageId, PackageSafetyVerdict]:
        """Compute the verdict of every package in the graph."""
        return {
            package.id: compute_verdict(metrics.get(package.id))
            for package in graph.packages
        }
