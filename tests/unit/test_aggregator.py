"""
Unit tests for unsafe usage aggregation and package verdicts.
"""

from pathlib import Path
from typing import Callable

import pytest

from crate_safety_audit.analyzer.aggregator import UnsafeUsageAggregator, compute_verdict
from crate_safety_audit.analyzer.scanner import TreeSitterUnsafeScanner
from crate_safety_audit.errors import ScanError
from crate_safety_audit.models.graph import DependencyGraph
from crate_safety_audit.models.package import Package, PackageId, TargetKind
from crate_safety_audit.models.source import (
    FileMetricsEntry,
    FileRole,
    FileUsageMetrics,
    ResolvedSourceFile,
    UnsafeCounts,
)
from crate_safety_audit.models.verdict import PackageMetrics, PackageSafetyVerdict

PKG = PackageId(name="pkg", version="1.0.0")


def _entry(path: str, role: FileRole, forbids: bool = False, exprs: int = 0) -> FileMetricsEntry:
    return FileMetricsEntry(
        file=ResolvedSourceFile(path=Path(path), role=role),
        metrics=FileUsageMetrics(counts=UnsafeCounts(exprs=exprs), forbids_unsafe=forbids),
    )


def _metrics(*entries: FileMetricsEntry) -> PackageMetrics:
    return PackageMetrics(package_id=PKG, files={e.file.path: e for e in entries})


class TestComputeVerdict:
    """Tests for the verdict rules."""

    def test_no_metrics(self) -> None:
        """Test that a package without metrics is neutral."""
        assert compute_verdict(None) == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    def test_empty_metrics(self) -> None:
        """Test that a package without files is neutral."""
        assert compute_verdict(_metrics()) == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    def test_no_entry_points_even_with_unsafe(self) -> None:
        """Test that unsafe code without any entry point stays neutral."""
        metrics = _metrics(_entry("/p/src/util.rs", FileRole.OTHER, exprs=3))

        assert compute_verdict(metrics) == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    def test_all_entry_points_forbid(self) -> None:
        """Test that forbidding everywhere wins."""
        metrics = _metrics(
            _entry("/p/src/lib.rs", FileRole.LIBRARY_ROOT, forbids=True),
            _entry("/p/src/main.rs", FileRole.BINARY_ROOT, forbids=True),
        )

        assert compute_verdict(metrics) == PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE

    def test_forbid_takes_precedence_over_counts(self) -> None:
        """Test that counts in non-entry files do not override forbidding."""
        metrics = _metrics(
            _entry("/p/src/lib.rs", FileRole.LIBRARY_ROOT, forbids=True),
            _entry("/p/src/gen.rs", FileRole.OTHER, exprs=1),
        )

        assert compute_verdict(metrics) == PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE

    def test_one_entry_point_not_forbidding(self) -> None:
        """Test that a single non-forbidding entry point breaks forbidding."""
        metrics = _metrics(
            _entry("/p/src/lib.rs", FileRole.LIBRARY_ROOT, forbids=True),
            _entry("/p/build.rs", FileRole.BUILD_SCRIPT_ROOT),
        )

        assert compute_verdict(metrics) == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN

    def test_unsafe_detected(self) -> None:
        """Test that any unsafe count is reported."""
        metrics = _metrics(
            _entry("/p/src/lib.rs", FileRole.LIBRARY_ROOT),
            _entry("/p/src/ffi.rs", FileRole.OTHER, exprs=2),
        )

        assert compute_verdict(metrics) == PackageSafetyVerdict.UNSAFE_DETECTED

    def test_package_counts_summed(self) -> None:
        """Test that package counts add up over files."""
        metrics = _metrics(
            _entry("/p/src/lib.rs", FileRole.LIBRARY_ROOT, exprs=1),
            _entry("/p/src/ffi.rs", FileRole.OTHER, exprs=2),
        )

        assert metrics.counts.exprs == 3
        assert len(metrics.entry_points) == 1


class TestTargetFilesAndOwners:
    """Tests for target classification and file ownership."""

    def test_target_files_filters_by_resolved(
        self,
        package_factory: Callable[..., Package],
        workspace: Path,
    ) -> None:
        """Test that only compiled target roots are kept when resolved is given."""
        package = package_factory("p", targets=[
            ("p", TargetKind.LIB, "src/lib.rs"),
            ("p", TargetKind.BIN, "src/main.rs"),
            ("build-script-build", TargetKind.CUSTOM_BUILD, "build.rs"),
        ])
        lib = workspace / "p" / "src" / "lib.rs"

        files = UnsafeUsageAggregator.target_files(package, {lib})

        assert files == [ResolvedSourceFile(path=lib, role=FileRole.LIBRARY_ROOT)]

    def test_shared_root_prefers_entry_role(
        self,
        package_factory: Callable[..., Package],
        workspace: Path,
    ) -> None:
        """Test that a file shared by an example and the lib keeps the lib role."""
        package = package_factory("p", targets=[
            ("ex", TargetKind.EXAMPLE_LIB, "src/lib.rs"),
            ("p", TargetKind.LIB, "src/lib.rs"),
        ])

        files = UnsafeUsageAggregator.target_files(package)

        assert len(files) == 1
        assert files[0].role == FileRole.LIBRARY_ROOT

    def test_longest_root_wins(self, package_factory: Callable[..., Package], workspace: Path) -> None:
        """Test that nested packages own their own files."""
        outer = package_factory("outer")
        inner = package_factory("outer/vendor/inner")
        outer_file = workspace / "outer" / "src" / "a.rs"
        inner_file = workspace / "outer" / "vendor" / "inner" / "src" / "b.rs"
        stray = workspace / "elsewhere.rs"

        owned = UnsafeUsageAggregator.assign_owners(
            [outer, inner],
            [outer_file, inner_file, stray],
        )

        assert owned == {outer.id: [outer_file], inner.id: [inner_file]}

    def test_target_directory_skipped(
        self,
        package_factory: Callable[..., Package],
        workspace: Path,
    ) -> None:
        """Test that files under the target directory have no owner."""
        package = package_factory("proj")
        target_dir = workspace / "proj" / "target"
        source = workspace / "proj" / "src" / "a.rs"
        generated = target_dir / "debug" / "build" / "dep-1" / "out" / "gen.rs"

        owned = UnsafeUsageAggregator.assign_owners([package], [source, generated], target_dir)

        assert owned == {package.id: [source]}


class TestAggregate:
    """Tests for scanning a whole graph."""

    @pytest.fixture
    def crates(self, write_crate: Callable[..., Path]) -> dict[str, Path]:
        """Write the crates of the sample graph to disk."""
        return {
            "app": write_crate("app", {
                "src/lib.rs": "mod ffi;\npub fn hello() {}\n",
                "src/ffi.rs": "pub fn f() { unsafe {} }\n",
            }),
            "safe_dep": write_crate("safe_dep", {"src/lib.rs": "#![forbid(unsafe_code)]\n"}),
            "unsafe_dep": write_crate("unsafe_dep", {"src/lib.rs": "pub unsafe fn f() {}\n"}),
        }

    def test_full_mode(self, sample_graph: DependencyGraph, crates: dict[str, Path]) -> None:
        """Test verdicts when every compiled file is known."""
        resolved = {
            crates["app"] / "src" / "lib.rs",
            crates["app"] / "src" / "ffi.rs",
            crates["safe_dep"] / "src" / "lib.rs",
            crates["unsafe_dep"] / "src" / "lib.rs",
        }
        aggregator = UnsafeUsageAggregator(TreeSitterUnsafeScanner())

        metrics = aggregator.aggregate(sample_graph, resolved)
        verdicts = aggregator.verdicts(sample_graph, metrics)

        by_name = {pid.name: v for pid, v in verdicts.items()}
        assert by_name == {
            "app": PackageSafetyVerdict.UNSAFE_DETECTED,
            "safe_dep": PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE,
            "unsafe_dep": PackageSafetyVerdict.UNSAFE_DETECTED,
        }
        app_metrics = next(m for pid, m in metrics.items() if pid.name == "app")
        roles = {path.name: entry.file.role for path, entry in app_metrics.files.items()}
        assert roles == {"lib.rs": FileRole.LIBRARY_ROOT, "ffi.rs": FileRole.OTHER}

    def test_forbid_only_mode(self, sample_graph: DependencyGraph, crates: dict[str, Path]) -> None:
        """Test that forbid-only mode scans entry points alone."""
        aggregator = UnsafeUsageAggregator(TreeSitterUnsafeScanner())

        metrics = aggregator.aggregate(sample_graph, None)
        verdicts = aggregator.verdicts(sample_graph, metrics)

        by_name = {pid.name: v for pid, v in verdicts.items()}
        # ffi.rs is not an entry point, so the app looks clean
        assert by_name["app"] == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN
        assert by_name["safe_dep"] == PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE
        assert by_name["unsafe_dep"] == PackageSafetyVerdict.UNSAFE_DETECTED

    def test_scan_failure_dropped_when_partial(self, sample_graph: DependencyGraph) -> None:
        """Test that a package whose files are missing becomes unknown."""
        aggregator = UnsafeUsageAggregator(TreeSitterUnsafeScanner())

        metrics = aggregator.aggregate(sample_graph, None)

        assert metrics == {}
        assert len(aggregator.warnings) == 3
        verdicts = aggregator.verdicts(sample_graph, metrics)
        assert set(verdicts.values()) == {PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN}

    def test_scan_failure_raised_when_strict(self, sample_graph: DependencyGraph) -> None:
        """Test that strict aggregation aborts on the first scan failure."""
        aggregator = UnsafeUsageAggregator(TreeSitterUnsafeScanner(), allow_partial_results=False)

        with pytest.raises(ScanError):
            aggregator.aggregate(sample_graph, None)

    def test_generated_files_not_charged_to_root(
        self,
        sample_graph: DependencyGraph,
        crates: dict[str, Path],
    ) -> None:
        """Test that build script output under the target directory is skipped."""
        target_dir = crates["app"] / "target"
        generated = target_dir / "debug" / "build" / "unsafe_dep-123" / "out" / "gen.rs"
        generated.parent.mkdir(parents=True)
        generated.write_text("pub fn g() { unsafe {} }\n", encoding="utf-8")
        resolved = {
            crates["app"] / "src" / "lib.rs",
            generated,
            crates["safe_dep"] / "src" / "lib.rs",
        }
        aggregator = UnsafeUsageAggregator(TreeSitterUnsafeScanner(), target_directory=target_dir)

        metrics = aggregator.aggregate(sample_graph, resolved)
        verdicts = aggregator.verdicts(sample_graph, metrics)

        by_name = {pid.name: v for pid, v in verdicts.items()}
        assert by_name["app"] == PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN
        app_metrics = next(m for pid, m in metrics.items() if pid.name == "app")
        assert generated not in app_metrics.files
