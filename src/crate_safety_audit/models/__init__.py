"""
Data models for Crate Safety Audit.

This package contains Pydantic models for representing packages, the
dependency graph, compiled source files, safety verdicts, tree lines and
audit reports.
"""

from crate_safety_audit.models.package import (
    Package,
    PackageId,
    Target,
    TargetKind,
)
from crate_safety_audit.models.graph import (
    DependencyEdge,
    DependencyGraph,
    DependencyKind,
    EdgeDirection,
)
from crate_safety_audit.models.source import (
    FileMetricsEntry,
    FileRole,
    FileUsageMetrics,
    ResolvedSourceFile,
    UnsafeCounts,
)
from crate_safety_audit.models.verdict import (
    PackageMetrics,
    PackageSafetyVerdict,
)
from crate_safety_audit.models.tree import (
    Charset,
    ExtraDepsGroupLine,
    PackageLine,
    Prefix,
    SymbolKind,
    TreeLine,
)
from crate_safety_audit.models.report import (
    AuditReport,
    CompiledFile,
    PackageSummary,
    ScanMode,
)

__all__ = [
    # Package models
    "Package",
    "PackageId",
    "Target",
    "TargetKind",
    # Graph models
    "DependencyEdge",
    "DependencyGraph",
    "DependencyKind",
    "EdgeDirection",
    # Source file models
    "FileMetricsEntry",
    "FileRole",
    "FileUsageMetrics",
    "ResolvedSourceFile",
    "UnsafeCounts",
    # Verdict models
    "PackageMetrics",
    "PackageSafetyVerdict",
    # Tree models
    "Charset",
    "ExtraDepsGroupLine",
    "PackageLine",
    "Prefix",
    "SymbolKind",
    "TreeLine",
    # Report models
    "AuditReport",
    "CompiledFile",
    "PackageSummary",
    "ScanMode",
]
