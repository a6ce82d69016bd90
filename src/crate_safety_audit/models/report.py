"""
Report data models.

Models representing audit reports and results.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional, Union

from pydantic import BaseModel, Field

from crate_safety_audit.models.package import PackageId
from crate_safety_audit.models.source import FileRole, UnsafeCounts
from crate_safety_audit.models.tree import ExtraDepsGroupLine, PackageLine
from crate_safety_audit.models.verdict import PackageSafetyVerdict


class ScanMode(str, Enum):
    """How source files were discovered."""

    FULL = "full"                # Intercepted build + dep-info files
    FORBID_ONLY = "forbid_only"  # Entry points only, no build


class PackageSummary(BaseModel):
    """Per-package result of the audit."""

    package_id: PackageId = Field(description="The package")
    verdict: PackageSafetyVerdict = Field(description="Safety verdict")
    scanned_files: int = Field(default=0, description="Number of scanned files")
    entry_points: int = Field(default=0, description="Number of scanned entry points")
    counts: UnsafeCounts = Field(default_factory=UnsafeCounts)
    metrics_available: bool = Field(
        default=True,
        description="False when the package could not be scanned",
    )
    manifest_path: Optional[Path] = Field(default=None, description="Package Cargo.toml")
    license: Optional[str] = Field(default=None, description="SPDX license expression")
    repository: Optional[str] = Field(default=None, description="Repository URL")
    features: list[str] = Field(default_factory=list, description="Enabled features")

    class Config:
        frozen = True


class CompiledFile(BaseModel):
    """A resolved compiled file with its owning package, for listings."""

    path: Path = Field(description="Canonical file path")
    role: FileRole = Field(default=FileRole.OTHER)
    package_id: Optional[PackageId] = Field(
        default=None,
        description="Owning package (None if outside every package root)",
    )

    class Config:
        frozen = True


class AuditReport(BaseModel):
    """Complete audit report."""

    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the audit was performed",
    )
    manifest_path: str = Field(description="Path to the audited Cargo.toml")
    root: PackageId = Field(description="Root package of the tree")
    scan_mode: ScanMode = Field(default=ScanMode.FULL)
    lines: list[
        Annotated[Union[PackageLine, ExtraDepsGroupLine], Field(discriminator="type")]
    ] = Field(
        default_factory=list,
        description="Rendered dependency tree lines",
    )
    packages: list[PackageSummary] = Field(
        default_factory=list,
        description="Per-package results in graph order",
    )
    resolved_file_count: int = Field(
        default=0,
        description="Number of compiled files found by the build",
    )
    analysis_duration_ms: Optional[float] = Field(
        default=None,
        description="How long the audit took in milliseconds",
    )
    errors: list[str] = Field(
        default_factory=list,
        description="Any errors encountered during the audit",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Any warnings from the audit",
    )

    @property
    def package_count(self) -> int:
        """Number of audited packages."""
        return len(self.packages)

    def count_verdict(self, verdict: PackageSafetyVerdict) -> int:
        """Number of packages with the given verdict."""
        return sum(1 for p in self.packages if p.verdict == verdict)

    @property
    def unsafe_count(self) -> int:
        """Number of packages with detected unsafe usage."""
        return self.count_verdict(PackageSafetyVerdict.UNSAFE_DETECTED)

    @property
    def forbids_count(self) -> int:
        """Number of packages whose entry points all forbid unsafe code."""
        return self.count_verdict(PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE)

    @property
    def has_errors(self) -> bool:
        """Check if there were any errors."""
        return len(self.errors) > 0

    def get_packages_by_verdict(
        self,
        verdict: PackageSafetyVerdict,
    ) -> list[PackageSummary]:
        """Get package summaries filtered by verdict."""
        return [p for p in self.packages if p.verdict == verdict]
