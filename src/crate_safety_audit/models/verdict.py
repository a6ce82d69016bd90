"""
Package safety verdict models.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from crate_safety_audit.models.package import PackageId
from crate_safety_audit.models.source import FileMetricsEntry, UnsafeCounts


class PackageSafetyVerdict(str, Enum):
    """Safety verdict of a package."""

    FORBIDS_UNSAFE_EVERYWHERE = "forbids_unsafe"  # All entry points forbid unsafe code
    NONE_DETECTED_BUT_NOT_FORBIDDEN = "none_detected"  # No unsafe found, or unknown
    UNSAFE_DETECTED = "unsafe_detected"           # Unsafe usage found


class PackageMetrics(BaseModel):
    """Scanned files of one package."""

    package_id: PackageId = Field(description="The package these metrics belong to")
    files: dict[Path, FileMetricsEntry] = Field(
        default_factory=dict,
        description="Metrics by canonical file path",
    )

    @property
    def entry_points(self) -> list[FileMetricsEntry]:
        """Metrics of the package's entry-point files."""
        return [entry for entry in self.files.values() if entry.is_entry_point]

    @property
    def counts(self) -> UnsafeCounts:
        """Unsafe counts summed over every scanned file."""
        total = UnsafeCounts()
        for entry in self.files.values():
            total = total + entry.metrics.counts
        return total
