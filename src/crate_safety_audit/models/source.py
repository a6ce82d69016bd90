"""
Source file data models.

Models representing compiled source files, their structural role and the
unsafe usage found in them.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class FileRole(str, Enum):
    """Structural role of a compiled source file."""

    LIBRARY_ROOT = "lib_root"               # Library entry point, usually src/lib.rs
    BINARY_ROOT = "bin_root"                # Executable entry point, usually src/main.rs
    BUILD_SCRIPT_ROOT = "build_script_root" # build.rs
    OTHER = "other"                         # Everything else

    @property
    def is_entry_point(self) -> bool:
        """Whether files with this role are package entry points."""
        return self != FileRole.OTHER


class ResolvedSourceFile(BaseModel):
    """A compiled source file with its role."""

    path: Path = Field(description="Absolute, canonical path")
    role: FileRole = Field(default=FileRole.OTHER, description="Structural role")

    class Config:
        frozen = True


class UnsafeCounts(BaseModel):
    """Counts of unsafe constructs in a file."""

    functions: int = Field(default=0, ge=0, description="unsafe fn items")
    exprs: int = Field(default=0, ge=0, description="unsafe blocks")
    item_traits: int = Field(default=0, ge=0, description="unsafe trait items")
    item_impls: int = Field(default=0, ge=0, description="unsafe impl items")
    methods: int = Field(default=0, ge=0, description="unsafe fn inside impl/trait")

    class Config:
        frozen = True

    @property
    def total(self) -> int:
        """Total number of unsafe constructs."""
        return self.functions + self.exprs + self.item_traits + self.item_impls + self.methods

    @property
    def has_unsafe(self) -> bool:
        """Whether any unsafe construct was counted."""
        return self.total > 0

    def __add__(self, other: "UnsafeCounts") -> "UnsafeCounts":
        return UnsafeCounts(
            functions=self.functions + other.functions,
            exprs=self.exprs + other.exprs,
            item_traits=self.item_traits + other.item_traits,
            item_impls=self.item_impls + other.item_impls,
            methods=self.methods + other.methods,
        )


class FileUsageMetrics(BaseModel):
    """Unsafe usage metrics of a single source file."""

    counts: UnsafeCounts = Field(default_factory=UnsafeCounts)
    forbids_unsafe: bool = Field(
        default=False,
        description="Whether the file declares #![forbid(unsafe_code)]",
    )

    class Config:
        frozen = True


class FileMetricsEntry(BaseModel):
    """Metrics of a file together with its role in its package."""

    file: ResolvedSourceFile
    metrics: FileUsageMetrics

    class Config:
        frozen = True

    @property
    def is_entry_point(self) -> bool:
        """All entry points must forbid unsafe code for it to count package-wide."""
        return self.file.role.is_entry_point
