"""
Package data models.

Models representing Cargo packages and their build targets, as reported
by ``cargo metadata``.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

CRATES_IO_SOURCE = "registry+https://github.com/rust-lang/crates.io-index"


class TargetKind(str, Enum):
    """Kinds of Cargo build targets."""

    LIB = "lib"
    BIN = "bin"
    TEST = "test"
    BENCH = "bench"
    EXAMPLE_LIB = "example-lib"
    EXAMPLE_BIN = "example-bin"
    CUSTOM_BUILD = "custom-build"

    @classmethod
    def from_metadata(
        cls,
        kinds: list[str],
        crate_types: Optional[list[str]] = None,
    ) -> "TargetKind":
        """
        Map the ``kind`` and ``crate_types`` lists of a metadata target.

        Args:
            kinds: The target's ``kind`` list (e.g. ``["lib"]``, ``["bin"]``).
            crate_types: The target's ``crate_types`` list, used for examples.

        Returns:
            The matching TargetKind.

        Raises:
            ValueError: If no known kind is present.
        """
        crate_types = crate_types or []
        if "custom-build" in kinds:
            return cls.CUSTOM_BUILD
        if "example" in kinds:
            if crate_types and all(ct == "bin" for ct in crate_types):
                return cls.EXAMPLE_BIN
            return cls.EXAMPLE_LIB
        if "bin" in kinds:
            return cls.BIN
        if "test" in kinds:
            return cls.TEST
        if "bench" in kinds:
            return cls.BENCH
        lib_kinds = {"lib", "rlib", "dylib", "cdylib", "staticlib", "proc-macro"}
        if lib_kinds.intersection(kinds):
            return cls.LIB
        raise ValueError(f"Unknown target kind: {kinds}")


class PackageId(BaseModel):
    """Unique identity of a package in the resolved graph."""

    name: str = Field(description="Package name")
    version: str = Field(description="Package version")
    source: Optional[str] = Field(
        default=None,
        description="Registry or git source (None for local path packages)",
    )
    repr_id: str = Field(default="", description="Opaque cargo package id string")

    class Config:
        frozen = True

    @property
    def is_local(self) -> bool:
        """Whether the package comes from a local path."""
        return self.source is None

    @property
    def is_crates_io(self) -> bool:
        """Whether the package comes from crates.io."""
        return self.source == CRATES_IO_SOURCE

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


class Target(BaseModel):
    """A single build target of a package."""

    name: str = Field(description="Target name")
    kind: TargetKind = Field(description="Target kind")
    src_path: Path = Field(description="Path to the target's root source file")

    class Config:
        frozen = True


class Package(BaseModel):
    """A package in the dependency graph."""

    id: PackageId = Field(description="Package identity")
    manifest_path: Path = Field(description="Path to the package's Cargo.toml")
    license: Optional[str] = Field(default=None, description="SPDX license expression")
    repository: Optional[str] = Field(default=None, description="Repository URL")
    features: list[str] = Field(
        default_factory=list,
        description="Features enabled for this package in the resolve",
    )
    targets: list[Target] = Field(default_factory=list, description="Build targets")

    class Config:
        frozen = True

    @property
    def root(self) -> Path:
        """Directory containing the package manifest."""
        return self.manifest_path.parent
