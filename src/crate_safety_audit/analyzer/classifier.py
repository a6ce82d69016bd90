"""
Classification of compiled files by the role of their target.
"""

from pathlib import Path

from crate_safety_audit.models.package import TargetKind
from crate_safety_audit.models.source import FileRole, ResolvedSourceFile

_ROLE_BY_KIND = {
    TargetKind.LIB: FileRole.LIBRARY_ROOT,
    TargetKind.BIN: FileRole.BINARY_ROOT,
    TargetKind.CUSTOM_BUILD: FileRole.BUILD_SCRIPT_ROOT,
    # Compiled, but not part of the package's public safety contract
    TargetKind.TEST: FileRole.OTHER,
    TargetKind.BENCH: FileRole.OTHER,
    TargetKind.EXAMPLE_LIB: FileRole.OTHER,
    TargetKind.EXAMPLE_BIN: FileRole.OTHER,
}


def classify(kind: TargetKind) -> FileRole:
    """Map a target kind to the role of its root file."""
    return _ROLE_BY_KIND[kind]


def into_source_file(kind: TargetKind, path: Path) -> ResolvedSourceFile:
    """Pair a target's root file with the role of the target."""
    return ResolvedSourceFile(path=path, role=classify(kind))
