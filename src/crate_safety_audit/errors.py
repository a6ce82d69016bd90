"""
Error types for Crate Safety Audit.

Every failure the audit can report derives from SafetyAuditError. None of
them is retried here: each one aborts the current run and carries the exit
code the CLI reports for it.
"""

from pathlib import Path
from typing import Optional


class SafetyAuditError(Exception):
    """Base class for all audit errors."""

    exit_code = 1


class BuildFailedError(SafetyAuditError):
    """The cargo build (or clean) step failed."""

    exit_code = 101

    def __init__(self, message: str, diagnostics: str = "") -> None:
        self.diagnostics = diagnostics
        detail = f"{message}\n{diagnostics.rstrip()}" if diagnostics.strip() else message
        super().__init__(detail)


class ContextOwnershipError(SafetyAuditError):
    """The interceptor context still had more than one owner when drained."""

    exit_code = 102


class ContextLockAbandonedError(SafetyAuditError):
    """The interceptor context lock was poisoned by a failing invocation."""

    exit_code = 103


class DependencyFileParseError(SafetyAuditError):
    """A rustc dep-info file could not be read or parsed."""

    exit_code = 104

    def __init__(self, message: str, path: Path) -> None:
        self.path = path
        super().__init__(f"{message} ({path})")


class PathResolutionError(SafetyAuditError):
    """A path listed in a dep-info file could not be canonicalized."""

    exit_code = 105

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot resolve {path}: {cause}")


class DirectoryWalkError(SafetyAuditError):
    """Walking a compiler output directory failed."""

    exit_code = 106

    def __init__(self, path: Path, cause: Optional[OSError] = None) -> None:
        self.path = path
        self.cause = cause
        reason = f": {cause}" if cause else ""
        super().__init__(f"Failed to walk {path}{reason}")


class MetadataError(SafetyAuditError):
    """cargo metadata failed or returned something unusable."""

    exit_code = 107


class ScanError(SafetyAuditError):
    """A source file could not be scanned."""

    exit_code = 108

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to scan {path}: {cause}")


class PatternError(SafetyAuditError):
    """An invalid package display pattern."""

    exit_code = 2
