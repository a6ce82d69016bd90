"""
Crate Safety Audit

A CLI tool that audits a Cargo project's dependency graph for unsafe code.
It intercepts a real build to find the source files that are actually
compiled, scans them for unsafe usage and renders the result as an
annotated dependency tree.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("crate-safety-audit")
except PackageNotFoundError:
    __version__ = "0.1.0"

# Public API exports
__all__ = [
    "__version__",
]
