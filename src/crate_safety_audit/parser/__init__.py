"""
Parser package for Crate Safety Audit.

This package contains modules for:
- rustc dep-info (.d) file parsing
- cargo metadata loading into a dependency graph
"""

from crate_safety_audit.parser.dep_info import parse_dep_info, parse_dep_info_text
from crate_safety_audit.parser.metadata import CargoMetadata

__all__ = [
    "CargoMetadata",
    "parse_dep_info",
    "parse_dep_info_text",
]
