"""
Analyzer package for Crate Safety Audit.

This package contains modules for:
- Classifying compiled files by target role
- Syntax-tree scanning of Rust sources for unsafe usage
- Aggregating file metrics into package verdicts
- Orchestrating the whole audit
"""

from crate_safety_audit.analyzer.aggregator import UnsafeUsageAggregator, compute_verdict
from crate_safety_audit.analyzer.auditor import SafetyAuditor
from crate_safety_audit.analyzer.classifier import classify, into_source_file
from crate_safety_audit.analyzer.scanner import FileScanner, TreeSitterUnsafeScanner

__all__ = [
    "FileScanner",
    "TreeSitterUnsafeScanner",
    "SafetyAuditor",
    "UnsafeUsageAggregator",
    "classify",
    "compute_verdict",
    "into_source_file",
]
