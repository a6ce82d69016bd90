"""
JSON output formatter.
"""

import json
from typing import Any

from crate_safety_audit.models.report import AuditReport, CompiledFile
from crate_safety_audit.output.formatters import BaseFormatter, register_formatter


def report_to_dict(report: AuditReport) -> dict[str, Any]:
    """Convert an audit report to plain data."""
    return {
        "timestamp": report.timestamp.isoformat(),
        "manifest_path": report.manifest_path,
        "root": str(report.root),
        "scan_mode": report.scan_mode.value,
        "summary": {
            "packages": report.package_count,
            "forbids_unsafe": report.forbids_count,
            "unsafe_detected": report.unsafe_count,
            "resolved_files": report.resolved_file_count,
            "analysis_duration_ms": report.analysis_duration_ms,
        },
        "tree": [line.model_dump(mode="json") for line in report.lines],
        "packages": [p.model_dump(mode="json") for p in report.packages],
        "errors": report.errors,
        "warnings": report.warnings,
    }


def files_to_dict(files: list[CompiledFile]) -> dict[str, Any]:
    """Convert a compiled file listing to plain data."""
    return {
        "total": len(files),
        "files": [
            {
                "path": str(f.path),
                "role": f.role.value,
                "package": str(f.package_id) if f.package_id else None,
            }
            for f in files
        ],
    }


@register_formatter("json")
class JsonFormatter(BaseFormatter):
    """
    Format output as JSON.
    """

    def __init__(self, indent: int = 2) -> None:
        """
        Initialize the JSON formatter.

        Args:
            indent: JSON indentation level.
        """
        self.indent = indent

    def format(self, report: AuditReport) -> str:
        """Format an audit report as JSON."""
        return json.dumps(report_to_dict(report), indent=self.indent, default=str)

    def format_files(self, files: list[CompiledFile]) -> str:
        """Format a list of compiled files as JSON."""
        return json.dumps(files_to_dict(files), indent=self.indent, default=str)
