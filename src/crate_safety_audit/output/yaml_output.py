"""
YAML output formatter.
"""

import yaml

from crate_safety_audit.models.report import AuditReport, CompiledFile
from crate_safety_audit.output.formatters import BaseFormatter, register_formatter
from crate_safety_audit.output.json_output import files_to_dict, report_to_dict


@register_formatter("yaml")
class YamlFormatter(BaseFormatter):
    """
    Format output as YAML.
    """

    def format(self, report: AuditReport) -> str:
        """Format an audit report as YAML."""
        return yaml.dump(
            report_to_dict(report),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def format_files(self, files: list[CompiledFile]) -> str:
        """Format a list of compiled files as YAML."""
        return yaml.dump(
            files_to_dict(files),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
