"""
Output package for Crate Safety Audit.

This package contains formatters for displaying audit results
in various formats (text, JSON, YAML).
"""

from crate_safety_audit.output.formatters import (
    BaseFormatter,
    available_formatters,
    get_formatter,
)
from crate_safety_audit.output.json_output import JsonFormatter
from crate_safety_audit.output.pattern import Pattern
from crate_safety_audit.output.text_output import TextFormatter
from crate_safety_audit.output.yaml_output import YamlFormatter

__all__ = [
    "BaseFormatter",
    "JsonFormatter",
    "Pattern",
    "TextFormatter",
    "YamlFormatter",
    "available_formatters",
    "get_formatter",
]
