"""
Rendering of audit results.

Every output format is a BaseFormatter subclass registered under the name
accepted by ``--format``. The CLI looks formatters up by that name and
passes format-specific options (colors, charset, display pattern) through
as keyword arguments.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from crate_safety_audit.models.report import AuditReport, CompiledFile


class BaseFormatter(ABC):
    """
    Renders the two results the CLI produces.

    ``scan`` hands over an AuditReport (safety tree, verdict summaries,
    warnings) and ``files`` a list of compiled source files.
    """

    name: str = ""

    @abstractmethod
    def format(self, report: "AuditReport") -> str:
        """
        Render the safety tree and per-package verdicts of a scan.

        Args:
            report: Result of SafetyAuditor.audit().

        Returns:
            The complete output document.
        """

    @abstractmethod
    def format_files(self, files: list["CompiledFile"]) -> str:
        """
        Render the files compiled by the intercepted build.

        Args:
            files: Compiled files, each with its role and owning package.

        Returns:
            The complete output document.
        """


_FORMATTERS: dict[str, type[BaseFormatter]] = {}


def register_formatter(name: str) -> Callable[[type[BaseFormatter]], type[BaseFormatter]]:
    """
    Class decorator making a formatter selectable with ``--format name``.

    Raises:
        ValueError: If another formatter already uses ``name``.
    """
    def decorator(cls: type[BaseFormatter]) -> type[BaseFormatter]:
        existing = _FORMATTERS.get(name)
        if existing is not None and existing is not cls:
            raise ValueError(f"Formatter {name!r} is already registered by {existing.__name__}")
        cls.name = name
        _FORMATTERS[name] = cls
        return cls
    return decorator


def available_formatters() -> list[str]:
    """Names accepted by ``--format``."""
    _load_builtin_formatters()
    return list(_FORMATTERS)


def get_formatter(name: str, **options: Any) -> BaseFormatter:
    """
    Create the formatter for an output format.

    Args:
        name: Output format: "text", "json" or "yaml".
        **options: Formatter options, e.g. ``colorize`` and ``charset``
            for text output.

    Raises:
        ValueError: If no formatter is registered under ``name``.
    """
    _load_builtin_formatters()

    if name not in _FORMATTERS:
        available = ", ".join(_FORMATTERS.keys())
        raise ValueError(f"Unknown formatter: {name}. Available: {available}")

    return _FORMATTERS[name](**options)


def _load_builtin_formatters() -> None:
    # Registration happens on import
    from crate_safety_audit.output import (  # noqa: F401
        json_output,
        text_output,
        yaml_output,
    )
