"""
Human-readable text output formatter.
"""

from io import StringIO
from typing import Optional

from rich.console import Console
from rich.text import Text

from crate_safety_audit.models.report import AuditReport, CompiledFile, PackageSummary
from crate_safety_audit.models.tree import Charset, ExtraDepsGroupLine, PackageLine, SymbolKind
from crate_safety_audit.models.verdict import PackageSafetyVerdict
from crate_safety_audit.output.formatters import BaseFormatter, register_formatter
from crate_safety_audit.output.pattern import Pattern
from crate_safety_audit.tree.symbols import EmojiSymbols

_KEY_ENTRIES = (
    (SymbolKind.LOCK, "No `unsafe` usage found, declares #![forbid(unsafe_code)]"),
    (SymbolKind.QUESTION_MARK, "No `unsafe` usage found, missing #![forbid(unsafe_code)]"),
    (SymbolKind.RADS, "`unsafe` usage found"),
)


@register_formatter("text")
class TextFormatter(BaseFormatter):
    """
    Format output as a dependency tree using Rich.
    """

    def __init__(
        self,
        colorize: bool = True,
        charset: Charset = Charset.UTF8,
        pattern: str = "{p}",
    ) -> None:
        """
        Initialize the text formatter.

        Args:
            colorize: Whether to use colors in output.
            charset: Character set for the safety symbols.
            pattern: Package display pattern.

        Raises:
            PatternError: If the pattern is invalid.
        """
        self.colorize = colorize
        self.symbols = EmojiSymbols(charset)
        self.pattern = Pattern.try_build(pattern)

    def _verdict_style(self, verdict: PackageSafetyVerdict) -> str:
        """Get the style for a verdict."""
        if not self.colorize:
            return ""

        styles = {
            PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE: "green",
            PackageSafetyVerdict.UNSAFE_DETECTED: "bold red",
        }
        return styles.get(verdict, "")

    def _console(self, output: StringIO) -> Console:
        return Console(
            file=output,
            force_terminal=self.colorize,
            no_color=not self.colorize,
            width=120,
            highlight=False,
            soft_wrap=True,
        )

    def _package_line(self, line: PackageLine, summary: Optional[PackageSummary]) -> Text:
        summary = summary or PackageSummary(package_id=line.package_id, verdict=line.verdict)
        symbol = self.symbols.emoji(line.symbol)
        return Text(
            f"{symbol:<2} {line.tree_vines}{self.pattern.display(summary)}",
            style=self._verdict_style(line.verdict),
        )

    def format(self, report: AuditReport) -> str:
        """Format an audit report as a tree."""
        output = StringIO()
        console = self._console(output)

        # Symbol key
        console.print()
        console.print(Text("Symbols: ", style="bold" if self.colorize else ""))
        for kind, description in _KEY_ENTRIES:
            console.print(Text(f"    {self.symbols.emoji(kind):<2} = {description}"))
        console.print()

        summaries = {p.package_id: p for p in report.packages}
        for line in report.lines:
            if isinstance(line, ExtraDepsGroupLine):
                console.print(Text(f"   {line.tree_vines}[{line.label}]"))
            else:
                console.print(self._package_line(line, summaries.get(line.package_id)))
        console.print()

        # Summary
        console.print(Text("Summary", style="bold" if self.colorize else ""))
        console.print(Text(f"  Packages: {report.package_count}"))
        console.print(Text(
            f"  Forbid unsafe: {report.forbids_count}",
            style=self._verdict_style(PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE),
        ))
        console.print(Text(
            "  No unsafe found: "
            f"{report.count_verdict(PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN)}"
        ))
        console.print(Text(
            f"  Unsafe detected: {report.unsafe_count}",
            style=self._verdict_style(PackageSafetyVerdict.UNSAFE_DETECTED),
        ))
        if report.analysis_duration_ms:
            console.print(Text(f"  Analysis Time: {report.analysis_duration_ms:.2f}ms"))
        console.print()

        if report.errors:
            console.print(Text("Errors", style="bold red" if self.colorize else ""))
            for error in report.errors:
                console.print(Text(f"  {error}"))
            console.print()

        if report.warnings:
            console.print(Text("Warnings", style="bold yellow" if self.colorize else ""))
            for warning in report.warnings:
                console.print(Text(f"  {warning}"))
            console.print()

        return output.getvalue()

    def format_files(self, files: list[CompiledFile]) -> str:
        """Format compiled files, one per line."""
        output = StringIO()
        console = self._console(output)

        if not files:
            console.print(Text("No compiled files found."))
            return output.getvalue()

        for compiled in files:
            owner = str(compiled.package_id) if compiled.package_id else "-"
            console.print(Text(f"{compiled.path}  [{compiled.role.value}]  {owner}"))
        console.print()
        console.print(Text(f"Total: {len(files)} files"))

        return output.getvalue()
