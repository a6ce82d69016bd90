"""
Package display patterns.

A pattern is a format string with the placeholders ``{p}`` (name and
version), ``{l}`` (license), ``{r}`` (repository) and ``{f}`` (features).
``{{`` and ``}}`` produce literal braces.
"""

from typing import NamedTuple, Union

from crate_safety_audit.errors import PatternError
from crate_safety_audit.models.report import PackageSummary

PLACEHOLDERS = ("p", "l", "r", "f")


class Literal(NamedTuple):
    text: str


class Placeholder(NamedTuple):
    name: str


Chunk = Union[Literal, Placeholder]


class Pattern:
    """A parsed package display pattern."""

    def __init__(self, chunks: list[Chunk]) -> None:
        self.chunks = chunks

    @classmethod
    def try_build(cls, text: str) -> "Pattern":
        """
        Parse a pattern string.

        Args:
            text: The pattern, e.g. ``"{p} {l}"``.

        Returns:
            The parsed Pattern.

        Raises:
            PatternError: On unknown placeholders or unbalanced braces.
        """
        chunks: list[Chunk] = []
        literal: list[str] = []
        i = 0
        while i < len(text):
            c = text[i]
            if c == "{" and text.startswith("{{", i):
                literal.append("{")
                i += 2
            elif c == "}" and text.startswith("}}", i):
                literal.append("}")
                i += 2
            elif c == "{":
                end = text.find("}", i)
                if end == -1:
                    raise PatternError(f"Unclosed '{{' in format pattern: {text!r}")
                name = text[i + 1:end]
                if name not in PLACEHOLDERS:
                    raise PatternError(
                        f"Unsupported placeholder '{{{name}}}' in format pattern: {text!r}"
                    )
                if literal:
                    chunks.append(Literal("".join(literal)))
                    literal = []
                chunks.append(Placeholder(name))
                i = end + 1
            elif c == "}":
                raise PatternError(f"Unexpected '}}' in format pattern: {text!r}")
            else:
                literal.append(c)
                i += 1
        if literal:
            chunks.append(Literal("".join(literal)))
        return cls(chunks)

    def display(self, package: PackageSummary) -> str:
        """Render the pattern for a package."""
        parts = []
        for chunk in self.chunks:
            if isinstance(chunk, Literal):
                parts.append(chunk.text)
            else:
                parts.append(self._value(chunk.name, package))
        return "".join(parts)

    @staticmethod
    def _value(name: str, package: PackageSummary) -> str:
        if name == "p":
            text = str(package.package_id)
            if package.package_id.is_local and package.manifest_path is not None:
                text += f" ({package.manifest_path.parent})"
            return text
        if name == "l":
            return package.license or ""
        if name == "r":
            return package.repository or ""
        return ",".join(package.features)
