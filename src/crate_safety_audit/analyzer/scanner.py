"""
Syntax-tree scanner for unsafe usage in Rust source files.

Files are parsed with the tree-sitter Rust grammar and unsafe items are
counted from the parse tree. Macro bodies stay unexpanded token trees, so
unsafe code that only appears inside a macro definition is not counted.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Protocol

from tree_sitter_language_pack import get_parser

from crate_safety_audit.errors import ScanError
from crate_safety_audit.models.source import FileUsageMetrics, UnsafeCounts

logger = logging.getLogger(__name__)

_FUNCTION_NODES = {"function_item", "function_signature_item"}
_METHOD_CONTAINERS = {"impl_item", "trait_item"}
_TRIVIA_NODES = {"attribute_item", "line_comment", "block_comment"}
_TEST_ATTRIBUTES = {b"test", b"cfg(test)"}


class FileScanner(Protocol):
    """Produces unsafe usage metrics for one source file."""

    def scan(self, path: Path) -> FileUsageMetrics:
        ...


@lru_cache(maxsize=None)
def _rust_parser():
    return get_parser("rust")


def _compact(node) -> bytes:
    """Node text with all whitespace removed."""
    return b"".join(node.text.split())


def _attribute(node):
    for child in node.children:
        if child.type == "attribute":
            return child
    return None


def _is_forbid_unsafe(node) -> bool:
    """Whether an inner attribute item is ``#![forbid(..., unsafe_code, ...)]``."""
    attribute = _attribute(node)
    if attribute is None:
        return False
    text = _compact(attribute)
    if not (text.startswith(b"forbid(") and text.endswith(b")")):
        return False
    return b"unsafe_code" in text[len(b"forbid("):-1].split(b",")


def _is_test_attribute(node) -> bool:
    attribute = _attribute(node)
    return attribute is not None and _compact(attribute) in _TEST_ATTRIBUTES


def _has_unsafe_modifier(node) -> bool:
    for child in node.children:
        if child.type == "unsafe":
            return True
        if child.type == "function_modifiers":
            return any(m.type == "unsafe" for m in child.children)
    return False


def _is_method(node) -> bool:
    parent = node.parent
    return (
        parent is not None
        and parent.type == "declaration_list"
        and parent.parent is not None
        and parent.parent.type in _METHOD_CONTAINERS
    )


class _UnsafeCounter:
    """Walks a parse tree and tallies unsafe constructs."""

    def __init__(self, include_tests: bool) -> None:
        self.include_tests = include_tests
        self.functions = 0
        self.exprs = 0
        self.item_traits = 0
        self.item_impls = 0
        self.methods = 0

    def visit(self, node) -> None:
        kind = node.type
        if kind == "unsafe_block":
            self.exprs += 1
        elif kind in _FUNCTION_NODES and _has_unsafe_modifier(node):
            if _is_method(node):
                self.methods += 1
            else:
                self.functions += 1
        elif kind == "trait_item" and _has_unsafe_modifier(node):
            self.item_traits += 1
        elif kind == "impl_item" and _has_unsafe_modifier(node):
            self.item_impls += 1
        self.visit_children(node)

    def visit_children(self, node) -> None:
        # Outer attributes are siblings of the item they annotate.
        skip_next = False
        for child in node.children:
            if child.type == "attribute_item" and not self.include_tests:
                skip_next = skip_next or _is_test_attribute(child)
                continue
            if child.type in _TRIVIA_NODES:
                continue
            if skip_next:
                skip_next = False
                continue
            self.visit(child)

    def counts(self) -> UnsafeCounts:
        return UnsafeCounts(
            functions=self.functions,
            exprs=self.exprs,
            item_traits=self.item_traits,
            item_impls=self.item_impls,
            methods=self.methods,
        )


def scan_source(source: bytes, include_tests: bool = False) -> FileUsageMetrics:
    """
    Count unsafe constructs in Rust source.

    Args:
        source: Contents of a .rs file.
        include_tests: Count code under ``#[test]`` and ``#[cfg(test)]``.

    Returns:
        FileUsageMetrics for the source.
    """
    tree = _rust_parser().parse(source)
    root = tree.root_node

    forbids_unsafe = any(
        child.type == "inner_attribute_item" and _is_forbid_unsafe(child)
        for child in root.children
    )
    counter = _UnsafeCounter(include_tests)
    counter.visit_children(root)

    return FileUsageMetrics(counts=counter.counts(), forbids_unsafe=forbids_unsafe)


class TreeSitterUnsafeScanner:
    """
    Default FileScanner.

    Results are cached per path, since a file can be shared by several
    targets.
    """

    def __init__(self, include_tests: bool = False) -> None:
        """
        Initialize the scanner.

        Args:
            include_tests: Count unsafe usage inside test code.
        """
        self.include_tests = include_tests
        self._cache: dict[Path, FileUsageMetrics] = {}

    def scan(self, path: Path) -> FileUsageMetrics:
        """
        Scan one source file.

        Raises:
            ScanError: If the file cannot be read or is not UTF-8.
        """
        if path in self._cache:
            return self._cache[path]
        try:
            source = path.read_bytes()
            source.decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ScanError(path, e) from e
        metrics = scan_source(source, include_tests=self.include_tests)
        logger.debug("Scanned %s: %d unsafe construct(s)", path, metrics.counts.total)
        self._cache[path] = metrics
        return metrics
