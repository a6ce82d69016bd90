"""
Tree package for Crate Safety Audit.

This package contains the dependency tree walk, its options and the
glyphs used to render it.
"""

from crate_safety_audit.tree.options import TreeOptions
from crate_safety_audit.tree.symbols import EmojiSymbols, get_tree_symbols
from crate_safety_audit.tree.traversal import walk_dependency_tree

__all__ = [
    "EmojiSymbols",
    "TreeOptions",
    "get_tree_symbols",
    "walk_dependency_tree",
]
