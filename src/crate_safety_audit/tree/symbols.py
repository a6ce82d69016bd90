"""
Glyphs for tree vines and safety symbols.
"""

from typing import NamedTuple

from crate_safety_audit.models.tree import Charset, SymbolKind


class TreeSymbols(NamedTuple):
    down: str
    tee: str
    ell: str
    right: str


UTF8_TREE_SYMBOLS = TreeSymbols(down="│", tee="├", ell="└", right="─")
ASCII_TREE_SYMBOLS = TreeSymbols(down="|", tee="|", ell="`", right="-")


def get_tree_symbols(charset: Charset) -> TreeSymbols:
    """Get the vine glyphs for a charset."""
    if charset == Charset.ASCII:
        return ASCII_TREE_SYMBOLS
    return UTF8_TREE_SYMBOLS


class EmojiSymbols:
    """Safety symbols for a charset."""

    _UTF8 = {
        SymbolKind.LOCK: "🔒",
        SymbolKind.QUESTION_MARK: "❓",
        SymbolKind.RADS: "☢️",
    }
    _ASCII = {
        SymbolKind.LOCK: ":)",
        SymbolKind.QUESTION_MARK: "?",
        SymbolKind.RADS: "!",
    }

    def __init__(self, charset: Charset) -> None:
        self.charset = charset

    def emoji(self, kind: SymbolKind) -> str:
        """Get the symbol for a kind."""
        symbols = self._ASCII if self.charset == Charset.ASCII else self._UTF8
        return symbols[kind]
