"""
Dependency tree data models.

Lines produced by the tree walk, plus the rendering choices that shape
them.
"""

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field

from crate_safety_audit.models.graph import DependencyKind, get_kind_group_name
from crate_safety_audit.models.package import PackageId
from crate_safety_audit.models.verdict import PackageSafetyVerdict


class Charset(str, Enum):
    """Character set used for tree vines and symbols."""

    UTF8 = "utf8"
    ASCII = "ascii"


class Prefix(str, Enum):
    """How each tree line is prefixed."""

    DEPTH = "depth"    # Numeric depth
    INDENT = "indent"  # Tree vines
    NONE = "none"      # No indentation


class SymbolKind(str, Enum):
    """Safety symbols shown next to packages."""

    LOCK = "lock"
    QUESTION_MARK = "question_mark"
    RADS = "rads"

    @classmethod
    def for_verdict(cls, verdict: PackageSafetyVerdict) -> "SymbolKind":
        """Pick the symbol for a package verdict."""
        if verdict == PackageSafetyVerdict.FORBIDS_UNSAFE_EVERYWHERE:
            return cls.LOCK
        if verdict == PackageSafetyVerdict.UNSAFE_DETECTED:
            return cls.RADS
        return cls.QUESTION_MARK


class PackageLine(BaseModel):
    """A tree line for a package."""

    type: Literal["package"] = "package"
    package_id: PackageId = Field(description="The rendered package")
    tree_vines: str = Field(default="", description="Rendering prefix")
    depth: int = Field(default=0, ge=0, description="Depth below the root")
    verdict: PackageSafetyVerdict = Field(
        default=PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN,
    )
    symbol: SymbolKind = Field(default=SymbolKind.QUESTION_MARK)

    class Config:
        frozen = True


class ExtraDepsGroupLine(BaseModel):
    """A header line introducing build, dev or target-specific dependencies."""

    type: Literal["group"] = "group"
    kind: DependencyKind = Field(description="Dependency kind of the group")
    tree_vines: str = Field(default="", description="Rendering prefix")

    class Config:
        frozen = True

    @property
    def label(self) -> str:
        """Group label, e.g. ``build-dependencies``."""
        return get_kind_group_name(self.kind) or self.kind.value


TreeLine = Union[PackageLine, ExtraDepsGroupLine]
