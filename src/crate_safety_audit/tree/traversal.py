"""
Dependency tree traversal.

Walks the package graph depth-first from a root package and produces the
flat list of lines that make up the rendered tree. Nothing is printed
here; formatters own presentation.
"""

from typing import Optional

from crate_safety_audit.models.graph import (
    DEPENDENCY_KIND_ORDER,
    DependencyGraph,
    DependencyKind,
    get_kind_group_name,
)
from crate_safety_audit.models.package import PackageId
from crate_safety_audit.models.tree import (
    ExtraDepsGroupLine,
    PackageLine,
    Prefix,
    SymbolKind,
    TreeLine,
)
from crate_safety_audit.models.verdict import PackageSafetyVerdict
from crate_safety_audit.tree.options import TreeOptions
from crate_safety_audit.tree.symbols import get_tree_symbols


def construct_tree_vines_string(levels_continue: list[bool], options: TreeOptions) -> str:
    """
    Build the prefix of a package line.

    ``levels_continue`` holds, for every ancestor level, whether more
    siblings follow at that level.
    """
    if options.prefix == Prefix.DEPTH:
        return f"{len(levels_continue)} "
    if options.prefix == Prefix.NONE or not levels_continue:
        return ""

    symbols = get_tree_symbols(options.charset)
    buffer = []
    for continues in levels_continue[:-1]:
        c = symbols.down if continues else " "
        buffer.append(f"{c}   ")
    c = symbols.tee if levels_continue[-1] else symbols.ell
    buffer.append(f"{c}{symbols.right}{symbols.right} ")
    return "".join(buffer)


def construct_group_vines_string(levels_continue: list[bool], options: TreeOptions) -> str:
    """Build the prefix of a dependency group header."""
    if options.prefix != Prefix.INDENT:
        return ""
    symbols = get_tree_symbols(options.charset)
    return "".join(
        f"{symbols.down if continues else ' '}   " for continues in levels_continue
    )


class _TreeWalker:
    def __init__(
        self,
        graph: DependencyGraph,
        options: TreeOptions,
        verdicts: dict[PackageId, PackageSafetyVerdict],
    ) -> None:
        self.graph = graph
        self.options = options
        self.verdicts = verdicts
        self.visited: set[PackageId] = set()
        self.path: set[PackageId] = set()
        self.levels_continue: list[bool] = []

    def walk_node(self, package_id: PackageId) -> list[TreeLine]:
        # Never descend into a package already on the current path
        on_path = package_id in self.path
        new = not on_path and (self.options.all or package_id not in self.visited)
        self.visited.add(package_id)

        verdict = self.verdicts.get(
            package_id, PackageSafetyVerdict.NONE_DETECTED_BUT_NOT_FORBIDDEN
        )
        lines: list[TreeLine] = [
            PackageLine(
                package_id=package_id,
                tree_vines=construct_tree_vines_string(self.levels_continue, self.options),
                depth=len(self.levels_continue),
                verdict=verdict,
                symbol=SymbolKind.for_verdict(verdict),
            )
        ]
        if not new:
            return lines

        self.path.add(package_id)
        for kind in DEPENDENCY_KIND_ORDER:
            children = self.graph.neighbors(package_id, self.options.direction, kind)
            lines.extend(self.walk_kind(kind, children))
        self.path.discard(package_id)
        return lines

    def walk_kind(self, kind: DependencyKind, children: list[PackageId]) -> list[TreeLine]:
        if not children:
            return []

        lines: list[TreeLine] = []
        if kind != DependencyKind.NORMAL:
            if get_kind_group_name(kind) is None:
                return []
            lines.append(
                ExtraDepsGroupLine(
                    kind=kind,
                    tree_vines=construct_group_vines_string(self.levels_continue, self.options),
                )
            )

        for index, child in enumerate(children):
            self.levels_continue.append(index < len(children) - 1)
            lines.extend(self.walk_node(child))
            self.levels_continue.pop()
        return lines


def walk_dependency_tree(
    root: PackageId,
    graph: DependencyGraph,
    options: Optional[TreeOptions] = None,
    verdicts: Optional[dict[PackageId, PackageSafetyVerdict]] = None,
) -> list[TreeLine]:
    """
    Walk the dependency graph from ``root`` and produce the tree lines.

    Children keep graph order. Under each package, dependency kinds are
    visited normal first, then build, dev and target-specific, each
    non-normal group introduced by an ExtraDepsGroupLine. Packages
    already expanded elsewhere are listed but not expanded again unless
    ``options.all`` is set.

    Args:
        root: The package to start from.
        graph: The resolved dependency graph.
        options: Walk direction, truncation and prefix options.
        verdicts: Safety verdict per package; missing packages are neutral.

    Returns:
        Ordered list of tree lines.
    """
    walker = _TreeWalker(graph, options or TreeOptions(), verdicts or {})
    return walker.walk_node(root)
