"""
Parser for rustc dep-info (``.d``) files.

rustc writes one make-style line per output, ``target: dep dep ...``,
listing every source file that affected it. A dependency containing a
space is written with the space escaped by a backslash, which splits it
across two whitespace-separated tokens.
"""

import logging
import os
from pathlib import Path

from crate_safety_audit.errors import (
    DependencyFileParseError,
    DirectoryWalkError,
    PathResolutionError,
)

logger = logging.getLogger(__name__)

DEP_INFO_EXTENSION = "d"


class DepInfoSyntaxError(ValueError):
    """Malformed dep-info content."""
    pass


def parse_dep_info_text(contents: str) -> list[tuple[str, list[str]]]:
    """
    Parse dep-info content.

    Lines without ``": "`` (comments such as ``# env-dep:...`` and
    ``src/lib.rs:`` lines with no dependencies) are ignored.

    Args:
        contents: Text of a dep-info file.

    Returns:
        List of (target, dependencies) tuples in file order.

    Raises:
        DepInfoSyntaxError: If a line ends with a dangling backslash.
    """
    entries = []
    for line in contents.splitlines():
        pos = line.find(": ")
        if pos == -1:
            continue
        target = line[:pos]
        tokens = iter(line[pos + 2:].split())
        deps = []
        for token in tokens:
            file = token
            while file.endswith("\\"):
                try:
                    following = next(tokens)
                except StopIteration:
                    raise DepInfoSyntaxError(
                        "malformed dep-info format, trailing \\"
                    ) from None
                file = f"{file[:-1]} {following}"
            deps.append(file)
        entries.append((target, deps))
    return entries


def parse_dep_info(dep_info_path: Path) -> list[tuple[str, list[str]]]:
    """
    Read and parse a dep-info file.

    Raises:
        DependencyFileParseError: If the file cannot be read or parsed.
    """
    try:
        contents = dep_info_path.read_text(encoding="utf-8")
        return parse_dep_info_text(contents)
    except (OSError, UnicodeDecodeError, DepInfoSyntaxError) as e:
        raise DependencyFileParseError(str(e), dep_info_path) from e


def is_file_with_ext(path: Path, file_ext: str) -> bool:
    """Whether ``path`` is a regular file with the given extension (no dot)."""
    return path.is_file() and path.suffix == f".{file_ext}"


def find_dep_info_files(out_dir: Path) -> list[Path]:
    """
    Recursively find dep-info files below an output directory.

    Returns:
        Sorted list of dep-info file paths.

    Raises:
        DirectoryWalkError: If the directory cannot be traversed.
    """
    def on_error(error: OSError) -> None:
        failed = Path(error.filename) if error.filename else out_dir
        raise DirectoryWalkError(failed, error) from error

    found = []
    for dirpath, _dirnames, filenames in os.walk(out_dir, onerror=on_error):
        for filename in filenames:
            path = Path(dirpath) / filename
            if is_file_with_ext(path, DEP_INFO_EXTENSION):
                found.append(path)
    return sorted(found)


def canonicalize(dependency: str, workspace_root: Path) -> Path:
    """
    Resolve a dep-info path against the workspace root and canonicalize it.

    Raises:
        PathResolutionError: If the file is missing or unreadable.
    """
    path = workspace_root / dependency
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        cause = e if isinstance(e, OSError) else OSError(str(e))
        raise PathResolutionError(path, cause) from e


def collect_dep_info_paths(out_dir: Path, workspace_root: Path) -> set[Path]:
    """
    Collect the canonical paths listed by every dep-info file in ``out_dir``.

    Args:
        out_dir: A compiler output directory.
        workspace_root: Directory that relative dependencies are joined to.

    Returns:
        Set of canonical dependency paths.
    """
    paths: set[Path] = set()
    for dep_info_path in find_dep_info_files(out_dir):
        for _target, deps in parse_dep_info(dep_info_path):
            for dependency in deps:
                paths.add(canonicalize(dependency, workspace_root))
        logger.debug("Parsed %s", dep_info_path)
    return paths
