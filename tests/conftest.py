"""
Pytest configuration and shared fixtures.
"""

import json
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from crate_safety_audit.models.graph import DependencyGraph, DependencyKind
from crate_safety_audit.models.package import (
    CRATES_IO_SOURCE,
    Package,
    PackageId,
    Target,
    TargetKind,
)

SAFE_LIB = """#![forbid(unsafe_code)]

pub fn add(a: u32, b: u32) -> u32 {
    a + b
}
"""

UNSAFE_LIB = """pub fn first(values: &[u8]) -> u8 {
    unsafe { *values.get_unchecked(0) }
}

pub unsafe fn raw(ptr: *const u8) -> u8 {
    *ptr
}
"""

PLAIN_LIB = """pub fn hello() -> &'static str {
    "hello"
}
"""


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A canonical temporary directory to lay out crates in."""
    return tmp_path.resolve()


@pytest.fixture
def write_crate(workspace: Path) -> Callable[..., Path]:
    """Factory that writes a crate directory with the given source files."""

    def _write(name: str, files: dict[str, str]) -> Path:
        root = workspace / name
        root.mkdir(parents=True, exist_ok=True)
        (root / "Cargo.toml").write_text(
            f'[package]\nname = "{name}"\nversion = "0.1.0"\n',
            encoding="utf-8",
        )
        for relative, contents in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        return root

    return _write


@pytest.fixture
def package_factory(workspace: Path) -> Callable[..., Package]:
    """Factory for Package objects rooted under the workspace."""

    def _make(
        name: str,
        version: str = "1.0.0",
        source: Optional[str] = CRATES_IO_SOURCE,
        targets: Optional[list[tuple[str, TargetKind, str]]] = None,
        license: Optional[str] = None,
    ) -> Package:
        root = workspace / name
        if targets is None:
            targets = [(name, TargetKind.LIB, "src/lib.rs")]
        return Package(
            id=PackageId(
                name=name,
                version=version,
                source=source,
                repr_id=f"{name} {version}",
            ),
            manifest_path=root / "Cargo.toml",
            license=license,
            targets=[
                Target(name=t_name, kind=kind, src_path=root / rel)
                for t_name, kind, rel in targets
            ],
        )

    return _make


@pytest.fixture
def sample_graph(package_factory: Callable[..., Package]) -> DependencyGraph:
    """
    Root ``app`` with a normal dependency ``safe_dep`` and a build
    dependency ``unsafe_dep``.
    """
    graph = DependencyGraph()
    app = package_factory("app", version="0.1.0", source=None)
    safe_dep = package_factory("safe_dep")
    unsafe_dep = package_factory("unsafe_dep")
    for package in (app, safe_dep, unsafe_dep):
        graph.add_package(package)
    graph.add_edge(app.id, safe_dep.id, DependencyKind.NORMAL)
    graph.add_edge(app.id, unsafe_dep.id, DependencyKind.BUILD)
    return graph


@pytest.fixture
def sample_workspace(write_crate: Callable[..., Path], workspace: Path) -> Path:
    """
    A small workspace on disk.

    ``app`` depends on ``safe_dep`` (forbids unsafe code) and, as a build
    dependency, on ``unsafe_dep`` (uses unsafe code).
    """
    write_crate("app", {"src/lib.rs": PLAIN_LIB, "src/main.rs": "fn main() {}\n"})
    write_crate("safe_dep", {"src/lib.rs": SAFE_LIB})
    write_crate("unsafe_dep", {"src/lib.rs": UNSAFE_LIB})
    return workspace


def _raw_package(root: Path, name: str, source: Optional[str], targets: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "name": name,
        "version": "0.1.0",
        "id": f"{name} 0.1.0 ({source or 'path+file://' + str(root / name)})",
        "source": source,
        "license": "MIT" if name != "app" else None,
        "repository": None,
        "manifest_path": str(root / name / "Cargo.toml"),
        "targets": targets,
    }


def _lib_target(root: Path, name: str) -> dict[str, Any]:
    return {
        "name": name,
        "kind": ["lib"],
        "crate_types": ["lib"],
        "src_path": str(root / name / "src" / "lib.rs"),
    }


@pytest.fixture
def sample_metadata(sample_workspace: Path) -> dict[str, Any]:
    """``cargo metadata --format-version 1`` output for the sample workspace."""
    root = sample_workspace
    app = _raw_package(root, "app", None, [
        _lib_target(root, "app"),
        {
            "name": "app",
            "kind": ["bin"],
            "crate_types": ["bin"],
            "src_path": str(root / "app" / "src" / "main.rs"),
        },
    ])
    safe_dep = _raw_package(root, "safe_dep", CRATES_IO_SOURCE, [_lib_target(root, "safe_dep")])
    unsafe_dep = _raw_package(root, "unsafe_dep", CRATES_IO_SOURCE, [_lib_target(root, "unsafe_dep")])
    return {
        "packages": [app, safe_dep, unsafe_dep],
        "workspace_members": [app["id"]],
        "workspace_root": str(root),
        "target_directory": str(root / "target"),
        "version": 1,
        "resolve": {
            "root": app["id"],
            "nodes": [
                {
                    "id": app["id"],
                    "features": ["default"],
                    "deps": [
                        {
                            "name": "safe_dep",
                            "pkg": safe_dep["id"],
                            "dep_kinds": [{"kind": None, "target": None}],
                        },
                        {
                            "name": "unsafe_dep",
                            "pkg": unsafe_dep["id"],
                            "dep_kinds": [{"kind": "build", "target": None}],
                        },
                    ],
                },
                {"id": safe_dep["id"], "features": [], "deps": []},
                {"id": unsafe_dep["id"], "features": [], "deps": []},
            ],
        },
    }


@pytest.fixture
def metadata_file(sample_workspace: Path, sample_metadata: dict[str, Any]) -> Path:
    """The sample metadata saved to a JSON file."""
    path = sample_workspace / "metadata.json"
    path.write_text(json.dumps(sample_metadata), encoding="utf-8")
    return path
