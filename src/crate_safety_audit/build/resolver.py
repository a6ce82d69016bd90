"""
Resolution of the source files that take part in a build.

The interceptor alone misses files pulled in through ``mod`` declarations,
``include!`` and friends, so the dep-info files written by rustc into
each output directory are read as well.
"""

import logging
from pathlib import Path

from crate_safety_audit.build.cargo import BuildDriver
from crate_safety_audit.build.interceptor import (
    ContextHandle,
    InterceptorContext,
    InvocationRecorder,
)
from crate_safety_audit.errors import ContextLockAbandonedError, SafetyAuditError
from crate_safety_audit.parser.dep_info import collect_dep_info_paths

logger = logging.getLogger(__name__)


def run_intercepted_build(driver: BuildDriver) -> InterceptorContext:
    """
    Clean, then build while recording every compiler invocation.

    Args:
        driver: The build driver to run.

    Returns:
        The drained interceptor context.

    Raises:
        BuildFailedError: If cleaning or building fails.
        ContextOwnershipError: If the context is still shared after the build.
        ContextLockAbandonedError: If a failing invocation poisoned the context.
    """
    driver.clean()

    handle = ContextHandle()
    try:
        with handle.clone() as build_handle:
            driver.build(InvocationRecorder(build_handle))
    except SafetyAuditError:
        raise
    except Exception as e:
        if not handle.is_poisoned:
            raise
        raise ContextLockAbandonedError(
            f"A compiler invocation failed while holding the context lock: {e!r}"
        ) from e

    return handle.into_inner()


def resolve_context_files(context: InterceptorContext, workspace_root: Path) -> set[Path]:
    """
    Union the dep-info dependencies of every output directory with the
    source roots captured from the command lines.

    Args:
        context: Drained interceptor context.
        workspace_root: Directory that relative dep-info paths are joined to.

    Returns:
        Set of canonical source file paths.
    """
    paths: set[Path] = set()
    for out_dir in sorted(context.out_dir_args):
        paths |= collect_dep_info_paths(out_dir, workspace_root)
    # Source roots are canonicalized when recorded
    paths |= context.rs_file_args
    return paths


def resolve_rs_file_deps(driver: BuildDriver, workspace_root: Path) -> set[Path]:
    """
    Trigger a clean build and work out which source files it used.

    Args:
        driver: The build driver to run.
        workspace_root: Root of the Cargo workspace.

    Returns:
        Set of canonical paths of every file that affected the build.
    """
    context = run_intercepted_build(driver)
    logger.info(
        "Build finished: %d invocation(s), %d output dir(s)",
        context.invocation_count,
        len(context.out_dir_args),
    )
    paths = resolve_context_files(context, workspace_root.resolve())
    logger.info("Resolved %d compiled file(s)", len(paths))
    return paths
