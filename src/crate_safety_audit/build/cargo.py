"""
Cargo build driver.

Runs ``cargo clean`` and ``cargo check`` with a RUSTC_WRAPPER that records
every compiler invocation, then delivers the recorded invocations to an
InvocationHook from a pool of worker threads.
"""

import logging
import os
import stat
import subprocess
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError

from crate_safety_audit.build.interceptor import CompilerInvocation, InvocationHook
from crate_safety_audit.build.wrapper import RECORD_SUFFIX, SPOOL_ENV
from crate_safety_audit.config import BuildConfig
from crate_safety_audit.errors import BuildFailedError

logger = logging.getLogger(__name__)


class BuildDriver(Protocol):
    """Something that can clean and build a workspace while reporting invocations."""

    def clean(self) -> None:
        ...

    def build(self, hook: InvocationHook) -> None:
        ...


class CargoBuildDriver:
    """
    Drive cargo and intercept its rustc invocations.

    The wrapper is a small launcher script written into a temporary spool
    directory. It runs this interpreter with
    ``-m crate_safety_audit.build.wrapper``.
    """

    def __init__(
        self,
        manifest_path: Path,
        config: Optional[BuildConfig] = None,
    ) -> None:
        """
        Initialize the build driver.

        Args:
            manifest_path: Path to the workspace or package Cargo.toml.
            config: Build options (features, target, jobs, ...).
        """
        self.manifest_path = manifest_path
        self.config = config or BuildConfig()

    def _common_args(self) -> list[str]:
        args = ["--manifest-path", str(self.manifest_path)]
        if self.config.target:
            args += ["--target", self.config.target]
        if self.config.offline:
            args.append("--offline")
        if self.config.locked:
            args.append("--locked")
        if self.config.frozen:
            args.append("--frozen")
        return args

    def check_args(self) -> list[str]:
        """Command line for the intercepted ``cargo check``."""
        args = [self.config.cargo, "check", *self._common_args()]
        if self.config.features:
            args += ["--features", ",".join(self.config.features)]
        if self.config.all_features:
            args.append("--all-features")
        if self.config.no_default_features:
            args.append("--no-default-features")
        if self.config.all_targets:
            args.append("--all-targets")
        if self.config.jobs:
            args += ["--jobs", str(self.config.jobs)]
        return args

    def _run(self, args: list[str], env: Optional[dict[str, str]] = None) -> None:
        logger.debug("Running %s", " ".join(args))
        try:
            subprocess.run(
                args,
                check=True,
                capture_output=True,
                text=True,
                env=env,
            )
        except subprocess.CalledProcessError as e:
            raise BuildFailedError(f"'{' '.join(args[:2])}' failed", e.stderr or "") from e
        except FileNotFoundError as e:
            raise BuildFailedError(f"Cargo executable not found: {args[0]}") from e

    def clean(self) -> None:
        """
        Remove previous build artifacts.

        Stale dep-info files from an earlier build would otherwise be
        mistaken for files of the current one.
        """
        self._run([self.config.cargo, "clean", *self._common_args()])

    def build(self, hook: InvocationHook) -> None:
        """
        Run ``cargo check`` and report every rustc invocation to the hook.

        Raises:
            BuildFailedError: If cargo fails or an invocation record is corrupt.
        """
        with tempfile.TemporaryDirectory(prefix="crate-safety-audit-") as tmp:
            spool_dir = Path(tmp)
            records_dir = spool_dir / "records"
            records_dir.mkdir()

            env = os.environ.copy()
            if env.get("RUSTC_WRAPPER"):
                logger.debug("Overriding RUSTC_WRAPPER=%s", env["RUSTC_WRAPPER"])
            env["RUSTC_WRAPPER"] = str(write_launcher(spool_dir))
            env[SPOOL_ENV] = str(records_dir)

            self._run(self.check_args(), env=env)

            invocations = read_records(records_dir)
            logger.info("Intercepted %d rustc invocation(s)", len(invocations))
            workers = self.config.jobs or os.cpu_count() or 1
            with ThreadPoolExecutor(max_workers=workers) as pool:
                # list() re-raises the first hook failure
                list(pool.map(hook.on_invocation, invocations))


def write_launcher(directory: Path) -> Path:
    """
    Write an executable launcher script that runs the wrapper module.

    Returns:
        Path to the launcher.
    """
    launcher = directory / "rustc-wrapper"
    launcher.write_text(
        "#!/bin/sh\n"
        f'exec "{sys.executable}" -m crate_safety_audit.build.wrapper "$@"\n',
        encoding="utf-8",
    )
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return launcher


def read_records(records_dir: Path) -> list[CompilerInvocation]:
    """
    Load every invocation record in the spool directory.

    Raises:
        BuildFailedError: If a record cannot be read or validated.
    """
    invocations = []
    for record_path in sorted(records_dir.glob(f"*{RECORD_SUFFIX}")):
        try:
            invocations.append(
                CompilerInvocation.model_validate_json(record_path.read_text(encoding="utf-8"))
            )
        except (OSError, ValidationError) as e:
            raise BuildFailedError(f"Corrupt invocation record {record_path}: {e}") from e
    return invocations
