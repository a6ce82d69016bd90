"""
RUSTC_WRAPPER entry point.

Cargo runs ``$RUSTC_WRAPPER <rustc> <args...>`` for every compiler
invocation. This module records the invocation into the spool directory
named by CRATE_SAFETY_AUDIT_SPOOL and then runs the real compiler, exiting
with its status.

Usage: python -m crate_safety_audit.build.wrapper <rustc> [args...]
"""

import os
import subprocess
import sys
import uuid
from pathlib import Path
from typing import Optional

from crate_safety_audit.build.interceptor import CompilerInvocation

SPOOL_ENV = "CRATE_SAFETY_AUDIT_SPOOL"
RECORD_SUFFIX = ".json"


def write_record(spool_dir: Path, invocation: CompilerInvocation) -> Path:
    """
    Write one invocation record into the spool directory.

    The record is written under a temporary name and renamed into place,
    so readers never see a partial file.

    Returns:
        Path to the written record.
    """
    name = uuid.uuid4().hex
    tmp_path = spool_dir / f".{name}.tmp"
    record_path = spool_dir / f"{name}{RECORD_SUFFIX}"
    tmp_path.write_text(invocation.model_dump_json(), encoding="utf-8")
    os.replace(tmp_path, record_path)
    return record_path


def main(argv: Optional[list[str]] = None) -> int:
    """Record the invocation, then run the real compiler."""
    args = sys.argv[1:] if argv is None else argv
    if not args:
        sys.stderr.write("usage: python -m crate_safety_audit.build.wrapper <rustc> [args...]\n")
        return 2

    rustc, rustc_args = args[0], args[1:]
    spool = os.environ.get(SPOOL_ENV)
    if spool:
        invocation = CompilerInvocation.from_rustc_args(
            rustc_args,
            cwd=Path.cwd(),
        )
        if not invocation.is_probe:
            write_record(Path(spool), invocation)

    return subprocess.call([rustc, *rustc_args])


if __name__ == "__main__":
    sys.exit(main())
