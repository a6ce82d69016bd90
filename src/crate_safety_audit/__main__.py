"""Allow running as ``python -m crate_safety_audit``."""

from crate_safety_audit.cli import main

main()
