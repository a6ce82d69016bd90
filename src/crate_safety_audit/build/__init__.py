"""
Build package for Crate Safety Audit.

This package contains modules for:
- Compiler invocation interception (RUSTC_WRAPPER)
- Driving cargo clean / cargo check
- Resolving the source files a build actually compiled
"""

from crate_safety_audit.build.cargo import BuildDriver, CargoBuildDriver
from crate_safety_audit.build.interceptor import (
    CompilerInvocation,
    ContextHandle,
    InterceptorContext,
    InvocationHook,
    InvocationRecorder,
)
from crate_safety_audit.build.resolver import resolve_rs_file_deps

__all__ = [
    "BuildDriver",
    "CargoBuildDriver",
    "CompilerInvocation",
    "ContextHandle",
    "InterceptorContext",
    "InvocationHook",
    "InvocationRecorder",
    "resolve_rs_file_deps",
]
